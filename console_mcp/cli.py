"""CLI for the console MCP server: serve over stdio or run console commands directly."""

from __future__ import annotations

import asyncio
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table
import typer

from console_mcp.config import McpConfig, load_config
from console_mcp.errors import ConsoleMcpError
from console_mcp.tools.console import ExecResult, execute_console_command, resolve_target
from console_mcp.tools.response import ToolResponse, format_json_result, format_result

app = typer.Typer(
    name="console-mcp",
    help="Console MCP Server CLI",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

ConfigOption = typer.Option(None, "--config", "-c", help="Path to console-mcp.toml")


def _load(config_path: Path | None) -> McpConfig:
    try:
        return load_config(config_path)
    except (OSError, ValueError) as e:
        err_console.print(f"[red]✗[/] Invalid config: {escape(str(e))}")
        raise typer.Exit(2) from e


def _execute(config: McpConfig, command_args: str) -> ExecResult:
    try:
        return asyncio.run(execute_console_command(command_args, config.execution))
    except ConsoleMcpError as e:
        err_console.print(f"[red]✗[/] {e.code}: {escape(str(e))}")
        raise typer.Exit(2) from e


def _emit(response: ToolResponse) -> None:
    if response.is_error:
        err_console.print(response.text, markup=False, highlight=False, soft_wrap=True)
        raise typer.Exit(1)
    console.print(response.text, markup=False, highlight=False, soft_wrap=True, end="")


@app.command()
def serve(
    config_path: Path | None = ConfigOption,
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Override log level (debug, info, warning, error)"
    ),
) -> None:
    """Run the MCP server on stdio."""
    from console_mcp.server import configure_logging
    from console_mcp.server import serve as run_server

    config = _load(config_path)
    if log_level:
        config.server.log_level = log_level
        config.observability.log_level = log_level

    configure_logging(config)
    raise typer.Exit(run_server(config))


@app.command()
def run(
    command: str = typer.Argument(..., help="Console arguments, e.g. 'cache:clear'"),
    config_path: Path | None = ConfigOption,
) -> None:
    """Execute one console command on the configured target."""
    config = _load(config_path)
    _emit(format_result(_execute(config, command)))


@app.command("list")
def list_commands(config_path: Path | None = ConfigOption) -> None:
    """List console commands as JSON."""
    config = _load(config_path)
    _emit(format_json_result(_execute(config, "list --format=json")))


@app.command("help")
def command_help(
    name: str = typer.Argument(..., help="Console command name"),
    config_path: Path | None = ConfigOption,
) -> None:
    """Show help for a console command."""
    config = _load(config_path)
    _emit(format_result(_execute(config, f"{name} --help")))


@app.command("config")
def show_config(config_path: Path | None = ConfigOption) -> None:
    """Show the effective configuration and resolved execution target."""
    config = _load(config_path)
    ex = config.execution

    table = Table(title="Console MCP Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("execution.mode", ex.mode)
    table.add_row("execution.container_name", escape(ex.container_name or "-"))
    table.add_row("execution.console_path", escape(ex.console_path or "-"))
    table.add_row("execution.docker_binary", escape(ex.docker_binary))
    table.add_row("execution.max_concurrent", str(ex.max_concurrent or "unlimited"))
    table.add_row("server.log_level", config.server.log_level)
    table.add_row("observability.enabled", str(config.observability.enabled))

    try:
        target = resolve_target(ex)
        table.add_row("target", f"[green]{escape(' '.join(target.argv('')))}[/]")
    except ConsoleMcpError as e:
        table.add_row("target", f"[red]{escape(str(e))}[/]")

    console.print(table)


def main() -> None:
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
