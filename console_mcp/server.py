#!/usr/bin/env python3
"""
Console MCP Server - runs a project's console binary (e.g. Symfony bin/console)
locally or inside a docker container.

Supports stdio transport for Claude Desktop integration.
Run with: python -m console_mcp.server

Tools:
- execute_console_command: run arbitrary console arguments
- list_commands: `console list --format=json`, validated as JSON
- command_help: `console <name> --help`
"""  # noqa: I001

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
import sys
import time
from typing import Any

from console_mcp.config import DEFAULT_CONSOLE_PATH, ExecutionConfig, McpConfig, load_config
from console_mcp.errors import InvalidArgumentError
from console_mcp.observability import TEXT_LOG_FORMAT, ObservabilityContext, setup_logging
from console_mcp.tools.console import ExecResult, execute_console_command
from console_mcp.tools.response import ToolResponse, format_json_result, format_result
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from mcp.types import (
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    CallToolRequest,
    ErrorData,
    ServerResult,
    Tool,
)

logger = logging.getLogger("console_mcp")

LIST_COMMANDS_ARGS = "list --format=json"

ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolResponse]]


def _describe_target(cfg: ExecutionConfig) -> str:
    mode = "local" if cfg.is_local else (cfg.mode or "docker")
    container = cfg.container_name or "(CONTAINER_NAME not set)"
    docker_path = cfg.console_path or DEFAULT_CONSOLE_PATH
    local_path = cfg.console_path or "(PATH_CONSOLE not set)"
    return (
        f'Current server EXECUTION_MODE: "{mode}". '
        f'In "docker" mode, uses container "{container}" and console path "{docker_path}". '
        f'In "local" mode, executes command directly on the host using "{local_path}" '
        f"(PATH_CONSOLE is required for local mode)."
    )


def build_tools(cfg: ExecutionConfig) -> list[Tool]:
    """Tool declarations; descriptions reflect the effective execution config."""
    return [
        Tool(
            name="execute_console_command",
            description=f"Executes a console command. {_describe_target(cfg)}",
            inputSchema={
                "type": "object",
                "properties": {
                    "command": {
                        "type": "string",
                        "description": "The bin/console command arguments to execute (e.g., 'cache:clear')",
                    },
                },
                "required": ["command"],
            },
        ),
        Tool(
            name="list_commands",
            description=(
                "Lists available console commands (e.g., using `PATH_CONSOLE list --format=json`). "
                "Behavior depends on EXECUTION_MODE and PATH_CONSOLE."
            ),
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="command_help",
            description=(
                "Gets help for a specific console command (e.g., using "
                "`PATH_CONSOLE {commandName} --help`). Behavior depends on EXECUTION_MODE and PATH_CONSOLE."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "commandName": {
                        "type": "string",
                        "description": "The name of the command to get help for.",
                    },
                },
                "required": ["commandName"],
            },
        ),
    ]


def _invalid_params(message: str) -> McpError:
    return McpError(ErrorData(code=INVALID_PARAMS, message=message))


def _require_str(args: Any, key: str, tool: str) -> str:
    if not isinstance(args, dict) or not isinstance(args.get(key), str):
        raise _invalid_params(f'Invalid arguments for {tool}: "{key}" (string) is required.')
    return args[key]


class ConsoleMcpServer:
    """Console MCP Server implementation."""

    def __init__(self, config: McpConfig):
        self.config = config
        self.server = Server(
            config.server.name,
            version=config.server.version,
            instructions=(
                "Executes console commands either locally or inside a docker container. "
                + _describe_target(config.execution)
            ),
        )

        max_concurrent = config.execution.max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent > 0 else None

        self.tools = build_tools(config.execution)
        self.tool_handlers: dict[str, ToolHandler] = {
            "execute_console_command": self._handle_execute_console_command,
            "list_commands": self._handle_list_commands,
            "command_help": self._handle_command_help,
        }
        self.obs = ObservabilityContext(config.observability, self.tool_handlers)

        self._register_handlers()
        logger.info(
            f"Console MCP Server initialized (mode={config.execution.mode}, tools={len(self.tools)})"
        )

    def _register_handlers(self):
        """Register MCP protocol handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """Return available tools."""
            logger.debug("list_tools called")
            return self.tools

        # Raw handler: McpError must reach the client as a JSON-RPC error, not an
        # isError result. Argument checks live in the tool handlers.
        async def handle_call_tool(req: CallToolRequest) -> ServerResult:
            response = await self.call_tool(req.params.name, req.params.arguments or {})
            return ServerResult(response.to_call_tool_result())

        self.server.request_handlers[CallToolRequest] = handle_call_tool

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> ToolResponse:
        """Dispatch a tool invocation with correlation ID, timing and metrics."""
        cid = self.obs.correlation_id()
        start_time = time.time()

        logger.info(f"call_tool: {name}", extra={"correlation_id": cid, "tool": name})

        try:
            response = await self.dispatch(name, arguments)
        except Exception as e:
            latency_ms = (time.time() - start_time) * 1000
            self.obs.record_call(name, latency_ms, "rejected")
            logger.warning(
                f"call_tool failed: {name}: {e}",
                extra={
                    "correlation_id": cid,
                    "tool": name,
                    "latency_ms": latency_ms,
                    "status": "rejected",
                    "error": str(e),
                },
            )
            raise

        latency_ms = (time.time() - start_time) * 1000
        status = "error" if response.is_error else "ok"
        self.obs.record_call(name, latency_ms, status)
        logger.info(
            f"call_tool done: {name}",
            extra={
                "correlation_id": cid,
                "tool": name,
                "latency_ms": latency_ms,
                "status": status,
            },
        )
        return response

    async def dispatch(self, name: str, arguments: dict[str, Any]) -> ToolResponse:
        handler = self.tool_handlers.get(name)
        if handler is None:
            raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=f"Unknown tool: {name}"))
        return await handler(arguments)

    async def _execute(self, tool: str, command_args: str) -> ExecResult:
        try:
            result = await execute_console_command(
                command_args, self.config.execution, semaphore=self._semaphore
            )
        except InvalidArgumentError as e:
            raise _invalid_params(str(e)) from e
        self.obs.record_execution(tool, result)
        return result

    async def _handle_execute_console_command(self, args: dict[str, Any]) -> ToolResponse:
        command = _require_str(args, "command", "execute_console_command")
        return format_result(await self._execute("execute_console_command", command))

    async def _handle_list_commands(self, args: dict[str, Any]) -> ToolResponse:
        return format_json_result(await self._execute("list_commands", LIST_COMMANDS_ARGS))

    async def _handle_command_help(self, args: dict[str, Any]) -> ToolResponse:
        command_name = _require_str(args, "commandName", "command_help")
        return format_result(await self._execute("command_help", f"{command_name} --help"))

    async def run(self):
        """Run the server with stdio transport."""
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Docker Console MCP server running on stdio")
            try:
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
            finally:
                if self.obs.enabled:
                    logger.info(f"Session metrics: {self.obs.get_stats()}")


def configure_logging(config: McpConfig) -> None:
    """Set up stderr logging from config."""
    if config.observability.enabled:
        setup_logging(config.observability, "console_mcp")
    else:
        logging.basicConfig(format=TEXT_LOG_FORMAT, stream=sys.stderr)
        log_level = getattr(logging, config.server.log_level.upper(), logging.INFO)
        logger.setLevel(log_level)

    ex = config.execution
    logger.info(
        f"Execution: mode={ex.mode}, container={ex.container_name}, "
        f"console_path={ex.console_path}, max_concurrent={ex.max_concurrent}"
    )
    logger.info(
        f"Observability: enabled={config.observability.enabled}, "
        f"log_format={config.observability.log_format}"
    )


def serve(config: McpConfig) -> int:
    """Build the server and run it until stdin closes or Ctrl+C. Returns exit code."""
    try:
        server = ConsoleMcpServer(config)
        asyncio.run(server.run())
    except KeyboardInterrupt:
        logger.info("Received SIGINT, shutting down server...")
        return 0
    except Exception:
        logger.exception("Server failed to start")
        return 1
    return 0


def main():
    """Entry point for the console MCP server."""
    import argparse

    parser = argparse.ArgumentParser(description="Console MCP Server")
    parser.add_argument(
        "--config",
        "-c",
        help="Path to console-mcp.toml config file",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        "-l",
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Override log level",
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Server failed to start: {e}", file=sys.stderr)
        sys.exit(1)

    if args.log_level:
        config.server.log_level = args.log_level
        config.observability.log_level = args.log_level

    configure_logging(config)
    sys.exit(serve(config))


if __name__ == "__main__":
    main()
