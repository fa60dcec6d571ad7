"""
Console command execution for the console MCP server.

Runs the configured console binary either on the host or inside a docker
container. Arguments are passed to the process as an argv list, never
through a shell.

Security features:
- Metacharacter denylist on the raw argument string
- Explicit argv (no shell interpretation)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import re
import shlex

from console_mcp.config import DEFAULT_CONSOLE_PATH, ExecutionConfig
from console_mcp.errors import ConfigurationError, InvalidArgumentError

logger = logging.getLogger(__name__)

# Chaining / substitution metacharacters. Not a shell-escaping scheme.
DENIED_CHARS_RE = re.compile(r"[;&|`$()]")

SPAWN_FAILURE_EXIT_CODE = 1


@dataclass(frozen=True)
class ExecResult:
    """Result from console command execution."""

    stdout: str
    stderr: str
    exit_code: int
    command_line: str = ""
    spawn_failed: bool = False

    @property
    def clean(self) -> bool:
        """Exit code 0 and nothing on stderr."""
        return self.exit_code == 0 and not self.stderr


@dataclass(frozen=True)
class LocalTarget:
    """Run the console binary directly on the host."""

    binary_path: str

    def __post_init__(self):
        _split_binary_path(self.binary_path)

    def argv(self, command_args: str) -> list[str]:
        return [*shlex.split(self.binary_path), *shlex.split(command_args)]


@dataclass(frozen=True)
class ContainerTarget:
    """Run the console binary through `docker exec`."""

    container_name: str
    binary_path: str = DEFAULT_CONSOLE_PATH
    docker_binary: str = "docker"

    def __post_init__(self):
        if not self.container_name:
            raise ConfigurationError("container name must not be empty")
        _split_binary_path(self.binary_path)

    def argv(self, command_args: str) -> list[str]:
        return [
            self.docker_binary,
            "exec",
            self.container_name,
            *shlex.split(self.binary_path),
            *shlex.split(command_args),
        ]


ExecutionTarget = LocalTarget | ContainerTarget


def _split_binary_path(binary_path: str) -> list[str]:
    try:
        words = shlex.split(binary_path)
    except ValueError as e:
        raise ConfigurationError(f"Invalid console path {binary_path!r}: {e}") from e
    if not words:
        raise ConfigurationError("console path must not be empty")
    return words


def validate_command_args(command_args: str) -> list[str]:
    """
    Check raw command arguments against the denylist and split them.

    Returns:
        The argument words.

    Raises:
        InvalidArgumentError: If a denied character is present or the
            string cannot be split (e.g. unbalanced quotes).
    """
    if DENIED_CHARS_RE.search(command_args):
        raise InvalidArgumentError("Invalid characters detected in command arguments.")
    try:
        return shlex.split(command_args)
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid command syntax: {e}") from e


def resolve_target(config: ExecutionConfig) -> ExecutionTarget:
    """
    Resolve the execution target from config.

    Raises:
        ConfigurationError: PATH_CONSOLE missing in local mode, or
            CONTAINER_NAME missing in container mode.
    """
    if config.is_local:
        if not config.console_path:
            raise ConfigurationError("PATH_CONSOLE environment variable is required")
        return LocalTarget(binary_path=config.console_path)

    if not config.container_name:
        raise ConfigurationError(
            "CONTAINER_NAME environment variable is required for docker execution mode"
        )
    return ContainerTarget(
        container_name=config.container_name,
        binary_path=config.console_path or DEFAULT_CONSOLE_PATH,
        docker_binary=config.docker_binary,
    )


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


async def execute_console_command(
    command_args: str,
    config: ExecutionConfig,
    semaphore: asyncio.Semaphore | None = None,
) -> ExecResult:
    """
    Execute a console command on the configured target.

    Process failures (non-zero exit, spawn failure) are returned as an
    ExecResult, never raised.

    Args:
        command_args: Arguments for the console binary (e.g. "list --format=json")
        config: Execution settings
        semaphore: Optional cap on concurrently running processes

    Returns:
        ExecResult with stdout, stderr, exit_code

    Raises:
        InvalidArgumentError: Denied characters in command_args
        ConfigurationError: Required setting missing
    """
    validate_command_args(command_args)
    target = resolve_target(config)
    argv = target.argv(command_args)
    command_line = shlex.join(argv)

    logger.info(f"Executing: {command_line}", extra={"command": command_line})

    if semaphore is None:
        return await _run(argv, command_line)
    async with semaphore:
        return await _run(argv, command_line)


async def _run(argv: list[str], command_line: str) -> ExecResult:
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error(
            f"Error executing command: {command_line}: {e}",
            extra={"command": command_line, "exit_code": SPAWN_FAILURE_EXIT_CODE},
        )
        return ExecResult(
            stdout="",
            stderr=str(e),
            exit_code=SPAWN_FAILURE_EXIT_CODE,
            command_line=command_line,
            spawn_failed=True,
        )

    stdout, stderr = await proc.communicate()
    exit_code = proc.returncode if proc.returncode is not None else SPAWN_FAILURE_EXIT_CODE

    if exit_code != 0:
        logger.warning(
            f"Error executing command: {command_line} exited with code {exit_code}",
            extra={"command": command_line, "exit_code": exit_code},
        )

    return ExecResult(
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        exit_code=exit_code,
        command_line=command_line,
    )
