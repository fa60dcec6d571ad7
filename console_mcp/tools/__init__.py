"""Console MCP tools - command execution and response formatting."""

from console_mcp.tools.console import (  # noqa: F401
    ContainerTarget,
    ExecResult,
    ExecutionTarget,
    LocalTarget,
    execute_console_command,
    resolve_target,
    validate_command_args,
)
from console_mcp.tools.response import (  # noqa: F401
    ToolResponse,
    format_json_result,
    format_result,
)
