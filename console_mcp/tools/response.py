"""Turn console execution results into MCP tool responses."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging

from mcp.types import CallToolResult, TextContent

from console_mcp.tools.console import ExecResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResponse:
    """Text payload plus error flag handed back to the transport."""

    text: str
    is_error: bool

    def to_call_tool_result(self) -> CallToolResult:
        return CallToolResult(
            content=[TextContent(type="text", text=self.text)],
            isError=self.is_error,
        )


def format_result(result: ExecResult) -> ToolResponse:
    """
    Format an ExecResult as a tool response.

    Returns only stdout on clean success (exit code 0, empty stderr),
    otherwise exit code, stdout and stderr flagged as an error. Commands
    that warn on stderr with exit 0 are surfaced as errors too.
    """
    if result.clean:
        return ToolResponse(text=result.stdout, is_error=False)

    message = (
        f"Exit Code: {result.exit_code}\n\n"
        f"STDOUT:\n{result.stdout}\n\n"
        f"STDERR:\n{result.stderr}"
    )
    return ToolResponse(text=message, is_error=True)


def format_json_result(result: ExecResult) -> ToolResponse:
    """Like format_result, but a clean result must also be valid JSON."""
    if not result.clean:
        return format_result(result)

    try:
        json.loads(result.stdout)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse command output as JSON: {e}")
        message = f"Failed to parse JSON output:\n{e}\n\nRaw Output:\n{result.stdout}"
        return ToolResponse(text=message, is_error=True)

    return ToolResponse(text=result.stdout, is_error=False)
