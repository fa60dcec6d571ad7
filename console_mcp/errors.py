"""
Console MCP error types.

Custom exceptions with MCP-friendly error codes.
"""

from __future__ import annotations


class ConsoleMcpError(Exception):
    """Base error for console command operations."""

    code: str = "CONSOLE_MCP_ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class InvalidArgumentError(ConsoleMcpError):
    """Command arguments rejected before execution."""

    code = "INVALID_ARGUMENT"


class ConfigurationError(ConsoleMcpError):
    """Required execution setting is missing."""

    code = "CONFIGURATION_ERROR"
