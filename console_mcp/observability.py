"""Observability for the console MCP server.

Per-request correlation IDs, JSON log lines, and in-memory counters for
tool calls and the console processes they run:
- call outcome per tool (ok / error result / rejected before a result)
- call latency
- exit codes and spawn failures of the console processes
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
from threading import Lock
import time
from typing import TYPE_CHECKING, Any
import uuid

from console_mcp.config import McpObservabilityConfig

if TYPE_CHECKING:
    from console_mcp.tools.console import ExecResult

TEXT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Metrics bucket for tool names the server does not declare
UNKNOWN_TOOL = "(unknown)"

CALL_STATUSES = ("ok", "error", "rejected")


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line, carrying call and execution extras."""

    EXTRA_FIELDS = ("tool", "status", "latency_ms", "error", "command", "exit_code")

    def __init__(self, include_correlation_id: bool = True):
        super().__init__()
        self.include_correlation_id = include_correlation_id

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if self.include_correlation_id and hasattr(record, "correlation_id"):
            entry["cid"] = record.correlation_id
        entry.update(
            {name: getattr(record, name) for name in self.EXTRA_FIELDS if hasattr(record, name)}
        )
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, separators=(",", ":"))


@dataclass
class ToolStats:
    """Counters for one tool."""

    outcomes: Counter[str] = field(default_factory=Counter)
    latency_total_ms: float = 0.0
    latency_max_ms: float = 0.0
    exit_codes: Counter[int] = field(default_factory=Counter)
    spawn_failures: int = 0

    @property
    def calls(self) -> int:
        return sum(self.outcomes.values())

    def snapshot(self) -> dict[str, Any]:
        calls = self.calls
        return {
            "calls": calls,
            "ok": self.outcomes["ok"],
            "errors": self.outcomes["error"],
            "rejected": self.outcomes["rejected"],
            "avg_ms": round(self.latency_total_ms / calls, 2) if calls else 0.0,
            "max_ms": round(self.latency_max_ms, 2),
            "exit_codes": {str(code): n for code, n in sorted(self.exit_codes.items())},
            "spawn_failures": self.spawn_failures,
        }


class MetricsCollector:
    """Thread-safe counters keyed by declared tool name.

    Names outside `tool_names` all land in the UNKNOWN_TOOL bucket, so
    clients cannot grow the map.
    """

    def __init__(self, tool_names: Iterable[str] = ()):
        self._lock = Lock()
        self._known = frozenset(tool_names)
        self._tools: dict[str, ToolStats] = {}
        self._start_time = time.time()

    def _stats_for(self, tool: str) -> ToolStats:
        key = tool if tool in self._known else UNKNOWN_TOOL
        return self._tools.setdefault(key, ToolStats())

    def record_call(self, tool: str, latency_ms: float, status: str) -> None:
        """Record a finished tool call. status is one of CALL_STATUSES."""
        if status not in CALL_STATUSES:
            raise ValueError(f"Invalid call status: {status}")
        with self._lock:
            stats = self._stats_for(tool)
            stats.outcomes[status] += 1
            stats.latency_total_ms += latency_ms
            stats.latency_max_ms = max(stats.latency_max_ms, latency_ms)

    def record_execution(self, tool: str, result: ExecResult) -> None:
        """Record the console process a tool call ran."""
        with self._lock:
            stats = self._stats_for(tool)
            stats.exit_codes[result.exit_code] += 1
            if result.spawn_failed:
                stats.spawn_failures += 1

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            tools = {name: s.snapshot() for name, s in self._tools.items()}
            calls = sum(t["calls"] for t in tools.values())
            failed = sum(t["errors"] + t["rejected"] for t in tools.values())
            return {
                "uptime_s": round(time.time() - self._start_time, 1),
                "calls": calls,
                "failed": failed,
                "error_rate": round(failed / max(1, calls), 4),
                "tools": tools,
            }


class ObservabilityContext:
    """Correlation IDs plus metrics; recording is a no-op when disabled."""

    def __init__(self, config: McpObservabilityConfig, tool_names: Iterable[str] = ()):
        self.config = config
        self.enabled = config.enabled
        self.metrics = MetricsCollector(tool_names)

    def correlation_id(self) -> str:
        return uuid.uuid4().hex[:8]

    def record_call(self, tool: str, latency_ms: float, status: str) -> None:
        if self.enabled:
            self.metrics.record_call(tool, latency_ms, status)

    def record_execution(self, tool: str, result: ExecResult) -> None:
        if self.enabled:
            self.metrics.record_execution(tool, result)

    def get_stats(self) -> dict[str, Any]:
        return self.metrics.get_stats()


def setup_logging(
    config: McpObservabilityConfig, logger_name: str = "console_mcp"
) -> logging.Logger:
    """Point `logger_name` at a single stderr handler (stdout carries the MCP stream)."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    if config.log_format == "json":
        formatter: logging.Formatter = JsonLogFormatter(config.include_correlation_id)
    else:
        formatter = logging.Formatter(TEXT_LOG_FORMAT)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
