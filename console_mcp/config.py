"""MCP configuration loader - reads from console-mcp.toml with ENV overrides."""  # noqa: I001

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import tomllib
from typing import cast

DEFAULT_CONSOLE_PATH = "/www/bin/console"
DEFAULT_CONFIG_FILE = "console-mcp.toml"


@dataclass
class McpServerConfig:
    """Server settings."""

    name: str = "docker-console-server"
    version: str = "0.1.0"
    log_level: str = "info"

    def validate(self) -> None:
        if self.log_level.lower() not in ("debug", "info", "warning", "error"):
            raise ValueError(f"Invalid log_level: {self.log_level}")


@dataclass
class ExecutionConfig:
    """Where and how console commands run.

    mode "local" runs console_path on the host; any other value runs it
    through `docker exec` inside container_name. Missing values are not
    rejected here, the executor raises ConfigurationError when it needs them.
    """

    mode: str = "docker"  # "local" | anything else = container
    container_name: str | None = None
    console_path: str | None = None
    docker_binary: str = "docker"
    max_concurrent: int = 0  # 0 = unlimited

    @property
    def is_local(self) -> bool:
        return self.mode == "local"

    def validate(self) -> None:
        if self.max_concurrent < 0:
            raise ValueError("max_concurrent must be >= 0")
        if not self.docker_binary:
            raise ValueError("docker_binary must not be empty")


@dataclass
class McpObservabilityConfig:
    """Observability settings."""

    enabled: bool = False
    log_format: str = "json"  # "json" | "text"
    log_level: str = "info"
    include_correlation_id: bool = True

    def validate(self) -> None:
        if self.log_format not in ("json", "text"):
            raise ValueError(f"Invalid log_format: {self.log_format}")


@dataclass
class McpConfig:
    """Root configuration."""

    server: McpServerConfig = field(default_factory=McpServerConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    observability: McpObservabilityConfig = field(default_factory=McpObservabilityConfig)

    def validate(self) -> None:
        self.server.validate()
        self.execution.validate()
        self.observability.validate()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes")


def _apply_env_overrides(cfg: McpConfig) -> McpConfig:
    """Apply environment variable overrides. ENV beats TOML."""
    # Deployment names used by existing client configs
    if os.getenv("EXECUTION_MODE"):
        cfg.execution.mode = cast(str, os.getenv("EXECUTION_MODE"))
    if os.getenv("CONTAINER_NAME"):
        cfg.execution.container_name = os.getenv("CONTAINER_NAME")
    if os.getenv("PATH_CONSOLE"):
        cfg.execution.console_path = os.getenv("PATH_CONSOLE")
    if os.getenv("DOCKER_BINARY"):
        cfg.execution.docker_binary = cast(str, os.getenv("DOCKER_BINARY"))

    if os.getenv("CONSOLE_MCP_LOG_LEVEL"):
        cfg.server.log_level = os.getenv("CONSOLE_MCP_LOG_LEVEL", cfg.server.log_level)

    if os.getenv("CONSOLE_MCP_OBS_ENABLED"):
        cfg.observability.enabled = _env_flag("CONSOLE_MCP_OBS_ENABLED")
    if os.getenv("CONSOLE_MCP_OBS_LOG_FORMAT"):
        cfg.observability.log_format = os.getenv(
            "CONSOLE_MCP_OBS_LOG_FORMAT", cfg.observability.log_format
        )

    return cfg


def load_config(config_path: str | Path | None = None) -> McpConfig:
    """
    Load config from console-mcp.toml with ENV overrides.

    Precedence: ENV → TOML → defaults

    Args:
        config_path: Path to the TOML file. If None, searches:
            1. CONSOLE_MCP_CONFIG env var
            2. ./console-mcp.toml

    Returns:
        McpConfig dataclass with merged settings.
    """
    if config_path is None:
        if os.getenv("CONSOLE_MCP_CONFIG"):
            config_path = Path(cast(str, os.getenv("CONSOLE_MCP_CONFIG")))
        else:
            config_path = Path(DEFAULT_CONFIG_FILE)
    else:
        config_path = Path(config_path)

    cfg = McpConfig()

    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        mcp_data = data.get("mcp", {})

        # Server
        srv = mcp_data.get("server", {})
        cfg.server.name = srv.get("name", cfg.server.name)
        cfg.server.log_level = srv.get("log_level", cfg.server.log_level)

        # Execution
        ex = mcp_data.get("execution", {})
        cfg.execution.mode = ex.get("mode", cfg.execution.mode)
        cfg.execution.container_name = ex.get("container_name", cfg.execution.container_name)
        cfg.execution.console_path = ex.get("console_path", cfg.execution.console_path)
        cfg.execution.docker_binary = ex.get("docker_binary", cfg.execution.docker_binary)
        cfg.execution.max_concurrent = ex.get("max_concurrent", cfg.execution.max_concurrent)

        # Observability
        obs = mcp_data.get("observability", {})
        cfg.observability.enabled = obs.get("enabled", cfg.observability.enabled)
        cfg.observability.log_format = obs.get("log_format", cfg.observability.log_format)
        cfg.observability.log_level = obs.get("log_level", cfg.observability.log_level)
        cfg.observability.include_correlation_id = obs.get(
            "include_correlation_id", cfg.observability.include_correlation_id
        )

    cfg = _apply_env_overrides(cfg)

    cfg.validate()

    return cfg
