"""Pytest fixtures for console MCP."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
import stat
import sys

import pytest

# Ensure repo root is importable without an install.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

CONFIG_ENV_VARS = (
    "EXECUTION_MODE",
    "CONTAINER_NAME",
    "PATH_CONSOLE",
    "DOCKER_BINARY",
    "CONSOLE_MCP_CONFIG",
    "CONSOLE_MCP_LOG_LEVEL",
    "CONSOLE_MCP_OBS_ENABLED",
    "CONSOLE_MCP_OBS_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def hermetic_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Autouse: each test runs in its own tmp cwd with no execution settings
    leaking in from the developer's shell.
    """
    monkeypatch.chdir(tmp_path)
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def make_console(tmp_path: Path):
    """Write an executable shell script standing in for bin/console."""

    def _make(body: str, name: str = "console") -> Path:
        path = tmp_path / name
        path.write_text(f"#!/bin/sh\n{body}\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@dataclass
class FakeSpawner:
    """Replacement for asyncio.create_subprocess_exec that records argv."""

    stdout: bytes = b""
    stderr: bytes = b""
    returncode: int = 0
    delay: float = 0.0
    calls: list[list[str]] = field(default_factory=list)
    active: int = 0
    max_active: int = 0

    async def __call__(self, *argv, **kwargs):
        self.calls.append(list(argv))
        return _FakeProcess(self)


class _FakeProcess:
    def __init__(self, spawner: FakeSpawner):
        self._spawner = spawner
        self.returncode: int | None = None

    async def communicate(self, input=None):
        s = self._spawner
        s.active += 1
        s.max_active = max(s.max_active, s.active)
        try:
            await asyncio.sleep(s.delay)
        finally:
            s.active -= 1
        self.returncode = s.returncode
        return s.stdout, s.stderr


@pytest.fixture
def fake_exec(monkeypatch: pytest.MonkeyPatch) -> FakeSpawner:
    """Capture process spawns instead of running docker."""
    spawner = FakeSpawner()
    monkeypatch.setattr(asyncio, "create_subprocess_exec", spawner)
    return spawner
