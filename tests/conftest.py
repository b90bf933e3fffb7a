"""Pytest configuration for shared fixtures."""

from __future__ import annotations

import os
import shutil
import stat
import sys
from pathlib import Path

import pytest

from r2bridge.config import BridgeConfig, EventsConfig, PipeConfig

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "requires_r2: test needs a real radare2 on PATH")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip tests that need radare2 when it is not installed."""
    if shutil.which("radare2"):
        return
    skip_r2 = pytest.mark.skip(reason="radare2 not found in PATH")
    for item in items:
        if "requires_r2" in item.keywords:
            item.add_marker(skip_r2)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user config and R2BRIDGE_* overrides out of the tests."""
    for name in list(os.environ):
        if name.startswith("R2BRIDGE_") or name in ("R2PIPE_IN", "R2PIPE_OUT"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def fake_r2(tmp_path: Path) -> str:
    """Return the path of an executable fake radare2."""
    script = tmp_path / "fake-radare2"
    source = (FIXTURES_DIR / "fake_r2.py").read_text()
    script.write_text(f"#!{sys.executable}\n{source}")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


@pytest.fixture
def fake_config(fake_r2: str) -> BridgeConfig:
    """Configuration pointing the pipe transport at the fake radare2."""
    return BridgeConfig(
        pipe=PipeConfig(executable=fake_r2, close_timeout=5.0),
        events=EventsConfig(poll_interval=0.01),
    )


@pytest.fixture(autouse=True, scope="function")
def cleanup_r2_processes():
    """Cleanup any orphaned radare2 processes after each test."""
    yield
    try:
        import psutil

        current = psutil.Process()
        for proc in current.children(recursive=True):
            try:
                cmdline = " ".join(proc.cmdline())
                if "radare2" in cmdline:
                    proc.terminate()
                    proc.wait(timeout=2)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.TimeoutExpired):
                pass
    except ImportError:
        pass
