"""Shared fixtures for Meta-Builder tests."""

from __future__ import annotations

import io
import shlex
from collections.abc import Iterator, Sequence
from pathlib import Path

import pytest
from rich.console import Console

from metabuilder.context import RuntimeContext
from metabuilder.exceptions import ExternalToolError
from metabuilder.logger import BuildLogger
from metabuilder.models import PlatformInfo
from metabuilder.tools import ToolRunner


class FakeRunner(ToolRunner):
    """Tool runner with a configurable set of installed tools."""

    def __init__(
        self,
        available: Sequence[str] = (),
        failures: dict[str, int] | None = None,
        platform_info: PlatformInfo | None = None,
    ) -> None:
        self.available = set(available)
        self.failures = dict(failures or {})
        self.platform_info = platform_info or PlatformInfo(
            os_type="linux",
            package_manager="apt-get",
        )
        self.calls: list[list[str]] = []

    def platform(self) -> PlatformInfo:
        return self.platform_info

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}" if name in self.available else None

    def run(self, argv: Sequence[str], cwd: Path | None = None) -> None:
        self.calls.append(list(argv))
        command_text = shlex.join(argv)
        if argv[0] not in self.available:
            msg = f"{argv[0]} command not found"
            raise ExternalToolError(msg, exit_code=127, command=command_text)
        exit_code = self.failures.get(argv[0])
        if exit_code:
            msg = f"'{command_text}' exited with status {exit_code}"
            raise ExternalToolError(msg, exit_code=exit_code, command=command_text)


ENV_VARS = (
    "NO_COLOR",
    "DEBUG",
    "METABUILDER_LOG_DIR",
    "METABUILDER_PROJECTS_DIR",
    "METABUILDER_WORK_DIR",
    "METABUILDER_INSTALL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's settings out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def context(tmp_path: Path) -> RuntimeContext:
    """Runtime context writing into a temporary directory."""
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    return RuntimeContext(
        log_dir=tmp_path / "logs",
        work_dir=work_dir,
        no_color=True,
    )


@pytest.fixture
def log(context: RuntimeContext) -> Iterator[BuildLogger]:
    """Build logger closed after the test."""
    logger = BuildLogger(context, console=Console(file=io.StringIO()))
    yield logger
    logger.close()


@pytest.fixture
def runner() -> FakeRunner:
    """Runner with no tools installed."""
    return FakeRunner()


@pytest.fixture
def output() -> Console:
    """Console capturing plugin output."""
    return Console(file=io.StringIO(), no_color=True, width=200)


@pytest.fixture
def make_runner() -> type[FakeRunner]:
    """Factory for runners with installed tools or failing commands."""
    return FakeRunner
