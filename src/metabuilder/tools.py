"""Platform detection and external tool invocation."""

from __future__ import annotations

import platform
import shlex
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from .exceptions import ExternalToolError
from .models import PlatformInfo

MISSING_TOOL_EXIT_CODE = 127

_INSTALL_COMMANDS: dict[str, list[str]] = {
    "apt-get": ["sudo", "apt-get", "install", "-y"],
    "yum": ["sudo", "yum", "install", "-y"],
    "apk": ["sudo", "apk", "add"],
    "brew": ["brew", "install"],
}


def detect_platform(
    system: str | None = None,
    release: str | None = None,
    etc_dir: Path = Path("/etc"),
) -> PlatformInfo:
    """Detect the operating system and its package manager.

    Args:
        system: Kernel name, defaults to ``platform.system()``
        release: Kernel release, defaults to ``platform.release()``
        etc_dir: Directory holding distribution marker files

    Returns:
        Detected platform, ``unknown`` fields where detection fails
    """
    system = system if system is not None else platform.system()
    release = release if release is not None else platform.release()

    if system == "Linux":
        # iSH reports a Linux kernel with an "ish" release string.
        if "ish" in release.lower():
            return PlatformInfo(os_type="ish", package_manager="apk")
        if (etc_dir / "debian_version").exists():
            return PlatformInfo(os_type="linux", package_manager="apt-get")
        if (etc_dir / "redhat-release").exists():
            return PlatformInfo(os_type="linux", package_manager="yum")
        if (etc_dir / "alpine-release").exists():
            return PlatformInfo(os_type="linux", package_manager="apk")
        return PlatformInfo(os_type="linux", package_manager="unknown")

    if system == "Darwin":
        manager = "brew" if shutil.which("brew") else "unknown"
        return PlatformInfo(os_type="macos", package_manager=manager)

    return PlatformInfo()


def install_command(package_manager: str, packages: Sequence[str]) -> list[str]:
    """Build the argv installing ``packages`` with ``package_manager``.

    Raises:
        ValueError: If the package manager is not supported
    """
    if package_manager not in _INSTALL_COMMANDS:
        msg = f"Unsupported package manager: {package_manager}"
        raise ValueError(msg)
    return [*_INSTALL_COMMANDS[package_manager], *packages]


class ToolRunner:
    """Runs external tools synchronously."""

    def platform(self) -> PlatformInfo:
        """Platform the tools run on."""
        return detect_platform()

    def which(self, name: str) -> str | None:
        """Path of ``name`` on PATH, or None when it is not installed."""
        return shutil.which(name)

    def run(self, argv: Sequence[str], cwd: Path | None = None) -> None:
        """Run a command to completion.

        Args:
            argv: Command and arguments
            cwd: Working directory

        Raises:
            ExternalToolError: If the binary is missing or exits non-zero
        """
        command_text = shlex.join(argv)
        if self.which(argv[0]) is None:
            msg = f"{argv[0]} command not found"
            raise ExternalToolError(
                msg,
                exit_code=MISSING_TOOL_EXIT_CODE,
                command=command_text,
            )

        try:
            completed = subprocess.run(list(argv), cwd=cwd, check=False)
        except OSError as e:
            msg = f"Failed to start {argv[0]}: {e}"
            raise ExternalToolError(
                msg,
                exit_code=MISSING_TOOL_EXIT_CODE,
                command=command_text,
            ) from e

        if completed.returncode != 0:
            msg = f"'{command_text}' exited with status {completed.returncode}"
            raise ExternalToolError(
                msg,
                exit_code=completed.returncode,
                command=command_text,
            )
