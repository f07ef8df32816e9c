"""Failure trap routing hook errors to logging and self-heal."""

from __future__ import annotations

import inspect
import traceback
from datetime import UTC, datetime
from pathlib import Path

from .context import RuntimeContext
from .exceptions import CommandFailedError
from .logger import BuildLogger, current_user
from .models import Command, FailureContext
from .plugins import ProjectPlugin


def _exit_code(error: BaseException) -> int:
    if isinstance(error, CommandFailedError):
        code = error.exit_code
        if code < 0:
            # Killed by a signal, reported the way shells do.
            return 128 - code
        return code or 1
    return 1


def _failure_line(error: BaseException, plugin: ProjectPlugin) -> int | None:
    """Innermost traceback line inside the plugin's module."""
    frames = traceback.extract_tb(error.__traceback__)
    if not frames:
        return None
    try:
        plugin_file = inspect.getfile(type(plugin))
    except TypeError:
        plugin_file = None
    for frame in reversed(frames):
        if frame.filename == plugin_file:
            return frame.lineno
    return frames[-1].lineno


class SelfHealTrap:
    """Handles any exception raised while a command executes."""

    def __init__(self, context: RuntimeContext, log: BuildLogger) -> None:
        self.context = context
        self.log = log

    def capture(
        self,
        error: BaseException,
        plugin: ProjectPlugin,
        command: Command,
    ) -> FailureContext:
        """Describe a failure for logging and self-heal."""
        failed_command = getattr(error, "command", None) or command.value
        return FailureContext(
            exit_code=_exit_code(error),
            line=_failure_line(error, plugin),
            failed_command=failed_command,
            parent_command=command,
            error=str(error),
        )

    def handle(
        self,
        error: BaseException,
        plugin: ProjectPlugin,
        command: Command,
    ) -> int:
        """Log the failure, attempt self-heal, and return the exit code.

        Self-heal is best-effort: anything it raises is logged and dropped,
        and the returned code is always the original failure's.

        Returns:
            Non-zero exit code of the original failure
        """
        failure = self.capture(error, plugin, command)
        self.log.error(
            f"Execution failed: exit code {failure.exit_code} at line {failure.line} "
            f"while running '{failure.failed_command}' ({command.value}): {failure.error}",
        )

        forensic_log = self.write_forensic_log(failure, error)
        location = f" Forensic log created at {forensic_log}" if forensic_log else ""
        self.log.audit(
            "SELF_HEAL_TRIGGER",
            f"Error {failure.exit_code} at line {failure.line}.{location}",
        )

        self.log.warn("Attempting project-specific self-healing...")
        try:
            plugin.self_heal(failure)
        except Exception as heal_error:  # noqa: BLE001
            self.log.warn(f"Self-heal failed: {heal_error}")

        return failure.exit_code or 1

    def write_forensic_log(
        self,
        failure: FailureContext,
        error: BaseException,
    ) -> Path | None:
        """Write a forensic record of the failure.

        Returns:
            Path of the record, or None when it could not be written
        """
        now = datetime.now(UTC)
        path = self.context.forensic_dir / f"err_{now.strftime('%Y%m%dT%H%M%S%f')}.log"
        lines = [
            f"--- FORENSIC LOG: {now.strftime('%Y-%m-%dT%H:%M:%SZ')} ---",
            f"User: {current_user()}",
            f"Project: {self.log.project}",
            f"Command: {failure.parent_command.value}",
            f"Error Code: {failure.exit_code}",
            f"Line: {failure.line}",
            f"Failed Command: {failure.failed_command}",
            "--- STACK TRACE ---",
            *traceback.format_exception(error),
        ]
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("\n".join(line.rstrip("\n") for line in lines) + "\n", encoding="utf-8")
        except OSError:
            return None
        return path
