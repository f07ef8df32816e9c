"""Leveled build log with a separate append-only audit trail."""

from __future__ import annotations

import getpass
import logging
import time
from datetime import UTC, datetime
from types import TracebackType

from rich.console import Console
from rich.logging import RichHandler

from .context import RuntimeContext
from .exceptions import ConfigurationError
from .models import LogLevel, LogRecord

AUDIT = 25
logging.addLevelName(AUDIT, "AUDIT")

_LEVEL_NUMBERS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.AUDIT: AUDIT,
    LogLevel.FATAL: logging.CRITICAL,
}
_LEVEL_NAMES = {number: level.value for level, number in _LEVEL_NUMBERS.items()}

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
LOGGER_NAME = "metabuilder.build"
LOG_LINE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
AUDIT_LINE_FORMAT = (
    "%(asctime)s | %(user)s | %(project)s | %(levelname)s | %(message)s"
)


def current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def _utc_formatter(fmt: str) -> logging.Formatter:
    formatter = logging.Formatter(fmt, datefmt=TIMESTAMP_FORMAT)
    formatter.converter = time.gmtime
    return formatter


class _SessionFilter(logging.Filter):
    """Renames levels and stamps user/project onto every record."""

    def __init__(self, user: str, project: str) -> None:
        super().__init__()
        self.user = user
        self.project = project

    def filter(self, record: logging.LogRecord) -> bool:
        record.levelname = _LEVEL_NAMES.get(record.levelno, record.levelname)
        record.user = self.user
        record.project = self.project
        return True


class _AuditOnlyFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno in (AUDIT, logging.CRITICAL)


class _BestEffortFileHandler(logging.FileHandler):
    """File handler that ignores write failures once opened."""

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        return


def _detach(logger: logging.Logger) -> None:
    """Close and remove the handlers and filters of a previous session."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for log_filter in list(logger.filters):
        logger.removeFilter(log_filter)


class _RecordCollector(logging.Handler):
    def __init__(self, records: list[LogRecord]) -> None:
        super().__init__(level=logging.DEBUG)
        self.records = records

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(
            LogRecord(
                timestamp=datetime.fromtimestamp(record.created, UTC),
                level=LogLevel(_LEVEL_NAMES.get(record.levelno, "INFO")),
                message=record.getMessage(),
            ),
        )


class BuildLogger:
    """Writes the daily build log, the audit log and the terminal stream.

    One live instance per invocation. Every instance writes through the
    ``metabuilder.build`` logger; opening a new one detaches the previous
    session's handlers.
    """

    def __init__(
        self,
        context: RuntimeContext,
        project: str = "Global",
        console: Console | None = None,
    ) -> None:
        """Open the log files for today's UTC date.

        Args:
            context: Runtime configuration with the log directory
            project: Project name for the audit column
            console: Terminal console, defaults to a stderr console

        Raises:
            ConfigurationError: If the log directory or files cannot be opened
        """
        self.context = context
        self.records: list[LogRecord] = []

        stamp = datetime.now(UTC).strftime("%Y%m%d")
        self.log_path = context.log_dir / f"meta_builder_{stamp}.log"
        self.audit_path = context.log_dir / f"meta_builder_audit_{stamp}.log"

        try:
            context.log_dir.mkdir(parents=True, exist_ok=True)
            log_handler = _BestEffortFileHandler(self.log_path, encoding="utf-8")
            audit_handler = _BestEffortFileHandler(self.audit_path, encoding="utf-8")
        except OSError as e:
            msg = f"Cannot open log files in {context.log_dir}: {e}"
            raise ConfigurationError(msg, details={"log_dir": str(context.log_dir)}) from e

        self._filter = _SessionFilter(current_user(), project)
        self._logger = logging.getLogger(LOGGER_NAME)
        _detach(self._logger)
        self._logger.propagate = False
        self._logger.setLevel(logging.DEBUG if context.debug else logging.INFO)
        self._logger.addFilter(self._filter)

        log_handler.setFormatter(_utc_formatter(LOG_LINE_FORMAT))
        audit_handler.setFormatter(_utc_formatter(AUDIT_LINE_FORMAT))
        audit_handler.addFilter(_AuditOnlyFilter())

        terminal = RichHandler(
            console=console or Console(stderr=True, no_color=context.no_color),
            show_path=False,
            markup=False,
            log_time_format=f"[{TIMESTAMP_FORMAT}]",
        )

        for handler in (log_handler, audit_handler, terminal, _RecordCollector(self.records)):
            self._logger.addHandler(handler)

    def __enter__(self) -> BuildLogger:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def project(self) -> str:
        return self._filter.project

    def set_project(self, project: str) -> None:
        """Name the project shown in audit lines from now on."""
        self._filter.project = project

    def log(self, level: LogLevel | str, message: str) -> None:
        """Write one line at the given level."""
        self._logger.log(_LEVEL_NUMBERS[LogLevel(level)], message)

    def debug(self, message: str) -> None:
        self.log(LogLevel.DEBUG, message)

    def info(self, message: str) -> None:
        self.log(LogLevel.INFO, message)

    def warn(self, message: str) -> None:
        self.log(LogLevel.WARN, message)

    def error(self, message: str) -> None:
        self.log(LogLevel.ERROR, message)

    def fatal(self, message: str) -> None:
        self.log(LogLevel.FATAL, message)

    def audit(self, action: str, details: str) -> None:
        """Record an auditable action, e.g. ``audit("COMPILE", "...")``."""
        self.log(LogLevel.AUDIT, f"{action} | {details}")

    def count(self, level: LogLevel) -> int:
        """Number of records written at ``level`` during this session."""
        return sum(1 for record in self.records if record.level is level)

    def close(self) -> None:
        """Flush and detach every handler."""
        if self._filter in self._logger.filters:
            _detach(self._logger)

