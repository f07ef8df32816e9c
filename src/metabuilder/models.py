"""Core data models for the Meta-Builder."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import UnknownCommandError, UnknownProjectError


class ProjectId(str, Enum):
    """Governance frameworks the builder knows how to drive."""

    CHIMERA = "chimera"
    SENTRY = "sentry"
    AEGIS = "aegis"
    VERITAS = "veritas"
    SYNERGY = "synergy"
    CLARITY = "clarity"
    ORCHARD = "orchard"
    CONNECT = "connect"

    @classmethod
    def parse(cls, value: str) -> ProjectId:
        """Resolve a project id string.

        Raises:
            UnknownProjectError: If the id is not one of the known projects
        """
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            msg = f"Unknown project '{value}'. Valid projects: {valid}"
            raise UnknownProjectError(msg, details={"project": value}) from None


class Command(str, Enum):
    """Top-level command verbs."""

    BOOTSTRAP = "--bootstrap"
    GENERATE = "--generate"
    COMPILE = "--compile"
    AUDIT = "--audit"
    AI_ASSIST = "--ai-assist"
    SYNC = "--sync"
    HEAL = "--heal"

    @classmethod
    def parse(cls, token: str) -> Command:
        """Resolve a command flag, accepting ``--ai`` as an alias.

        Raises:
            UnknownCommandError: If the flag is not a known command
        """
        if token == "--ai":
            return cls.AI_ASSIST
        try:
            return cls(token)
        except ValueError:
            msg = f"Unknown command: {token}"
            raise UnknownCommandError(msg, details={"command": token}) from None


class LogLevel(str, Enum):
    """Levels written to the build and audit logs."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    AUDIT = "AUDIT"
    FATAL = "FATAL"


class DispatchState(str, Enum):
    """Lifecycle of a single dispatcher invocation."""

    AWAITING_PROJECT = "awaiting_project"
    READY = "ready"
    EXECUTING = "executing"
    DONE = "done"
    ERROR = "error"


class LogRecord(BaseModel):
    """A single leveled log line."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    level: LogLevel
    message: str

    def render(self) -> str:
        """Format the record the way it appears in the daily log."""
        stamp = self.timestamp.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        return f"{stamp} [{self.level.value}] {self.message}"


class ProjectDefinition(BaseModel):
    """Contents of a project definition file."""

    id: ProjectId = Field(..., description="Project identifier")
    display_name: str = Field(..., description="Human-readable project name")
    corporation: str = Field(..., description="Owning corporation")
    focus: str = Field(..., description="Governance focus area")
    languages: list[str] = Field(
        default_factory=list,
        description="Languages the framework builds",
    )
    build_tool: str | None = Field(
        default=None,
        description="Primary build tool binary",
    )
    tools: list[str] = Field(
        default_factory=list,
        description="Binaries checked during bootstrap",
    )
    packages: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Packages to install, keyed by package manager",
    )
    plugin: str | None = Field(
        default=None,
        description="Plugin reference, defaults to the project id",
    )

    @field_validator("plugin")
    @classmethod
    def validate_plugin_reference(cls, v: str | None) -> str | None:
        """Validate plugin references are builtin names or module:Class."""
        if v is None:
            return v
        if not re.match(r"^[a-z_][a-z0-9_.]*(:[A-Za-z_][A-Za-z0-9_]*)?$", v):
            msg = "Plugin must be a builtin name or 'package.module:ClassName'"
            raise ValueError(msg)
        return v

    @property
    def plugin_reference(self) -> str:
        """Plugin reference with the project id as fallback."""
        return self.plugin or self.id.value


class ProjectDescriptor(BaseModel):
    """The active project: its definition and resolved plugin class."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    definition: ProjectDefinition
    plugin_class: type
    overridden_hooks: frozenset[str] = Field(default_factory=frozenset)

    @property
    def id(self) -> ProjectId:
        return self.definition.id

    @property
    def display_name(self) -> str:
        return self.definition.display_name


class FailureContext(BaseModel):
    """What the self-heal trap knows about a failed step."""

    model_config = ConfigDict(frozen=True)

    exit_code: int | None = Field(
        ...,
        description="Exit code of the failing step, None for manual triggers",
    )
    line: int | None = Field(default=None, description="Source line of the failure")
    failed_command: str = Field(..., description="Command text that failed")
    parent_command: Command = Field(..., description="Top-level command running")
    error: str = Field(default="", description="Error message")

    @property
    def is_manual(self) -> bool:
        return self.exit_code is None


class AuditReport(BaseModel):
    """Result of an audit hook, written next to the project work tree."""

    project: ProjectId
    kind: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    status: str = Field(default="passed")
    simulated: bool = Field(default=False)
    checks: list[str] = Field(default_factory=list)
    findings: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def write(self, reports_dir: Path) -> Path:
        """Serialize the report as JSON and return its path."""
        reports_dir.mkdir(parents=True, exist_ok=True)
        report_path = reports_dir / f"{self.project.value}-{self.kind}.json"
        report_path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return report_path


class PlatformInfo(BaseModel):
    """Detected operating system and package manager."""

    model_config = ConfigDict(frozen=True)

    os_type: str = Field(default="unknown")
    package_manager: str = Field(default="unknown")
