"""Runtime configuration passed explicitly through the builder."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_LOG_DIR = Path.home() / ".logs" / "meta_builder"


class RuntimeContext(BaseSettings):
    """Settings for one Meta-Builder invocation.

    Values come from ``METABUILDER_*`` environment variables, plus the
    conventional ``NO_COLOR`` and ``DEBUG``. Keyword arguments win over the
    environment.
    """

    model_config = SettingsConfigDict(
        env_prefix="METABUILDER_",
        env_ignore_empty=True,
        extra="ignore",
    )

    log_dir: Path = Field(default=DEFAULT_LOG_DIR, description="Log directory")
    projects_dir: Path | None = Field(
        default=None,
        description="Directory holding project definition files",
    )
    work_dir: Path = Field(
        default_factory=Path.cwd,
        description="Directory hooks operate in",
    )
    no_color: bool = Field(
        default=False,
        validation_alias=AliasChoices("no_color", "NO_COLOR"),
        description="Disable ANSI output",
    )
    debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("debug", "DEBUG"),
        description="Emit DEBUG log lines",
    )
    install_packages: bool = Field(
        default=False,
        validation_alias=AliasChoices("install_packages", "METABUILDER_INSTALL"),
        description="Let bootstrap invoke the package manager",
    )

    @field_validator("no_color", mode="before")
    @classmethod
    def validate_no_color(cls, v: Any) -> Any:
        """Any non-empty ``NO_COLOR`` value disables color (no-color.org)."""
        if isinstance(v, str):
            return bool(v.strip())
        return v

    @classmethod
    def from_env(cls, **overrides: Any) -> RuntimeContext:
        """Build a context from the environment and CLI values.

        Overrides that are None, and boolean flags that are off, leave the
        environment setting in place.

        Raises:
            ConfigurationError: If a setting has an invalid value
        """
        values = {
            key: value
            for key, value in overrides.items()
            if value is not None and value is not False
        }
        try:
            return cls(**values)
        except ValidationError as e:
            msg = f"Invalid runtime configuration: {e}"
            raise ConfigurationError(msg) from e

    @property
    def reports_dir(self) -> Path:
        return self.work_dir / "reports"

    @property
    def forensic_dir(self) -> Path:
        return self.log_dir / "forensic_logs"
