"""Custom exceptions for the Meta-Builder."""

from typing import Any


class MetaBuilderError(Exception):
    """Base exception for all Meta-Builder errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(MetaBuilderError):
    """Raised when runtime or project configuration is invalid."""


class MissingConfigError(ConfigurationError):
    """Raised when a project definition file does not exist."""


class UnknownIdentifierError(MetaBuilderError):
    """Raised when a project id or command verb is not recognized."""


class UnknownProjectError(UnknownIdentifierError):
    """Raised when a project id is outside the known set."""


class UnknownCommandError(UnknownIdentifierError):
    """Raised when a command verb is outside the known set."""


class CommandUsageError(MetaBuilderError):
    """Raised when a command is missing required arguments."""


class CommandFailedError(MetaBuilderError):
    """Raised by a hook when the command it runs fails."""

    def __init__(
        self,
        message: str,
        exit_code: int = 1,
        command: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.exit_code = exit_code
        self.command = command


class ExternalToolError(CommandFailedError):
    """Raised when a package manager, compiler or scanner fails."""


class SelfHealFailure(MetaBuilderError):
    """Raised by a self-heal hook when remediation fails."""
