"""Meta-Builder: plugin-driven scaffolding for enterprise governance projects."""

__version__ = "1.1.0"
__author__ = "Meta-Builder Contributors"
__description__ = "Plugin-driven scaffolding for enterprise governance projects"

from .dispatcher import Dispatcher, run_command
from .models import Command, ProjectDescriptor, ProjectId
from .registry import ProjectRegistry

__all__ = [
    "Command",
    "Dispatcher",
    "ProjectDescriptor",
    "ProjectId",
    "ProjectRegistry",
    "run_command",
]
