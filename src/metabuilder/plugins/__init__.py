"""Project plugins implementing the capability hooks."""

from .base import BuildToolPlugin, ProjectPlugin, ProjectPluginProtocol
from .loader import PluginLoader

__all__ = ["BuildToolPlugin", "PluginLoader", "ProjectPlugin", "ProjectPluginProtocol"]
