"""Plugin resolution for project definitions."""

from __future__ import annotations

import importlib

from ..exceptions import ConfigurationError
from ..models import ProjectId
from .base import ProjectPlugin

BUILTIN_PLUGINS: dict[str, str] = {
    project.value: f"metabuilder.plugins.builtin.{project.value}"
    for project in ProjectId
}


class PluginLoader:
    """Resolves plugin references to ``ProjectPlugin`` subclasses."""

    def __init__(self, builtins: dict[str, str] | None = None) -> None:
        """Initialize plugin loader.

        Args:
            builtins: Mapping of builtin plugin names to module paths,
                defaults to the plugins shipped with the package
        """
        self.builtins = dict(BUILTIN_PLUGINS if builtins is None else builtins)
        self._plugin_cache: dict[str, type[ProjectPlugin]] = {}

    def load_plugin(self, reference: str) -> type[ProjectPlugin]:
        """Load a plugin class.

        Args:
            reference: Builtin plugin name (e.g. 'chimera') or an importable
                'package.module:ClassName'

        Returns:
            Plugin class

        Raises:
            ConfigurationError: If the plugin cannot be resolved
        """
        if reference in self._plugin_cache:
            return self._plugin_cache[reference]

        if ":" in reference:
            module_name, class_name = reference.split(":", 1)
        elif reference in self.builtins:
            module_name, class_name = self.builtins[reference], "Plugin"
        else:
            msg = f"Plugin not found: {reference}"
            raise ConfigurationError(msg, details={"plugin": reference})

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            msg = f"Failed to import plugin {reference}: {e}"
            raise ConfigurationError(msg, details={"plugin": reference}) from e

        plugin_class = getattr(module, class_name, None)
        if plugin_class is None:
            msg = f"Plugin module {module_name} must define '{class_name}'"
            raise ConfigurationError(msg, details={"plugin": reference})

        if not (isinstance(plugin_class, type) and issubclass(plugin_class, ProjectPlugin)):
            msg = f"Plugin {reference} is not a ProjectPlugin subclass"
            raise ConfigurationError(msg, details={"plugin": reference})

        self._plugin_cache[reference] = plugin_class
        return plugin_class
