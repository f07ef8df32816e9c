"""Project registry loading definition files and binding their plugins."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from pydantic import ValidationError

from .exceptions import ConfigurationError, MissingConfigError
from .models import ProjectDefinition, ProjectDescriptor, ProjectId
from .plugins import PluginLoader

PACKAGE_ROOT = Path(__file__).parent
DEFAULT_PROJECTS_DIR = PACKAGE_ROOT / "projects"
SCHEMA_PATH = PACKAGE_ROOT / "schemas" / "project.schema.json"


class ProjectRegistry:
    """Loads, validates, and binds project definitions."""

    def __init__(
        self,
        projects_dir: Path | None = None,
        loader: PluginLoader | None = None,
    ) -> None:
        """Initialize registry with the definitions directory.

        Args:
            projects_dir: Directory holding ``<id>.yaml`` files, defaults to
                the definitions shipped with the package
            loader: Plugin loader, defaults to the builtin loader
        """
        self.root = Path(projects_dir) if projects_dir else DEFAULT_PROJECTS_DIR
        self.loader = loader or PluginLoader()
        self._schema: dict[str, Any] | None = None

    def _load_schema(self) -> dict[str, Any]:
        """Load and cache the definition JSON schema."""
        if self._schema is None:
            try:
                with SCHEMA_PATH.open(encoding="utf-8") as f:
                    self._schema = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                msg = f"Failed to load project schema: {e}"
                raise ConfigurationError(msg) from e
        return self._schema

    def definition_path(self, project_id: ProjectId) -> Path:
        return self.root / f"{project_id.value}.yaml"

    def load_definition(self, project_id: str) -> ProjectDefinition:
        """Load and validate a project definition file.

        Args:
            project_id: Project identifier

        Returns:
            Validated project definition

        Raises:
            UnknownProjectError: If the id is not a known project
            MissingConfigError: If the definition file does not exist
            ConfigurationError: If the file is invalid
        """
        project = ProjectId.parse(project_id)
        path = self.definition_path(project)
        if not path.exists():
            msg = f"Project configuration file not found: {path}"
            raise MissingConfigError(msg, details={"path": str(path)})

        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            msg = f"Failed to parse project YAML: {e}"
            raise ConfigurationError(msg, details={"path": str(path)}) from e
        except OSError as e:
            msg = f"Failed to read project file: {e}"
            raise ConfigurationError(msg, details={"path": str(path)}) from e

        try:
            jsonschema.validate(data, self._load_schema())
        except jsonschema.ValidationError as e:
            msg = f"Schema validation failed for {path.name}: {e.message}"
            raise ConfigurationError(
                msg,
                details={"path": list(e.absolute_path), "file": str(path)},
            ) from e

        try:
            definition = ProjectDefinition.model_validate(data)
        except ValidationError as e:
            msg = f"Project validation failed: {e}"
            raise ConfigurationError(msg, details={"file": str(path)}) from e

        if definition.id is not project:
            msg = (
                f"Definition {path.name} declares project '{definition.id.value}', "
                f"expected '{project.value}'"
            )
            raise ConfigurationError(msg, details={"file": str(path)})

        return definition

    def load(self, project_id: str) -> ProjectDescriptor:
        """Load a project and bind its plugin.

        Args:
            project_id: Project identifier

        Returns:
            Immutable descriptor of the project

        Raises:
            UnknownProjectError: If the id is not a known project
            MissingConfigError: If the definition file does not exist
            ConfigurationError: If the definition or plugin is invalid
        """
        definition = self.load_definition(project_id)
        plugin_class = self.loader.load_plugin(definition.plugin_reference)
        return ProjectDescriptor(
            definition=definition,
            plugin_class=plugin_class,
            overridden_hooks=plugin_class.overridden_hooks(),
        )

    def discover_projects(self) -> list[str]:
        """Discover known projects with a definition file.

        Returns:
            Sorted list of project ids
        """
        if not self.root.exists():
            return []

        known = {project.value for project in ProjectId}
        return sorted(
            path.stem for path in self.root.glob("*.yaml") if path.stem in known
        )
