"""Command dispatcher routing verbs to the active project's hooks."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from rich.console import Console

from .context import RuntimeContext
from .exceptions import CommandUsageError, ConfigurationError, MetaBuilderError
from .logger import BuildLogger
from .models import Command, DispatchState, FailureContext, ProjectDescriptor
from .plugins import ProjectPlugin
from .registry import ProjectRegistry
from .tools import ToolRunner
from .trap import SelfHealTrap

# Minimum positional arguments per command, with the usage shown when short.
REQUIRED_ARGS: dict[Command, tuple[int, str]] = {
    Command.GENERATE: (2, "--generate <type> <name> [path]"),
    Command.AI_ASSIST: (1, "--ai-assist <task> [args...]"),
    Command.AUDIT: (1, "--audit <report_type>"),
}


def check_arguments(command: Command, args: Sequence[str]) -> None:
    """Reject argument lists too short for ``command``.

    Raises:
        CommandUsageError: If required arguments are missing
    """
    if command in REQUIRED_ARGS:
        minimum, usage = REQUIRED_ARGS[command]
        if len(args) < minimum:
            msg = f"Usage: {usage}"
            raise CommandUsageError(msg, details={"command": command.value})


class Dispatcher:
    """Loads one project and runs one command against it."""

    def __init__(
        self,
        context: RuntimeContext,
        log: BuildLogger,
        registry: ProjectRegistry | None = None,
        runner: ToolRunner | None = None,
        console: Console | None = None,
    ) -> None:
        self.context = context
        self.log = log
        self.registry = registry or ProjectRegistry(context.projects_dir)
        self.runner = runner or ToolRunner()
        self.console = console
        self.trap = SelfHealTrap(context, log)
        self.state = DispatchState.AWAITING_PROJECT
        self.descriptor: ProjectDescriptor | None = None

    def load(self, project_id: str) -> ProjectDescriptor:
        """Load a project and make it the active descriptor.

        Raises:
            UnknownProjectError: If the id is not a known project
            ConfigurationError: If the definition or plugin is invalid
        """
        if self.descriptor is not None:
            msg = f"Project '{self.descriptor.id.value}' is already loaded"
            raise ConfigurationError(msg)

        descriptor = self.registry.load(project_id)
        self.descriptor = descriptor
        self.state = DispatchState.READY
        self.log.set_project(descriptor.display_name)
        self.log.info(f"Loaded project framework: {descriptor.display_name}")
        self.log.debug(
            f"Overridden hooks: {', '.join(sorted(descriptor.overridden_hooks)) or 'none'}",
        )
        self.log.audit("INIT", f"Loaded project framework: {descriptor.display_name}")
        return descriptor

    def create_plugin(self) -> ProjectPlugin:
        if self.descriptor is None:
            msg = "You must specify a project using --project <name>."
            raise ConfigurationError(msg)
        return self.descriptor.plugin_class(
            self.descriptor,
            self.context,
            self.log,
            self.runner,
            self.console,
        )

    def dispatch(self, command: Command, args: Sequence[str] = ()) -> int:
        """Run ``command`` on the active project.

        Args:
            command: Command verb
            args: Free-form command arguments

        Returns:
            0 on success, the failure's exit code otherwise

        Raises:
            ConfigurationError: If no project is loaded
            CommandUsageError: If required arguments are missing
        """
        if self.state is not DispatchState.READY:
            if self.descriptor is None:
                msg = "You must specify a project using --project <name>."
            else:
                msg = f"Dispatcher is not ready (state: {self.state.value})"
            raise ConfigurationError(msg)

        args = list(args)
        check_arguments(command, args)

        plugin = self.create_plugin()
        self.log.debug(f"Executing command: {command.value} with args: {' '.join(args)}")
        self.state = DispatchState.EXECUTING

        if command is Command.HEAL:
            return self._manual_heal(plugin)

        try:
            self._invoke(plugin, command, args)
        except Exception as e:  # noqa: BLE001
            self.state = DispatchState.ERROR
            return self.trap.handle(e, plugin, command)

        self.state = DispatchState.DONE
        self.log.info(f"Command '{command.value}' executed successfully.")
        return 0

    def _invoke(self, plugin: ProjectPlugin, command: Command, args: list[str]) -> None:
        if command is Command.BOOTSTRAP:
            plugin.bootstrap(args)
        elif command is Command.GENERATE:
            plugin.generate(args)
        elif command is Command.COMPILE:
            plugin.compile(args[0] if args else None)
        elif command is Command.AUDIT:
            plugin.audit(args[0])
        elif command is Command.AI_ASSIST:
            plugin.ai_assist(args[0], args[1:])
        elif command is Command.SYNC:
            plugin.sync(args)

    def _manual_heal(self, plugin: ProjectPlugin) -> int:
        self.log.warn("Manual self-heal triggered by user.")
        self.log.audit("SELF_HEAL", "Manual trigger by user.")
        failure = FailureContext(
            exit_code=None,
            failed_command="User trigger",
            parent_command=Command.HEAL,
        )
        try:
            plugin.self_heal(failure)
        except Exception as e:  # noqa: BLE001
            self.log.warn(f"Self-heal failed: {e}")
        self.state = DispatchState.DONE
        self.log.info(f"Command '{Command.HEAL.value}' executed successfully.")
        return 0


def run_command(
    project_id: str | None,
    command: str | Command | None,
    args: Sequence[str],
    context: RuntimeContext,
    runner: ToolRunner | None = None,
    registry: ProjectRegistry | None = None,
    log: BuildLogger | None = None,
    console: Console | None = None,
    on_error: Callable[[MetaBuilderError], None] | None = None,
) -> int:
    """Top-level handler: load, dispatch, and map errors to an exit code.

    Configuration, identifier and usage errors are reported as one ERROR
    line and exit code 1. Failures during execution are handled by the
    self-heal trap inside the dispatcher.

    Raises:
        ConfigurationError: If the log files cannot be opened
    """
    owns_log = log is None
    log = log or BuildLogger(context)
    try:
        if command is None:
            msg = "No command specified. Use --help for options."
            raise CommandUsageError(msg)
        verb = command if isinstance(command, Command) else Command.parse(command)

        dispatcher = Dispatcher(context, log, registry=registry, runner=runner, console=console)
        if project_id is None:
            msg = "You must specify a project using --project <name>."
            raise ConfigurationError(msg)
        # Usage errors are reported before the project is loaded and audited.
        check_arguments(verb, args)
        dispatcher.load(project_id)
        return dispatcher.dispatch(verb, args)
    except MetaBuilderError as e:
        log.error(str(e))
        if on_error is not None:
            on_error(e)
        return 1
    finally:
        log.info("Meta-Builder session finished.")
        if owns_log:
            log.close()
