"""Tests for command dispatch, the failure trap and the top-level handler."""

from pathlib import Path

import pytest
from rich.console import Console

from metabuilder.context import RuntimeContext
from metabuilder.dispatcher import Dispatcher, run_command
from metabuilder.exceptions import (
    CommandFailedError,
    CommandUsageError,
    ConfigurationError,
    MetaBuilderError,
    SelfHealFailure,
    UnknownProjectError,
)
from metabuilder.logger import BuildLogger
from metabuilder.models import Command, DispatchState, FailureContext, LogLevel, ProjectDescriptor
from metabuilder.plugins import ProjectPlugin


class FailingPlugin(ProjectPlugin):
    """Plugin whose compile fails and whose self-heal fails too."""

    exit_code = 3

    def compile(self, target=None):
        raise CommandFailedError("build broke", exit_code=self.exit_code, command="make all")

    def sync(self, args):
        raise RuntimeError("network unreachable")

    def self_heal(self, failure: FailureContext) -> None:
        raise SelfHealFailure("cleanup failed")


class KilledPlugin(FailingPlugin):
    exit_code = -9


def _messages(log: BuildLogger, level: LogLevel) -> list[str]:
    return [record.message for record in log.records if record.level is level]


def _lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


@pytest.fixture
def dispatcher(context: RuntimeContext, log: BuildLogger, runner, output: Console) -> Dispatcher:
    return Dispatcher(context, log, runner=runner, console=output)


def _use_plugin(dispatcher: Dispatcher, plugin_class: type[ProjectPlugin]) -> None:
    descriptor = dispatcher.descriptor
    dispatcher.descriptor = ProjectDescriptor(
        definition=descriptor.definition,
        plugin_class=plugin_class,
        overridden_hooks=plugin_class.overridden_hooks(),
    )


class TestDispatcher:
    """Test the dispatcher state machine."""

    def test_initial_state(self, dispatcher: Dispatcher) -> None:
        assert dispatcher.state is DispatchState.AWAITING_PROJECT
        assert dispatcher.descriptor is None

    def test_dispatch_before_load(self, dispatcher: Dispatcher) -> None:
        with pytest.raises(ConfigurationError, match="--project <name>"):
            dispatcher.dispatch(Command.BOOTSTRAP)

    def test_load(self, dispatcher: Dispatcher, log: BuildLogger) -> None:
        """Test loading names the project in the logs."""
        descriptor = dispatcher.load("sentry")

        assert dispatcher.state is DispatchState.READY
        assert descriptor.display_name == "Project Sentry (Amazon)"
        assert log.project == "Project Sentry (Amazon)"
        assert "Loaded project framework: Project Sentry (Amazon)" in _messages(
            log, LogLevel.INFO,
        )
        assert _messages(log, LogLevel.AUDIT) == [
            "INIT | Loaded project framework: Project Sentry (Amazon)",
        ]

    def test_load_twice(self, dispatcher: Dispatcher) -> None:
        dispatcher.load("sentry")
        with pytest.raises(ConfigurationError, match="already loaded"):
            dispatcher.load("aegis")

    def test_unknown_project_stays_awaiting(self, dispatcher: Dispatcher) -> None:
        with pytest.raises(UnknownProjectError):
            dispatcher.load("skunkworks")
        assert dispatcher.state is DispatchState.AWAITING_PROJECT

    @pytest.mark.parametrize(
        ("command", "args", "usage"),
        [
            (Command.GENERATE, ["service"], "--generate <type> <name>"),
            (Command.AUDIT, [], "--audit <report_type>"),
            (Command.AI_ASSIST, [], "--ai-assist <task>"),
        ],
    )
    def test_missing_arguments(
        self,
        dispatcher: Dispatcher,
        command: Command,
        args: list[str],
        usage: str,
    ) -> None:
        """Test commands with required arguments reject short argument lists."""
        dispatcher.load("chimera")
        with pytest.raises(CommandUsageError, match=usage):
            dispatcher.dispatch(command, args)
        assert dispatcher.state is DispatchState.READY

    def test_success(self, dispatcher: Dispatcher, log: BuildLogger) -> None:
        dispatcher.load("chimera")
        assert dispatcher.dispatch(Command.BOOTSTRAP) == 0

        assert dispatcher.state is DispatchState.DONE
        assert "Command '--bootstrap' executed successfully." in _messages(log, LogLevel.INFO)
        assert log.count(LogLevel.ERROR) == 0

    def test_dispatch_once(self, dispatcher: Dispatcher) -> None:
        dispatcher.load("chimera")
        dispatcher.dispatch(Command.HEAL)
        with pytest.raises(ConfigurationError, match="not ready"):
            dispatcher.dispatch(Command.HEAL)

    def test_default_hook_succeeds(self, dispatcher: Dispatcher, log: BuildLogger) -> None:
        """Test a command the project does not implement warns and exits 0."""
        dispatcher.load("chimera")
        _use_plugin(dispatcher, ProjectPlugin)
        assert dispatcher.dispatch(Command.GENERATE, ["service", "billing"]) == 0
        assert _messages(log, LogLevel.WARN) == [
            "[Chimera] No project-specific --generate defined. Nothing to do.",
        ]


class TestFailureTrap:
    """Test failures routed through the self-heal trap."""

    def test_missing_build_tool(
        self,
        dispatcher: Dispatcher,
        context: RuntimeContext,
        log: BuildLogger,
    ) -> None:
        """Test a missing compiler exits 127 after exactly one ERROR line."""
        dispatcher.load("chimera")
        exit_code = dispatcher.dispatch(Command.COMPILE)

        assert exit_code == 127
        assert dispatcher.state is DispatchState.ERROR
        errors = _messages(log, LogLevel.ERROR)
        assert len(errors) == 1
        assert errors[0].startswith("Execution failed: exit code 127 at line ")
        assert "'bazel build //...'" in errors[0]

        audits = _messages(log, LogLevel.AUDIT)
        assert any(a.startswith("SELF_HEAL_TRIGGER | Error 127") for a in audits)
        assert "SELF_HEAL | Build-tool 'bazel' not found. No action taken." in audits
        assert "Attempting project-specific self-healing..." in _messages(log, LogLevel.WARN)

        forensic = list(context.forensic_dir.glob("err_*.log"))
        assert len(forensic) == 1
        assert "Failed Command: bazel build //..." in forensic[0].read_text(encoding="utf-8")

    def test_build_failure_is_cleaned(
        self,
        context: RuntimeContext,
        log: BuildLogger,
        make_runner,
    ) -> None:
        runner = make_runner(available=["bazel"], failures={"bazel": 2})
        dispatcher = Dispatcher(context, log, runner=runner)
        dispatcher.load("chimera")

        # The clean step fails too; the original exit code is kept.
        assert dispatcher.dispatch(Command.COMPILE) == 2
        assert runner.calls == [["bazel", "build", "//..."], ["bazel", "clean", "--expunge"]]
        assert log.count(LogLevel.ERROR) == 1

    def test_self_heal_failure_is_swallowed(
        self,
        dispatcher: Dispatcher,
        log: BuildLogger,
    ) -> None:
        dispatcher.load("sentry")
        _use_plugin(dispatcher, FailingPlugin)

        assert dispatcher.dispatch(Command.COMPILE) == 3
        assert log.count(LogLevel.ERROR) == 1
        assert "Self-heal failed: cleanup failed" in _messages(log, LogLevel.WARN)

    def test_failure_line_points_into_plugin(
        self,
        dispatcher: Dispatcher,
        log: BuildLogger,
    ) -> None:
        dispatcher.load("sentry")
        _use_plugin(dispatcher, FailingPlugin)
        dispatcher.dispatch(Command.COMPILE)

        expected = FailingPlugin.compile.__code__.co_firstlineno + 1
        assert f"at line {expected} " in _messages(log, LogLevel.ERROR)[0]

    def test_unexpected_exception(self, dispatcher: Dispatcher, log: BuildLogger) -> None:
        """Test exceptions that carry no exit code exit 1."""
        dispatcher.load("sentry")
        _use_plugin(dispatcher, FailingPlugin)

        assert dispatcher.dispatch(Command.SYNC) == 1
        error = _messages(log, LogLevel.ERROR)[0]
        assert "while running '--sync'" in error
        assert "network unreachable" in error

    def test_signal_exit_code(self, dispatcher: Dispatcher) -> None:
        dispatcher.load("sentry")
        _use_plugin(dispatcher, KilledPlugin)
        assert dispatcher.dispatch(Command.COMPILE) == 137

    def test_unsupported_audit_exits_one(self, dispatcher: Dispatcher, log: BuildLogger) -> None:
        dispatcher.load("orchard")
        assert dispatcher.dispatch(Command.AUDIT, ["spdx"]) == 1
        assert log.count(LogLevel.ERROR) == 1


class TestManualHeal:
    """Test the --heal command."""

    def test_manual_heal(self, dispatcher: Dispatcher, log: BuildLogger) -> None:
        dispatcher.load("aegis")
        assert dispatcher.dispatch(Command.HEAL) == 0

        assert dispatcher.state is DispatchState.DONE
        assert "Manual self-heal triggered by user." in _messages(log, LogLevel.WARN)
        assert "SELF_HEAL | Manual trigger by user." in _messages(log, LogLevel.AUDIT)
        assert log.count(LogLevel.ERROR) == 0

    def test_manual_heal_failure_still_succeeds(
        self,
        dispatcher: Dispatcher,
        log: BuildLogger,
    ) -> None:
        dispatcher.load("aegis")
        _use_plugin(dispatcher, FailingPlugin)

        assert dispatcher.dispatch(Command.HEAL) == 0
        assert "Self-heal failed: cleanup failed" in _messages(log, LogLevel.WARN)
        assert log.count(LogLevel.ERROR) == 0


class TestRunCommand:
    """Test the top-level handler."""

    def test_chimera_bootstrap(self, context: RuntimeContext, runner) -> None:
        """Test a full bootstrap run against an empty machine."""
        log = BuildLogger(context, console=Console(file=None, quiet=True))
        exit_code = run_command("chimera", "--bootstrap", [], context, runner=runner, log=log)
        log.close()

        assert exit_code == 0
        lines = _lines(log.log_path)
        assert sum("[WARN] [Chimera] Tool not found:" in line for line in lines) == 7
        assert lines[-1].endswith("[INFO] Meta-Builder session finished.")
        audit_lines = _lines(log.audit_path)
        assert len(audit_lines) == 2
        assert "INIT | Loaded project framework: Project Chimera (Google)" in audit_lines[0]
        assert "BOOTSTRAP | Project Chimera (Google) bootstrap complete." in audit_lines[1]

    def test_unknown_project(self, context: RuntimeContext, log: BuildLogger) -> None:
        """Test unknown projects exit 1 without touching the audit log."""
        seen: list[MetaBuilderError] = []
        exit_code = run_command("skunkworks", "--bootstrap", [], context, log=log, on_error=seen.append)

        assert exit_code == 1
        assert log.count(LogLevel.ERROR) == 1
        assert log.count(LogLevel.AUDIT) == 0
        assert _lines(log.audit_path) == []
        assert isinstance(seen[0], UnknownProjectError)

    @pytest.mark.parametrize(
        ("project", "command", "message"),
        [
            ("chimera", "--deploy", "Unknown command: --deploy"),
            ("chimera", None, "No command specified"),
            (None, "--bootstrap", "--project <name>"),
        ],
    )
    def test_invalid_invocations(
        self,
        context: RuntimeContext,
        log: BuildLogger,
        project: str | None,
        command: str | None,
        message: str,
    ) -> None:
        exit_code = run_command(project, command, [], context, log=log)

        assert exit_code == 1
        errors = _messages(log, LogLevel.ERROR)
        assert len(errors) == 1
        assert message in errors[0]

    def test_usage_error(self, context: RuntimeContext, log: BuildLogger) -> None:
        assert run_command("chimera", Command.AUDIT, [], context, log=log) == 1
        assert "Usage: --audit <report_type>" in _messages(log, LogLevel.ERROR)

    @pytest.mark.parametrize(
        ("command", "args"),
        [
            (Command.AUDIT, []),
            (Command.GENERATE, ["script"]),
            (Command.AI_ASSIST, []),
        ],
    )
    def test_usage_error_is_not_audited(
        self,
        context: RuntimeContext,
        log: BuildLogger,
        command: Command,
        args: list[str],
    ) -> None:
        """Test missing arguments are rejected before the project is loaded."""
        assert run_command("chimera", command, args, context, log=log) == 1

        assert log.count(LogLevel.ERROR) == 1
        assert log.count(LogLevel.AUDIT) == 0
        assert _lines(log.audit_path) == []
        assert log.project == "Global"

    def test_exit_code_of_failure(self, context: RuntimeContext, log: BuildLogger, runner) -> None:
        """Test the trapped exit code is the process exit code."""
        assert run_command("veritas", "--compile", [], context, runner=runner, log=log) == 127
        assert log.count(LogLevel.ERROR) == 1

    def test_ai_alias(self, context: RuntimeContext, log: BuildLogger, runner) -> None:
        exit_code = run_command(
            "synergy", "--ai", ["predict-risk"], context, runner=runner, log=log,
        )
        assert exit_code == 0
        assert "AI_ASSIST | Task: predict-risk, Args: -" in _messages(log, LogLevel.AUDIT)

    def test_owned_logger_is_closed(self, context: RuntimeContext, runner) -> None:
        assert run_command("skunkworks", "--sync", [], context, runner=runner) == 1
        log_files = sorted(p.name for p in context.log_dir.iterdir() if p.is_file())
        assert len(log_files) == 2

    def test_sync_without_rclone(self, context: RuntimeContext, log: BuildLogger, runner) -> None:
        """Test a missing rclone fails the sync through the trap."""
        assert run_command("clarity", "--sync", [], context, runner=runner, log=log) == 127

        errors = _messages(log, LogLevel.ERROR)
        assert len(errors) == 1
        assert "'rclone sync" in errors[0]
        assert not any(a.startswith("SYNC |") for a in _messages(log, LogLevel.AUDIT))

    def test_orchard_xcode_failure(
        self,
        context: RuntimeContext,
        log: BuildLogger,
        make_runner,
    ) -> None:
        runner = make_runner(available=["make", "xcodebuild"], failures={"xcodebuild": 65})
        assert run_command("orchard", "--compile", [], context, runner=runner, log=log) == 65
        assert "SELF_HEAL | xcodebuild failure. DerivedData cleared." in _messages(
            log, LogLevel.AUDIT,
        )

    def test_generate_artifact(self, context: RuntimeContext, log: BuildLogger, runner) -> None:
        exit_code = run_command(
            "connect", "--generate", ["script", "publish"], context, runner=runner, log=log,
        )
        assert exit_code == 0
        assert (context.work_dir / "publish").is_file()
