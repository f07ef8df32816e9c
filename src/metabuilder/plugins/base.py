"""Base classes and protocols for project plugins."""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Protocol

from rich.console import Console

from ..artifacts import ARTIFACT_KINDS, render_artifact
from ..exceptions import CommandFailedError, ExternalToolError
from ..models import AuditReport, Command, FailureContext, PlatformInfo
from ..spdx import missing_spdx_headers
from ..tools import MISSING_TOOL_EXIT_CODE, ToolRunner, install_command

if TYPE_CHECKING:
    from ..context import RuntimeContext
    from ..logger import BuildLogger
    from ..models import ProjectDefinition, ProjectDescriptor

HOOK_NAMES = (
    "bootstrap",
    "generate",
    "compile",
    "audit",
    "ai_assist",
    "sync",
    "self_heal",
)

BASE_TOOLS = ("git", "curl", "rclone", "gpg")


class ProjectPluginProtocol(Protocol):
    """Capability hooks a project plugin exposes."""

    def bootstrap(self, args: Sequence[str]) -> None: ...

    def generate(self, args: Sequence[str]) -> None: ...

    def compile(self, target: str | None = None) -> None: ...

    def audit(self, kind: str) -> None: ...

    def ai_assist(self, task: str, args: Sequence[str] = ()) -> None: ...

    def sync(self, args: Sequence[str]) -> None: ...

    def self_heal(self, failure: FailureContext) -> None: ...


@dataclass(frozen=True)
class BuildTool:
    """How a build tool builds and cleans."""

    name: str
    build: tuple[str, ...]
    clean: tuple[str, ...]
    default_target: str


BUILD_TOOLS: dict[str, BuildTool] = {
    "bazel": BuildTool("bazel", ("bazel", "build"), ("bazel", "clean", "--expunge"), "//..."),
    "make": BuildTool("make", ("make",), ("make", "clean"), "all"),
    "ant": BuildTool("ant", ("ant",), ("ant", "clean"), "build"),
}


@dataclass(frozen=True)
class AuditCheck:
    """An audit report a project can produce.

    ``scanner`` is run when its binary is installed; otherwise the check is
    recorded as simulated.
    """

    description: str
    scanner: tuple[str, ...] = ()


@dataclass(frozen=True)
class Rollback:
    """Remediation for failures whose command mentions ``marker``."""

    marker: str
    message: str
    audit: str


class ProjectPlugin:
    """Default hook implementations.

    Projects subclass this and override any subset of the hooks; whatever is
    not overridden keeps the behaviour defined here.
    """

    def __init__(
        self,
        descriptor: ProjectDescriptor,
        context: RuntimeContext,
        log: BuildLogger,
        runner: ToolRunner | None = None,
        console: Console | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.context = context
        self.log = log
        self.runner = runner or ToolRunner()
        self.console = console or Console(no_color=context.no_color)

    @classmethod
    def overridden_hooks(cls) -> frozenset[str]:
        """Names of hooks this class replaces."""
        return frozenset(
            name
            for name in HOOK_NAMES
            if getattr(cls, name) is not getattr(ProjectPlugin, name)
        )

    @property
    def definition(self) -> ProjectDefinition:
        return self.descriptor.definition

    @property
    def tag(self) -> str:
        return f"[{self.definition.id.value.capitalize()}]"

    def _not_defined(self, command: Command) -> None:
        self.log.warn(
            f"{self.tag} No project-specific {command.value} defined. Nothing to do.",
        )

    def bootstrap(self, args: Sequence[str]) -> None:
        self.log.warn("No project-specific bootstrap defined. Running global bootstrap.")
        self.detect_platform()
        self.check_tools(BASE_TOOLS)
        self.log.audit("BOOTSTRAP", "Global bootstrap complete.")

    def generate(self, args: Sequence[str]) -> None:
        self._not_defined(Command.GENERATE)

    def compile(self, target: str | None = None) -> None:
        self._not_defined(Command.COMPILE)

    def audit(self, kind: str) -> None:
        self._not_defined(Command.AUDIT)

    def ai_assist(self, task: str, args: Sequence[str] = ()) -> None:
        self._not_defined(Command.AI_ASSIST)

    def sync(self, args: Sequence[str]) -> None:
        self._not_defined(Command.SYNC)

    def self_heal(self, failure: FailureContext) -> None:
        self.log.warn("Executing default self-heal mechanism.")
        self.log.warn(
            f"Error {failure.exit_code} at line {failure.line} "
            f"executing: {failure.failed_command}",
        )
        self.log.info("No default heal action for this command.")

    def detect_platform(self) -> PlatformInfo:
        info = self.runner.platform()
        self.log.info(
            f"Detected OS: {info.os_type} (Package Manager: {info.package_manager})",
        )
        return info

    def check_tools(self, tools: Sequence[str]) -> list[str]:
        """Warn about every tool that is not installed.

        Returns:
            Names of the missing tools
        """
        missing = []
        for tool in tools:
            if self.runner.which(tool) is None:
                self.log.warn(f"{self.tag} Tool not found: {tool}")
                missing.append(tool)
            else:
                self.log.debug(f"{self.tag} Tool available: {tool}")
        return missing


class BuildToolPlugin(ProjectPlugin):
    """Project driven by a build tool with audit checks and AI tasks.

    Subclasses configure behaviour through the class attributes.
    """

    audit_checks: ClassVar[dict[str, AuditCheck]] = {}
    ai_tasks: ClassVar[dict[str, str]] = {}
    commit_message: ClassVar[str] = "chore(governance): update compliance artifacts"
    rollback: ClassVar[Rollback | None] = None
    heal_commands: ClassVar[frozenset[Command]] = frozenset(
        {Command.COMPILE, Command.AUDIT},
    )
    sync_remote: ClassVar[str] = "enterprise_s3_secure"

    @property
    def build_tool(self) -> BuildTool | None:
        name = self.definition.build_tool
        return BUILD_TOOLS.get(name) if name else None

    def bootstrap(self, args: Sequence[str]) -> None:
        self.log.info(f"{self.tag} Bootstrapping environment...")
        info = self.detect_platform()
        missing = self.check_tools(self.definition.tools)
        packages = self.definition.packages.get(info.package_manager, [])

        if missing and packages:
            argv = install_command(info.package_manager, packages)
            if self.context.install_packages:
                self.log.info(f"{self.tag} Installing packages: {' '.join(packages)}")
                self.runner.run(argv)
                self.log.audit("BOOTSTRAP", f"Installed packages: {' '.join(packages)}")
            else:
                self.log.info(f"{self.tag} Install missing tools with: {shlex.join(argv)}")
        elif missing:
            self.log.info(
                f"{self.tag} No package list for package manager "
                f"'{info.package_manager}'. Install missing tools manually.",
            )

        self.log.audit("BOOTSTRAP", f"{self.definition.display_name} bootstrap complete.")

    def generate(self, args: Sequence[str]) -> None:
        kind, name = args[0], args[1]
        if kind not in ARTIFACT_KINDS:
            supported = ", ".join(sorted(ARTIFACT_KINDS))
            msg = f"{self.tag} Unsupported generation type: {kind} (supported: {supported})"
            raise CommandFailedError(msg, exit_code=1, command=f"generate {kind}")

        path = self.context.work_dir / (args[2] if len(args) > 2 else name)
        self.log.info(f"{self.tag} Generating artifact type '{kind}' with name '{name}' at '{path}'")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            render_artifact(kind, name, self.definition.display_name),
            encoding="utf-8",
        )
        artifact = ARTIFACT_KINDS[kind]
        if artifact.executable:
            path.chmod(0o755)
        self.log.audit("GENERATE", f"Created {artifact.label} at {path}")

    def sync(self, args: Sequence[str]) -> None:
        target = args[0] if args else f"{self.sync_remote}:audit-logs/{self.definition.id.value}/"
        self.log.info(f"{self.tag} Running privacy-aware rclone synchronization...")
        self.log.info(f"{self.tag} Syncing audit logs to {target}")
        self.runner.run(
            [
                "rclone",
                "sync",
                str(self.log.audit_path),
                target,
                "--log-level=NOTICE",
                "--no-unicode-normalization",
                "--checksum",
            ],
            cwd=self.context.work_dir,
        )
        self.log.audit("SYNC", f"Synced {self.log.audit_path.name} to {target}")

    def compile(self, target: str | None = None) -> None:
        tool = self.build_tool
        if tool is None:
            super().compile(target)
            return

        target = target or tool.default_target
        argv = [*tool.build, target]
        self.log.info(f"{self.tag} Running {tool.name} build for target: {target}")
        if self.runner.which(tool.name) is None:
            msg = f"{self.tag} {tool.name} command not found. Bootstrap may be incomplete."
            raise ExternalToolError(
                msg,
                exit_code=MISSING_TOOL_EXIT_CODE,
                command=shlex.join(argv),
            )

        self.runner.run(argv, cwd=self.context.work_dir)
        self.log.audit("COMPILE", f"{tool.name} build complete for {target}.")

    def audit(self, kind: str) -> None:
        check = self.audit_checks.get(kind)
        if check is None:
            supported = ", ".join(sorted(self.audit_checks))
            msg = f"{self.tag} Unsupported audit: {kind} (supported: {supported})"
            raise CommandFailedError(msg, exit_code=1, command=f"audit {kind}")

        self.log.info(f"{self.tag} Running '{kind}' audit...")
        self.log.info(f"{self.tag} {check.description}...")
        report = AuditReport(
            project=self.definition.id,
            kind=kind,
            checks=[check.description],
        )

        if check.scanner and self.runner.which(check.scanner[0]):
            self.runner.run(check.scanner, cwd=self.context.work_dir)
            report.metadata["scanner"] = shlex.join(check.scanner)
        else:
            report.simulated = True

        if kind == "spdx":
            report.findings = missing_spdx_headers(self.context.work_dir)
            if report.findings:
                report.status = "findings"
                self.log.warn(
                    f"{self.tag} {len(report.findings)} source files lack an SPDX identifier.",
                )

        report_path = report.write(self.context.reports_dir)
        self.log.info(f"{self.tag} Report written to {report_path}")
        self.log.audit("AUDIT", f"{kind} report generated.")

    def ai_assist(self, task: str, args: Sequence[str] = ()) -> None:
        if task == "commit":
            self.log.info(f"{self.tag} AI generating semantic commit message...")
            self.console.print(self.commit_message, markup=False)
            self.log.audit("AI_ASSIST", "Generated semantic commit.")
            return

        description = self.ai_tasks.get(task)
        if description is None:
            supported = ", ".join(sorted([*self.ai_tasks, "commit"]))
            msg = f"{self.tag} Unsupported AI task: {task} (supported: {supported})"
            raise CommandFailedError(msg, exit_code=1, command=f"ai-assist {task}")

        self.log.info(f"{self.tag} AI Task: {task}")
        self.log.info(f"{self.tag} {description}... (simulation)")
        self.log.audit("AI_ASSIST", f"Task: {task}, Args: {' '.join(args) or '-'}")

    def self_heal(self, failure: FailureContext) -> None:
        tag = self.tag
        parent = failure.parent_command
        self.log.warn(f"{tag} Self-healing triggered by error {failure.exit_code}.")

        if parent is Command.BOOTSTRAP:
            self.log.warn(f"{tag} Bootstrap install failed. Cannot run build-tool cleanup.")
            self.log.audit("SELF_HEAL", "Bootstrap install failed. No action taken.")
            return

        if parent not in self.heal_commands:
            self.log.warn(
                f"{tag} Self-heal triggered for unhandled command '{parent.value}'. No action.",
            )
            return

        self.log.warn(f"{tag} {parent.value} command '{failure.failed_command}' failed.")
        tool = self.build_tool
        if self.rollback and self.rollback.marker in failure.failed_command:
            self.log.warn(f"{tag} {self.rollback.message}")
            self.log.audit("SELF_HEAL", self.rollback.audit)
        elif tool and self.runner.which(tool.name):
            self.log.info(f"{tag} Build failed. Cleaning {tool.name} targets...")
            self.runner.run(tool.clean, cwd=self.context.work_dir)
            self.log.audit("SELF_HEAL", f"Build failure. '{shlex.join(tool.clean)}' executed.")
        else:
            name = tool.name if tool else "build tool"
            self.log.warn(f"{tag} Self-heal: '{name}' command not found. No action taken.")
            self.log.audit("SELF_HEAL", f"Build-tool '{name}' not found. No action taken.")
