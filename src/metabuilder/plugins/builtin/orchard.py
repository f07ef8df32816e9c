"""Project Orchard: privacy-first governance across the Apple ecosystem."""

from ...models import Command
from ..base import AuditCheck, BuildToolPlugin, Rollback

XCODE_BUILD = ("xcodebuild", "-quiet", "build")


class Plugin(BuildToolPlugin):
    audit_checks = {
        "privacy": AuditCheck("Running Privacy Analyzer"),
        "secure-enclave": AuditCheck("Verifying Secure Enclave API usage"),
    }
    ai_tasks = {
        "ip-monitor": "AI IP-monitoring agent scanning App Store",
    }
    commit_message = "fix(privacy): remove unused location entitlement"
    heal_commands = frozenset({Command.COMPILE})
    rollback = Rollback(
        marker="xcodebuild",
        message="xcodebuild failed! Cleaning derived data...",
        audit="xcodebuild failure. DerivedData cleared.",
    )

    def compile(self, target: str | None = None) -> None:
        """Run the make build, then the Xcode build where Xcode is installed."""
        super().compile(target)
        if self.runner.which(XCODE_BUILD[0]) is None:
            self.log.info(f"{self.tag} Xcode command line tools not found. Skipping Apple targets.")
            return

        self.log.info(f"{self.tag} Building Apple targets with xcodebuild...")
        self.runner.run(XCODE_BUILD, cwd=self.context.work_dir)
        self.log.audit("COMPILE", "xcodebuild build complete.")
