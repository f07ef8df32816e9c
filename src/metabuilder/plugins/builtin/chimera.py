"""Project Chimera: license compliance for polyglot microservices."""

from collections.abc import Sequence

from ...models import Command
from ..base import AuditCheck, BuildToolPlugin

REMEDIATION_SCRIPT = "ai_remediation_script.sh"


class Plugin(BuildToolPlugin):
    """Bazel-built license scanning with AI remediation."""

    audit_checks = {
        "spdx": AuditCheck(
            "Running SPDX tagging and license scan",
            scanner=("trivy", "fs", "--format", "spdx-json", "--output", "chimera-spdx.json", "."),
        ),
        "shadow-it": AuditCheck(
            "Running rclone shadow-IT detection",
            scanner=("rclone", "check", "remote:prod_storage", "local:prod_mirror"),
        ),
    }
    ai_tasks = {
        "remediate": "AI generating remediation script for license violation",
    }
    commit_message = "fix(compliance): remediate license violation for lib [X]"
    heal_commands = frozenset({Command.COMPILE})

    def ai_assist(self, task: str, args: Sequence[str] = ()) -> None:
        super().ai_assist(task, args)
        if task != "remediate":
            return

        library = args[0] if args else "[X]"
        script_path = self.context.work_dir / REMEDIATION_SCRIPT
        script_path.write_text(
            "#!/usr/bin/env bash\n"
            f"echo 'AI Remediation: Excluding non-compliant library {library}...'\n",
            encoding="utf-8",
        )
        script_path.chmod(0o755)
        self.log.audit("AI_ASSIST", f"Generated remediation script {script_path.name}.")
