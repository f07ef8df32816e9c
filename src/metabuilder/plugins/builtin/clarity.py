"""Project Clarity: IP and ethical governance for LLMs."""

from ..base import AuditCheck, BuildToolPlugin, Rollback


class Plugin(BuildToolPlugin):
    audit_checks = {
        "training-data": AuditCheck(
            "Auditing training data for IP/PII",
            scanner=("training-data-auditor", "--scan", "datasets/"),
        ),
        "xai": AuditCheck("Generating XAI (Explainable AI) dashboard report"),
    }
    ai_tasks = {
        "ip-detect": "AI detecting IP infringement in model output",
    }
    commit_message = "fix(data): drop PII-bearing records from training set"
    rollback = Rollback(
        marker="training-data-auditor",
        message="Training data audit failed! Rolling back model...",
        audit="Training data audit failure. Model rolled back.",
    )
