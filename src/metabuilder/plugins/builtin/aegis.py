"""Project Aegis: AI/ML governance across Azure and Office."""

from ..base import AuditCheck, BuildToolPlugin, Rollback


class Plugin(BuildToolPlugin):
    audit_checks = {
        "mbom": AuditCheck(
            "Generating MBOM (Model Bill of Materials)",
            scanner=("azure-ai-ml", "mbom", "--output", "aegis-mbom.json"),
        ),
        "bias": AuditCheck("Running AI bias/explainability audit"),
    }
    ai_tasks = {
        "validate-privacy": "AI validating Azure configs for privacy compliance",
    }
    commit_message = "fix(privacy): tighten Azure data residency settings"
    rollback = Rollback(
        marker="azure-ai-ml",
        message="Azure ML command failed. Rolling back Azure deployment...",
        audit="Azure ML failure. Rollback triggered.",
    )
