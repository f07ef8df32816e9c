"""Project Connect: real-time platform governance for social media."""

from ..base import AuditCheck, BuildToolPlugin, Rollback


class Plugin(BuildToolPlugin):
    audit_checks = {
        "content-policy": AuditCheck(
            "Auditing content policy engine rules",
            scanner=("policy-engine-auditor", "--rules", "content"),
        ),
        "user-safety": AuditCheck("Generating chain-of-custody user-safety metrics"),
    }
    ai_tasks = {
        "transparency": "AI generating transparency report for moderation",
    }
    commit_message = "docs(transparency): publish quarterly moderation report"
    rollback = Rollback(
        marker="policy-engine-auditor",
        message="Content policy audit failed! Rolling back rule set...",
        audit="Policy audit failure. Rules rolled back.",
    )
