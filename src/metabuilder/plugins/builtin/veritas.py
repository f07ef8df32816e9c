"""Project Veritas: licensing and performance in hybrid Oracle stacks."""

from ..base import AuditCheck, BuildToolPlugin, Rollback


class Plugin(BuildToolPlugin):
    audit_checks = {
        "license": AuditCheck(
            "Running Oracle license audit",
            scanner=("oracle-license-auditor", "--report", "veritas-license.json"),
        ),
        "performance": AuditCheck("Running performance optimization audit"),
    }
    ai_tasks = {
        "migrate-plsql": "AI assisting PL/SQL to Java migration",
    }
    commit_message = "refactor(db): migrate PL/SQL package to Java service"
    rollback = Rollback(
        marker="oracle-license-auditor",
        message="Audit failure! Triggering remediation (simulated)...",
        audit="Audit failure. Remediation triggered.",
    )
