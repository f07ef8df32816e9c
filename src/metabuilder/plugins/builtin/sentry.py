"""Project Sentry: security and operational risk monitoring in AWS."""

from ..base import AuditCheck, BuildToolPlugin, Rollback


class Plugin(BuildToolPlugin):
    audit_checks = {
        "risk-score": AuditCheck(
            "Calculating operational risk scores for EC2 fleet",
            scanner=("aws", "ec2", "describe-instances"),
        ),
        "patch-orchestration": AuditCheck(
            "Orchestrating patch deployment simulation",
            scanner=("aws", "ssm", "describe-patch-baselines"),
        ),
    }
    ai_tasks = {
        "blast-radius": "AI analyzing blast-radius for reported CVE",
    }
    commit_message = "fix(security): patch vulnerable dependency in EC2 fleet"
    rollback = Rollback(
        marker="aws",
        message="AWS API call failed. Rolling back (simulated)...",
        audit="AWS API failure. Rollback triggered.",
    )
