"""Project Synergy: trust and compliance in hybrid cloud for regulated industries."""

from ..base import AuditCheck, BuildToolPlugin, Rollback


class Plugin(BuildToolPlugin):
    audit_checks = {
        "blockchain-log": AuditCheck(
            "Verifying blockchain supply-chain logs",
            scanner=("ibm-blockchain-cli", "verify", "--ledger", "supply-chain"),
        ),
        "forensic-map": AuditCheck(
            "Mapping forensic data to regulatory controls (SOX, HIPAA)",
        ),
    }
    ai_tasks = {
        "predict-risk": "AI predicting risk for new deployment",
    }
    commit_message = "chore(compliance): map forensic evidence to SOX controls"
    rollback = Rollback(
        marker="ibm-blockchain-cli",
        message="Blockchain verification failed! Halting deployment...",
        audit="Blockchain failure. Deployment halted.",
    )
