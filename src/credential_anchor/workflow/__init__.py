"""Credential lifecycle: state machine, orchestration, and status reporting."""
from __future__ import annotations

from credential_anchor.workflow.engine import CredentialWorkflow, format_issued_at
from credential_anchor.workflow.result import VerificationResult, VerificationStatus
from credential_anchor.workflow.state import CredentialSession, CredentialState, can_transition
from credential_anchor.workflow.status import IDLE_STATUS, format_status

__all__ = [
    "IDLE_STATUS",
    "CredentialSession",
    "CredentialState",
    "CredentialWorkflow",
    "VerificationResult",
    "VerificationStatus",
    "can_transition",
    "format_issued_at",
    "format_status",
]
