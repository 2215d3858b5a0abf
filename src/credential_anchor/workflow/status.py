"""Human-readable status lines for workflow outcomes and errors.

Every operation reports through one line that names what happened. A
digest missing from the registry reads as a lookup outcome, never as an
I/O failure.
"""
from __future__ import annotations

from credential_anchor.errors import CredentialError
from credential_anchor.workflow.result import VerificationResult, VerificationStatus
from credential_anchor.workflow.state import CredentialSession, CredentialState

IDLE_STATUS = "Idle - ready to issue and verify credentials."


def _session_status(session: CredentialSession) -> str:
    if session.state is CredentialState.DRAFT:
        return "Preparing credential..."
    if session.state is CredentialState.CANONICALIZED:
        return f"Credential prepared. digest: {session.digest}"
    if session.state is CredentialState.STORED:
        return f"Credential pinned as {session.cid}; not yet recorded on-chain."
    if session.state is CredentialState.ISSUED:
        if session.already_issued:
            return f"Credential already on-chain. issuer: {session.issuer}"
        return f"Credential issued. tx: {session.issue_tx}"
    return f"Revoked. tx: {session.revoke_tx}"


def _verification_status(result: VerificationResult) -> str:
    if result.status is VerificationStatus.NOT_FOUND:
        return "Credential not found on-chain."
    revoked = "true" if result.revoked else "false"
    return f"On-chain found. revoked: {revoked}. issuer: {result.issuer}"


def format_status(
    outcome: CredentialSession | VerificationResult | CredentialError | None,
    operation: str = "",
) -> str:
    """Render *outcome* as a single status line.

    Parameters
    ----------
    outcome:
        A session, a verification result, an error, or ``None`` for idle.
    operation:
        Name of the operation that failed, used to prefix error lines
        (e.g. ``"verify"`` gives ``"Verify error: ..."``).
    """
    if outcome is None:
        return IDLE_STATUS
    if isinstance(outcome, CredentialError):
        label = operation.capitalize() if operation else "Credential"
        return f"{label} error: {outcome.message}"
    if isinstance(outcome, VerificationResult):
        return _verification_status(outcome)
    return _session_status(outcome)
