"""Error taxonomy for credential-anchor.

Every failure raised by the engine derives from :class:`CredentialError`
so callers can render a single status line for any outcome. Each error
carries a ``kind`` label and a ``retryable`` flag describing whether the
caller may simply try again.

A digest with no registry record is *not* an error: lookups return
``None``. :class:`CredentialNotFound` is raised only when a write targets
a digest the registry does not know.
"""
from __future__ import annotations

from typing import Any


class CredentialError(Exception):
    """Base class for all credential-anchor errors.

    Parameters
    ----------
    message:
        Human-readable description of the failure.
    session:
        The credential session as it stood when the failure occurred, if
        the workflow had one. Lets callers resume from the last good state.
    """

    kind: str = "error"
    retryable: bool = False

    def __init__(self, message: str, session: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.session = session

    def __str__(self) -> str:
        return self.message


class InvalidDocument(CredentialError, ValueError):
    """Raised when a document is missing fields or cannot be serialized."""

    kind = "invalid_document"


class StoreAuthError(CredentialError):
    """Raised when content store credentials are absent or rejected."""

    kind = "store_auth"


class StoreUnavailable(CredentialError):
    """Raised when an upload fails for network or service reasons."""

    kind = "store_unavailable"
    retryable = True


class ContentUnavailable(CredentialError):
    """Raised when every retrieval endpoint failed for a CID.

    Parameters
    ----------
    cid:
        The content identifier that could not be fetched.
    attempts:
        The URLs tried, in order.
    last_error:
        The failure of the final attempt, kept for diagnostics.
    """

    kind = "content_unavailable"
    retryable = True

    def __init__(
        self,
        cid: str,
        attempts: list[str],
        last_error: BaseException | None = None,
    ) -> None:
        detail = str(last_error) if last_error is not None else "unknown error"
        super().__init__(f"IPFS fetch failed for {cid}: {detail}")
        self.cid = cid
        self.attempts = list(attempts)
        self.last_error = last_error


class RegistryNotReady(CredentialError):
    """Raised when the registry collaborator is not initialized.

    Typical causes are a missing registry address, a wallet on the wrong
    network, or no contract deployed at the configured address.
    """

    kind = "not_ready"


class SignerUnavailable(RegistryNotReady):
    """Raised when a registry write is attempted without a connected signer."""

    kind = "signer_unavailable"


class RegistryUnavailable(CredentialError):
    """Raised when the registry cannot be reached or cannot persist a call.

    Unlike :class:`RegistryNotReady` this is not remembered; the next call
    tries again.
    """

    kind = "registry_unavailable"
    retryable = True


class CredentialNotFound(CredentialError, KeyError):
    """Raised when a registry write targets a digest with no record."""

    kind = "not_found"

    def __init__(self, digest: str) -> None:
        super().__init__(f"Credential {digest} is not recorded on-chain.")
        self.digest = digest


class CredentialAlreadyIssued(CredentialError):
    """Raised when a digest is already recorded by a different issuer."""

    kind = "already_issued"

    def __init__(self, digest: str, issuer: str) -> None:
        super().__init__(f"Credential {digest} was already issued by {issuer}.")
        self.digest = digest
        self.issuer = issuer


class CredentialAlreadyRevoked(CredentialError):
    """Raised when revoking a digest whose record is already revoked."""

    kind = "already_revoked"

    def __init__(self, digest: str) -> None:
        super().__init__(f"Credential {digest} is already revoked.")
        self.digest = digest


class Unauthorized(CredentialError):
    """Raised when the registry rejects the signer for a write."""

    kind = "unauthorized"


class OperationCancelled(CredentialError):
    """Raised when a network operation is abandoned before completing."""

    kind = "cancelled"
    retryable = True


class InvalidTransition(CredentialError):
    """Raised when a session is asked to move to a state it cannot reach."""

    kind = "invalid_transition"


__all__ = [
    "ContentUnavailable",
    "CredentialAlreadyIssued",
    "CredentialAlreadyRevoked",
    "CredentialError",
    "CredentialNotFound",
    "InvalidDocument",
    "InvalidTransition",
    "OperationCancelled",
    "RegistryNotReady",
    "RegistryUnavailable",
    "SignerUnavailable",
    "StoreAuthError",
    "StoreUnavailable",
    "Unauthorized",
]
