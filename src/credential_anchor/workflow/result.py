"""Outcome of verifying a credential by its content identifier."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from credential_anchor.document.canonical import CredentialDocument
from credential_anchor.registry.client import RegistryRecord


class VerificationStatus(str, Enum):
    """The three outcomes of a verification."""

    NOT_FOUND = "not_found"
    VALID = "valid"
    REVOKED = "revoked"


@dataclass(frozen=True)
class VerificationResult:
    """What verification established about a fetched credential.

    Parameters
    ----------
    status:
        NOT_FOUND when the recomputed digest has no registry record.
    cid:
        The content identifier that was fetched.
    digest:
        Digest recomputed from the fetched bytes.
    document:
        The fetched document.
    record:
        The registry record, or ``None`` for NOT_FOUND.
    """

    status: VerificationStatus
    cid: str
    digest: str
    document: CredentialDocument
    record: RegistryRecord | None = None

    @property
    def found(self) -> bool:
        return self.record is not None

    @property
    def revoked(self) -> bool:
        return self.status is VerificationStatus.REVOKED

    @property
    def issuer(self) -> str | None:
        return self.record.issuer if self.record is not None else None

    @property
    def cid_matches(self) -> bool:
        """True if the registry recorded the same CID that was fetched.

        A mismatch is informational: the digest, not the CID, is what the
        registry vouches for, and the same bytes may be pinned under
        several CIDs.
        """
        return self.record is not None and self.record.cid == self.cid

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "status": self.status.value,
            "cid": self.cid,
            "digest": self.digest,
            "document": self.document.to_dict(),
            "record": self.record.to_dict() if self.record is not None else None,
        }
