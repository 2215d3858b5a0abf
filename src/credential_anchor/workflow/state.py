"""Credential lifecycle state machine.

A credential moves through::

    DRAFT -> CANONICALIZED -> STORED -> ISSUED -> REVOKED

:class:`CredentialSession` is an immutable record of where one credential
stands. The workflow returns a new session from every transition and the
caller threads it through; nothing about a session is held globally.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum

from credential_anchor.document.canonical import CredentialDocument
from credential_anchor.errors import InvalidTransition


class CredentialState(str, Enum):
    """Lifecycle states of a credential within a session."""

    DRAFT = "draft"
    CANONICALIZED = "canonicalized"
    STORED = "stored"
    ISSUED = "issued"
    REVOKED = "revoked"


_TRANSITIONS: dict[CredentialState, frozenset[CredentialState]] = {
    CredentialState.DRAFT: frozenset({CredentialState.CANONICALIZED}),
    CredentialState.CANONICALIZED: frozenset({CredentialState.STORED}),
    CredentialState.STORED: frozenset({CredentialState.ISSUED}),
    CredentialState.ISSUED: frozenset({CredentialState.REVOKED}),
    CredentialState.REVOKED: frozenset(),
}


def can_transition(current: CredentialState, target: CredentialState) -> bool:
    """Return True if *target* is reachable from *current* in one step."""
    return target in _TRANSITIONS[current]


@dataclass(frozen=True)
class CredentialSession:
    """Snapshot of a single credential's progress through the lifecycle.

    Parameters
    ----------
    document:
        The credential document. Carries ``issued_at`` from CANONICALIZED on.
    state:
        Current lifecycle state.
    canonical:
        Canonical bytes (CANONICALIZED and later).
    digest:
        ``0x``-prefixed SHA-256 of *canonical* (CANONICALIZED and later).
    cid:
        Content identifier from the store (STORED and later).
    issuer:
        Issuer address recorded on-chain (ISSUED and later).
    issue_tx:
        Hash of the issuance transaction. Empty when the registry already
        held the record and the issue was treated as idempotent.
    revoke_tx:
        Hash of the revocation transaction (REVOKED only).
    already_issued:
        True if the record existed before this session's issue call.
    """

    document: CredentialDocument
    state: CredentialState = CredentialState.DRAFT
    canonical: bytes = b""
    digest: str = ""
    cid: str = ""
    issuer: str = ""
    issue_tx: str = ""
    revoke_tx: str = ""
    already_issued: bool = False

    def advance(self, target: CredentialState, **changes: object) -> "CredentialSession":
        """Return a copy moved to *target* with *changes* applied.

        Raises
        ------
        InvalidTransition
            If *target* is not the next state after :attr:`state`.
        """
        if not can_transition(self.state, target):
            raise InvalidTransition(
                f"Cannot move credential from {self.state.value} to {target.value}.",
                session=self,
            )
        return dataclasses.replace(self, state=target, **changes)  # type: ignore[arg-type]

    def require(self, *states: CredentialState) -> None:
        """Raise :class:`InvalidTransition` unless the session is in one of *states*."""
        if self.state not in states:
            expected = ", ".join(s.value for s in states)
            raise InvalidTransition(
                f"Credential is {self.state.value}; expected {expected}.",
                session=self,
            )

    @property
    def is_terminal(self) -> bool:
        return self.state is CredentialState.REVOKED

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary (canonical bytes decoded as UTF-8)."""
        return {
            "state": self.state.value,
            "document": self.document.to_dict(),
            "canonical": self.canonical.decode("utf-8"),
            "digest": self.digest,
            "cid": self.cid,
            "issuer": self.issuer,
            "issue_tx": self.issue_tx,
            "revoke_tx": self.revoke_tx,
            "already_issued": self.already_issued,
        }
