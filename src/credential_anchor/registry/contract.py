"""RegistryContract — the call shapes of the on-chain credential registry.

The contract itself runs elsewhere; implementations of this interface
adapt a particular execution environment (a chain node, a test double,
the local JSON ledger) to the three registry calls plus a deployment
check. Rejections by the contract are raised as :class:`ContractRejection`
so :class:`~credential_anchor.registry.client.RegistryClient` can map
them onto the error taxonomy.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class RejectReason(str, Enum):
    """Why the registry refused a write."""

    ALREADY_ISSUED = "already_issued"
    NOT_ISSUER = "not_issuer"
    UNKNOWN_CREDENTIAL = "unknown_credential"
    ALREADY_REVOKED = "already_revoked"


class ContractRejection(Exception):
    """Raised by a contract implementation when it reverts a call.

    Parameters
    ----------
    reason:
        Machine-readable reason for the revert.
    message:
        Revert message as reported by the contract.
    """

    def __init__(self, reason: RejectReason, message: str = "") -> None:
        super().__init__(message or reason.value)
        self.reason = reason


@dataclass(frozen=True)
class Deployment:
    """What the execution environment reports about the configured address.

    Parameters
    ----------
    network_id:
        Chain id the connection is on.
    has_code:
        Whether contract code exists at the address.
    """

    network_id: int
    has_code: bool


@dataclass(frozen=True)
class RawCredential:
    """The registry's ``getCredential`` return value, before interpretation.

    A ``timestamp`` of 0 means the digest has never been issued.
    """

    timestamp: int = 0
    issuer: str = ""
    cid: str = ""
    revoked: bool = False


class RegistryContract(ABC):
    """Abstract base class for registry contract bindings."""

    @abstractmethod
    async def describe(self, address: str) -> Deployment:
        """Report the network and whether code is deployed at *address*."""

    @abstractmethod
    async def issue_credential(self, digest: str, cid: str, issuer: str, sender: str) -> str:
        """Record *digest* with its CID and issuer; return the transaction hash.

        Raises
        ------
        ContractRejection
            ``ALREADY_ISSUED`` if the digest already has a record.
        """

    @abstractmethod
    async def get_credential(self, digest: str) -> RawCredential:
        """Return the record for *digest* (timestamp 0 when unknown)."""

    @abstractmethod
    async def revoke_credential(self, digest: str, sender: str) -> str:
        """Mark *digest* revoked; return the transaction hash.

        Raises
        ------
        ContractRejection
            ``UNKNOWN_CREDENTIAL``, ``NOT_ISSUER`` or ``ALREADY_REVOKED``.
        """
