"""RegistryClient — typed wrappers around the credential registry contract.

The client does not implement the registry. It checks that the configured
contract is reachable before any call, passes digests as ``0x``-prefixed
hex, and interprets results: a record whose timestamp is zero is "not
found" (``None``), never revoked and never an error. Contract reverts are
mapped onto :mod:`credential_anchor.errors`.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass

from credential_anchor.cancellation import deadline
from credential_anchor.config import AnchorConfig
from credential_anchor.document.digest import normalize_digest
from credential_anchor.errors import (
    CredentialAlreadyIssued,
    CredentialAlreadyRevoked,
    CredentialNotFound,
    RegistryNotReady,
    RegistryUnavailable,
    SignerUnavailable,
    Unauthorized,
)
from credential_anchor.registry.contract import (
    ContractRejection,
    RegistryContract,
    RejectReason,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryRecord:
    """An on-chain credential record.

    Parameters
    ----------
    digest:
        The credential digest (registry key).
    issuer:
        Address that issued the credential; the only one allowed to revoke.
    cid:
        Content identifier recorded at issuance.
    timestamp:
        Unix time of issuance. Preserved by revocation.
    revoked:
        Whether the credential has been revoked.
    """

    digest: str
    issuer: str
    cid: str
    timestamp: int
    revoked: bool = False

    @property
    def issued_at(self) -> datetime.datetime:
        """Issuance time as an aware UTC datetime."""
        return datetime.datetime.fromtimestamp(self.timestamp, tz=datetime.timezone.utc)

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "digest": self.digest,
            "issuer": self.issuer,
            "cid": self.cid,
            "timestamp": self.timestamp,
            "revoked": self.revoked,
        }


@dataclass(frozen=True)
class TxReceipt:
    """Receipt for a registry write."""

    tx_hash: str
    digest: str
    action: str


class RegistryClient:
    """Client-side protocol for the credential registry.

    Parameters
    ----------
    config:
        Supplies ``registry_address`` and the expected ``network_id``.
    contract:
        Binding to the registry's execution environment.
    signer:
        Address of the connected wallet used for writes, if any.

    Example
    -------
    ::

        client = RegistryClient(config, JsonFileRegistryContract(), signer=address)
        await client.connect()
        receipt = await client.issue(digest, cid, issuer=address)
        record = await client.get_record(digest)
    """

    def __init__(
        self,
        config: AnchorConfig,
        contract: RegistryContract,
        signer: str | None = None,
    ) -> None:
        self._config = config
        self._contract = contract
        self._signer = signer.strip() if signer else None
        self._ready = False
        self._init_error: RegistryNotReady | None = None

    @property
    def signer(self) -> str | None:
        return self._signer

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    async def connect(self, timeout: float | None = None) -> None:
        """Confirm a contract is deployed at the configured address.

        A configuration failure (no address, no code at the address, wrong
        network) is remembered and raised again on every later call, so
        callers see the underlying cause rather than a generic "not ready".
        A node that cannot be reached is not remembered; the next call
        tries again.

        Raises
        ------
        RegistryNotReady
            If no address is configured, no code is deployed there, or the
            connection is on a different network than configured.
        """
        if self._ready:
            return
        if self._init_error is not None:
            raise self._init_error

        address = self._config.registry_address
        if not address:
            raise self._fail(
                "Contract not ready: no registry address configured "
                "(set CREDENTIAL_ANCHOR_REGISTRY_ADDRESS)."
            )

        async with deadline(timeout, "Registry connect"):
            try:
                deployment = await self._contract.describe(address)
            except OSError as exc:
                logger.warning("Registry at %s unreachable: %s", address, exc)
                raise RegistryNotReady(f"Contract init error: {exc}") from exc

        if not deployment.has_code:
            raise self._fail(
                f"No contract found at {address} on chainId {deployment.network_id}. "
                "Switch the wallet to the network the registry was deployed to, "
                "or update the registry address."
            )
        expected = self._config.network_id
        if expected is not None and deployment.network_id != expected:
            raise self._fail(
                f"Connected to chainId {deployment.network_id} but the registry is "
                f"configured for chainId {expected}."
            )

        self._ready = True
        logger.info("Registry ready at %s on chainId %d", address, deployment.network_id)

    def _fail(self, message: str) -> RegistryNotReady:
        logger.error("%s", message)
        self._init_error = RegistryNotReady(message)
        return self._init_error

    def require_signer(self, issuer: str | None = None) -> str:
        """Return the connected signer, checking it may act as *issuer*.

        Raises
        ------
        SignerUnavailable
            If no signer is connected.
        Unauthorized
            If *issuer* is given and is not the connected signer.
        """
        if not self._signer:
            raise SignerUnavailable("Wallet not connected: registry writes need a signer.")
        if issuer is not None and issuer.strip().lower() != self._signer.lower():
            raise Unauthorized(
                f"Connected wallet {self._signer} cannot issue on behalf of {issuer.strip()}."
            )
        return self._signer

    # ------------------------------------------------------------------
    # Registry calls
    # ------------------------------------------------------------------

    async def issue(
        self,
        digest: str,
        cid: str,
        issuer: str,
        timeout: float | None = None,
    ) -> TxReceipt:
        """Record *digest* with its *cid* under *issuer*.

        Raises
        ------
        SignerUnavailable
            If no signer is connected.
        Unauthorized
            If *issuer* is not the connected signer.
        CredentialAlreadyIssued
            If the registry already holds a record for *digest*.
        RegistryNotReady
            If the contract is not initialized.
        RegistryUnavailable
            If the call could not be delivered or persisted.
        """
        key = normalize_digest(digest)
        sender = self.require_signer(issuer)
        await self.connect()
        async with deadline(timeout, "Issue transaction"):
            try:
                tx_hash = await self._contract.issue_credential(key, cid, issuer, sender)
            except ContractRejection as exc:
                if exc.reason is RejectReason.ALREADY_ISSUED:
                    existing = await self._contract.get_credential(key)
                    raise CredentialAlreadyIssued(key, existing.issuer) from exc
                raise Unauthorized(f"Issue rejected: {exc}") from exc
            except OSError as exc:
                raise RegistryUnavailable(f"Issue transaction failed: {exc}") from exc
        logger.info("Issued credential %s (cid=%s) tx=%s", key, cid, tx_hash)
        return TxReceipt(tx_hash=tx_hash, digest=key, action="issue")

    async def get_record(
        self,
        digest: str,
        timeout: float | None = None,
    ) -> RegistryRecord | None:
        """Look up *digest*; return ``None`` when the registry has no record."""
        key = normalize_digest(digest)
        await self.connect()
        async with deadline(timeout, "Registry lookup"):
            try:
                raw = await self._contract.get_credential(key)
            except OSError as exc:
                raise RegistryUnavailable(f"Registry lookup failed: {exc}") from exc
        if not raw.timestamp:
            return None
        return RegistryRecord(
            digest=key,
            issuer=raw.issuer,
            cid=raw.cid,
            timestamp=int(raw.timestamp),
            revoked=bool(raw.revoked),
        )

    async def revoke(self, digest: str, timeout: float | None = None) -> TxReceipt:
        """Revoke *digest* as the connected signer.

        Raises
        ------
        SignerUnavailable
            If no signer is connected.
        Unauthorized
            If the registry rejects the signer (only the issuer may revoke).
        CredentialNotFound
            If *digest* was never issued.
        CredentialAlreadyRevoked
            If *digest* is already revoked.
        """
        key = normalize_digest(digest)
        sender = self.require_signer()
        await self.connect()
        async with deadline(timeout, "Revoke transaction"):
            try:
                tx_hash = await self._contract.revoke_credential(key, sender)
            except ContractRejection as exc:
                if exc.reason is RejectReason.UNKNOWN_CREDENTIAL:
                    raise CredentialNotFound(key) from exc
                if exc.reason is RejectReason.ALREADY_REVOKED:
                    raise CredentialAlreadyRevoked(key) from exc
                raise Unauthorized(f"Revoke rejected for {sender}: {exc}") from exc
            except OSError as exc:
                raise RegistryUnavailable(f"Revoke transaction failed: {exc}") from exc
        logger.info("Revoked credential %s tx=%s", key, tx_hash)
        return TxReceipt(tx_hash=tx_hash, digest=key, action="revoke")
