"""CredentialWorkflow — issue, verify and revoke credentials.

Issue runs the lifecycle forward: the document is canonicalized and
hashed, pinned to the content store (unless a CID is supplied or already
cached for that digest), then recorded in the registry. Verify runs it in
reverse and trusts nothing but the registry: bytes fetched from storage
are always re-canonicalized and re-hashed before the lookup.

Duplicate issuance
------------------
The registry holds one record per digest. When an issue call finds the
digest already recorded, the workflow reads the record back: if the
existing issuer is the requesting issuer the call succeeds idempotently
(``already_issued=True``, no transaction); otherwise it raises
:class:`~credential_anchor.errors.CredentialAlreadyIssued`.
"""
from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Mapping

from credential_anchor.document.canonical import CredentialDocument, parse_canonical
from credential_anchor.document.digest import digest_document, normalize_digest
from credential_anchor.errors import (
    CredentialAlreadyIssued,
    CredentialError,
    SignerUnavailable,
)
from credential_anchor.registry.client import RegistryClient
from credential_anchor.storage.client import ContentStoreClient
from credential_anchor.workflow.result import VerificationResult, VerificationStatus
from credential_anchor.workflow.state import CredentialSession, CredentialState

logger = logging.getLogger(__name__)


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def format_issued_at(moment: datetime.datetime) -> str:
    """Render *moment* as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    utc = moment.astimezone(datetime.timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


class CredentialWorkflow:
    """Orchestrates the content store and registry for credential lifecycles.

    The workflow keeps one piece of state: an advisory cache mapping
    digests to the CIDs obtained for them, so a retried issue never pins
    the same bytes twice. The cache lives as long as the workflow and is
    never persisted. Operations on the same credential must not run
    concurrently; different credentials may.

    Parameters
    ----------
    store:
        Content store client used for uploads and fetches.
    registry:
        Registry client used for issuance, lookup and revocation.
    clock:
        Returns the current time; stamps ``issuedAt``. Injectable for tests.
    """

    def __init__(
        self,
        store: ContentStoreClient,
        registry: RegistryClient,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._clock = clock or _utc_now
        self._cid_cache: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def cached_cid(self, digest: str) -> str | None:
        """Return the CID cached for *digest*, if any."""
        return self._cid_cache.get(normalize_digest(digest))

    # ------------------------------------------------------------------
    # Individual transitions
    # ------------------------------------------------------------------

    def draft(self, fields: Mapping[str, str], issued_at: str = "") -> CredentialSession:
        """Start a DRAFT session from subject *fields*."""
        return CredentialSession(document=CredentialDocument(fields=fields, issued_at=issued_at))

    def canonicalize(self, session: CredentialSession) -> CredentialSession:
        """DRAFT -> CANONICALIZED: stamp ``issuedAt`` if absent, then hash."""
        session.require(CredentialState.DRAFT)
        document = session.document
        if not document.issued_at:
            document = document.with_issued_at(format_issued_at(self._clock()))
        canonical, digest = digest_document(document)
        logger.debug("Canonicalized credential %s (%d bytes)", digest, len(canonical))
        return session.advance(
            CredentialState.CANONICALIZED,
            document=document,
            canonical=canonical,
            digest=digest,
        )

    async def store(
        self,
        session: CredentialSession,
        cid: str | None = None,
        timeout: float | None = None,
    ) -> CredentialSession:
        """CANONICALIZED -> STORED.

        A caller-supplied *cid* wins, then a CID cached for the digest;
        only otherwise are the canonical bytes uploaded.
        """
        session.require(CredentialState.CANONICALIZED)
        resolved = (cid or "").strip() or self._cid_cache.get(session.digest)
        if resolved:
            logger.info("Reusing CID %s for credential %s", resolved, session.digest)
        else:
            resolved = await self._store.upload(
                session.canonical, idempotency_hint=session.digest, timeout=timeout
            )
        self._cid_cache[session.digest] = resolved
        return session.advance(CredentialState.STORED, cid=resolved)

    async def record(
        self,
        session: CredentialSession,
        issuer: str,
        timeout: float | None = None,
    ) -> CredentialSession:
        """STORED -> ISSUED: write the digest and CID to the registry.

        On failure the raised error carries the STORED session in
        ``error.session`` so the caller can retry without re-uploading.
        """
        session.require(CredentialState.STORED)
        try:
            receipt = await self._registry.issue(
                session.digest, session.cid, issuer, timeout=timeout
            )
        except CredentialAlreadyIssued as exc:
            if exc.issuer.lower() != issuer.lower():
                exc.session = session
                raise
            logger.info(
                "Credential %s already issued by %s; treating as issued", session.digest, issuer
            )
            return session.advance(CredentialState.ISSUED, issuer=issuer, already_issued=True)
        except CredentialError as exc:
            exc.session = session
            raise
        return session.advance(CredentialState.ISSUED, issuer=issuer, issue_tx=receipt.tx_hash)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def issue(
        self,
        document: CredentialDocument | Mapping[str, str],
        issuer: str,
        cid: str | None = None,
        timeout: float | None = None,
    ) -> CredentialSession:
        """Issue *document* on behalf of *issuer*.

        Parameters
        ----------
        document:
            The credential, or a flat mapping of its fields.
        issuer:
            Address of the issuing wallet.
        cid:
            CID of an already-pinned copy of this exact document; skips upload.
        timeout:
            Deadline in seconds applied to each network call.

        Returns
        -------
        CredentialSession
            The session in ISSUED state.

        Raises
        ------
        SignerUnavailable
            If *issuer* is empty or no wallet is connected; raised before any upload.
        Unauthorized
            If *issuer* is not the connected wallet; raised before any upload.
        RegistryNotReady
            If the registry is not initialized; raised before any upload.
        InvalidDocument
            If the document cannot be canonicalized.
        StoreAuthError, StoreUnavailable
            If the upload fails; the registry is not touched.
        """
        issuer = (issuer or "").strip()
        if not issuer:
            raise SignerUnavailable("Wallet not connected: an issuer address is required.")
        self._registry.require_signer(issuer)
        await self._registry.connect(timeout=timeout)

        if not isinstance(document, CredentialDocument):
            document = CredentialDocument.from_mapping(document)

        session = self.canonicalize(CredentialSession(document=document))
        session = await self.store(session, cid=cid, timeout=timeout)
        session = await self.record(session, issuer, timeout=timeout)
        logger.info("Credential %s issued by %s", session.digest, issuer)
        return session

    async def verify(self, cid: str, timeout: float | None = None) -> VerificationResult:
        """Verify the credential stored under *cid*.

        Independent of any session: the digest is recomputed from the
        freshly fetched bytes and looked up in the registry. Performs no
        writes.

        Raises
        ------
        ContentUnavailable
            If every gateway failed.
        InvalidDocument
            If the fetched payload is not a credential document.
        RegistryNotReady
            If the registry is not initialized.
        """
        await self._registry.connect(timeout=timeout)
        cid = cid.strip()
        payload = await self._store.fetch(cid, timeout=timeout)
        document = parse_canonical(payload)
        _, digest = digest_document(document)
        record = await self._registry.get_record(digest, timeout=timeout)

        if record is None:
            status = VerificationStatus.NOT_FOUND
        elif record.revoked:
            status = VerificationStatus.REVOKED
        else:
            status = VerificationStatus.VALID
        logger.info("Verified %s -> %s (%s)", cid, digest, status.value)
        return VerificationResult(
            status=status, cid=cid, digest=digest, document=document, record=record
        )

    async def revoke(
        self,
        target: CredentialSession | str,
        timeout: float | None = None,
    ) -> CredentialSession:
        """Revoke an ISSUED session, or a digest issued elsewhere.

        Only the original issuer may revoke; the registry enforces this and
        a rejection surfaces as :class:`~credential_anchor.errors.Unauthorized`.

        Returns
        -------
        CredentialSession
            The session in REVOKED state.
        """
        if isinstance(target, CredentialSession):
            target.require(CredentialState.ISSUED)
            session = target
        else:
            digest = normalize_digest(target)
            record = await self._registry.get_record(digest, timeout=timeout)
            session = CredentialSession(
                document=CredentialDocument(),
                state=CredentialState.ISSUED,
                digest=digest,
                cid=record.cid if record is not None else self._cid_cache.get(digest, ""),
                issuer=record.issuer if record is not None else "",
            )

        try:
            receipt = await self._registry.revoke(session.digest, timeout=timeout)
        except CredentialError as exc:
            exc.session = session
            raise
        logger.info("Credential %s revoked", session.digest)
        return session.advance(CredentialState.REVOKED, revoke_tx=receipt.tx_hash)
