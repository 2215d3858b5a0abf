"""Tests for credential_anchor.workflow.engine — issue, verify and revoke."""
from __future__ import annotations

import asyncio
import datetime
import json
from collections.abc import Callable
from pathlib import Path

import pytest

from credential_anchor.config import AnchorConfig
from credential_anchor.document import CredentialDocument
from credential_anchor.errors import (
    ContentUnavailable,
    CredentialAlreadyIssued,
    InvalidDocument,
    InvalidTransition,
    RegistryNotReady,
    RegistryUnavailable,
    SignerUnavailable,
    StoreAuthError,
    StoreUnavailable,
    Unauthorized,
)
from credential_anchor.registry import JsonFileRegistryContract, RegistryClient
from credential_anchor.registry.contract import ContractRejection, RejectReason
from credential_anchor.storage import ContentStoreClient
from credential_anchor.workflow import (
    CredentialState,
    CredentialWorkflow,
    VerificationStatus,
    format_issued_at,
)
from tests.fakes import ISSUER, OTHER, FakePinningService

WorkflowFactory = Callable[..., CredentialWorkflow]

FIELDS = {"name": "Ada Lovelace", "degree": "BSc CS", "year": "2025"}
ISSUED_AT = "2025-01-01T00:00:00Z"
DOCUMENT = CredentialDocument(fields=FIELDS, issued_at=ISSUED_AT)
EXPECTED_DIGEST = "0x045f03678a5812807cc7611967cc10e10157414ef58c2cc45b26411bf631ac18"


class RejectOnceLedger(JsonFileRegistryContract):
    """Ledger whose first issue call is rejected."""

    def __init__(self) -> None:
        super().__init__(clock=lambda: 1735689600.0)
        self.rejections = 1

    async def issue_credential(self, digest: str, cid: str, issuer: str, sender: str) -> str:
        if self.rejections:
            self.rejections -= 1
            raise ContractRejection(RejectReason.NOT_ISSUER, "sender not allowed")
        return await super().issue_credential(digest, cid, issuer, sender)


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


class TestFormatIssuedAt:
    def test_millisecond_precision(self) -> None:
        moment = datetime.datetime(2025, 3, 4, 5, 6, 7, 891234, tzinfo=datetime.timezone.utc)
        assert format_issued_at(moment) == "2025-03-04T05:06:07.891Z"

    def test_converted_to_utc(self) -> None:
        tz = datetime.timezone(datetime.timedelta(hours=2))
        moment = datetime.datetime(2025, 1, 1, 2, 0, 0, tzinfo=tz)
        assert format_issued_at(moment) == "2025-01-01T00:00:00.000Z"


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------


class TestIssue:
    def test_issue_records_digest_and_cid(
        self,
        make_workflow: WorkflowFactory,
        pinning: FakePinningService,
        ledger: JsonFileRegistryContract,
    ) -> None:
        session = asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))

        assert session.state is CredentialState.ISSUED
        assert session.digest == EXPECTED_DIGEST
        assert session.issuer == ISSUER
        assert session.issue_tx.startswith("0x")
        assert session.already_issued is False
        assert ledger.digests() == [EXPECTED_DIGEST]
        assert session.cid in pinning.pins

    def test_upload_carries_canonical_content_and_digest(
        self, make_workflow: WorkflowFactory, pinning: FakePinningService
    ) -> None:
        asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))

        (upload,) = pinning.uploads
        assert upload["pinataContent"] == {**FIELDS, "issuedAt": ISSUED_AT}
        assert upload["pinataMetadata"] == {
            "name": "EChainID-Credential",
            "keyvalues": {"digest": EXPECTED_DIGEST},
        }

    def test_accepts_plain_mapping(self, make_workflow: WorkflowFactory) -> None:
        session = asyncio.run(make_workflow().issue({**FIELDS, "issuedAt": ISSUED_AT}, ISSUER))
        assert session.digest == EXPECTED_DIGEST

    def test_stamps_issued_at_from_clock(
        self, pinning: FakePinningService, ledger: JsonFileRegistryContract, config: AnchorConfig
    ) -> None:
        workflow = CredentialWorkflow(
            ContentStoreClient(config, http_client=pinning.client()),
            RegistryClient(config, ledger, signer=ISSUER),
            clock=lambda: datetime.datetime(2025, 6, 1, 12, 0, tzinfo=datetime.timezone.utc),
        )
        session = asyncio.run(workflow.issue(FIELDS, ISSUER))
        assert session.document.issued_at == "2025-06-01T12:00:00.000Z"
        assert pinning.uploads[0]["pinataContent"]["issuedAt"] == "2025-06-01T12:00:00.000Z"

    def test_supplied_cid_skips_upload(
        self,
        make_workflow: WorkflowFactory,
        pinning: FakePinningService,
        ledger: JsonFileRegistryContract,
    ) -> None:
        session = asyncio.run(make_workflow().issue(DOCUMENT, ISSUER, cid="bafyExisting"))
        assert session.cid == "bafyExisting"
        assert pinning.uploads == []
        assert asyncio.run(ledger.get_credential(EXPECTED_DIGEST)).cid == "bafyExisting"

    def test_empty_document_rejected_before_upload(
        self, make_workflow: WorkflowFactory, pinning: FakePinningService
    ) -> None:
        with pytest.raises(InvalidDocument):
            asyncio.run(make_workflow().issue({}, ISSUER))
        assert pinning.requests == []

    def test_missing_issuer(self, make_workflow: WorkflowFactory, pinning: FakePinningService) -> None:
        with pytest.raises(SignerUnavailable):
            asyncio.run(make_workflow().issue(DOCUMENT, "  "))
        assert pinning.requests == []

    def test_no_wallet_fails_before_upload(
        self,
        make_workflow: WorkflowFactory,
        pinning: FakePinningService,
        ledger: JsonFileRegistryContract,
    ) -> None:
        with pytest.raises(SignerUnavailable):
            asyncio.run(make_workflow(signer=None).issue(DOCUMENT, ISSUER))
        assert pinning.uploads == []
        assert pinning.requests == []
        assert len(ledger) == 0

    def test_issuer_other_than_wallet_fails_before_upload(
        self,
        make_workflow: WorkflowFactory,
        pinning: FakePinningService,
        ledger: JsonFileRegistryContract,
    ) -> None:
        with pytest.raises(Unauthorized):
            asyncio.run(make_workflow(signer=OTHER).issue(DOCUMENT, ISSUER))
        assert pinning.uploads == []
        assert len(ledger) == 0

    def test_registry_not_ready_fails_before_upload(
        self, make_workflow: WorkflowFactory, pinning: FakePinningService, config: AnchorConfig
    ) -> None:
        elsewhere = config.model_copy(update={"registry_address": "0x" + "99" * 20})
        with pytest.raises(RegistryNotReady, match="No contract found"):
            asyncio.run(make_workflow(cfg=elsewhere).issue(DOCUMENT, ISSUER))
        assert pinning.requests == []

    def test_different_credentials_issue_concurrently(
        self, make_workflow: WorkflowFactory, ledger: JsonFileRegistryContract
    ) -> None:
        workflow = make_workflow()

        async def scenario():  # type: ignore[no-untyped-def]
            return await asyncio.gather(
                workflow.issue({"name": "Ada", "issuedAt": ISSUED_AT}, ISSUER),
                workflow.issue({"name": "Grace", "issuedAt": ISSUED_AT}, ISSUER),
            )

        first, second = asyncio.run(scenario())
        assert first.digest != second.digest
        assert len(ledger) == 2


class TestIssueFailures:
    def test_rejected_token_leaves_registry_untouched(
        self,
        make_workflow: WorkflowFactory,
        pinning: FakePinningService,
        ledger: JsonFileRegistryContract,
    ) -> None:
        pinning.token = "rotated"
        with pytest.raises(StoreAuthError, match="bad jwt"):
            asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))
        assert len(ledger) == 0

    def test_store_outage_leaves_registry_untouched(
        self,
        make_workflow: WorkflowFactory,
        pinning: FakePinningService,
        ledger: JsonFileRegistryContract,
    ) -> None:
        pinning.down.add("pin.test")
        with pytest.raises(StoreUnavailable):
            asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))
        assert len(ledger) == 0

    def test_registry_failure_keeps_stored_session(
        self, pinning: FakePinningService, config: AnchorConfig
    ) -> None:
        ledger = RejectOnceLedger()
        workflow = CredentialWorkflow(
            ContentStoreClient(config, http_client=pinning.client()),
            RegistryClient(config, ledger, signer=ISSUER),
        )

        with pytest.raises(Unauthorized) as info:
            asyncio.run(workflow.issue(DOCUMENT, ISSUER))
        stored = info.value.session
        assert stored.state is CredentialState.STORED
        assert stored.cid in pinning.pins
        assert workflow.cached_cid(EXPECTED_DIGEST) == stored.cid

        session = asyncio.run(workflow.issue(DOCUMENT, ISSUER))
        assert session.state is CredentialState.ISSUED
        assert session.cid == stored.cid
        assert len(pinning.uploads) == 1

    def test_unwritable_registry_keeps_stored_session(
        self, pinning: FakePinningService, config: AnchorConfig, tmp_path: Path
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        ledger = JsonFileRegistryContract(persist_path=blocker / "ledger.json")
        workflow = CredentialWorkflow(
            ContentStoreClient(config, http_client=pinning.client()),
            RegistryClient(config, ledger, signer=ISSUER),
        )

        with pytest.raises(RegistryUnavailable) as info:
            asyncio.run(workflow.issue(DOCUMENT, ISSUER))
        assert info.value.session.state is CredentialState.STORED
        assert len(ledger) == 0

        blocker.unlink()
        session = asyncio.run(workflow.issue(DOCUMENT, ISSUER))
        assert session.state is CredentialState.ISSUED
        assert len(pinning.uploads) == 1

    def test_retry_from_stored_session(
        self, pinning: FakePinningService, config: AnchorConfig
    ) -> None:
        ledger = RejectOnceLedger()
        workflow = CredentialWorkflow(
            ContentStoreClient(config, http_client=pinning.client()),
            RegistryClient(config, ledger, signer=ISSUER),
        )
        with pytest.raises(Unauthorized) as info:
            asyncio.run(workflow.issue(DOCUMENT, ISSUER))

        session = asyncio.run(workflow.record(info.value.session, ISSUER))
        assert session.state is CredentialState.ISSUED
        assert len(pinning.uploads) == 1


class TestDuplicateIssue:
    def test_same_issuer_is_idempotent(
        self,
        make_workflow: WorkflowFactory,
        pinning: FakePinningService,
        ledger: JsonFileRegistryContract,
    ) -> None:
        workflow = make_workflow()
        first = asyncio.run(workflow.issue(DOCUMENT, ISSUER))
        second = asyncio.run(workflow.issue(DOCUMENT, ISSUER))

        assert second.state is CredentialState.ISSUED
        assert second.already_issued is True
        assert second.issue_tx == ""
        assert second.cid == first.cid
        assert len(pinning.uploads) == 1
        assert len(ledger) == 1

    def test_other_issuer_rejected(
        self, make_workflow: WorkflowFactory, ledger: JsonFileRegistryContract
    ) -> None:
        asyncio.run(make_workflow(signer=OTHER).issue(DOCUMENT, OTHER))

        with pytest.raises(CredentialAlreadyIssued) as info:
            asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))
        assert info.value.issuer == OTHER
        assert info.value.session.state is CredentialState.STORED
        assert asyncio.run(ledger.get_credential(EXPECTED_DIGEST)).issuer == OTHER


# ---------------------------------------------------------------------------
# Step by step
# ---------------------------------------------------------------------------


class TestTransitions:
    def test_manual_progression(self, make_workflow: WorkflowFactory) -> None:
        workflow = make_workflow()
        draft = workflow.draft(FIELDS, issued_at=ISSUED_AT)
        prepared = workflow.canonicalize(draft)
        assert prepared.state is CredentialState.CANONICALIZED
        assert prepared.digest == EXPECTED_DIGEST

        stored = asyncio.run(workflow.store(prepared))
        assert stored.state is CredentialState.STORED

        issued = asyncio.run(workflow.record(stored, ISSUER))
        assert issued.state is CredentialState.ISSUED

    def test_store_requires_canonicalized(self, make_workflow: WorkflowFactory) -> None:
        workflow = make_workflow()
        with pytest.raises(InvalidTransition):
            asyncio.run(workflow.store(workflow.draft(FIELDS)))

    def test_canonicalize_only_from_draft(self, make_workflow: WorkflowFactory) -> None:
        workflow = make_workflow()
        prepared = workflow.canonicalize(workflow.draft(FIELDS, issued_at=ISSUED_AT))
        with pytest.raises(InvalidTransition):
            workflow.canonicalize(prepared)


# ---------------------------------------------------------------------------
# Verify
# ---------------------------------------------------------------------------


class TestVerify:
    def test_issued_credential_is_valid(self, make_workflow: WorkflowFactory) -> None:
        workflow = make_workflow()
        session = asyncio.run(workflow.issue(DOCUMENT, ISSUER))

        result = asyncio.run(make_workflow(signer=None).verify(session.cid))
        assert result.status is VerificationStatus.VALID
        assert result.digest == session.digest
        assert result.issuer == ISSUER
        assert result.cid_matches
        assert result.document == DOCUMENT

    def test_reordered_copy_verifies(
        self, make_workflow: WorkflowFactory, pinning: FakePinningService
    ) -> None:
        asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))
        reordered = {"year": "2025", "issuedAt": ISSUED_AT, "name": "Ada Lovelace", "degree": "BSc CS"}
        pinning.pins["bafyMirror"] = json.dumps(reordered, indent=4).encode("utf-8")

        result = asyncio.run(make_workflow().verify("bafyMirror"))
        assert result.status is VerificationStatus.VALID
        assert result.digest == EXPECTED_DIGEST
        assert not result.cid_matches

    def test_tampered_copy_not_found(
        self, make_workflow: WorkflowFactory, pinning: FakePinningService
    ) -> None:
        asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))
        tampered = {**FIELDS, "degree": "PhD CS", "issuedAt": ISSUED_AT}
        pinning.pins["bafyTampered"] = json.dumps(tampered).encode("utf-8")

        result = asyncio.run(make_workflow().verify("bafyTampered"))
        assert result.status is VerificationStatus.NOT_FOUND
        assert result.record is None
        assert result.issuer is None

    def test_falls_back_to_later_gateway(
        self, make_workflow: WorkflowFactory, pinning: FakePinningService
    ) -> None:
        session = asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))
        pinning.down.add("gw-one.test")

        result = asyncio.run(make_workflow().verify(session.cid))
        assert result.status is VerificationStatus.VALID
        assert [url.split("/")[2] for url in pinning.requests[-2:]] == ["gw-one.test", "gw-two.test"]

    def test_all_gateways_down(self, make_workflow: WorkflowFactory, pinning: FakePinningService) -> None:
        pinning.down.update({"gw-one.test", "gw-two.test", "gw-three.test"})
        with pytest.raises(ContentUnavailable):
            asyncio.run(make_workflow().verify("bafyMissing"))

    def test_non_credential_payload(
        self, make_workflow: WorkflowFactory, pinning: FakePinningService
    ) -> None:
        pinning.pins["bafyNumbers"] = b'{"count": 3}'
        with pytest.raises(InvalidDocument):
            asyncio.run(make_workflow().verify("bafyNumbers"))

    def test_verify_performs_no_writes(
        self,
        make_workflow: WorkflowFactory,
        pinning: FakePinningService,
        ledger: JsonFileRegistryContract,
    ) -> None:
        session = asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))
        asyncio.run(make_workflow().verify(session.cid))
        assert len(pinning.uploads) == 1
        assert len(ledger) == 1


# ---------------------------------------------------------------------------
# Revoke
# ---------------------------------------------------------------------------


class TestRevoke:
    def test_revoke_session(self, make_workflow: WorkflowFactory) -> None:
        workflow = make_workflow()
        issued = asyncio.run(workflow.issue(DOCUMENT, ISSUER))

        revoked = asyncio.run(workflow.revoke(issued))
        assert revoked.state is CredentialState.REVOKED
        assert revoked.revoke_tx.startswith("0x")
        assert revoked.revoke_tx != issued.issue_tx

        result = asyncio.run(workflow.verify(issued.cid))
        assert result.status is VerificationStatus.REVOKED
        assert result.issuer == ISSUER
        assert result.record is not None
        assert result.record.timestamp == 1735689600

    def test_revoke_by_digest(self, make_workflow: WorkflowFactory) -> None:
        issued = asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))

        revoked = asyncio.run(make_workflow().revoke(EXPECTED_DIGEST[2:]))
        assert revoked.state is CredentialState.REVOKED
        assert revoked.digest == EXPECTED_DIGEST
        assert revoked.cid == issued.cid
        assert revoked.issuer == ISSUER

    def test_other_signer_unauthorized(
        self, make_workflow: WorkflowFactory, ledger: JsonFileRegistryContract
    ) -> None:
        issued = asyncio.run(make_workflow().issue(DOCUMENT, ISSUER))

        with pytest.raises(Unauthorized) as info:
            asyncio.run(make_workflow(signer=OTHER).revoke(issued))
        assert info.value.session is issued
        assert asyncio.run(ledger.get_credential(EXPECTED_DIGEST)).revoked is False

    def test_revoked_session_cannot_revoke_again(self, make_workflow: WorkflowFactory) -> None:
        workflow = make_workflow()
        revoked = asyncio.run(workflow.revoke(asyncio.run(workflow.issue(DOCUMENT, ISSUER))))
        with pytest.raises(InvalidTransition):
            asyncio.run(workflow.revoke(revoked))
