"""Shared fixtures: an in-memory pinning service and a local registry ledger."""
from __future__ import annotations

from collections.abc import Callable

import pytest

from credential_anchor.config import AnchorConfig
from credential_anchor.registry import JsonFileRegistryContract, RegistryClient
from credential_anchor.storage import ContentStoreClient
from credential_anchor.workflow import CredentialWorkflow
from tests.fakes import GATEWAYS, ISSUER, STORE_ENDPOINT, FakePinningService


@pytest.fixture()
def pinning() -> FakePinningService:
    return FakePinningService()


@pytest.fixture()
def ledger() -> JsonFileRegistryContract:
    return JsonFileRegistryContract(clock=lambda: 1735689600.0)


@pytest.fixture()
def config(ledger: JsonFileRegistryContract) -> AnchorConfig:
    return AnchorConfig(
        store_endpoint=STORE_ENDPOINT,
        store_auth_token="test-token",
        registry_address=ledger.address,
        network_id=1337,
        gateways=GATEWAYS,
        request_timeout=2.0,
    )


@pytest.fixture()
def make_workflow(
    pinning: FakePinningService,
    ledger: JsonFileRegistryContract,
    config: AnchorConfig,
) -> Callable[..., CredentialWorkflow]:
    """Build a workflow whose registry signs as *signer* (default: ISSUER)."""

    def _make(signer: str | None = ISSUER, cfg: AnchorConfig | None = None) -> CredentialWorkflow:
        cfg = cfg or config
        store = ContentStoreClient(cfg, http_client=pinning.client())
        registry = RegistryClient(cfg, ledger, signer=signer)
        return CredentialWorkflow(store, registry)

    return _make
