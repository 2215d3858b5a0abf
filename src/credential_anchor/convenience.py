"""Convenience API for credential-anchor — wire everything in one call.

Example
-------
::

    from credential_anchor import open_workflow

    async with open_workflow(signer="0xIssuer") as workflow:
        session = await workflow.issue({"name": "Ada Lovelace"}, issuer="0xIssuer")
        result = await workflow.verify(session.cid)

"""
from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator

import httpx

from credential_anchor.config import AnchorConfig
from credential_anchor.registry.client import RegistryClient
from credential_anchor.registry.contract import RegistryContract
from credential_anchor.registry.ledger import JsonFileRegistryContract
from credential_anchor.storage.client import ContentStoreClient
from credential_anchor.workflow.engine import CredentialWorkflow


@contextlib.asynccontextmanager
async def open_workflow(
    config: AnchorConfig | None = None,
    contract: RegistryContract | None = None,
    signer: str | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AsyncIterator[CredentialWorkflow]:
    """Yield a :class:`CredentialWorkflow` and close its HTTP client afterwards.

    Parameters
    ----------
    config:
        Defaults to :meth:`AnchorConfig.from_env`.
    contract:
        Registry binding. Defaults to an in-memory
        :class:`JsonFileRegistryContract`; when *config* has no registry
        address, the ledger's own address is used.
    signer:
        Connected wallet address for registry writes.
    http_client:
        Optional ``httpx.AsyncClient`` shared with the content store.
    """
    config = config or AnchorConfig.from_env()
    if contract is None:
        ledger = JsonFileRegistryContract()
        if config.registry_address is None:
            config = config.model_copy(update={"registry_address": ledger.address})
        contract = ledger

    async with ContentStoreClient(config, http_client=http_client) as store:
        registry = RegistryClient(config, contract, signer=signer)
        yield CredentialWorkflow(store, registry)
