"""Credential registry client, contract interface, and local ledger.

Quick start
-----------
::

    from credential_anchor.config import AnchorConfig
    from credential_anchor.registry import JsonFileRegistryContract, RegistryClient

    ledger = JsonFileRegistryContract()
    config = AnchorConfig(registry_address=ledger.address)
    client = RegistryClient(config, ledger, signer="0xissuer")
"""
from __future__ import annotations

from credential_anchor.registry.client import RegistryClient, RegistryRecord, TxReceipt
from credential_anchor.registry.contract import (
    ContractRejection,
    Deployment,
    RawCredential,
    RegistryContract,
    RejectReason,
)
from credential_anchor.registry.ledger import (
    DEFAULT_LEDGER_ADDRESS,
    DEFAULT_LEDGER_NETWORK_ID,
    JsonFileRegistryContract,
)

__all__ = [
    "DEFAULT_LEDGER_ADDRESS",
    "DEFAULT_LEDGER_NETWORK_ID",
    "ContractRejection",
    "Deployment",
    "JsonFileRegistryContract",
    "RawCredential",
    "RegistryClient",
    "RegistryContract",
    "RegistryRecord",
    "RejectReason",
    "TxReceipt",
]
