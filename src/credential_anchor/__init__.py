"""credential-anchor — tamper-evident credentials on content storage and an on-chain registry.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import credential_anchor
>>> credential_anchor.__version__
'0.1.0'

Quick start
-----------
::

    from credential_anchor import (
        # Documents
        CredentialDocument, canonicalize, compute_digest,
        # Clients
        AnchorConfig, ContentStoreClient, RegistryClient, JsonFileRegistryContract,
        # Workflow
        CredentialWorkflow, CredentialSession, VerificationResult, format_status,
    )
"""
from __future__ import annotations

__version__: str = "0.1.0"

from credential_anchor.config import AnchorConfig
from credential_anchor.convenience import open_workflow

# ------------------------------------------------------------------
# Documents
# ------------------------------------------------------------------
from credential_anchor.document.canonical import CredentialDocument, canonicalize, parse_canonical
from credential_anchor.document.digest import compute_digest, digest_document, normalize_digest

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from credential_anchor.errors import (
    ContentUnavailable,
    CredentialAlreadyIssued,
    CredentialAlreadyRevoked,
    CredentialError,
    CredentialNotFound,
    InvalidDocument,
    InvalidTransition,
    OperationCancelled,
    RegistryNotReady,
    RegistryUnavailable,
    SignerUnavailable,
    StoreAuthError,
    StoreUnavailable,
    Unauthorized,
)

# ------------------------------------------------------------------
# Content store
# ------------------------------------------------------------------
from credential_anchor.storage.client import ContentStoreClient

# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------
from credential_anchor.registry.client import RegistryClient, RegistryRecord, TxReceipt
from credential_anchor.registry.contract import RegistryContract
from credential_anchor.registry.ledger import JsonFileRegistryContract

# ------------------------------------------------------------------
# Workflow
# ------------------------------------------------------------------
from credential_anchor.workflow.engine import CredentialWorkflow
from credential_anchor.workflow.result import VerificationResult, VerificationStatus
from credential_anchor.workflow.state import CredentialSession, CredentialState
from credential_anchor.workflow.status import format_status

__all__ = [
    # version
    "__version__",
    "AnchorConfig",
    "open_workflow",
    # documents
    "CredentialDocument",
    "canonicalize",
    "compute_digest",
    "digest_document",
    "normalize_digest",
    "parse_canonical",
    # errors
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
    # content store
    "ContentStoreClient",
    # registry
    "JsonFileRegistryContract",
    "RegistryClient",
    "RegistryContract",
    "RegistryRecord",
    "TxReceipt",
    # workflow
    "CredentialSession",
    "CredentialState",
    "CredentialWorkflow",
    "VerificationResult",
    "VerificationStatus",
    "format_status",
]
