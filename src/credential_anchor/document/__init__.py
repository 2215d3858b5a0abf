"""Credential documents, canonicalization, and digests."""
from __future__ import annotations

from credential_anchor.document.canonical import (
    ISSUED_AT_KEY,
    CredentialDocument,
    canonicalize,
    parse_canonical,
)
from credential_anchor.document.digest import compute_digest, digest_document, normalize_digest

__all__ = [
    "ISSUED_AT_KEY",
    "CredentialDocument",
    "canonicalize",
    "compute_digest",
    "digest_document",
    "normalize_digest",
    "parse_canonical",
]
