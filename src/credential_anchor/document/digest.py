"""SHA-256 content fingerprints for canonical credential bytes.

Digests are the registry's primary key and cross the contract interface
as ``0x``-prefixed, lowercase, 64-character hex strings.
"""
from __future__ import annotations

import hashlib
import re

from credential_anchor.document.canonical import CredentialDocument, canonicalize
from credential_anchor.errors import InvalidDocument

DIGEST_HEX_LENGTH = 64

_DIGEST_PATTERN = re.compile(r"^(?:0x)?([0-9a-fA-F]{64})$")


def compute_digest(canonical: bytes) -> str:
    """Return the ``0x``-prefixed SHA-256 hex digest of *canonical*."""
    return "0x" + hashlib.sha256(canonical).hexdigest()


def digest_document(document: CredentialDocument) -> tuple[bytes, str]:
    """Canonicalize *document* and fingerprint the result.

    Returns
    -------
    tuple[bytes, str]
        The canonical bytes and their digest.
    """
    canonical = canonicalize(document)
    return canonical, compute_digest(canonical)


def normalize_digest(value: str) -> str:
    """Return *value* as a ``0x``-prefixed lowercase digest.

    Accepts input with or without the ``0x`` prefix, in either case.

    Raises
    ------
    InvalidDocument
        If *value* is not 64 hex characters.
    """
    match = _DIGEST_PATTERN.match(value.strip())
    if match is None:
        raise InvalidDocument(
            f"Digest must be {DIGEST_HEX_LENGTH} hex characters, optionally 0x-prefixed "
            f"(got {value!r})."
        )
    return "0x" + match.group(1).lower()
