"""Credential documents and their canonical byte form.

The canonical form is the UTF-8 encoding of the document as compact JSON
(RFC 8785 / JCS rules for objects whose values are all strings):

- keys ordered by their UTF-16 code units
- no whitespace between tokens
- non-ASCII characters emitted literally, only control characters,
  ``"`` and ``\\`` escaped

Issuance and verification may run in different processes or languages, so
this function must produce byte-identical output for identical field
values regardless of the order the caller inserted them.
"""
from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from credential_anchor.errors import InvalidDocument

ISSUED_AT_KEY = "issuedAt"


@dataclass(frozen=True)
class CredentialDocument:
    """A credential as a set of named string fields plus its issuance time.

    Parameters
    ----------
    fields:
        Subject fields, e.g. ``{"name": "Ada Lovelace", "degree": "BSc CS"}``.
        Must not contain ``issuedAt``; that value lives in *issued_at*.
    issued_at:
        ISO-8601 issuance timestamp. Empty until the workflow stamps it.
    """

    fields: Mapping[str, str] = field(default_factory=dict, hash=False)
    issued_at: str = ""

    def __post_init__(self) -> None:
        cleaned: dict[str, str] = {}
        for key, value in self.fields.items():
            if not isinstance(key, str) or not key:
                raise InvalidDocument(f"Field names must be non-empty strings (got {key!r}).")
            if key == ISSUED_AT_KEY:
                raise InvalidDocument(
                    f"{ISSUED_AT_KEY!r} is set by the issuer; pass it as issued_at."
                )
            if not isinstance(value, str):
                raise InvalidDocument(
                    f"Field {key!r} must be a string (got {type(value).__name__})."
                )
            cleaned[key] = value
        if not isinstance(self.issued_at, str):
            raise InvalidDocument("issued_at must be an ISO-8601 string.")
        # Detach from the caller's mapping so later mutation cannot leak in.
        object.__setattr__(self, "fields", cleaned)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CredentialDocument":
        """Build a document from a flat mapping that may include ``issuedAt``."""
        values = dict(data)
        issued_at = values.pop(ISSUED_AT_KEY, "")
        if not isinstance(issued_at, str):
            raise InvalidDocument(f"{ISSUED_AT_KEY!r} must be a string.")
        return cls(fields=values, issued_at=issued_at)

    def with_issued_at(self, issued_at: str) -> "CredentialDocument":
        """Return a copy carrying the given issuance timestamp."""
        return CredentialDocument(fields=self.fields, issued_at=issued_at)

    def to_dict(self) -> dict[str, str]:
        """Return the flat mapping that is canonicalized and stored."""
        data = dict(self.fields)
        if self.issued_at:
            data[ISSUED_AT_KEY] = self.issued_at
        return data


def _utf16_key(key: str) -> bytes:
    return key.encode("utf-16-be", "surrogatepass")


def canonicalize(document: CredentialDocument) -> bytes:
    """Serialize *document* to its canonical bytes.

    Parameters
    ----------
    document:
        The credential to serialize. Must have at least one subject field
        and a non-empty ``issued_at``.

    Returns
    -------
    bytes
        The canonical form.

    Raises
    ------
    InvalidDocument
        If required fields are absent or a value is not valid Unicode.
    """
    if not document.fields:
        raise InvalidDocument("Credential has no subject fields.")
    if not document.issued_at:
        raise InvalidDocument(f"Credential is missing {ISSUED_AT_KEY!r}.")

    data = document.to_dict()
    ordered = {key: data[key] for key in sorted(data, key=_utf16_key)}
    text = json.dumps(ordered, ensure_ascii=False, separators=(",", ":"))
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidDocument(f"Credential contains text that is not valid UTF-8: {exc}") from exc


def parse_canonical(data: bytes) -> CredentialDocument:
    """Parse stored or fetched bytes back into a :class:`CredentialDocument`.

    Key order and whitespace in *data* are irrelevant; re-canonicalizing the
    result yields the canonical form.

    Raises
    ------
    InvalidDocument
        If *data* is not a UTF-8 JSON object of string values.
    """
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidDocument(f"Credential payload is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise InvalidDocument("Credential payload must be a JSON object.")
    return CredentialDocument.from_mapping(payload)
