"""Content-addressed storage: pinning uploads and gateway retrieval."""
from __future__ import annotations

from credential_anchor.storage.client import ContentStoreClient, MalformedPayload
from credential_anchor.storage.gateways import iter_gateway_urls, render_gateway

__all__ = [
    "ContentStoreClient",
    "MalformedPayload",
    "iter_gateway_urls",
    "render_gateway",
]
