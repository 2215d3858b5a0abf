"""Retrieval endpoint templates for content-addressed storage."""
from __future__ import annotations

from collections.abc import Iterable, Iterator


def render_gateway(template: str, cid: str) -> str:
    """Substitute *cid* into a gateway URL template."""
    return template.replace("{cid}", cid)


def iter_gateway_urls(templates: Iterable[str], cid: str) -> Iterator[str]:
    """Yield candidate URLs for *cid* in the configured order.

    The sequence is lazy so a fetch that succeeds early never renders the
    remaining endpoints; each call starts afresh.
    """
    for template in templates:
        yield render_gateway(template, cid)
