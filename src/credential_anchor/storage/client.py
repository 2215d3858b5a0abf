"""ContentStoreClient — pinning uploads and gateway-fallback retrieval.

Uploads go to a Pinata-style ``pinJSONToIPFS`` endpoint. Retrieval walks
the configured gateway templates in a fixed order, one attempt each, and
returns the first payload that is a JSON object. Only when every gateway
has failed is :class:`~credential_anchor.errors.ContentUnavailable`
raised, carrying the last underlying error.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterator
from types import TracebackType
from typing import Any

import httpx

from credential_anchor.cancellation import deadline
from credential_anchor.config import AnchorConfig
from credential_anchor.errors import (
    ContentUnavailable,
    InvalidDocument,
    StoreAuthError,
    StoreUnavailable,
)
from credential_anchor.storage.gateways import iter_gateway_urls

logger = logging.getLogger(__name__)

_AUTH_STATUSES = frozenset({401, 403})


class MalformedPayload(ValueError):
    """Raised for a gateway response that is not a JSON object."""


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_detail(data: Any, response: httpx.Response) -> str:
    """Pick the most specific message out of a pinning-service error body."""
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("details"):
            return str(error["details"])
        if error:
            return error if isinstance(error, str) else json.dumps(error)
        if data.get("message"):
            return str(data["message"])
        return json.dumps(data)
    if data is not None:
        return json.dumps(data)
    return f"HTTP {response.status_code}"


class ContentStoreClient:
    """Async client for the content-addressed store.

    Parameters
    ----------
    config:
        Store endpoint, token, gateways and timeouts.
    http_client:
        Optional pre-built ``httpx.AsyncClient``. When omitted the client
        builds its own and closes it in :meth:`aclose`.

    Example
    -------
    ::

        async with ContentStoreClient(AnchorConfig.from_env()) as store:
            cid = await store.upload(canonical, idempotency_hint=digest)
            payload = await store.fetch(cid)
    """

    def __init__(
        self,
        config: AnchorConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout),
            follow_redirects=True,
        )

    async def __aenter__(self) -> "ContentStoreClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload(
        self,
        canonical: bytes,
        idempotency_hint: str,
        timeout: float | None = None,
    ) -> str:
        """Pin *canonical* bytes and return the store's content identifier.

        Safe to repeat with the same bytes; the store returns the same CID
        for identical content.

        Parameters
        ----------
        canonical:
            Canonical credential bytes, embedded verbatim as the pinned content.
        idempotency_hint:
            Stable key for the content (the digest), attached as metadata.
        timeout:
            Overall deadline in seconds, or ``None`` for none.

        Raises
        ------
        StoreAuthError
            If no token is configured or the store rejects it.
        StoreUnavailable
            On network failure, non-success status, or a response without a CID.
        OperationCancelled
            If *timeout* elapses first.
        """
        token = self._config.token()
        if not token:
            raise StoreAuthError(
                "Pinata JWT missing (set CREDENTIAL_ANCHOR_STORE_TOKEN or PINATA_JWT)."
            )

        metadata = {
            "name": self._config.display_name,
            "keyvalues": {"digest": idempotency_hint},
        }
        body = (
            b'{"pinataContent":'
            + canonical
            + b',"pinataMetadata":'
            + json.dumps(metadata, separators=(",", ":")).encode("utf-8")
            + b"}"
        )
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

        async with deadline(timeout, "Upload"):
            try:
                response = await self._client.post(
                    self._config.store_endpoint, content=body, headers=headers
                )
            except httpx.HTTPError as exc:
                raise StoreUnavailable(f"Pinata upload failed: {exc}") from exc

        data = _json_or_none(response)
        if response.status_code in _AUTH_STATUSES:
            raise StoreAuthError(f"Pinata upload failed: {_error_detail(data, response)}")
        if not response.is_success:
            raise StoreUnavailable(f"Pinata upload failed: {_error_detail(data, response)}")

        cid = data.get("IpfsHash") if isinstance(data, dict) else None
        if not isinstance(cid, str) or not cid:
            raise StoreUnavailable("Unexpected Pinata response: no IpfsHash returned.")

        logger.info("Pinned credential %s as %s", idempotency_hint, cid)
        return cid

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def gateway_urls(self, cid: str) -> list[str]:
        """Return the ordered retrieval URLs for *cid*."""
        return list(iter_gateway_urls(self._config.gateways, cid))

    async def fetch(self, cid: str, timeout: float | None = None) -> bytes:
        """Retrieve the bytes stored under *cid*.

        Gateways are tried strictly in configured order, one attempt each.
        A non-success status, transport error, or a body that is not a JSON
        object moves on to the next gateway.

        Parameters
        ----------
        cid:
            Content identifier to retrieve.
        timeout:
            Overall deadline in seconds across all gateways.

        Returns
        -------
        bytes
            The raw payload from the first gateway that succeeded.

        Raises
        ------
        InvalidDocument
            If *cid* is empty.
        ContentUnavailable
            If every gateway failed.
        OperationCancelled
            If *timeout* elapses; remaining gateways are abandoned.
        """
        cid = cid.strip()
        if not cid:
            raise InvalidDocument("CID is empty.")

        try:
            async with deadline(timeout, f"Fetch of {cid}"):
                return await self._fetch_in_order(cid)
        except asyncio.CancelledError:
            logger.info("Fetch of %s cancelled; remaining gateways abandoned", cid)
            raise

    def _attempts(self, cid: str) -> Iterator[str]:
        return iter_gateway_urls(self._config.gateways, cid)

    async def _fetch_in_order(self, cid: str) -> bytes:
        attempted: list[str] = []
        last_error: Exception | None = None
        for url in self._attempts(cid):
            attempted.append(url)
            try:
                payload = await self._fetch_one(url)
            except (httpx.HTTPError, MalformedPayload) as exc:
                logger.debug("Gateway %s failed for %s: %s", url, cid, exc)
                last_error = exc
                continue
            logger.debug("Fetched %s from %s", cid, url)
            return payload

        logger.warning("All %d gateways failed for %s", len(attempted), cid)
        raise ContentUnavailable(cid, attempted, last_error)

    async def _fetch_one(self, url: str) -> bytes:
        response = await self._client.get(url)
        response.raise_for_status()
        payload = response.content
        try:
            parsed = json.loads(payload)
        except ValueError as exc:
            raise MalformedPayload(f"{url} did not return JSON") from exc
        if not isinstance(parsed, dict):
            raise MalformedPayload(f"{url} did not return a JSON object")
        return payload
