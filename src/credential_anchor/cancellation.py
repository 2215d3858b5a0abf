"""Deadline handling shared by every network-bound call."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from credential_anchor.errors import OperationCancelled

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def deadline(seconds: float | None, operation: str) -> AsyncIterator[None]:
    """Bound the enclosed block to *seconds*, surfacing expiry as a cancellation.

    ``None`` disables the deadline. Expiry raises
    :class:`~credential_anchor.errors.OperationCancelled`; cancellation of
    the surrounding task propagates untouched as ``asyncio.CancelledError``.
    """
    try:
        async with asyncio.timeout(seconds):
            yield
    except TimeoutError as exc:
        logger.warning("%s abandoned after %.2fs deadline", operation, seconds)
        raise OperationCancelled(f"{operation} abandoned after {seconds}s deadline.") from exc
