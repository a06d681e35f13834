"""External content resolution for JSONURL / ASSETURL values.

Fetched content is only returned when its digest matches the hash stored
on-chain. Mismatches and unsupported hash functions resolve to None; transport
failures raise ExternalFetchError.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from erc725y import hashing
from erc725y.hashing import Verification
from erc725y.providers.base import ContentFetcher
from erc725y.schema import ExternalReference

logger = logging.getLogger(__name__)

IPFS_SCHEME = "ipfs://"


def normalize_ipfs_gateway(gateway: str) -> str:
    """Make sure the gateway URL ends with ``/ipfs/``."""
    if gateway.endswith("/ipfs/"):
        return gateway
    if gateway.endswith("/ipfs"):
        return gateway + "/"
    if gateway.endswith("/"):
        return gateway + "ipfs/"
    return gateway + "/ipfs/"


def patch_ipfs_url(url: str, gateway: str) -> str:
    """``ipfs://Qm...`` -> ``<gateway>Qm...``; other URLs are returned unchanged."""
    if url.startswith(IPFS_SCHEME):
        return gateway + url[len(IPFS_SCHEME) :]
    return url


class ExternalResolver:
    """Fetches and authenticates content behind external references."""

    def __init__(self, fetcher: ContentFetcher, ipfs_gateway: str) -> None:
        self._fetcher = fetcher
        self.ipfs_gateway = normalize_ipfs_gateway(ipfs_gateway)

    async def resolve(self, reference: ExternalReference | None) -> Any | None:
        if reference is None:
            return None
        if not hashing.is_supported(reference.hash_function):
            logger.warning(
                "Unsupported hash function %r for %s, not fetching",
                reference.hash_function,
                reference.url,
            )
            return None

        url = patch_ipfs_url(reference.url, self.ipfs_gateway)
        if hashing.is_byte_oriented(reference.hash_function):
            content = await self._fetcher.fetch_bytes(url)
        else:
            content = await self._fetcher.fetch_json(url)

        outcome = hashing.verify(content, reference.hash, reference.hash_function)
        if outcome is not Verification.AUTHENTIC:
            logger.warning("Content at %s failed hash verification (%s)", url, outcome.value)
            return None
        return content

    async def resolve_many(
        self, references: Mapping[str, ExternalReference | None]
    ) -> dict[str, Any | None]:
        """Resolve independent references concurrently.

        The first fetch error propagates after the remaining fetches are cancelled.
        """
        names = list(references)
        if not names:
            return {}
        tasks = [asyncio.ensure_future(self.resolve(references[name])) for name in names]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for task in tasks:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()
        return {name: task.result() for name, task in zip(names, tasks)}
