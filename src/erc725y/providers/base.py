"""Collaborator protocols the codec core depends on."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from erc725y.schema import KeyValue


@runtime_checkable
class StoreReader(Protocol):
    """Read access to an ERC725Y key/value store."""

    async def get_raw_value(self, address: str, key: str) -> bytes | None:
        """Raw bytes stored at ``key``, or None if unset."""
        ...

    async def get_raw_values(self, address: str, keys: Sequence[str]) -> list[KeyValue]:
        """Batched read. Results are matched by key, not by position."""
        ...


@runtime_checkable
class StoreWriter(Protocol):
    """Write access, used to persist encoded entries."""

    async def set_raw_values(
        self, address: str, keys: Sequence[str], values: Sequence[bytes | None]
    ) -> None: ...


@runtime_checkable
class ContentFetcher(Protocol):
    """Fetches external content referenced by JSONURL / ASSETURL values.

    Implementations raise ExternalFetchError on transport failures and
    ContentNotFoundError when the endpoint has nothing at the URL.
    """

    async def fetch_bytes(self, url: str) -> bytes: ...

    async def fetch_json(self, url: str) -> Any: ...
