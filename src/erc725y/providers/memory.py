"""In-memory ERC725Y store, for local use and tests."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from erc725y.keys import normalize_key
from erc725y.schema import KeyValue

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Dict-backed store implementing StoreReader and StoreWriter.

    ``read_calls`` counts round trips, so batching can be observed.
    """

    def __init__(self, data: Mapping[str, Mapping[str, bytes]] | None = None) -> None:
        self._data: dict[str, dict[str, bytes]] = {}
        self.read_calls = 0
        for address, entries in (data or {}).items():
            self._data[address.lower()] = {normalize_key(k): v for k, v in entries.items()}

    async def get_raw_value(self, address: str, key: str) -> bytes | None:
        self.read_calls += 1
        return self._data.get(address.lower(), {}).get(normalize_key(key))

    async def get_raw_values(self, address: str, keys: Sequence[str]) -> list[KeyValue]:
        self.read_calls += 1
        entries = self._data.get(address.lower(), {})
        logger.debug("Batched read of %d keys from %s", len(keys), address)
        return [KeyValue(normalize_key(k), entries.get(normalize_key(k))) for k in keys]

    async def set_raw_values(
        self, address: str, keys: Sequence[str], values: Sequence[bytes | None]
    ) -> None:
        if len(keys) != len(values):
            raise ValueError(f"Got {len(keys)} keys but {len(values)} values")
        entries = self._data.setdefault(address.lower(), {})
        for key, value in zip(keys, values):
            if value:
                entries[normalize_key(key)] = bytes(value)
            else:
                entries.pop(normalize_key(key), None)
