"""Array assembly: fill in missing element entries with one batched read.

States for one Array descriptor:
1. LengthKnown: the length entry is in the snapshot (absent -> empty)
2. GapScan: element keys 0..length-1, split into present / missing
3. FetchMissing: one get_raw_values() call for the missing keys
4. Assemble: elements in index order, plus the length entry
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from erc725y.codec import MAX_ARRAY_LENGTH, decode_array_length, decode_value
from erc725y.errors import DecodingError
from erc725y.keys import encode_array_key, normalize_key
from erc725y.providers.base import StoreReader
from erc725y.schema import KeyValue, SchemaDescriptor

logger = logging.getLogger(__name__)


class ArrayAssembler:
    """Collects the entries of array-layout descriptors from a store."""

    def __init__(self, reader: StoreReader, address: str, max_length: int = MAX_ARRAY_LENGTH) -> None:
        self._reader = reader
        self._address = address
        self._max_length = max_length

    async def assemble(
        self, descriptor: SchemaDescriptor, snapshot: Mapping[str, bytes | None]
    ) -> list[KeyValue]:
        """Return element entries (index order) followed by the length entry.

        ``snapshot`` maps keys to raw values already read. An empty list means
        the array is unset, empty, or could not be fetched.
        """
        if not descriptor.is_array:
            raise ValueError(f"{descriptor.name} is not an array schema")

        # 1. LengthKnown
        raw_length = snapshot.get(descriptor.key)
        if not raw_length:
            return []
        try:
            length = decode_array_length(descriptor.name, raw_length, self._max_length)
        except DecodingError as e:
            logger.warning("Bad length entry for %s, treating as empty: %s", descriptor.name, e)
            return []
        if length == 0:
            return []

        # 2. GapScan
        element_keys = [encode_array_key(descriptor.key, index) for index in range(length)]
        by_key: dict[str, bytes | None] = {
            key: snapshot[key] for key in element_keys if key in snapshot
        }
        missing = [key for key in element_keys if key not in by_key]

        # 3. FetchMissing
        if missing:
            try:
                fetched = await self._reader.get_raw_values(self._address, missing)
            except Exception as e:
                # A failed element read leaves the array empty
                logger.warning("Could not fetch elements of %s, treating as empty: %s", descriptor.name, e)
                return []
            for entry in fetched:
                by_key[normalize_key(entry.key)] = entry.value

        # 4. Assemble
        entries = [KeyValue(key, by_key[key]) for key in element_keys if key in by_key]
        entries.append(KeyValue(descriptor.key, raw_length))
        return entries

    async def read(self, descriptor: SchemaDescriptor, snapshot: Mapping[str, bytes | None]) -> list[Any]:
        """Assemble and decode into an ordered list of element values."""
        entries = await self.assemble(descriptor, snapshot)
        return decode_value(descriptor, entries, max_array_length=self._max_length)
