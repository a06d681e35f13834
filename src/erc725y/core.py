"""ERC725Y facade — the public entry point.

Responsibilities:
1. Resolve names/keys to schema descriptors (SchemaRegistry)
2. Read raw entries from the store, batching non-array keys into one call
3. Complete array entries (ArrayAssembler)
4. Decode values (codec)
5. Optionally fetch + authenticate external content (ExternalResolver)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from eth_utils import is_address

from erc725y.arrays import ArrayAssembler
from erc725y.codec import decode_data, decode_value, encode_data, flatten_encoded
from erc725y.config import CodecConfig
from erc725y.errors import DecodingError, KeyDerivationError, StoreUnavailableError
from erc725y.keys import encode_key_name, normalize_key
from erc725y.providers.base import ContentFetcher, StoreReader, StoreWriter
from erc725y.providers.http import AiohttpContentFetcher
from erc725y.registry import SchemaInput, SchemaRegistry
from erc725y.resolver import ExternalResolver
from erc725y.schema import ExternalReference, KeyValue, SchemaDescriptor

logger = logging.getLogger(__name__)


class ERC725Y:
    """Schema-driven, typed access to one ERC725Y key/value store."""

    def __init__(
        self,
        schemas: Iterable[SchemaInput] = (),
        address: str | None = None,
        provider: StoreReader | None = None,
        config: CodecConfig | None = None,
        fetcher: ContentFetcher | None = None,
    ) -> None:
        self.config = config or CodecConfig()
        self.registry = SchemaRegistry.from_config(self.config, schemas or ())
        if not len(self.registry):
            raise ValueError("Missing schema.")
        self.address = address
        self.provider = provider
        self._fetcher = fetcher
        self._owns_fetcher = fetcher is None

    # ── Store access ─────────────────────────────────────────

    def _require_store(self) -> tuple[str, StoreReader]:
        if not self.address or not is_address(self.address):
            raise StoreUnavailableError("Missing ERC725Y contract address.")
        if self.provider is None:
            raise StoreUnavailableError("Missing provider.")
        return self.address, self.provider

    def _get_resolver(self) -> ExternalResolver:
        if self._fetcher is None:
            self._fetcher = AiohttpContentFetcher(timeout=self.config.fetch.timeout)
        return ExternalResolver(self._fetcher, self.config.fetch.ipfs_gateway)

    # ── Reading ──────────────────────────────────────────────

    async def get_data(self, names: str | Sequence[str] | None = None) -> Any:
        """Decoded on-store data for one name (bare value) or many (mapping).

        Without arguments, reads every concrete schema supplied at construction.
        """
        if names is None:
            names = [d.name for d in self.registry.descriptors if not d.is_dynamic]
        if isinstance(names, str):
            return await self.get_single(names)
        return await self.get_multiple(names)

    async def get_single(self, name: str) -> Any:
        """Read and decode one entry. Raises SchemaNotFoundError for unknown names."""
        descriptor = self.registry.resolve(name)
        address, provider = self._require_store()
        if descriptor.is_dynamic:
            raise KeyDerivationError(f"{descriptor.name} has dynamic key parts; pass concrete values")

        raw = await provider.get_raw_value(address, descriptor.key)
        if descriptor.is_array:
            assembler = ArrayAssembler(provider, address, self.config.fetch.max_array_length)
            return await assembler.read(descriptor, {descriptor.key: raw})
        return decode_value(descriptor, raw)

    async def get_multiple(self, names: Sequence[str]) -> dict[str, Any]:
        """Read and decode many entries; unknown names map to None."""
        address, provider = self._require_store()
        descriptors = self.registry.resolve_many(names)

        readable: dict[str, SchemaDescriptor] = {}
        for name, descriptor in descriptors.items():
            if descriptor is None:
                continue
            if descriptor.is_dynamic:
                logger.warning("%s has dynamic key parts; pass concrete values", name)
                continue
            readable[name] = descriptor

        # One batched read for every requested key
        keys = list(dict.fromkeys(d.key for d in readable.values()))
        snapshot: dict[str, bytes | None] = {}
        if keys:
            logger.debug("Reading %d keys from %s", len(keys), address)
            for entry in await provider.get_raw_values(address, keys):
                snapshot[normalize_key(entry.key)] = entry.value

        assembler = ArrayAssembler(provider, address, self.config.fetch.max_array_length)
        array_names = [name for name, d in readable.items() if d.is_array]
        assembled = await asyncio.gather(
            *(assembler.assemble(readable[name], snapshot) for name in array_names)
        )
        array_entries = dict(zip(array_names, assembled))

        results: dict[str, Any] = {}
        for name in descriptors:
            descriptor = readable.get(name)
            if descriptor is None:
                results[name] = None
                continue
            raw = array_entries[name] if descriptor.is_array else snapshot.get(descriptor.key)
            try:
                results[name] = decode_value(
                    descriptor, raw, max_array_length=self.config.fetch.max_array_length
                )
            except DecodingError as e:
                logger.warning("Failed to decode %s: %s", name, e)
                results[name] = None
        return results

    async def fetch_data(self, names: str | Sequence[str] | None = None) -> Any:
        """Like get_data, with JSONURL/ASSETURL values replaced by their verified content.

        Content whose hash does not match resolves to None. Fetch failures raise
        ExternalFetchError.
        """
        single = isinstance(names, str)
        data = await self.get_data([names] if single else names)

        references = {
            name: value for name, value in data.items() if isinstance(value, ExternalReference)
        }
        fetched = await self._get_resolver().resolve_many(references) if references else {}
        results = {**data, **fetched}

        if single:
            return results.get(names)
        return results

    # ── Schemas ──────────────────────────────────────────────

    def get_schema(
        self, key_or_keys: str | Sequence[str], extra: Iterable[SchemaInput] | None = None
    ) -> SchemaDescriptor | dict[str, SchemaDescriptor | None]:
        if isinstance(key_or_keys, str):
            return self.registry.resolve(key_or_keys, extra or ())
        return self.registry.resolve_many(key_or_keys, extra or ())

    @staticmethod
    def encode_key_name(name: str) -> str:
        return encode_key_name(name)

    # ── Encoding / writing ───────────────────────────────────

    def encode_data(
        self, data: Mapping[str, Any], extra: Iterable[SchemaInput] | None = None
    ) -> list[KeyValue]:
        return encode_data(data, self.registry, extra or ())

    def decode_data(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return decode_data(data, self.registry)

    async def set_data(self, data: Mapping[str, Any]) -> list[KeyValue]:
        """Encode ``data`` and write all resulting entries in one batch."""
        address, provider = self._require_store()
        if not isinstance(provider, StoreWriter):
            raise StoreUnavailableError("Provider does not support writes.")
        entries = self.encode_data(data)
        keys, values = flatten_encoded(entries)
        await provider.set_raw_values(address, keys, values)
        logger.info("Wrote %d entries to %s", len(entries), address)
        return entries

    # ── Lifecycle ─────────────────────────────────────────────

    async def close(self) -> None:
        """Close the content fetcher if this instance created it."""
        if self._owns_fetcher and self._fetcher is not None:
            close = getattr(self._fetcher, "close", None)
            if close and callable(close):
                await close()

    async def __aenter__(self) -> ERC725Y:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
