"""Schema registry — validated descriptors and key/name resolution.

Lookup precedence (first match wins):
1. descriptors supplied with the call
2. descriptors supplied at construction
3. entries from configured schema files
4. built-in LSP schemas shipped in ``erc725y/schemas/``
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING, Any

from erc725y.errors import KeyDerivationError, SchemaNotFoundError, SchemaRejected
from erc725y.keys import encode_key_name, is_data_key
from erc725y.schema import SchemaDescriptor

if TYPE_CHECKING:
    from erc725y.config import CodecConfig

logger = logging.getLogger(__name__)

SchemaInput = SchemaDescriptor | Mapping[str, Any]


def load_schema_file(path: Path) -> list[dict]:
    """Read a JSON schema file: a list of entries or ``{"schemas": [...]}``."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, Mapping):
        data = data.get("schemas", [])
    if not isinstance(data, list):
        raise SchemaRejected(f"Schema file {path} must contain a list of schemas")
    return data


def builtin_schemas() -> list[dict]:
    """All schema entries bundled with the package, in file-name order."""
    entries: list[dict] = []
    folder = resources.files("erc725y").joinpath("schemas")
    for item in sorted(folder.iterdir(), key=lambda p: p.name):
        if item.name.endswith(".json"):
            entries.extend(json.loads(item.read_text(encoding="utf-8")))
    return entries


class SchemaRegistry:
    """Ordered, immutable collection of validated schema descriptors."""

    def __init__(
        self,
        descriptors: Iterable[SchemaInput] = (),
        builtins: Iterable[SchemaInput] = (),
        file_entries: Iterable[SchemaInput] = (),
    ) -> None:
        # Supplied entries: a later duplicate replaces an earlier one.
        supplied = self.register(descriptors, replace_duplicates=True)
        # Schema-file entries: the first wins, and never over a supplied key.
        taken = {d.key for d in supplied}
        from_files = []
        for descriptor in self.register(file_entries):
            if descriptor.key in taken:
                logger.warning(
                    "Schema %s from file ignored, key %s was supplied directly",
                    descriptor.name,
                    descriptor.key,
                )
                continue
            from_files.append(descriptor)
        self._descriptors = tuple([*supplied, *from_files])
        self._builtins = tuple(self.register(builtins))

    @classmethod
    def from_config(
        cls, config: CodecConfig, descriptors: Iterable[SchemaInput] = ()
    ) -> SchemaRegistry:
        file_entries: list[dict] = []
        for path in config.schema_paths:
            file_entries.extend(load_schema_file(path))
        builtins = builtin_schemas() if config.load_builtin_schemas else []
        return cls(descriptors, builtins, file_entries)

    @property
    def descriptors(self) -> tuple[SchemaDescriptor, ...]:
        """Descriptors supplied at construction (built-ins excluded)."""
        return self._descriptors

    @property
    def builtins(self) -> tuple[SchemaDescriptor, ...]:
        return self._builtins

    # ── Registration ──────────────────────────────────────────

    @staticmethod
    def register(
        candidates: Iterable[SchemaInput], *, replace_duplicates: bool = False
    ) -> list[SchemaDescriptor]:
        """Validate candidates and return the accepted ones, in order.

        Malformed entries and entries whose key is not the hash of their name
        are logged and skipped. For duplicate keys the first entry wins unless
        ``replace_duplicates`` is set, in which case the last one does.
        """
        accepted: dict[str, SchemaDescriptor] = {}
        for candidate in candidates:
            try:
                descriptor = SchemaDescriptor.from_dict(candidate)
                valid = descriptor.has_valid_key()
            except (SchemaRejected, KeyDerivationError) as e:
                logger.warning("Schema skipped: %s", e)
                continue

            if not valid:
                logger.warning(
                    "The schema with keyName: %s is skipped because its key hash does not "
                    "match its key name (expected: %s, got: %s).",
                    descriptor.name,
                    encode_key_name(descriptor.name),
                    descriptor.key,
                )
                continue

            if descriptor.key in accepted:
                if not replace_duplicates:
                    logger.warning("Duplicate schema key %s (%s) ignored", descriptor.key, descriptor.name)
                    continue
                del accepted[descriptor.key]
            accepted[descriptor.key] = descriptor
        return list(accepted.values())

    # ── Resolution ────────────────────────────────────────────

    def _effective(self, extra: Iterable[SchemaInput]) -> list[SchemaDescriptor]:
        extra_list = list(extra or ())
        supplied = self.register(extra_list) if extra_list else []
        return [*supplied, *self._descriptors, *self._builtins]

    def find(self, key_or_name: str, extra: Iterable[SchemaInput] = ()) -> SchemaDescriptor | None:
        """First descriptor matching ``key_or_name``, or None."""
        return self._search(key_or_name, self._effective(extra))

    @staticmethod
    def _search(key_or_name: str, effective: list[SchemaDescriptor]) -> SchemaDescriptor | None:
        by_key = is_data_key(key_or_name)
        needle = key_or_name.lower() if by_key else key_or_name

        for descriptor in effective:
            if by_key:
                if descriptor.key == needle:
                    return descriptor
                concrete = descriptor.concrete_for_key(needle)
            else:
                if descriptor.name == needle:
                    return descriptor
                concrete = descriptor.concrete_for_name(needle)
            if concrete is not None:
                return concrete
        return None

    def resolve(self, key_or_name: str, extra: Iterable[SchemaInput] = ()) -> SchemaDescriptor:
        """Like find(), but raise SchemaNotFoundError when nothing matches."""
        descriptor = self.find(key_or_name, extra)
        if descriptor is None:
            raise SchemaNotFoundError(key_or_name)
        return descriptor

    def resolve_many(
        self, keys_or_names: Sequence[str], extra: Iterable[SchemaInput] = ()
    ) -> dict[str, SchemaDescriptor | None]:
        """Resolve each entry independently; unknown entries map to None."""
        effective = self._effective(extra)
        results: dict[str, SchemaDescriptor | None] = {}
        for key_or_name in keys_or_names:
            descriptor = self._search(key_or_name, effective)
            if descriptor is None:
                logger.warning("No schema found for %s", key_or_name)
            results[key_or_name] = descriptor
        return results

    def __len__(self) -> int:
        return len(self._descriptors) + len(self._builtins)

    def __iter__(self):
        return iter((*self._descriptors, *self._builtins))
