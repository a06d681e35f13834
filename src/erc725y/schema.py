"""Schema descriptor and key/value types shared by all layers."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from erc725y.errors import SchemaRejected
from erc725y.keys import encode_key_name, is_dynamic_key_name, match_dynamic_key, match_dynamic_name

EXTERNAL_CONTENTS = frozenset({"jsonurl", "asseturl"})

_TUPLE_RE = re.compile(r"^\((.*)\)$")


class KeyType(str, Enum):
    SINGLETON = "Singleton"
    ARRAY = "Array"
    MAPPING = "Mapping"
    MAPPING_WITH_GROUPING = "MappingWithGrouping"

    @classmethod
    def parse(cls, value: str) -> KeyType:
        for member in cls:
            if member.value.lower() == str(value).lower():
                return member
        raise SchemaRejected(f"Unknown keyType: {value!r}")


def split_tuple(type_string: str) -> list[str] | None:
    """Members of a ``(a,b,c)`` tuple type string, or None if not a tuple."""
    match = _TUPLE_RE.match(type_string.replace(" ", ""))
    if not match:
        return None
    return match.group(1).split(",") if match.group(1) else []


@dataclass(frozen=True)
class KeyValue:
    """One raw store entry. ``value=None`` means the key is unset."""

    key: str
    value: bytes | None


@dataclass(frozen=True)
class ExternalReference:
    """Decoded JSONURL / ASSETURL value pointing to off-store content."""

    hash_function: str
    hash: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"hashFunction": self.hash_function, "hash": self.hash, "url": self.url}


@dataclass(frozen=True)
class SchemaDescriptor:
    """One LSP2 schema entry: where a field is stored and how it is encoded."""

    name: str
    key: str
    key_type: KeyType
    value_type: str
    value_content: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SchemaDescriptor:
        """Build from the JSON schema form. Raises SchemaRejected if malformed."""
        if isinstance(data, SchemaDescriptor):
            return data
        if not isinstance(data, Mapping):
            raise SchemaRejected(f"Schema entry must be a mapping, got {type(data).__name__}")

        missing = [f for f in ("name", "key", "keyType", "valueType", "valueContent") if not data.get(f)]
        if missing:
            raise SchemaRejected(f"Schema {data.get('name')!r} is missing fields: {missing}")

        key_type = KeyType.parse(data["keyType"])
        name = str(data["name"])
        if key_type is KeyType.ARRAY and not name.endswith("[]"):
            raise SchemaRejected(f"Array schema name must end with '[]': {name!r}")

        value_type = str(data["valueType"]).replace(" ", "")
        value_content = str(data["valueContent"]).replace(" ", "")
        tuple_types = split_tuple(value_type)
        tuple_contents = split_tuple(value_content)
        if (tuple_types is None) != (tuple_contents is None) or (
            tuple_types is not None and len(tuple_types) != len(tuple_contents)
        ):
            raise SchemaRejected(
                f"Schema {name!r}: valueType {value_type} does not match valueContent {value_content}"
            )

        return cls(
            name=name,
            key=_lower_template(data["key"]),
            key_type=key_type,
            value_type=value_type,
            value_content=value_content,
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "key": self.key,
            "keyType": self.key_type.value,
            "valueType": self.value_type,
            "valueContent": self.value_content,
        }

    # ── Layout properties ─────────────────────────────────────

    @property
    def is_array(self) -> bool:
        """Stored as a length entry plus one entry per element."""
        if self.key_type is KeyType.ARRAY:
            return True
        return self.key_type is KeyType.MAPPING_WITH_GROUPING and self.value_type.endswith("[]")

    @property
    def element_value_type(self) -> str:
        if self.is_array and self.value_type.endswith("[]"):
            return self.value_type[:-2]
        return self.value_type

    @property
    def is_dynamic(self) -> bool:
        return is_dynamic_key_name(self.name)

    @property
    def is_external(self) -> bool:
        return self.value_content.lower() in EXTERNAL_CONTENTS

    def has_valid_key(self) -> bool:
        return _lower_template(encode_key_name(self.name)) == self.key

    # ── Dynamic keys ──────────────────────────────────────────

    def concrete_for_name(self, name: str) -> SchemaDescriptor | None:
        if not self.is_dynamic:
            return None
        concrete = match_dynamic_name(self.name, name)
        return self._with_name(concrete) if concrete else None

    def concrete_for_key(self, key: str) -> SchemaDescriptor | None:
        if not self.is_dynamic:
            return None
        concrete = match_dynamic_key(self.name, key)
        return self._with_name(concrete) if concrete else None

    def _with_name(self, name: str) -> SchemaDescriptor:
        return replace(self, name=name, key=encode_key_name(name))


def _lower_template(key: str) -> str:
    """Lowercase the hex parts of a key, leaving ``<type>`` placeholders intact."""
    parts = re.split(r"(<\w+>)", str(key))
    return "".join(part if part.startswith("<") else part.lower() for part in parts)
