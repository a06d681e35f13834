"""Value codec: typed values <-> raw store bytes (pure, no I/O).

Decoding happens in two layers:
- valueType fixes the binary layout (width, tuple split, ABI array)
- valueContent fixes the meaning (Number, Address, String, JSONURL, ...)

Unset values (None or empty bytes) decode to a neutral value and never raise.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Union

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError as ABIDecodingError
from eth_abi.exceptions import EncodingError as ABIEncodingError
from eth_utils import is_address, to_checksum_address

from erc725y import hashing
from erc725y.errors import DecodingError, EncodingError
from erc725y.keys import MAX_ARRAY_INDEX, encode_array_key, normalize_key
from erc725y.schema import EXTERNAL_CONTENTS, ExternalReference, KeyValue, SchemaDescriptor, split_tuple

if TYPE_CHECKING:
    from erc725y.registry import SchemaRegistry

logger = logging.getLogger(__name__)

ARRAY_LENGTH_BYTES = 32
# Largest array length read from a store unless configured otherwise
MAX_ARRAY_LENGTH = 10_000
URL_DATA_PREFIX_BYTES = 4 + 32

_INT_RE = re.compile(r"^(u?)int(\d*)$")
_BYTES_N_RE = re.compile(r"^bytes(\d+)$")

_TEXT_CONTENTS = frozenset({"string", "url", "markdown"})
_HEX_CONTENTS = frozenset({"bytes", "keccak256", "bitarray"})

RawValue = Union[bytes, None, Sequence[KeyValue]]


# ── Binary layout helpers ─────────────────────────────────────


def _type_width(value_type: str) -> int | None:
    """Fixed byte width of a primitive valueType, None for dynamic types."""
    if value_type == "bool":
        return 1
    if value_type == "address":
        return 20
    match = _INT_RE.match(value_type)
    if match:
        return int(match.group(2) or 256) // 8
    match = _BYTES_N_RE.match(value_type)
    if match:
        return int(match.group(1))
    return None


def _content_width(content: str) -> int | None:
    if content == "keccak256":
        return 32
    match = _BYTES_N_RE.match(content)
    return int(match.group(1)) if match else None


def _to_bytes(field: str, value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and value.startswith("0x"):
        try:
            return bytes.fromhex(value[2:])
        except ValueError:
            pass
    raise EncodingError(field, f"expected bytes or 0x-hex string, got {value!r}")


def encode_array_length(length: int) -> bytes:
    return length.to_bytes(ARRAY_LENGTH_BYTES, "big")


def decode_array_length(field: str, raw: bytes | None, max_length: int = MAX_ARRAY_LENGTH) -> int:
    """Element count stored in an array length entry.

    Raises DecodingError for lengths above ``max_length`` or the number of
    addressable element keys.
    """
    if not raw:
        return 0
    if len(raw) > ARRAY_LENGTH_BYTES:
        raise DecodingError(field, f"array length entry is {len(raw)} bytes")
    length = int.from_bytes(raw, "big")
    limit = min(max_length, MAX_ARRAY_INDEX + 1)
    if length > limit:
        raise DecodingError(field, f"array length {length} exceeds the limit of {limit}")
    return length


# ── Scalars ───────────────────────────────────────────────────


def _encode_scalar(field: str, value_type: str, content: str, value: Any) -> bytes:
    c = content.lower()
    width = _type_width(value_type)

    if c == "number":
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise EncodingError(field, f"expected an integer, got {value!r}")
        try:
            number = int(value, 0) if isinstance(value, str) else value
            return number.to_bytes(width or 32, "big", signed=value_type.startswith("int"))
        except (ValueError, OverflowError):
            raise EncodingError(field, f"{value!r} does not fit {value_type}")

    if c == "boolean":
        if not isinstance(value, bool):
            raise EncodingError(field, f"expected a bool, got {value!r}")
        return (b"\x01" if value else b"\x00").rjust(width or 1, b"\x00")

    if c == "address":
        if not isinstance(value, str) or not is_address(value):
            raise EncodingError(field, f"expected an address, got {value!r}")
        return bytes.fromhex(value[2:])

    if c in _TEXT_CONTENTS:
        if not isinstance(value, str):
            raise EncodingError(field, f"expected a string, got {value!r}")
        return value.encode("utf-8")

    if c in _HEX_CONTENTS or _BYTES_N_RE.match(c):
        raw = _to_bytes(field, value)
        expected = _content_width(c) or width
        if expected is not None and len(raw) != expected:
            raise EncodingError(field, f"expected {expected} bytes, got {len(raw)}")
        return raw

    if c in EXTERNAL_CONTENTS:
        return _encode_url_data(field, c, value)

    if c.startswith("0x"):
        literal = _to_bytes(field, c)
        if value is not None and _to_bytes(field, value) != literal:
            raise EncodingError(field, f"value must equal {content}")
        return literal

    raise EncodingError(field, f"unsupported valueContent {content!r}")


def _neutral(content: str) -> Any:
    c = content.lower()
    if c == "number":
        return 0
    if c == "boolean":
        return False
    if c in _TEXT_CONTENTS:
        return ""
    if split_tuple(content) is not None:
        return ()
    return None


def _decode_scalar(field: str, value_type: str, content: str, raw: bytes | None) -> Any:
    if not raw:
        return _neutral(content)
    c = content.lower()

    if c == "number":
        if len(raw) > 32:
            raise DecodingError(field, f"{len(raw)} bytes is too wide for a number")
        return int.from_bytes(raw, "big", signed=value_type.startswith("int"))

    if c == "boolean":
        return any(raw)

    if c == "address":
        if len(raw) == 32 and not any(raw[:12]):
            raw = raw[12:]
        if len(raw) != 20:
            raise DecodingError(field, f"address must be 20 bytes, got {len(raw)}")
        return to_checksum_address(raw)

    if c in _TEXT_CONTENTS:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodingError(field, f"invalid UTF-8: {e}") from e

    if c in _HEX_CONTENTS or _BYTES_N_RE.match(c):
        return "0x" + raw.hex()

    if c in EXTERNAL_CONTENTS:
        return _decode_url_data(field, raw)

    if c.startswith("0x"):
        value = "0x" + raw.hex()
        if value != c:
            logger.debug("Value of %s does not match literal %s", field, content)
            return None
        return value

    raise DecodingError(field, f"unsupported valueContent {content!r}")


# ── JSONURL / ASSETURL ────────────────────────────────────────


def _encode_url_data(field: str, content: str, value: Any) -> bytes:
    """Pack ``[4-byte selector][32-byte hash][utf8 url]``."""
    if isinstance(value, ExternalReference):
        hash_function, content_hash, url = value.hash_function, value.hash, value.url
    elif isinstance(value, Mapping):
        url = value.get("url")
        if "json" in value:
            hash_function = hashing.KECCAK256_UTF8
            content_hash = hashing.digest(hash_function, value["json"])
        elif "content" in value:
            hash_function = hashing.KECCAK256_BYTES
            content_hash = hashing.digest(hash_function, _to_bytes(field, value["content"]))
        else:
            hash_function = value.get("hashFunction")
            content_hash = value.get("hash")
    else:
        raise EncodingError(field, f"expected a {content.upper()} mapping, got {value!r}")

    if not isinstance(url, str):
        raise EncodingError(field, "missing url")
    selector = hashing.selector_for(hash_function) if isinstance(hash_function, str) else None
    if selector is None:
        raise EncodingError(field, f"unsupported hash function {hash_function!r}")
    if content_hash is None:
        raise EncodingError(field, "missing hash")
    try:
        hash_bytes = bytes.fromhex(hashing.normalize_hash(content_hash))
    except ValueError:
        raise EncodingError(field, f"hash is not hex: {content_hash!r}")
    if len(hash_bytes) != 32:
        raise EncodingError(field, f"hash must be 32 bytes, got {len(hash_bytes)}")
    return selector + hash_bytes + url.encode("utf-8")


def _decode_url_data(field: str, raw: bytes) -> ExternalReference:
    if len(raw) < URL_DATA_PREFIX_BYTES:
        raise DecodingError(field, f"URL data must be at least {URL_DATA_PREFIX_BYTES} bytes")
    try:
        url = raw[URL_DATA_PREFIX_BYTES:].decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodingError(field, f"invalid UTF-8 url: {e}") from e
    return ExternalReference(
        hash_function=hashing.hash_function_from_selector(raw[:4]),
        hash="0x" + raw[4:URL_DATA_PREFIX_BYTES].hex(),
        url=url,
    )


# ── Tuples ────────────────────────────────────────────────────


def _encode_tuple(field: str, types: list[str], contents: list[str], value: Any) -> bytes:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or len(value) != len(types):
        raise EncodingError(field, f"expected a sequence of {len(types)} values, got {value!r}")
    parts = []
    for position, (value_type, content, item) in enumerate(zip(types, contents, value)):
        width = _type_width(value_type)
        if width is None and position != len(types) - 1:
            raise EncodingError(field, f"dynamic type {value_type} must be the last tuple member")
        raw = _encode_scalar(field, value_type, content, item)
        if width is not None and len(raw) != width:
            raise EncodingError(field, f"tuple member {position} must be {width} bytes")
        parts.append(raw)
    return b"".join(parts)


def _decode_tuple(field: str, types: list[str], contents: list[str], raw: bytes | None) -> tuple:
    if not raw:
        return ()
    widths = [_type_width(t) for t in types]
    if None in widths[:-1]:
        raise DecodingError(field, "only the last tuple member may be dynamic")
    fixed = sum(w for w in widths if w is not None)
    dynamic_tail = bool(widths) and widths[-1] is None
    if (dynamic_tail and len(raw) < fixed) or (not dynamic_tail and len(raw) != fixed):
        raise DecodingError(field, f"tuple needs {fixed} bytes, got {len(raw)}")

    values = []
    offset = 0
    for value_type, content, width in zip(types, contents, widths):
        end = len(raw) if width is None else offset + width
        values.append(_decode_scalar(field, value_type, content, raw[offset:end]))
        offset = end
    return tuple(values)


# ── ABI-encoded array values (Singleton with T[] valueType) ───


def _abi_item(field: str, content: str, item: Any) -> Any:
    c = content.lower()
    if c == "number":
        if isinstance(item, bool) or not isinstance(item, int):
            raise EncodingError(field, f"expected an integer, got {item!r}")
        return item
    if c == "boolean":
        if not isinstance(item, bool):
            raise EncodingError(field, f"expected a bool, got {item!r}")
        return item
    if c == "address":
        if not isinstance(item, str) or not is_address(item):
            raise EncodingError(field, f"expected an address, got {item!r}")
        return to_checksum_address(item)
    if c in _TEXT_CONTENTS:
        if not isinstance(item, str):
            raise EncodingError(field, f"expected a string, got {item!r}")
        return item
    return _to_bytes(field, item)


def _encode_abi_array(field: str, value_type: str, content: str, value: Any) -> bytes:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise EncodingError(field, f"expected a list, got {value!r}")
    items = [_abi_item(field, content, item) for item in value]
    try:
        return abi_encode([value_type], [items])
    except (ABIEncodingError, TypeError, ValueError) as e:
        raise EncodingError(field, str(e)) from e


def _decode_abi_array(field: str, value_type: str, raw: bytes | None) -> list:
    if not raw:
        return []
    try:
        (items,) = abi_decode([value_type], raw)
    except ABIDecodingError as e:
        raise DecodingError(field, str(e)) from e
    return ["0x" + item.hex() if isinstance(item, bytes) else item for item in items]


# ── Public API ────────────────────────────────────────────────


def _encode_single(field: str, value_type: str, content: str, value: Any) -> bytes:
    types = split_tuple(value_type)
    if types is not None:
        return _encode_tuple(field, types, split_tuple(content) or [], value)
    if value_type.endswith("[]"):
        return _encode_abi_array(field, value_type, content, value)
    return _encode_scalar(field, value_type, content, value)


def _decode_single(field: str, value_type: str, content: str, raw: bytes | None) -> Any:
    types = split_tuple(value_type)
    if types is not None:
        return _decode_tuple(field, types, split_tuple(content) or [], raw)
    if value_type.endswith("[]"):
        return _decode_abi_array(field, value_type, raw)
    return _decode_scalar(field, value_type, content, raw)


def encode_value(descriptor: SchemaDescriptor, value: Any) -> KeyValue | list[KeyValue]:
    """Encode one value. Array layouts expand to a length entry plus elements."""
    if descriptor.is_dynamic:
        raise EncodingError(descriptor.name, "dynamic key name needs concrete values")

    if not descriptor.is_array:
        raw = _encode_single(descriptor.name, descriptor.value_type, descriptor.value_content, value)
        return KeyValue(descriptor.key, raw)

    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise EncodingError(descriptor.name, f"expected a list, got {value!r}")
    entries = [KeyValue(descriptor.key, encode_array_length(len(value)))]
    for index, item in enumerate(value):
        raw = _encode_single(
            descriptor.name, descriptor.element_value_type, descriptor.value_content, item
        )
        entries.append(KeyValue(encode_array_key(descriptor.key, index), raw))
    return entries


def decode_value(
    descriptor: SchemaDescriptor, raw: RawValue, *, max_array_length: int = MAX_ARRAY_LENGTH
) -> Any:
    """Decode raw bytes (or, for arrays, length + element entries)."""
    if descriptor.is_array:
        return _decode_array(descriptor, raw, max_array_length)
    if raw is not None and not isinstance(raw, (bytes, bytearray)):
        raise DecodingError(descriptor.name, f"expected bytes, got {type(raw).__name__}")
    return _decode_single(descriptor.name, descriptor.value_type, descriptor.value_content, raw)


def _decode_array(descriptor: SchemaDescriptor, raw: RawValue, max_length: int) -> list:
    # A bare length entry carries no elements.
    if raw is None or isinstance(raw, (bytes, bytearray)):
        return []

    by_key = {normalize_key(entry.key): entry.value for entry in raw}
    length = decode_array_length(descriptor.name, by_key.get(descriptor.key), max_length)
    element_keys = [encode_array_key(descriptor.key, index) for index in range(length)]
    if not any(key in by_key for key in element_keys):
        return []
    return [
        _decode_single(
            descriptor.name, descriptor.element_value_type, descriptor.value_content, by_key.get(key)
        )
        for key in element_keys
    ]


# ── Batch helpers ─────────────────────────────────────────────


def _as_registry(schemas: SchemaRegistry | Iterable[SchemaDescriptor | Mapping]) -> SchemaRegistry:
    from erc725y.registry import SchemaRegistry

    return schemas if isinstance(schemas, SchemaRegistry) else SchemaRegistry(schemas)


def _coerce_raw(raw: Any) -> RawValue:
    """Accept bytes, 0x-hex strings, or lists of {key, value} entries."""
    if raw is None or isinstance(raw, (bytes, bytearray)):
        return raw
    if isinstance(raw, str):
        return bytes.fromhex(raw[2:] if raw.startswith("0x") else raw)
    entries = []
    for entry in raw:
        if isinstance(entry, KeyValue):
            entries.append(entry)
        else:
            entries.append(KeyValue(entry["key"], _coerce_raw(entry.get("value"))))
    return entries


def encode_data(
    data: Mapping[str, Any],
    schemas: SchemaRegistry | Iterable[SchemaDescriptor | Mapping],
    extra: Iterable[SchemaDescriptor | Mapping] = (),
) -> list[KeyValue]:
    """Encode ``{name: value}`` into a flat list of store entries.

    Unknown names raise SchemaNotFoundError; nothing is partially encoded.
    """
    registry = _as_registry(schemas)
    entries: list[KeyValue] = []
    for name, value in data.items():
        encoded = encode_value(registry.resolve(name, extra), value)
        entries.extend(encoded if isinstance(encoded, list) else [encoded])
    return entries


def decode_data(
    data: Mapping[str, Any],
    schemas: SchemaRegistry | Iterable[SchemaDescriptor | Mapping],
) -> dict[str, Any]:
    """Decode ``{key or name: raw}`` into ``{name: value}``.

    Entries without a schema, or whose bytes do not decode, map to None.
    """
    registry = _as_registry(schemas)
    results: dict[str, Any] = {}
    for key_or_name, raw in data.items():
        descriptor = registry.find(key_or_name)
        if descriptor is None:
            logger.warning("No schema for %s, skipping decode", key_or_name)
            results[key_or_name] = None
            continue
        try:
            results[descriptor.name] = decode_value(descriptor, _coerce_raw(raw))
        except ValueError as e:
            logger.warning("Failed to decode %s: %s", descriptor.name, e)
            results[descriptor.name] = None
    return results


def flatten_encoded(entries: Iterable[KeyValue]) -> tuple[list[str], list[bytes | None]]:
    """Split entries into parallel key/value lists for a setData call."""
    keys: list[str] = []
    values: list[bytes | None] = []
    for entry in entries:
        keys.append(entry.key)
        values.append(entry.value)
    return keys, values

