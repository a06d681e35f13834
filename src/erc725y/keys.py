"""Storage key derivation (LSP2 key layouts, no I/O).

Key names map to 32-byte keys:
- Singleton / Array:     keccak256(name)
- Mapping:               bytes10(keccak256(A)) + bytes2(0) + bytes20(B)
- MappingWithGrouping:   bytes6(keccak256(A)) + bytes4(B) + bytes2(0) + bytes20(C)

Array elements live at bytes16(arrayKey) + bytes16(uint128(index)).
Name parts written as ``<type>`` are placeholders: the derived key keeps the
placeholder text in place and is only a template until a concrete value is
substituted.
"""

from __future__ import annotations

import re

from Crypto.Hash import keccak
from eth_utils import is_address, to_checksum_address

from erc725y.errors import KeyDerivationError

KEY_BYTES = 32
ARRAY_PREFIX_BYTES = 16
ARRAY_INDEX_BYTES = 16
MAX_ARRAY_INDEX = 2 ** (8 * ARRAY_INDEX_BYTES) - 1

_KEY_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_HEX_RE = re.compile(r"^0x(?:[0-9a-fA-F]{2})+$")
_PLACEHOLDER_RE = re.compile(r"^<(\w+)>$")
_INT_TYPE_RE = re.compile(r"^(u?)int(\d+)$")

# (part index | None for zero padding, width in bytes)
_MAPPING_LAYOUT = ((0, 10), (None, 2), (1, 20))
_GROUPING_LAYOUT = ((0, 6), (1, 4), (None, 2), (2, 20))


def keccak256(data: bytes | str) -> bytes:
    """Keccak-256 digest (the pre-standard SHA-3 used by Ethereum)."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def is_data_key(value: object) -> bool:
    """True for a 0x-prefixed hex string encoding exactly 32 bytes."""
    return isinstance(value, str) and bool(_KEY_RE.match(value))


def normalize_key(key: str | bytes) -> str:
    """Return the canonical lowercase 0x-hex form of a 32-byte key."""
    if isinstance(key, (bytes, bytearray)):
        if len(key) != KEY_BYTES:
            raise KeyDerivationError(f"Key must be {KEY_BYTES} bytes, got {len(key)}")
        return "0x" + bytes(key).hex()
    if not is_data_key(key):
        raise KeyDerivationError(f"Invalid data key: {key!r}")
    return key.lower()


def is_dynamic_key_name(name: str) -> bool:
    return any(_PLACEHOLDER_RE.match(part) for part in name.split(":"))


def _layout_for(parts: list[str]) -> tuple[tuple[int | None, int], ...]:
    if len(parts) == 2:
        return _MAPPING_LAYOUT
    if len(parts) == 3:
        return _GROUPING_LAYOUT
    raise KeyDerivationError(f"Unsupported key name layout: {':'.join(parts)!r}")


def _word(part: str, width: int) -> str:
    """Key slot (hex, no 0x) for one name part."""
    if _PLACEHOLDER_RE.match(part):
        return part
    if _HEX_RE.match(part):
        raw = bytes.fromhex(part[2:])
        return raw[:width].rjust(width, b"\x00").hex()
    return keccak256(part)[:width].hex()


def encode_key_name(name: str) -> str:
    """Hash a key name into its storage key.

    Dynamic names (with ``<type>`` parts) return a key template such as
    ``0x812c4334633eb816c80d0000<address>``.
    """
    if not isinstance(name, str) or not name:
        raise KeyDerivationError(f"Key name must be a non-empty string, got {name!r}")

    if name.endswith("[]"):
        return "0x" + keccak256(name).hex()

    parts = name.split(":")
    if len(parts) == 1:
        return "0x" + keccak256(name).hex()

    if any(not part for part in parts):
        raise KeyDerivationError(f"Empty part in key name {name!r}")

    slots = []
    for index, width in _layout_for(parts):
        slots.append("00" * width if index is None else _word(parts[index], width))
    return "0x" + "".join(slots)


def encode_array_key(key: str, index: int) -> str:
    """Key of element ``index`` of the array stored at ``key``."""
    if isinstance(index, bool) or not isinstance(index, int):
        raise KeyDerivationError(f"Array index must be an int, got {index!r}")
    if index < 0 or index > MAX_ARRAY_INDEX:
        raise KeyDerivationError(f"Array index out of range: {index}")
    base = normalize_key(key)
    return base[: 2 + ARRAY_PREFIX_BYTES * 2] + index.to_bytes(ARRAY_INDEX_BYTES, "big").hex()


# ── Dynamic key parts ─────────────────────────────────────────


def _normalize_dynamic_part(type_name: str, value: str) -> str | None:
    """Canonical name-part form of a concrete value for a ``<type>`` placeholder."""
    if _PLACEHOLDER_RE.match(value):
        return None

    if type_name == "address":
        return to_checksum_address(value) if is_address(value) else None

    int_match = _INT_TYPE_RE.match(type_name)
    if int_match:
        unsigned, bits = int_match.group(1) == "u", int(int_match.group(2))
        try:
            number = int(value, 0)
        except ValueError:
            return None
        if unsigned and number < 0:
            return None
        try:
            raw = number.to_bytes(bits // 8, "big", signed=not unsigned)
        except OverflowError:
            return None
        return "0x" + raw.hex()

    if type_name == "bool":
        return {"true": "0x01", "false": "0x00"}.get(value.lower())

    if type_name.startswith("bytes"):
        return value.lower() if _HEX_RE.match(value) else None

    return value


def match_dynamic_name(template: str, name: str) -> str | None:
    """Concrete name if ``name`` fills the placeholders of ``template``, else None."""
    template_parts = template.split(":")
    parts = name.split(":")
    if len(parts) != len(template_parts) or len(parts) < 2:
        return None

    concrete = []
    for template_part, part in zip(template_parts, parts):
        if not part:
            return None
        placeholder = _PLACEHOLDER_RE.match(template_part)
        if placeholder:
            normalized = _normalize_dynamic_part(placeholder.group(1), part)
            if normalized is None:
                return None
            concrete.append(normalized)
        elif template_part == part:
            concrete.append(part)
        else:
            return None
    return ":".join(concrete)


def match_dynamic_key(template: str, key: str) -> str | None:
    """Concrete name for a concrete ``key`` that fits the ``template`` name's layout."""
    if not is_data_key(key) or not is_dynamic_key_name(template):
        return None
    parts = template.split(":")
    try:
        layout = _layout_for(parts)
    except KeyDerivationError:
        return None

    body = key.lower()[2:]
    offset = 0
    concrete = list(parts)
    for index, width in layout:
        slot = body[offset : offset + width * 2]
        offset += width * 2
        if index is None:
            if slot != "00" * width:
                return None
            continue
        placeholder = _PLACEHOLDER_RE.match(parts[index])
        if placeholder:
            value = "0x" + slot
            if placeholder.group(1) == "address" and width == 20:
                value = to_checksum_address(value)
            concrete[index] = value
        elif _word(parts[index], width) != slot:
            return None
    return ":".join(concrete)
