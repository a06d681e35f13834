"""Content digests for external-reference verification.

Hash functions are identified by name (``keccak256(utf8)``, ``keccak256(bytes)``)
and stored on-chain as a 4-byte selector: ``bytes4(keccak256(name))``.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from enum import Enum
from typing import Any

from erc725y.keys import keccak256

KECCAK256_UTF8 = "keccak256(utf8)"
KECCAK256_BYTES = "keccak256(bytes)"
UNSUPPORTED = "unsupported"


# JSON.stringify switches to exponent notation at this magnitude
_JS_EXPONENT_THRESHOLD = 1e21


def _js_numbers(content: Any) -> Any:
    """Whole-number floats as ints, so ``1.0`` serializes as ``1``."""
    if isinstance(content, float):
        if content.is_integer() and abs(content) < _JS_EXPONENT_THRESHOLD:
            return int(content)
        return content
    if isinstance(content, dict):
        return {key: _js_numbers(value) for key, value in content.items()}
    if isinstance(content, (list, tuple)):
        return [_js_numbers(item) for item in content]
    return content


def canonical_json(content: Any) -> bytes:
    """Compact JSON serialization, matching JavaScript's JSON.stringify.

    Non-integral floats and floats of 1e21 or more keep Python's repr, which
    can differ from JavaScript's.
    """
    return json.dumps(
        _js_numbers(content), separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def _digest_utf8(content: Any) -> bytes:
    if isinstance(content, (bytes, bytearray)):
        return keccak256(bytes(content))
    if isinstance(content, str):
        return keccak256(content)
    return keccak256(canonical_json(content))


def _digest_bytes(content: Any) -> bytes:
    if isinstance(content, str):
        content = content.encode("utf-8")
    if not isinstance(content, (bytes, bytearray)):
        raise TypeError(f"{KECCAK256_BYTES} expects raw bytes, got {type(content).__name__}")
    return keccak256(bytes(content))


DIGESTS: dict[str, Callable[[Any], bytes]] = {
    KECCAK256_UTF8: _digest_utf8,
    KECCAK256_BYTES: _digest_bytes,
}

# Hash functions whose content is fetched as raw bytes rather than parsed JSON
BYTE_ORIENTED = frozenset({KECCAK256_BYTES})

SELECTORS: dict[str, bytes] = {name: keccak256(name)[:4] for name in DIGESTS}
_NAMES_BY_SELECTOR: dict[bytes, str] = {selector: name for name, selector in SELECTORS.items()}


class Verification(Enum):
    AUTHENTIC = "authentic"
    MISMATCH = "mismatch"
    UNSUPPORTED = "unsupported"


def is_supported(hash_function: str) -> bool:
    return hash_function in DIGESTS


def is_byte_oriented(hash_function: str) -> bool:
    return hash_function in BYTE_ORIENTED


def hash_function_from_selector(selector: bytes) -> str:
    return _NAMES_BY_SELECTOR.get(bytes(selector), UNSUPPORTED)


def selector_for(hash_function: str) -> bytes | None:
    """Stored selector for a hash-function name. Accepts ``0x`` hex selectors too."""
    if hash_function in SELECTORS:
        return SELECTORS[hash_function]
    if isinstance(hash_function, str) and hash_function.startswith("0x"):
        try:
            raw = bytes.fromhex(hash_function[2:])
        except ValueError:
            return None
        return raw if len(raw) == 4 else None
    return None


def normalize_hash(value: str | bytes) -> str:
    """Lowercase hex without the 0x prefix."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    value = value.strip().lower()
    return value[2:] if value.startswith("0x") else value


def digest(hash_function: str, content: Any) -> bytes | None:
    """Digest of ``content`` under ``hash_function``, or None if unsupported."""
    fn = DIGESTS.get(hash_function)
    if fn is None:
        return None
    return fn(content)


def verify(content: Any, expected_hash: str | bytes, hash_function: str) -> Verification:
    if not is_supported(hash_function):
        return Verification.UNSUPPORTED
    try:
        actual = digest(hash_function, content)
    except TypeError:
        return Verification.MISMATCH
    if actual is not None and actual.hex() == normalize_hash(expected_hash):
        return Verification.AUTHENTIC
    return Verification.MISMATCH
