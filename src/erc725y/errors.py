"""Exception types raised by the codec layers."""

from __future__ import annotations


class ERC725YError(Exception):
    """Base class for all erc725y errors."""


class SchemaRejected(ERC725YError, ValueError):
    """A schema descriptor is malformed or its key does not match its name."""


class SchemaNotFoundError(ERC725YError, LookupError):
    """No schema descriptor matches the requested key or name."""

    def __init__(self, key_or_name: str) -> None:
        super().__init__(f"No schema found for '{key_or_name}'")
        self.key_or_name = key_or_name


class KeyDerivationError(ERC725YError, ValueError):
    """A key name or array index cannot be turned into a storage key."""


class EncodingError(ERC725YError, ValueError):
    """A value does not fit the shape its descriptor declares."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Cannot encode '{field}': {message}")
        self.field = field


class DecodingError(ERC725YError, ValueError):
    """Stored bytes cannot be decoded with the descriptor's layout."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Cannot decode '{field}': {message}")
        self.field = field


class ExternalFetchError(ERC725YError, RuntimeError):
    """Transport failure while fetching external content."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"GET request to {url} failed: {message}")
        self.url = url


class ContentNotFoundError(ExternalFetchError):
    """The external content endpoint answered, but has nothing at that URL."""


class StoreUnavailableError(ERC725YError, RuntimeError):
    """The store collaborator or target address is missing or invalid."""
