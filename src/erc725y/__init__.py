"""erc725y: schema-driven codec for ERC725Y key/value stores."""

from erc725y.codec import decode_data, decode_value, encode_data, encode_value, flatten_encoded
from erc725y.config import CodecConfig, FetchConfig, load_config
from erc725y.core import ERC725Y
from erc725y.errors import (
    ContentNotFoundError,
    DecodingError,
    EncodingError,
    ERC725YError,
    ExternalFetchError,
    KeyDerivationError,
    SchemaNotFoundError,
    SchemaRejected,
    StoreUnavailableError,
)
from erc725y.keys import encode_array_key, encode_key_name
from erc725y.registry import SchemaRegistry
from erc725y.schema import ExternalReference, KeyType, KeyValue, SchemaDescriptor

__all__ = [
    "ERC725Y",
    "CodecConfig",
    "ContentNotFoundError",
    "DecodingError",
    "ERC725YError",
    "EncodingError",
    "ExternalFetchError",
    "ExternalReference",
    "FetchConfig",
    "KeyDerivationError",
    "KeyType",
    "KeyValue",
    "SchemaDescriptor",
    "SchemaNotFoundError",
    "SchemaRegistry",
    "SchemaRejected",
    "StoreUnavailableError",
    "decode_data",
    "decode_value",
    "encode_array_key",
    "encode_data",
    "encode_key_name",
    "encode_value",
    "flatten_encoded",
    "load_config",
]
