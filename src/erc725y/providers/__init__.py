"""Store and content-fetch collaborators."""

from erc725y.providers.base import ContentFetcher, StoreReader, StoreWriter
from erc725y.providers.http import AiohttpContentFetcher
from erc725y.providers.memory import InMemoryStore

__all__ = ["AiohttpContentFetcher", "ContentFetcher", "InMemoryStore", "StoreReader", "StoreWriter"]
