"""Configuration loading from environment variables and erc725y.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

DEFAULT_IPFS_GATEWAY = "https://cloudflare-ipfs.com/ipfs/"
_CONFIG_FILENAME = "erc725y.toml"


@dataclass
class FetchConfig:
    """Store reads and external content fetching."""

    ipfs_gateway: str = DEFAULT_IPFS_GATEWAY
    timeout: float = 30.0
    max_array_length: int = 10_000


@dataclass
class CodecConfig:
    """Top-level erc725y configuration."""

    fetch: FetchConfig = field(default_factory=FetchConfig)
    schema_paths: list[Path] = field(default_factory=list)
    load_builtin_schemas: bool = True
    log_level: str = "INFO"


def _parse_bool(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(config_path: Path | None = None) -> CodecConfig:
    """Load configuration from environment variables and optional erc725y.toml.

    Priority: environment variables > erc725y.toml > defaults.
    """
    file_data: dict = {}
    base_dir = Path.cwd()
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
        base_dir = config_path.parent
    else:
        # Search current dir and ~/.erc725y/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".erc725y" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                base_dir = candidate.parent
                break

    fetch_data = file_data.get("fetch", {})
    schema_data = file_data.get("schemas", {})

    env_paths = os.getenv("ERC725Y_SCHEMA_PATHS")
    if env_paths:
        schema_paths = [Path(p) for p in env_paths.split(os.pathsep) if p]
    else:
        # Relative paths in the file are relative to the file itself
        schema_paths = [base_dir / p for p in schema_data.get("paths", [])]

    return CodecConfig(
        fetch=FetchConfig(
            ipfs_gateway=os.getenv(
                "ERC725Y_IPFS_GATEWAY", fetch_data.get("ipfs_gateway", DEFAULT_IPFS_GATEWAY)
            ),
            timeout=float(os.getenv("ERC725Y_FETCH_TIMEOUT", fetch_data.get("timeout", 30.0))),
            max_array_length=int(
                os.getenv("ERC725Y_MAX_ARRAY_LENGTH", fetch_data.get("max_array_length", 10_000))
            ),
        ),
        schema_paths=schema_paths,
        load_builtin_schemas=_parse_bool(
            os.getenv("ERC725Y_BUILTIN_SCHEMAS", schema_data.get("builtin", True))
        ),
        log_level=os.getenv("ERC725Y_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
