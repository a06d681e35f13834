"""Entry point: python -m erc725y <command>

- "key <name>":                       Print the storage key for a key name
- "decode <schema.json> <data.json>": Decode a {key: 0xvalue} JSON object
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from erc725y.config import CodecConfig, load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _to_json(value):
    from erc725y.schema import ExternalReference

    if isinstance(value, ExternalReference):
        return value.to_dict()
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def _run_key(args: list[str]) -> None:
    from erc725y.keys import encode_key_name

    for name in args:
        print(f"{name}\t{encode_key_name(name)}")


def _run_decode(args: list[str], config: CodecConfig) -> None:
    from erc725y.codec import decode_data
    from erc725y.registry import SchemaRegistry, load_schema_file

    schema_path, data_path = Path(args[0]), Path(args[1])
    registry = SchemaRegistry.from_config(config, load_schema_file(schema_path))
    data = json.loads(data_path.read_text(encoding="utf-8"))
    print(json.dumps(decode_data(data, registry), indent=2, default=_to_json))


def _usage() -> None:
    print("Usage: python -m erc725y [key|decode]")
    print("  key <name>...                 — Print the storage key for each name")
    print("  decode <schema.json> <data.json> — Decode raw key/value data")
    sys.exit(1)


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    args = sys.argv[2:]

    config = load_config()
    _setup_logging(config.log_level)

    if cmd == "key" and args:
        _run_key(args)
    elif cmd == "decode" and len(args) == 2:
        _run_decode(args, config)
    else:
        _usage()


if __name__ == "__main__":
    main()
