"""Tests for configuration loading."""

import os

import pytest
from pathlib import Path

from erc725y.config import DEFAULT_IPFS_GATEWAY, load_config
from erc725y.registry import SchemaRegistry

ENV_VARS = [
    "ERC725Y_IPFS_GATEWAY",
    "ERC725Y_FETCH_TIMEOUT",
    "ERC725Y_SCHEMA_PATHS",
    "ERC725Y_BUILTIN_SCHEMAS",
    "ERC725Y_LOG_LEVEL",
    "ERC725Y_MAX_ARRAY_LENGTH",
]


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for key in ENV_VARS:
        monkeypatch.delenv(key, raising=False)


class TestConfig:
    def test_defaults(self):
        config = load_config()
        assert config.fetch.ipfs_gateway == DEFAULT_IPFS_GATEWAY
        assert config.fetch.timeout == 30.0
        assert config.fetch.max_array_length == 10_000
        assert config.schema_paths == []
        assert config.load_builtin_schemas is True
        assert config.log_level == "INFO"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ERC725Y_IPFS_GATEWAY", "https://gw/ipfs/")
        monkeypatch.setenv("ERC725Y_FETCH_TIMEOUT", "5")
        monkeypatch.setenv("ERC725Y_BUILTIN_SCHEMAS", "false")
        monkeypatch.setenv("ERC725Y_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("ERC725Y_MAX_ARRAY_LENGTH", "50")

        config = load_config()
        assert config.fetch.ipfs_gateway == "https://gw/ipfs/"
        assert config.fetch.timeout == 5.0
        assert config.load_builtin_schemas is False
        assert config.log_level == "DEBUG"
        assert config.fetch.max_array_length == 50

    def test_toml_file(self, tmp_path: Path):
        toml_path = tmp_path / "erc725y.toml"
        toml_path.write_text("""
log_level = "WARNING"

[fetch]
ipfs_gateway = "https://ipfs.example/ipfs/"
timeout = 10
max_array_length = 500

[schemas]
paths = ["schemas/custom.json"]
builtin = false
""")
        config = load_config(toml_path)
        assert config.fetch.ipfs_gateway == "https://ipfs.example/ipfs/"
        assert config.fetch.timeout == 10.0
        assert config.fetch.max_array_length == 500
        assert config.schema_paths == [tmp_path / "schemas" / "custom.json"]
        assert config.load_builtin_schemas is False
        assert config.log_level == "WARNING"

    def test_toml_found_in_cwd(self, tmp_path: Path):
        (tmp_path / "erc725y.toml").write_text('[fetch]\ntimeout = 3\n')
        assert load_config().fetch.timeout == 3.0

    def test_toml_found_in_home(self, tmp_path: Path):
        home_dir = tmp_path / "home" / ".erc725y"
        home_dir.mkdir(parents=True)
        (home_dir / "erc725y.toml").write_text('log_level = "ERROR"\n')
        assert load_config().log_level == "ERROR"

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("ERC725Y_IPFS_GATEWAY", "https://env-gw/ipfs/")

        toml_path = tmp_path / "erc725y.toml"
        toml_path.write_text("""
[fetch]
ipfs_gateway = "https://file-gw/ipfs/"
""")
        config = load_config(toml_path)
        assert config.fetch.ipfs_gateway == "https://env-gw/ipfs/"  # env wins

    def test_schema_paths_from_env(self, tmp_path: Path, monkeypatch):
        a, b = tmp_path / "a.json", tmp_path / "b.json"
        monkeypatch.setenv("ERC725Y_SCHEMA_PATHS", f"{a}{os.pathsep}{b}")
        assert load_config().schema_paths == [a, b]

    def test_schema_paths_feed_registry(self, tmp_path: Path):
        (tmp_path / "custom.json").write_text("""
[{"name": "LSP3Profile",
  "key": "0x5ef83ad9559033e6e941db7d7c495acdce616347d28e90c7ce47cbfcfcad3bc5",
  "keyType": "Singleton", "valueType": "bytes", "valueContent": "JSONURL"}]
""")
        toml_path = tmp_path / "erc725y.toml"
        toml_path.write_text('[schemas]\npaths = ["custom.json"]\nbuiltin = false\n')

        registry = SchemaRegistry.from_config(load_config(toml_path))
        assert [d.name for d in registry.descriptors] == ["LSP3Profile"]
        assert registry.builtins == ()
