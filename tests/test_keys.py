"""Tests for storage key derivation."""

import pytest

from erc725y.errors import KeyDerivationError
from erc725y.keys import (
    encode_array_key,
    encode_key_name,
    is_data_key,
    is_dynamic_key_name,
    keccak256,
    match_dynamic_key,
    match_dynamic_name,
    normalize_key,
)

ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


class TestKeccak:
    def test_empty_input(self):
        assert keccak256(b"").hex() == (
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )

    def test_str_is_utf8(self):
        assert keccak256("héllo") == keccak256("héllo".encode("utf-8"))


class TestEncodeKeyName:
    def test_singleton(self):
        assert encode_key_name("LSP3Profile") == (
            "0x5ef83ad9559033e6e941db7d7c495acdce616347d28e90c7ce47cbfcfcad3bc5"
        )

    def test_deterministic(self):
        assert encode_key_name("MyValue") == encode_key_name("MyValue")
        assert encode_key_name("MyValue") != encode_key_name("MyValue2")

    def test_array_hashes_full_name(self):
        assert encode_key_name("MyList[]") == "0x" + keccak256("MyList[]").hex()

    def test_mapping_layout(self):
        key = encode_key_name("MyMap:SomeWord")
        assert key == (
            "0x" + keccak256("MyMap")[:10].hex() + "0000" + keccak256("SomeWord")[:20].hex()
        )
        assert is_data_key(key)

    def test_mapping_with_address(self):
        key = encode_key_name(f"MyMap:{ADDRESS}")
        assert key.endswith(ADDRESS[2:].lower())
        assert key[2 + 20 : 2 + 24] == "0000"

    def test_mapping_template(self):
        assert encode_key_name("LSP5ReceivedAssetsMap:<address>") == (
            "0x812c4334633eb816c80d0000<address>"
        )

    def test_grouping_template(self):
        assert encode_key_name("AddressPermissions:Permissions:<address>") == (
            "0x4b80742de2bf82acb3630000<address>"
        )

    def test_grouping_layout(self):
        key = encode_key_name("A:B:C")
        assert key == (
            "0x"
            + keccak256("A")[:6].hex()
            + keccak256("B")[:4].hex()
            + "0000"
            + keccak256("C")[:20].hex()
        )

    def test_short_hex_word_is_left_padded(self):
        key = encode_key_name("MyMap:0xcafe")
        assert key.endswith("00" * 18 + "cafe")

    @pytest.mark.parametrize("name", ["", "A:B:C:D", "A::B"])
    def test_invalid_names(self, name):
        with pytest.raises(KeyDerivationError):
            encode_key_name(name)

    def test_non_string(self):
        with pytest.raises(KeyDerivationError):
            encode_key_name(None)


class TestArrayKeys:
    def test_element_key_layout(self):
        base = encode_key_name("MyList[]")
        assert encode_array_key(base, 0) == base[:34] + "00" * 16
        assert encode_array_key(base, 258) == base[:34] + "00" * 14 + "0102"

    def test_injective_over_index(self):
        base = encode_key_name("MyList[]")
        keys = {encode_array_key(base, i) for i in range(100)}
        assert len(keys) == 100

    @pytest.mark.parametrize("index", [-1, 2**128, 1.5, True, "1"])
    def test_invalid_index(self, index):
        with pytest.raises(KeyDerivationError):
            encode_array_key(encode_key_name("MyList[]"), index)

    def test_invalid_base_key(self):
        with pytest.raises(KeyDerivationError):
            encode_array_key("0x1234", 0)


class TestNormalizeKey:
    def test_lowercases(self):
        key = "0x" + "AB" * 32
        assert normalize_key(key) == "0x" + "ab" * 32

    def test_bytes(self):
        assert normalize_key(b"\x01" * 32) == "0x" + "01" * 32

    def test_rejects_wrong_width(self):
        with pytest.raises(KeyDerivationError):
            normalize_key(b"\x01" * 31)


class TestDynamicKeys:
    def test_is_dynamic(self):
        assert is_dynamic_key_name("LSP5ReceivedAssetsMap:<address>")
        assert not is_dynamic_key_name("LSP5ReceivedAssetsMap:Word")

    def test_match_name_address(self):
        concrete = match_dynamic_name("Map:<address>", f"Map:{ADDRESS.lower()}")
        assert concrete == f"Map:{ADDRESS}"

    def test_match_name_rejects_bad_address(self):
        assert match_dynamic_name("Map:<address>", "Map:0x1234") is None

    def test_match_name_rejects_other_prefix(self):
        assert match_dynamic_name("Map:<address>", f"Other:{ADDRESS}") is None

    def test_match_name_uint(self):
        assert match_dynamic_name("Map:<uint32>", "Map:5") == "Map:0x00000005"

    def test_match_name_grouping(self):
        concrete = match_dynamic_name(
            "AddressPermissions:Permissions:<address>", f"AddressPermissions:Permissions:{ADDRESS}"
        )
        assert concrete == f"AddressPermissions:Permissions:{ADDRESS}"

    def test_match_key_roundtrip(self):
        key = encode_key_name(f"Map:{ADDRESS}")
        assert match_dynamic_key("Map:<address>", key) == f"Map:{ADDRESS}"

    def test_match_key_wrong_prefix(self):
        key = encode_key_name(f"Other:{ADDRESS}")
        assert match_dynamic_key("Map:<address>", key) is None

    def test_match_key_grouping(self):
        key = encode_key_name(f"AddressPermissions:Permissions:{ADDRESS}")
        assert key.startswith("0x4b80742de2bf82acb3630000")
        assert (
            match_dynamic_key("AddressPermissions:Permissions:<address>", key)
            == f"AddressPermissions:Permissions:{ADDRESS}"
        )
