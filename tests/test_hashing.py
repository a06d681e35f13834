"""Tests for content digests and hash verification."""

from erc725y import hashing
from erc725y.hashing import Verification
from erc725y.keys import keccak256


class TestSelectors:
    def test_known_selectors(self):
        assert hashing.SELECTORS[hashing.KECCAK256_UTF8].hex() == "6f357c6a"
        assert hashing.SELECTORS[hashing.KECCAK256_BYTES].hex() == "8019f9b1"

    def test_selector_roundtrip(self):
        for name, selector in hashing.SELECTORS.items():
            assert hashing.hash_function_from_selector(selector) == name

    def test_unknown_selector(self):
        assert hashing.hash_function_from_selector(b"\xde\xad\xbe\xef") == hashing.UNSUPPORTED

    def test_selector_for_hex(self):
        assert hashing.selector_for("0x6f357c6a") == bytes.fromhex("6f357c6a")
        assert hashing.selector_for("md5") is None


class TestDigest:
    def test_json_is_compact(self):
        content = {"LSP3Profile": {"name": "alice", "tags": ["a", "b"]}}
        expected = keccak256('{"LSP3Profile":{"name":"alice","tags":["a","b"]}}')
        assert hashing.digest(hashing.KECCAK256_UTF8, content) == expected

    def test_whole_floats_match_javascript(self):
        content = {"width": 1.0, "ratio": 0.5, "sizes": [2.0, 3], "flag": True}
        assert hashing.canonical_json(content) == b'{"width":1,"ratio":0.5,"sizes":[2,3],"flag":true}'

    def test_whole_float_digest_matches_int(self):
        assert hashing.digest(hashing.KECCAK256_UTF8, {"a": 1.0}) == hashing.digest(
            hashing.KECCAK256_UTF8, {"a": 1}
        )

    def test_json_keeps_unicode(self):
        assert hashing.canonical_json({"n": "é"}) == '{"n":"é"}'.encode("utf-8")

    def test_bytes(self):
        assert hashing.digest(hashing.KECCAK256_BYTES, b"\x00\x01") == keccak256(b"\x00\x01")

    def test_unsupported(self):
        assert hashing.digest("sha1", b"abc") is None


class TestVerify:
    def test_authentic(self):
        content = {"a": 1}
        h = "0x" + hashing.digest(hashing.KECCAK256_UTF8, content).hex()
        assert hashing.verify(content, h, hashing.KECCAK256_UTF8) is Verification.AUTHENTIC

    def test_hash_normalization(self):
        content = b"image-bytes"
        h = hashing.digest(hashing.KECCAK256_BYTES, content).hex().upper()
        assert hashing.verify(content, h, hashing.KECCAK256_BYTES) is Verification.AUTHENTIC
        assert hashing.verify(content, "0x" + h, hashing.KECCAK256_BYTES) is Verification.AUTHENTIC

    def test_mismatch(self):
        h = "0x" + "00" * 32
        assert hashing.verify({"a": 1}, h, hashing.KECCAK256_UTF8) is Verification.MISMATCH

    def test_wrong_content_kind_is_mismatch(self):
        h = "0x" + "00" * 32
        assert hashing.verify({"a": 1}, h, hashing.KECCAK256_BYTES) is Verification.MISMATCH

    def test_unsupported(self):
        content = b"x"
        h = keccak256(content).hex()
        assert hashing.verify(content, h, hashing.UNSUPPORTED) is Verification.UNSUPPORTED
