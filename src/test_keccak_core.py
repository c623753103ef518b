import hashlib

import pytest

from errors import MalformedHexError
from keccak_core import hash_message, hex_to_bytes, keccak256, keccak256_hex, to_hex

EMPTY_KECCAK = "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
ABC_KECCAK = "4e03657aea45a94fc7d47ba826c8d667c0d1e6e33a64a036ec44f58fa12d6c45"


def test_known_vectors():
    assert keccak256(b"").hex() == EMPTY_KECCAK
    assert keccak256(b"abc").hex() == ABC_KECCAK


def test_not_nist_sha3():
    assert keccak256(b"") != hashlib.sha3_256(b"").digest()


@pytest.mark.parametrize("data", [b"", b"\x00", b"x" * 135, b"x" * 136, b"x" * 1000])
def test_digest_is_32_bytes_and_deterministic(data):
    first = keccak256(data)
    assert len(first) == 32
    assert keccak256(bytearray(data)) == first
    assert keccak256(memoryview(data)) == first


def test_hex_helpers():
    assert hex_to_bytes("0x1234") == b"\x12\x34"
    assert hex_to_bytes("0XABcd") == b"\xab\xcd"
    assert hex_to_bytes("") == b""
    assert hex_to_bytes("0x") == b""
    assert to_hex(b"\x00\xff") == "0x00ff"
    assert keccak256_hex("0x") == "0x" + EMPTY_KECCAK
    assert hash_message("abc") == "0x" + ABC_KECCAK


@pytest.mark.parametrize("bad", ["0x123", "0xzz", "12 34", "0x0x12"])
def test_malformed_hex(bad):
    with pytest.raises(MalformedHexError) as exc:
        hex_to_bytes(bad, "data")
    assert exc.value.field == "data"


def test_malformed_hex_rejected_before_hashing():
    with pytest.raises(MalformedHexError):
        keccak256_hex("0xabc")


def test_non_string_hex():
    with pytest.raises(MalformedHexError):
        hex_to_bytes(b"\x12")
