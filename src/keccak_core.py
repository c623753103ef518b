from typing import Optional, Union

from eth_hash.auto import keccak
from eth_utils import encode_hex

from errors import MalformedHexError

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

BytesLike = Union[bytes, bytearray, memoryview]


def keccak256(data: BytesLike) -> bytes:
    # Ethereum Keccak-256 (pre-NIST padding), not hashlib.sha3_256
    return keccak(bytes(data))


def hex_to_bytes(value: str, field: Optional[str] = None) -> bytes:
    if not isinstance(value, str):
        raise MalformedHexError(f"expected hex string, got {type(value).__name__}", field)
    body = value[2:] if value[:2] in ("0x", "0X") else value
    if len(body) % 2:
        raise MalformedHexError(f"odd-length hex string {value!r}", field)
    if not _HEX_DIGITS.issuperset(body):
        raise MalformedHexError(f"non-hex characters in {value!r}", field)
    return bytes.fromhex(body)


def to_hex(data: BytesLike) -> str:
    return encode_hex(bytes(data))


def keccak256_hex(hex_data: str, field: Optional[str] = None) -> str:
    """Hash hex-encoded bytes, returning the digest as 0x-prefixed hex."""
    return to_hex(keccak256(hex_to_bytes(hex_data, field)))


def hash_message(text: str) -> str:
    """Keccak-256 of the UTF-8 encoding of ``text``."""
    return to_hex(keccak256(text.encode("utf-8")))


if __name__ == "__main__":
    print("=== Keccak-256 known-answer check ===")
    vectors = {
        b"": "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470",
        b"abc": "4e03657aea45a94fc7d47ba826c8d667c0d1e6e33a64a036ec44f58fa12d6c45",
    }
    for msg, expected in vectors.items():
        got = keccak256(msg).hex()
        print(f"{msg!r}: {got} {'OK' if got == expected else 'MISMATCH'}")

    # uint256 word, big endian
    val = 0x1234567890ABCDEF
    print(f"uint256 (0x1234..EF): {keccak256(val.to_bytes(32, 'big')).hex()}")
