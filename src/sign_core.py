from dataclasses import dataclass
from typing import Optional, Union

from coincurve import PrivateKey, PublicKey
from eth_utils import to_checksum_address

from errors import EncodingError, MalformedHexError, SigningError
from keccak_core import hex_to_bytes, keccak256, to_hex

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# ---------- fixed-width helpers ----------

def u256(x: int) -> bytes:
    return x.to_bytes(32, "big")

def addr(a: Union[str, bytes], field: Optional[str] = None) -> bytes:
    # 20-byte address left-padded to a 32-byte word
    if isinstance(a, str):
        raw = hex_to_bytes(a, field)
    elif isinstance(a, (bytes, bytearray)):
        raw = bytes(a)
    else:
        raise EncodingError(f"address expects hex string or bytes, got {type(a).__name__}", field)
    if len(raw) != 20:
        raise EncodingError(f"address must be 20 bytes, got {len(raw)}", field)
    return b"\x00" * 12 + raw

def b32(x: bytes, field: Optional[str] = None) -> bytes:
    if not isinstance(x, (bytes, bytearray)) or len(x) != 32:
        raise EncodingError(f"expected 32 bytes, got {x!r:.80}", field)
    return bytes(x)

# ---------- EIP-712 core ----------

EIP191_PREFIX = b"\x19\x01"

def eip712_digest(domain_separator: bytes, struct_hash: bytes) -> bytes:
    return keccak256(
        EIP191_PREFIX
        + b32(domain_separator, "domainSeparator")
        + b32(struct_hash, "structHash")
    )

# ---------- keys ----------

def parse_private_key(key: Union[str, bytes]) -> bytes:
    if isinstance(key, str):
        raw = hex_to_bytes(key, "privateKey")
    elif isinstance(key, (bytes, bytearray)):
        raw = bytes(key)
    else:
        raise SigningError(f"private key must be hex or bytes, got {type(key).__name__}", "privateKey")
    if len(raw) != 32:
        raise SigningError(f"private key must be 32 bytes, got {len(raw)}", "privateKey")
    if not 0 < int.from_bytes(raw, "big") < SECP256K1_N:
        raise SigningError("private key is not a valid secp256k1 scalar", "privateKey")
    return raw

def public_key_to_address(public_key: PublicKey) -> str:
    # keccak of the uncompressed point without its 0x04 tag, last 20 bytes
    return to_checksum_address(keccak256(public_key.format(compressed=False)[1:])[-20:])

def private_key_to_address(private_key: Union[str, bytes]) -> str:
    return public_key_to_address(PrivateKey(parse_private_key(private_key)).public_key)

# ---------- signatures ----------

@dataclass(frozen=True)
class Signature:
    r: bytes
    s: bytes
    v: int

    def __post_init__(self):
        if len(self.r) != 32 or len(self.s) != 32:
            raise SigningError("r and s must be 32 bytes each")
        if self.v not in (27, 28):
            raise SigningError(f"v must be 27 or 28, got {self.v}")

    @property
    def recovery_id(self) -> int:
        return self.v - 27

    def to_bytes(self) -> bytes:
        return self.r + self.s + bytes([self.v])

    def to_hex(self) -> str:
        return to_hex(self.to_bytes())

    @classmethod
    def from_hex(cls, value: str) -> "Signature":
        raw = hex_to_bytes(value, "signature")
        if len(raw) != 65:
            raise MalformedHexError(f"signature must be 65 bytes, got {len(raw)}", "signature")
        v = raw[64]
        # accept raw {0,1} recovery ids as well as the legacy {27,28}
        if v in (0, 1):
            v += 27
        return cls(r=raw[:32], s=raw[32:64], v=v)

# ---------- deterministic secp256k1 ----------

def sign_digest(digest_32: bytes, private_key: Union[str, bytes]) -> Signature:
    digest_32 = b32(digest_32, "digest")
    pk = PrivateKey(parse_private_key(private_key))

    # libsecp256k1: RFC 6979 nonce, low-s normalised, 65 bytes r||s||recid
    sig65 = pk.sign_recoverable(digest_32, hasher=None)

    return Signature(r=sig65[:32], s=sig65[32:64], v=sig65[64] + 27)

def recover_address(digest_32: bytes, signature: Signature) -> str:
    sig65 = signature.r + signature.s + bytes([signature.recovery_id])
    try:
        pub = PublicKey.from_signature_and_message(sig65, b32(digest_32, "digest"), hasher=None)
    except ValueError as e:
        raise SigningError(f"signature does not recover: {e}", "signature") from e
    return public_key_to_address(pub)

def verify_digest(digest_32: bytes, signature: Signature, address: str) -> bool:
    try:
        recovered = recover_address(digest_32, signature)
    except SigningError:
        return False
    return recovered.lower() == address.lower()
