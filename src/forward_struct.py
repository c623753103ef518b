from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Sequence, Tuple, Union

from eth_utils import to_checksum_address

from abi_codec import encode_abi
from errors import EncodingError, MalformedHexError
from keccak_core import hex_to_bytes, keccak256, to_hex
from sign_core import addr, eip712_digest

Fields = Sequence[Tuple[str, str]]


def encode_type(name: str, fields: Fields) -> str:
    """``Name(type1 name1,type2 name2,...)``, no spaces after commas."""
    return f"{name}({','.join(f'{typ} {fname}' for fname, typ in fields)})"


def type_hash(name: str, fields: Fields) -> bytes:
    return keccak256(encode_type(name, fields).encode("utf-8"))


# EIP-712 Domain TypeHash (standard per EIP-712)
# EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)
DOMAIN_FIELDS = (
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
)
DOMAIN_TYPEHASH = type_hash("EIP712Domain", DOMAIN_FIELDS)

# Field order must match the forwarder contract's ForwardRequest struct
# ForwardRequest(address from,address market,uint256 value,uint256 nonce,bytes data)
FORWARD_REQUEST_FIELDS = (
    ("from", "address"),
    ("market", "address"),
    ("value", "uint256"),
    ("nonce", "uint256"),
    ("data", "bytes"),
)
FORWARD_REQUEST_TYPEHASH = type_hash("ForwardRequest", FORWARD_REQUEST_FIELDS)


@lru_cache(maxsize=32)
def domain_separator(name: str, version: str, chain_id: int, verifying_contract: str) -> bytes:
    """
    Computes the EIP-712 Domain Separator.
    Strings are folded in as their keccak, per the dynamic-field rule.
    """
    return keccak256(encode_abi(
        ["bytes32", "bytes32", "bytes32", "uint256", "address"],
        [
            DOMAIN_TYPEHASH,
            keccak256(name.encode("utf-8")),
            keccak256(version.encode("utf-8")),
            chain_id,
            verifying_contract,
        ],
        ["typeHash", "name", "version", "chainId", "verifyingContract"],
    ))


@dataclass(frozen=True)
class EIP712Domain:
    name: str
    version: str
    chain_id: int
    verifying_contract: str

    def __post_init__(self):
        # validates hex and length before anything gets cached
        addr(self.verifying_contract, "verifyingContract")
        if isinstance(self.chain_id, bool) or not isinstance(self.chain_id, int) or self.chain_id < 0:
            raise EncodingError(f"chainId must be a non-negative int, got {self.chain_id!r}", "chainId")

    @property
    def separator(self) -> bytes:
        # the cache key is case-sensitive, normalise so equal domains share an entry
        return domain_separator(self.name, self.version, self.chain_id,
                                to_checksum_address(self.verifying_contract))

    def to_json(self) -> Dict[str, Union[str, int]]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }


@dataclass(frozen=True)
class ForwardRequest:
    from_address: str
    market: str
    value: int
    nonce: int
    data: bytes = field(repr=False)

    def __post_init__(self):
        addr(self.from_address, "from")
        addr(self.market, "market")
        if isinstance(self.data, str):
            object.__setattr__(self, "data", hex_to_bytes(self.data, "data"))
        elif not isinstance(self.data, (bytes, bytearray)):
            raise EncodingError(f"data must be bytes or hex, got {type(self.data).__name__}", "data")
        else:
            object.__setattr__(self, "data", bytes(self.data))

    def struct_hash(self) -> bytes:
        """
        keccak(typeHash || from || market || value || nonce || keccak(data)).
        ``data`` is dynamic, so the struct carries its hash rather than its bytes.
        """
        return keccak256(encode_abi(
            ["bytes32", "address", "address", "uint256", "uint256", "bytes32"],
            [
                FORWARD_REQUEST_TYPEHASH,
                self.from_address,
                self.market,
                self.value,
                self.nonce,
                keccak256(self.data),
            ],
            ["typeHash", "from", "market", "value", "nonce", "data"],
        ))

    def to_json(self) -> Dict[str, str]:
        return {
            "from": self.from_address,
            "market": self.market,
            "value": str(self.value),
            "nonce": str(self.nonce),
            "data": to_hex(self.data),
        }

    @classmethod
    def from_json(cls, payload: Dict[str, str]) -> "ForwardRequest":
        try:
            return cls(
                from_address=payload["from"],
                market=payload["market"],
                value=_parse_uint(payload["value"], "value"),
                nonce=_parse_uint(payload["nonce"], "nonce"),
                data=payload["data"],
            )
        except KeyError as e:
            raise EncodingError(f"forward request is missing {e.args[0]!r}", e.args[0]) from e


def _parse_uint(value: Union[str, int], name: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text[:2] in ("0x", "0X"):
            return int.from_bytes(hex_to_bytes(text, name), "big")
        if text.isascii() and text.isdigit():
            return int(text)
    raise MalformedHexError(f"not a decimal or hex integer: {value!r}", name)


def typed_data_digest(domain: EIP712Domain, request: ForwardRequest) -> bytes:
    return eip712_digest(domain.separator, request.struct_hash())
