import pytest
from eth_account.messages import encode_typed_data

from errors import EncodingError, MalformedHexError
from forward_struct import (
    DOMAIN_TYPEHASH,
    FORWARD_REQUEST_TYPEHASH,
    EIP712Domain,
    ForwardRequest,
    domain_separator,
    encode_type,
    typed_data_digest,
)
from keccak_core import keccak256
from sign_core import eip712_digest

ONE = "0x" + "00" * 19 + "01"
TWO = "0x" + "00" * 19 + "02"
THREE = "0x" + "00" * 19 + "03"

DOMAIN = EIP712Domain(name="KuruForwarder", version="1.0.0", chain_id=31337, verifying_contract=THREE)
REQUEST = ForwardRequest(from_address=ONE, market=TWO, value=0, nonce=1, data="0x1234")

# digest of REQUEST under DOMAIN
REFERENCE_DIGEST = "0b2b40ca12a9586f4329edec11d0f888ef66098739057958a736f96c1929381e"


def reference_message(domain=DOMAIN, request=REQUEST):
    return encode_typed_data(full_message={
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "ForwardRequest": [
                {"name": "from", "type": "address"},
                {"name": "market", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "nonce", "type": "uint256"},
                {"name": "data", "type": "bytes"},
            ],
        },
        "primaryType": "ForwardRequest",
        "domain": domain.to_json(),
        "message": {
            "from": request.from_address,
            "market": request.market,
            "value": request.value,
            "nonce": request.nonce,
            "data": request.data,
        },
    })


def test_type_strings():
    assert encode_type("ForwardRequest", [("from", "address"), ("data", "bytes")]) == \
        "ForwardRequest(address from,bytes data)"
    assert FORWARD_REQUEST_TYPEHASH == keccak256(
        b"ForwardRequest(address from,address market,uint256 value,uint256 nonce,bytes data)")
    assert DOMAIN_TYPEHASH.hex() == "8b73c3c69bb8fe3d512ecc4cf759cc79239f7b179b0ffacaa9a75d522b39400f"


def test_reference_vector():
    # KuruForwarder 1.0.0 / 31337, ForwardRequest{from: 0x..01, market: 0x..02, value 0, nonce 1, data 0x1234}
    ref = reference_message()
    assert DOMAIN.separator == ref.header
    assert REQUEST.struct_hash() == ref.body
    digest = typed_data_digest(DOMAIN, REQUEST)
    assert digest.hex() == REFERENCE_DIGEST
    assert digest == keccak256(b"\x19" + ref.version + ref.header + ref.body)
    assert digest == keccak256(b"\x19\x01" + DOMAIN.separator + REQUEST.struct_hash())


def test_struct_hash_folds_data_hash():
    manual = keccak256(
        FORWARD_REQUEST_TYPEHASH
        + bytes.fromhex("00" * 31 + "01")
        + bytes.fromhex("00" * 31 + "02")
        + (0).to_bytes(32, "big")
        + (1).to_bytes(32, "big")
        + keccak256(b"\x12\x34")
    )
    assert REQUEST.struct_hash() == manual


def test_digest_is_deterministic():
    assert typed_data_digest(DOMAIN, REQUEST) == typed_data_digest(DOMAIN, REQUEST)


@pytest.mark.parametrize("change", [
    {"chain_id": 1},
    {"verifying_contract": TWO},
    {"version": "1.0.1"},
    {"name": "OtherForwarder"},
])
def test_digest_is_domain_sensitive(change):
    fields = dict(name="KuruForwarder", version="1.0.0", chain_id=31337, verifying_contract=THREE)
    fields.update(change)
    other = EIP712Domain(**fields)
    assert typed_data_digest(other, REQUEST) != typed_data_digest(DOMAIN, REQUEST)
    assert other.separator == reference_message(domain=other).header


def test_nonce_changes_digest():
    other = ForwardRequest(from_address=ONE, market=TWO, value=0, nonce=2, data="0x1234")
    assert typed_data_digest(DOMAIN, other) != typed_data_digest(DOMAIN, REQUEST)


def test_separator_cache_ignores_address_case():
    upper = EIP712Domain("KuruForwarder", "1.0.0", 31337, "0x" + "AB" * 20)
    lower = EIP712Domain("KuruForwarder", "1.0.0", 31337, "0x" + "ab" * 20)
    assert upper.separator == lower.separator
    info = domain_separator.cache_info()
    assert info.currsize >= 1


def test_json_round_trip():
    payload = REQUEST.to_json()
    assert payload == {"from": ONE, "market": TWO, "value": "0", "nonce": "1", "data": "0x1234"}
    assert ForwardRequest.from_json(payload) == REQUEST
    hex_nonce = dict(payload, nonce="0x01")
    assert ForwardRequest.from_json(hex_nonce).nonce == 1


def test_from_json_errors():
    with pytest.raises(EncodingError) as exc:
        ForwardRequest.from_json({"from": ONE, "market": TWO, "value": "0", "data": "0x"})
    assert exc.value.field == "nonce"
    with pytest.raises(MalformedHexError):
        ForwardRequest.from_json({"from": ONE, "market": TWO, "value": "0", "nonce": "1.5", "data": "0x"})
    with pytest.raises(MalformedHexError) as exc:
        ForwardRequest.from_json({"from": ONE, "market": TWO, "value": "0", "nonce": "²", "data": "0x"})
    assert exc.value.field == "nonce"


def test_malformed_inputs():
    with pytest.raises(MalformedHexError):
        ForwardRequest(from_address=ONE, market=TWO, value=0, nonce=1, data="0x123")
    with pytest.raises(MalformedHexError):
        ForwardRequest(from_address="0xnothex", market=TWO, value=0, nonce=1, data=b"")
    with pytest.raises(EncodingError):
        ForwardRequest(from_address="0x1234", market=TWO, value=0, nonce=1, data=b"")
    with pytest.raises(MalformedHexError):
        EIP712Domain("KuruForwarder", "1.0.0", 31337, "0xzz")
    with pytest.raises(EncodingError):
        EIP712Domain("KuruForwarder", "1.0.0", -1, THREE)


def test_digest_requires_32_byte_inputs():
    with pytest.raises(EncodingError):
        eip712_digest(b"\x00" * 31, b"\x00" * 32)
