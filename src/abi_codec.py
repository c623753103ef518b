"""Contract ABI encoding for forwarder call data.

Covers the subset of the Solidity ABI the order book speaks: ``uintN``,
``intN``, ``bool``, ``address``, ``bytesN``, ``bytes``, ``string`` and
arrays of those (``T[]`` and ``T[k]``). Every value occupies one or more
32-byte words; dynamic values are referenced from the head section by an
offset into the tail section.

``decode_abi`` mirrors ``encode_abi`` so call data can be checked after
construction.
"""

import re
from typing import List, Optional, Sequence, Tuple

from eth_utils import to_checksum_address

from errors import EncodingError
from keccak_core import hex_to_bytes, keccak256
from sign_core import addr, u256

WORD = 32

_INT_RE = re.compile(r"^(u?int)(\d*)$")
_BYTES_N_RE = re.compile(r"^bytes(\d+)$")
_ARRAY_RE = re.compile(r"^(.+)\[(\d*)\]$")


# ---------- type grammar ----------

def canonical_type(typ: str) -> str:
    """Normalise a Solidity type name: strip whitespace, expand aliases."""
    if not isinstance(typ, str):
        raise EncodingError(f"ABI type must be a string, got {typ!r}")
    typ = "".join(typ.split())

    m = _ARRAY_RE.match(typ)
    if m:
        inner, size = m.groups()
        if size and int(size) == 0:
            raise EncodingError(f"zero-length fixed array {typ!r}")
        return f"{canonical_type(inner)}[{size}]"

    m = _INT_RE.match(typ)
    if m:
        kind, bits = m.groups()
        bits = bits or "256"
        n = int(bits)
        if n % 8 or not 8 <= n <= 256:
            raise EncodingError(f"invalid integer width in {typ!r}")
        return f"{kind}{n}"

    m = _BYTES_N_RE.match(typ)
    if m:
        if not 1 <= int(m.group(1)) <= 32:
            raise EncodingError(f"invalid fixed bytes width in {typ!r}")
        return typ

    if typ in ("bool", "address", "bytes", "string"):
        return typ
    raise EncodingError(f"unsupported ABI type {typ!r}")


def _is_dynamic(typ: str) -> bool:
    m = _ARRAY_RE.match(typ)
    if m:
        inner, size = m.groups()
        return not size or _is_dynamic(inner)
    return typ in ("bytes", "string")


def _head_size(typ: str) -> int:
    if _is_dynamic(typ):
        return WORD
    m = _ARRAY_RE.match(typ)
    if m:
        inner, size = m.groups()
        return int(size) * _head_size(inner)
    return WORD


def _int_bounds(typ: str) -> Tuple[bool, int]:
    unsigned = typ.startswith("uint")
    return unsigned, int(typ[4:] if unsigned else typ[3:])


# ---------- selectors ----------

def function_signature(name: str, types: Sequence[str]) -> str:
    return f"{name.strip()}({','.join(canonical_type(t) for t in types)})"


def function_selector(signature: str) -> bytes:
    """First four bytes of keccak over the canonical signature.

    Accepts human-readable forms such as
    ``function addBuyOrder(uint24 _price, uint96 size, bool _postOnly)``.
    """
    sig = signature.strip()
    if sig.startswith("function "):
        sig = sig[len("function "):]
    if "(" not in sig or not sig.endswith(")"):
        raise EncodingError(f"malformed function signature {signature!r}")
    name, _, params = sig[:-1].partition("(")
    types = [p.split()[0] for p in params.split(",") if p.strip()]
    return keccak256(function_signature(name, types).encode("ascii"))[:4]


# ---------- encoding ----------

def encode_abi(types: Sequence[str], values: Sequence, names: Optional[Sequence[str]] = None) -> bytes:
    types = [canonical_type(t) for t in types]
    if len(types) != len(values):
        raise EncodingError(f"expected {len(types)} values, got {len(values)}")
    if names is None:
        names = [f"arg{i}" for i in range(len(types))]
    return _encode_sequence(types, values, names)


def encode_function_call(name: str, types: Sequence[str], values: Sequence,
                         names: Optional[Sequence[str]] = None) -> bytes:
    selector = function_selector(function_signature(name, types))
    return selector + encode_abi(types, values, names)


def _encode_sequence(types: Sequence[str], values: Sequence, names: Sequence[str]) -> bytes:
    heads: List[bytes] = []
    tails: List[bytes] = []
    offset = sum(_head_size(t) for t in types)
    for typ, value, name in zip(types, values, names):
        encoded = _encode(typ, value, name)
        if _is_dynamic(typ):
            heads.append(u256(offset))
            tails.append(encoded)
            offset += len(encoded)
        else:
            heads.append(encoded)
    return b"".join(heads) + b"".join(tails)


def _encode(typ: str, value, field: str) -> bytes:
    m = _ARRAY_RE.match(typ)
    if m:
        inner, size = m.groups()
        if not isinstance(value, (list, tuple)):
            raise EncodingError(f"{typ} expects a list, got {type(value).__name__}", field)
        if size and len(value) != int(size):
            raise EncodingError(f"{typ} expects {size} elements, got {len(value)}", field)
        body = _encode_sequence([inner] * len(value), value,
                                [f"{field}[{i}]" for i in range(len(value))])
        return body if size else u256(len(value)) + body

    if typ == "bool":
        if not isinstance(value, bool):
            raise EncodingError(f"bool expects True/False, got {value!r}", field)
        return u256(int(value))

    if typ == "address":
        return addr(value, field)

    if typ in ("bytes", "string"):
        if typ == "string":
            if not isinstance(value, str):
                raise EncodingError(f"string expects str, got {type(value).__name__}", field)
            raw = value.encode("utf-8")
        else:
            raw = _as_bytes(value, field)
        padding = -len(raw) % WORD
        return u256(len(raw)) + raw + b"\x00" * padding

    m = _BYTES_N_RE.match(typ)
    if m:
        raw = _as_bytes(value, field)
        width = int(m.group(1))
        if len(raw) > width:
            raise EncodingError(f"{typ} holds at most {width} bytes, got {len(raw)}", field)
        return raw.ljust(WORD, b"\x00")

    return _encode_int(typ, value, field)


def _encode_int(typ: str, value, field: str) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"{typ} expects an int, got {type(value).__name__}", field)
    unsigned, bits = _int_bounds(typ)
    if unsigned:
        if value < 0:
            raise EncodingError(f"negative value {value} for {typ}", field)
        if value >> bits:
            raise EncodingError(f"value {value} exceeds {bits} bits for {typ}", field)
        return u256(value)
    bound = 1 << (bits - 1)
    if not -bound <= value < bound:
        raise EncodingError(f"value {value} out of range for {typ}", field)
    return (value % (1 << 256)).to_bytes(WORD, "big")


def _as_bytes(value, field: str) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return hex_to_bytes(value, field)
    raise EncodingError(f"expected bytes or hex string, got {type(value).__name__}", field)


# ---------- decoding ----------

def decode_abi(types: Sequence[str], data: bytes) -> tuple:
    types = [canonical_type(t) for t in types]
    return tuple(_decode_sequence(types, bytes(data), 0))


def decode_function_call(name: str, types: Sequence[str], data: bytes) -> tuple:
    selector = function_selector(function_signature(name, types))
    if bytes(data[:4]) != selector:
        raise EncodingError(f"selector mismatch: expected 0x{selector.hex()}, got 0x{bytes(data[:4]).hex()}")
    return decode_abi(types, data[4:])


def _read_word(data: bytes, pos: int) -> bytes:
    if pos < 0 or pos + WORD > len(data):
        raise EncodingError(f"truncated ABI data at offset {pos}")
    return data[pos:pos + WORD]


def _read_uint(data: bytes, pos: int) -> int:
    return int.from_bytes(_read_word(data, pos), "big")


def _decode_sequence(types: Sequence[str], data: bytes, base: int) -> list:
    values = []
    pos = base
    for typ in types:
        if _is_dynamic(typ):
            values.append(_decode(typ, data, base + _read_uint(data, pos)))
            pos += WORD
        else:
            values.append(_decode(typ, data, pos))
            pos += _head_size(typ)
    return values


def _decode(typ: str, data: bytes, pos: int):
    m = _ARRAY_RE.match(typ)
    if m:
        inner, size = m.groups()
        if size:
            return _decode_sequence([inner] * int(size), data, pos)
        count = _read_uint(data, pos)
        if count * WORD > len(data):
            raise EncodingError(f"array length {count} exceeds available data")
        return _decode_sequence([inner] * count, data, pos + WORD)

    if typ in ("bytes", "string"):
        length = _read_uint(data, pos)
        start = pos + WORD
        if start + length > len(data):
            raise EncodingError(f"truncated {typ} of length {length}")
        raw = data[start:start + length]
        if typ == "bytes":
            return raw
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(f"invalid UTF-8 in string: {e}") from e

    word = _read_word(data, pos)

    if typ == "bool":
        flag = int.from_bytes(word, "big")
        if flag not in (0, 1):
            raise EncodingError(f"non-canonical bool word {word.hex()}")
        return bool(flag)

    if typ == "address":
        if any(word[:12]):
            raise EncodingError(f"dirty high bytes in address word {word.hex()}")
        return to_checksum_address(word[12:])

    m = _BYTES_N_RE.match(typ)
    if m:
        width = int(m.group(1))
        if any(word[width:]):
            raise EncodingError(f"dirty padding in {typ} word {word.hex()}")
        return word[:width]

    unsigned, bits = _int_bounds(typ)
    value = int.from_bytes(word, "big")
    if unsigned:
        if value >> bits:
            raise EncodingError(f"value {value} exceeds {bits} bits for {typ}")
        return value
    if value >> 255:
        value -= 1 << 256
    bound = 1 << (bits - 1)
    if not -bound <= value < bound:
        raise EncodingError(f"value {value} out of range for {typ}")
    return value
