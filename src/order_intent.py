"""Maps trading intents onto the order-book contract functions.

The forwarder relays arbitrary calls to the market contract, so the
intent only decides which function is called and with which arguments:

    limit  buy   addBuyOrder(uint24 _price, uint96 size, bool _postOnly)
    limit  sell  addSellOrder(uint24 _price, uint96 size, bool _postOnly)
    market buy   placeAndExecuteMarketBuy(uint24 _quoteSize, uint256 _minAmountOut,
                                          bool _isMargin, bool _isFillOrKill)
    market sell  placeAndExecuteMarketSell(uint96 _size, uint256 _minAmountOut,
                                           bool _isMargin, bool _isFillOrKill)
    cancel       batchCancelOrders(uint40[] _orderIds)

Prices and sizes are passed through in contract units; range checks are
the encoder's job.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from abi_codec import encode_function_call, function_selector
from errors import InvalidIntent


class OrderType(str, Enum):
    LIMIT = "limit"
    MARKET = "market"

    @classmethod
    def parse(cls, value) -> "OrderType":
        return _parse_enum(cls, value, "type")


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value) -> "OrderSide":
        return _parse_enum(cls, value, "side")


def _parse_enum(enum_cls, value, field):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise InvalidIntent(f"unknown order {field} {value!r}", field) from None


@dataclass(frozen=True)
class CallSpec:
    function_name: str
    params: Tuple[Tuple[str, str], ...]

    @property
    def types(self) -> Tuple[str, ...]:
        return tuple(typ for _, typ in self.params)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.params)

    @property
    def signature(self) -> str:
        return f"{self.function_name}({','.join(self.types)})"

    @property
    def selector(self) -> bytes:
        return function_selector(self.signature)

    def encode(self, args: Sequence) -> bytes:
        return encode_function_call(self.function_name, self.types, args, self.names)


ADD_BUY_ORDER = CallSpec("addBuyOrder", (
    ("_price", "uint24"),
    ("size", "uint96"),
    ("_postOnly", "bool"),
))
ADD_SELL_ORDER = CallSpec("addSellOrder", (
    ("_price", "uint24"),
    ("size", "uint96"),
    ("_postOnly", "bool"),
))
MARKET_BUY = CallSpec("placeAndExecuteMarketBuy", (
    ("_quoteSize", "uint24"),
    ("_minAmountOut", "uint256"),
    ("_isMargin", "bool"),
    ("_isFillOrKill", "bool"),
))
MARKET_SELL = CallSpec("placeAndExecuteMarketSell", (
    ("_size", "uint96"),
    ("_minAmountOut", "uint256"),
    ("_isMargin", "bool"),
    ("_isFillOrKill", "bool"),
))
BATCH_CANCEL_ORDERS = CallSpec("batchCancelOrders", (
    ("_orderIds", "uint40[]"),
))


@dataclass(frozen=True)
class OrderIntent:
    type: OrderType
    side: OrderSide
    amount: Any
    price: Any = None
    post_only: Optional[bool] = None
    is_margin: Optional[bool] = None
    is_fill_or_kill: Optional[bool] = None
    min_amount_out: Any = None

    def __post_init__(self):
        object.__setattr__(self, "type", OrderType.parse(self.type))
        object.__setattr__(self, "side", OrderSide.parse(self.side))

    @classmethod
    def from_params(cls, order_type, side, amount, price=None,
                    params: Optional[Dict[str, Any]] = None) -> "OrderIntent":
        """Build an intent from a ``createOrder``-style call with camelCase params."""
        params = params or {}
        return cls(
            type=OrderType.parse(order_type),
            side=OrderSide.parse(side),
            amount=amount,
            price=price,
            post_only=params.get("postOnly"),
            is_margin=params.get("isMargin"),
            is_fill_or_kill=params.get("isFillOrKill"),
            min_amount_out=params.get("minAmountOut"),
        )

    def validate(self) -> None:
        if self.amount is None:
            raise InvalidIntent("amount is required", "amount")
        if self.type is OrderType.LIMIT:
            if self.price is None:
                raise InvalidIntent("price is required for limit orders", "price")
            # zero is not a price either
            if to_int(self.price, "price") == 0:
                raise InvalidIntent("price must be non-zero for limit orders", "price")
            _require_bool(self.post_only, "postOnly", "limit")
        else:
            _require_bool(self.is_margin, "isMargin", "market")
            _require_bool(self.is_fill_or_kill, "isFillOrKill", "market")
            if self.min_amount_out is None:
                raise InvalidIntent("minAmountOut is required for market orders", "minAmountOut")


def _require_bool(value, field, kind):
    if value is None:
        raise InvalidIntent(f"{field} is required for {kind} orders", field)
    if not isinstance(value, bool):
        raise InvalidIntent(f"{field} must be a bool, got {value!r}", field)


def to_int(value, field: str) -> int:
    """Coerce a caller-supplied quantity to an int without losing precision."""
    if isinstance(value, bool):
        raise InvalidIntent(f"{field} must be a number, got {value!r}", field)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        # str.isdigit() also accepts non-ASCII digits that int() rejects
        if text.isascii() and text.isdigit():
            return int(text)
        raise InvalidIntent(f"{field} is not an integer string: {value!r}", field)
    if isinstance(value, (float, Decimal)):
        dec = Decimal(value) if isinstance(value, Decimal) else Decimal(repr(value))
        if dec.is_finite() and dec == dec.to_integral_value():
            return int(dec)
        raise InvalidIntent(f"{field} must be integral in contract units, got {value!r}", field)
    raise InvalidIntent(f"{field} must be a number, got {type(value).__name__}", field)


def call_spec_for(order_type: OrderType, side: OrderSide) -> CallSpec:
    order_type = OrderType.parse(order_type)
    side = OrderSide.parse(side)
    if order_type is OrderType.LIMIT:
        return ADD_BUY_ORDER if side is OrderSide.BUY else ADD_SELL_ORDER
    if order_type is OrderType.MARKET:
        return MARKET_BUY if side is OrderSide.BUY else MARKET_SELL
    raise InvalidIntent(f"no contract call for ({order_type}, {side})")


def resolve(intent: OrderIntent) -> Tuple[CallSpec, tuple]:
    intent.validate()
    spec = call_spec_for(intent.type, intent.side)
    if intent.type is OrderType.LIMIT:
        args = (
            to_int(intent.price, "price"),
            to_int(intent.amount, "amount"),
            intent.post_only,
        )
    else:
        args = (
            to_int(intent.amount, "amount"),
            to_int(intent.min_amount_out, "minAmountOut"),
            intent.is_margin,
            intent.is_fill_or_kill,
        )
    return spec, args


def resolve_cancel(order_ids: Iterable) -> Tuple[CallSpec, tuple]:
    if isinstance(order_ids, (str, bytes)):
        raise InvalidIntent("order ids must be a list, not a single string", "orderIds")
    ids = [to_int(oid, f"orderIds[{i}]") for i, oid in enumerate(order_ids)]
    if not ids:
        raise InvalidIntent("at least one order id is required", "orderIds")
    return BATCH_CANCEL_ORDERS, (ids,)


def encode_intent(intent: OrderIntent) -> bytes:
    spec, args = resolve(intent)
    return spec.encode(args)


def encode_cancel(order_ids: Iterable) -> bytes:
    spec, args = resolve_cancel(order_ids)
    return spec.encode(args)
