"""Builds and signs forwarder meta-transactions.

intent -> call data -> ForwardRequest -> EIP-712 digest -> signature.
No network I/O happens here; the result is handed to a relay transport.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from config import KuruConfig
from errors import ConfigurationError, SigningError
from forward_struct import ForwardRequest, typed_data_digest
from keccak_core import to_hex
from log_setup import get_logger
from order_intent import OrderIntent, encode_cancel, resolve
from sign_core import Signature, parse_private_key, private_key_to_address, sign_digest, verify_digest

logger = get_logger("forward_builder")


class MonotonicNonce:
    """Strictly increasing nonces seeded from wall-clock milliseconds.

    Plain millisecond timestamps collide when two requests are built in the
    same millisecond; this never hands out the same value twice per process.
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            now_ms = self._clock() // 1_000_000
            self._last = max(now_ms, self._last + 1)
            return self._last


@dataclass(frozen=True)
class SignedForwardRequest:
    forward_request: ForwardRequest
    signature: Signature
    digest: bytes

    def to_payload(self) -> Dict[str, object]:
        """Relay POST body: ``{"forwardRequest": {...}, "signature": "0x..."}``."""
        return {
            "forwardRequest": self.forward_request.to_json(),
            "signature": self.signature.to_hex(),
        }


class ForwardRequestBuilder:
    def __init__(self, config: KuruConfig, nonce_source: Optional[Callable[[], int]] = None):
        self.config = config
        self._private_key = parse_private_key(config.private_key)
        self._nonce = nonce_source or MonotonicNonce()

        derived = private_key_to_address(self._private_key)
        if derived.lower() != config.wallet_address.lower():
            raise SigningError(
                f"private key controls {derived}, not configured wallet {config.wallet_address}",
                "wallet_address",
            )
        self.domain = config.domain

    def _market(self, market: Optional[str]) -> str:
        market = market or self.config.market_address
        if not market:
            raise ConfigurationError("no market address given or configured", "market_address")
        return market

    def build(self, market: Optional[str], call_data: bytes) -> SignedForwardRequest:
        request = ForwardRequest(
            from_address=self.config.wallet_address,
            market=self._market(market),
            value=0,
            nonce=self._nonce(),
            data=call_data,
        )
        digest = typed_data_digest(self.domain, request)
        signature = sign_digest(digest, self._private_key)

        if not verify_digest(digest, signature, request.from_address):
            raise SigningError("signature does not recover to the wallet address", "signature")

        logger.debug(
            "forward_builder.signed",
            market=request.market,
            nonce=request.nonce,
            digest=to_hex(digest),
        )
        return SignedForwardRequest(forward_request=request, signature=signature, digest=digest)

    def build_order(self, intent: OrderIntent, market: Optional[str] = None) -> SignedForwardRequest:
        spec, args = resolve(intent)
        signed = self.build(market, spec.encode(args))
        logger.info(
            "forward_builder.order",
            function=spec.signature,
            call_args=[str(a) for a in args],
            nonce=signed.forward_request.nonce,
        )
        return signed

    def build_cancel(self, order_ids: Iterable, market: Optional[str] = None) -> SignedForwardRequest:
        order_ids = list(order_ids)
        signed = self.build(market, encode_cancel(order_ids))
        logger.info(
            "forward_builder.cancel",
            order_ids=[str(o) for o in order_ids],
            nonce=signed.forward_request.nonce,
        )
        return signed
