# ============================================================================
# PROJECT: Kuru Forwarder Signing Client
# MODULE: kuru_router.py
# PURPOSE: Turn createOrder / cancelOrders calls into signed forward requests,
#          audit them, and hand the JSON body to a relay transport.
# ============================================================================

import json
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

import audit_log
from config import KuruConfig
from forward_builder import ForwardRequestBuilder, SignedForwardRequest
from log_setup import get_logger, setup_logging
from order_intent import OrderIntent, resolve_cancel

logger = get_logger("kuru_router")

CREATE_ORDER_ENDPOINT = "createOrder"
CANCEL_ORDERS_ENDPOINT = "cancelOrders"


class RelayTransport(Protocol):
    """POSTs a JSON body to a relay endpoint and returns the decoded response."""

    def post(self, endpoint: str, body: Dict[str, Any]) -> Any:
        ...


class DryRunTransport:
    """Records every POST instead of sending it; returns the body unchanged."""

    def __init__(self, base_url: str = ""):
        self.base_url = base_url
        self.sent: List[Tuple[str, Dict[str, Any]]] = []

    def post(self, endpoint: str, body: Dict[str, Any]) -> Any:
        self.sent.append((endpoint, body))
        logger.info("relay.dry_run", url=self.base_url + endpoint, bytes=len(json.dumps(body)))
        return body


class KuruRouter:
    def __init__(self, config: KuruConfig, transport: RelayTransport,
                 builder: Optional[ForwardRequestBuilder] = None):
        self.config = config
        self.transport = transport
        self.builder = builder or ForwardRequestBuilder(config)

    def _submit(self, endpoint: str, signed: SignedForwardRequest) -> Any:
        audit_log.record_signed(signed, endpoint, self.config.audit_log_path)
        body = signed.to_payload()
        logger.info(
            "relay.submit",
            endpoint=endpoint,
            market=signed.forward_request.market,
            nonce=signed.forward_request.nonce,
            sandbox=self.config.sandbox,
        )
        return self.transport.post(endpoint, body)

    def create_order(self, order_type, side, amount, price=None,
                     params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Build, sign and relay an order.
        ``params`` carries postOnly (limit) or isMargin / isFillOrKill /
        minAmountOut (market), plus an optional marketAddress override.
        """
        params = params or {}
        intent = OrderIntent.from_params(order_type, side, amount, price, params)
        signed = self.builder.build_order(intent, params.get("marketAddress"))
        return self._submit(CREATE_ORDER_ENDPOINT, signed)

    def cancel_orders(self, ids: Iterable, params: Optional[Dict[str, Any]] = None) -> Any:
        params = params or {}
        ids = list(ids)
        # fail on bad ids before a nonce is spent
        resolve_cancel(ids)
        signed = self.builder.build_cancel(ids, params.get("marketAddress"))
        return self._submit(CANCEL_ORDERS_ENDPOINT, signed)


if __name__ == "__main__":
    config = KuruConfig.from_env()
    setup_logging(config.log_level, config.log_json)

    transport = DryRunTransport(config.active_relay_url)
    router = KuruRouter(config, transport)
    body = router.create_order(
        "limit",
        "buy",
        amount=2_500_000_000,
        price=150_000,
        params={"postOnly": True},
    )
    print(json.dumps(body, indent=2))
    print(f"[OK] Order packaged: nonce={body['forwardRequest']['nonce']}")
