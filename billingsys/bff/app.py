"""HTTP front end that forwards order and shipment requests to the back-end services."""

from __future__ import annotations

import argparse
import json
import logging
import urllib.error
import urllib.request
from typing import Any, Dict, Optional, Sequence, Tuple

from flask import Flask, jsonify, request

from billingsys.billing.convert import (
    CreateOrderRequestMessage,
    CreateOrderResponseMessage,
    ItemRequestMessage,
    OrderMessage,
    PaymentRequestMessage,
)
from billingsys.billing.handler import RpcError, StatusCode
from billingsys.bff.responses import (
    CreateOrderRequest,
    CreateShipmentRequest,
    OrderItemResponse,
    OrderResponse,
    PaymentResponse,
    ShipmentResponse,
    ValidationError,
    error_response,
    success_response,
)
from billingsys.config import load_bff_config
from billingsys.shipment.convert import (
    CreateShipmentRequestMessage,
    CreateShipmentResponseMessage,
    ShipmentItemRequestMessage,
)

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "../../config.yaml"
_DEFAULT_PORT = 8080


def _rpc_error_from_reply(exc: urllib.error.HTTPError) -> RpcError:
    try:
        data = json.loads(exc.read() or b"{}")
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}
    try:
        code = StatusCode(int(data.get("code")))
    except (TypeError, ValueError):
        code = StatusCode.UNKNOWN
    return RpcError(code, str(data.get("message") or exc.reason))


class ServiceConnection:
    """Sends RPC calls to a back-end service listening at host:port."""

    timeout = 10.0

    def __init__(self, address: str) -> None:
        self.address = address

    def call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke a method with a JSON payload and return the decoded reply."""
        outgoing = urllib.request.Request(
            f"http://{self.address}/{method}",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(outgoing, timeout=self.timeout) as response:
                reply = json.loads(response.read() or b"{}")
        except urllib.error.HTTPError as exc:
            raise _rpc_error_from_reply(exc) from None
        except urllib.error.URLError as exc:
            raise ConnectionError(
                f"failed to reach service at {self.address}: {exc.reason}"
            ) from exc
        if not isinstance(reply, dict):
            raise RpcError(StatusCode.INTERNAL, "malformed reply")
        return reply


def order_message_to_response(order: OrderMessage) -> OrderResponse:
    """Describe a wire order in the front end's response form."""
    return OrderResponse(
        id=order.id,
        customer_id=order.customer_id,
        total_amount=order.total_amount,
        status=order.status.name,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[
            OrderItemResponse(
                id=item.id,
                order_id=item.order_id,
                item_id=item.item_id,
                quantity=int(item.quantity),
            )
            for item in order.items
        ],
        payments=[
            PaymentResponse(
                id=payment.id,
                order_id=payment.order_id,
                method=payment.method,
                amount=payment.amount,
            )
            for payment in order.payments
        ],
    )


def _json_body() -> Any:
    raw = request.get_data()
    if not raw.strip():
        raise ValidationError("EOF")
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def create_app(billing_connection: Any, shipment_connection: Any) -> Flask:
    """Build the front-end application with its /api/v1 routes."""
    app = Flask(__name__)

    def _standard_error(status: int, message: str) -> Tuple[Any, int]:
        return jsonify(error_response(status, message).to_dict()), status

    @app.post("/api/v1/orders")
    def create_order() -> Tuple[Any, int]:
        try:
            body = CreateOrderRequest.from_dict(_json_body())
        except ValidationError as exc:
            return _standard_error(400, str(exc))

        message = CreateOrderRequestMessage(
            customer_id=body.customer_id,
            items=[
                ItemRequestMessage(sku=item.sku, quantity=item.quantity, price=item.price)
                for item in body.items
            ],
            payments=[
                PaymentRequestMessage(method=payment.method, amount=payment.amount)
                for payment in body.payments
            ],
        )
        try:
            raw = billing_connection.call("CreateOrder", message.to_dict())
        except ConnectionError as exc:
            log.warning("Error connecting to billing service: %s", exc)
            return _standard_error(500, "Failed to connect to billing service")
        except Exception as exc:
            return _standard_error(500, str(exc))

        try:
            reply = CreateOrderResponseMessage.from_dict(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            return _standard_error(500, f"malformed reply from billing service: {exc}")
        if reply.order is None:
            return _standard_error(500, "billing service returned no order")

        response = order_message_to_response(reply.order)
        return jsonify(success_response(response).to_dict()), 200

    @app.post("/api/v1/shipments")
    def create_shipment() -> Tuple[Any, int]:
        try:
            body = CreateShipmentRequest.from_dict(_json_body())
        except ValidationError as exc:
            return jsonify({"error": str(exc)}), 400

        message = CreateShipmentRequestMessage(
            order_id=body.order_id,
            items=[
                ShipmentItemRequestMessage(sku=item.sku, quantity=item.quantity)
                for item in body.items
            ],
        )
        try:
            raw = shipment_connection.call("CreateShipment", message.to_dict())
        except ConnectionError as exc:
            log.warning("Error connecting to shipment service: %s", exc)
            return jsonify({"error": "Failed to connect to shipment service"}), 500
        except Exception as exc:
            return jsonify({"error": str(exc)}), 500

        try:
            reply = CreateShipmentResponseMessage.from_dict(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            return jsonify({"error": f"malformed reply from shipment service: {exc}"}), 500

        response = ShipmentResponse(code=int(reply.code), message=reply.message, data=reply.data)
        return jsonify(response.to_dict()), 200

    return app


def _split_address(address: str) -> Tuple[str, int]:
    host, _, port = (address or "").rpartition(":")
    return host or "0.0.0.0", int(port) if port else _DEFAULT_PORT


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the HTTP front end until interrupted."""
    parser = argparse.ArgumentParser(prog="bff")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="path of config.yaml")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    try:
        config = load_bff_config(args.config)
    except Exception as exc:
        raise SystemExit(f"Failed to load configuration: {exc}") from exc

    app = create_app(
        ServiceConnection(config.billing_connection.address),
        ServiceConnection(config.shipment_connection.address),
    )
    try:
        host, port = _split_address(config.server.address)
        app.run(host=host, port=port)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Failed to start server: {exc}") from exc
    return 0