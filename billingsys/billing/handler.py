"""RPC front of the billing service and its server entry point."""

from __future__ import annotations

import argparse
import json
import logging
from enum import IntEnum
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from billingsys.billing.convert import (
    CreateInvoiceRequestMessage,
    CreateInvoiceResponseMessage,
    CreateOrderRequestMessage,
    CreateOrderResponseMessage,
    invoice_item_requests_from_messages,
    invoice_to_message,
    item_requests_from_messages,
    order_to_message,
    payment_requests_from_messages,
)
from billingsys.billing.repository import (
    InvoiceRepository,
    ItemRepository,
    OrderRepository,
    open_database,
)
from billingsys.billing.service import (
    InsufficientPaymentError,
    InvalidAmountError,
    InvalidQuantityError,
    InvoiceService,
    ItemNotFoundError,
    OrderNotFoundError,
    OrderService,
)
from billingsys.config import SERVICE_CONFIG_PATH, load_billing_config

log = logging.getLogger(__name__)


class StatusCode(IntEnum):
    """Outcome codes of an RPC call."""

    OK = 0
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    NOT_FOUND = 5
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14


_HTTP_STATUS = {
    StatusCode.OK: 200,
    StatusCode.UNKNOWN: 500,
    StatusCode.INVALID_ARGUMENT: 400,
    StatusCode.NOT_FOUND: 404,
    StatusCode.UNIMPLEMENTED: 501,
    StatusCode.INTERNAL: 500,
    StatusCode.UNAVAILABLE: 503,
}


class RpcError(Exception):
    """A failed RPC call, carrying its status code and message."""

    def __init__(self, code: StatusCode, message: str) -> None:
        super().__init__(f"rpc error: code = {code.name} desc = {message}")
        self.code = code
        self.message = message


def map_error_to_status(error: BaseException) -> RpcError:
    """Translate a service error into the RPC error sent to the caller."""
    if isinstance(error, RpcError):
        return error
    if isinstance(error, (ItemNotFoundError, OrderNotFoundError)):
        return RpcError(StatusCode.NOT_FOUND, str(error))
    if isinstance(error, (InvalidQuantityError, InvalidAmountError, InsufficientPaymentError)):
        return RpcError(StatusCode.INVALID_ARGUMENT, str(error))
    return RpcError(StatusCode.INTERNAL, "internal server error")


class OrderHandler:
    """Serves the billing RPC methods."""

    def __init__(self, order_service: OrderService, invoice_service: InvoiceService) -> None:
        self.order_service = order_service
        self.invoice_service = invoice_service

    def create_order(self, request: CreateOrderRequestMessage) -> CreateOrderResponseMessage:
        """Create an order; failures raise RpcError."""
        items = item_requests_from_messages(request.items) or []
        payments = payment_requests_from_messages(request.payments) or []
        try:
            order = self.order_service.create_order(request.customer_id, items, payments)
        except Exception as exc:
            log.warning("Failed to create order: %s", exc)
            raise map_error_to_status(exc) from exc
        return CreateOrderResponseMessage(order=order_to_message(order))

    def create_invoice(self, request: CreateInvoiceRequestMessage) -> CreateInvoiceResponseMessage:
        """Create an invoice; failures are reported in the response's code."""
        items = invoice_item_requests_from_messages(request.items) or []
        try:
            invoice = self.invoice_service.create_invoice(
                request.shipment_id, request.order_id, items
            )
        except Exception as exc:
            return CreateInvoiceResponseMessage(code="ERROR", message=str(exc))
        return CreateInvoiceResponseMessage(
            code="SUCCESS",
            message="Invoice created successfully",
            invoice=invoice_to_message(invoice),
        )


def make_server(handler: OrderHandler, host: str = "127.0.0.1", port: Any = 0) -> ThreadingHTTPServer:
    """Bind a server that answers POST /<Method> with JSON bodies."""
    routes: Dict[str, Tuple[Any, Callable[[Any], Any]]] = {
        "CreateOrder": (CreateOrderRequestMessage, handler.create_order),
        "CreateInvoice": (CreateInvoiceRequestMessage, handler.create_invoice),
    }

    class _RequestHandler(BaseHTTPRequestHandler):
        def _reply(self, status: int, body: Dict[str, Any]) -> None:
            data = json.dumps(body).encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def _fail(self, error: RpcError) -> None:
            self._reply(
                _HTTP_STATUS.get(error.code, 500),
                {"code": int(error.code), "message": error.message},
            )

        def do_POST(self) -> None:  # noqa: N802
            method = self.path.strip("/").rsplit("/", 1)[-1]
            route = routes.get(method)
            if route is None:
                self._fail(RpcError(StatusCode.UNIMPLEMENTED, f"unknown method {method}"))
                return
            message_cls, call = route
            try:
                length = int(self.headers.get("Content-Length") or 0)
                payload = json.loads(self.rfile.read(length) or b"{}")
                if not isinstance(payload, dict):
                    raise ValueError("request body must be a JSON object")
                request = message_cls.from_dict(payload)
            except (AttributeError, TypeError, ValueError) as exc:
                self._fail(RpcError(StatusCode.INVALID_ARGUMENT, f"malformed request: {exc}"))
                return
            try:
                response = call(request)
            except RpcError as exc:
                self._fail(exc)
                return
            except Exception as exc:
                log.exception("Unhandled error in %s", method)
                self._fail(map_error_to_status(exc))
                return
            self._reply(200, response.to_dict())

        def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
            log.debug("%s - " + format, self.address_string(), *args)

    return ThreadingHTTPServer((host, int(port)), _RequestHandler)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the billing service until interrupted."""
    parser = argparse.ArgumentParser(prog="billing-service")
    parser.add_argument("--config", default=SERVICE_CONFIG_PATH, help="path of config.yaml")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    try:
        config = load_billing_config(args.config)
    except Exception as exc:
        raise SystemExit(f"Failed to get config: {exc}") from exc

    try:
        db = open_database(config)
    except ConnectionError as exc:
        raise SystemExit(f"Failed to connect to database: {exc}") from exc

    try:
        try:
            db.migrate()
        except Exception as exc:
            raise SystemExit(f"Failed to run migrations: {exc}") from exc

        items = ItemRepository(db)
        orders = OrderRepository(db)
        invoices = InvoiceRepository(db)
        handler = OrderHandler(
            OrderService(orders, items),
            InvoiceService(invoices, orders, items),
        )

        address = f"{config.grpc_server.host}:{config.grpc_server.port}"
        try:
            server = make_server(handler, config.grpc_server.host, config.grpc_server.port)
        except (OSError, ValueError) as exc:
            raise SystemExit(f"Failed to listen on {address}: {exc}") from exc

        with server:
            log.info("Billing service listening on %s", address)
            try:
                server.serve_forever()
            except KeyboardInterrupt:
                pass
    finally:
        db.close()
    return 0