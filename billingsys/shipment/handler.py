"""RPC front of the shipment service and its server entry point."""

from __future__ import annotations

import argparse
import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Sequence

from billingsys.billing.handler import RpcError, StatusCode
from billingsys.config import SERVICE_CONFIG_PATH, load_shipment_config
from billingsys.shipment.client import BillingClient, BillingConnection
from billingsys.shipment.convert import (
    CreateShipmentRequestMessage,
    CreateShipmentResponseMessage,
    items_from_messages,
    shipment_to_data,
)
from billingsys.shipment.repository import ShipmentRepository, open_database
from billingsys.shipment.service import ShipmentService

log = logging.getLogger(__name__)

_HTTP_STATUS = {
    StatusCode.INVALID_ARGUMENT: 400,
    StatusCode.NOT_FOUND: 404,
    StatusCode.UNIMPLEMENTED: 501,
    StatusCode.UNAVAILABLE: 503,
}


class ShipmentHandler:
    """Serves the shipment RPC methods."""

    def __init__(self, service: Any) -> None:
        self.service = service

    def create_shipment(self, request: CreateShipmentRequestMessage) -> CreateShipmentResponseMessage:
        """Create a shipment; failures are reported with code 0."""
        items = items_from_messages(request.items)
        try:
            shipment = self.service.create_shipment(request.order_id, items)
        except Exception as exc:
            return CreateShipmentResponseMessage(code=0, message=str(exc))
        return CreateShipmentResponseMessage(
            code=1,
            message="Create shipment successfully",
            data=shipment_to_data(shipment),
        )


def make_server(handler: ShipmentHandler, host: str = "127.0.0.1", port: Any = 0) -> ThreadingHTTPServer:
    """Bind a server that answers POST /CreateShipment with JSON bodies."""

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
            if method != "CreateShipment":
                self._fail(RpcError(StatusCode.UNIMPLEMENTED, f"unknown method {method}"))
                return
            try:
                length = int(self.headers.get("Content-Length") or 0)
                payload = json.loads(self.rfile.read(length) or b"{}")
                if not isinstance(payload, dict):
                    raise ValueError("request body must be a JSON object")
                request = CreateShipmentRequestMessage.from_dict(payload)
            except (AttributeError, TypeError, ValueError) as exc:
                self._fail(RpcError(StatusCode.INVALID_ARGUMENT, f"malformed request: {exc}"))
                return
            try:
                response = handler.create_shipment(request)
            except Exception:
                log.exception("Unhandled error in %s", method)
                self._fail(RpcError(StatusCode.INTERNAL, "internal server error"))
                return
            self._reply(200, response.to_dict())

        def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
            log.debug("%s - " + format, self.address_string(), *args)

    return ThreadingHTTPServer((host, int(port)), _RequestHandler)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the shipment service until interrupted."""
    parser = argparse.ArgumentParser(prog="shipment-service")
    parser.add_argument("--config", default=SERVICE_CONFIG_PATH, help="path of config.yaml")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    try:
        config = load_shipment_config(args.config)
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

        client = BillingClient(BillingConnection(config.billing_connection.address))
        handler = ShipmentHandler(ShipmentService(ShipmentRepository(db), client))

        address = f"{config.grpc_server.host}:{config.grpc_server.port}"
        try:
            server = make_server(handler, config.grpc_server.host, config.grpc_server.port)
        except (OSError, ValueError) as exc:
            raise SystemExit(f"Failed to listen on {address}: {exc}") from exc

        with server:
            log.info("Shipment service listening on %s", address)
            try:
                server.serve_forever()
            except KeyboardInterrupt:
                pass
    finally:
        db.close()
    return 0