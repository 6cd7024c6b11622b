"""Client the shipment service uses to reach the billing service."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from billingsys.billing.convert import (
    CreateInvoiceRequestMessage,
    CreateInvoiceResponseMessage,
    InvoiceItemRequestMessage,
)
from billingsys.billing.handler import RpcError, StatusCode

log = logging.getLogger(__name__)


@dataclass
class InvoiceItemRequest:
    """A quantity of one SKU to bill."""

    sku: str
    quantity: int


@dataclass
class CreateInvoiceRequest:
    """Request to bill a shipment."""

    shipment_id: int
    order_id: int
    items: List[InvoiceItemRequest] = field(default_factory=list)


@dataclass
class CreateInvoiceResponse:
    """Billing service's answer to an invoice request."""

    code: str
    message: str
    invoice: Optional[Any] = None


@dataclass
class InvoiceData:
    """Summary of an issued invoice."""

    id: int = 0
    shipment_id: int = 0
    order_id: int = 0
    total_amount: float = 0.0
    created_at: str = ""
    updated_at: str = ""


def _error_from_response(exc: urllib.error.HTTPError) -> RpcError:
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


class BillingConnection:
    """Sends RPC calls to the billing service at host:port."""

    timeout = 10.0

    def __init__(self, address: str) -> None:
        self.address = address

    def call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke a method and return its decoded reply."""
        request = urllib.request.Request(
            f"http://{self.address}/{method}",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return json.loads(response.read() or b"{}")
        except urllib.error.HTTPError as exc:
            raise _error_from_response(exc) from None
        except urllib.error.URLError as exc:
            raise ConnectionError(
                f"failed to reach billing service at {self.address}: {exc.reason}"
            ) from exc


class BillingClient:
    """Calls billing operations on behalf of the shipment service."""

    def __init__(self, connection: Any) -> None:
        self.connection = connection

    def create_invoice(self, request: CreateInvoiceRequest) -> CreateInvoiceResponse:
        """Ask the billing service to invoice a shipment."""
        message = CreateInvoiceRequestMessage(
            shipment_id=request.shipment_id,
            order_id=request.order_id,
            items=[
                InvoiceItemRequestMessage(sku=item.sku, quantity=item.quantity)
                for item in request.items
            ],
        )
        try:
            raw = self.connection.call("CreateInvoice", message.to_dict())
        except Exception as exc:
            log.error("Error calling CreateInvoice: %s", exc)
            raise
        reply = CreateInvoiceResponseMessage.from_dict(raw)
        return CreateInvoiceResponse(code=reply.code, message=reply.message, invoice=reply.invoice)