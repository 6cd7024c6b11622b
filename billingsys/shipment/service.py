"""Shipment business rules: record a shipment and bill it."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List

from billingsys.shipment.client import CreateInvoiceRequest, InvoiceItemRequest
from billingsys.shipment.models import (
    Shipment,
    ShipmentItem,
    ShipmentItemRequest,
    ShipmentStatus,
)

log = logging.getLogger(__name__)


class ShipmentError(Exception):
    """A shipment could not be created."""


class ShipmentService:
    """Creates shipments and asks the billing service to invoice them."""

    def __init__(self, repository: Any, billing_client: Any) -> None:
        self._repository = repository
        self._billing = billing_client

    def create_shipment(self, order_id: int, items: Iterable[ShipmentItemRequest]) -> Shipment:
        """Store a confirmed shipment and invoice it; a refused invoice marks it failed."""
        requests = list(items or [])
        if not requests:
            raise ShipmentError("at least one item is required")

        lines: List[ShipmentItem] = []
        for request in requests:
            if not request.sku:
                raise ShipmentError("SKU is required for all items")
            if request.quantity <= 0:
                raise ShipmentError(f"quantity must be greater than 0 for SKU {request.sku}")
            lines.append(ShipmentItem(sku=request.sku, quantity=request.quantity))

        shipment = Shipment(order_id=order_id, status=ShipmentStatus.CONFIRMED, items=lines)
        try:
            self._repository.create(shipment)
        except Exception as exc:
            raise ShipmentError(f"failed to create shipment: {exc}") from exc

        invoice_request = CreateInvoiceRequest(
            shipment_id=shipment.id,
            order_id=shipment.order_id,
            items=[
                InvoiceItemRequest(sku=line.sku, quantity=int(line.quantity))
                for line in shipment.items
            ],
        )
        try:
            response = self._billing.create_invoice(invoice_request)
        except Exception as exc:
            self._mark_failed(shipment)
            raise ShipmentError(f"failed to create invoice: {exc}") from exc

        if response.code == "ERROR":
            self._mark_failed(shipment)
            raise ShipmentError(f"failed to create invoice: {response.message}")

        return shipment

    def _mark_failed(self, shipment: Shipment) -> None:
        shipment.status = ShipmentStatus.FAILED
        try:
            self._repository.update(shipment)
        except Exception as exc:
            log.error("Failed to update shipment status: %s", exc)