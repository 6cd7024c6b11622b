"""Order and invoice business rules of the billing service."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from billingsys.billing.models import (
    Invoice,
    InvoiceItem,
    InvoiceItemRequest,
    Item,
    ItemRequest,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentRequest,
)


class BillingError(Exception):
    """Base class of the billing service's errors."""

    default_message = "billing error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class ItemNotFoundError(BillingError):
    """An item could not be found."""

    default_message = "item not found"


class OrderNotFoundError(BillingError):
    """An order could not be found."""

    default_message = "order not found"


class InvoiceNotFoundError(BillingError):
    """An invoice could not be found."""

    default_message = "invoice not found"


class PaymentNotFoundError(BillingError):
    """A payment could not be found."""

    default_message = "payment not found"


class InvalidQuantityError(BillingError):
    """A requested quantity is not acceptable."""

    default_message = "invalid quantity"


class InvalidAmountError(BillingError):
    """A monetary amount is not acceptable."""

    default_message = "invalid amount"


class InsufficientPaymentError(BillingError):
    """Payments do not cover the amount due."""

    default_message = "insufficient payment"


class DatabaseError(BillingError):
    """Storage failed."""

    default_message = "database error"


def _lookup_item(item_repo: Any, sku: str) -> Item:
    try:
        return item_repo.get_by_sku(sku)
    except Exception as exc:
        raise ItemNotFoundError(f"item with SKU {sku} not found: {exc}") from exc


class OrderService:
    """Creates and retrieves orders."""

    def __init__(self, order_repo: Any, item_repo: Any) -> None:
        self._orders = order_repo
        self._items = item_repo

    def create_order(
        self,
        customer_id: str,
        items: Iterable[ItemRequest],
        payments: Iterable[PaymentRequest],
    ) -> Order:
        """Create an order whose payments must add up exactly to its total."""
        total_amount = 0.0
        lines: List[OrderItem] = []
        for request in items:
            item = _lookup_item(self._items, request.sku)
            total_amount += float(request.quantity) * item.price
            lines.append(OrderItem(item_id=item.id, quantity=request.quantity))

        total_payment = 0.0
        records: List[Payment] = []
        for request in payments:
            total_payment += request.amount
            records.append(Payment(method=request.method, amount=request.amount))

        if total_payment != total_amount:
            raise InvalidAmountError(
                f"{InvalidAmountError.default_message}: payment total {total_payment:f} "
                f"does not match order total {total_amount:f}"
            )

        order = Order(
            customer_id=customer_id,
            total_amount=total_amount,
            status=OrderStatus.PENDING,
            items=lines,
            payments=records,
        )
        try:
            self._orders.create(order)
        except Exception as exc:
            raise DatabaseError(f"failed to create order: {exc}") from exc
        return order

    def get_order_by_id(self, order_id: int) -> Order:
        """Return the order with this id."""
        try:
            return self._orders.get_by_id(order_id)
        except Exception as exc:
            raise OrderNotFoundError(f"failed to get order with ID {order_id}: {exc}") from exc


class InvoiceService:
    """Creates invoices for shipped parts of an order."""

    def __init__(self, invoice_repo: Any, order_repo: Any, item_repo: Any) -> None:
        self._invoices = invoice_repo
        self._orders = order_repo
        self._items = item_repo

    def create_invoice(
        self,
        shipment_id: int,
        order_id: int,
        items: Iterable[InvoiceItemRequest],
    ) -> Invoice:
        """Bill items of an order without exceeding what was ordered."""
        try:
            order = self._orders.get_by_id(order_id)
        except Exception as exc:
            raise OrderNotFoundError(f"order not found: {exc}") from exc

        ordered: Dict[int, int] = {line.item_id: line.quantity for line in order.items}

        try:
            existing = self._invoices.get_by_order_id(order_id)
        except Exception as exc:
            raise DatabaseError(f"failed to retrieve existing invoices: {exc}") from exc

        consumed: Dict[int, int] = {}
        for invoice in existing:
            for line in invoice.items:
                consumed[line.item_id] = consumed.get(line.item_id, 0) + line.quantity

        total_amount = 0.0
        lines: List[InvoiceItem] = []
        requested: Dict[int, int] = {}

        for request in items:
            if request.quantity <= 0:
                raise InvalidQuantityError(
                    f"invalid quantity for item {request.sku}: {request.quantity}"
                )
            item = _lookup_item(self._items, request.sku)
            if item.id not in ordered:
                raise ItemNotFoundError(f"item {request.sku} not found in original order")
            order_qty = ordered[item.id]
            already = consumed.get(item.id, 0)
            if request.quantity + already > order_qty:
                raise InvalidQuantityError(
                    f"requested quantity {request.quantity} for item {request.sku} "
                    f"exceeds available quantity {order_qty - already} "
                    f"(consumed: {already}, ordered: {order_qty})"
                )
            requested[item.id] = requested.get(item.id, 0) + request.quantity
            total_amount += item.price * float(request.quantity)
            lines.append(InvoiceItem(quantity=request.quantity, item_id=item.id))

        if any(qty > ordered.get(item_id, 0) for item_id, qty in requested.items()):
            raise InvalidQuantityError("duplicate items in request exceed original order quantity")

        invoice = Invoice(
            order_id=order_id,
            shipment_id=shipment_id,
            total_amount=total_amount,
            items=lines,
        )
        try:
            self._invoices.create(invoice)
        except Exception as exc:
            raise DatabaseError(f"failed to create invoice: {exc}") from exc
        return invoice