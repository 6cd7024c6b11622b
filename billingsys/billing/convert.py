"""Wire messages of the billing RPC interface and conversions to and from the domain."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, TypeVar, Union

from billingsys.billing.models import (
    Invoice,
    InvoiceItem,
    InvoiceItemRequest,
    ItemRequest,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    PaymentRequest,
)

M = TypeVar("M")
R = TypeVar("R")


class OrderStatusMessage(IntEnum):
    """Order status as carried on the wire."""

    PENDING = 0
    SUCCESS = 1
    FAILED = 2


@dataclass
class ItemRequestMessage:
    sku: str = ""
    quantity: int = 0
    price: float = 0.0


@dataclass
class PaymentRequestMessage:
    method: str = ""
    amount: float = 0.0


@dataclass
class InvoiceItemRequestMessage:
    sku: str = ""
    quantity: int = 0


@dataclass
class OrderItemMessage:
    id: int = 0
    order_id: int = 0
    item_id: int = 0
    quantity: int = 0


@dataclass
class PaymentMessage:
    id: int = 0
    order_id: int = 0
    method: str = ""
    amount: float = 0.0


@dataclass
class OrderMessage:
    id: int = 0
    customer_id: str = ""
    total_amount: float = 0.0
    status: OrderStatusMessage = OrderStatusMessage.PENDING
    created_at: str = ""
    updated_at: str = ""
    items: List[OrderItemMessage] = field(default_factory=list)
    payments: List[PaymentMessage] = field(default_factory=list)


@dataclass
class InvoiceItemMessage:
    id: int = 0
    invoice_id: int = 0
    item_id: int = 0
    quantity: int = 0


@dataclass
class InvoiceMessage:
    id: int = 0
    shipment_id: int = 0
    order_id: int = 0
    total_amount: float = 0.0
    created_at: str = ""
    updated_at: str = ""
    items: List[InvoiceItemMessage] = field(default_factory=list)


def _pick(cls: Type[M], data: Dict[str, Any], **nested: Type[Any]) -> M:
    """Build a message from the known keys of a dict; nested names lists of messages."""
    names = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    kwargs = {key: value for key, value in data.items() if key in names}
    for key, item_cls in nested.items():
        kwargs[key] = [_pick(item_cls, x) for x in data.get(key) or []]
    return cls(**kwargs)


def _status_from_wire(value: Any) -> OrderStatusMessage:
    if isinstance(value, str):
        try:
            return OrderStatusMessage[value]
        except KeyError:
            raise ValueError(f"unknown order status {value!r}") from None
    return OrderStatusMessage(value)


@dataclass
class CreateOrderRequestMessage:
    customer_id: str = ""
    items: List[ItemRequestMessage] = field(default_factory=list)
    payments: List[PaymentRequestMessage] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreateOrderRequestMessage":
        return _pick(cls, data, items=ItemRequestMessage, payments=PaymentRequestMessage)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CreateOrderResponseMessage:
    order: Optional[OrderMessage] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreateOrderResponseMessage":
        order = data.get("order")
        if order is None:
            return cls()
        message = _pick(OrderMessage, order, items=OrderItemMessage, payments=PaymentMessage)
        message.status = _status_from_wire(order.get("status", 0))
        return cls(order=message)

    def to_dict(self) -> Dict[str, Any]:
        if self.order is None:
            return {}
        order = asdict(self.order)
        order["status"] = self.order.status.name
        return {"order": order}


@dataclass
class CreateInvoiceRequestMessage:
    shipment_id: int = 0
    order_id: int = 0
    items: List[InvoiceItemRequestMessage] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreateInvoiceRequestMessage":
        return _pick(cls, data, items=InvoiceItemRequestMessage)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CreateInvoiceResponseMessage:
    code: str = ""
    message: str = ""
    invoice: Optional[InvoiceMessage] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreateInvoiceResponseMessage":
        invoice = data.get("invoice")
        return cls(
            code=data.get("code", ""),
            message=data.get("message", ""),
            invoice=None if invoice is None else _pick(InvoiceMessage, invoice,
                                                       items=InvoiceItemMessage),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.invoice is None:
            del data["invoice"]
        return data


def _rfc3339(moment: Optional[datetime]) -> str:
    """Format as RFC 3339 to the second; naive times count as UTC, None as the zero time."""
    if moment is None:
        return "0001-01-01T00:00:00Z"
    text = moment.replace(microsecond=0).isoformat()
    if moment.utcoffset() is None:
        return text + "Z"
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def _wire_text(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _each(convert: Callable[[Any], R], values: Optional[Sequence[Any]]) -> Optional[List[R]]:
    return None if values is None else [convert(v) for v in values]


def item_request_from_message(message: ItemRequestMessage) -> ItemRequest:
    return ItemRequest(sku=message.sku, quantity=int(message.quantity))


def item_requests_from_messages(
    messages: Optional[Sequence[ItemRequestMessage]],
) -> Optional[List[ItemRequest]]:
    return _each(item_request_from_message, messages)


def payment_request_from_message(message: PaymentRequestMessage) -> PaymentRequest:
    try:
        method: Union[PaymentMethod, str] = PaymentMethod(message.method)
    except ValueError:
        method = message.method
    return PaymentRequest(method=method, amount=message.amount)


def payment_requests_from_messages(
    messages: Optional[Sequence[PaymentRequestMessage]],
) -> Optional[List[PaymentRequest]]:
    return _each(payment_request_from_message, messages)


def invoice_item_request_from_message(message: InvoiceItemRequestMessage) -> InvoiceItemRequest:
    return InvoiceItemRequest(sku=message.sku, quantity=int(message.quantity))


def invoice_item_requests_from_messages(
    messages: Optional[Sequence[InvoiceItemRequestMessage]],
) -> Optional[List[InvoiceItemRequest]]:
    return _each(invoice_item_request_from_message, messages)


def order_status_to_message(status: Union[OrderStatus, str]) -> OrderStatusMessage:
    """Map a domain status to the wire status; anything unknown becomes PENDING."""
    return OrderStatusMessage.__members__.get(_wire_text(status), OrderStatusMessage.PENDING)


def order_item_to_message(item: Optional[OrderItem]) -> Optional[OrderItemMessage]:
    if item is None:
        return None
    return OrderItemMessage(id=item.id, order_id=item.order_id, item_id=item.item_id,
                            quantity=item.quantity)


def order_items_to_messages(
    items: Optional[Sequence[OrderItem]],
) -> Optional[List[OrderItemMessage]]:
    return _each(order_item_to_message, items)  # type: ignore[arg-type]


def payment_to_message(payment: Optional[Payment]) -> Optional[PaymentMessage]:
    if payment is None:
        return None
    return PaymentMessage(id=payment.id, order_id=payment.order_id,
                          method=_wire_text(payment.method), amount=payment.amount)


def payments_to_messages(
    payments: Optional[Sequence[Payment]],
) -> Optional[List[PaymentMessage]]:
    return _each(payment_to_message, payments)  # type: ignore[arg-type]


def order_to_message(order: Optional[Order]) -> Optional[OrderMessage]:
    if order is None:
        return None
    return OrderMessage(
        id=order.id,
        customer_id=order.customer_id,
        total_amount=order.total_amount,
        status=order_status_to_message(order.status),
        created_at=_rfc3339(order.created_at),
        updated_at=_rfc3339(order.updated_at),
        items=order_items_to_messages(order.items) or [],
        payments=payments_to_messages(order.payments) or [],
    )


def invoice_item_to_message(item: Optional[InvoiceItem]) -> Optional[InvoiceItemMessage]:
    if item is None:
        return None
    return InvoiceItemMessage(id=item.id, invoice_id=item.invoice_id, item_id=item.item_id,
                              quantity=item.quantity)


def invoice_items_to_messages(
    items: Optional[Sequence[InvoiceItem]],
) -> Optional[List[InvoiceItemMessage]]:
    return _each(invoice_item_to_message, items)  # type: ignore[arg-type]


def invoice_to_message(invoice: Optional[Invoice]) -> Optional[InvoiceMessage]:
    if invoice is None:
        return None
    return InvoiceMessage(
        id=invoice.id,
        shipment_id=invoice.shipment_id,
        order_id=invoice.order_id,
        total_amount=invoice.total_amount,
        created_at=_rfc3339(invoice.created_at),
        updated_at=_rfc3339(invoice.updated_at),
        items=invoice_items_to_messages(invoice.items) or [],
    )