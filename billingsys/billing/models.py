"""Domain records and request objects of the billing service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union


class OrderStatus(str, Enum):
    """Lifecycle state of an order."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class PaymentMethod(str, Enum):
    """Ways an order can be paid."""

    COD = "COD"
    VNPAY = "VN_PAY"


@dataclass(kw_only=True)
class _Base:
    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


@dataclass(kw_only=True)
class Item(_Base):
    """A sellable catalogue item."""

    name: str = ""
    sku: str = ""
    price: float = 0.0


@dataclass(kw_only=True)
class OrderItem(_Base):
    """A line of an order."""

    order_id: int = 0
    quantity: int = 0
    item_id: int = 0
    item: Optional[Item] = None


@dataclass(kw_only=True)
class Payment(_Base):
    """A payment made towards an order."""

    order_id: int = 0
    method: Union[PaymentMethod, str] = PaymentMethod.COD
    amount: float = 0.0


@dataclass(kw_only=True)
class InvoiceItem(_Base):
    """A line of an invoice."""

    invoice_id: int = 0
    quantity: int = 0
    item_id: int = 0
    item: Optional[Item] = None


@dataclass(kw_only=True)
class Invoice(_Base):
    """An invoice issued for one shipment of an order."""

    order_id: int = 0
    shipment_id: int = 0
    total_amount: float = 0.0
    items: List[InvoiceItem] = field(default_factory=list)


@dataclass(kw_only=True)
class Order(_Base):
    """A customer order with its lines, payments and invoices."""

    customer_id: str = ""
    total_amount: float = 0.0
    status: Union[OrderStatus, str] = OrderStatus.PENDING
    items: List[OrderItem] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)
    invoices: List[Invoice] = field(default_factory=list)


@dataclass
class ItemRequest:
    """Request to include an item in an order."""

    sku: str
    quantity: int


@dataclass
class PaymentRequest:
    """Request to add a payment to an order."""

    method: Union[PaymentMethod, str]
    amount: float


@dataclass
class InvoiceItemRequest:
    """Request to bill a quantity of an item on an invoice."""

    sku: str
    quantity: int