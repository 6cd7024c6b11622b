"""Domain records and request objects of the shipment service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union


class ShipmentStatus(str, Enum):
    """Outcome of a shipment."""

    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


@dataclass(kw_only=True)
class ShipmentItem:
    """A quantity of one SKU in a shipment."""

    shipment_id: int = 0
    sku: str = ""
    quantity: int = 0


@dataclass(kw_only=True)
class Shipment:
    """A shipment of some of an order's items."""

    id: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    order_id: int = 0
    items: List[ShipmentItem] = field(default_factory=list)
    status: Union[ShipmentStatus, str] = ShipmentStatus.CONFIRMED


@dataclass
class ShipmentItemRequest:
    """Request to ship a quantity of one SKU."""

    sku: str
    quantity: int