"""Wire messages of the shipment RPC interface and conversions to the domain."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from billingsys.shipment.models import Shipment, ShipmentItemRequest

_ZERO_TIME = "0001-01-01T00:00:00Z"


@dataclass
class ShipmentItemRequestMessage:
    sku: str = ""
    quantity: int = 0


@dataclass
class ShipmentItemMessage:
    sku: str = ""
    quantity: int = 0


@dataclass
class ShipmentDataMessage:
    shipment_id: int = 0
    order_id: int = 0
    status: str = ""
    created_at: str = ""
    items: List[ShipmentItemMessage] = field(default_factory=list)


def _items(raw: Any, cls: type) -> list:
    return [cls(sku=x.get("sku", ""), quantity=x.get("quantity", 0)) for x in raw or []]


@dataclass
class CreateShipmentRequestMessage:
    order_id: int = 0
    items: List[ShipmentItemRequestMessage] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreateShipmentRequestMessage":
        return cls(
            order_id=data.get("order_id", 0),
            items=_items(data.get("items"), ShipmentItemRequestMessage),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CreateShipmentResponseMessage:
    code: int = 0
    message: str = ""
    data: Optional[ShipmentDataMessage] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreateShipmentResponseMessage":
        raw = data.get("data")
        shipment = None
        if raw is not None:
            shipment = ShipmentDataMessage(
                shipment_id=raw.get("shipment_id", 0),
                order_id=raw.get("order_id", 0),
                status=raw.get("status", ""),
                created_at=raw.get("created_at", ""),
                items=_items(raw.get("items"), ShipmentItemMessage),
            )
        return cls(code=data.get("code", 0), message=data.get("message", ""), data=shipment)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = asdict(self.data)
        return result


def _rfc3339(moment: Optional[datetime]) -> str:
    if moment is None:
        return _ZERO_TIME
    text = moment.isoformat(timespec="seconds")
    if moment.utcoffset() in (None, timedelta(0)):
        return text[:19] + "Z"
    return text


def items_from_messages(
    messages: Optional[Sequence[ShipmentItemRequestMessage]],
) -> List[ShipmentItemRequest]:
    """Turn wire item requests into domain item requests."""
    return [ShipmentItemRequest(sku=m.sku, quantity=int(m.quantity)) for m in messages or []]


def shipment_to_data(shipment: Shipment) -> ShipmentDataMessage:
    """Describe a stored shipment in wire form."""
    status = shipment.status
    return ShipmentDataMessage(
        shipment_id=shipment.id,
        order_id=shipment.order_id,
        status=status.value if isinstance(status, Enum) else str(status),
        created_at=_rfc3339(shipment.created_at),
        items=[ShipmentItemMessage(sku=i.sku, quantity=int(i.quantity)) for i in shipment.items],
    )