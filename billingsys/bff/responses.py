"""Request and response bodies of the HTTP front end, with request validation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Dict, List, Optional


class ValidationError(ValueError):
    """A request body is malformed or fails validation."""


@dataclass
class StandardResponse:
    """The envelope every front-end reply is wrapped in."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "data": _plain(self.data)}


def new_response(code: int, message: str, data: Any = None) -> StandardResponse:
    """Build a response envelope."""
    return StandardResponse(code=code, message=message, data=data)


def success_response(data: Any) -> StandardResponse:
    """Build a successful response carrying data."""
    return new_response(200, "success", data)


def error_response(code: int, message: str) -> StandardResponse:
    """Build an error response with no data."""
    return new_response(code, message, None)


def _plain(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


_KINDS = {str: "string", int: "integer", float: "number"}


def _json_kind(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _read(data: Dict[str, Any], key: str, kind: type, path: str, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if kind is str:
        ok = isinstance(value, str)
    elif kind is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    if not ok:
        raise ValidationError(
            f"cannot decode {_json_kind(value)} into field {path} of type {_KINDS[kind]}"
        )
    return float(value) if kind is float else value


def _read_list(data: Dict[str, Any], key: str, path: str) -> Optional[List[Dict[str, Any]]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValidationError(f"cannot decode {_json_kind(value)} into field {path} of type array")
    for index, element in enumerate(value):
        if not isinstance(element, dict):
            raise ValidationError(
                f"cannot decode {_json_kind(element)} into field {path}[{index}] of type object"
            )
    return value


def _object(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def _rule(namespace: str, name: str, tag: str) -> ValidationError:
    return ValidationError(
        f"Key: '{namespace}' Error:Field validation for '{name}' failed on the '{tag}' tag"
    )


@dataclass
class ItemRequest:
    """An item line of an order request."""

    sku: str = ""
    quantity: int = 0
    price: float = 0.0

    def _validate(self, prefix: str) -> None:
        if not self.sku:
            raise _rule(f"{prefix}.Sku", "Sku", "required")
        if self.quantity == 0:
            raise _rule(f"{prefix}.Quantity", "Quantity", "required")
        if self.quantity < 1:
            raise _rule(f"{prefix}.Quantity", "Quantity", "min")
        if self.price != 0 and self.price < 0:
            raise _rule(f"{prefix}.Price", "Price", "min")


@dataclass
class PaymentRequest:
    """A payment line of an order request."""

    method: str = ""
    amount: float = 0.0

    def _validate(self, prefix: str) -> None:
        if not self.method:
            raise _rule(f"{prefix}.Method", "Method", "required")
        if self.amount == 0:
            raise _rule(f"{prefix}.Amount", "Amount", "required")
        if self.amount < 0:
            raise _rule(f"{prefix}.Amount", "Amount", "min")


@dataclass
class CreateOrderRequest:
    """Body of POST /api/v1/orders."""

    customer_id: str = ""
    items: List[ItemRequest] = field(default_factory=list)
    payments: List[PaymentRequest] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "CreateOrderRequest":
        """Decode and validate an order request; raise ValidationError if it is unacceptable."""
        data = _object(data)
        customer_id = _read(data, "customer_id", str, "customer_id", "")
        raw_items = _read_list(data, "items", "items")
        raw_payments = _read_list(data, "payments", "payments")
        items = None
        if raw_items is not None:
            items = [
                ItemRequest(
                    sku=_read(x, "sku", str, f"items[{i}].sku", ""),
                    quantity=_read(x, "quantity", int, f"items[{i}].quantity", 0),
                    price=_read(x, "price", float, f"items[{i}].price", 0.0),
                )
                for i, x in enumerate(raw_items)
            ]
        payments = None
        if raw_payments is not None:
            payments = [
                PaymentRequest(
                    method=_read(x, "method", str, f"payments[{i}].method", ""),
                    amount=_read(x, "amount", float, f"payments[{i}].amount", 0.0),
                )
                for i, x in enumerate(raw_payments)
            ]

        if not customer_id:
            raise _rule("CreateOrderRequest.CustomerID", "CustomerID", "required")
        if items is None:
            raise _rule("CreateOrderRequest.Items", "Items", "required")
        for index, item in enumerate(items):
            item._validate(f"CreateOrderRequest.Items[{index}]")
        if payments is None:
            raise _rule("CreateOrderRequest.Payments", "Payments", "required")
        for index, payment in enumerate(payments):
            payment._validate(f"CreateOrderRequest.Payments[{index}]")
        return cls(customer_id=customer_id, items=items, payments=payments)


@dataclass
class OrderItemResponse:
    id: int = 0
    order_id: int = 0
    item_id: int = 0
    quantity: int = 0


@dataclass
class PaymentResponse:
    id: int = 0
    order_id: int = 0
    method: str = ""
    amount: float = 0.0


@dataclass
class OrderResponse:
    """An order as returned by the front end."""

    id: int = 0
    customer_id: str = ""
    total_amount: float = 0.0
    status: str = ""
    items: List[OrderItemResponse] = field(default_factory=list)
    payments: List[PaymentResponse] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ShipmentItemRequest:
    sku: str = ""
    quantity: int = 0


@dataclass
class CreateShipmentRequest:
    """Body of POST /api/v1/shipments."""

    order_id: int = 0
    items: List[ShipmentItemRequest] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "CreateShipmentRequest":
        """Decode a shipment request; raise ValidationError on malformed fields."""
        data = _object(data)
        order_id = _read(data, "order_id", int, "order_id", 0)
        raw_items = _read_list(data, "items", "items") or []
        items = [
            ShipmentItemRequest(
                sku=_read(x, "sku", str, f"items[{i}].sku", ""),
                quantity=_read(x, "quantity", int, f"items[{i}].quantity", 0),
            )
            for i, x in enumerate(raw_items)
        ]
        return cls(order_id=order_id, items=items)


@dataclass
class ShipmentResponse:
    """Reply of the shipment endpoint; data is left out when absent."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = _plain(self.data)
        return result