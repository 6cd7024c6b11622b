from datetime import datetime, timezone

import pytest

from billingsys.shipment.convert import (
    CreateShipmentRequestMessage,
    CreateShipmentResponseMessage,
    ShipmentDataMessage,
    ShipmentItemMessage,
    ShipmentItemRequestMessage,
    items_from_messages,
    shipment_to_data,
)
from billingsys.shipment.models import (
    Shipment,
    ShipmentItem,
    ShipmentItemRequest,
    ShipmentStatus,
)

TEST_TIME = datetime(2023, 9, 15, 12, 30, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "messages, want",
    [
        ([], []),
        (
            [ShipmentItemRequestMessage(sku="SKU123", quantity=5)],
            [ShipmentItemRequest(sku="SKU123", quantity=5)],
        ),
        (
            [
                ShipmentItemRequestMessage(sku="SKU123", quantity=5),
                ShipmentItemRequestMessage(sku="SKU456", quantity=10),
                ShipmentItemRequestMessage(sku="SKU789", quantity=3),
            ],
            [
                ShipmentItemRequest(sku="SKU123", quantity=5),
                ShipmentItemRequest(sku="SKU456", quantity=10),
                ShipmentItemRequest(sku="SKU789", quantity=3),
            ],
        ),
    ],
    ids=["empty", "single", "multiple"],
)
def test_items_from_messages(messages, want):
    assert items_from_messages(messages) == want


def test_items_from_none_is_empty():
    assert items_from_messages(None) == []


def test_shipment_to_data_basic():
    shipment = Shipment(
        id=123,
        created_at=TEST_TIME,
        updated_at=TEST_TIME,
        order_id=456,
        status=ShipmentStatus.CONFIRMED,
        items=[
            ShipmentItem(shipment_id=123, sku="SKU123", quantity=5),
            ShipmentItem(shipment_id=123, sku="SKU456", quantity=10),
        ],
    )
    data = shipment_to_data(shipment)
    assert data.shipment_id == 123
    assert data.order_id == 456
    assert data.status == "CONFIRMED"
    assert data.created_at == "2023-09-15T12:30:00Z"
    assert data.items == [
        ShipmentItemMessage(sku="SKU123", quantity=5),
        ShipmentItemMessage(sku="SKU456", quantity=10),
    ]


def test_shipment_to_data_without_items():
    shipment = Shipment(
        id=123,
        created_at=TEST_TIME,
        updated_at=TEST_TIME,
        order_id=456,
        status=ShipmentStatus.CONFIRMED,
        items=[],
    )
    data = shipment_to_data(shipment)
    assert data.shipment_id == 123
    assert data.order_id == 456
    assert data.status == "CONFIRMED"
    assert data.created_at == "2023-09-15T12:30:00Z"
    assert data.items == []


def test_request_round_trip():
    payload = {"order_id": 456, "items": [{"sku": "SKU123", "quantity": 5}]}
    message = CreateShipmentRequestMessage.from_dict(payload)
    assert message.items == [ShipmentItemRequestMessage(sku="SKU123", quantity=5)]
    assert message.to_dict() == payload


def test_response_round_trip_with_data():
    response = CreateShipmentResponseMessage(
        code=1,
        message="Create shipment successfully",
        data=ShipmentDataMessage(
            shipment_id=123,
            order_id=456,
            status="CONFIRMED",
            created_at="2023-09-15T12:30:00Z",
            items=[ShipmentItemMessage(sku="SKU123", quantity=5)],
        ),
    )
    assert CreateShipmentResponseMessage.from_dict(response.to_dict()) == response


def test_response_without_data_omits_key():
    response = CreateShipmentResponseMessage(code=0, message="at least one item is required")
    data = response.to_dict()
    assert "data" not in data
    assert CreateShipmentResponseMessage.from_dict(data) == response