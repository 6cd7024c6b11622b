from datetime import datetime, timedelta, timezone

import pytest

from billingsys.billing.convert import (
    CreateInvoiceRequestMessage,
    CreateInvoiceResponseMessage,
    CreateOrderRequestMessage,
    CreateOrderResponseMessage,
    InvoiceItemRequestMessage,
    InvoiceMessage,
    ItemRequestMessage,
    OrderStatusMessage,
    PaymentRequestMessage,
    invoice_item_requests_from_messages,
    invoice_to_message,
    item_requests_from_messages,
    order_status_to_message,
    order_to_message,
    payment_requests_from_messages,
)
from billingsys.billing.models import (
    Invoice,
    InvoiceItem,
    ItemRequest,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
)

TEST_TIME = datetime(2023, 9, 15, 12, 30, 0, tzinfo=timezone.utc)


def test_item_requests_multiple():
    result = item_requests_from_messages(
        [
            ItemRequestMessage(sku="SKU-001", quantity=2, price=25.0),
            ItemRequestMessage(sku="SKU-002", quantity=1, price=50.0),
        ]
    )
    assert result == [ItemRequest("SKU-001", 2), ItemRequest("SKU-002", 1)]


def test_item_requests_empty():
    assert item_requests_from_messages([]) == []


def test_item_requests_none():
    assert item_requests_from_messages(None) is None


def test_payment_requests_map_known_method():
    result = payment_requests_from_messages(
        [PaymentRequestMessage(method="VN_PAY", amount=12.5), PaymentRequestMessage("CARD", 1.0)]
    )
    assert result[0].method is PaymentMethod.VNPAY
    assert result[0].amount == 12.5
    assert result[1].method == "CARD"
    assert payment_requests_from_messages(None) is None


def test_invoice_item_requests():
    result = invoice_item_requests_from_messages([InvoiceItemRequestMessage("SKU1", 3)])
    assert [(r.sku, r.quantity) for r in result] == [("SKU1", 3)]
    assert invoice_item_requests_from_messages(None) is None


def test_order_to_message_with_items_and_payments():
    order = Order(
        id=1,
        created_at=TEST_TIME,
        updated_at=TEST_TIME,
        customer_id="customer-123",
        total_amount=100.0,
        status=OrderStatus.PENDING,
        items=[OrderItem(id=1, order_id=1, item_id=100, quantity=2)],
        payments=[Payment(id=1, order_id=1, method=PaymentMethod.COD, amount=100.0)],
    )
    message = order_to_message(order)
    assert message.id == 1
    assert message.customer_id == "customer-123"
    assert message.total_amount == 100.0
    assert message.status is OrderStatusMessage.PENDING
    assert message.created_at == "2023-09-15T12:30:00Z"
    assert message.updated_at == "2023-09-15T12:30:00Z"
    assert [(i.id, i.order_id, i.item_id, i.quantity) for i in message.items] == [(1, 1, 100, 2)]
    assert [(p.id, p.order_id, p.method, p.amount) for p in message.payments] == [
        (1, 1, "COD", 100.0)
    ]


def test_order_to_message_none():
    assert order_to_message(None) is None


def test_order_to_message_success_status():
    order = Order(
        id=2,
        created_at=TEST_TIME,
        updated_at=TEST_TIME,
        customer_id="customer-456",
        total_amount=200.0,
        status=OrderStatus.SUCCESS,
    )
    message = order_to_message(order)
    assert message.status is OrderStatusMessage.SUCCESS
    assert message.items == []
    assert message.payments == []


def test_timestamp_formats():
    offset = timezone(timedelta(hours=7))
    order = Order(created_at=datetime(2023, 9, 15, 12, 30, 45, 123456, tzinfo=offset))
    message = order_to_message(order)
    assert message.created_at == "2023-09-15T12:30:45+07:00"
    assert message.updated_at == "0001-01-01T00:00:00Z"


@pytest.mark.parametrize(
    "status, expected",
    [
        (OrderStatus.PENDING, OrderStatusMessage.PENDING),
        (OrderStatus.SUCCESS, OrderStatusMessage.SUCCESS),
        (OrderStatus.FAILED, OrderStatusMessage.FAILED),
        ("UNKNOWN", OrderStatusMessage.PENDING),
    ],
)
def test_order_status_to_message(status, expected):
    assert order_status_to_message(status) is expected


def test_invoice_to_message():
    invoice = Invoice(
        id=5,
        created_at=TEST_TIME,
        updated_at=TEST_TIME,
        order_id=1,
        shipment_id=101,
        total_amount=300.0,
        items=[InvoiceItem(id=1, invoice_id=5, item_id=1, quantity=2)],
    )
    message = invoice_to_message(invoice)
    assert (message.id, message.shipment_id, message.order_id) == (5, 101, 1)
    assert message.total_amount == 300.0
    assert message.created_at == "2023-09-15T12:30:00Z"
    assert [(i.id, i.invoice_id, i.item_id, i.quantity) for i in message.items] == [(1, 5, 1, 2)]
    assert invoice_to_message(None) is None


def test_create_order_request_round_trip():
    data = {
        "customer_id": "c-1",
        "items": [{"sku": "A", "quantity": 2, "price": 1.5}],
        "payments": [{"method": "COD", "amount": 3.0}],
    }
    message = CreateOrderRequestMessage.from_dict(data)
    assert message.items == [ItemRequestMessage("A", 2, 1.5)]
    assert message.to_dict() == data


def test_create_order_response_round_trip():
    order = order_to_message(
        Order(id=3, status=OrderStatus.FAILED, created_at=TEST_TIME, updated_at=TEST_TIME)
    )
    response = CreateOrderResponseMessage(order=order)
    data = response.to_dict()
    assert data["order"]["status"] == "FAILED"
    assert CreateOrderResponseMessage.from_dict(data) == response
    assert CreateOrderResponseMessage().to_dict() == {}


def test_create_invoice_messages_round_trip():
    request = CreateInvoiceRequestMessage(
        shipment_id=9, order_id=4, items=[InvoiceItemRequestMessage("S", 1)]
    )
    assert CreateInvoiceRequestMessage.from_dict(request.to_dict()) == request

    response = CreateInvoiceResponseMessage(
        code="SUCCESS", message="ok", invoice=InvoiceMessage(id=1, order_id=4)
    )
    assert CreateInvoiceResponseMessage.from_dict(response.to_dict()) == response
    assert CreateInvoiceResponseMessage("ERROR", "bad").to_dict() == {
        "code": "ERROR",
        "message": "bad",
    }


def test_unknown_status_name_rejected():
    with pytest.raises(ValueError):
        CreateOrderResponseMessage.from_dict({"order": {"status": "LOST"}})