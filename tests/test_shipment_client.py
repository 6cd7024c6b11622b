import socket
import threading

import pytest

from billingsys.billing.handler import OrderHandler, RpcError, StatusCode, make_server
from billingsys.billing.models import Item, ItemRequest, PaymentRequest
from billingsys.billing.repository import (
    BillingDatabase,
    InvoiceRepository,
    ItemRepository,
    OrderRepository,
)
from billingsys.billing.service import InvoiceService, OrderService
from billingsys.shipment.client import (
    BillingClient,
    BillingConnection,
    CreateInvoiceRequest,
    InvoiceItemRequest,
)


class _RecordingConnection:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def call(self, method, payload):
        self.calls.append((method, payload))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def billing():
    db = BillingDatabase()
    db.migrate()
    items = ItemRepository(db)
    items.create(Item(name="Item 1", sku="SKU001", price=100.0))
    orders = OrderRepository(db)
    order_service = OrderService(orders, items)
    handler = OrderHandler(order_service, InvoiceService(InvoiceRepository(db), orders, items))
    server = make_server(handler, "127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"127.0.0.1:{server.server_address[1]}", order_service
    server.shutdown()
    server.server_close()
    db.close()


def test_create_invoice_sends_request_and_parses_reply():
    connection = _RecordingConnection(
        reply={
            "code": "SUCCESS",
            "message": "Invoice created successfully",
            "invoice": {"id": 9, "shipment_id": 7, "order_id": 3, "total_amount": 50.0},
        }
    )
    response = BillingClient(connection).create_invoice(
        CreateInvoiceRequest(
            shipment_id=7, order_id=3, items=[InvoiceItemRequest(sku="SKU123", quantity=5)]
        )
    )
    assert connection.calls == [
        (
            "CreateInvoice",
            {"shipment_id": 7, "order_id": 3, "items": [{"sku": "SKU123", "quantity": 5}]},
        )
    ]
    assert response.code == "SUCCESS"
    assert response.invoice.id == 9
    assert response.invoice.shipment_id == 7


def test_create_invoice_propagates_connection_errors():
    connection = _RecordingConnection(error=ConnectionError("down"))
    with pytest.raises(ConnectionError):
        BillingClient(connection).create_invoice(CreateInvoiceRequest(shipment_id=1, order_id=1))


def test_create_invoice_against_billing_server(billing):
    address, order_service = billing
    order = order_service.create_order(
        "customer-123", [ItemRequest("SKU001", 2)], [PaymentRequest("COD", 200.0)]
    )
    client = BillingClient(BillingConnection(address))
    response = client.create_invoice(
        CreateInvoiceRequest(
            shipment_id=101, order_id=order.id, items=[InvoiceItemRequest("SKU001", 1)]
        )
    )
    assert response.code == "SUCCESS"
    assert response.invoice.order_id == order.id
    assert response.invoice.shipment_id == 101

    over = client.create_invoice(
        CreateInvoiceRequest(
            shipment_id=102, order_id=order.id, items=[InvoiceItemRequest("SKU001", 2)]
        )
    )
    assert over.code == "ERROR"
    assert "exceeds available quantity" in over.message
    assert over.invoice is None


def test_connection_reports_rpc_error(billing):
    address, _ = billing
    with pytest.raises(RpcError) as info:
        BillingConnection(address).call("NoSuchMethod", {})
    assert info.value.code is StatusCode.UNIMPLEMENTED


def test_connection_to_closed_port_raises():
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    with pytest.raises(ConnectionError):
        BillingConnection(f"127.0.0.1:{port}").call("CreateInvoice", {})