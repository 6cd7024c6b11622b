import json
import threading
import urllib.error
import urllib.request

import pytest

from billingsys.shipment.convert import CreateShipmentRequestMessage, ShipmentItemRequestMessage
from billingsys.shipment.handler import ShipmentHandler, main, make_server
from billingsys.shipment.models import Shipment, ShipmentItem, ShipmentStatus
from billingsys.shipment.service import ShipmentError


class StubService:
    def __init__(self, shipment=None, error=None):
        self.shipment = shipment
        self.error = error
        self.calls = []

    def create_shipment(self, order_id, items):
        self.calls.append((order_id, [(i.sku, i.quantity) for i in items]))
        if self.error is not None:
            raise self.error
        return self.shipment


def sample_shipment():
    return Shipment(
        id=123,
        order_id=456,
        status=ShipmentStatus.CONFIRMED,
        items=[ShipmentItem(shipment_id=123, sku="SKU123", quantity=5)],
    )


def request():
    return CreateShipmentRequestMessage(
        order_id=456, items=[ShipmentItemRequestMessage(sku="SKU123", quantity=5)]
    )


def test_create_shipment_success():
    service = StubService(shipment=sample_shipment())
    response = ShipmentHandler(service).create_shipment(request())
    assert response.code == 1
    assert response.message == "Create shipment successfully"
    assert response.data.shipment_id == 123
    assert response.data.order_id == 456
    assert response.data.status == "CONFIRMED"
    assert [(i.sku, i.quantity) for i in response.data.items] == [("SKU123", 5)]
    assert service.calls == [(456, [("SKU123", 5)])]


def test_create_shipment_error_reported_in_response():
    service = StubService(error=ShipmentError("at least one item is required"))
    response = ShipmentHandler(service).create_shipment(request())
    assert response.code == 0
    assert response.message == "at least one item is required"
    assert response.data is None


@pytest.fixture
def server_url():
    handler = ShipmentHandler(StubService(shipment=sample_shipment()))
    server = make_server(handler, "127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
    thread.join()


def post(url, body):
    req = urllib.request.Request(
        url, data=body, headers={"Content-Type": "application/json"}, method="POST"
    )
    try:
        with urllib.request.urlopen(req, timeout=5) as resp:
            return resp.status, json.loads(resp.read())
    except urllib.error.HTTPError as exc:
        return exc.code, json.loads(exc.read())


def test_server_create_shipment(server_url):
    status, body = post(
        server_url + "/CreateShipment",
        json.dumps({"order_id": 456, "items": [{"sku": "SKU123", "quantity": 5}]}).encode(),
    )
    assert status == 200
    assert body["code"] == 1
    assert body["data"]["shipment_id"] == 123
    assert body["data"]["items"] == [{"sku": "SKU123", "quantity": 5}]


def test_server_unknown_method(server_url):
    status, body = post(server_url + "/DeleteShipment", b"{}")
    assert status == 501
    assert body["code"] == 12


def test_server_rejects_non_object_body(server_url):
    status, body = post(server_url + "/CreateShipment", b"[1]")
    assert status == 400
    assert body["code"] == 3


def test_main_fails_without_config(tmp_path):
    with pytest.raises(SystemExit, match="Failed to get config"):
        main(["--config", str(tmp_path / "missing.yaml")])