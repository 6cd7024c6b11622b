import sqlite3

import pytest

from billingsys.billing.repository import RecordNotFoundError
from billingsys.config import DatabaseConfig, ShipmentServiceConfig
from billingsys.shipment.models import Shipment, ShipmentItem, ShipmentStatus
from billingsys.shipment.repository import (
    ShipmentDatabase,
    ShipmentRepository,
    open_database,
)


@pytest.fixture
def db():
    database = ShipmentDatabase()
    database.migrate()
    yield database
    database.close()


def _shipment():
    return Shipment(
        order_id=456,
        status=ShipmentStatus.CONFIRMED,
        items=[
            ShipmentItem(sku="SKU123", quantity=5),
            ShipmentItem(sku="SKU456", quantity=10),
        ],
    )


def test_create_assigns_ids_and_round_trips(db):
    repo = ShipmentRepository(db)
    shipment = _shipment()
    repo.create(shipment)
    assert shipment.id > 0
    assert [item.shipment_id for item in shipment.items] == [shipment.id, shipment.id]

    loaded = repo.get_by_id(shipment.id)
    assert loaded.order_id == 456
    assert loaded.status is ShipmentStatus.CONFIRMED
    assert [(i.sku, i.quantity) for i in loaded.items] == [("SKU123", 5), ("SKU456", 10)]
    assert loaded.created_at == shipment.created_at


def test_create_gives_distinct_ids(db):
    repo = ShipmentRepository(db)
    first, second = _shipment(), _shipment()
    repo.create(first)
    repo.create(second)
    assert first.id != second.id
    assert repo.get_by_id(second.id).id == second.id


def test_get_missing_shipment_raises(db):
    with pytest.raises(RecordNotFoundError):
        ShipmentRepository(db).get_by_id(999)


def test_duplicate_sku_rolls_back(db):
    repo = ShipmentRepository(db)
    shipment = Shipment(
        order_id=1,
        items=[ShipmentItem(sku="SKU123", quantity=1), ShipmentItem(sku="SKU123", quantity=2)],
    )
    with pytest.raises(sqlite3.IntegrityError):
        repo.create(shipment)
    with pytest.raises(RecordNotFoundError):
        repo.get_by_id(shipment.id)


def test_update_changes_status_and_items(db):
    repo = ShipmentRepository(db)
    shipment = _shipment()
    repo.create(shipment)
    shipment.status = ShipmentStatus.FAILED
    shipment.items[0].quantity = 7
    repo.update(shipment)

    loaded = repo.get_by_id(shipment.id)
    assert loaded.status is ShipmentStatus.FAILED
    assert [(i.sku, i.quantity) for i in loaded.items] == [("SKU123", 7), ("SKU456", 10)]
    assert loaded.updated_at >= loaded.created_at


def test_update_without_id_inserts(db):
    repo = ShipmentRepository(db)
    shipment = _shipment()
    repo.update(shipment)
    assert shipment.id > 0
    assert repo.get_by_id(shipment.id).order_id == 456


def test_migrate_is_idempotent(db):
    db.migrate()
    repo = ShipmentRepository(db)
    shipment = _shipment()
    repo.create(shipment)
    assert repo.get_by_id(shipment.id).order_id == 456


def test_open_database_from_config():
    config = ShipmentServiceConfig(database=DatabaseConfig(database=":memory:"))
    with open_database(config) as database:
        database.migrate()
        repo = ShipmentRepository(database)
        shipment = _shipment()
        repo.create(shipment)
        assert len(repo.get_by_id(shipment.id).items) == 2