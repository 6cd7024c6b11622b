"""SQLite-backed storage for shipments and their items."""

from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator, Optional, Union

from billingsys.billing.repository import RecordNotFoundError
from billingsys.config import ShipmentServiceConfig
from billingsys.shipment.models import Shipment, ShipmentItem, ShipmentStatus

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS shipments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at TEXT, updated_at TEXT, deleted_at TEXT,
    order_id INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_shipments_deleted_at ON shipments(deleted_at);

CREATE TABLE IF NOT EXISTS shipment_items (
    shipment_id INTEGER NOT NULL REFERENCES shipments(id),
    sku TEXT NOT NULL,
    quantity INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (shipment_id, sku)
);
"""

_COLUMNS = ("created_at", "updated_at", "deleted_at", "order_id", "status")


class ShipmentDatabase:
    """A connection to the shipment database."""

    def __init__(self, path: Union[str, "os.PathLike[str]"] = ":memory:") -> None:
        try:
            self._conn = sqlite3.connect(
                os.fspath(path), isolation_level=None, check_same_thread=False
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as exc:
            raise ConnectionError(f"failed to connect to database: {exc}") from exc

    def migrate(self) -> None:
        """Create any missing tables and indexes."""
        log.info("Running database migrations...")
        self._conn.executescript(_SCHEMA)
        log.info("Database migrations completed successfully")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements atomically; nested use joins the outer one."""
        if self._conn.in_transaction:
            yield self._conn
            return
        self._conn.execute("BEGIN")
        try:
            yield self._conn
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")

    def close(self) -> None:
        """Close the connection."""
        self._conn.close()

    def __enter__(self) -> "ShipmentDatabase":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def open_database(config: ShipmentServiceConfig) -> ShipmentDatabase:
    """Open the database named by the service configuration."""
    return ShipmentDatabase(config.database.database)


def _to_text(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_text(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _raw(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _status(value: str) -> Union[ShipmentStatus, str]:
    try:
        return ShipmentStatus(value)
    except ValueError:
        return value


def _values(shipment: Shipment) -> tuple:
    return (
        _to_text(shipment.created_at),
        _to_text(shipment.updated_at),
        _to_text(shipment.deleted_at),
        shipment.order_id,
        _raw(shipment.status),
    )


class ShipmentRepository:
    """Shipment storage, together with shipment items."""

    def __init__(self, db: ShipmentDatabase) -> None:
        self._db = db

    def create(self, shipment: Shipment) -> None:
        """Store a new shipment and its items, setting ids and timestamps."""
        now = datetime.now(timezone.utc)
        shipment.created_at = shipment.created_at or now
        shipment.updated_at = shipment.updated_at or now
        with self._db.transaction() as conn:
            self._insert(conn, shipment)
            self._save_items(conn, shipment, upsert=False)

    def update(self, shipment: Shipment) -> None:
        """Save every field of a shipment, inserting whatever is missing."""
        if not shipment.id:
            self.create(shipment)
            return
        now = datetime.now(timezone.utc)
        shipment.created_at = shipment.created_at or now
        shipment.updated_at = now
        with self._db.transaction() as conn:
            assignments = ", ".join(f"{name} = ?" for name in _COLUMNS)
            cursor = conn.execute(
                f"UPDATE shipments SET {assignments} WHERE id = ?",
                _values(shipment) + (shipment.id,),
            )
            if cursor.rowcount == 0:
                self._insert(conn, shipment)
            self._save_items(conn, shipment, upsert=True)

    def get_by_id(self, shipment_id: int) -> Shipment:
        """Return a shipment with its items or raise RecordNotFoundError."""
        conn = self._db._conn
        row = conn.execute(
            "SELECT * FROM shipments WHERE id = ? LIMIT 1", (shipment_id,)
        ).fetchone()
        if row is None:
            raise RecordNotFoundError()
        items = [
            ShipmentItem(shipment_id=r["shipment_id"], sku=r["sku"], quantity=r["quantity"])
            for r in conn.execute(
                "SELECT * FROM shipment_items WHERE shipment_id = ? ORDER BY rowid",
                (shipment_id,),
            ).fetchall()
        ]
        return Shipment(
            id=row["id"],
            created_at=_from_text(row["created_at"]),
            updated_at=_from_text(row["updated_at"]),
            deleted_at=_from_text(row["deleted_at"]),
            order_id=row["order_id"],
            status=_status(row["status"]),
            items=items,
        )

    @staticmethod
    def _insert(conn: sqlite3.Connection, shipment: Shipment) -> None:
        names = list(_COLUMNS)
        values = _values(shipment)
        if shipment.id:
            names.insert(0, "id")
            values = (shipment.id,) + values
        placeholders = ", ".join("?" for _ in names)
        cursor = conn.execute(
            f"INSERT INTO shipments ({', '.join(names)}) VALUES ({placeholders})", values
        )
        shipment.id = cursor.lastrowid

    @staticmethod
    def _save_items(conn: sqlite3.Connection, shipment: Shipment, *, upsert: bool) -> None:
        suffix = (
            " ON CONFLICT(shipment_id, sku) DO UPDATE SET quantity = excluded.quantity"
            if upsert
            else ""
        )
        for item in shipment.items:
            item.shipment_id = shipment.id
            conn.execute(
                "INSERT INTO shipment_items (shipment_id, sku, quantity) VALUES (?, ?, ?)" + suffix,
                (item.shipment_id, item.sku, item.quantity),
            )