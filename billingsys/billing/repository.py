"""SQLite-backed storage for items, orders and invoices."""

from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Type, Union

from billingsys.billing.models import (
    Invoice,
    InvoiceItem,
    Item,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
)
from billingsys.config import BillingServiceConfig

log = logging.getLogger(__name__)

_TABLES = {
    "items": "name TEXT NOT NULL DEFAULT '', sku TEXT NOT NULL DEFAULT '' UNIQUE, "
             "price REAL NOT NULL DEFAULT 0",
    "orders": "customer_id TEXT NOT NULL DEFAULT '', total_amount REAL NOT NULL DEFAULT 0, "
              "status TEXT NOT NULL DEFAULT ''",
    "order_items": "order_id INTEGER REFERENCES orders(id), quantity INTEGER NOT NULL DEFAULT 0, "
                   "item_id INTEGER REFERENCES items(id)",
    "payments": "order_id INTEGER REFERENCES orders(id), method TEXT NOT NULL DEFAULT '', "
                "amount REAL NOT NULL DEFAULT 0",
    "invoices": "order_id INTEGER REFERENCES orders(id), "
                "shipment_id INTEGER NOT NULL DEFAULT 0 UNIQUE, total_amount REAL NOT NULL DEFAULT 0",
    "invoice_items": "invoice_id INTEGER REFERENCES invoices(id), "
                     "quantity INTEGER NOT NULL DEFAULT 0, item_id INTEGER REFERENCES items(id)",
}

_SCHEMA = "".join(
    f"CREATE TABLE IF NOT EXISTS {name} (id INTEGER PRIMARY KEY AUTOINCREMENT, "
    f"created_at TEXT, updated_at TEXT, deleted_at TEXT, {columns});\n"
    for name, columns in _TABLES.items()
)


class RecordNotFoundError(LookupError):
    """Raised when a lookup matches no row."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


class BillingDatabase:
    """A connection to the billing database."""

    def __init__(self, path: Union[str, "os.PathLike[str]"] = ":memory:") -> None:
        try:
            self._conn = sqlite3.connect(os.fspath(path), isolation_level=None,
                                         check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as exc:
            raise ConnectionError(f"failed to connect to database: {exc}") from exc

    def migrate(self) -> None:
        """Create any missing tables."""
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

    def __enter__(self) -> "BillingDatabase":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _rows(self, sql: str, *args: Any) -> List[sqlite3.Row]:
        return self._conn.execute(sql, args).fetchall()


def open_database(config: BillingServiceConfig) -> BillingDatabase:
    """Open the database named by the service configuration."""
    return BillingDatabase(config.database.database)


def _raw(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _coerce(enum_cls: Type[Enum], value: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _base(row: sqlite3.Row) -> Dict[str, Any]:
    def moment(text: Optional[str]) -> Optional[datetime]:
        return datetime.fromisoformat(text) if text else None

    return {
        "id": row["id"],
        "created_at": moment(row["created_at"]),
        "updated_at": moment(row["updated_at"]),
        "deleted_at": moment(row["deleted_at"]),
    }


def _insert(conn: sqlite3.Connection, table: str, record: Any, **values: Any) -> None:
    now = datetime.now(timezone.utc)
    record.created_at = record.created_at or now
    record.updated_at = record.updated_at or now
    columns: Dict[str, Any] = {"id": record.id} if record.id else {}
    for name in ("created_at", "updated_at", "deleted_at"):
        moment = getattr(record, name)
        columns[name] = moment.isoformat() if moment else None
    columns.update({key: _raw(value) for key, value in values.items()})
    cursor = conn.execute(
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join('?' * len(columns))})",
        tuple(columns.values()),
    )
    record.id = cursor.lastrowid


def _item(row: sqlite3.Row) -> Item:
    return Item(**_base(row), name=row["name"], sku=row["sku"], price=row["price"])


class ItemRepository:
    """Catalogue item storage."""

    def __init__(self, db: BillingDatabase) -> None:
        self._db = db

    def create(self, item: Item) -> None:
        """Store a new item, setting its id and timestamps."""
        with self._db.transaction() as conn:
            _insert(conn, "items", item, name=item.name, sku=item.sku, price=item.price)

    def get_by_sku(self, sku: str) -> Item:
        """Return the item with this SKU or raise RecordNotFoundError."""
        rows = self._db._rows("SELECT * FROM items WHERE sku = ? ORDER BY id LIMIT 1", sku)
        if not rows:
            raise RecordNotFoundError()
        return _item(rows[0])


class OrderRepository:
    """Order storage, together with order lines and payments."""

    def __init__(self, db: BillingDatabase) -> None:
        self._db = db

    def create(self, order: Order) -> None:
        """Store an order with its lines and payments atomically."""
        with self._db.transaction() as conn:
            _insert(conn, "orders", order, customer_id=order.customer_id,
                    total_amount=order.total_amount, status=order.status)
            for line in order.items:
                line.order_id = order.id
                _insert(conn, "order_items", line, order_id=line.order_id,
                        quantity=line.quantity, item_id=line.item_id)
            for payment in order.payments:
                payment.order_id = order.id
                _insert(conn, "payments", payment, order_id=payment.order_id,
                        method=payment.method, amount=payment.amount)

    def get_by_id(self, order_id: int) -> Order:
        """Return an order with its lines (and their items) and payments."""
        db = self._db
        rows = db._rows("SELECT * FROM orders WHERE id = ? LIMIT 1", order_id)
        if not rows:
            raise RecordNotFoundError()
        lines = []
        for line in db._rows("SELECT * FROM order_items WHERE order_id = ? ORDER BY id", order_id):
            items = db._rows("SELECT * FROM items WHERE id = ?", line["item_id"])
            lines.append(OrderItem(**_base(line), order_id=line["order_id"],
                                   quantity=line["quantity"], item_id=line["item_id"],
                                   item=_item(items[0]) if items else None))
        payments = [
            Payment(**_base(p), order_id=p["order_id"],
                    method=_coerce(PaymentMethod, p["method"]), amount=p["amount"])
            for p in db._rows("SELECT * FROM payments WHERE order_id = ? ORDER BY id", order_id)
        ]
        row = rows[0]
        return Order(**_base(row), customer_id=row["customer_id"],
                     total_amount=row["total_amount"],
                     status=_coerce(OrderStatus, row["status"]),
                     items=lines, payments=payments)


class InvoiceRepository:
    """Invoice storage, together with invoice lines."""

    def __init__(self, db: BillingDatabase) -> None:
        self._db = db

    def create(self, invoice: Invoice) -> None:
        """Store an invoice with its lines atomically."""
        with self._db.transaction() as conn:
            _insert(conn, "invoices", invoice, order_id=invoice.order_id,
                    shipment_id=invoice.shipment_id, total_amount=invoice.total_amount)
            for line in invoice.items:
                line.invoice_id = invoice.id
                _insert(conn, "invoice_items", line, invoice_id=line.invoice_id,
                        quantity=line.quantity, item_id=line.item_id)

    def get_by_order_id(self, order_id: int) -> List[Invoice]:
        """Return every invoice of an order, with its lines."""
        db = self._db
        return [
            Invoice(
                **_base(row),
                order_id=row["order_id"],
                shipment_id=row["shipment_id"],
                total_amount=row["total_amount"],
                items=[
                    InvoiceItem(**_base(line), invoice_id=line["invoice_id"],
                                quantity=line["quantity"], item_id=line["item_id"])
                    for line in db._rows(
                        "SELECT * FROM invoice_items WHERE invoice_id = ? ORDER BY id", row["id"])
                ],
            )
            for row in db._rows("SELECT * FROM invoices WHERE order_id = ? ORDER BY id", order_id)
        ]