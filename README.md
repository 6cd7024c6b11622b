# billingsys

A small billing system made of three cooperating services:

- **billing service** (`billingsys.billing`): stores items, orders, payments
  and invoices in SQLite. It creates orders whose payments must add up exactly
  to the order total, and invoices for shipments that never bill more of an
  item than was ordered.
- **shipment service** (`billingsys.shipment`): records shipments for an order
  and asks the billing service for a matching invoice. If the invoice is
  refused, the shipment is marked `FAILED` and the error is reported back.
- **bff** (`billingsys.bff`): a Flask JSON gateway with two endpoints,
  `POST /api/v1/orders` and `POST /api/v1/shipments`, that validates requests
  and forwards them to the two services.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Configuration

Each command reads a YAML file given with `--config`. The gateway defaults to
`../../config.yaml`; the billing and shipment services default to
`../config.yaml`.

The gateway needs its own listen address and the addresses of both services:

```yaml
server:
  address: "127.0.0.1:8080"
billing_connection:
  address: "127.0.0.1:50051"
shipment_connection:
  address: "127.0.0.1:50052"
```

The billing and shipment services read a `database` section and the host and
port they listen on from `grpc_server`; the shipment service also needs the
billing service's address:

```yaml
database:
  host: localhost
  port: "5432"
  username: user
  password: password
  db_name: billing.sqlite3
grpc_server:
  host: 127.0.0.1
  port: "50051"
billing_connection:
  address: "127.0.0.1:50051"
```

`db_name` is used as the path of the SQLite database file; the other database
keys are read (and `DatabaseConfig.dsn()` formats them) but play no part in
opening the database. Tables are created on start-up.

In code, load these with `billingsys.config.load_bff_config`,
`load_billing_config` and `load_shipment_config`.

## Running the services

Start each service in its own terminal:

```
billingsys-billing --config config.yaml
billingsys-shipment --config config.yaml
billingsys-bff --config config.yaml
```

The billing and shipment services accept JSON bodies on `POST /CreateOrder`,
`POST /CreateInvoice` and `POST /CreateShipment`. Failed calls come back with
a non-200 HTTP status and a body of `{"code": <status code>, "message": ...}`.

## Using the gateway

Create an order. The sum of the payments must equal the sum of item prices
times quantities, or the order is rejected:

```
POST /api/v1/orders
{
  "customer_id": "customer-123",
  "items": [{"sku": "SKU001", "quantity": 2}],
  "payments": [{"method": "COD", "amount": 200}]
}
```

`customer_id`, `items` and `payments` are required, each item needs a `sku`
and a `quantity` of at least 1, and each payment needs a `method` and a
positive `amount`. Responses use a standard envelope:

```json
{"code": 200, "message": "success", "data": {"id": 1, "status": "PENDING", "...": "..."}}
```

Errors use the same envelope with `"data": null` and status 400 or 500.

Ship part or all of an order, which also invoices what was shipped:

```
POST /api/v1/shipments
{"order_id": 1, "items": [{"sku": "SKU001", "quantity": 1}]}
```

The reply is `{"code": 1, "message": "Create shipment successfully", "data": {...}}`
on success and `{"code": 0, "message": "<reason>"}` when the shipment or its
invoice is refused. Malformed bodies get `{"error": "<reason>"}` with status 400.

## Using the library directly

The services can be used without any network layer:

```python
from billingsys.billing.models import Item, ItemRequest, PaymentRequest, PaymentMethod
from billingsys.billing.repository import (
    BillingDatabase, ItemRepository, OrderRepository, InvoiceRepository,
)
from billingsys.billing.service import OrderService, InvoiceService

db = BillingDatabase(":memory:")
db.migrate()
items = ItemRepository(db)
orders = OrderRepository(db)
invoices = InvoiceRepository(db)

items.create(Item(name="Widget", sku="SKU001", price=100.0))

order = OrderService(orders, items).create_order(
    "customer-123",
    [ItemRequest(sku="SKU001", quantity=2)],
    [PaymentRequest(method=PaymentMethod.COD, amount=200.0)],
)
```

`OrderService.create_order` raises `ItemNotFoundError` for unknown SKUs and
`InvalidAmountError` when payments do not match the total.
`InvoiceService.create_invoice` raises `OrderNotFoundError`,
`ItemNotFoundError` or `InvalidQuantityError` when the order is missing, an
item is not part of it, or a quantity is invalid or would exceed what remains
to be invoiced. All of these derive from `BillingError`.

The shipment side is built the same way from `ShipmentDatabase`,
`ShipmentRepository`, `ShipmentService` and a `BillingClient`.

## What it does not do

- The services talk JSON over plain HTTP, not gRPC, despite the
  `grpc_server` configuration key.
- Storage is SQLite only; there is no client for a database server.
- There is no endpoint for adding catalogue items or for reading orders,
  invoices or shipments back; items are added with `ItemRepository.create`.