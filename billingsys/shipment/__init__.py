"""Shipment service: shipments and the invoices requested for them."""