"""Billing, shipment and gateway services for a small order-to-invoice system."""

__version__ = "0.1.0"