"""Billing service: items, orders, payments and invoices."""