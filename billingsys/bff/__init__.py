"""Flask JSON gateway in front of the billing and shipment services."""