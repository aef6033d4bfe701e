"""Booking core services: catalog, pricing, reservation ledger, check-in, loyalty."""
