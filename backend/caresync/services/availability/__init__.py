"""Availability building, reconciliation, caching and the managers that drive them."""
