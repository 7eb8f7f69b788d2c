"""
fleetdb -- fleet-management data layer.

Tracks drivers, vehicles, checkout/return history and user accounts behind
a single persistence gateway that targets either an embedded file-backed
SQLite database (development) or a remote SQL service (production).
"""

__version__ = "0.1.0"
