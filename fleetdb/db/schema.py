"""
Schema and seed data for the fleet database.

Tables (created in foreign-key dependency order):
    drivers   -- people who can check vehicles out
    vehicles  -- fleet vehicles keyed by licence plate
    history   -- checkout/return log, one row per checkout
    users     -- login accounts, role 'admin' or 'driver'

The DDL text is shared verbatim by both backends and must not be
reformatted: existing database files store it in ``sqlite_master``.
"""

from __future__ import annotations

from typing import Any

from fleetdb.security import hash_password

TABLE_NAMES = ("drivers", "vehicles", "history", "users")

CREATE_TABLES: tuple[str, ...] = (
    """CREATE TABLE IF NOT EXISTS drivers (
      id TEXT PRIMARY KEY,
      name TEXT NOT NULL,
      department TEXT NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS vehicles (
      id TEXT PRIMARY KEY,
      model TEXT NOT NULL,
      isCheckedOut BOOLEAN DEFAULT FALSE,
      currentDriver TEXT,
      FOREIGN KEY (currentDriver) REFERENCES drivers (id)
    )""",
    """CREATE TABLE IF NOT EXISTS history (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      vehicleId TEXT NOT NULL,
      driverId TEXT NOT NULL,
      checkoutTime DATETIME DEFAULT CURRENT_TIMESTAMP,
      returnTime DATETIME,
      FOREIGN KEY (vehicleId) REFERENCES vehicles (id),
      FOREIGN KEY (driverId) REFERENCES drivers (id)
    )""",
    """CREATE TABLE IF NOT EXISTS users (
      id TEXT PRIMARY KEY,
      username TEXT NOT NULL UNIQUE,
      password TEXT NOT NULL,
      role TEXT NOT NULL CHECK (role IN ('admin', 'driver')),
      driverId TEXT,
      driverName TEXT,
      FOREIGN KEY (driverId) REFERENCES drivers (id)
    )""",
)

SEED_DRIVERS: tuple[tuple[str, str, str], ...] = (
    ("1", "Luan Oliveira de Brito Nunes", "Administração"),
    ("2", "José Borges", "Motorista"),
)

SEED_VEHICLES: tuple[tuple[str, str], ...] = (
    ("RSB7C87", "NISSAN VERSA"),
    ("QKE1B38", "HILUX MARCELO"),
    ("QKI7G71", "PRESIDÊNCIA"),
    ("QKE1B6", "HILUX ADMINISTRAÇÃO"),
)

ADMIN_ID = "admin"
ADMIN_USERNAME = "admin"
ADMIN_ROLE = "admin"
DEFAULT_ADMIN_PASSWORD = "admin123"

# Seed inserts skip rows that already exist so re-initializing a remote
# database does not fail on duplicate keys.
INSERT_DRIVER = (
    "INSERT INTO drivers (id, name, department) VALUES (?, ?, ?) "
    "ON CONFLICT (id) DO NOTHING"
)
INSERT_VEHICLE = (
    "INSERT INTO vehicles (id, model, isCheckedOut) VALUES (?, ?, FALSE) "
    "ON CONFLICT (id) DO NOTHING"
)
INSERT_USER = (
    "INSERT INTO users (id, username, password, role) VALUES (?, ?, ?, ?) "
    "ON CONFLICT (id) DO NOTHING"
)


def seed_statements(
    admin_password: str = DEFAULT_ADMIN_PASSWORD,
) -> list[tuple[str, tuple[Any, ...]]]:
    """Build the ordered (statement, params) list that seeds a fresh store.

    The admin password is hashed on every call, so each seeding run stores
    a freshly salted bcrypt hash.
    """
    statements: list[tuple[str, tuple[Any, ...]]] = []
    statements.extend((INSERT_DRIVER, row) for row in SEED_DRIVERS)
    statements.extend((INSERT_VEHICLE, row) for row in SEED_VEHICLES)
    statements.append(
        (
            INSERT_USER,
            (ADMIN_ID, ADMIN_USERNAME, hash_password(admin_password), ADMIN_ROLE),
        )
    )
    return statements
