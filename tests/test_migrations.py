import os
import sys
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import text

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from salonstock.db.migrate import run_migrations
from salonstock.db.session import Base, build_engine, build_session_factory
from salonstock.models.client import Client, ClientService
from salonstock.models.material import InventoryTransaction, Material
from salonstock.services.ledger import StockLedger

LEGACY_SCHEMA = [
    """
    CREATE TABLE materials (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      name TEXT NOT NULL,
      brand TEXT,
      color TEXT,
      category TEXT,
      unit_type TEXT NOT NULL DEFAULT 'pieces',
      current_stock REAL NOT NULL DEFAULT 0,
      min_stock_level REAL NOT NULL DEFAULT 0,
      cost_per_unit REAL,
      supplier TEXT,
      notes TEXT,
      is_active BOOLEAN DEFAULT 1,
      created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
      updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE inventory_transactions (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      material_id INTEGER REFERENCES materials(id),
      transaction_type TEXT NOT NULL,
      quantity_change REAL NOT NULL,
      notes TEXT,
      created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE clients (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      name TEXT NOT NULL,
      phone TEXT,
      email TEXT,
      last_visit_date DATETIME,
      created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
      updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE client_services (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      client_id INTEGER REFERENCES clients(id),
      service_date DATETIME DEFAULT CURRENT_TIMESTAMP,
      service_type TEXT,
      notes TEXT,
      total_cost REAL,
      materials_deducted BOOLEAN DEFAULT 0,
      created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE client_service_materials (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      client_service_id INTEGER REFERENCES client_services(id),
      material_id INTEGER REFERENCES materials(id),
      quantity_used REAL NOT NULL,
      notes TEXT,
      created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TRIGGER update_client_last_visit
    AFTER INSERT ON client_services
    BEGIN
      UPDATE clients SET last_visit_date = NEW.service_date WHERE id = NEW.client_id;
    END
    """,
    """
    CREATE TRIGGER update_material_stock
    AFTER INSERT ON inventory_transactions
    BEGIN
      UPDATE materials SET current_stock = current_stock + NEW.quantity_change WHERE id = NEW.material_id;
    END
    """,
]

LEGACY_ROWS = [
    "INSERT INTO materials (id, name, current_stock, min_stock_level, cost_per_unit, created_at, updated_at) "
    "VALUES (1, 'Gel Polish', 2.0499999999999998, 1, 4.999, '2025-01-01 10:00:00', '2025-01-01 10:00:00')",
    "INSERT INTO clients (id, name) VALUES (1, 'Ana')",
    "INSERT INTO client_services (id, client_id, service_date, total_cost) VALUES (1, 1, '2025-02-03 14:00:00', 35.5)",
    "INSERT INTO client_service_materials (client_service_id, material_id, quantity_used) VALUES (1, 1, 3.0500000000000003)",
    "INSERT INTO client_services (id, client_id, service_date) VALUES (2, NULL, '2025-02-04 09:00:00')",
    "INSERT INTO client_service_materials (client_service_id, material_id, quantity_used) VALUES (2, 1, 1.0)",
]


@pytest.fixture()
def legacy_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with engine.begin() as conn:
        for statement in LEGACY_SCHEMA:
            conn.execute(text(statement))
        conn.execute(text("DROP TRIGGER update_material_stock"))
        for statement in LEGACY_ROWS:
            conn.execute(text(statement))
        conn.execute(
            text(
                "INSERT INTO inventory_transactions (material_id, transaction_type, quantity_change) "
                "VALUES (1, 'deduction', -3.0500000000000003)"
            )
        )
        # Recreate the stock trigger after seeding so the seed rows are not double counted.
        conn.execute(text(LEGACY_SCHEMA[-1]))
    try:
        yield engine
    finally:
        engine.dispose()


def _trigger_names(engine):
    with engine.connect() as conn:
        return set(conn.execute(text("SELECT name FROM sqlite_master WHERE type = 'trigger'")).scalars())


def _column_type(engine, table, column):
    with engine.connect() as conn:
        rows = conn.execute(text(f"PRAGMA table_info({table})")).mappings().all()
    return next(str(row["type"]).upper() for row in rows if row["name"] == column)


def test_legacy_database_is_upgraded(legacy_engine):
    run_migrations(legacy_engine)
    Base.metadata.create_all(bind=legacy_engine)

    assert _trigger_names(legacy_engine) == set()
    assert _column_type(legacy_engine, "materials", "current_stock") == "INTEGER"
    assert _column_type(legacy_engine, "client_service_materials", "quantity_used") == "INTEGER"

    factory = build_session_factory(legacy_engine)
    with factory() as db:
        material = db.get(Material, 1)
        assert material.current_stock == Decimal("2.05")
        assert material.cost_per_unit == Decimal("5.00")
        assert material.is_active is True
        assert material.created_at == "2025-01-01T10:00:00Z"

        service = db.get(ClientService, 1)
        assert service.total_cost == Decimal("35.50")
        assert service.service_date == "2025-02-03T14:00:00Z"
        assert service.materials[0].quantity_used == Decimal("3.05")

        entry = db.query(InventoryTransaction).one()
        assert entry.quantity_change == Decimal("-3.05")

        # Column missing from the legacy clients table gets added.
        assert db.get(Client, 1).notes is None


def test_rows_without_a_parent_are_left_behind(legacy_engine):
    run_migrations(legacy_engine)

    with legacy_engine.connect() as conn:
        services = conn.execute(text("SELECT id FROM client_services")).scalars().all()
        line_items = conn.execute(text("SELECT client_service_id FROM client_service_materials")).scalars().all()
        dangling = conn.execute(text("PRAGMA foreign_key_check")).all()

    assert services == [1]
    assert line_items == [1]
    assert dangling == []


def test_client_timestamps_are_rewritten_as_iso(legacy_engine):
    run_migrations(legacy_engine)
    Base.metadata.create_all(bind=legacy_engine)

    with build_session_factory(legacy_engine)() as db:
        client = db.get(Client, 1)
        assert client.last_visit_date == "2025-02-03T14:00:00Z"
        assert client.created_at.endswith("Z")
        assert "T" in client.created_at
        assert "T" in client.updated_at


def test_upgraded_database_is_not_double_counted(legacy_engine):
    run_migrations(legacy_engine)
    Base.metadata.create_all(bind=legacy_engine)
    ledger = StockLedger(build_session_factory(legacy_engine))

    change = ledger.adjust_stock(1, "addition", 1)

    assert change.new_stock == Decimal("3.05")
    assert ledger.get_material(1).current_stock == Decimal("3.05")


def test_migrations_are_idempotent(legacy_engine):
    run_migrations(legacy_engine)
    run_migrations(legacy_engine)
    Base.metadata.create_all(bind=legacy_engine)

    with build_session_factory(legacy_engine)() as db:
        assert db.get(Material, 1).current_stock == Decimal("2.05")


def test_fresh_database_needs_no_migration():
    engine = build_engine("sqlite://")
    run_migrations(engine)
    Base.metadata.create_all(bind=engine)

    assert _column_type(engine, "materials", "current_stock") == "INTEGER"
    engine.dispose()
