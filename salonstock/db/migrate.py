"""Tiny home-grown migration helpers for SQLite.

Older installs stored every quantity as a REAL and kept stock in step with two
triggers. The helpers here drop those triggers, rebuild the REAL tables into the
integer-hundredths layout (leaving behind rows whose parent is gone), rewrite
``CURRENT_TIMESTAMP`` text as ISO UTC and add any nullable column the models
expect but the file lacks. Every step checks before acting, so running them
twice is harmless.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from .session import Base

logger = logging.getLogger(__name__)

LEGACY_TRIGGERS = ("update_material_stock", "update_client_last_visit")

# Quantity columns per table that used to be REAL.
QUANTITY_COLUMNS: dict[str, tuple[str, ...]] = {
    "materials": ("current_stock", "min_stock_level", "cost_per_unit"),
    "inventory_transactions": ("quantity_change",),
    "client_services": ("total_cost",),
    "client_service_materials": ("quantity_used",),
}

# Legacy rows carry SQLite's CURRENT_TIMESTAMP ("YYYY-MM-DD HH:MM:SS").
_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%SZ', 'now')"
_LEGACY_TIMESTAMP = "____-__-__ __:__:__"

# Text timestamp columns that older installs filled with CURRENT_TIMESTAMP.
TIMESTAMP_COLUMNS: dict[str, tuple[str, ...]] = {
    "materials": ("created_at", "updated_at"),
    "inventory_transactions": ("created_at",),
    "clients": ("last_visit_date", "created_at", "updated_at"),
    "client_services": ("service_date", "created_at"),
    "client_service_materials": ("created_at",),
}


def _iso(column: str, fallback: str = _NOW_SQL) -> str:
    return (
        f"CASE WHEN {column} IS NULL THEN {fallback} "
        f"WHEN {column} LIKE '{_LEGACY_TIMESTAMP}' THEN replace({column}, ' ', 'T') || 'Z' "
        f"ELSE {column} END"
    )


def _hundredths(column: str, default: str | None = "0") -> str:
    if default is None:
        return f"CASE WHEN {column} IS NULL THEN NULL ELSE CAST(ROUND({column} * 100) AS INTEGER) END"
    return f"CAST(ROUND(COALESCE({column}, {default}) * 100) AS INTEGER)"


# New layout DDL and the SELECT list that fills it from the legacy table.
REBUILDS: dict[str, tuple[str, str]] = {
    "materials": (
        """
        CREATE TABLE materials__new (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            brand TEXT,
            color TEXT,
            category TEXT,
            unit_type TEXT NOT NULL,
            current_stock INTEGER NOT NULL,
            min_stock_level INTEGER NOT NULL,
            cost_per_unit INTEGER,
            supplier TEXT,
            notes TEXT,
            is_active BOOLEAN NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """,
        f"""
        SELECT
            id, name, brand, color, category,
            COALESCE(unit_type, 'pieces'),
            {_hundredths("current_stock")},
            {_hundredths("min_stock_level")},
            {_hundredths("cost_per_unit", None)},
            supplier, notes,
            COALESCE(is_active, 1),
            {_iso("created_at")},
            {_iso("updated_at")}
        FROM materials
        """,
    ),
    "inventory_transactions": (
        """
        CREATE TABLE inventory_transactions__new (
            id INTEGER PRIMARY KEY,
            material_id INTEGER NOT NULL REFERENCES materials (id),
            transaction_type TEXT NOT NULL,
            quantity_change INTEGER NOT NULL,
            notes TEXT,
            created_at TEXT NOT NULL
        )
        """,
        f"""
        SELECT
            id, material_id, transaction_type,
            {_hundredths("quantity_change")},
            notes,
            {_iso("created_at")}
        FROM inventory_transactions
        WHERE material_id IN (SELECT id FROM materials)
        """,
    ),
    "client_services": (
        """
        CREATE TABLE client_services__new (
            id INTEGER PRIMARY KEY,
            client_id INTEGER NOT NULL REFERENCES clients (id),
            service_date TEXT NOT NULL,
            service_type TEXT,
            notes TEXT,
            total_cost INTEGER,
            materials_deducted BOOLEAN NOT NULL,
            created_at TEXT NOT NULL
        )
        """,
        f"""
        SELECT
            id, client_id,
            {_iso("service_date", _iso("created_at"))},
            service_type, notes,
            {_hundredths("total_cost", None)},
            COALESCE(materials_deducted, 0),
            {_iso("created_at")}
        FROM client_services
        WHERE client_id IN (SELECT id FROM clients)
        """,
    ),
    "client_service_materials": (
        """
        CREATE TABLE client_service_materials__new (
            id INTEGER PRIMARY KEY,
            client_service_id INTEGER NOT NULL REFERENCES client_services (id),
            material_id INTEGER NOT NULL REFERENCES materials (id),
            quantity_used INTEGER NOT NULL,
            notes TEXT,
            created_at TEXT NOT NULL
        )
        """,
        f"""
        SELECT
            id, client_service_id, material_id,
            {_hundredths("quantity_used")},
            notes,
            {_iso("created_at")}
        FROM client_service_materials
        WHERE client_service_id IN (SELECT id FROM client_services)
          AND material_id IN (SELECT id FROM materials)
        """,
    ),
}


def _table_columns(conn: Connection, table: str) -> list[dict[str, object]]:
    """SQLite's description of a table; empty when the table does not exist."""

    return conn.execute(text(f"PRAGMA table_info({table})")).mappings().all()


def _needs_rebuild(conn: Connection, table: str) -> bool:
    types = {row["name"]: str(row["type"]).upper() for row in _table_columns(conn, table)}
    return any(types.get(column) == "REAL" for column in QUANTITY_COLUMNS[table])


def _drop_legacy_triggers(conn: Connection) -> None:
    for name in LEGACY_TRIGGERS:
        conn.execute(text(f"DROP TRIGGER IF EXISTS {name}"))


def _rebuild_table(conn: Connection, table: str) -> None:
    """Copy a legacy table into the hundredths layout and swap it into place."""

    create_sql, select_sql = REBUILDS[table]
    conn.execute(text(f"DROP TABLE IF EXISTS {table}__new"))
    conn.execute(text(create_sql))
    conn.execute(text(f"INSERT INTO {table}__new {select_sql}"))
    conn.execute(text(f"DROP TABLE {table}"))
    conn.execute(text(f"ALTER TABLE {table}__new RENAME TO {table}"))
    for index in Base.metadata.tables[table].indexes:
        index.create(conn, checkfirst=True)
    logger.info("migration.table_rebuilt", extra={"extra_data": {"table": table}})


def _normalize_timestamps(conn: Connection) -> None:
    """Rewrite "YYYY-MM-DD HH:MM:SS" values as ISO UTC so text ordering holds.

    Covers tables that needed no rebuild, such as ``clients``.
    """

    for table, columns in TIMESTAMP_COLUMNS.items():
        existing = {row["name"] for row in _table_columns(conn, table)}
        for column in columns:
            if column not in existing:
                continue
            conn.execute(
                text(
                    f"UPDATE {table} SET {column} = replace({column}, ' ', 'T') || 'Z' "
                    f"WHERE {column} LIKE '{_LEGACY_TIMESTAMP}'"
                )
            )


def _add_missing_columns(conn: Connection) -> None:
    """ALTER TABLE ADD COLUMN for nullable model columns an older file lacks."""

    for table in Base.metadata.sorted_tables:
        existing = {row["name"] for row in _table_columns(conn, table.name)}
        if not existing:
            # Table absent; create_all builds it fresh.
            continue
        for column in table.columns:
            if column.name in existing or not column.nullable:
                continue
            col_type = column.type.compile(dialect=conn.dialect)
            conn.execute(text(f"ALTER TABLE {table.name} ADD COLUMN {column.name} {col_type}"))


def run_migrations(engine: Engine) -> None:
    """Bring an existing SQLite file up to date with the models."""

    if engine.dialect.name != "sqlite":
        return

    with engine.connect() as conn:
        # Table swaps must run with foreign keys off; the pragma is a no-op
        # inside a transaction, so flip it before anything else executes.
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        try:
            _drop_legacy_triggers(conn)
            for table in REBUILDS:
                if _needs_rebuild(conn, table):
                    _rebuild_table(conn, table)
            _normalize_timestamps(conn)
            _add_missing_columns(conn)
            conn.commit()
        finally:
            conn.exec_driver_sql("PRAGMA foreign_keys=ON")
