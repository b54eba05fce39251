import os
import sys
from decimal import Decimal
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from salonstock.core.errors import InvalidInput
from salonstock.crud.inventory import (
    get_low_stock_materials,
    get_stock_summary,
    list_inventory_transactions,
)
from salonstock.crud.materials import (
    create_material,
    deactivate_material,
    get_material,
    list_materials,
    update_material,
)
from salonstock.db.session import Base, build_engine, build_session_factory
from salonstock.services.ledger import StockLedger


@pytest.fixture()
def session_factory():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    try:
        yield build_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def test_create_material_applies_defaults(db_session):
    material = create_material(db_session, {"name": "  Cotton Pads  "})

    assert material.name == "Cotton Pads"
    assert material.unit_type == "pieces"
    assert material.current_stock == Decimal("0")
    assert material.min_stock_level == Decimal("0")
    assert material.cost_per_unit is None
    assert material.is_active is True
    assert material.created_at.endswith("Z")


def test_create_material_requires_name(db_session):
    with pytest.raises(ValueError):
        create_material(db_session, {"name": "   "})


def test_create_material_rejects_negative_stock(db_session):
    with pytest.raises(InvalidInput):
        create_material(db_session, {"name": "Acetone", "current_stock": -2})


def test_update_material_never_touches_stock(db_session):
    material = create_material(db_session, {"name": "Base Coat", "current_stock": 4, "min_stock_level": 1})

    updated = update_material(
        db_session,
        material,
        {"brand": "OPI", "current_stock": 99, "min_stock_level": "2.5", "cost_per_unit": 3.2},
    )

    assert updated.brand == "OPI"
    assert updated.current_stock == Decimal("4.00")
    assert updated.min_stock_level == Decimal("2.50")
    assert updated.cost_per_unit == Decimal("3.20")


def test_update_material_rejects_blank_name(db_session):
    material = create_material(db_session, {"name": "Files"})

    with pytest.raises(ValueError):
        update_material(db_session, material, {"name": " "})


def test_list_materials_hides_inactive_by_default(db_session):
    create_material(db_session, {"name": "Top Coat"})
    buffer = create_material(db_session, {"name": "Buffer"})
    deactivate_material(db_session, buffer)

    assert [m.name for m in list_materials(db_session)] == ["Top Coat"]
    assert [m.name for m in list_materials(db_session, include_inactive=True)] == ["Buffer", "Top Coat"]
    assert get_material(db_session, buffer.id).is_active is False


def test_low_stock_orders_most_depleted_first(db_session):
    create_material(db_session, {"name": "Plenty", "current_stock": 10, "min_stock_level": 2})
    create_material(db_session, {"name": "Half", "current_stock": 2, "min_stock_level": 4})
    create_material(db_session, {"name": "Empty", "current_stock": 0, "min_stock_level": 3})
    edge = create_material(db_session, {"name": "Edge", "current_stock": 3, "min_stock_level": 3})
    gone = create_material(db_session, {"name": "Retired", "current_stock": 0, "min_stock_level": 5})
    deactivate_material(db_session, gone)

    names = [m.name for m in get_low_stock_materials(db_session)]

    assert names == ["Empty", "Half", "Edge"]
    assert edge.is_low_stock is True


def test_stock_summary_values_active_materials(db_session):
    create_material(db_session, {"name": "Polish", "current_stock": "3.5", "cost_per_unit": "2.10"})
    create_material(db_session, {"name": "Tips", "current_stock": 100, "min_stock_level": 200})
    old = create_material(db_session, {"name": "Old", "current_stock": 5, "cost_per_unit": 10})
    deactivate_material(db_session, old)

    summary = get_stock_summary(db_session)

    assert summary["total_materials"] == 2
    assert summary["low_stock_count"] == 1
    assert summary["total_value"] == Decimal("7.35")


def test_transactions_list_newest_first_with_material_details(db_session, session_factory):
    ledger = StockLedger(session_factory)
    polish = create_material(db_session, {"name": "Polish", "current_stock": 2, "unit_type": "bottles"})
    tips = create_material(db_session, {"name": "Tips", "current_stock": 50})
    ledger.adjust_stock(polish.id, "addition", 1)
    ledger.adjust_stock(polish.id, "deduction", 1)

    db_session.expire_all()
    entries = list_inventory_transactions(db_session)
    assert [e.id for e in entries] == sorted((e.id for e in entries), reverse=True)
    assert entries[0].transaction_type == "deduction"
    assert entries[0].material_name == "Polish"
    assert entries[0].unit_type == "bottles"

    only_tips = list_inventory_transactions(db_session, material_id=tips.id)
    assert [e.quantity_change for e in only_tips] == [Decimal("50.00")]

    assert len(list_inventory_transactions(db_session, limit=2)) == 2
