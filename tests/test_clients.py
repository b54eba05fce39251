import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from salonstock.crud.clients import (
    create_client,
    get_client,
    get_client_service,
    get_last_service,
    list_clients,
    update_client,
)
from salonstock.crud.materials import create_material
from salonstock.db.session import Base, build_engine, build_session_factory
from salonstock.models.client import ClientService
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


def test_create_client_strips_blank_fields(db_session):
    client = create_client(db_session, {"name": " Ana ", "phone": "", "email": "ana@example.com"})

    assert client.name == "Ana"
    assert client.phone is None
    assert client.email == "ana@example.com"
    assert client.last_visit_date is None


def test_update_client_keeps_unsent_fields(db_session):
    client = create_client(db_session, {"name": "Bea", "phone": "555-0100"})

    updated = update_client(db_session, client, {"notes": "Prefers almond shape"})

    assert updated.phone == "555-0100"
    assert updated.notes == "Prefers almond shape"
    with pytest.raises(ValueError):
        update_client(db_session, client, {"name": ""})


def test_list_clients_orders_by_last_visit_then_name(db_session):
    never = create_client(db_session, {"name": "Zoe"})
    early = create_client(db_session, {"name": "Amy"})
    late = create_client(db_session, {"name": "Kim"})
    db_session.add_all(
        [
            ClientService(client_id=early.id, service_date="2026-01-02T10:00:00Z"),
            ClientService(client_id=late.id, service_date="2026-02-02T10:00:00Z"),
        ]
    )
    db_session.commit()
    db_session.expire_all()

    assert [c.id for c in list_clients(db_session)] == [late.id, early.id, never.id]


def test_service_insert_updates_last_visit_date(db_session):
    client = create_client(db_session, {"name": "Lia"})

    db_session.add(ClientService(client_id=client.id, service_date="2026-04-05T09:00:00Z"))
    db_session.commit()
    db_session.expire_all()

    assert get_client(db_session, client.id).last_visit_date == "2026-04-05T09:00:00Z"


def test_list_clients_search_matches_name_phone_and_email(db_session):
    create_client(db_session, {"name": "Maria", "phone": "555-1234"})
    create_client(db_session, {"name": "Nora", "email": "nora@salon.test"})
    create_client(db_session, {"name": "Olga"})

    assert [c.name for c in list_clients(db_session, q="mar")] == ["Maria"]
    assert [c.name for c in list_clients(db_session, q="1234")] == ["Maria"]
    assert [c.name for c in list_clients(db_session, q="SALON")] == ["Nora"]
    assert len(list_clients(db_session, q="  ")) == 3


def test_last_service_returns_latest_with_materials(db_session, session_factory):
    ledger = StockLedger(session_factory)
    client = create_client(db_session, {"name": "Pia"})
    polish = create_material(db_session, {"name": "Polish", "brand": "Essie", "color": "Red", "current_stock": 5})

    ledger.complete_client_service(
        client.id, "Basic Manicure", None, [{"material_id": polish.id, "quantity_used": 1}],
        service_date="2026-05-01T10:00:00Z",
    )
    latest_id = ledger.complete_client_service(
        client.id, "Gel Manicure", "Red again", [{"material_id": polish.id, "quantity_used": 0.5}],
        service_date="2026-06-01T10:00:00Z",
    )

    db_session.expire_all()
    latest = get_last_service(db_session, client.id)
    assert latest.id == latest_id
    assert latest.service_type == "Gel Manicure"
    assert [(m.material_name, m.material_brand, m.material_color) for m in latest.materials] == [
        ("Polish", "Essie", "Red")
    ]
    assert get_client_service(db_session, latest_id).materials_deducted is True


def test_last_service_is_none_for_new_client(db_session):
    client = create_client(db_session, {"name": "Quin"})
    assert get_last_service(db_session, client.id) is None
