"""CRUD helpers for clients and the services recorded against them."""

from __future__ import annotations

from sqlalchemy import desc, or_, select
from sqlalchemy.orm import Session, selectinload

from ..core.dates import utcnow_iso
from ..models.client import Client, ClientService, ClientServiceMaterial


def _clean_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def list_clients(db: Session, q: str | None = None, limit: int = 200, offset: int = 0) -> list[Client]:
    """Most recent visitors first, then alphabetical; ``q`` filters by name, phone or email."""

    stmt = (
        select(Client)
        .order_by(Client.last_visit_date.is_(None), desc(Client.last_visit_date), Client.name)
        .limit(limit)
        .offset(offset)
    )
    term = (q or "").strip()
    if term:
        pattern = f"%{term}%"
        stmt = stmt.where(
            or_(
                Client.name.ilike(pattern),
                Client.phone.ilike(pattern),
                Client.email.ilike(pattern),
            )
        )
    return db.execute(stmt).scalars().all()


def get_client(db: Session, client_id: int) -> Client | None:
    return db.get(Client, client_id)


def create_client(db: Session, payload: dict) -> Client:
    name = _clean_text(payload.get("name"))
    if not name:
        raise ValueError("name is required")
    now = utcnow_iso()
    client = Client(
        name=name,
        phone=_clean_text(payload.get("phone")),
        email=_clean_text(payload.get("email")),
        notes=_clean_text(payload.get("notes")),
        created_at=now,
        updated_at=now,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


def update_client(db: Session, client: Client, payload: dict) -> Client:
    if "name" in payload:
        name = _clean_text(payload.get("name"))
        if not name:
            raise ValueError("name cannot be blank")
        client.name = name
    for field in ("phone", "email", "notes"):
        if field in payload:
            setattr(client, field, _clean_text(payload.get(field)))
    db.commit()
    db.refresh(client)
    return client


def get_client_service(db: Session, service_id: int) -> ClientService | None:
    stmt = (
        select(ClientService)
        .options(selectinload(ClientService.materials).joinedload(ClientServiceMaterial.material))
        .where(ClientService.id == service_id)
    )
    return db.execute(stmt).scalars().first()


def get_last_service(db: Session, client_id: int) -> ClientService | None:
    """The client's most recent service with its line items loaded."""

    stmt = (
        select(ClientService)
        .options(selectinload(ClientService.materials).joinedload(ClientServiceMaterial.material))
        .where(ClientService.client_id == client_id)
        .order_by(desc(ClientService.service_date), desc(ClientService.id))
        .limit(1)
    )
    return db.execute(stmt).scalars().first()
