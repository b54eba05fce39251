from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.errors import InvalidInput, NotFound
from ..crud.clients import (
    create_client,
    get_client,
    get_client_service,
    get_last_service,
    list_clients,
    update_client,
)
from ..db.session import get_db
from ..deps.auth import require_api_access
from ..deps.services import get_ledger
from ..schemas.client import (
    ClientCreate,
    ClientOut,
    ClientServiceCreate,
    ClientServiceCreated,
    ClientServiceOut,
    ClientUpdate,
)
from ..services.ledger import StockLedger

router = APIRouter(prefix="/api/v1", tags=["clients"], dependencies=[Depends(require_api_access)])


@router.get("/clients", response_model=list[ClientOut])
def api_list_clients(
    q: Optional[str] = Query(default=None, description="Search by name, phone or email"),
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_clients(db, q=q, limit=limit, offset=offset)


@router.post("/clients", response_model=ClientOut, status_code=201)
def api_create_client(payload: ClientCreate, db: Session = Depends(get_db)):
    try:
        return create_client(db, payload.model_dump())
    except ValueError as exc:
        raise InvalidInput(str(exc)) from exc


@router.get("/clients/{client_id}", response_model=ClientOut)
def api_get_client(client_id: int, db: Session = Depends(get_db)):
    client = get_client(db, client_id)
    if not client:
        raise NotFound("Client not found")
    return client


@router.patch("/clients/{client_id}", response_model=ClientOut)
def api_update_client(client_id: int, payload: ClientUpdate, db: Session = Depends(get_db)):
    client = get_client(db, client_id)
    if not client:
        raise NotFound("Client not found")
    try:
        return update_client(db, client, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise InvalidInput(str(exc)) from exc


@router.get("/clients/{client_id}/last-service", response_model=Optional[ClientServiceOut])
def api_client_last_service(client_id: int, db: Session = Depends(get_db)):
    if not get_client(db, client_id):
        raise NotFound("Client not found")
    return get_last_service(db, client_id)


@router.post("/client-services", response_model=ClientServiceCreated, status_code=201)
def api_complete_client_service(payload: ClientServiceCreate, ledger: StockLedger = Depends(get_ledger)):
    service_id = ledger.complete_client_service(
        payload.client_id,
        payload.service_type,
        payload.notes,
        payload.materials,
        total_cost=payload.total_cost,
        service_date=payload.service_date,
    )
    return ClientServiceCreated(id=service_id, message="Service completed and inventory updated")


@router.get("/client-services/{service_id}", response_model=ClientServiceOut)
def api_get_client_service(service_id: int, db: Session = Depends(get_db)):
    service = get_client_service(db, service_id)
    if not service:
        raise NotFound("Client service not found")
    return service
