from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.errors import InvalidInput, NotFound
from ..crud.inventory import list_inventory_transactions
from ..crud.materials import (
    create_material,
    deactivate_material,
    get_material,
    list_materials,
    update_material,
)
from ..db.session import get_db
from ..deps.auth import require_api_access
from ..deps.services import get_ledger, get_settings_dep
from ..core.config import AppSettings
from ..models.material import Material
from ..schemas.inventory import (
    InventoryTransactionOut,
    ReconciliationOut,
    StockAdjustmentRequest,
    StockChangeOut,
    StockResetRequest,
)
from ..schemas.material import MaterialCreate, MaterialOut, MaterialUpdate
from ..services.ledger import StockLedger

router = APIRouter(prefix="/api/v1/materials", tags=["materials"], dependencies=[Depends(require_api_access)])


def _require_material(db: Session, material_id: int) -> Material:
    material = get_material(db, material_id)
    if not material:
        raise NotFound("Material not found")
    return material


@router.get("", response_model=list[MaterialOut])
def api_list_materials(include_inactive: bool = False, low_stock: bool = False, db: Session = Depends(get_db)):
    rows = list_materials(db, include_inactive=include_inactive)
    if low_stock:
        rows = [row for row in rows if row.is_low_stock]
    return rows


@router.post("", response_model=MaterialOut, status_code=201)
def api_create_material(payload: MaterialCreate, db: Session = Depends(get_db)):
    try:
        return create_material(db, payload.model_dump())
    except ValueError as exc:
        raise InvalidInput(str(exc)) from exc


@router.get("/{material_id}", response_model=MaterialOut)
def api_get_material(material_id: int, db: Session = Depends(get_db)):
    return _require_material(db, material_id)


@router.patch("/{material_id}", response_model=MaterialOut)
def api_update_material(material_id: int, payload: MaterialUpdate, db: Session = Depends(get_db)):
    material = _require_material(db, material_id)
    data = payload.model_dump(exclude_unset=True)
    if not data:
        return material
    try:
        return update_material(db, material, data)
    except ValueError as exc:
        raise InvalidInput(str(exc)) from exc


@router.delete("/{material_id}")
def api_delete_material(material_id: int, db: Session = Depends(get_db)):
    material = _require_material(db, material_id)
    deactivate_material(db, material)
    return {"status": "deactivated", "id": material_id}


@router.post("/{material_id}/adjust", response_model=StockChangeOut)
def api_adjust_stock(material_id: int, payload: StockAdjustmentRequest, ledger: StockLedger = Depends(get_ledger)):
    change = ledger.adjust_stock(material_id, payload.adjustment_type, payload.quantity, payload.notes)
    return StockChangeOut(
        message="Stock adjusted successfully",
        old_stock=change.old_stock,
        new_stock=change.new_stock,
        quantity_change=change.quantity_change,
    )


@router.post("/{material_id}/reset", response_model=StockChangeOut)
def api_reset_stock(material_id: int, payload: StockResetRequest, ledger: StockLedger = Depends(get_ledger)):
    change = ledger.reset_stock(material_id, payload.stock, payload.notes)
    return StockChangeOut(
        message="Stock reset successfully",
        old_stock=change.old_stock,
        new_stock=change.new_stock,
        quantity_change=change.quantity_change,
    )


@router.get("/{material_id}/transactions", response_model=list[InventoryTransactionOut])
def api_material_transactions(
    material_id: int,
    limit: int | None = None,
    db: Session = Depends(get_db),
    settings: AppSettings = Depends(get_settings_dep),
):
    _require_material(db, material_id)
    return list_inventory_transactions(db, material_id=material_id, limit=limit or settings.TRANSACTION_PAGE_SIZE)


@router.get("/{material_id}/reconcile", response_model=ReconciliationOut)
def api_reconcile_material(material_id: int, ledger: StockLedger = Depends(get_ledger)):
    return ReconciliationOut.model_validate(ledger.reconcile(material_id))
