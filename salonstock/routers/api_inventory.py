from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.catalog import MATERIAL_CATEGORIES, SERVICE_TYPES, TRANSACTION_TYPE_CHOICES, UNIT_TYPES
from ..core.config import AppSettings
from ..crud.inventory import get_low_stock_materials, get_stock_summary, list_inventory_transactions
from ..db.session import get_db
from ..deps.auth import require_api_access
from ..deps.services import get_settings_dep
from ..schemas.inventory import InventoryTransactionOut, StockSummary
from ..schemas.material import MaterialOut

router = APIRouter(prefix="/api/v1", tags=["inventory"], dependencies=[Depends(require_api_access)])


@router.get("/inventory/transactions", response_model=list[InventoryTransactionOut])
def api_inventory_transactions(
    material_id: int | None = None,
    limit: int | None = Query(default=None, ge=1, le=1000),
    db: Session = Depends(get_db),
    settings: AppSettings = Depends(get_settings_dep),
):
    return list_inventory_transactions(db, material_id=material_id, limit=limit or settings.TRANSACTION_PAGE_SIZE)


@router.get("/inventory/low-stock", response_model=list[MaterialOut])
def api_low_stock(db: Session = Depends(get_db)):
    return get_low_stock_materials(db)


@router.get("/inventory/summary", response_model=StockSummary)
def api_inventory_summary(db: Session = Depends(get_db)):
    return get_stock_summary(db)


@router.get("/catalog")
def api_catalog():
    return {
        "categories": list(MATERIAL_CATEGORIES),
        "unit_types": list(UNIT_TYPES),
        "service_types": list(SERVICE_TYPES),
        "transaction_types": list(TRANSACTION_TYPE_CHOICES),
    }
