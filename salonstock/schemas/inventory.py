from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from .common import Quantity


class StockAdjustmentRequest(BaseModel):
    adjustment_type: str
    # Validated by the ledger so bad values surface as InvalidInput.
    quantity: Any = None
    notes: Optional[str] = None


class StockResetRequest(BaseModel):
    stock: Any = None
    notes: Optional[str] = None


class StockChangeOut(BaseModel):
    message: str
    old_stock: Quantity
    new_stock: Quantity
    quantity_change: Quantity


class InventoryTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    material_id: int
    transaction_type: str
    quantity_change: Quantity
    notes: Optional[str]
    created_at: str
    material_name: Optional[str] = None
    unit_type: Optional[str] = None


class ReconciliationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    material_id: int
    current_stock: Quantity
    ledger_total: Quantity
    difference: Quantity
    is_consistent: bool


class StockSummary(BaseModel):
    total_materials: int
    low_stock_count: int
    total_value: Quantity
