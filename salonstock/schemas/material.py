from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import Quantity


class MaterialBase(BaseModel):
    name: str = Field(min_length=1)
    brand: Optional[str] = None
    color: Optional[str] = None
    category: Optional[str] = None
    unit_type: str = Field(default="pieces", min_length=1)
    min_stock_level: Decimal = Field(default=Decimal("0"), ge=0)
    cost_per_unit: Optional[Decimal] = Field(default=None, ge=0)
    supplier: Optional[str] = None
    notes: Optional[str] = None


class MaterialCreate(MaterialBase):
    current_stock: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = True


class MaterialUpdate(BaseModel):
    name: Optional[str] = None
    brand: Optional[str] = None
    color: Optional[str] = None
    category: Optional[str] = None
    unit_type: Optional[str] = None
    min_stock_level: Optional[Decimal] = Field(default=None, ge=0)
    cost_per_unit: Optional[Decimal] = Field(default=None, ge=0)
    supplier: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class MaterialOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    brand: Optional[str]
    color: Optional[str]
    category: Optional[str]
    unit_type: str
    current_stock: Quantity
    min_stock_level: Quantity
    cost_per_unit: Optional[Quantity]
    supplier: Optional[str]
    notes: Optional[str]
    is_active: bool
    is_low_stock: bool
    created_at: str
    updated_at: str
