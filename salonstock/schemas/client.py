from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import Quantity


class ClientCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None


class ClientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    phone: Optional[str]
    email: Optional[str]
    notes: Optional[str]
    last_visit_date: Optional[str]
    created_at: str
    updated_at: str


class ServiceMaterialIn(BaseModel):
    material_id: int
    quantity_used: Any = None
    notes: Optional[str] = None


class ClientServiceCreate(BaseModel):
    client_id: int
    service_type: Optional[str] = None
    notes: Optional[str] = None
    total_cost: Any = None
    service_date: Optional[str] = None
    materials: list[ServiceMaterialIn] = Field(default_factory=list)


class ClientServiceCreated(BaseModel):
    id: int
    message: str


class ClientServiceMaterialOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    material_id: int
    quantity_used: Quantity
    notes: Optional[str]
    material_name: Optional[str] = None
    material_brand: Optional[str] = None
    material_color: Optional[str] = None
    unit_type: Optional[str] = None


class ClientServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    service_date: str
    service_type: Optional[str]
    notes: Optional[str]
    total_cost: Optional[Quantity]
    materials_deducted: bool
    created_at: str
    materials: list[ClientServiceMaterialOut] = Field(default_factory=list)
