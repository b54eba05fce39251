"""Material CRUD helpers.

Stock is deliberately absent from ``update_material``: after creation only the
ledger changes ``current_stock``.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.catalog import DEFAULT_UNIT_TYPE
from ..core.dates import utcnow_iso
from ..models.material import Material
from ..services.ledger import coerce_quantity, record_initial_stock

DESCRIPTIVE_FIELDS = ("name", "brand", "color", "category", "unit_type", "supplier", "notes")
QUANTITY_FIELDS = ("min_stock_level", "cost_per_unit")


def _clean_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def list_materials(db: Session, include_inactive: bool = False) -> list[Material]:
    """Return materials ordered by name, active ones only unless asked otherwise."""

    stmt = select(Material).order_by(Material.name, Material.id)
    if not include_inactive:
        stmt = stmt.where(Material.is_active.is_(True))
    return db.execute(stmt).scalars().all()


def get_material(db: Session, material_id: int) -> Material | None:
    return db.get(Material, material_id)


def create_material(db: Session, payload: dict) -> Material:
    """Create a material and log its opening stock in the same commit."""

    name = _clean_text(payload.get("name"))
    if not name:
        raise ValueError("name is required")
    unit_type = _clean_text(payload.get("unit_type")) or DEFAULT_UNIT_TYPE

    now = utcnow_iso()
    material = Material(
        name=name,
        brand=_clean_text(payload.get("brand")),
        color=_clean_text(payload.get("color")),
        category=_clean_text(payload.get("category")),
        unit_type=unit_type,
        current_stock=coerce_quantity(payload.get("current_stock") or 0, "current_stock"),
        min_stock_level=coerce_quantity(payload.get("min_stock_level") or 0, "min_stock_level"),
        cost_per_unit=(
            None
            if payload.get("cost_per_unit") is None
            else coerce_quantity(payload["cost_per_unit"], "cost_per_unit")
        ),
        supplier=_clean_text(payload.get("supplier")),
        notes=_clean_text(payload.get("notes")),
        is_active=bool(payload.get("is_active", True)),
        created_at=now,
        updated_at=now,
    )
    db.add(material)
    db.flush()
    record_initial_stock(db, material)
    db.commit()
    db.refresh(material)
    return material


def update_material(db: Session, material: Material, payload: dict) -> Material:
    """Update descriptive fields in place. Unknown keys (and stock) are ignored."""

    for key in DESCRIPTIVE_FIELDS:
        if key not in payload:
            continue
        value = _clean_text(payload[key])
        if key in ("name", "unit_type") and not value:
            raise ValueError(f"{key} cannot be blank")
        setattr(material, key, value)
    for key in QUANTITY_FIELDS:
        if key not in payload:
            continue
        value = payload[key]
        if value is None and key == "cost_per_unit":
            material.cost_per_unit = None
            continue
        setattr(material, key, coerce_quantity(value, key))
    if "is_active" in payload and payload["is_active"] is not None:
        material.is_active = bool(payload["is_active"])
    db.commit()
    db.refresh(material)
    return material


def deactivate_material(db: Session, material: Material) -> Material:
    """Soft delete: the row and its ledger history stay."""

    material.is_active = False
    db.commit()
    db.refresh(material)
    return material
