"""Read-side queries over stock levels and the transaction log."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..core.quantities import ZERO, quantize
from ..models.material import InventoryTransaction, Material


def list_inventory_transactions(
    db: Session,
    material_id: int | None = None,
    limit: int = 50,
) -> list[InventoryTransaction]:
    """Fetch the most recent ledger entries, optionally for one material."""

    stmt = (
        select(InventoryTransaction)
        .order_by(desc(InventoryTransaction.created_at), desc(InventoryTransaction.id))
        .limit(limit)
    )
    if material_id is not None:
        stmt = stmt.where(InventoryTransaction.material_id == material_id)
    return db.execute(stmt).unique().scalars().all()


def _depletion_ratio(material: Material) -> Decimal:
    if material.min_stock_level <= 0:
        return ZERO
    return material.current_stock / material.min_stock_level


def get_low_stock_materials(db: Session) -> list[Material]:
    """Active materials at or below their minimum, most depleted first."""

    stmt = select(Material).where(
        Material.is_active.is_(True),
        Material.current_stock <= Material.min_stock_level,
    )
    rows = db.execute(stmt).scalars().all()
    return sorted(rows, key=lambda m: (_depletion_ratio(m), m.name))


def get_stock_summary(db: Session) -> dict[str, object]:
    """Counts and on-hand value across active materials."""

    rows = db.execute(select(Material).where(Material.is_active.is_(True))).scalars().all()
    total_value = sum(
        (m.current_stock * (m.cost_per_unit or ZERO) for m in rows),
        ZERO,
    )
    return {
        "total_materials": len(rows),
        "low_stock_count": sum(1 for m in rows if m.is_low_stock),
        "total_value": quantize(total_value),
    }
