"""SQLAlchemy models for materials and their stock ledger."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..core.catalog import DEFAULT_UNIT_TYPE
from ..core.dates import utcnow_iso
from ..db.session import Base
from ..db.types import Hundredths


class Material(Base):
    """A trackable supply item with a quantity on hand.

    ``current_stock`` is owned by ``StockLedger``; other code paths only touch
    the descriptive columns.
    """

    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    brand = Column(Text, nullable=True)
    color = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    unit_type = Column(Text, nullable=False, default=DEFAULT_UNIT_TYPE)
    current_stock = Column(Hundredths, nullable=False, default=0)
    min_stock_level = Column(Hundredths, nullable=False, default=0)
    cost_per_unit = Column(Hundredths, nullable=True)
    supplier = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(Text, nullable=False, default=utcnow_iso)
    updated_at = Column(Text, nullable=False, default=utcnow_iso, onupdate=utcnow_iso)

    transactions = relationship(
        "InventoryTransaction",
        back_populates="material",
        order_by="InventoryTransaction.id",
    )

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock_level


class InventoryTransaction(Base):
    """One append-only entry in a material's stock ledger.

    ``quantity_change`` is positive for additions, negative for deductions and
    the signed delta for adjustments.
    """

    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    transaction_type = Column(Text, nullable=False)
    quantity_change = Column(Hundredths, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False, default=utcnow_iso, index=True)

    material = relationship("Material", back_populates="transactions", lazy="joined")

    @property
    def material_name(self) -> str | None:
        return self.material.name if self.material else None

    @property
    def unit_type(self) -> str | None:
        return self.material.unit_type if self.material else None


__all__ = ["InventoryTransaction", "Material"]
