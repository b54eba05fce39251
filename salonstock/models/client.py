"""SQLAlchemy models for clients and the services performed on them."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text, event, update
from sqlalchemy.orm import relationship

from ..core.dates import utcnow_iso
from ..db.session import Base
from ..db.types import Hundredths


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    phone = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    last_visit_date = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False, default=utcnow_iso)
    updated_at = Column(Text, nullable=False, default=utcnow_iso, onupdate=utcnow_iso)

    services = relationship("ClientService", back_populates="client")


class ClientService(Base):
    """A visit that consumed materials.

    Starts with ``materials_deducted`` false and flips to true once, when the
    ledger has applied every line item.
    """

    __tablename__ = "client_services"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    service_date = Column(Text, nullable=False, default=utcnow_iso)
    service_type = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    total_cost = Column(Hundredths, nullable=True)
    materials_deducted = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False, default=utcnow_iso)

    client = relationship("Client", back_populates="services")
    materials = relationship(
        "ClientServiceMaterial",
        back_populates="client_service",
        order_by="ClientServiceMaterial.id",
    )


class ClientServiceMaterial(Base):
    """Line item: how much of one material a service used."""

    __tablename__ = "client_service_materials"

    id = Column(Integer, primary_key=True, index=True)
    client_service_id = Column(Integer, ForeignKey("client_services.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    quantity_used = Column(Hundredths, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False, default=utcnow_iso)

    client_service = relationship("ClientService", back_populates="materials")
    material = relationship("Material", lazy="joined")

    @property
    def material_name(self) -> str | None:
        return self.material.name if self.material else None

    @property
    def material_brand(self) -> str | None:
        return self.material.brand if self.material else None

    @property
    def material_color(self) -> str | None:
        return self.material.color if self.material else None

    @property
    def unit_type(self) -> str | None:
        return self.material.unit_type if self.material else None


@event.listens_for(ClientService, "after_insert")
def _touch_client_last_visit(mapper, connection, target: ClientService) -> None:
    # Runs inside the flush, so the client row changes in the same transaction
    # as the service insert no matter which code path created the service.
    connection.execute(
        update(Client.__table__)
        .where(Client.__table__.c.id == target.client_id)
        .values(last_visit_date=target.service_date or utcnow_iso(), updated_at=utcnow_iso())
    )


__all__ = ["Client", "ClientService", "ClientServiceMaterial"]
