"""Stock ledger: the only writer of ``materials.current_stock``.

WHAT: Applies stock additions, deductions and absolute adjustments, and settles
client services by deducting every material they consumed.
WHEN: Called by the materials and client-service API routes, and by tests.
WHY: Stock and the ``inventory_transactions`` log must move together. Each
mutation here is one database transaction, so either the stock change and its
log row both land or neither does.
HOW: ``StockLedger`` receives a session factory at construction time. Every
write takes a process-wide lock, opens a session, begins a transaction and
reads the material row ``FOR UPDATE`` before computing the new value, so
concurrent callers on the same material are applied one after another.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from ..core.catalog import (
    TRANSACTION_ADDITION,
    TRANSACTION_ADJUSTMENT,
    TRANSACTION_DEDUCTION,
    TRANSACTION_TYPE_CHOICES,
    normalize_transaction_type,
)
from ..core.dates import normalize_timestamp, utcnow_iso
from ..core.errors import InvalidInput, NotFound
from ..core.quantities import MAX_QUANTITY, ZERO, parse_amount
from ..models.client import Client, ClientService, ClientServiceMaterial
from ..models.material import InventoryTransaction, Material

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockChange:
    old_stock: Decimal
    new_stock: Decimal
    quantity_change: Decimal


@dataclass(frozen=True)
class LineItem:
    material_id: int
    quantity_used: Decimal
    notes: str | None = None


@dataclass(frozen=True)
class Reconciliation:
    material_id: int
    current_stock: Decimal
    ledger_total: Decimal

    @property
    def difference(self) -> Decimal:
        return self.current_stock - self.ledger_total

    @property
    def is_consistent(self) -> bool:
        return self.difference == 0


def compute_stock_change(old_stock: Decimal, adjustment_type: str, quantity: Decimal) -> StockChange:
    """Pure stock arithmetic for one ledger entry.

    Deductions clamp at zero and the logged change only covers what was
    actually on hand.
    """

    if adjustment_type == TRANSACTION_ADDITION:
        if old_stock + quantity >= MAX_QUANTITY:
            raise InvalidInput("Resulting stock is too large")
        return StockChange(old_stock, old_stock + quantity, quantity)
    if adjustment_type == TRANSACTION_DEDUCTION:
        removable = min(quantity, old_stock)
        return StockChange(old_stock, max(ZERO, old_stock - quantity), -removable)
    if adjustment_type == TRANSACTION_ADJUSTMENT:
        return StockChange(old_stock, quantity, quantity - old_stock)
    raise InvalidInput("Invalid adjustment type")


def coerce_quantity(value: Any, field: str = "quantity") -> Decimal:
    try:
        return parse_amount(value)
    except ValueError as exc:
        raise InvalidInput(f"Invalid {field} provided") from exc


def record_transaction(
    db: Session,
    material: Material,
    transaction_type: str,
    quantity_change: Decimal,
    notes: str | None,
) -> InventoryTransaction:
    entry = InventoryTransaction(
        material_id=material.id,
        transaction_type=transaction_type,
        quantity_change=quantity_change,
        notes=notes,
        created_at=utcnow_iso(),
    )
    db.add(entry)
    return entry


def record_initial_stock(db: Session, material: Material) -> InventoryTransaction | None:
    """Log the opening balance of a new material so its log replays from zero."""

    opening = material.current_stock or ZERO
    if opening <= 0:
        return None
    return record_transaction(db, material, TRANSACTION_ADDITION, opening, "Initial stock")


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def _coerce_line_items(line_items: Iterable[Any] | None) -> list[LineItem]:
    raw_items = list(line_items or ())
    if not raw_items:
        raise InvalidInput("At least one material is required")
    items: list[LineItem] = []
    for raw in raw_items:
        material_id = _field(raw, "material_id")
        if isinstance(material_id, bool) or not isinstance(material_id, int):
            raise InvalidInput("material_id must be an integer")
        quantity = coerce_quantity(_field(raw, "quantity_used"), "quantity_used")
        if quantity <= 0:
            raise InvalidInput("quantity_used must be greater than zero")
        notes = (_field(raw, "notes") or "").strip() or None
        items.append(LineItem(material_id=material_id, quantity_used=quantity, notes=notes))
    return items


class StockLedger:
    """Material stock plus its append-only transaction log."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._write_lock = threading.RLock()

    @contextmanager
    def _write(self) -> Iterator[Session]:
        with self._write_lock, self._session_factory() as db, db.begin():
            yield db

    @staticmethod
    def _lock_material(db: Session, material_id: int) -> Material:
        stmt = select(Material).where(Material.id == material_id).with_for_update()
        material = db.execute(stmt).scalars().first()
        if material is None:
            raise NotFound(f"Material {material_id} not found")
        return material

    def get_material(self, material_id: int) -> Material:
        with self._session_factory() as db:
            material = db.get(Material, material_id)
            if material is None:
                raise NotFound(f"Material {material_id} not found")
            return material

    def adjust_stock(
        self,
        material_id: int,
        adjustment_type: str,
        quantity: Any,
        notes: str | None = None,
    ) -> StockChange:
        kind = normalize_transaction_type(adjustment_type)
        if kind not in TRANSACTION_TYPE_CHOICES:
            raise InvalidInput("Invalid adjustment type")
        amount = coerce_quantity(quantity)

        with self._write() as db:
            material = self._lock_material(db, material_id)
            change = compute_stock_change(material.current_stock, kind, amount)
            material.current_stock = change.new_stock
            record_transaction(db, material, kind, change.quantity_change, notes or f"Manual {kind}")

        logger.info(
            "stock.adjusted",
            extra={
                "extra_data": {
                    "material_id": material_id,
                    "transaction_type": kind,
                    "old_stock": str(change.old_stock),
                    "new_stock": str(change.new_stock),
                    "quantity_change": str(change.quantity_change),
                }
            },
        )
        return change

    def reset_stock(self, material_id: int, value: Any, notes: str | None = None) -> StockChange:
        """Force stock to an exact value and log the delta as an adjustment."""

        amount = coerce_quantity(value, "stock amount")
        with self._write() as db:
            material = self._lock_material(db, material_id)
            change = compute_stock_change(material.current_stock, TRANSACTION_ADJUSTMENT, amount)
            material.current_stock = change.new_stock
            record_transaction(
                db,
                material,
                TRANSACTION_ADJUSTMENT,
                change.quantity_change,
                notes or "Stock reset to clean value",
            )

        logger.info(
            "stock.reset",
            extra={
                "extra_data": {
                    "material_id": material_id,
                    "old_stock": str(change.old_stock),
                    "new_stock": str(change.new_stock),
                }
            },
        )
        return change

    def complete_client_service(
        self,
        client_id: int,
        service_type: str | None,
        notes: str | None,
        line_items: Iterable[Any],
        *,
        total_cost: Any = None,
        service_date: Any = None,
    ) -> int:
        """Record a service and deduct everything it consumed, all or nothing.

        Returns the new service id. Raises ``InvalidInput`` for an empty or
        malformed material list and ``NotFound`` for an unknown client or
        material; in every failure case nothing is persisted.
        """

        items = _coerce_line_items(line_items)
        cost = None if total_cost is None else coerce_quantity(total_cost, "total_cost")
        try:
            when = normalize_timestamp(service_date) or utcnow_iso()
        except ValueError as exc:
            raise InvalidInput(str(exc)) from exc

        with self._write() as db:
            client = db.get(Client, client_id)
            if client is None:
                raise NotFound(f"Client {client_id} not found")

            service = ClientService(
                client_id=client.id,
                service_date=when,
                service_type=(service_type or "").strip() or None,
                notes=(notes or "").strip() or None,
                total_cost=cost,
                materials_deducted=False,
                created_at=utcnow_iso(),
            )
            db.add(service)
            db.flush()

            consumed: list[tuple[Material, LineItem]] = []
            for item in items:
                material = self._lock_material(db, item.material_id)
                if not material.is_active:
                    raise InvalidInput(f"Material {material.id} is inactive")
                db.add(
                    ClientServiceMaterial(
                        client_service_id=service.id,
                        material_id=material.id,
                        quantity_used=item.quantity_used,
                        notes=item.notes,
                        created_at=utcnow_iso(),
                    )
                )
                consumed.append((material, item))
            db.flush()

            for material, item in consumed:
                change = compute_stock_change(material.current_stock, TRANSACTION_DEDUCTION, item.quantity_used)
                material.current_stock = change.new_stock
                record_transaction(
                    db,
                    material,
                    TRANSACTION_DEDUCTION,
                    change.quantity_change,
                    f"Client service #{service.id}",
                )

            service.materials_deducted = True
            service_id = service.id

        logger.info(
            "client_service.completed",
            extra={
                "extra_data": {
                    "client_service_id": service_id,
                    "client_id": client_id,
                    "line_items": len(items),
                }
            },
        )
        return service_id

    def reconcile(self, material_id: int) -> Reconciliation:
        """Compare a material's stock with the sum of its transaction log."""

        with self._session_factory() as db:
            material = db.get(Material, material_id)
            if material is None:
                raise NotFound(f"Material {material_id} not found")
            stmt = select(InventoryTransaction.quantity_change).where(
                InventoryTransaction.material_id == material_id
            )
            total = sum(db.execute(stmt).scalars(), ZERO)
            return Reconciliation(
                material_id=material.id,
                current_stock=material.current_stock,
                ledger_total=total,
            )


__all__ = [
    "LineItem",
    "Reconciliation",
    "StockChange",
    "StockLedger",
    "coerce_quantity",
    "compute_stock_change",
    "record_initial_stock",
    "record_transaction",
]
