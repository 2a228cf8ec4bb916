"""
SQLAlchemy ORM models for stock movements and sequence counters.

Stock movements are append-only: the kernel inserts them and never updates
or deletes one.  They outlive the order they reference (``order_id`` is set
to NULL when an order is deleted).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import Base, TrackedBase


class StockMovementModel(TrackedBase):
    """
    One movement of goods into (IN) or out of (OUT) stock.

    Maps to the ``StockMovement`` DTO in ``supply_kernel.domain.dtos``.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_movement_quantity_positive"),
        CheckConstraint(
            "movement_type IN ('in', 'out')", name="ck_stock_movement_type",
        ),
        Index("idx_stock_movement_product", "product_id"),
        Index("idx_stock_movement_location", "location_id"),
        Index("idx_stock_movement_date", "movement_date"),
    )

    product_id: Mapped[UUID] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"), nullable=False,
    )
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    movement_type: Mapped[str] = mapped_column(String(10), nullable=False)
    movement_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    location_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("warehouse_locations.id", ondelete="SET NULL"), nullable=True,
    )
    order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="SET NULL"), nullable=True,
    )

    def to_dto(self):
        from supply_kernel.domain.dtos import MovementType, StockMovement

        return StockMovement(
            id=self.id,
            product_id=self.product_id,
            quantity=self.quantity,
            movement_type=MovementType(self.movement_type),
            movement_date=self.movement_date,
            reference=self.reference,
            location_id=self.location_id,
            order_id=self.order_id,
        )

    @classmethod
    def from_dto(cls, dto) -> "StockMovementModel":
        return cls(
            id=dto.id,
            product_id=dto.product_id,
            quantity=dto.quantity,
            movement_type=dto.movement_type.value,
            movement_date=dto.movement_date,
            reference=dto.reference,
            location_id=dto.location_id,
            order_id=dto.order_id,
        )

    def __repr__(self) -> str:
        return f"<StockMovementModel {self.movement_type} {self.quantity}>"


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    Row-level locking ensures monotonicity under concurrency.
    """

    __tablename__ = "sequence_counters"

    # e.g. "purchase_order:PO-2025"
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
