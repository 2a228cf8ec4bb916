"""
SQLAlchemy ORM models for purchase orders and their line items.

Responsibility
--------------
Persist the order aggregate: one ``purchase_orders`` row plus its
``purchase_order_items`` rows.

Architecture position
---------------------
**Kernel models layer** -- consumed only by ``SqlAlchemyOrderStore`` and the
read-side selectors.  Inherits from ``TrackedBase``.

Invariants enforced
-------------------
* Items are keyed by ``order_id`` with ``ON DELETE CASCADE``; there is no
  ORM relationship, so the store loads items with an explicit select and
  deletes them by foreign key.
* ``0 <= received_quantity <= ordered_quantity`` and ``ordered_quantity > 0``
  are check constraints.
* ``(order_id, line_number)`` is unique.
* ``code`` is unique when present.
* All numeric fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase


class PurchaseOrderModel(TrackedBase):
    """
    A purchase order header.

    Maps to the ``PurchaseOrder`` DTO in ``supply_kernel.domain.dtos``.

    Guarantees:
        - ``status`` follows the lifecycle:
          draft -> issued -> partially_received -> received, or canceled.
        - ``fully_received`` is true exactly when status is received.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("code", name="uq_purchase_order_code"),
        CheckConstraint("total_amount >= 0", name="ck_po_total_non_negative"),
        Index("idx_po_supplier", "supplier_id"),
        Index("idx_po_status", "status"),
        Index("idx_po_order_date", "order_date"),
    )

    code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    supplier_id: Mapped[UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False,
    )
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    total_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    fully_received: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self, items=()):
        """Build the order snapshot; ``items`` are the order's item rows."""
        from supply_kernel.domain.dtos import OrderStatus, PurchaseOrder

        item_dtos = tuple(
            i.to_dto() for i in sorted(items, key=lambda row: row.line_number)
        )
        return PurchaseOrder(
            id=self.id,
            code=self.code,
            supplier_id=self.supplier_id,
            order_date=self.order_date,
            expected_date=self.expected_date,
            delivery_date=self.delivery_date,
            status=OrderStatus(self.status),
            total_amount=self.total_amount,
            fully_received=self.fully_received,
            notes=self.notes,
            items=item_dtos,
        )

    @classmethod
    def from_dto(cls, dto) -> "PurchaseOrderModel":
        model = cls(id=dto.id)
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto) -> None:
        """Copy header fields from a snapshot onto this row."""
        self.code = dto.code
        self.supplier_id = dto.supplier_id
        self.order_date = dto.order_date
        self.expected_date = dto.expected_date
        self.delivery_date = dto.delivery_date
        self.status = dto.status.value
        self.total_amount = dto.total_amount
        self.fully_received = dto.fully_received
        self.notes = dto.notes

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.code or self.id} [{self.status}]>"


class PurchaseOrderItemModel(TrackedBase):
    """
    A line item on a purchase order.

    Maps to the ``PurchaseOrderItem`` DTO in ``supply_kernel.domain.dtos``.

    Guarantees:
        - Belongs to exactly one ``PurchaseOrderModel``; deleted with it.
        - ``product_id`` never changes after insert.
    """

    __tablename__ = "purchase_order_items"

    __table_args__ = (
        UniqueConstraint("order_id", "line_number", name="uq_po_item_line_number"),
        CheckConstraint("ordered_quantity > 0", name="ck_po_item_ordered_positive"),
        CheckConstraint("received_quantity >= 0", name="ck_po_item_received_non_negative"),
        CheckConstraint(
            "received_quantity <= ordered_quantity",
            name="ck_po_item_received_within_ordered",
        ),
        CheckConstraint("unit_price >= 0", name="ck_po_item_price_non_negative"),
        Index("idx_po_item_order", "order_id"),
        Index("idx_po_item_product", "product_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False,
    )
    line_number: Mapped[int] = mapped_column(nullable=False)
    product_id: Mapped[UUID] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"), nullable=False,
    )
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    ordered_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    received_quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    unit_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    location_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("warehouse_locations.id", ondelete="SET NULL"), nullable=True,
    )

    def to_dto(self):
        from supply_kernel.domain.dtos import PurchaseOrderItem

        return PurchaseOrderItem(
            id=self.id,
            order_id=self.order_id,
            line_number=self.line_number,
            product_id=self.product_id,
            description=self.description,
            ordered_quantity=self.ordered_quantity,
            received_quantity=self.received_quantity,
            unit_price=self.unit_price,
            location_id=self.location_id,
        )

    @classmethod
    def from_dto(cls, dto) -> "PurchaseOrderItemModel":
        model = cls(id=dto.id, order_id=dto.order_id, product_id=dto.product_id)
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto) -> None:
        """Copy the mutable fields from a snapshot onto this row."""
        self.line_number = dto.line_number
        self.description = dto.description
        self.ordered_quantity = dto.ordered_quantity
        self.received_quantity = dto.received_quantity
        self.unit_price = dto.unit_price
        self.location_id = dto.location_id

    def __repr__(self) -> str:
        return (
            f"<PurchaseOrderItemModel #{self.line_number} "
            f"{self.received_quantity}/{self.ordered_quantity}>"
        )
