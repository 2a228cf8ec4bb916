"""
Fulfillment Domain Models.

The nouns of purchase-order fulfillment: orders, line items, warehouse
locations, stock movements, and the read-only master data they reference.

Every model is a frozen dataclass.  Domain components never mutate a
snapshot; they return a new one (``dataclasses.replace``) and the
fulfillment service persists the result.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from supply_kernel.logging_config import get_logger

logger = get_logger("domain.dtos")


class OrderStatus(str, Enum):
    """Purchase order lifecycle states."""
    DRAFT = "draft"
    ISSUED = "issued"
    PARTIALLY_RECEIVED = "partially_received"
    RECEIVED = "received"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.RECEIVED, OrderStatus.CANCELED)


class ItemCompletion(str, Enum):
    """Receiving progress of a single line item."""
    NONE = "none"
    PARTIAL = "partial"
    COMPLETE = "complete"


class MovementType(str, Enum):
    """Direction of a stock movement."""
    IN = "in"
    OUT = "out"


@dataclass(frozen=True)
class Supplier:
    """A supplier (read-only master data)."""
    id: UUID
    name: str
    tax_id: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Product:
    """A product (read-only master data)."""
    id: UUID
    sku: str
    name: str
    description: str | None = None
    unit: str | None = None
    volume: Decimal | None = None  # per unit; None means no footprint
    default_price: Decimal | None = None
    preferred_supplier_id: UUID | None = None
    is_active: bool = True


@dataclass(frozen=True)
class WarehouseLocation:
    """A storage location with fixed volume capacity."""
    id: UUID
    code: str
    capacity_volume: Decimal
    used_volume: Decimal = Decimal("0")
    description: str | None = None

    def __post_init__(self):
        if self.capacity_volume <= 0:
            raise ValueError(
                f"capacity_volume ({self.capacity_volume}) must be positive"
            )
        if self.used_volume < 0 or self.used_volume > self.capacity_volume:
            logger.warning(
                "location_capacity_violation",
                extra={
                    "location_id": str(self.id),
                    "capacity_volume": str(self.capacity_volume),
                    "used_volume": str(self.used_volume),
                },
            )
            raise ValueError(
                f"used_volume ({self.used_volume}) must be within "
                f"0..{self.capacity_volume}"
            )

    @property
    def available_volume(self) -> Decimal:
        return self.capacity_volume - self.used_volume


@dataclass(frozen=True)
class PurchaseOrderItem:
    """A line item on a purchase order."""
    id: UUID
    order_id: UUID
    line_number: int
    product_id: UUID
    ordered_quantity: Decimal
    received_quantity: Decimal = Decimal("0")
    unit_price: Decimal = Decimal("0")
    location_id: UUID | None = None
    description: str | None = None

    def __post_init__(self):
        if self.ordered_quantity <= 0:
            raise ValueError(
                f"ordered_quantity ({self.ordered_quantity}) must be positive"
            )
        if self.unit_price < 0:
            raise ValueError(f"unit_price ({self.unit_price}) must not be negative")
        if self.received_quantity < 0 or self.received_quantity > self.ordered_quantity:
            logger.warning(
                "po_item_over_receipt",
                extra={
                    "item_id": str(self.id),
                    "ordered_quantity": str(self.ordered_quantity),
                    "received_quantity": str(self.received_quantity),
                },
            )
            raise ValueError(
                f"received_quantity ({self.received_quantity}) "
                f"must be within 0..{self.ordered_quantity}"
            )

    @property
    def line_total(self) -> Decimal:
        return self.ordered_quantity * self.unit_price

    @property
    def outstanding_quantity(self) -> Decimal:
        return self.ordered_quantity - self.received_quantity


@dataclass(frozen=True)
class PurchaseOrder:
    """A purchase order with its owned line items."""
    id: UUID
    supplier_id: UUID
    order_date: date
    status: OrderStatus = OrderStatus.DRAFT
    code: str | None = None
    expected_date: date | None = None
    delivery_date: date | None = None
    total_amount: Decimal = Decimal("0")
    fully_received: bool = False
    notes: str | None = None
    items: tuple[PurchaseOrderItem, ...] = field(default_factory=tuple)

    def item(self, item_id: UUID) -> PurchaseOrderItem | None:
        for candidate in self.items:
            if candidate.id == item_id:
                return candidate
        return None

    def with_item(self, updated: PurchaseOrderItem) -> "PurchaseOrder":
        """Return a copy with ``updated`` replacing the item of the same id."""
        from dataclasses import replace

        items = tuple(updated if i.id == updated.id else i for i in self.items)
        return replace(self, items=items)

    @property
    def has_receipts(self) -> bool:
        return any(i.received_quantity > 0 for i in self.items)

    @property
    def reference(self) -> str:
        """Human-facing reference: the code when present, else the id."""
        return self.code or str(self.id)


@dataclass(frozen=True)
class StockMovement:
    """An append-only record of goods entering or leaving stock."""
    id: UUID
    product_id: UUID
    quantity: Decimal
    movement_type: MovementType
    movement_date: datetime
    reference: str | None = None
    location_id: UUID | None = None
    order_id: UUID | None = None


@dataclass(frozen=True)
class OrderLineRequest:
    """Caller input for one line when creating or replacing order items.

    ``unit_price`` defaults to the product's ``default_price`` when omitted.
    """
    product_id: UUID
    quantity: Any
    unit_price: Any = None
    location_id: UUID | None = None
    description: str | None = None
