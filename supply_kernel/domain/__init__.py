"""Pure fulfillment domain: snapshots, rules and state machines (no I/O)."""

from supply_kernel.domain.capacity import CapacityLedger
from supply_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from supply_kernel.domain.dtos import (
    ItemCompletion,
    MovementType,
    OrderLineRequest,
    OrderStatus,
    Product,
    PurchaseOrder,
    PurchaseOrderItem,
    StockMovement,
    Supplier,
    WarehouseLocation,
)
from supply_kernel.domain.order_state import OrderStateMachine
from supply_kernel.domain.receiving import ReceiptOutcome, ReceivingTracker
from supply_kernel.domain.totals import OrderTotalCalculator
from supply_kernel.domain.workflow import PURCHASE_ORDER_WORKFLOW, Workflow

__all__ = [
    "CapacityLedger",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ItemCompletion",
    "MovementType",
    "OrderLineRequest",
    "OrderStatus",
    "Product",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "StockMovement",
    "Supplier",
    "WarehouseLocation",
    "OrderStateMachine",
    "ReceiptOutcome",
    "ReceivingTracker",
    "OrderTotalCalculator",
    "PURCHASE_ORDER_WORKFLOW",
    "Workflow",
]
