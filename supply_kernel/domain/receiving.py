"""
ReceivingTracker -- ordered-vs-received bookkeeping per line item.

Responsibility:
    Validates a receipt quantity against an item's outstanding quantity,
    produces the updated item snapshot, classifies item completion and
    computes the volume footprint a receipt needs at the destination.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by the
    fulfillment service; never persists anything.

Invariants enforced:
    - 0 <= received_quantity <= ordered_quantity after every receipt.
    - received_quantity is monotonically non-decreasing.
    - No clamping: an over-receipt is rejected outright.

Failure modes:
    - InvalidQuantityError if quantity <= 0, non-numeric or non-finite.
    - OverReceiptError if received + quantity > ordered.

Audit relevance:
    Every rejection is logged at WARNING with the violated invariant.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from supply_kernel.domain.dtos import ItemCompletion, Product, PurchaseOrderItem
from supply_kernel.domain.quantities import ZERO, positive, quantize, to_decimal
from supply_kernel.exceptions import OverReceiptError
from supply_kernel.invariants import FulfillmentInvariant
from supply_kernel.logging_config import get_logger

logger = get_logger("domain.receiving")


@dataclass(frozen=True)
class ReceiptOutcome:
    """Result of a successful receipt on one item."""
    item: PurchaseOrderItem
    completion: ItemCompletion
    quantity: Decimal


class ReceivingTracker:
    """
    Applies receipts to purchase-order items.

    Contract:
        receive(item, quantity) returns a new item with the quantity added,
        or raises without side effects.
    Guarantees:
        The input item is never mutated.
    Non-goals:
        Does not touch locations (see CapacityLedger) or order status
        (see OrderStateMachine).
    """

    def receive(self, item: PurchaseOrderItem, quantity: Any) -> ReceiptOutcome:
        amount = positive(quantity, "quantity")
        new_received = item.received_quantity + amount
        if new_received > item.ordered_quantity:
            logger.warning(
                "over_receipt_rejected",
                extra={
                    "item_id": str(item.id),
                    "ordered_quantity": str(item.ordered_quantity),
                    "received_quantity": str(item.received_quantity),
                    "attempted_quantity": str(amount),
                    "invariant": FulfillmentInvariant.RECEIVED_WITHIN_ORDERED.value,
                },
            )
            raise OverReceiptError(
                item.id, item.ordered_quantity, item.received_quantity, amount,
            )

        updated = replace(item, received_quantity=new_received)
        return ReceiptOutcome(
            item=updated,
            completion=self.completion(updated),
            quantity=amount,
        )

    @staticmethod
    def completion(item: PurchaseOrderItem) -> ItemCompletion:
        if item.received_quantity <= ZERO:
            return ItemCompletion.NONE
        if item.received_quantity >= item.ordered_quantity:
            return ItemCompletion.COMPLETE
        return ItemCompletion.PARTIAL

    @staticmethod
    def footprint(quantity: Any, product: Product) -> Decimal:
        """Volume occupied by ``quantity`` units; zero when the product has no volume."""
        amount = to_decimal(quantity, "quantity")
        if product.volume is None:
            return ZERO
        return quantize(amount * product.volume)
