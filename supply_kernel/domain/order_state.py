"""
OrderStateMachine -- purchase-order status derivation and explicit transitions.

Responsibility:
    Derives an order's status from its items after a receipt and validates
    the explicit commands (issue, cancel, replace_items, edit_quantity)
    against the declared PURCHASE_ORDER_WORKFLOW.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - RECEIVED and CANCELED are terminal; nothing leaves them.
    - recompute() never produces or overwrites CANCELED.
    - recompute() is idempotent: an already-RECEIVED order keeps its
      delivery_date.
    - fully_received is True exactly when status is RECEIVED.

Failure modes:
    - IllegalTransitionError when a command is not allowed from the
      order's current status, or when its guard does not hold.
"""

from dataclasses import replace
from datetime import datetime

from supply_kernel.domain.dtos import ItemCompletion, OrderStatus, PurchaseOrder
from supply_kernel.domain.receiving import ReceivingTracker
from supply_kernel.domain.workflow import PURCHASE_ORDER_WORKFLOW, Workflow
from supply_kernel.exceptions import IllegalTransitionError
from supply_kernel.invariants import FulfillmentInvariant
from supply_kernel.logging_config import get_logger

logger = get_logger("domain.order_state")


class OrderStateMachine:
    """
    Computes purchase-order status transitions.

    Contract:
        Every method takes an order snapshot and returns a new one (or
        raises).  Nothing is persisted here.
    Non-goals:
        Does not touch totals (OrderTotalCalculator) or locations.
    """

    def __init__(self, workflow: Workflow = PURCHASE_ORDER_WORKFLOW):
        self._workflow = workflow

    @property
    def workflow(self) -> Workflow:
        return self._workflow

    def recompute(self, order: PurchaseOrder, now: datetime) -> PurchaseOrder:
        """Derive status from item completion after a receipt."""
        if order.status == OrderStatus.CANCELED or not order.items:
            return order

        completions = [ReceivingTracker.completion(i) for i in order.items]
        if all(c == ItemCompletion.NONE for c in completions):
            return order

        if all(c == ItemCompletion.COMPLETE for c in completions):
            if order.status == OrderStatus.RECEIVED:
                return order
            updated = replace(
                order,
                status=OrderStatus.RECEIVED,
                delivery_date=now.date(),
                fully_received=True,
            )
        else:
            if order.status == OrderStatus.PARTIALLY_RECEIVED:
                return order
            updated = replace(
                order,
                status=OrderStatus.PARTIALLY_RECEIVED,
                fully_received=False,
            )

        self._log_transition(order, updated, "receive")
        return updated

    def issue(self, order: PurchaseOrder) -> PurchaseOrder:
        self._require(order, "issue")
        updated = replace(order, status=OrderStatus.ISSUED)
        self._log_transition(order, updated, "issue")
        return updated

    def cancel(self, order: PurchaseOrder) -> PurchaseOrder:
        self._require(order, "cancel")
        updated = replace(order, status=OrderStatus.CANCELED, fully_received=False)
        self._log_transition(order, updated, "cancel")
        return updated

    def assert_receivable(self, order: PurchaseOrder) -> None:
        self._require(order, "receive")

    def assert_quantity_editable(self, order: PurchaseOrder) -> None:
        self._require(order, "edit_quantity")

    def reset_for_replacement(self, order: PurchaseOrder) -> PurchaseOrder:
        """Validate replace_items and return the order reset to ISSUED."""
        self._require(order, "replace_items")
        if order.has_receipts:
            self._reject(order, "replace_items", "items already have receipts")
        updated = replace(
            order,
            status=OrderStatus.ISSUED,
            delivery_date=None,
            fully_received=False,
        )
        if updated.status != order.status:
            self._log_transition(order, updated, "replace_items")
        return updated

    # -- internals -----------------------------------------------------------

    def _require(self, order: PurchaseOrder, action: str) -> None:
        if not self._workflow.allows(order.status.value, action):
            reason = (
                "order is in a terminal status"
                if order.status.is_terminal else None
            )
            self._reject(order, action, reason)

    def _reject(self, order: PurchaseOrder, action: str, reason: str | None) -> None:
        logger.warning(
            "po_transition_rejected",
            extra={
                "order_id": str(order.id),
                "status": order.status.value,
                "action": action,
                "reason": reason,
                "invariant": FulfillmentInvariant.TERMINAL_STATUS.value,
            },
        )
        raise IllegalTransitionError(order.id, order.status.value, action, reason)

    @staticmethod
    def _log_transition(before: PurchaseOrder, after: PurchaseOrder, action: str) -> None:
        logger.info(
            "po_status_transition",
            extra={
                "order_id": str(after.id),
                "action": action,
                "from_status": before.status.value,
                "to_status": after.status.value,
            },
        )
