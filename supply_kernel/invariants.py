"""
Kernel Invariants Contract.

These invariants are structural law for the fulfillment engine. No
configuration flag may relax them.

This module exists to declare them explicitly. Enforcement is distributed
across the receiving tracker, capacity ledger, order state machine, order
store and database check constraints; rejection logs carry the invariant
value under the ``invariant`` key.
"""

from enum import Enum, unique


@unique
class FulfillmentInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    RECEIVED_WITHIN_ORDERED = "received_within_ordered"
    """0 <= received_quantity <= ordered_quantity for every item. Enforced
    by ReceivingTracker and a DB check constraint."""

    RECEIVED_MONOTONIC = "received_monotonic"
    """received_quantity never decreases. ReceivingTracker only adds
    strictly positive quantities."""

    CAPACITY_BOUNDED = "capacity_bounded"
    """0 <= used_volume <= capacity_volume for every location. Enforced by
    CapacityLedger and a DB check constraint."""

    TERMINAL_STATUS = "terminal_status"
    """RECEIVED and CANCELED orders accept no further receipts, edits or
    cancellation. Enforced by OrderStateMachine."""

    TOTAL_FROM_ORDERED = "total_from_ordered"
    """total_amount is sum(ordered_quantity * unit_price) and is only ever
    produced by OrderTotalCalculator."""

    ATOMIC_COMMAND = "atomic_command"
    """A command persists order, items, location and stock movement in one
    transaction or nothing at all. Enforced by FulfillmentService."""


ALL_FULFILLMENT_INVARIANTS: frozenset[FulfillmentInvariant] = frozenset(FulfillmentInvariant)
