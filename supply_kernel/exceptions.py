"""
Typed Exception Hierarchy for the Supply Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Receiving and capacity errors are business-rule violations that callers must
tell apart without parsing messages. Every error here:
  1. Has its own class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Has a RESPONSE_CODE class attribute (the 404/400/409-equivalent the
     API boundary returns)
  4. Carries structured DATA as attributes (order_id, quantities, volumes)

Example - RIGHT way:
    try:
        service.apply_receipt(order_id, item_id, Decimal("4"))
    except InsufficientCapacityError as e:
        log.warning("no room in %s", e.location_code)
        api_response(status=e.response_code, code=e.code,
                     requested=e.requested_volume, available=e.available_volume)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SupplyKernelError (base)
    |
    +-- NotFoundError
    |   +-- OrderNotFoundError
    |   +-- ItemNotFoundError
    |   +-- LocationNotFoundError
    |
    +-- InvalidQuantityError
    +-- OverReceiptError
    +-- InsufficientCapacityError
    +-- OverReleaseError
    +-- IllegalTransitionError
    +-- InvalidReferenceError
    +-- DuplicateOrderCodeError
    +-- DuplicateLocationCodeError
    |
    +-- PersistenceError
        +-- PersistenceRetryExhaustedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                          | Response | When Raised
------------------------------|----------|-------------------------------------
ORDER_NOT_FOUND               | 404      | Order id does not resolve
ITEM_NOT_FOUND                | 404      | Item id is not one of the order's items
LOCATION_NOT_FOUND            | 404      | Location id does not resolve
INVALID_QUANTITY              | 400      | Quantity/price <= 0, negative or non-numeric
OVER_RECEIPT                  | 400      | received + quantity > ordered
INSUFFICIENT_CAPACITY         | 409      | used + volume > capacity
OVER_RELEASE                  | 409      | volume > used
ILLEGAL_TRANSITION            | 400      | Command incompatible with order status
INVALID_REFERENCE             | 400      | Supplier/product/location FK missing
DUPLICATE_ORDER_CODE          | 409      | Order code already taken
DUPLICATE_LOCATION_CODE       | 409      | Location code already taken
PERSISTENCE_RETRY_EXHAUSTED   | 503      | Transient store failures outlasted retries

===============================================================================
RETRY POLICY
===============================================================================

None of the business errors are retried: they are deterministic outcomes of
the stored state. Only transient persistence faults (connection loss,
serialization conflicts) are retried by the fulfillment service, and only
until ``max_persist_attempts`` is reached.
"""

from decimal import Decimal
from typing import Any


class SupplyKernelError(Exception):
    """
    Base exception for all supply kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification and a ``response_code`` for the API boundary.
    """

    code: str = "SUPPLY_KERNEL_ERROR"
    response_code: int = 500


# Lookup errors


class NotFoundError(SupplyKernelError):
    """An id did not resolve."""

    code: str = "NOT_FOUND"
    response_code: int = 404

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = str(entity_id)
        super().__init__(f"{entity} not found: {entity_id}")


class OrderNotFoundError(NotFoundError):
    """Purchase order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: Any):
        self.order_id = str(order_id)
        super().__init__("Purchase order", order_id)


class ItemNotFoundError(NotFoundError):
    """Item is not one of the order's items."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, order_id: Any, item_id: Any):
        self.order_id = str(order_id)
        self.item_id = str(item_id)
        super().__init__("Purchase order item", item_id)


class LocationNotFoundError(NotFoundError):
    """Warehouse location with given ID was not found."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: Any):
        self.location_id = str(location_id)
        super().__init__("Warehouse location", location_id)


# Quantity and capacity errors


class InvalidQuantityError(SupplyKernelError):
    """Quantity (or price/volume) is not a positive, finite number."""

    code: str = "INVALID_QUANTITY"
    response_code: int = 400

    def __init__(self, value: Any, field: str = "quantity", reason: str = "must be positive"):
        self.value = str(value)
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class OverReceiptError(SupplyKernelError):
    """Receiving would push received quantity above ordered quantity."""

    code: str = "OVER_RECEIPT"
    response_code: int = 400

    def __init__(
        self,
        item_id: Any,
        ordered_quantity: Decimal,
        received_quantity: Decimal,
        attempted_quantity: Decimal,
    ):
        self.item_id = str(item_id)
        self.ordered_quantity = str(ordered_quantity)
        self.received_quantity = str(received_quantity)
        self.attempted_quantity = str(attempted_quantity)
        super().__init__(
            f"Over-receipt on item {item_id}: received {received_quantity} + "
            f"{attempted_quantity} exceeds ordered {ordered_quantity}"
        )


class InsufficientCapacityError(SupplyKernelError):
    """Allocation would push used volume above capacity."""

    code: str = "INSUFFICIENT_CAPACITY"
    response_code: int = 409

    def __init__(
        self,
        location_code: str,
        capacity_volume: Decimal,
        used_volume: Decimal,
        requested_volume: Decimal,
    ):
        self.location_code = location_code
        self.capacity_volume = str(capacity_volume)
        self.used_volume = str(used_volume)
        self.requested_volume = str(requested_volume)
        self.available_volume = str(capacity_volume - used_volume)
        super().__init__(
            f"Not enough space in location {location_code}: requested "
            f"{requested_volume}, available {capacity_volume - used_volume}"
        )


class OverReleaseError(SupplyKernelError):
    """Release would push used volume below zero."""

    code: str = "OVER_RELEASE"
    response_code: int = 409

    def __init__(self, location_code: str, used_volume: Decimal, requested_volume: Decimal):
        self.location_code = location_code
        self.used_volume = str(used_volume)
        self.requested_volume = str(requested_volume)
        super().__init__(
            f"Cannot release {requested_volume} from location {location_code}: "
            f"only {used_volume} in use"
        )


# Lifecycle errors


class IllegalTransitionError(SupplyKernelError):
    """Command is not allowed in the order's current status."""

    code: str = "ILLEGAL_TRANSITION"
    response_code: int = 400

    def __init__(self, order_id: Any, current_status: str, action: str, reason: str | None = None):
        self.order_id = str(order_id)
        self.current_status = current_status
        self.action = action
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Cannot {action} purchase order {order_id} in status {current_status}{detail}"
        )


class InvalidReferenceError(SupplyKernelError):
    """A foreign-key target (supplier, product, location) does not exist."""

    code: str = "INVALID_REFERENCE"
    response_code: int = 400

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = str(entity_id)
        super().__init__(f"Invalid reference: {entity} {entity_id} does not exist")


class DuplicateOrderCodeError(SupplyKernelError):
    """Order code is already used by another purchase order."""

    code: str = "DUPLICATE_ORDER_CODE"
    response_code: int = 409

    def __init__(self, order_code: str):
        self.order_code = order_code
        super().__init__(f"Purchase order code already exists: {order_code}")


class DuplicateLocationCodeError(SupplyKernelError):
    """Location code is already used by another warehouse location."""

    code: str = "DUPLICATE_LOCATION_CODE"
    response_code: int = 409

    def __init__(self, location_code: str):
        self.location_code = location_code
        super().__init__(f"Warehouse location code already exists: {location_code}")


# Persistence errors


class PersistenceError(SupplyKernelError):
    """Base exception for persistence-layer failures."""

    code: str = "PERSISTENCE_ERROR"
    response_code: int = 503


class PersistenceRetryExhaustedError(PersistenceError):
    """A command kept hitting transient store failures until retries ran out."""

    code: str = "PERSISTENCE_RETRY_EXHAUSTED"

    def __init__(self, command: str, attempts: int, last_error: str):
        self.command = command
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{command} failed after {attempts} attempt(s): {last_error}"
        )


def response_code_for(exc: BaseException) -> int:
    """Map any exception to the response code the API boundary reports."""
    if isinstance(exc, SupplyKernelError):
        return exc.response_code
    return 500
