"""
CapacityLedger -- volume bookkeeping for warehouse locations.

Responsibility:
    Allocates and releases volume on a location snapshot while keeping
    ``0 <= used_volume <= capacity_volume``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Per-location
    serialization (mutex + row lock) is the fulfillment service's job; the
    ledger only computes the next snapshot.

Invariants enforced:
    - used_volume never exceeds capacity_volume.
    - used_volume never drops below zero.
    - A failed allocation or release returns nothing and changes nothing.

Failure modes:
    - InvalidQuantityError for negative or non-numeric volumes.
    - InsufficientCapacityError if used + volume > capacity.
    - OverReleaseError if volume > used.
"""

from dataclasses import replace
from decimal import Decimal
from typing import Any

from supply_kernel.domain.dtos import WarehouseLocation
from supply_kernel.domain.quantities import non_negative
from supply_kernel.exceptions import InsufficientCapacityError, OverReleaseError
from supply_kernel.invariants import FulfillmentInvariant
from supply_kernel.logging_config import get_logger

logger = get_logger("domain.capacity")


class CapacityLedger:
    """
    Allocates and releases location volume.

    Contract:
        allocate/release return a new WarehouseLocation or raise.
    Guarantees:
        The input location is never mutated.  A zero volume is a no-op that
        still returns a (new, equal) snapshot.
    """

    def allocate(self, location: WarehouseLocation, volume: Any) -> WarehouseLocation:
        amount = non_negative(volume, "volume")
        if location.used_volume + amount > location.capacity_volume:
            logger.warning(
                "capacity_allocation_rejected",
                extra={
                    "location_id": str(location.id),
                    "location_code": location.code,
                    "capacity_volume": str(location.capacity_volume),
                    "used_volume": str(location.used_volume),
                    "requested_volume": str(amount),
                    "invariant": FulfillmentInvariant.CAPACITY_BOUNDED.value,
                },
            )
            raise InsufficientCapacityError(
                location.code, location.capacity_volume, location.used_volume, amount,
            )
        return replace(location, used_volume=location.used_volume + amount)

    def release(self, location: WarehouseLocation, volume: Any) -> WarehouseLocation:
        amount = non_negative(volume, "volume")
        if amount > location.used_volume:
            logger.warning(
                "capacity_release_rejected",
                extra={
                    "location_id": str(location.id),
                    "location_code": location.code,
                    "used_volume": str(location.used_volume),
                    "requested_volume": str(amount),
                    "invariant": FulfillmentInvariant.CAPACITY_BOUNDED.value,
                },
            )
            raise OverReleaseError(location.code, location.used_volume, amount)
        return replace(location, used_volume=location.used_volume - amount)

    @staticmethod
    def available(location: WarehouseLocation) -> Decimal:
        return location.capacity_volume - location.used_volume
