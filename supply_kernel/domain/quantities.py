"""
Quantities -- Decimal coercion for quantities, prices and volumes.

Responsibility:
    Converts caller-supplied numbers into finite ``Decimal`` values at the
    kernel boundary so that no float ever reaches domain arithmetic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Every accepted value fits the storage scale (SCALE fractional digits),
      so what is computed in memory is exactly what gets persisted.

Failure modes:
    - InvalidQuantityError for non-numeric input, booleans, NaN and
      infinities, for values finer than the storage scale, and for values
      outside the requested sign constraint.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from supply_kernel.exceptions import InvalidQuantityError

ZERO = Decimal("0")

# Fractional digits of every Numeric column
SCALE = 9
QUANTUM = Decimal(1).scaleb(-SCALE)


def to_decimal(value: Any, field: str = "quantity") -> Decimal:
    """Coerce ``value`` to a finite Decimal or raise InvalidQuantityError."""
    if isinstance(value, bool) or value is None:
        raise InvalidQuantityError(value, field, "must be numeric")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() first so floats keep their printed value, not binary noise
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidQuantityError(value, field, "must be numeric") from None
    if not result.is_finite():
        raise InvalidQuantityError(value, field, "must be finite")
    if result.normalize().as_tuple().exponent < -SCALE:
        raise InvalidQuantityError(value, field, f"must have at most {SCALE} decimal places")
    return result


def positive(value: Any, field: str = "quantity") -> Decimal:
    """Coerce ``value`` and require it to be strictly greater than zero."""
    result = to_decimal(value, field)
    if result <= ZERO:
        raise InvalidQuantityError(value, field, "must be positive")
    return result


def non_negative(value: Any, field: str = "quantity") -> Decimal:
    """Coerce ``value`` and require it to be zero or greater."""
    result = to_decimal(value, field)
    if result < ZERO:
        raise InvalidQuantityError(value, field, "must not be negative")
    return result


def quantize(value: Decimal) -> Decimal:
    """Round a derived value (a product of two scaled values) to the storage scale."""
    return value.quantize(QUANTUM, rounding=ROUND_HALF_UP)
