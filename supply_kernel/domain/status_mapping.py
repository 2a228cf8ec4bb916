"""
API boundary mapping -- external status vocabulary and order views.

Responsibility:
    Translates between the internal OrderStatus and the three-value status
    the API boundary exposes, shapes the external order view, and renders
    kernel exceptions into response bodies.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Only the boundary uses it; the
    engine never reasons in external statuses.

Invariants enforced:
    - Both directions are explicit total tables; DRAFT, ISSUED and
      PARTIALLY_RECEIVED all collapse to PENDING.
"""

from enum import Enum
from typing import Any

from supply_kernel.domain.dtos import OrderStatus, PurchaseOrder, PurchaseOrderItem
from supply_kernel.exceptions import SupplyKernelError, response_code_for


class ExternalStatus(str, Enum):
    PENDING = "PENDING"
    DELIVERED = "DELIVERED"
    CANCELED = "CANCELED"


TO_EXTERNAL: dict[OrderStatus, ExternalStatus] = {
    OrderStatus.DRAFT: ExternalStatus.PENDING,
    OrderStatus.ISSUED: ExternalStatus.PENDING,
    OrderStatus.PARTIALLY_RECEIVED: ExternalStatus.PENDING,
    OrderStatus.RECEIVED: ExternalStatus.DELIVERED,
    OrderStatus.CANCELED: ExternalStatus.CANCELED,
}

FROM_EXTERNAL: dict[ExternalStatus, OrderStatus] = {
    ExternalStatus.PENDING: OrderStatus.ISSUED,
    ExternalStatus.DELIVERED: OrderStatus.RECEIVED,
    ExternalStatus.CANCELED: OrderStatus.CANCELED,
}


def to_external(status: OrderStatus) -> ExternalStatus:
    return TO_EXTERNAL[status]


def from_external(value: str | ExternalStatus) -> OrderStatus:
    """Map an external status (case-insensitive) to the internal one.

    Raises:
        ValueError: Unknown external status.
    """
    if isinstance(value, str) and not isinstance(value, ExternalStatus):
        value = ExternalStatus(value.strip().upper())
    return FROM_EXTERNAL[value]


def item_view(item: PurchaseOrderItem) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "line_number": item.line_number,
        "product_id": str(item.product_id),
        "description": item.description,
        "ordered_quantity": str(item.ordered_quantity),
        "received_quantity": str(item.received_quantity),
        "outstanding_quantity": str(item.outstanding_quantity),
        "unit_price": str(item.unit_price),
        "line_total": str(item.line_total),
        "location_id": str(item.location_id) if item.location_id else None,
    }


def order_view(order: PurchaseOrder) -> dict[str, Any]:
    """External representation of an order with per-line totals."""
    return {
        "id": str(order.id),
        "code": order.code,
        "supplier_id": str(order.supplier_id),
        "order_date": order.order_date.isoformat(),
        "expected_date": order.expected_date.isoformat() if order.expected_date else None,
        "delivery_date": order.delivery_date.isoformat() if order.delivery_date else None,
        "status": to_external(order.status).value,
        "total_amount": str(order.total_amount),
        "fully_received": order.fully_received,
        "notes": order.notes,
        "items": [item_view(i) for i in order.items],
    }


def error_view(exc: BaseException) -> dict[str, Any]:
    """Response body for an exception; structured attributes ride along."""
    if isinstance(exc, SupplyKernelError):
        details = {k: v for k, v in vars(exc).items() if not k.startswith("_")}
        return {
            "code": exc.code,
            "message": str(exc),
            "response_code": exc.response_code,
            "details": details,
        }
    return {
        "code": "INTERNAL_ERROR",
        "message": "Internal error",
        "response_code": response_code_for(exc),
        "details": {},
    }
