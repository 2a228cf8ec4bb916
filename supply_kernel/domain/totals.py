"""
OrderTotalCalculator -- derived order total.

total_amount = sum(ordered_quantity * unit_price) over the order's items.
Received quantities never enter the formula, so receipts never change the
total.  The sum is rounded to the storage scale.  Pure; zero I/O.
"""

from dataclasses import replace
from decimal import Decimal
from typing import Iterable

from supply_kernel.domain.dtos import PurchaseOrder, PurchaseOrderItem
from supply_kernel.domain.quantities import ZERO, quantize


class OrderTotalCalculator:
    """Recalculates ``total_amount`` from ordered quantities and unit prices."""

    @staticmethod
    def total(items: Iterable[PurchaseOrderItem]) -> Decimal:
        return quantize(sum((i.line_total for i in items), ZERO))

    def recalculate(self, order: PurchaseOrder) -> PurchaseOrder:
        return replace(order, total_amount=self.total(order.items))
