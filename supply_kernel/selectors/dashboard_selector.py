"""
DashboardSelector -- headline procurement figures.

Pending orders are those not yet sent out or not yet answered by the
supplier (DRAFT and ISSUED); their totals are the value of future
deliveries.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select

from supply_kernel.domain.dtos import OrderStatus
from supply_kernel.domain.quantities import ZERO
from supply_kernel.models.master_data import ProductModel, SupplierModel
from supply_kernel.models.purchase_order import PurchaseOrderModel
from supply_kernel.selectors.base import BaseSelector

PENDING_STATUSES = (OrderStatus.DRAFT, OrderStatus.ISSUED)


@dataclass(frozen=True)
class DashboardSummary:
    supplier_count: int
    product_count: int
    pending_order_count: int
    future_deliveries_value: Decimal


class DashboardSelector(BaseSelector):
    """Counts and sums for the procurement dashboard."""

    def summary(self) -> DashboardSummary:
        supplier_count = self.session.execute(
            select(func.count(SupplierModel.id))
        ).scalar_one()
        product_count = self.session.execute(
            select(func.count(ProductModel.id))
        ).scalar_one()
        pending_totals = self.session.execute(
            select(PurchaseOrderModel.total_amount)
            .where(PurchaseOrderModel.status.in_([s.value for s in PENDING_STATUSES]))
        ).scalars().all()
        # Summed in Python so SQLite's float SUM never touches money.
        return DashboardSummary(
            supplier_count=supplier_count,
            product_count=product_count,
            pending_order_count=len(pending_totals),
            future_deliveries_value=sum(pending_totals, ZERO),
        )
