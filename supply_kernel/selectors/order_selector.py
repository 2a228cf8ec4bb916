"""
OrderSelector -- read-only queries over purchase orders.

Orders are returned as complete snapshots (header plus items ordered by
line number).  Listing loads every item of the listed orders with one
extra query rather than one per order.
"""

from collections import defaultdict
from uuid import UUID

from sqlalchemy import func, select

from supply_kernel.domain.dtos import OrderStatus, PurchaseOrder
from supply_kernel.exceptions import OrderNotFoundError
from supply_kernel.models.purchase_order import PurchaseOrderItemModel, PurchaseOrderModel
from supply_kernel.selectors.base import BaseSelector


class OrderSelector(BaseSelector):
    """Fetch, list and count purchase orders."""

    def get(self, order_id: UUID) -> PurchaseOrder:
        row = self.session.get(PurchaseOrderModel, order_id)
        if row is None:
            raise OrderNotFoundError(order_id)
        return self._with_items([row])[0]

    def find_by_code(self, code: str) -> PurchaseOrder | None:
        row = self.session.execute(
            select(PurchaseOrderModel).where(PurchaseOrderModel.code == code)
        ).scalar_one_or_none()
        if row is None:
            return None
        return self._with_items([row])[0]

    def list_orders(self, status: OrderStatus | None = None) -> list[PurchaseOrder]:
        """Orders, optionally filtered by status, by order date then code."""
        stmt = select(PurchaseOrderModel).order_by(
            PurchaseOrderModel.order_date,
            PurchaseOrderModel.code,
            PurchaseOrderModel.id,
        )
        if status is not None:
            stmt = stmt.where(PurchaseOrderModel.status == OrderStatus(status).value)
        rows = self.session.execute(stmt).scalars().all()
        return self._with_items(rows)

    def count_by_status(self) -> dict[OrderStatus, int]:
        counts = {status: 0 for status in OrderStatus}
        rows = self.session.execute(
            select(PurchaseOrderModel.status, func.count(PurchaseOrderModel.id))
            .group_by(PurchaseOrderModel.status)
        ).all()
        for status, count in rows:
            counts[OrderStatus(status)] = count
        return counts

    def _with_items(self, rows) -> list[PurchaseOrder]:
        if not rows:
            return []
        by_order = defaultdict(list)
        item_rows = self.session.execute(
            select(PurchaseOrderItemModel)
            .where(PurchaseOrderItemModel.order_id.in_([r.id for r in rows]))
        ).scalars()
        for item_row in item_rows:
            by_order[item_row.order_id].append(item_row)
        return [row.to_dto(by_order.get(row.id, ())) for row in rows]
