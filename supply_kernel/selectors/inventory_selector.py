"""
InventorySelector -- location availability and stock movement history.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from supply_kernel.domain.dtos import MovementType, StockMovement
from supply_kernel.domain.quantities import ZERO
from supply_kernel.exceptions import LocationNotFoundError
from supply_kernel.models.location import WarehouseLocationModel
from supply_kernel.models.stock import StockMovementModel
from supply_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LocationAvailability:
    location_id: UUID
    code: str
    capacity_volume: Decimal
    used_volume: Decimal
    available_volume: Decimal

    @property
    def utilization(self) -> Decimal:
        """Used share of capacity, 0..1."""
        return self.used_volume / self.capacity_volume


class InventorySelector(BaseSelector):
    """Read-side view of locations and stock movements."""

    def availability(self, location_id: UUID) -> LocationAvailability:
        row = self.session.get(WarehouseLocationModel, location_id)
        if row is None:
            raise LocationNotFoundError(location_id)
        return self._availability(row)

    def all_locations(self) -> list[LocationAvailability]:
        rows = self.session.execute(
            select(WarehouseLocationModel).order_by(WarehouseLocationModel.code)
        ).scalars().all()
        return [self._availability(row) for row in rows]

    def movements(
        self,
        location_id: UUID | None = None,
        product_id: UUID | None = None,
        order_id: UUID | None = None,
    ) -> list[StockMovement]:
        stmt = select(StockMovementModel).order_by(
            StockMovementModel.movement_date, StockMovementModel.created_at,
        )
        if location_id is not None:
            stmt = stmt.where(StockMovementModel.location_id == location_id)
        if product_id is not None:
            stmt = stmt.where(StockMovementModel.product_id == product_id)
        if order_id is not None:
            stmt = stmt.where(StockMovementModel.order_id == order_id)
        return [row.to_dto() for row in self.session.execute(stmt).scalars()]

    def stock_on_hand(self, product_id: UUID, location_id: UUID | None = None) -> Decimal:
        """Units in stock: sum of IN movements minus sum of OUT movements."""
        balance = ZERO
        for movement in self.movements(location_id=location_id, product_id=product_id):
            if movement.movement_type == MovementType.IN:
                balance += movement.quantity
            else:
                balance -= movement.quantity
        return balance

    @staticmethod
    def _availability(row: WarehouseLocationModel) -> LocationAvailability:
        return LocationAvailability(
            location_id=row.id,
            code=row.code,
            capacity_volume=row.capacity_volume,
            used_volume=row.used_volume,
            available_volume=row.capacity_volume - row.used_volume,
        )
