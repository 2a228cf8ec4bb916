"""
SQLAlchemy ORM model for warehouse locations.

The database enforces ``0 <= used_volume <= capacity_volume`` with check
constraints as a last line of defence behind CapacityLedger.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase


class WarehouseLocationModel(TrackedBase):
    """
    A storage location with fixed volume capacity.

    Maps to the ``WarehouseLocation`` DTO in ``supply_kernel.domain.dtos``.
    """

    __tablename__ = "warehouse_locations"

    __table_args__ = (
        CheckConstraint("capacity_volume > 0", name="ck_location_capacity_positive"),
        CheckConstraint("used_volume >= 0", name="ck_location_used_non_negative"),
        CheckConstraint(
            "used_volume <= capacity_volume", name="ck_location_used_within_capacity",
        ),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    capacity_volume: Mapped[Decimal] = mapped_column(nullable=False)
    used_volume: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from supply_kernel.domain.dtos import WarehouseLocation

        return WarehouseLocation(
            id=self.id,
            code=self.code,
            capacity_volume=self.capacity_volume,
            used_volume=self.used_volume,
            description=self.description,
        )

    @classmethod
    def from_dto(cls, dto) -> "WarehouseLocationModel":
        return cls(
            id=dto.id,
            code=dto.code,
            capacity_volume=dto.capacity_volume,
            used_volume=dto.used_volume,
            description=dto.description,
        )

    def __repr__(self) -> str:
        return f"<WarehouseLocationModel {self.code} {self.used_volume}/{self.capacity_volume}>"
