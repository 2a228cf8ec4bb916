"""
SQLAlchemy ORM models for read-only master data: suppliers and products.

Responsibility
--------------
Persist the supplier and product records purchase orders reference.
Master-data CRUD lives outside the kernel; the kernel only reads these
rows (through ``MasterDataReader``) and tests seed them directly.

Invariants enforced
-------------------
* ``Product.sku`` is unique.
* ``Product.volume`` and ``Product.default_price`` are non-negative when set.
* All numeric fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from supply_kernel.db.base import TrackedBase


class SupplierModel(TrackedBase):
    """
    A supplier.

    Maps to the ``Supplier`` DTO in ``supply_kernel.domain.dtos``.
    """

    __tablename__ = "suppliers"

    __table_args__ = (
        Index("idx_supplier_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(254), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from supply_kernel.domain.dtos import Supplier

        return Supplier(
            id=self.id,
            name=self.name,
            tax_id=self.tax_id,
            email=self.email,
            address=self.address,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto) -> "SupplierModel":
        return cls(
            id=dto.id,
            name=dto.name,
            tax_id=dto.tax_id,
            email=dto.email,
            address=dto.address,
            notes=dto.notes,
        )

    def __repr__(self) -> str:
        return f"<SupplierModel {self.name}>"


class ProductModel(TrackedBase):
    """
    A product that can be ordered and stocked.

    Maps to the ``Product`` DTO in ``supply_kernel.domain.dtos``.

    Guarantees:
        - ``sku`` is unique.
        - ``volume`` is per unit; NULL means the product takes no space.
    """

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint("volume IS NULL OR volume >= 0", name="ck_product_volume"),
        CheckConstraint(
            "default_price IS NULL OR default_price >= 0",
            name="ck_product_default_price",
        ),
        Index("idx_product_supplier", "preferred_supplier_id"),
    )

    sku: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    volume: Mapped[Decimal | None] = mapped_column(nullable=True)
    default_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    preferred_supplier_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self):
        from supply_kernel.domain.dtos import Product

        return Product(
            id=self.id,
            sku=self.sku,
            name=self.name,
            description=self.description,
            unit=self.unit,
            volume=self.volume,
            default_price=self.default_price,
            preferred_supplier_id=self.preferred_supplier_id,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto) -> "ProductModel":
        return cls(
            id=dto.id,
            sku=dto.sku,
            name=dto.name,
            description=dto.description,
            unit=dto.unit,
            volume=dto.volume,
            default_price=dto.default_price,
            preferred_supplier_id=dto.preferred_supplier_id,
            is_active=dto.is_active,
        )

    def __repr__(self) -> str:
        return f"<ProductModel {self.sku}>"
