"""
MasterDataReader -- read-only supplier and product lookups.

Master-data maintenance happens outside the kernel; commands only need to
confirm that referenced suppliers and products exist and to read product
volume and default price.  A missing id is the caller's mistake, so it
surfaces as InvalidReferenceError (400), not NotFound (404).
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from supply_kernel.domain.dtos import Product, Supplier
from supply_kernel.exceptions import InvalidReferenceError
from supply_kernel.models.master_data import ProductModel, SupplierModel


class MasterDataReader:
    """Read-only access to suppliers and products."""

    def __init__(self, session: Session):
        self.session = session

    def get_supplier(self, supplier_id: UUID) -> Supplier:
        row = self.session.get(SupplierModel, supplier_id)
        if row is None:
            raise InvalidReferenceError("Supplier", supplier_id)
        return row.to_dto()

    def get_product(self, product_id: UUID, *, require_active: bool = False) -> Product:
        row = self.session.get(ProductModel, product_id)
        if row is None or (require_active and not row.is_active):
            raise InvalidReferenceError("Product", product_id)
        return row.to_dto()

    def get_products(
        self, product_ids: Iterable[UUID], *, require_active: bool = False,
    ) -> dict[UUID, Product]:
        wanted = set(product_ids)
        if not wanted:
            return {}
        rows = self.session.execute(
            select(ProductModel).where(ProductModel.id.in_(wanted))
        ).scalars().all()
        found = {row.id: row for row in rows}
        for product_id in sorted(wanted, key=str):
            row = found.get(product_id)
            if row is None or (require_active and not row.is_active):
                raise InvalidReferenceError("Product", product_id)
        return {pid: row.to_dto() for pid, row in found.items()}
