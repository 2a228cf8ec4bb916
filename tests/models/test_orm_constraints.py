"""
Database-level constraints behind the domain checks.

These rows bypass the service layer on purpose: the schema must still
refuse quantities, volumes and references the domain would never produce.
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from supply_kernel.domain.dtos import OrderStatus
from supply_kernel.models.location import WarehouseLocationModel
from supply_kernel.models.master_data import ProductModel, SupplierModel
from supply_kernel.models.purchase_order import PurchaseOrderItemModel, PurchaseOrderModel
from supply_kernel.models.stock import StockMovementModel


def _order_row(supplier_id, code=None) -> PurchaseOrderModel:
    return PurchaseOrderModel(
        id=uuid4(),
        code=code,
        supplier_id=supplier_id,
        order_date=date(2025, 3, 1),
        status=OrderStatus.ISSUED.value,
        total_amount=Decimal("0"),
    )


def _item_row(order_id, product_id, line=1, ordered="5", received="0") -> PurchaseOrderItemModel:
    return PurchaseOrderItemModel(
        id=uuid4(),
        order_id=order_id,
        product_id=product_id,
        line_number=line,
        ordered_quantity=Decimal(ordered),
        received_quantity=Decimal(received),
        unit_price=Decimal("1"),
    )


class TestLocationConstraints:
    @pytest.mark.parametrize(
        "capacity, used",
        [("0", "0"), ("10", "-1"), ("10", "10.5")],
        ids=["zero_capacity", "negative_used", "used_over_capacity"],
    )
    def test_rejected(self, session, capacity, used):
        session.add(
            WarehouseLocationModel(
                id=uuid4(),
                code="BAD",
                capacity_volume=Decimal(capacity),
                used_volume=Decimal(used),
            )
        )
        with pytest.raises(IntegrityError):
            session.flush()

    def test_full_location_is_allowed(self, session):
        row = WarehouseLocationModel(
            id=uuid4(), code="FULL", capacity_volume=Decimal("4"), used_volume=Decimal("4"),
        )
        session.add(row)
        session.flush()
        assert row.to_dto().available_volume == Decimal("0")


class TestOrderItemConstraints:
    def test_received_above_ordered(self, session, supplier, bolt):
        order = _order_row(supplier.id)
        session.add(order)
        session.flush()
        session.add(_item_row(order.id, bolt.id, ordered="5", received="6"))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_non_positive_ordered(self, session, supplier, bolt):
        order = _order_row(supplier.id)
        session.add(order)
        session.flush()
        session.add(_item_row(order.id, bolt.id, ordered="0"))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_line_numbers_unique_per_order(self, session, supplier, bolt):
        order = _order_row(supplier.id)
        session.add(order)
        session.flush()
        session.add_all([_item_row(order.id, bolt.id, line=1), _item_row(order.id, bolt.id, line=1)])
        with pytest.raises(IntegrityError):
            session.flush()

    def test_unknown_product(self, session, supplier):
        order = _order_row(supplier.id)
        session.add(order)
        session.flush()
        session.add(_item_row(order.id, uuid4()))
        with pytest.raises(IntegrityError):
            session.flush()


class TestOrderConstraints:
    def test_unknown_supplier(self, session):
        session.add(_order_row(uuid4()))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_codes_unique(self, session, supplier):
        session.add(_order_row(supplier.id, code="PO-X"))
        session.flush()
        session.add(_order_row(supplier.id, code="PO-X"))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_many_orders_without_code(self, session, supplier):
        session.add_all([_order_row(supplier.id), _order_row(supplier.id)])
        session.flush()


class TestMasterDataConstraints:
    def test_negative_volume(self, session):
        session.add(ProductModel(id=uuid4(), sku="NEG", name="Bad", volume=Decimal("-1")))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_duplicate_sku(self, session, bolt):
        session.add(ProductModel(id=uuid4(), sku=bolt.sku, name="Copy"))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_dto_round_trip(self, session, supplier, bolt):
        assert session.get(SupplierModel, supplier.id).to_dto() == supplier
        assert session.get(ProductModel, bolt.id).to_dto() == bolt


class TestStockMovementConstraints:
    def test_movement_type_restricted(self, session, bolt):
        session.add(
            StockMovementModel(
                id=uuid4(),
                product_id=bolt.id,
                quantity=Decimal("1"),
                movement_type="sideways",
                movement_date=datetime(2025, 3, 1, tzinfo=UTC),
            )
        )
        with pytest.raises(IntegrityError):
            session.flush()
