"""
Tests for the read side: OrderSelector, DashboardSelector, InventorySelector.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from supply_kernel.db.engine import session_scope
from supply_kernel.domain.dtos import OrderStatus
from supply_kernel.exceptions import LocationNotFoundError, OrderNotFoundError
from supply_kernel.selectors.dashboard_selector import DashboardSelector
from supply_kernel.selectors.inventory_selector import InventorySelector
from supply_kernel.selectors.order_selector import OrderSelector


class TestOrderSelector:
    def test_get_and_find_by_code(self, service, supplier, bolt, make_line, session_factory):
        order = service.create_order(supplier.id, [make_line(bolt, 2), make_line(bolt, 3)])

        with session_scope(session_factory) as s:
            selector = OrderSelector(s)
            by_id = selector.get(order.id)
            by_code = selector.find_by_code(order.code)
            assert selector.find_by_code("NOPE") is None

        assert by_id == by_code
        assert [i.line_number for i in by_id.items] == [1, 2]

    def test_get_unknown(self, session_factory, engine):
        with session_scope(session_factory) as s:
            with pytest.raises(OrderNotFoundError):
                OrderSelector(s).get(uuid4())

    def test_count_by_status(self, service, supplier, bolt, make_line, session_factory):
        service.create_order(supplier.id, [make_line(bolt, 1)])
        service.create_order(supplier.id, [make_line(bolt, 1)], issue=False)
        canceled = service.create_order(supplier.id, [make_line(bolt, 1)])
        service.cancel_order(canceled.id)

        with session_scope(session_factory) as s:
            counts = OrderSelector(s).count_by_status()

        assert counts[OrderStatus.ISSUED] == 1
        assert counts[OrderStatus.DRAFT] == 1
        assert counts[OrderStatus.CANCELED] == 1
        assert counts[OrderStatus.RECEIVED] == 0
        assert set(counts) == set(OrderStatus)


class TestDashboardSelector:
    def test_summary(self, service, supplier, bolt, crate, manual, make_line, session_factory):
        service.create_order(supplier.id, [make_line(bolt, 10)])  # 20.00, issued
        service.create_order(supplier.id, [make_line(crate, 2)], issue=False)  # 30.00, draft
        partial = service.create_order(supplier.id, [make_line(crate, 4)])  # 60.00
        service.apply_receipt(partial.id, partial.items[0].id, 1)
        canceled = service.create_order(supplier.id, [make_line(bolt, 100)])
        service.cancel_order(canceled.id)

        with session_scope(session_factory) as s:
            summary = DashboardSelector(s).summary()

        assert summary.supplier_count == 1
        assert summary.product_count == 3
        assert summary.pending_order_count == 2
        assert summary.future_deliveries_value == Decimal("50.00")

    def test_empty_database(self, session_factory, engine):
        with session_scope(session_factory) as s:
            summary = DashboardSelector(s).summary()
        assert summary.pending_order_count == 0
        assert summary.future_deliveries_value == Decimal("0")


class TestInventorySelector:
    def test_availability(
        self, service, supplier, bolt, small_location, large_location, make_line,
        session_factory,
    ):
        order = service.create_order(
            supplier.id, [make_line(bolt, 8, location_id=small_location.id)],
        )
        service.apply_receipt(order.id, order.items[0].id, 8)

        with session_scope(session_factory) as s:
            inventory = InventorySelector(s)
            small = inventory.availability(small_location.id)
            codes = [a.code for a in inventory.all_locations()]

        assert small.used_volume == Decimal("4")
        assert small.available_volume == Decimal("6")
        assert small.utilization == Decimal("0.4")
        assert codes == ["A-01", "B-01"]

    def test_unknown_location(self, session_factory, engine):
        with session_scope(session_factory) as s:
            with pytest.raises(LocationNotFoundError):
                InventorySelector(s).availability(uuid4())

    def test_movements_filter_by_product(
        self, service, supplier, bolt, crate, large_location, make_line, movements,
    ):
        order = service.create_order(
            supplier.id,
            [
                make_line(bolt, 5, location_id=large_location.id),
                make_line(crate, 5, location_id=large_location.id),
            ],
        )
        service.apply_receipt(order.id, order.items[0].id, 5)
        service.apply_receipt(order.id, order.items[1].id, 2)

        assert len(movements(location_id=large_location.id)) == 2
        crates = movements(product_id=crate.id)
        assert [m.quantity for m in crates] == [Decimal("2")]
