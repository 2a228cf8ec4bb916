"""
End-to-end receiving scenarios through FulfillmentService.

Each scenario runs against a real (file-backed SQLite) database and checks
both the returned snapshot and what was actually committed.
"""

from datetime import date
from decimal import Decimal

import pytest

from supply_kernel.domain.dtos import MovementType, OrderStatus
from supply_kernel.exceptions import (
    IllegalTransitionError,
    InsufficientCapacityError,
    InvalidQuantityError,
    OverReceiptError,
)


class TestPartialThenFullReceipt:
    """Receive 4 of 10, then the remaining 6."""

    def test_partial_then_full(self, service, supplier, bolt, make_line):
        order = service.create_order(supplier.id, [make_line(bolt, 10)])
        item_id = order.items[0].id

        partial = service.apply_receipt(order.id, item_id, 4)
        assert partial.status == OrderStatus.PARTIALLY_RECEIVED
        assert partial.items[0].received_quantity == Decimal("4")
        assert partial.delivery_date is None

        full = service.apply_receipt(order.id, item_id, 6)
        assert full.status == OrderStatus.RECEIVED
        assert full.items[0].received_quantity == Decimal("10")
        assert full.fully_received is True
        assert full.delivery_date == date(2025, 3, 14)

        stored = service.get_order(order.id)
        assert stored.status == OrderStatus.RECEIVED
        assert stored.items[0].received_quantity == Decimal("10")
        assert stored.delivery_date == date(2025, 3, 14)

    def test_receipts_leave_total_untouched(self, service, supplier, bolt, make_line):
        order = service.create_order(supplier.id, [make_line(bolt, 10)])
        after = service.apply_receipt(order.id, order.items[0].id, 3)
        assert after.total_amount == order.total_amount == Decimal("20")


class TestOverReceipt:
    """receive(11) on an item with ordered=10 fails and stores nothing."""

    def test_over_receipt_rejected(self, service, supplier, bolt, make_line, movements):
        order = service.create_order(supplier.id, [make_line(bolt, 10)])

        with pytest.raises(OverReceiptError):
            service.apply_receipt(order.id, order.items[0].id, 11)

        stored = service.get_order(order.id)
        assert stored.items[0].received_quantity == Decimal("0")
        assert stored.status == OrderStatus.ISSUED
        assert movements(order_id=order.id) == []


class TestInsufficientCapacity:
    """Location capacity 5 with 4 used; a receipt needing 2 more fails."""

    def test_capacity_rejection_rolls_back_receipt(
        self, service, supplier, crate, make_line, movements,
    ):
        location = service.create_location("C-05", 5)
        order = service.create_order(
            supplier.id,
            [
                make_line(crate, 4, location_id=location.id),
                make_line(crate, 2, location_id=location.id),
            ],
        )
        service.apply_receipt(order.id, order.items[0].id, 4)
        assert service.get_location(location.id).used_volume == Decimal("4")

        with pytest.raises(InsufficientCapacityError) as exc_info:
            service.apply_receipt(order.id, order.items[1].id, 2)

        assert Decimal(exc_info.value.available_volume) == Decimal("1")
        assert service.get_location(location.id).used_volume == Decimal("4")
        stored = service.get_order(order.id)
        assert stored.items[1].received_quantity == Decimal("0")
        assert stored.status == OrderStatus.PARTIALLY_RECEIVED
        assert len(movements(order_id=order.id)) == 1


class TestTotalsIndependentOfReceipts:
    """ordered=[5, 5], prices=[10, 20] -> total 150 throughout."""

    def test_total_and_partial_status(self, service, supplier, bolt, crate, make_line):
        order = service.create_order(
            supplier.id,
            [make_line(bolt, 5, unit_price="10"), make_line(crate, 5, unit_price="20")],
        )
        assert order.total_amount == Decimal("150")

        after = service.apply_receipt(order.id, order.items[0].id, 5)

        assert after.total_amount == Decimal("150")
        assert after.status == OrderStatus.PARTIALLY_RECEIVED
        assert service.get_order(order.id).total_amount == Decimal("150")


class TestReceiveAfterCancel:
    """Cancel an ISSUED order, then try to receive."""

    def test_receipt_against_canceled_order(self, service, supplier, bolt, make_line):
        order = service.create_order(supplier.id, [make_line(bolt, 10)])
        canceled = service.cancel_order(order.id)
        assert canceled.status == OrderStatus.CANCELED

        with pytest.raises(IllegalTransitionError) as exc_info:
            service.apply_receipt(order.id, order.items[0].id, 1)

        assert exc_info.value.current_status == "canceled"
        assert service.get_order(order.id).status == OrderStatus.CANCELED

    def test_receipt_against_received_order(self, service, supplier, bolt, make_line):
        order = service.create_order(supplier.id, [make_line(bolt, 2)])
        service.apply_receipt(order.id, order.items[0].id, 2)

        with pytest.raises(IllegalTransitionError):
            service.apply_receipt(order.id, order.items[0].id, 1)


class TestReceiptAllocation:
    def test_receipt_allocates_quantity_times_volume(
        self, service, supplier, bolt, small_location, make_line,
    ):
        order = service.create_order(
            supplier.id, [make_line(bolt, 10, location_id=small_location.id)],
        )
        service.apply_receipt(order.id, order.items[0].id, 6)

        # 6 bolts x 0.5
        assert service.get_location(small_location.id).used_volume == Decimal("3")

    def test_product_without_volume_takes_no_space(
        self, service, supplier, manual, small_location, make_line,
    ):
        order = service.create_order(
            supplier.id, [make_line(manual, 500, location_id=small_location.id)],
        )
        after = service.apply_receipt(order.id, order.items[0].id, 500)

        assert after.status == OrderStatus.RECEIVED
        assert service.get_location(small_location.id).used_volume == Decimal("0")

    def test_receipt_records_in_movement(
        self, service, supplier, bolt, small_location, make_line, movements,
    ):
        order = service.create_order(
            supplier.id, [make_line(bolt, 10, location_id=small_location.id)],
        )
        service.apply_receipt(order.id, order.items[0].id, "2.5")

        recorded = movements(location_id=small_location.id)
        assert len(recorded) == 1
        movement = recorded[0]
        assert movement.movement_type == MovementType.IN
        assert movement.quantity == Decimal("2.5")
        assert movement.product_id == bolt.id
        assert movement.order_id == order.id
        assert movement.reference == order.code

    def test_receipt_without_location_still_records_movement(
        self, service, supplier, bolt, make_line, movements,
    ):
        order = service.create_order(supplier.id, [make_line(bolt, 10)])
        service.apply_receipt(order.id, order.items[0].id, 1)

        recorded = movements(order_id=order.id)
        assert len(recorded) == 1
        assert recorded[0].location_id is None


class TestStorageScale:
    """Quantities finer than the stored scale are refused, never rounded."""

    @pytest.mark.parametrize("quantity", ["0.9999999999", "1E-10"])
    def test_receipt_finer_than_scale_rejected(
        self, service, supplier, bolt, make_line, movements, quantity,
    ):
        order = service.create_order(supplier.id, [make_line(bolt, 1)])

        with pytest.raises(InvalidQuantityError):
            service.apply_receipt(order.id, order.items[0].id, quantity)

        stored = service.get_order(order.id)
        assert stored.status == OrderStatus.ISSUED
        assert stored.items[0].received_quantity == Decimal("0")
        assert movements(order_id=order.id) == []

    def test_smallest_unit_then_remainder_completes(
        self, service, supplier, bolt, make_line,
    ):
        order = service.create_order(supplier.id, [make_line(bolt, 1)])
        item_id = order.items[0].id

        first = service.apply_receipt(order.id, item_id, "0.999999999")
        stored = service.get_order(order.id)
        assert stored.status == first.status == OrderStatus.PARTIALLY_RECEIVED
        assert stored.items[0].received_quantity == first.items[0].received_quantity

        last = service.apply_receipt(order.id, item_id, "0.000000001")
        assert last.status == OrderStatus.RECEIVED
        assert service.get_order(order.id).fully_received is True

    def test_fine_line_quantity_rejected_on_create(self, service, supplier, bolt, make_line):
        with pytest.raises(InvalidQuantityError):
            service.create_order(supplier.id, [make_line(bolt, "2.0000000001")])
