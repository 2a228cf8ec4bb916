"""Tests for CapacityLedger: 0 <= used_volume <= capacity_volume, always."""

from decimal import Decimal
from uuid import uuid4

import pytest

from supply_kernel.domain.capacity import CapacityLedger
from supply_kernel.domain.dtos import WarehouseLocation
from supply_kernel.exceptions import (
    InsufficientCapacityError,
    InvalidQuantityError,
    OverReleaseError,
)


def _location(capacity="5", used="4") -> WarehouseLocation:
    return WarehouseLocation(
        id=uuid4(),
        code="A-01",
        capacity_volume=Decimal(capacity),
        used_volume=Decimal(used),
    )


class TestAllocate:
    def setup_method(self):
        self.ledger = CapacityLedger()

    def test_allocation_within_capacity(self):
        location = self.ledger.allocate(_location(), Decimal("1"))
        assert location.used_volume == Decimal("5")

    def test_insufficient_capacity_leaves_location_unchanged(self):
        location = _location()
        with pytest.raises(InsufficientCapacityError) as exc_info:
            self.ledger.allocate(location, Decimal("2"))

        err = exc_info.value
        assert err.response_code == 409
        assert err.location_code == "A-01"
        assert err.requested_volume == "2"
        assert err.available_volume == "1"
        assert location.used_volume == Decimal("4")

    def test_zero_allocation_is_a_no_op(self):
        location = self.ledger.allocate(_location(used="5"), 0)
        assert location.used_volume == Decimal("5")

    def test_negative_volume_is_invalid(self):
        with pytest.raises(InvalidQuantityError):
            self.ledger.allocate(_location(), Decimal("-1"))


class TestRelease:
    def setup_method(self):
        self.ledger = CapacityLedger()

    def test_release(self):
        location = self.ledger.release(_location(), "3")
        assert location.used_volume == Decimal("1")

    def test_release_everything(self):
        assert self.ledger.release(_location(), 4).used_volume == Decimal("0")

    def test_over_release_rejected(self):
        with pytest.raises(OverReleaseError) as exc_info:
            self.ledger.release(_location(), "4.5")
        assert exc_info.value.used_volume == "4"
        assert exc_info.value.response_code == 409

    def test_negative_release_is_invalid(self):
        with pytest.raises(InvalidQuantityError):
            self.ledger.release(_location(), -2)


class TestAvailable:
    def test_available_volume(self):
        assert CapacityLedger.available(_location()) == Decimal("1")


class TestLocationSnapshotGuards:
    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            _location(capacity="0", used="0")

    def test_used_cannot_exceed_capacity(self):
        with pytest.raises(ValueError):
            _location(capacity="5", used="6")
