"""Read-only selectors (query side)."""

from supply_kernel.selectors.base import BaseSelector
from supply_kernel.selectors.dashboard_selector import DashboardSelector, DashboardSummary
from supply_kernel.selectors.inventory_selector import InventorySelector, LocationAvailability
from supply_kernel.selectors.order_selector import OrderSelector

__all__ = [
    "BaseSelector",
    "DashboardSelector",
    "DashboardSummary",
    "InventorySelector",
    "LocationAvailability",
    "OrderSelector",
]
