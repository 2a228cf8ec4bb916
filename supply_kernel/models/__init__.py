"""ORM models. Importing this package registers every table on Base.metadata."""

from supply_kernel.models.location import WarehouseLocationModel
from supply_kernel.models.master_data import ProductModel, SupplierModel
from supply_kernel.models.purchase_order import PurchaseOrderItemModel, PurchaseOrderModel
from supply_kernel.models.stock import SequenceCounter, StockMovementModel

__all__ = [
    "SupplierModel",
    "ProductModel",
    "WarehouseLocationModel",
    "PurchaseOrderModel",
    "PurchaseOrderItemModel",
    "StockMovementModel",
    "SequenceCounter",
]
