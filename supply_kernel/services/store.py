"""
OrderStore -- persistence port for the order aggregate and locations.

Responsibility:
    Declares the store contract the fulfillment engine depends on
    (``OrderStore``) and implements it on a single SQLAlchemy session
    (``SqlAlchemyOrderStore``).  Snapshots go in and out as frozen DTOs;
    ORM rows never leave this module.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes, never commits: the
    caller's ``session_scope`` spans every save of one command, so order,
    items, location and stock movement land in one transaction.

Invariants enforced:
    - save_order() writes the order row and its full item set; items absent
      from the snapshot are deleted.
    - delete_order() deletes items by foreign key, then the order row.
    - ``for_update=True`` loads take row locks (``SELECT ... FOR UPDATE``)
      on backends that support them.

Failure modes:
    - OrderNotFoundError / LocationNotFoundError for unknown ids.
    - DuplicateOrderCodeError / DuplicateLocationCodeError when a unique
      code collides at flush time.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from supply_kernel.domain.dtos import (
    OrderStatus,
    PurchaseOrder,
    StockMovement,
    WarehouseLocation,
)
from supply_kernel.exceptions import (
    DuplicateLocationCodeError,
    DuplicateOrderCodeError,
    LocationNotFoundError,
    OrderNotFoundError,
)
from supply_kernel.logging_config import get_logger
from supply_kernel.models.location import WarehouseLocationModel
from supply_kernel.models.purchase_order import PurchaseOrderItemModel, PurchaseOrderModel
from supply_kernel.models.stock import StockMovementModel
from supply_kernel.selectors.order_selector import OrderSelector
from supply_kernel.services.base import BaseService

logger = get_logger("services.store")


class OrderStore(ABC):
    """Persistence contract used by FulfillmentService."""

    @abstractmethod
    def load_order(self, order_id: UUID, *, for_update: bool = False) -> PurchaseOrder:
        ...

    @abstractmethod
    def save_order(self, order: PurchaseOrder) -> None:
        ...

    @abstractmethod
    def delete_order(self, order_id: UUID) -> None:
        ...

    @abstractmethod
    def load_location(
        self, location_id: UUID, *, for_update: bool = False,
    ) -> WarehouseLocation:
        ...

    @abstractmethod
    def save_location(self, location: WarehouseLocation) -> None:
        ...

    @abstractmethod
    def append_movement(self, movement: StockMovement) -> None:
        ...

    @abstractmethod
    def list_orders(self, status: OrderStatus | None = None) -> list[PurchaseOrder]:
        ...


class SqlAlchemyOrderStore(BaseService, OrderStore):
    """
    OrderStore on one SQLAlchemy session.

    Contract:
        Every write is flushed into the session's open transaction; the
        caller commits or rolls back.
    """

    # -- orders --------------------------------------------------------------

    def load_order(self, order_id: UUID, *, for_update: bool = False) -> PurchaseOrder:
        row = self._order_row(order_id, for_update=for_update)
        if row is None:
            raise OrderNotFoundError(order_id)
        items = self.session.execute(
            select(PurchaseOrderItemModel)
            .where(PurchaseOrderItemModel.order_id == order_id)
            .order_by(PurchaseOrderItemModel.line_number)
        ).scalars().all()
        return row.to_dto(items)

    def save_order(self, order: PurchaseOrder) -> None:
        row = self._order_row(order.id)
        is_new = row is None
        if is_new:
            row = PurchaseOrderModel.from_dto(order)
            self._flush_new(row, order.code)
        else:
            row.apply_dto(order)

        existing = {
            item_row.id: item_row
            for item_row in self.session.execute(
                select(PurchaseOrderItemModel)
                .where(PurchaseOrderItemModel.order_id == order.id)
            ).scalars()
        }
        keep = {item.id for item in order.items}
        stale = [r for item_id, r in existing.items() if item_id not in keep]
        for item_row in stale:
            self.session.delete(item_row)
        if stale:
            # Free the line numbers before inserting replacements.
            self.session.flush()

        for item in order.items:
            item_row = existing.get(item.id)
            if item_row is None:
                self.session.add(PurchaseOrderItemModel.from_dto(item))
            else:
                item_row.apply_dto(item)
        self.session.flush()

        logger.debug(
            "order_saved",
            extra={
                "order_id": str(order.id),
                "status": order.status.value,
                "item_count": len(order.items),
                "is_new": is_new,
            },
        )

    def delete_order(self, order_id: UUID) -> None:
        if self._order_row(order_id, for_update=True) is None:
            raise OrderNotFoundError(order_id)
        self.session.execute(
            update(StockMovementModel)
            .where(StockMovementModel.order_id == order_id)
            .values(order_id=None)
        )
        items_deleted = self.session.execute(
            delete(PurchaseOrderItemModel)
            .where(PurchaseOrderItemModel.order_id == order_id)
        ).rowcount
        self.session.execute(
            delete(PurchaseOrderModel).where(PurchaseOrderModel.id == order_id)
        )
        # Bulk deletes bypass the identity map.
        self.session.expunge_all()
        logger.info(
            "order_deleted",
            extra={"order_id": str(order_id), "items_deleted": items_deleted},
        )

    def list_orders(self, status: OrderStatus | None = None) -> list[PurchaseOrder]:
        return OrderSelector(self.session).list_orders(status)

    def order_code_exists(self, code: str) -> bool:
        return self.session.execute(
            select(PurchaseOrderModel.id).where(PurchaseOrderModel.code == code)
        ).first() is not None

    # -- locations -----------------------------------------------------------

    def load_location(
        self, location_id: UUID, *, for_update: bool = False,
    ) -> WarehouseLocation:
        row = self._location_row(location_id, for_update=for_update)
        if row is None:
            raise LocationNotFoundError(location_id)
        return row.to_dto()

    def save_location(self, location: WarehouseLocation) -> None:
        row = self._location_row(location.id)
        if row is None:
            row = WarehouseLocationModel.from_dto(location)
            savepoint = self.session.begin_nested()
            try:
                self.session.add(row)
                self.session.flush()
                savepoint.commit()
            except IntegrityError as exc:
                savepoint.rollback()
                if self.location_code_exists(location.code):
                    raise DuplicateLocationCodeError(location.code) from exc
                raise
        else:
            row.used_volume = location.used_volume
            row.description = location.description
            self.session.flush()
        logger.debug(
            "location_saved",
            extra={
                "location_id": str(location.id),
                "used_volume": str(location.used_volume),
                "capacity_volume": str(location.capacity_volume),
            },
        )

    def location_code_exists(self, code: str) -> bool:
        return self.session.execute(
            select(WarehouseLocationModel.id).where(WarehouseLocationModel.code == code)
        ).first() is not None

    # -- stock movements -----------------------------------------------------

    def append_movement(self, movement: StockMovement) -> None:
        self.session.add(StockMovementModel.from_dto(movement))
        self.session.flush()
        logger.debug(
            "stock_movement_appended",
            extra={
                "movement_id": str(movement.id),
                "movement_type": movement.movement_type.value,
                "quantity": str(movement.quantity),
            },
        )

    # -- internals -----------------------------------------------------------

    def _order_row(self, order_id: UUID, *, for_update: bool = False) -> PurchaseOrderModel | None:
        stmt = select(PurchaseOrderModel).where(PurchaseOrderModel.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _location_row(
        self, location_id: UUID, *, for_update: bool = False,
    ) -> WarehouseLocationModel | None:
        stmt = select(WarehouseLocationModel).where(WarehouseLocationModel.id == location_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _flush_new(self, row: PurchaseOrderModel, code: str | None) -> None:
        savepoint = self.session.begin_nested()
        try:
            self.session.add(row)
            self.session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            if code is not None and self.order_code_exists(code):
                raise DuplicateOrderCodeError(code) from exc
            raise
