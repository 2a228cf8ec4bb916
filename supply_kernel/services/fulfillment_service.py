"""
FulfillmentService -- the purchase-order fulfillment engine.

Responsibility:
    Orchestrates every command on the order aggregate and on warehouse
    locations: create, issue, receive, cancel, replace items, edit draft
    quantities, delete, release capacity and dispatch stock.  Pure domain
    components compute the next snapshots; this service serializes,
    persists and retries.

Architecture position:
    Kernel > Services -- imperative shell.  Owns transaction boundaries
    (``session_scope``) and the in-process lock registries.  Depends on the
    domain components, ``SqlAlchemyOrderStore``, ``MasterDataReader`` and
    ``SequenceService``.

Invariants enforced:
    - Commands on the same order run one at a time (per-order mutex);
      allocation and release on the same location run one at a time
      (per-location mutex plus ``SELECT ... FOR UPDATE``).
    - Lock order is always order -> location, and every lock is taken
      before the database transaction opens.
    - Compute-then-persist: a command writes order, items, location and
      stock movement in one transaction, or nothing.
    - Receipts never recompute the order total.

Failure modes:
    - Business errors (SupplyKernelError subclasses) propagate unchanged
      and are logged at WARNING as ``command_rejected``; nothing is stored.
    - Transient persistence faults are retried up to
      ``config.max_persist_attempts`` times, re-running the whole command,
      then surface as PersistenceRetryExhaustedError.

Audit relevance:
    Every command runs inside ``LogContext.bind(command=..., order_id=...)``
    so all log lines it produces carry the command and the ids it touches.
    Every receipt and dispatch leaves a stock movement row.
"""

import time
from collections.abc import Callable, Iterable, Mapping
from contextlib import nullcontext
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from supply_kernel.config import FulfillmentConfig
from supply_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from supply_kernel.domain.capacity import CapacityLedger
from supply_kernel.domain.clock import Clock, SystemClock
from supply_kernel.domain.dtos import (
    MovementType,
    OrderLineRequest,
    OrderStatus,
    PurchaseOrder,
    PurchaseOrderItem,
    StockMovement,
    WarehouseLocation,
)
from supply_kernel.domain.order_state import OrderStateMachine
from supply_kernel.domain.quantities import ZERO, non_negative, positive
from supply_kernel.domain.receiving import ReceivingTracker
from supply_kernel.domain.totals import OrderTotalCalculator
from supply_kernel.exceptions import (
    DuplicateOrderCodeError,
    InvalidQuantityError,
    InvalidReferenceError,
    ItemNotFoundError,
    LocationNotFoundError,
    SupplyKernelError,
)
from supply_kernel.logging_config import LogContext, configure_logging, get_logger
from supply_kernel.selectors.order_selector import OrderSelector
from supply_kernel.services.locks import KeyedLockRegistry
from supply_kernel.services.master_data import MasterDataReader
from supply_kernel.services.retry import RetryPolicy, run_with_retry
from supply_kernel.services.sequence_service import SequenceService
from supply_kernel.services.store import SqlAlchemyOrderStore

logger = get_logger("services.fulfillment")

T = TypeVar("T")

LineInput = OrderLineRequest | Mapping[str, Any]


class FulfillmentService:
    """
    Command surface of the fulfillment kernel.

    Contract:
        Each public command runs as one transaction opened from
        ``session_factory`` and returns the resulting snapshot (frozen DTO).

    Guarantees:
        - A rejected command leaves stored state unchanged.
        - received_quantity stays within 0..ordered_quantity and
          used_volume within 0..capacity_volume, including under
          concurrent callers sharing this instance.

    Non-goals:
        - Cross-process coordination.  Threads must share one
          FulfillmentService (or pass the same lock registries).
        - Releasing capacity when an order is deleted.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        config: FulfillmentConfig | None = None,
        *,
        order_locks: KeyedLockRegistry | None = None,
        location_locks: KeyedLockRegistry | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._config = config or FulfillmentConfig.with_defaults()
        self._order_locks = order_locks or KeyedLockRegistry("order")
        self._location_locks = location_locks or KeyedLockRegistry("location")
        self._sleep = sleep
        self._retry_policy = RetryPolicy(
            max_attempts=self._config.max_persist_attempts,
            backoff_seconds=self._config.retry_backoff_seconds,
        )

        self._tracker = ReceivingTracker()
        self._ledger = CapacityLedger()
        self._states = OrderStateMachine()
        self._totals = OrderTotalCalculator()

    @classmethod
    def from_config(
        cls, config: FulfillmentConfig, clock: Clock | None = None,
    ) -> "FulfillmentService":
        """
        Wire a service from configuration.

        Configures logging at ``config.log_level``, opens the engine for
        ``config.database_url`` and creates any missing tables.
        """
        configure_logging(level=config.log_level)
        init_engine_from_url(config.database_url, echo=config.echo_sql)
        create_tables()
        return cls(get_session_factory(), clock=clock, config=config)

    # =========================================================================
    # Orders
    # =========================================================================

    def create_order(
        self,
        supplier_id: UUID,
        items: Iterable[LineInput],
        *,
        code: str | None = None,
        order_date: date | None = None,
        expected_date: date | None = None,
        issue: bool | None = None,
        notes: str | None = None,
    ) -> PurchaseOrder:
        """
        Create a purchase order, DRAFT or directly ISSUED.

        ``unit_price`` on a line defaults to the product's ``default_price``.
        A code is generated (``PO-<year>-<nnnn>``) when none is given and
        code generation is enabled.

        Raises:
            InvalidQuantityError: A quantity <= 0 or a negative unit price.
            InvalidReferenceError: Unknown or inactive supplier, product or
                destination location.
            DuplicateOrderCodeError: ``code`` is already taken.
        """
        order_id = uuid4()
        requests = self._validate_lines(items)
        issue = self._config.default_issue_on_create if issue is None else issue
        if code is not None:
            code = code.strip() or None

        def _create() -> PurchaseOrder:
            with session_scope(self._session_factory) as session:
                store = SqlAlchemyOrderStore(session)
                MasterDataReader(session).get_supplier(supplier_id)
                day = order_date or self._clock.today()
                order_code = code
                if order_code is not None:
                    if store.order_code_exists(order_code):
                        raise DuplicateOrderCodeError(order_code)
                elif self._config.generate_order_codes:
                    order_code = SequenceService(session).next_order_code(
                        self._config.order_code_prefix, day.year,
                    )

                order = PurchaseOrder(
                    id=order_id,
                    code=order_code,
                    supplier_id=supplier_id,
                    order_date=day,
                    expected_date=expected_date,
                    status=OrderStatus.DRAFT,
                    notes=notes,
                    items=self._build_items(session, store, order_id, requests),
                )
                order = self._totals.recalculate(order)
                if issue:
                    order = self._states.issue(order)
                store.save_order(order)

            logger.info(
                "order_created",
                extra={
                    "order_code": order.code,
                    "supplier_id": str(supplier_id),
                    "status": order.status.value,
                    "item_count": len(order.items),
                    "total_amount": str(order.total_amount),
                },
            )
            return order

        return self._run("create_order", _create, order_id=order_id)

    def issue_order(self, order_id: UUID) -> PurchaseOrder:
        """DRAFT -> ISSUED."""

        def _issue() -> PurchaseOrder:
            with session_scope(self._session_factory) as session:
                store = SqlAlchemyOrderStore(session)
                order = self._states.issue(store.load_order(order_id, for_update=True))
                store.save_order(order)
            return order

        return self._run("issue_order", _issue, order_id=order_id)

    def apply_receipt(self, order_id: UUID, item_id: UUID, quantity: Any) -> PurchaseOrder:
        """
        Receive ``quantity`` units against one order item.

        Steps: load the order snapshot; reject terminal orders; find the
        item; validate and add the quantity; allocate the footprint at the
        item's destination location (if any); recompute status; persist
        order, items, location and an IN stock movement together.

        Raises:
            OrderNotFoundError, ItemNotFoundError: Unknown ids.
            IllegalTransitionError: Order is RECEIVED or CANCELED.
            InvalidQuantityError: quantity <= 0 or not a finite number.
            OverReceiptError: received + quantity > ordered.
            InsufficientCapacityError: Destination location is too full.
        """
        with LogContext.bind(item_id=item_id):
            with self._order_locks.hold(order_id):
                # Short read to learn which location lock the receipt needs.
                location_id = self._run(
                    "apply_receipt",
                    lambda: self._item_location(order_id, item_id),
                    order_id=order_id,
                    lock=False,
                )
                location_lock = (
                    self._location_locks.hold(location_id)
                    if location_id is not None else nullcontext()
                )
                with location_lock:
                    return self._run(
                        "apply_receipt",
                        lambda: self._receive(order_id, item_id, quantity, location_id),
                        order_id=order_id,
                        location_id=location_id,
                        lock=False,
                    )

    def cancel_order(self, order_id: UUID) -> PurchaseOrder:
        """Cancel a non-terminal order.  Allocated capacity stays allocated."""

        def _cancel() -> PurchaseOrder:
            with session_scope(self._session_factory) as session:
                store = SqlAlchemyOrderStore(session)
                order = self._states.cancel(store.load_order(order_id, for_update=True))
                store.save_order(order)
            return order

        return self._run("cancel_order", _cancel, order_id=order_id)

    def replace_items(self, order_id: UUID, items: Iterable[LineInput]) -> PurchaseOrder:
        """
        Replace the whole item collection of an order with no receipts.

        Legal in DRAFT or ISSUED while every received_quantity is zero.  The
        total is recalculated and the order is (re)set to ISSUED.
        """
        requests = self._validate_lines(items)

        def _replace() -> PurchaseOrder:
            with session_scope(self._session_factory) as session:
                store = SqlAlchemyOrderStore(session)
                order = self._states.reset_for_replacement(
                    store.load_order(order_id, for_update=True)
                )
                order = replace(
                    order, items=self._build_items(session, store, order_id, requests),
                )
                order = self._totals.recalculate(order)
                store.save_order(order)

            logger.info(
                "order_items_replaced",
                extra={
                    "item_count": len(order.items),
                    "total_amount": str(order.total_amount),
                },
            )
            return order

        return self._run("replace_items", _replace, order_id=order_id)

    def update_item_quantity(
        self, order_id: UUID, item_id: UUID, quantity: Any,
    ) -> PurchaseOrder:
        """Change an item's ordered quantity; DRAFT orders only."""

        def _update() -> PurchaseOrder:
            with session_scope(self._session_factory) as session:
                store = SqlAlchemyOrderStore(session)
                order = store.load_order(order_id, for_update=True)
                self._states.assert_quantity_editable(order)
                item = order.item(item_id)
                if item is None:
                    raise ItemNotFoundError(order_id, item_id)
                amount = positive(quantity, "quantity")
                if amount < item.received_quantity:
                    raise InvalidQuantityError(
                        quantity, "quantity", "must not be below the received quantity",
                    )
                order = order.with_item(replace(item, ordered_quantity=amount))
                order = self._totals.recalculate(order)
                store.save_order(order)
            return order

        return self._run(
            "update_item_quantity", _update, order_id=order_id, item_id=item_id,
        )

    def delete_order(self, order_id: UUID) -> None:
        """Delete an order and its items.  Capacity is not released."""

        def _delete() -> None:
            with session_scope(self._session_factory) as session:
                SqlAlchemyOrderStore(session).delete_order(order_id)

        self._run("delete_order", _delete, order_id=order_id)

    def get_order(self, order_id: UUID) -> PurchaseOrder:
        with session_scope(self._session_factory) as session:
            return OrderSelector(session).get(order_id)

    def list_orders(self, status: OrderStatus | None = None) -> list[PurchaseOrder]:
        with session_scope(self._session_factory) as session:
            return SqlAlchemyOrderStore(session).list_orders(status)

    # =========================================================================
    # Locations
    # =========================================================================

    def create_location(
        self,
        code: str,
        capacity_volume: Any,
        description: str | None = None,
    ) -> WarehouseLocation:
        """
        Create an empty warehouse location.

        Raises:
            InvalidQuantityError: capacity_volume <= 0.
            DuplicateLocationCodeError: code already taken.
        """
        capacity = positive(capacity_volume, "capacity_volume")
        location = WarehouseLocation(
            id=uuid4(),
            code=code.strip(),
            capacity_volume=capacity,
            used_volume=ZERO,
            description=description,
        )

        def _create() -> WarehouseLocation:
            with session_scope(self._session_factory) as session:
                SqlAlchemyOrderStore(session).save_location(location)
            logger.info(
                "location_created",
                extra={"location_code": location.code, "capacity_volume": str(capacity)},
            )
            return location

        return self._run("create_location", _create, location_id=location.id)

    def get_location(self, location_id: UUID) -> WarehouseLocation:
        with session_scope(self._session_factory) as session:
            return SqlAlchemyOrderStore(session).load_location(location_id)

    def release_capacity(self, location_id: UUID, volume: Any) -> WarehouseLocation:
        """
        Free ``volume`` at a location.

        Raises:
            LocationNotFoundError: Unknown location.
            InvalidQuantityError: Negative or non-numeric volume.
            OverReleaseError: volume > used_volume.
        """

        def _release() -> WarehouseLocation:
            with session_scope(self._session_factory) as session:
                store = SqlAlchemyOrderStore(session)
                location = self._ledger.release(
                    store.load_location(location_id, for_update=True), volume,
                )
                store.save_location(location)
            logger.info(
                "capacity_released",
                extra={"volume": str(volume), "used_volume": str(location.used_volume)},
            )
            return location

        return self._run_on_location("release_capacity", location_id, _release)

    def dispatch_stock(
        self,
        location_id: UUID,
        product_id: UUID,
        quantity: Any,
        reference: str | None = None,
    ) -> WarehouseLocation:
        """
        Take ``quantity`` units of a product out of a location.

        Releases ``quantity x product.volume`` and appends an OUT stock
        movement in the same transaction.
        """
        amount = positive(quantity, "quantity")

        def _dispatch() -> WarehouseLocation:
            with session_scope(self._session_factory) as session:
                store = SqlAlchemyOrderStore(session)
                product = MasterDataReader(session).get_product(product_id)
                location = store.load_location(location_id, for_update=True)
                location = self._ledger.release(
                    location, self._tracker.footprint(amount, product),
                )
                store.save_location(location)
                store.append_movement(
                    StockMovement(
                        id=uuid4(),
                        product_id=product_id,
                        quantity=amount,
                        movement_type=MovementType.OUT,
                        movement_date=self._clock.now(),
                        reference=reference,
                        location_id=location_id,
                    )
                )
            logger.info(
                "stock_dispatched",
                extra={
                    "product_id": str(product_id),
                    "quantity": str(amount),
                    "used_volume": str(location.used_volume),
                },
            )
            return location

        return self._run_on_location("dispatch_stock", location_id, _dispatch)

    # =========================================================================
    # Internals
    # =========================================================================

    def _run(
        self,
        command: str,
        fn: Callable[[], T],
        *,
        order_id: UUID | None = None,
        item_id: UUID | None = None,
        location_id: UUID | None = None,
        lock: bool = True,
    ) -> T:
        """Run one command attempt loop under its log context and order lock."""
        order_lock = (
            self._order_locks.hold(order_id)
            if lock and order_id is not None else nullcontext()
        )
        with LogContext.bind(
            command=command, order_id=order_id, item_id=item_id, location_id=location_id,
        ):
            with order_lock:
                try:
                    return run_with_retry(command, fn, self._retry_policy, self._sleep)
                except SupplyKernelError as exc:
                    logger.warning(
                        "command_rejected",
                        extra={
                            "error_code": exc.code,
                            "response_code": exc.response_code,
                            "error": str(exc),
                        },
                    )
                    raise

    def _run_on_location(
        self, command: str, location_id: UUID, fn: Callable[[], T],
    ) -> T:
        with self._location_locks.hold(location_id):
            return self._run(command, fn, location_id=location_id, lock=False)

    def _item_location(self, order_id: UUID, item_id: UUID) -> UUID | None:
        with session_scope(self._session_factory) as session:
            order = SqlAlchemyOrderStore(session).load_order(order_id)
        item = order.item(item_id)
        return item.location_id if item is not None else None

    def _receive(
        self,
        order_id: UUID,
        item_id: UUID,
        quantity: Any,
        expected_location_id: UUID | None,
    ) -> PurchaseOrder:
        with session_scope(self._session_factory) as session:
            store = SqlAlchemyOrderStore(session)
            order = store.load_order(order_id, for_update=True)
            self._states.assert_receivable(order)
            item = order.item(item_id)
            if item is None:
                raise ItemNotFoundError(order_id, item_id)
            # Every writer of this order holds the order lock we hold.
            assert item.location_id == expected_location_id, "item location changed under lock"

            outcome = self._tracker.receive(item, quantity)

            location = None
            footprint = ZERO
            if item.location_id is not None:
                product = MasterDataReader(session).get_product(item.product_id)
                footprint = self._tracker.footprint(outcome.quantity, product)
                location = self._ledger.allocate(
                    store.load_location(item.location_id, for_update=True), footprint,
                )

            now = self._clock.now()
            updated = self._states.recompute(order.with_item(outcome.item), now)

            store.save_order(updated)
            if location is not None:
                store.save_location(location)
            store.append_movement(
                StockMovement(
                    id=uuid4(),
                    product_id=item.product_id,
                    quantity=outcome.quantity,
                    movement_type=MovementType.IN,
                    movement_date=now,
                    reference=order.reference,
                    location_id=item.location_id,
                    order_id=order.id,
                )
            )

        logger.info(
            "receipt_applied",
            extra={
                "quantity": str(outcome.quantity),
                "received_quantity": str(outcome.item.received_quantity),
                "ordered_quantity": str(outcome.item.ordered_quantity),
                "completion": outcome.completion.value,
                "footprint": str(footprint),
                "status": updated.status.value,
            },
        )
        return updated

    @staticmethod
    def _validate_lines(
        lines: Iterable[LineInput],
    ) -> list[tuple[OrderLineRequest, Decimal, Decimal | None]]:
        """Coerce line input and check quantities and prices before any I/O."""
        validated = []
        for line in lines:
            if isinstance(line, OrderLineRequest):
                request = line
            else:
                try:
                    request = OrderLineRequest(**line)
                except TypeError:
                    raise InvalidQuantityError(line, "line", "malformed order line") from None
            quantity = positive(request.quantity, "quantity")
            price = (
                None if request.unit_price is None
                else non_negative(request.unit_price, "unit_price")
            )
            validated.append((request, quantity, price))
        return validated

    @staticmethod
    def _build_items(
        session: Session,
        store: SqlAlchemyOrderStore,
        order_id: UUID,
        requests: list[tuple[OrderLineRequest, Decimal, Decimal | None]],
    ) -> tuple[PurchaseOrderItem, ...]:
        products = MasterDataReader(session).get_products(
            (r.product_id for r, _, _ in requests), require_active=True,
        )
        for location_id in sorted({r.location_id for r, _, _ in requests if r.location_id}, key=str):
            try:
                store.load_location(location_id)
            except LocationNotFoundError as exc:
                raise InvalidReferenceError("Warehouse location", location_id) from exc

        items = []
        for line_number, (request, quantity, price) in enumerate(requests, start=1):
            product = products[request.product_id]
            if price is None:
                # Snapshot the catalogue price at order time.
                price = product.default_price if product.default_price is not None else ZERO
            items.append(
                PurchaseOrderItem(
                    id=uuid4(),
                    order_id=order_id,
                    line_number=line_number,
                    product_id=request.product_id,
                    ordered_quantity=quantity,
                    unit_price=price,
                    location_id=request.location_id,
                    description=request.description,
                )
            )
        return tuple(items)
