"""
Pytest fixtures for the supply kernel test suite.

Provides:
- A file-backed SQLite database per test (tmp_path), so worker threads get
  their own connections and real write locking
- A FulfillmentService wired to a deterministic clock
- Seeded master data: one supplier, products with and without volume,
  warehouse locations
- Structured log capture
"""

import json
import logging
from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from supply_kernel.config import FulfillmentConfig
from supply_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from supply_kernel.domain.clock import DeterministicClock
from supply_kernel.domain.dtos import OrderLineRequest, Product, Supplier
from supply_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from supply_kernel.models.master_data import ProductModel, SupplierModel
from supply_kernel.selectors.inventory_selector import InventorySelector
from supply_kernel.services.fulfillment_service import FulfillmentService

TEST_NOW = datetime(2025, 3, 14, 9, 30, 0, tzinfo=UTC)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture supply_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.cancel_order(order.id)
            logs = captured_logs()
            assert any(r["message"] == "po_status_transition" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("supply_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'supply.db'}"


@pytest.fixture
def engine(database_url):
    engine = init_engine_from_url(database_url, pool_size=10, max_overflow=10)
    create_tables(engine)
    yield engine
    drop_tables(engine)
    reset_engine()


@pytest.fixture
def session_factory(engine):
    return get_session_factory()


@pytest.fixture
def session(session_factory):
    """A session for direct reads in assertions; rolled back on teardown."""
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def config(database_url):
    return FulfillmentConfig(database_url=database_url, retry_backoff_seconds=0)


@pytest.fixture
def service(session_factory, deterministic_clock, config):
    return FulfillmentService(session_factory, clock=deterministic_clock, config=config)


# =============================================================================
# Master data
# =============================================================================


def _seed(session_factory, *models):
    with session_scope(session_factory) as s:
        s.add_all(models)


@pytest.fixture
def supplier(session_factory):
    dto = Supplier(
        id=uuid4(),
        name="Acme Components",
        tax_id="12-3456789",
        email="orders@acme.test",
    )
    _seed(session_factory, SupplierModel.from_dto(dto))
    return dto


@pytest.fixture
def bolt(session_factory, supplier):
    """Half a volume unit per piece, 2.00 each."""
    dto = Product(
        id=uuid4(),
        sku="BOLT-M8",
        name="M8 hex bolt",
        unit="pc",
        volume=Decimal("0.5"),
        default_price=Decimal("2.00"),
        preferred_supplier_id=supplier.id,
    )
    _seed(session_factory, ProductModel.from_dto(dto))
    return dto


@pytest.fixture
def crate(session_factory, supplier):
    """One volume unit per crate, 15.00 each."""
    dto = Product(
        id=uuid4(),
        sku="CRATE-L",
        name="Large crate",
        unit="pc",
        volume=Decimal("1"),
        default_price=Decimal("15.00"),
    )
    _seed(session_factory, ProductModel.from_dto(dto))
    return dto


@pytest.fixture
def manual(session_factory):
    """A product without volume or default price."""
    dto = Product(id=uuid4(), sku="DOC-MANUAL", name="Assembly manual")
    _seed(session_factory, ProductModel.from_dto(dto))
    return dto


@pytest.fixture
def retired_product(session_factory):
    dto = Product(
        id=uuid4(),
        sku="OLD-1",
        name="Discontinued part",
        default_price=Decimal("1.00"),
        is_active=False,
    )
    _seed(session_factory, ProductModel.from_dto(dto))
    return dto


@pytest.fixture
def small_location(service):
    return service.create_location("A-01", Decimal("10"), description="Small shelf")


@pytest.fixture
def large_location(service):
    return service.create_location("B-01", Decimal("1000"), description="Pallet rack")


@pytest.fixture
def make_line():
    """Shorthand for an order line request: ``make_line(bolt, 10)``."""

    def _line(product, quantity, **kwargs) -> OrderLineRequest:
        return OrderLineRequest(product_id=product.id, quantity=quantity, **kwargs)

    return _line


@pytest.fixture
def movements(session_factory):
    """Committed stock movements, read in a short transaction of their own."""

    def _movements(**filters):
        with session_scope(session_factory) as s:
            return InventorySelector(s).movements(**filters)

    return _movements
