"""Kernel services (imperative shell)."""

from supply_kernel.services.fulfillment_service import FulfillmentService
from supply_kernel.services.locks import KeyedLockRegistry
from supply_kernel.services.master_data import MasterDataReader
from supply_kernel.services.retry import RetryPolicy, is_transient, run_with_retry
from supply_kernel.services.sequence_service import SequenceService
from supply_kernel.services.store import OrderStore, SqlAlchemyOrderStore

__all__ = [
    "FulfillmentService",
    "KeyedLockRegistry",
    "MasterDataReader",
    "RetryPolicy",
    "is_transient",
    "run_with_retry",
    "SequenceService",
    "OrderStore",
    "SqlAlchemyOrderStore",
]
