"""
BaseService -- abstract base for session-bound kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for the
    services that write inside a caller's transaction (the order store and
    the sequence service).  They persist via ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or rollback themselves.  FulfillmentService owns
    commit/rollback through ``session_scope``.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for session-bound services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide reporting queries -- those belong in
          ``supply_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
