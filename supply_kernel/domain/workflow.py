"""
Workflow types and the purchase-order lifecycle (``supply_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for workflow state machines, plus the declared
purchase-order workflow that the order state machine validates explicit
commands against.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass

from supply_kernel.domain.dtos import OrderStatus
from supply_kernel.logging_config import get_logger

logger = get_logger("domain.workflow")


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the order state machine does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``;
    ``terminal_states`` have no outgoing transitions.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self):
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state!r} "
                f"is not a declared state"
            )
        for t in self.transitions:
            for state in (t.from_state, t.to_state):
                if state not in self.states:
                    raise ValueError(
                        f"Workflow {self.name}: transition {t.action!r} "
                        f"references unknown state {state!r}"
                    )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state!r} "
                    f"has outgoing transition {t.action!r}"
                )

    def transitions_for(self, state: str, action: str) -> tuple[Transition, ...]:
        """All transitions for ``action`` leaving ``state``."""
        return tuple(
            t for t in self.transitions
            if t.from_state == state and t.action == action
        )

    def allows(self, state: str, action: str) -> bool:
        return bool(self.transitions_for(state, action))

    def allowed_actions(self, state: str) -> tuple[str, ...]:
        seen: list[str] = []
        for t in self.transitions:
            if t.from_state == state and t.action not in seen:
                seen.append(t.action)
        return tuple(seen)


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

ALL_LINES_RECEIVED = Guard(
    name="all_lines_received",
    description="Every line has received quantity equal to ordered quantity",
)

NO_RECEIPTS = Guard(
    name="no_receipts",
    description="No line has a received quantity above zero",
)


# -----------------------------------------------------------------------------
# Purchase Order Workflow
# -----------------------------------------------------------------------------

_DRAFT = OrderStatus.DRAFT.value
_ISSUED = OrderStatus.ISSUED.value
_PARTIAL = OrderStatus.PARTIALLY_RECEIVED.value
_RECEIVED = OrderStatus.RECEIVED.value
_CANCELED = OrderStatus.CANCELED.value

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order fulfillment lifecycle",
    initial_state=_DRAFT,
    states=(_DRAFT, _ISSUED, _PARTIAL, _RECEIVED, _CANCELED),
    transitions=(
        Transition(_DRAFT, _ISSUED, action="issue"),
        Transition(_DRAFT, _DRAFT, action="edit_quantity"),
        Transition(_DRAFT, _ISSUED, action="replace_items", guard=NO_RECEIPTS),
        Transition(_ISSUED, _ISSUED, action="replace_items", guard=NO_RECEIPTS),
        Transition(_DRAFT, _PARTIAL, action="receive"),
        Transition(_DRAFT, _RECEIVED, action="receive", guard=ALL_LINES_RECEIVED),
        Transition(_ISSUED, _PARTIAL, action="receive"),
        Transition(_ISSUED, _RECEIVED, action="receive", guard=ALL_LINES_RECEIVED),
        Transition(_PARTIAL, _PARTIAL, action="receive"),
        Transition(_PARTIAL, _RECEIVED, action="receive", guard=ALL_LINES_RECEIVED),
        Transition(_DRAFT, _CANCELED, action="cancel"),
        Transition(_ISSUED, _CANCELED, action="cancel"),
        Transition(_PARTIAL, _CANCELED, action="cancel"),
    ),
    terminal_states=(_RECEIVED, _CANCELED),
)

logger.debug(
    "po_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
        "initial_state": PURCHASE_ORDER_WORKFLOW.initial_state,
    },
)
