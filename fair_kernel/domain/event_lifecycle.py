"""
Event Lifecycle Guard -- which mutations an event allows right now.

Responsibility:
    Derive an event's effective and display state from its stored state and
    the injected clock, and gate every mutating operation on it.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  ``now`` always comes
    from a Clock; nothing here reads wall-clock time.

State machine:
    SCHEDULED --(now >= start_date, automatic)--> ACTIVE
    SCHEDULED | ACTIVE --(close, manual)--> CLOSED   (terminal)

    FINISHED (ACTIVE and now > end_date) is display-only.  It never blocks a
    mutation unless LedgerPolicy.block_sales_after_end_date is set.

Gate table:
    Operation          SCHEDULED   ACTIVE   CLOSED
    CREATE_PRODUCT     yes         yes      EventClosedError
    EDIT_PRODUCT       yes         no       EventClosedError
    DELETE_PRODUCT     yes         no       EventClosedError
    RECORD_SALE        no          yes      EventClosedError
    RECORD_EXCHANGE    no          yes      EventClosedError
    MANUAL_MOVEMENT    yes         yes      EventClosedError
"""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from fair_kernel.domain.enums import EventDisplayStatus, EventOperation, EventState
from fair_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from fair_kernel.exceptions import (
    EventClosedError,
    EventNotActiveError,
    EventNotEditableError,
)
from fair_kernel.logging_config import get_logger

logger = get_logger("domain.event_lifecycle")

_SALE_OPERATIONS = frozenset({EventOperation.RECORD_SALE, EventOperation.RECORD_EXCHANGE})
_SCHEDULED_ONLY_OPERATIONS = frozenset({EventOperation.EDIT_PRODUCT, EventOperation.DELETE_PRODUCT})


class _EventLike(Protocol):
    id: UUID
    state: EventState
    start_date: datetime
    end_date: datetime


def effective_state(event: _EventLike, now: datetime) -> EventState:
    """CLOSED if closed; otherwise SCHEDULED before start and ACTIVE from then on."""
    if event.state == EventState.CLOSED:
        return EventState.CLOSED
    if now < event.start_date:
        return EventState.SCHEDULED
    return EventState.ACTIVE


def display_status(event: _EventLike, now: datetime) -> EventDisplayStatus:
    """Effective state, plus FINISHED for an active event past its end date."""
    state = effective_state(event, now)
    if state == EventState.ACTIVE and now > event.end_date:
        return EventDisplayStatus.FINISHED
    return EventDisplayStatus(state.value)


def assert_can_mutate(
    event: _EventLike,
    operation: EventOperation,
    now: datetime,
    policy: LedgerPolicy = DEFAULT_POLICY,
) -> EventState:
    """
    Raise if ``operation`` is not allowed on ``event`` at ``now``.

    Returns:
        The effective state, so callers need not derive it twice.

    Raises:
        EventClosedError: the event is CLOSED (every operation).
        EventNotActiveError: a sale or exchange outside ACTIVE.
        EventNotEditableError: a product edit/delete after the event started.
    """
    state = effective_state(event, now)
    event_id = str(event.id)

    if state == EventState.CLOSED:
        _reject(event_id, operation, state)
        raise EventClosedError(event_id, operation.value)

    if operation in _SALE_OPERATIONS:
        if state != EventState.ACTIVE:
            _reject(event_id, operation, state)
            raise EventNotActiveError(event_id, operation.value, state.value)
        if policy.block_sales_after_end_date and now > event.end_date:
            _reject(event_id, operation, EventDisplayStatus.FINISHED)
            raise EventNotActiveError(
                event_id, operation.value, EventDisplayStatus.FINISHED.value
            )

    if operation in _SCHEDULED_ONLY_OPERATIONS and state != EventState.SCHEDULED:
        _reject(event_id, operation, state)
        raise EventNotEditableError(event_id, operation.value, state.value)

    return state


def _reject(event_id: str, operation: EventOperation, state) -> None:
    logger.warning(
        "event_mutation_rejected",
        extra={
            "event_id": event_id,
            "operation": operation.value,
            "state": state.value,
        },
    )
