"""
EventService -- creation and manual closing of events.

Responsibility:
    Write side of the event lifecycle.  SCHEDULED -> ACTIVE needs no
    write (it is derived from the clock); CLOSED is the only stored
    transition and it is one-way.

Architecture position:
    Kernel > Services -- imperative shell around
    fair_kernel.domain.event_lifecycle.

Invariants enforced:
    - name is unique; start_date < end_date; both commissions in [0, 100].
    - close_event requires explicit confirmation, refuses a SCHEDULED event
      and refuses a second close.  Closing an ACTIVE event before its end
      moves end_date to the closing time.

Failure modes:
    - ValidationError: bad dates, percentages, name or missing confirmation.
    - EventNotFoundError.
    - EventNotActiveError: closing an event that has not started.
    - EventAlreadyClosedError: closing twice.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fair_kernel.db.types import to_decimal
from fair_kernel.domain.dtos import EventInfo
from fair_kernel.domain.enums import EventDisplayStatus, EventState
from fair_kernel.domain.event_lifecycle import display_status, effective_state
from fair_kernel.exceptions import (
    EventAlreadyClosedError,
    EventNotActiveError,
    EventNotFoundError,
    ValidationError,
)
from fair_kernel.logging_config import LogContext, get_logger
from fair_kernel.models.event import Event
from fair_kernel.services.base import BaseService

logger = get_logger("services.event_service")

_MIN_PERCENT = Decimal("0")
_MAX_PERCENT = Decimal("100")


def _percent(value, field: str) -> Decimal:
    try:
        percent = to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(str(exc), field=field) from exc
    if not _MIN_PERCENT <= percent <= _MAX_PERCENT:
        raise ValidationError(f"{field} must be between 0 and 100, got {percent}", field=field)
    return percent


class EventService(BaseService):
    """Create, inspect and close events."""

    def create_event(
        self,
        name: str,
        location: str,
        start_date: datetime,
        end_date: datetime,
        commission_association: Decimal,
        commission_seller: Decimal,
    ) -> Event:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Event name is required", field="name")
        location = (location or "").strip()
        if not location:
            raise ValidationError("Event location is required", field="location")
        if start_date.tzinfo is None or end_date.tzinfo is None:
            raise ValidationError("Event dates must be timezone-aware", field="startDate")
        if start_date >= end_date:
            raise ValidationError("Event start must be before its end", field="endDate")

        association = _percent(commission_association, "commissionAssociation")
        seller = _percent(commission_seller, "commissionSeller")

        if self.repository.exists(Event, Event.name == name):
            raise ValidationError(f"An event named {name!r} already exists", field="name")

        event = self.repository.add(
            Event(
                name=name,
                location=location,
                start_date=start_date,
                end_date=end_date,
                commission_association=association,
                commission_seller=seller,
                state=EventState.SCHEDULED,
                created_at=self.clock.now(),
            )
        )
        logger.info("event_created", extra={
            "event_id": str(event.id),
            "event_name": name,
            "start_date": start_date,
            "end_date": end_date,
        })
        return event

    def get_event(self, event_id: UUID) -> EventInfo:
        return EventInfo.from_model(self._require(Event, event_id, EventNotFoundError))

    def effective_state(self, event_id: UUID) -> EventState:
        event = self._require(Event, event_id, EventNotFoundError)
        return effective_state(event, self.clock.now())

    def display_status(self, event_id: UUID) -> EventDisplayStatus:
        event = self._require(Event, event_id, EventNotFoundError)
        return display_status(event, self.clock.now())

    def close_event(self, event_id: UUID, confirm: bool = False) -> EventInfo:
        """
        Close an event for good.

        Preconditions: ``confirm`` is True.
        Postconditions: state is CLOSED; end_date is now if the event was
            still running.
        """
        if confirm is not True:
            raise ValidationError("Closing an event requires confirmation", field="confirm")

        with LogContext.bind(event_id=event_id):
            event = self.repository.lock(Event, event_id)
            if event is None:
                raise EventNotFoundError(str(event_id))

            now = self.clock.now()
            state = effective_state(event, now)
            if state == EventState.CLOSED:
                logger.warning("event_close_rejected", extra={"state": state.value})
                raise EventAlreadyClosedError(str(event_id))
            if state == EventState.SCHEDULED:
                logger.warning("event_close_rejected", extra={"state": state.value})
                raise EventNotActiveError(str(event_id), "close_event", state.value)

            original_end = event.end_date
            event.close(now)
            self.repository.flush()

            logger.info("event_closed", extra={
                "closed_at": now,
                "original_end_date": original_end,
                "end_date": event.end_date,
            })
            return EventInfo.from_model(event)
