"""
Module: fair_kernel.models.event
Responsibility: ORM persistence for craft-fair events and their commission
    rates.
Architecture position: Kernel > Models.  May import from db/ and domain/enums
    only.

Invariants enforced:
    - name is unique (uq_event_name).
    - Only SCHEDULED and CLOSED are ever stored in ``state``; ACTIVE is
      derived from the clock by fair_kernel.domain.event_lifecycle.
    - CLOSED is terminal: close() refuses a second call.

Failure modes:
    - ValueError from close() when the event is already closed.  Services
      check first and raise EventAlreadyClosedError.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fair_kernel.db.base import CreatedAtBase
from fair_kernel.domain.enums import EventState


class Event(CreatedAtBase):
    """
    A craft-fair event.

    Guarantees:
        - start_date < end_date (enforced by EventService at creation).
        - Commission percentages lie in [0, 100] (enforced by EventService).
        - close() takes its timestamp from the injected clock; it never
          calls datetime.now().
    """

    __tablename__ = "events"

    __table_args__ = (
        UniqueConstraint("name", name="uq_event_name"),
        Index("idx_event_dates", "start_date", "end_date"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    location: Mapped[str] = mapped_column(String(200), nullable=False)

    start_date: Mapped[datetime] = mapped_column(nullable=False)

    end_date: Mapped[datetime] = mapped_column(nullable=False)

    # Percentages, e.g. Decimal("10") for 10 %
    commission_association: Mapped[Decimal] = mapped_column(nullable=False)

    commission_seller: Mapped[Decimal] = mapped_column(nullable=False)

    # Stored state: SCHEDULED or CLOSED
    state: Mapped[EventState] = mapped_column(
        String(20),
        default=EventState.SCHEDULED,
        nullable=False,
    )

    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Event {self.name}: {self.state}>"

    @property
    def is_closed(self) -> bool:
        return self.state == EventState.CLOSED

    def close(self, closed_at: datetime) -> None:
        """Close the event.

        Postconditions: state becomes CLOSED and closed_at is set.  When the
            event is closed before its scheduled end, end_date moves back to
            closed_at.
        Raises: ValueError if the event is already closed.
        """
        if self.is_closed:
            raise ValueError(f"Event {self.name} is already closed")

        self.state = EventState.CLOSED
        self.closed_at = closed_at
        if closed_at < self.end_date:
            self.end_date = closed_at
