"""Event creation and the one-way close."""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from fair_kernel.domain.enums import EventDisplayStatus, EventState
from fair_kernel.exceptions import (
    ConflictError,
    EventAlreadyClosedError,
    EventNotActiveError,
    EventNotFoundError,
    ValidationError,
)


class TestCreateEvent:
    def test_create(self, event_service, clock):
        start = clock.now() + timedelta(days=1)
        event = event_service.create_event(
            name="Feria de Otoño",
            location="Parque Central",
            start_date=start,
            end_date=start + timedelta(hours=10),
            commission_association=Decimal("12.5"),
            commission_seller=Decimal("0"),
        )
        assert event.state == EventState.SCHEDULED
        assert event.closed_at is None
        assert event.commission_association == Decimal("12.5")
        assert event_service.effective_state(event.id) == EventState.SCHEDULED

    def test_name_unique(self, make_event):
        make_event(name="Feria")
        with pytest.raises(ValidationError) as exc_info:
            make_event(name="Feria")
        assert exc_info.value.field == "name"

    def test_start_before_end(self, make_event):
        with pytest.raises(ValidationError) as exc_info:
            make_event(duration=timedelta(0))
        assert exc_info.value.field == "endDate"

    @pytest.mark.parametrize("percent", [Decimal("-0.01"), Decimal("100.01"), 10.5])
    def test_commission_range(self, make_event, percent):
        with pytest.raises(ValidationError) as exc_info:
            make_event(commission_association=percent)
        assert exc_info.value.field == "commissionAssociation"

    def test_boundary_percentages_accepted(self, make_event):
        event = make_event(commission_association=Decimal("100"), commission_seller=Decimal("0"))
        assert event.commission_association == Decimal("100")

    def test_naive_dates_rejected(self, event_service):
        with pytest.raises(ValidationError):
            event_service.create_event(
                "Feria", "Plaza", datetime(2024, 6, 1), datetime(2024, 6, 2),
                Decimal("10"), Decimal("5"),
            )

    def test_location_required(self, event_service, clock):
        with pytest.raises(ValidationError) as exc_info:
            event_service.create_event(
                "Feria", " ", clock.now(), clock.now() + timedelta(hours=1),
                Decimal("10"), Decimal("5"),
            )
        assert exc_info.value.field == "location"


class TestLifecycle:
    def test_scheduled_becomes_active_with_the_clock(self, event_service, scheduled_event, clock):
        assert event_service.effective_state(scheduled_event.id) == EventState.SCHEDULED
        clock.advance(2 * 24 * 3600)
        assert event_service.effective_state(scheduled_event.id) == EventState.ACTIVE
        # Nothing was written for the transition
        assert scheduled_event.state == EventState.SCHEDULED

    def test_finished_display_status(self, event_service, active_event, clock):
        clock.set_time(active_event.end_date + timedelta(minutes=1))
        assert event_service.display_status(active_event.id) == EventDisplayStatus.FINISHED
        assert event_service.effective_state(active_event.id) == EventState.ACTIVE

    def test_get_event_snapshot(self, event_service, active_event):
        info = event_service.get_event(active_event.id)
        assert info.id == active_event.id
        assert info.name == active_event.name
        assert info.state == EventState.SCHEDULED

    def test_unknown_event(self, event_service):
        with pytest.raises(EventNotFoundError):
            event_service.get_event(uuid4())


class TestCloseEvent:
    def test_close_active_event_early(self, event_service, active_event, clock, captured_logs):
        original_end = active_event.end_date
        info = event_service.close_event(active_event.id, confirm=True)

        assert info.state == EventState.CLOSED
        assert active_event.closed_at == clock.now()
        assert info.end_date == clock.now()
        assert info.end_date < original_end
        assert event_service.display_status(active_event.id) == EventDisplayStatus.CLOSED

        closed = [r for r in captured_logs() if r["message"] == "event_closed"]
        assert closed[0]["event_id"] == str(active_event.id)

    def test_close_after_end_keeps_end_date(self, event_service, active_event, clock):
        original_end = active_event.end_date
        clock.set_time(original_end + timedelta(hours=3))
        info = event_service.close_event(active_event.id, confirm=True)
        assert info.end_date == original_end

    def test_confirmation_required(self, event_service, active_event):
        with pytest.raises(ValidationError) as exc_info:
            event_service.close_event(active_event.id)
        assert exc_info.value.field == "confirm"
        assert event_service.effective_state(active_event.id) == EventState.ACTIVE

    def test_scheduled_event_cannot_be_closed(self, event_service, scheduled_event):
        with pytest.raises(EventNotActiveError):
            event_service.close_event(scheduled_event.id, confirm=True)

    def test_second_close_is_a_conflict(self, event_service, active_event):
        event_service.close_event(active_event.id, confirm=True)
        with pytest.raises(ConflictError) as exc_info:
            event_service.close_event(active_event.id, confirm=True)
        assert isinstance(exc_info.value, EventAlreadyClosedError)

    def test_unknown_event(self, event_service):
        with pytest.raises(EventNotFoundError):
            event_service.close_event(uuid4(), confirm=True)
