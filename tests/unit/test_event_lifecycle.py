"""Effective state, display status and the mutation gate."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from fair_kernel.domain.enums import EventDisplayStatus, EventOperation, EventState
from fair_kernel.domain.event_lifecycle import (
    assert_can_mutate,
    display_status,
    effective_state,
)
from fair_kernel.domain.policy import LedgerPolicy
from fair_kernel.exceptions import (
    ConflictError,
    EventClosedError,
    EventNotActiveError,
    EventNotEditableError,
)

START = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)
END = datetime(2024, 6, 1, 18, 0, tzinfo=timezone.utc)

BEFORE = START - timedelta(hours=1)
DURING = START + timedelta(hours=1)
AFTER = END + timedelta(hours=1)


@dataclass
class FakeEvent:
    id: UUID
    state: str
    start_date: datetime = START
    end_date: datetime = END


def _event(state=EventState.SCHEDULED):
    return FakeEvent(id=uuid4(), state=state)


class TestEffectiveState:
    def test_scheduled_before_start(self):
        assert effective_state(_event(), BEFORE) == EventState.SCHEDULED

    def test_active_from_start(self):
        assert effective_state(_event(), START) == EventState.ACTIVE
        assert effective_state(_event(), DURING) == EventState.ACTIVE

    def test_active_after_end_until_closed(self):
        assert effective_state(_event(), AFTER) == EventState.ACTIVE

    def test_closed_is_stored(self):
        assert effective_state(_event("CLOSED"), BEFORE) == EventState.CLOSED
        assert effective_state(_event(EventState.CLOSED), DURING) == EventState.CLOSED


class TestDisplayStatus:
    def test_finished_is_display_only(self):
        assert display_status(_event(), AFTER) == EventDisplayStatus.FINISHED
        assert effective_state(_event(), AFTER) == EventState.ACTIVE

    def test_end_instant_is_still_active(self):
        assert display_status(_event(), END) == EventDisplayStatus.ACTIVE

    def test_closed_wins_over_finished(self):
        assert display_status(_event("CLOSED"), AFTER) == EventDisplayStatus.CLOSED


ALLOWED = {
    EventState.SCHEDULED: {
        EventOperation.CREATE_PRODUCT,
        EventOperation.EDIT_PRODUCT,
        EventOperation.DELETE_PRODUCT,
        EventOperation.MANUAL_MOVEMENT,
    },
    EventState.ACTIVE: {
        EventOperation.CREATE_PRODUCT,
        EventOperation.RECORD_SALE,
        EventOperation.RECORD_EXCHANGE,
        EventOperation.MANUAL_MOVEMENT,
    },
}


class TestAssertCanMutate:
    @pytest.mark.parametrize("operation", list(EventOperation))
    def test_closed_rejects_everything(self, operation):
        with pytest.raises(EventClosedError) as exc_info:
            assert_can_mutate(_event("CLOSED"), operation, DURING)
        assert isinstance(exc_info.value, ConflictError)
        assert exc_info.value.operation == operation.value

    @pytest.mark.parametrize("operation", list(EventOperation))
    def test_scheduled_gate(self, operation):
        event = _event()
        if operation in ALLOWED[EventState.SCHEDULED]:
            assert assert_can_mutate(event, operation, BEFORE) == EventState.SCHEDULED
        else:
            with pytest.raises(EventNotActiveError):
                assert_can_mutate(event, operation, BEFORE)

    @pytest.mark.parametrize("operation", list(EventOperation))
    def test_active_gate(self, operation):
        event = _event()
        if operation in ALLOWED[EventState.ACTIVE]:
            assert assert_can_mutate(event, operation, DURING) == EventState.ACTIVE
        else:
            with pytest.raises(EventNotEditableError):
                assert_can_mutate(event, operation, DURING)

    def test_sales_after_end_allowed_by_default(self):
        assert assert_can_mutate(_event(), EventOperation.RECORD_SALE, AFTER) == EventState.ACTIVE

    @pytest.mark.parametrize(
        "operation", [EventOperation.RECORD_SALE, EventOperation.RECORD_EXCHANGE]
    )
    def test_sales_after_end_blocked_by_policy(self, operation):
        policy = LedgerPolicy(block_sales_after_end_date=True)
        with pytest.raises(EventNotActiveError) as exc_info:
            assert_can_mutate(_event(), operation, AFTER, policy)
        assert exc_info.value.state == "FINISHED"

    def test_policy_does_not_block_before_end(self):
        policy = LedgerPolicy(block_sales_after_end_date=True)
        assert_can_mutate(_event(), EventOperation.RECORD_SALE, DURING, policy)

    def test_rejection_logged(self, captured_logs):
        with pytest.raises(EventClosedError):
            assert_can_mutate(_event("CLOSED"), EventOperation.RECORD_SALE, DURING)
        rejected = [r for r in captured_logs() if r["message"] == "event_mutation_rejected"]
        assert rejected
        assert rejected[0]["level"] == "WARNING"
        assert rejected[0]["operation"] == "record_sale"
        assert rejected[0]["state"] == "CLOSED"
