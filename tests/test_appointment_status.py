import pytest

from app.domain.appointments.status import (
    FINAL_STATUSES,
    TRANSITIONS,
    AppointmentStatus,
    can_transition,
    validate_transition,
)
from app.shared.errors import InvalidTransitionError

S = AppointmentStatus

ALLOWED = {
    (S.PENDING, S.PRICE_PROPOSED),
    (S.PENDING, S.REJECTED),
    (S.PENDING, S.CANCELLED_BY_CLIENT),
    (S.PRICE_PROPOSED, S.CONFIRMED),
    (S.PRICE_PROPOSED, S.CANCELLED),
    (S.PRICE_PROPOSED, S.CANCELLED_BY_CLIENT),
    (S.CONFIRMED, S.CANCELLED_BY_CLIENT),
}


@pytest.mark.parametrize("current", list(S))
@pytest.mark.parametrize("new", list(S))
def test_transition_table(current, new):
    assert can_transition(current.value, new.value) == ((current, new) in ALLOWED)


def test_final_statuses_have_no_exits():
    assert FINAL_STATUSES == {S.REJECTED, S.CANCELLED, S.CANCELLED_BY_CLIENT}
    for status in FINAL_STATUSES:
        assert TRANSITIONS[status] == frozenset()


def test_validate_transition_returns_target():
    assert validate_transition("pending", S.PRICE_PROPOSED) is S.PRICE_PROPOSED


def test_invalid_transition_names_both_statuses():
    with pytest.raises(InvalidTransitionError) as exc_info:
        validate_transition("confirmed", S.REJECTED)
    error = exc_info.value
    assert error.status_code == 409
    assert error.current_status == "confirmed"
    assert error.new_status == "rejected"
    assert "confirmed" in error.message and "rejected" in error.message


def test_unknown_current_status_is_rejected():
    assert not can_transition("archived", "confirmed")
