from datetime import date, datetime, timedelta, timezone

import pytest

from medsearch.domain.appointment_status import (
    APPOINTMENT_STATUSES, TRANSITIONS, can_transition, filter_by_status, filter_upcoming, is_final,
    is_upcoming, relative_day_label, status_counts, validate_transition,
)
from medsearch.domain.errors import InvalidTransitionError, ValidationError

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _appt(status, days=1):
    return {'status': status, 'scheduledDate': (NOW + timedelta(days=days)).isoformat()}


def test_happy_path_transitions():
    path = ['pending', 'confirmed', 'in_progress', 'completed']
    for current, target in zip(path, path[1:]):
        assert can_transition(current, target)


def test_terminal_states_have_no_exits():
    for status in ('completed', 'cancelled', 'no_show', 'rescheduled'):
        assert TRANSITIONS[status] == frozenset()
        assert is_final(status)
    assert not is_final('pending')


def test_same_state_is_allowed():
    assert can_transition('completed', 'completed')


def test_backwards_transition_rejected_when_strict():
    with pytest.raises(InvalidTransitionError) as exc:
        validate_transition('completed', 'pending')
    assert exc.value.status_code == 409


def test_permissive_mode_accepts_any_known_status():
    assert validate_transition('completed', 'pending', strict=False) == 'pending'


def test_unknown_status_rejected_even_when_permissive():
    with pytest.raises(ValidationError):
        validate_transition('pending', 'archived', strict=False)


def test_in_progress_only_completes():
    assert can_transition('in_progress', 'completed')
    assert not can_transition('in_progress', 'cancelled')


def test_is_upcoming_excludes_cancelled_and_completed():
    assert is_upcoming(_appt('confirmed'), NOW)
    assert is_upcoming(_appt('no_show'), NOW)
    assert not is_upcoming(_appt('cancelled'), NOW)
    assert not is_upcoming(_appt('completed'), NOW)
    assert not is_upcoming(_appt('pending', days=-1), NOW)


def test_scheduled_exactly_now_is_upcoming():
    assert is_upcoming({'status': 'pending', 'scheduledDate': NOW}, NOW)


def test_filter_upcoming_preserves_order():
    appts = [_appt('pending', 3), _appt('cancelled', 1), _appt('confirmed', 2)]
    assert filter_upcoming(appts, NOW) == [appts[0], appts[2]]


def test_filter_by_status_all_returns_everything():
    appts = [_appt('pending'), _appt('completed')]
    assert filter_by_status(appts, 'all') == appts
    assert filter_by_status(appts, 'completed') == [appts[1]]
    assert filter_by_status([], 'pending') == []


def test_status_counts_covers_every_status():
    counts = status_counts([_appt('pending'), _appt('pending'), _appt('completed')])
    assert set(counts) == set(APPOINTMENT_STATUSES)
    assert counts['pending'] == 2
    assert counts['completed'] == 1
    assert counts['cancelled'] == 0


@pytest.mark.parametrize('offset,label', [
    (0, 'Hoy'),
    (1, 'Mañana'),
    (-1, 'Ayer'),
    (5, 'En 5 días'),
    (-3, 'Hace 3 días'),
])
def test_relative_day_label(offset, label):
    assert relative_day_label(NOW + timedelta(days=offset), NOW) == label


def test_relative_day_label_accepts_dates():
    assert relative_day_label(date(2026, 3, 11), date(2026, 3, 10)) == 'Mañana'
