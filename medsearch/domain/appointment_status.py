# /medsearch/domain/appointment_status.py
"""Appointment lifecycle: statuses, allowed transitions and list filters.

pending -> confirmed -> in_progress -> completed, with side exits to
cancelled, no_show and rescheduled. ``rescheduled`` ends the record; the
replacement appointment carries the booking forward.
"""
from datetime import date, datetime, timezone

from medsearch.domain.errors import InvalidTransitionError, ValidationError

PENDING = 'pending'
CONFIRMED = 'confirmed'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'
CANCELLED = 'cancelled'
NO_SHOW = 'no_show'
RESCHEDULED = 'rescheduled'

APPOINTMENT_STATUSES = (
    PENDING,
    CONFIRMED,
    IN_PROGRESS,
    COMPLETED,
    CANCELLED,
    NO_SHOW,
    RESCHEDULED,
)

APPOINTMENT_TYPES = (
    'consultation',
    'follow_up',
    'emergency',
    'preventive',
    'procedure',
    'telemedicine',
)

TRANSITIONS = {
    PENDING: frozenset({CONFIRMED, CANCELLED, RESCHEDULED}),
    CONFIRMED: frozenset({IN_PROGRESS, CANCELLED, NO_SHOW, RESCHEDULED}),
    IN_PROGRESS: frozenset({COMPLETED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
    NO_SHOW: frozenset(),
    RESCHEDULED: frozenset(),
}

TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED, NO_SHOW})
SOFT_TERMINAL_STATUSES = frozenset({RESCHEDULED})
# Excluded from the "upcoming" view
NOT_UPCOMING_STATUSES = frozenset({CANCELLED, COMPLETED})

STATUS_LABELS = {
    PENDING: 'Pendiente',
    CONFIRMED: 'Confirmada',
    IN_PROGRESS: 'En Proceso',
    COMPLETED: 'Completada',
    CANCELLED: 'Cancelada',
    NO_SHOW: 'No Asistió',
    RESCHEDULED: 'Reprogramada',
}

ALL = 'all'


def is_valid_status(status) -> bool:
    return status in TRANSITIONS


def is_final(status) -> bool:
    return status in TERMINAL_STATUSES or status in SOFT_TERMINAL_STATUSES


def can_transition(current, target) -> bool:
    if current == target:
        return is_valid_status(current)
    return target in TRANSITIONS.get(current, ())


def validate_transition(current, target, strict=True):
    """Raises unless ``current -> target`` is allowed.

    With ``strict=False`` any known status may be set directly, which is how
    admins overrode statuses before the transition graph was enforced.
    """
    if not is_valid_status(target):
        raise ValidationError(
            f"Invalid status '{target}'",
            details={'allowed': list(APPOINTMENT_STATUSES)},
        )
    if not strict:
        return target
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot change appointment status from '{current}' to '{target}'",
            details={'allowed': sorted(TRANSITIONS.get(current, ()))},
        )
    return target


def _get(appointment, attr, key):
    if isinstance(appointment, dict):
        return appointment.get(key, appointment.get(attr))
    return getattr(appointment, attr)


def _as_aware(value):
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_upcoming(appointment, now=None) -> bool:
    now = _as_aware(now or datetime.now(timezone.utc))
    scheduled = _as_aware(_get(appointment, 'scheduled_date', 'scheduledDate'))
    status = _get(appointment, 'status', 'status')
    return scheduled >= now and status not in NOT_UPCOMING_STATUSES


def filter_upcoming(appointments, now=None):
    now = now or datetime.now(timezone.utc)
    return [a for a in appointments if is_upcoming(a, now)]


def filter_by_status(appointments, status=ALL):
    if not status or status == ALL:
        return list(appointments)
    return [a for a in appointments if _get(a, 'status', 'status') == status]


def status_counts(appointments):
    counts = {status: 0 for status in APPOINTMENT_STATUSES}
    for appointment in appointments:
        status = _get(appointment, 'status', 'status')
        if status in counts:
            counts[status] += 1
    return counts


def relative_day_label(scheduled, now=None) -> str:
    """Spanish day label relative to today: Hoy, Mañana, Ayer, En N días..."""
    now = now or datetime.now(timezone.utc)
    scheduled_day = scheduled.date() if isinstance(scheduled, datetime) else scheduled
    today = now.date() if isinstance(now, datetime) else now
    if not isinstance(scheduled_day, date):
        raise ValidationError('scheduled must be a date or datetime')

    days = (scheduled_day - today).days
    if days == 0:
        return 'Hoy'
    if days == 1:
        return 'Mañana'
    if days == -1:
        return 'Ayer'
    if days > 0:
        return f'En {days} días'
    return f'Hace {abs(days)} días'
