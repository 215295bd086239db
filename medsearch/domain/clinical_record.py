# /medsearch/domain/clinical_record.py
"""Field-level merging of clinical edits into an appointment record.

Records are plain dicts keyed the way the API exposes them (``vitalSigns``,
``followUpDate``...). Nothing here touches the database; the appointment
controller loads the record, merges, and writes the result back.
"""
import copy
import logging
from datetime import datetime

from medsearch.domain.appointment_status import APPOINTMENT_TYPES, validate_transition
from medsearch.domain.errors import StaleEditError, ValidationError

logger = logging.getLogger(__name__)

VITAL_SIGN_FIELDS = ('bloodPressure', 'heartRate', 'temperature', 'weight', 'height')
PRESCRIPTION_FIELDS = ('medication', 'dosage', 'frequency', 'duration', 'notes')
TEXT_FIELDS = ('reasonForVisit', 'diagnosis', 'doctorNotes', 'patientNotes')

EDITABLE_FIELDS = frozenset(
    TEXT_FIELDS + (
        'status',
        'appointmentType',
        'vitalSigns',
        'prescriptions',
        'followUpRequired',
        'followUpDate',
    )
)

DOCTOR_EDITABLE_FIELDS = frozenset({
    'status',
    'diagnosis',
    'doctorNotes',
    'vitalSigns',
    'prescriptions',
    'followUpRequired',
    'followUpDate',
})
CUSTOMER_EDITABLE_FIELDS = frozenset({'patientNotes'})

# Keyed by the caller's relation to the appointment
EDITABLE_FIELDS_BY_RELATION = {
    'admin': EDITABLE_FIELDS,
    'doctor': DOCTOR_EDITABLE_FIELDS,
    'customer': CUSTOMER_EDITABLE_FIELDS,
}


def blank_prescription():
    return {name: '' for name in PRESCRIPTION_FIELDS}


def normalize_prescription(prescription, index=None):
    if not isinstance(prescription, dict):
        raise ValidationError('Each prescription must be an object', details={'index': index})
    unknown = set(prescription) - set(PRESCRIPTION_FIELDS)
    if unknown:
        raise ValidationError(
            'Unknown prescription fields',
            details={'index': index, 'fields': sorted(unknown)},
        )
    normalized = blank_prescription()
    for name in PRESCRIPTION_FIELDS:
        value = prescription.get(name)
        normalized[name] = '' if value is None else str(value).strip()
    if not normalized['medication']:
        raise ValidationError('Prescription medication is required', details={'index': index})
    return normalized


def add_prescription(prescriptions, prescription=None):
    """Returns a new list with ``prescription`` (or a blank entry) appended."""
    entry = blank_prescription()
    if prescription:
        entry.update(normalize_prescription(prescription, index=len(prescriptions or [])))
    return [dict(p) for p in (prescriptions or [])] + [entry]


def _check_index(prescriptions, index):
    if not isinstance(index, int) or index < 0 or index >= len(prescriptions):
        raise ValidationError(f'Prescription index {index} out of range')


def update_prescription(prescriptions, index, field, value):
    prescriptions = prescriptions or []
    _check_index(prescriptions, index)
    if field not in PRESCRIPTION_FIELDS:
        raise ValidationError(f"Unknown prescription field '{field}'")
    return [
        {**p, field: value} if i == index else dict(p)
        for i, p in enumerate(prescriptions)
    ]


def remove_prescription(prescriptions, index):
    prescriptions = prescriptions or []
    _check_index(prescriptions, index)
    return [dict(p) for i, p in enumerate(prescriptions) if i != index]


def merge_vital_signs(existing, update):
    if update is None:
        return dict(existing or {})
    if not isinstance(update, dict):
        raise ValidationError('vitalSigns must be an object')
    unknown = set(update) - set(VITAL_SIGN_FIELDS)
    if unknown:
        raise ValidationError('Unknown vital sign fields', details={'fields': sorted(unknown)})

    merged = dict(existing or {})
    for name, value in update.items():
        if value is None or value == '':
            merged.pop(name, None)
        else:
            merged[name] = value
    return merged


def parse_datetime(value, field_name):
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f'{field_name} must be an ISO-8601 date')


def check_version(current, supplied):
    """Rejects an edit made against an older version of the record."""
    if supplied is None or supplied == '':
        return
    try:
        supplied = int(str(supplied).strip('"'))
    except ValueError:
        raise ValidationError('version must be an integer')
    if supplied != current:
        raise StaleEditError(
            'This record was changed by someone else. Reload it and try again.',
            details={'currentVersion': current, 'suppliedVersion': supplied},
        )


def merge_clinical_update(existing, update, strict_transitions=True, allowed_fields=EDITABLE_FIELDS):
    """Merges a partial clinical update into ``existing`` and returns a new record.

    ``allowed_fields`` narrows what the caller may touch; anything outside it
    is rejected rather than ignored.
    """
    if not isinstance(update, dict):
        raise ValidationError('Update payload must be an object')
    unknown = set(update) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError('Fields cannot be edited', details={'fields': sorted(unknown)})
    forbidden = set(update) - set(allowed_fields)
    if forbidden:
        raise ValidationError('Fields cannot be edited by this user', details={'fields': sorted(forbidden)})

    merged = copy.deepcopy(existing)

    if 'status' in update:
        merged['status'] = validate_transition(existing.get('status'), update['status'], strict=strict_transitions)

    if 'appointmentType' in update:
        if update['appointmentType'] not in APPOINTMENT_TYPES:
            raise ValidationError(
                f"Invalid appointmentType '{update['appointmentType']}'",
                details={'allowed': list(APPOINTMENT_TYPES)},
            )
        merged['appointmentType'] = update['appointmentType']

    for name in TEXT_FIELDS:
        if name in update:
            value = update[name]
            if value is not None and not isinstance(value, str):
                raise ValidationError(f'{name} must be a string')
            merged[name] = value.strip() if value is not None else None

    if 'vitalSigns' in update:
        merged['vitalSigns'] = merge_vital_signs(existing.get('vitalSigns'), update['vitalSigns'])

    if 'prescriptions' in update:
        prescriptions = update['prescriptions'] or []
        if not isinstance(prescriptions, list):
            raise ValidationError('prescriptions must be a list')
        merged['prescriptions'] = [normalize_prescription(p, index=i) for i, p in enumerate(prescriptions)]

    if 'followUpRequired' in update:
        merged['followUpRequired'] = bool(update['followUpRequired'])
    if 'followUpDate' in update:
        merged['followUpDate'] = parse_datetime(update['followUpDate'], 'followUpDate')

    if not merged.get('followUpRequired'):
        if merged.get('followUpDate') is not None:
            logger.debug('Clearing followUpDate because followUpRequired is false')
        merged['followUpDate'] = None
    elif merged.get('followUpDate') is None:
        raise ValidationError('followUpDate is required when followUpRequired is set')

    return merged
