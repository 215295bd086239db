from datetime import datetime, timezone

import pytest

from medsearch.domain.clinical_record import (
    CUSTOMER_EDITABLE_FIELDS, DOCTOR_EDITABLE_FIELDS, add_prescription, check_version, merge_clinical_update, merge_vital_signs, remove_prescription,
    update_prescription,
)
from medsearch.domain.errors import InvalidTransitionError, StaleEditError, ValidationError


@pytest.fixture
def record():
    return {
        'status': 'confirmed',
        'appointmentType': 'consultation',
        'reasonForVisit': 'Dolor de pecho',
        'diagnosis': None,
        'doctorNotes': None,
        'patientNotes': 'Llego tarde',
        'vitalSigns': {'bloodPressure': '120/80', 'heartRate': 72},
        'prescriptions': [],
        'followUpRequired': False,
        'followUpDate': None,
    }


def test_untouched_fields_survive(record):
    merged = merge_clinical_update(record, {'diagnosis': 'Ansiedad'})
    assert merged['diagnosis'] == 'Ansiedad'
    assert merged['reasonForVisit'] == 'Dolor de pecho'
    assert merged['vitalSigns'] == {'bloodPressure': '120/80', 'heartRate': 72}


def test_existing_record_is_not_mutated(record):
    merge_clinical_update(record, {'vitalSigns': {'temperature': 37.2}, 'diagnosis': 'x'})
    assert record['vitalSigns'] == {'bloodPressure': '120/80', 'heartRate': 72}
    assert record['diagnosis'] is None


def test_vital_signs_merge_per_key(record):
    merged = merge_clinical_update(record, {'vitalSigns': {'temperature': 37.2, 'heartRate': 80}})
    assert merged['vitalSigns'] == {'bloodPressure': '120/80', 'heartRate': 80, 'temperature': 37.2}


def test_vital_sign_cleared_with_null():
    assert merge_vital_signs({'weight': 70, 'height': 175}, {'weight': None}) == {'height': 175}


def test_unknown_vital_sign_rejected(record):
    with pytest.raises(ValidationError):
        merge_clinical_update(record, {'vitalSigns': {'spo2': 98}})


def test_unknown_top_level_field_rejected(record):
    with pytest.raises(ValidationError) as exc:
        merge_clinical_update(record, {'doctorId': 5})
    assert exc.value.details == {'fields': ['doctorId']}


def test_status_goes_through_transition_rules(record):
    assert merge_clinical_update(record, {'status': 'in_progress'})['status'] == 'in_progress'
    with pytest.raises(InvalidTransitionError):
        merge_clinical_update(record, {'status': 'pending'})


def test_permissive_status_update(record):
    merged = merge_clinical_update(record, {'status': 'pending'}, strict_transitions=False)
    assert merged['status'] == 'pending'


def test_invalid_appointment_type(record):
    with pytest.raises(ValidationError):
        merge_clinical_update(record, {'appointmentType': 'house_call'})


def test_prescriptions_replace_and_normalize(record):
    merged = merge_clinical_update(record, {'prescriptions': [{'medication': ' Ibuprofeno ', 'dosage': '400mg'}]})
    assert merged['prescriptions'] == [{
        'medication': 'Ibuprofeno', 'dosage': '400mg', 'frequency': '', 'duration': '', 'notes': '',
    }]


def test_prescription_without_medication_rejected(record):
    with pytest.raises(ValidationError):
        merge_clinical_update(record, {'prescriptions': [{'dosage': '1 tab'}]})


def test_follow_up_date_cleared_when_not_required(record):
    merged = merge_clinical_update(record, {'followUpDate': '2026-04-01T10:00:00Z'})
    assert merged['followUpDate'] is None


def test_follow_up_date_kept_when_required(record):
    merged = merge_clinical_update(record, {'followUpRequired': True, 'followUpDate': '2026-04-01T10:00:00Z'})
    assert merged['followUpDate'] == datetime(2026, 4, 1, 10, 0, tzinfo=timezone.utc)


def test_turning_off_follow_up_drops_existing_date(record):
    record['followUpRequired'] = True
    record['followUpDate'] = datetime(2026, 4, 1, 10, 0)
    merged = merge_clinical_update(record, {'followUpRequired': False})
    assert merged['followUpDate'] is None


def test_bad_follow_up_date(record):
    with pytest.raises(ValidationError):
        merge_clinical_update(record, {'followUpRequired': True, 'followUpDate': 'next tuesday'})


def test_follow_up_required_needs_a_date(record):
    with pytest.raises(ValidationError):
        merge_clinical_update(record, {'followUpRequired': True})

    record['followUpRequired'] = True
    record['followUpDate'] = datetime(2026, 4, 1, 10, 0)
    with pytest.raises(ValidationError):
        merge_clinical_update(record, {'followUpDate': None})


def test_allowed_fields_narrow_the_edit(record):
    merged = merge_clinical_update(record, {'patientNotes': 'Traigo radiografías'}, allowed_fields=CUSTOMER_EDITABLE_FIELDS)
    assert merged['patientNotes'] == 'Traigo radiografías'

    with pytest.raises(ValidationError) as exc:
        merge_clinical_update(record, {'diagnosis': 'x'}, allowed_fields=CUSTOMER_EDITABLE_FIELDS)
    assert exc.value.details == {'fields': ['diagnosis']}

    with pytest.raises(ValidationError):
        merge_clinical_update(record, {'reasonForVisit': ''}, allowed_fields=DOCTOR_EDITABLE_FIELDS)


def test_text_fields_must_be_strings(record):
    with pytest.raises(ValidationError):
        merge_clinical_update(record, {'diagnosis': 42})
    assert merge_clinical_update(record, {'diagnosis': None})['diagnosis'] is None


def test_prescription_list_helpers():
    prescriptions = add_prescription([])
    assert prescriptions == [{'medication': '', 'dosage': '', 'frequency': '', 'duration': '', 'notes': ''}]

    prescriptions = add_prescription(prescriptions, {'medication': 'Amoxicilina'})
    assert len(prescriptions) == 2
    assert prescriptions[-1]['medication'] == 'Amoxicilina'

    updated = update_prescription(prescriptions, 0, 'medication', 'Paracetamol')
    assert updated[0]['medication'] == 'Paracetamol'
    assert prescriptions[0]['medication'] == ''

    assert remove_prescription(updated, 0) == [prescriptions[1]]


def test_prescription_helpers_validate_index_and_field():
    with pytest.raises(ValidationError):
        update_prescription([], 0, 'medication', 'x')
    with pytest.raises(ValidationError):
        update_prescription(add_prescription([]), 0, 'color', 'red')
    with pytest.raises(ValidationError):
        remove_prescription(add_prescription([]), 3)


def test_check_version():
    check_version(3, None)
    check_version(3, '')
    check_version(3, '"3"')
    check_version(3, 3)
    with pytest.raises(StaleEditError) as exc:
        check_version(4, '"3"')
    assert exc.value.status_code == 409
    with pytest.raises(ValidationError):
        check_version(3, 'abc')
