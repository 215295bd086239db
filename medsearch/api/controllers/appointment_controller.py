from datetime import timedelta
from flask import request, jsonify, current_app
from sqlalchemy import func
from medsearch.extensions import db
from medsearch.models.appointment_models import Appointment
from medsearch.models.user_models import DoctorProfile, CustomerProfile
from medsearch.domain.appointment_status import (
    ALL, APPOINTMENT_STATUSES, APPOINTMENT_TYPES, CANCELLED, NOT_UPCOMING_STATUSES, PENDING, RESCHEDULED,
    STATUS_LABELS,
    filter_by_status, filter_upcoming, is_final, relative_day_label, status_counts, validate_transition,
)
from medsearch.domain.clinical_record import EDITABLE_FIELDS_BY_RELATION, check_version, merge_clinical_update, parse_datetime
from medsearch.domain.doctor_search import display_name, paginate
from medsearch.domain.errors import InvalidTransitionError, ValidationError
from medsearch.domain.roles import has_permission
from medsearch.utils.decorators import get_current_user
from medsearch.utils.time_util import isoformat, to_naive_utc, utcnow
from medsearch.utils.validators import clean_id, clean_text


def _serialize_appointment(appt, now=None):
    """Helper function to format appointment data for API responses."""
    now = now or utcnow()
    doctor = appt.doctor
    customer = appt.customer
    specialties = sorted(doctor.specialties, key=lambda s: -s.priority) if doctor else []
    record = appt.clinical_record()
    record['followUpDate'] = isoformat(record['followUpDate'])

    return {
        'id': appt.id,
        'doctorId': appt.doctor_id,
        'customerId': appt.customer_id,
        'doctor': {
            'id': doctor.id,
            'name': display_name(doctor.first_name, doctor.last_name),
            'specialty': specialties[0].name if specialties else None,
        } if doctor else None,
        'customer': {
            'id': customer.id,
            'name': ' '.join(filter(None, [customer.first_name, customer.last_name])) or None,
        } if customer else None,
        'scheduledDate': isoformat(appt.scheduled_date),
        'dayLabel': relative_day_label(appt.scheduled_date, now),
        'duration': appt.duration,
        'statusLabel': STATUS_LABELS.get(appt.status, appt.status),
        'cancellationReason': appt.cancellation_reason,
        'rescheduledToId': appt.rescheduled_to_id,
        'version': appt.version,
        'createdAt': isoformat(appt.created_at),
        'updatedAt': isoformat(appt.updated_at),
        **record
    }


def _with_etag(payload, appt, status=200):
    response = jsonify(payload)
    response.status_code = status
    response.headers['ETag'] = f'"{appt.version}"'
    return response


def _status_arg(default=ALL):
    status = request.args.get('status', default) or default
    if status != ALL and status not in APPOINTMENT_STATUSES:
        raise ValidationError(f"Invalid status '{status}'", details={'allowed': [ALL, *APPOINTMENT_STATUSES]})
    return status


def _parse_scheduled_date(value):
    scheduled = to_naive_utc(parse_datetime(value, 'scheduledDate'))
    if scheduled is None:
        raise ValidationError('scheduledDate is required')
    if scheduled < utcnow():
        raise ValidationError('scheduledDate must be in the future')
    return scheduled


def _caller_relation(appt, user):
    """'customer', 'doctor' or 'admin' when the caller may see ``appt``, else None."""
    if user.customer_profile and appt.customer_id == user.customer_profile.id:
        return 'customer'
    if user.doctor_profile and appt.doctor_id == user.doctor_profile.id:
        return 'doctor'
    if has_permission(user.role, 'view_all_appointments'):
        return 'admin'
    return None


def create_appointment():
    """Books a pending appointment for the calling customer."""
    user = get_current_user()
    data = request.get_json(silent=True) or {}

    required = ['doctorId', 'scheduledDate']
    missing = [name for name in required if not data.get(name)]
    if missing:
        raise ValidationError('Missing required fields', details={'fields': missing})

    doctor = db.session.get(DoctorProfile, clean_id(data['doctorId'], 'doctorId'))
    if not doctor or doctor.status != 'verified':
        return jsonify({'error': 'Doctor not found or not accepting appointments'}), 404

    appointment_type = data.get('appointmentType', 'consultation')
    if appointment_type not in APPOINTMENT_TYPES:
        raise ValidationError(f"Invalid appointmentType '{appointment_type}'", details={'allowed': list(APPOINTMENT_TYPES)})

    scheduled = _parse_scheduled_date(data['scheduledDate'])
    customer = CustomerProfile.for_user(user)

    new_appointment = Appointment(
        doctor_id=doctor.id,
        customer_id=customer.id,
        scheduled_date=scheduled,
        duration=doctor.consultation_duration or current_app.config['DEFAULT_APPOINTMENT_DURATION'],
        status=PENDING,
        appointment_type=appointment_type,
        reason_for_visit=clean_text(data.get('reasonForVisit'), 'reasonForVisit') or None,
        patient_notes=clean_text(data.get('patientNotes'), 'patientNotes') or None,
    )
    db.session.add(new_appointment)
    db.session.commit()
    return _with_etag({
        'message': 'Appointment created successfully',
        'appointment': _serialize_appointment(new_appointment)
    }, new_appointment, 201)


def get_customer_appointments():
    user = get_current_user()
    view = request.args.get('view', 'upcoming')
    if view not in ('upcoming', ALL):
        raise ValidationError(f"Invalid view '{view}'", details={'allowed': ['upcoming', ALL]})

    profile = user.customer_profile
    appointments = profile.appointments.order_by(Appointment.scheduled_date.asc()).all() if profile else []
    now = utcnow()
    if view == 'upcoming':
        appointments = filter_upcoming(appointments, now)

    return jsonify({
        'appointments': [_serialize_appointment(a, now) for a in appointments],
        'view': view
    }), 200


def get_appointment_history():
    user = get_current_user()
    status = _status_arg()

    profile = user.customer_profile
    appointments = profile.appointments.order_by(Appointment.scheduled_date.desc()).all() if profile else []
    counts = status_counts(appointments)
    appointments = filter_by_status(appointments, status)

    return jsonify({
        'appointments': [_serialize_appointment(a) for a in appointments],
        'counts': counts,
        'status': status
    }), 200


def get_doctor_appointments():
    user = get_current_user()
    doctor = user.doctor_profile
    if not doctor:
        return jsonify({'error': 'Doctor profile not found'}), 404

    status = _status_arg()
    appointments = doctor.appointments.order_by(Appointment.scheduled_date.asc()).all()
    if request.args.get('view') == 'upcoming':
        appointments = filter_upcoming(appointments)
    appointments = filter_by_status(appointments, status)

    return jsonify({'appointments': [_serialize_appointment(a) for a in appointments]}), 200


def get_all_appointments():
    status = _status_arg()
    query = Appointment.query
    if status != ALL:
        query = query.filter_by(status=status)
    if request.args.get('doctorId'):
        query = query.filter_by(doctor_id=request.args.get('doctorId', type=int))
    if request.args.get('customerId'):
        query = query.filter_by(customer_id=request.args.get('customerId', type=int))

    limit = min(request.args.get('limit', current_app.config['DEFAULT_PAGE_LIMIT'], type=int), current_app.config['MAX_PAGE_LIMIT'])
    appointments, pagination = paginate(
        query.order_by(Appointment.scheduled_date.desc()).all(),
        request.args.get('page', 1, type=int),
        limit,
    )
    return jsonify({
        'appointments': [_serialize_appointment(a) for a in appointments],
        'pagination': pagination
    }), 200


def get_appointment_by_id(appointment_id):
    user = get_current_user()
    appointment = db.session.get(Appointment, appointment_id)

    if not appointment or not _caller_relation(appointment, user):
        return jsonify({"error": "Appointment not found or you do not have permission to view it"}), 404

    return _with_etag({'appointment': _serialize_appointment(appointment)}, appointment)


def update_appointment(appointment_id):
    """Applies a partial clinical edit.

    Customers may only edit their own notes and doctors only the clinical
    fields. The caller may send the version it edited either as ``If-Match``
    or as ``version`` in the body; a mismatch is rejected with 409.
    """
    user = get_current_user()
    appointment = db.session.get(Appointment, appointment_id)

    relation = _caller_relation(appointment, user) if appointment else None
    if relation is None:
        return jsonify({"error": "Appointment not found or you do not have permission to edit it"}), 404

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    supplied_version = data.pop('version', None)
    check_version(appointment.version, request.headers.get('If-Match') or supplied_version)

    merged = merge_clinical_update(
        appointment.clinical_record(),
        data,
        strict_transitions=current_app.config['STRICT_STATUS_TRANSITIONS'],
        allowed_fields=EDITABLE_FIELDS_BY_RELATION[relation],
    )
    appointment.apply_clinical_record(merged)
    appointment.version += 1
    db.session.commit()

    return _with_etag({
        'message': 'Appointment updated successfully',
        'appointment': _serialize_appointment(appointment)
    }, appointment)


def cancel_appointment(appointment_id):
    user = get_current_user()
    appointment = db.session.get(Appointment, appointment_id)

    relation = _caller_relation(appointment, user) if appointment else None
    if relation not in ('customer', 'admin'):
        return jsonify({"error": "Appointment not found or you do not have permission to cancel it"}), 404

    data = request.get_json(silent=True) or {}
    check_version(appointment.version, request.headers.get('If-Match') or data.get('version'))
    appointment.status = validate_transition(
        appointment.status, CANCELLED, strict=current_app.config['STRICT_STATUS_TRANSITIONS']
    )
    appointment.cancellation_reason = clean_text(data.get('reason'), 'reason') or None
    appointment.version += 1
    db.session.commit()

    return _with_etag({
        'message': 'Appointment cancelled',
        'appointment': _serialize_appointment(appointment)
    }, appointment)


def reschedule_appointment(appointment_id):
    """Closes the appointment as rescheduled and books its pending replacement."""
    user = get_current_user()
    appointment = db.session.get(Appointment, appointment_id)

    if not appointment or not _caller_relation(appointment, user):
        return jsonify({"error": "Appointment not found or you do not have permission to reschedule it"}), 404

    data = request.get_json(silent=True) or {}
    check_version(appointment.version, request.headers.get('If-Match') or data.get('version'))
    scheduled = _parse_scheduled_date(data.get('scheduledDate'))
    # Closed appointments stay closed even when transitions are lenient
    if is_final(appointment.status):
        raise InvalidTransitionError(f"A '{appointment.status}' appointment cannot be rescheduled")
    validate_transition(appointment.status, RESCHEDULED, strict=current_app.config['STRICT_STATUS_TRANSITIONS'])

    replacement = Appointment(
        doctor_id=appointment.doctor_id,
        customer_id=appointment.customer_id,
        scheduled_date=scheduled,
        duration=appointment.duration,
        status=PENDING,
        appointment_type=appointment.appointment_type,
        reason_for_visit=appointment.reason_for_visit,
        patient_notes=appointment.patient_notes,
    )
    db.session.add(replacement)
    db.session.flush()

    appointment.status = RESCHEDULED
    appointment.rescheduled_to_id = replacement.id
    appointment.version += 1
    db.session.commit()

    return jsonify({
        'message': 'Appointment rescheduled',
        'appointment': _serialize_appointment(replacement),
        'previous': _serialize_appointment(appointment)
    }), 201


def get_appointment_stats():
    counts = dict(
        db.session.query(Appointment.status, func.count(Appointment.id))
        .group_by(Appointment.status)
        .all()
    )
    by_status = {status: counts.get(status, 0) for status in APPOINTMENT_STATUSES}

    now = utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    upcoming = Appointment.query.filter(
        Appointment.scheduled_date >= now,
        Appointment.status.notin_(sorted(NOT_UPCOMING_STATUSES))
    ).count()
    today = Appointment.query.filter(
        Appointment.scheduled_date >= start_of_day,
        Appointment.scheduled_date < start_of_day + timedelta(days=1)
    ).count()

    return jsonify({
        'total': sum(by_status.values()),
        'byStatus': by_status,
        'upcoming': upcoming,
        'today': today
    }), 200
