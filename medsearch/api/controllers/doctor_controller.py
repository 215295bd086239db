from flask import request, jsonify, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from medsearch.extensions import db
from medsearch.models.user_models import User, DoctorProfile
from medsearch.models.specialty_models import Specialty
from medsearch.models.review_models import Review
from medsearch.domain.doctor_search import DoctorCard, DoctorFilters, search_doctors, paginate
from medsearch.domain.errors import ValidationError
from medsearch.domain.roles import has_permission
from medsearch.utils.decorators import get_current_user
from medsearch.utils.validators import clean_id, validate_doctor_payload, validate_availability


def _float_arg(name):
    value = request.args.get(name)
    if value is None or value.strip() == '':
        return None
    try:
        return float(value)
    except ValueError:
        raise ValidationError(f"{name} must be a number")


def _int_arg(name, default):
    value = request.args.get(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def _optional_caller():
    """The authenticated caller on a public route, or None."""
    verify_jwt_in_request(optional=True)
    if get_jwt_identity() is None:
        return None
    return get_current_user()


def _can_moderate(user):
    return user is not None and has_permission(user.role, 'moderate_doctors')


def _resolve_specialties(specialty_ids):
    if not isinstance(specialty_ids, list):
        raise ValidationError('specialtyIds must be a list')
    specialty_ids = [clean_id(sid, 'specialtyIds') for sid in specialty_ids]
    specialties = Specialty.query.filter(Specialty.id.in_(specialty_ids)).all() if specialty_ids else []
    found = {s.id for s in specialties}
    unknown = [sid for sid in specialty_ids if sid not in found]
    if unknown:
        raise ValidationError('Unknown specialties', details={'specialtyIds': unknown})
    return specialties


def search_doctors_route():
    """Public doctor search with filters, sorting and pagination."""
    status = request.args.get('status', 'verified')
    if status != 'verified' and not _can_moderate(_optional_caller()):
        return jsonify({'error': 'Permission denied'}), 403

    query = DoctorProfile.query
    if status != 'all':
        if status not in DoctorProfile.STATUSES:
            raise ValidationError(f"Invalid status '{status}'", details={'allowed': list(DoctorProfile.STATUSES)})
        query = query.filter_by(status=status)

    filters = DoctorFilters(
        specialty=request.args.get('specialty') or None,
        min_rating=_float_arg('minRating') or 0,
        max_price=_float_arg('maxFee'),
    )
    cards = [DoctorCard.from_profile(profile) for profile in query.order_by(DoctorProfile.id).all()]
    results = search_doctors(
        cards,
        query=request.args.get('q', ''),
        location=request.args.get('city', ''),
        filters=filters,
        sort_by=request.args.get('sortBy') or None,
        sort_order=request.args.get('sortOrder') or None,
    )

    limit = min(_int_arg('limit', current_app.config['DEFAULT_PAGE_LIMIT']), current_app.config['MAX_PAGE_LIMIT'])
    page_items, pagination = paginate(results, _int_arg('page', 1), limit)

    return jsonify({
        'doctors': [card.extra['profile'].to_dict() for card in page_items],
        'pagination': pagination
    }), 200


def get_doctor(doctor_id):
    doctor = db.session.get(DoctorProfile, doctor_id)
    if not doctor:
        return jsonify({'error': 'Doctor not found'}), 404

    if doctor.status != 'verified':
        caller = _optional_caller()
        if not (_can_moderate(caller) or (caller and caller.id == doctor.user_id)):
            return jsonify({'error': 'Doctor not found'}), 404

    recent_reviews = doctor.reviews.filter(Review.status == 'approved', Review.is_flagged.is_(False)) \
        .order_by(Review.created_at.desc()).limit(5).all()
    return jsonify({
        'doctor': doctor.to_dict(),
        'recentReviews': [review.to_dict() for review in recent_reviews]
    }), 200


def create_doctor():
    data = request.get_json(silent=True) or {}
    fields = validate_doctor_payload(data)

    if DoctorProfile.query.filter_by(license_number=fields['license_number']).first():
        return jsonify({'error': 'License number already registered'}), 409

    user_id = data.get('userId')
    if user_id:
        user = db.session.get(User, str(user_id))
        if not user:
            return jsonify({'error': 'User not found'}), 404
        if user.doctor_profile:
            return jsonify({'error': 'User already has a doctor profile'}), 409

    doctor = DoctorProfile(user_id=str(user_id) if user_id else None, **fields)
    doctor.specialties = _resolve_specialties(data.get('specialtyIds', []))

    try:
        db.session.add(doctor)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'License number already registered'}), 409

    return jsonify({'message': 'Doctor created successfully', 'doctor': doctor.to_dict()}), 201


def update_doctor(doctor_id):
    doctor = db.session.get(DoctorProfile, doctor_id)
    if not doctor:
        return jsonify({'error': 'Doctor not found'}), 404

    user = get_current_user()
    is_owner = doctor.user_id == user.id and has_permission(user.role, 'manage_own_profile')
    if not (_can_moderate(user) or is_owner):
        return jsonify({'error': 'Permission denied'}), 403

    data = request.get_json(silent=True) or {}
    fields = validate_doctor_payload(data, partial=True)

    license_number = fields.get('license_number')
    if license_number and license_number != doctor.license_number:
        if DoctorProfile.query.filter_by(license_number=license_number).first():
            return jsonify({'error': 'License number already registered'}), 409

    for key, value in fields.items():
        setattr(doctor, key, value)
    if 'specialtyIds' in data:
        doctor.specialties = _resolve_specialties(data['specialtyIds'])

    db.session.commit()
    return jsonify({'message': 'Doctor updated successfully', 'doctor': doctor.to_dict()}), 200


def update_doctor_status(doctor_id):
    doctor = db.session.get(DoctorProfile, doctor_id)
    if not doctor:
        return jsonify({'error': 'Doctor not found'}), 404

    data = request.get_json(silent=True) or {}
    status = data.get('status')
    if status not in DoctorProfile.STATUSES:
        raise ValidationError(f"Invalid status '{status}'", details={'allowed': list(DoctorProfile.STATUSES)})

    previous = doctor.status
    doctor.status = status
    db.session.commit()
    current_app.audit_logger.info(
        f"Doctor {doctor.id} status {previous} -> {status} by {get_jwt_identity()} reason='{data.get('reason', '')}'"
    )
    return jsonify({'message': 'Doctor status updated', 'doctor': doctor.to_dict()}), 200


def update_own_availability():
    user = get_current_user()
    doctor = user.doctor_profile
    if not doctor:
        return jsonify({'error': 'Doctor profile not found'}), 404

    data = request.get_json(silent=True) or {}
    doctor.availability = validate_availability(data.get('availability'))
    if 'isAvailableForEmergency' in data:
        doctor.is_available_for_emergency = bool(data['isAvailableForEmergency'])

    db.session.commit()
    return jsonify({'message': 'Availability updated', 'availability': doctor.availability}), 200


def get_doctor_stats():
    counts = dict(
        db.session.query(DoctorProfile.status, func.count(DoctorProfile.id))
        .group_by(DoctorProfile.status)
        .all()
    )
    by_status = {status: counts.get(status, 0) for status in DoctorProfile.STATUSES}
    average = db.session.query(func.avg(DoctorProfile.rating_average)) \
        .filter(DoctorProfile.rating_count > 0).scalar()

    return jsonify({
        'total': sum(by_status.values()),
        'byStatus': by_status,
        'pendingVerification': by_status['pending_verification'],
        'averageRating': round(float(average), 2) if average is not None else 0.0
    }), 200
