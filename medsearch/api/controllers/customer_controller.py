from flask import request, jsonify
from medsearch.extensions import db
from medsearch.models.user_models import CustomerProfile, DoctorProfile
from medsearch.domain.clinical_record import check_version
from medsearch.domain.profile_completeness import account_status, calculate_age, missing_fields, profile_completeness
from medsearch.utils.decorators import get_current_user
from medsearch.utils.validators import clean_id, validate_customer_update

SCALAR_FIELDS = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'dateOfBirth': 'date_of_birth',
    'gender': 'gender',
}


def _profile_response(profile, message=None, status=200):
    data = profile.to_dict()
    payload = {
        'profile': data,
        'completeness': profile_completeness(data),
        'missingFields': missing_fields(data),
        'accountStatus': account_status(data),
        'age': calculate_age(data.get('dateOfBirth')),
    }
    if message:
        payload['message'] = message
    response = jsonify(payload)
    response.status_code = status
    response.headers['ETag'] = f'"{profile.version}"'
    return response


def get_customer_profile():
    user = get_current_user()
    profile = CustomerProfile.for_user(user)
    db.session.commit()
    return _profile_response(profile)


def update_customer_profile():
    """Field-level merge of the caller's profile; nested objects merge per key."""
    user = get_current_user()
    profile = CustomerProfile.for_user(user)

    data = request.get_json(silent=True) or {}
    update = validate_customer_update(data)
    check_version(profile.version, request.headers.get('If-Match') or data.get('version'))

    for key, column in SCALAR_FIELDS.items():
        if key in update:
            setattr(profile, column, update[key])
    if 'phoneNumber' in update:
        profile.set_phone_number(update['phoneNumber'])
    if 'address' in update:
        profile.address = {**(profile.address or {}), **update['address']}
    if 'emergencyContact' in update:
        profile.set_emergency_contact({**profile.get_emergency_contact(), **update['emergencyContact']})
    if 'medicalInfo' in update:
        profile.set_medical_info({**profile.get_medical_info(), **update['medicalInfo']})
    if 'notificationPreferences' in update:
        profile.notification_preferences = {**(profile.notification_preferences or {}), **update['notificationPreferences']}

    profile.version += 1
    db.session.commit()
    return _profile_response(profile, message='Profile updated successfully')


def get_favorites():
    user = get_current_user()
    profile = user.customer_profile
    doctors = profile.favorites.order_by(DoctorProfile.last_name).all() if profile else []
    return jsonify({'favorites': [doctor.to_dict() for doctor in doctors]}), 200


def add_favorite():
    user = get_current_user()
    data = request.get_json(silent=True) or {}

    doctor_id = data.get('doctorId')
    doctor = db.session.get(DoctorProfile, clean_id(doctor_id, 'doctorId')) if doctor_id is not None else None
    if not doctor or doctor.status != 'verified':
        return jsonify({'error': 'Doctor not found'}), 404

    profile = CustomerProfile.for_user(user)
    if profile.favorites.filter(DoctorProfile.id == doctor.id).first() is None:
        profile.favorites.append(doctor)
    db.session.commit()
    return jsonify({'message': 'Doctor added to favorites', 'doctorId': doctor.id}), 201


def remove_favorite(doctor_id):
    user = get_current_user()
    profile = user.customer_profile
    doctor = profile.favorites.filter(DoctorProfile.id == doctor_id).first() if profile else None
    if not doctor:
        return jsonify({'error': 'Doctor is not in your favorites'}), 404

    profile.favorites.remove(doctor)
    db.session.commit()
    return jsonify({'message': 'Doctor removed from favorites', 'doctorId': doctor_id}), 200


def get_customer_count():
    total = CustomerProfile.query.count()
    active = CustomerProfile.query.filter_by(is_active=True).count()
    return jsonify({'total': total, 'active': active, 'inactive': total - active}), 200
