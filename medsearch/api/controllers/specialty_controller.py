from flask import request, jsonify
from sqlalchemy.exc import IntegrityError
from medsearch.extensions import db
from medsearch.models.specialty_models import Specialty
from medsearch.utils.validators import validate_specialty_payload


def get_specialties():
    """Lists specialties by priority (highest first), then name."""
    query = Specialty.query
    active = request.args.get('active')
    if active is not None:
        query = query.filter_by(is_active=active.lower() in ('1', 'true', 'yes'))

    specialties = query.order_by(Specialty.priority.desc(), Specialty.name.asc()).all()
    return jsonify({'specialties': [s.to_dict() for s in specialties]}), 200


def create_specialty():
    fields = validate_specialty_payload(request.get_json(silent=True) or {})
    if Specialty.query.filter_by(name=fields['name']).first():
        return jsonify({'error': f"Specialty '{fields['name']}' already exists"}), 409

    specialty = Specialty(**fields)
    try:
        db.session.add(specialty)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': f"Specialty '{fields['name']}' already exists"}), 409

    return jsonify({'message': 'Specialty created successfully', 'specialty': specialty.to_dict()}), 201


def update_specialty(specialty_id):
    specialty = db.session.get(Specialty, specialty_id)
    if not specialty:
        return jsonify({'error': 'Specialty not found'}), 404

    fields = validate_specialty_payload(request.get_json(silent=True) or {}, partial=True)
    name = fields.get('name')
    if name and name != specialty.name and Specialty.query.filter_by(name=name).first():
        return jsonify({'error': f"Specialty '{name}' already exists"}), 409

    for key, value in fields.items():
        setattr(specialty, key, value)
    db.session.commit()
    return jsonify({'message': 'Specialty updated successfully', 'specialty': specialty.to_dict()}), 200
