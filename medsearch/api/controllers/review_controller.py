from flask import request, jsonify, current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from medsearch.extensions import db
from medsearch.models.appointment_models import Appointment
from medsearch.models.review_models import Review
from medsearch.models.user_models import DoctorProfile
from medsearch.domain.appointment_status import COMPLETED
from medsearch.domain.errors import ValidationError
from medsearch.utils.decorators import get_current_user
from medsearch.utils.time_util import utcnow
from medsearch.utils.validators import clean_id, clean_text

APPROVED = 'approved'
REJECTED = 'rejected'


def _counted_reviews():
    return Review.query.filter(Review.status == APPROVED, Review.is_flagged.is_(False))


def _refresh_rating(doctor):
    average, count = db.session.query(func.avg(Review.rating), func.count(Review.id)) \
        .filter(Review.doctor_id == doctor.id, Review.status == APPROVED, Review.is_flagged.is_(False)) \
        .one()
    doctor.rating_average = round(float(average), 2) if average is not None else 0.0
    doctor.rating_count = count


def create_review(doctor_id):
    """One review per completed appointment; the doctor's aggregate is recomputed."""
    user = get_current_user()
    customer = user.customer_profile
    if not customer:
        return jsonify({'error': 'Only customers with a profile can review doctors'}), 403

    doctor = db.session.get(DoctorProfile, doctor_id)
    if not doctor:
        return jsonify({'error': 'Doctor not found'}), 404

    data = request.get_json(silent=True) or {}
    rating = data.get('rating')
    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        raise ValidationError('rating must be an integer between 1 and 5')

    appointment_id = data.get('appointmentId')
    if appointment_id is None:
        raise ValidationError('Missing required fields', details={'fields': ['appointmentId']})
    appointment = db.session.get(Appointment, clean_id(appointment_id, 'appointmentId'))
    if not appointment or appointment.customer_id != customer.id or appointment.doctor_id != doctor.id:
        return jsonify({'error': 'Appointment not found'}), 404
    if appointment.status != COMPLETED:
        raise ValidationError('Only completed appointments can be reviewed')
    if Review.query.filter_by(appointment_id=appointment_id).first():
        return jsonify({'error': 'You already reviewed this appointment'}), 409

    review = Review(
        doctor_id=doctor.id,
        customer_id=customer.id,
        appointment_id=appointment_id,
        rating=rating,
        comment=clean_text(data.get('comment'), 'comment') or None,
        status=APPROVED,
        is_flagged=False,
    )
    try:
        db.session.add(review)
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'You already reviewed this appointment'}), 409

    _refresh_rating(doctor)
    db.session.commit()
    return jsonify({
        'message': 'Review created successfully',
        'review': review.to_dict(),
        'ratings': {'average': doctor.rating_average, 'count': doctor.rating_count}
    }), 201


def respond_to_review(review_id):
    user = get_current_user()
    review = db.session.get(Review, review_id)
    if not review or not user.doctor_profile or review.doctor_id != user.doctor_profile.id:
        return jsonify({'error': 'Review not found'}), 404

    data = request.get_json(silent=True) or {}
    response_text = clean_text(data.get('response'), 'response')
    if not response_text:
        raise ValidationError('response is required')

    review.doctor_response = response_text
    review.responded_at = utcnow()
    db.session.commit()
    return jsonify({'message': 'Response saved', 'review': review.to_dict()}), 200


def flag_review(review_id):
    """Any signed-in user may report an approved review; it stops counting until moderated."""
    user = get_current_user()
    review = db.session.get(Review, review_id)
    if not review:
        return jsonify({'error': 'Review not found'}), 404

    data = request.get_json(silent=True) or {}
    reason = clean_text(data.get('reason'), 'reason')
    if not reason:
        raise ValidationError('Flag reason is required')
    if review.status != APPROVED:
        return jsonify({'error': 'Can only flag approved reviews'}), 403
    if review.is_flagged:
        return jsonify({'error': 'Review is already awaiting moderation'}), 409

    review.is_flagged = True
    review.flag_reason = reason
    review.flagged_by = user.id
    review.flagged_at = utcnow()
    _refresh_rating(review.doctor)
    db.session.commit()
    current_app.audit_logger.info(f"Review {review.id} flagged by {user.id}")
    return jsonify({'message': 'Review flagged successfully', 'review': review.to_dict()}), 200


def _moderate(review_id, status, notes_required):
    review = db.session.get(Review, review_id)
    if not review:
        return jsonify({'error': 'Review not found'}), 404

    data = request.get_json(silent=True) or {}
    notes = clean_text(data.get('moderationNotes'), 'moderationNotes')
    if notes_required and not notes:
        raise ValidationError('Moderation notes are required when rejecting a review')

    review.status = status
    review.is_flagged = False
    review.moderation_notes = notes or None
    review.moderated_at = utcnow()
    _refresh_rating(review.doctor)
    db.session.commit()
    current_app.audit_logger.info(f"Review {review.id} {status} by {get_current_user().id}")
    return jsonify({'message': f'Review {status} successfully', 'review': review.to_dict()}), 200


def approve_review(review_id):
    return _moderate(review_id, APPROVED, notes_required=False)


def reject_review(review_id):
    return _moderate(review_id, REJECTED, notes_required=True)


def get_flagged_reviews():
    reviews = Review.query.filter_by(is_flagged=True).order_by(Review.flagged_at.asc()).all()
    return jsonify({'reviews': [review.to_dict() for review in reviews]}), 200


def get_review_stats():
    distribution = dict(
        _counted_reviews().with_entities(Review.rating, func.count(Review.id)).group_by(Review.rating).all()
    )
    total = sum(distribution.values())
    average = _counted_reviews().with_entities(func.avg(Review.rating)).scalar()
    return jsonify({
        'total': total,
        'averageRating': round(float(average), 2) if average is not None else 0.0,
        'distribution': {str(star): distribution.get(star, 0) for star in range(1, 6)},
        'flagged': Review.query.filter_by(is_flagged=True).count(),
        'rejected': Review.query.filter_by(status=REJECTED).count(),
        'unanswered': _counted_reviews().filter(Review.doctor_response.is_(None)).count()
    }), 200
