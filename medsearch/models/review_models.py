from datetime import datetime
from medsearch.extensions import db


class Review(db.Model):
    """A customer's rating of a doctor for one completed appointment.

    Only approved reviews that are not flagged count towards the doctor's
    rating; flagged ones wait for an administrator to approve or reject them.
    """
    __tablename__ = 'reviews'

    STATUSES = ('approved', 'rejected')

    id = db.Column(db.Integer, primary_key=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('doctor_profiles.id'), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customer_profiles.id'), nullable=False)
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'), nullable=False, unique=True)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text)
    doctor_response = db.Column(db.Text)
    responded_at = db.Column(db.DateTime)
    status = db.Column(db.String(20), nullable=False, default='approved', index=True)

    # Moderation
    is_flagged = db.Column(db.Boolean, default=False, index=True)
    flag_reason = db.Column(db.Text)
    flagged_by = db.Column(db.String(64))
    flagged_at = db.Column(db.DateTime)
    moderation_notes = db.Column(db.Text)
    moderated_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    doctor = db.relationship('DoctorProfile', back_populates='reviews')

    def to_dict(self):
        return {
            'id': self.id,
            'doctorId': self.doctor_id,
            'customerId': self.customer_id,
            'appointmentId': self.appointment_id,
            'rating': self.rating,
            'comment': self.comment,
            'doctorResponse': self.doctor_response,
            'respondedAt': self.responded_at.isoformat() if self.responded_at else None,
            'status': self.status,
            'isFlagged': self.is_flagged,
            'flagReason': self.flag_reason,
            'moderationNotes': self.moderation_notes,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
