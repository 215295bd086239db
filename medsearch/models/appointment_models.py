from datetime import datetime
from medsearch.extensions import db
from medsearch.utils.time_util import to_naive_utc


class Appointment(db.Model):
    """A booked encounter between a customer and a doctor.

    Appointments are never deleted: cancelling or rescheduling is a status
    change. ``version`` is bumped on every edit so clients can detect stale
    writes.
    """
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)

    doctor_id = db.Column(db.Integer, db.ForeignKey('doctor_profiles.id'), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customer_profiles.id'), nullable=False, index=True)

    # Appointment details
    scheduled_date = db.Column(db.DateTime, nullable=False, index=True)
    duration = db.Column(db.Integer, nullable=False, default=30)
    status = db.Column(db.String(20), nullable=False, default='pending', index=True)
    appointment_type = db.Column(db.String(20), nullable=False, default='consultation')

    # Clinical record
    reason_for_visit = db.Column(db.Text)
    diagnosis = db.Column(db.Text)
    doctor_notes = db.Column(db.Text)
    patient_notes = db.Column(db.Text)
    vital_signs = db.Column(db.JSON, default=dict)
    prescriptions = db.Column(db.JSON, default=list)
    follow_up_required = db.Column(db.Boolean, default=False)
    follow_up_date = db.Column(db.DateTime)

    cancellation_reason = db.Column(db.Text)
    rescheduled_to_id = db.Column(db.Integer, db.ForeignKey('appointments.id'))

    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    doctor = db.relationship('DoctorProfile', back_populates='appointments')
    customer = db.relationship('CustomerProfile', back_populates='appointments')
    rescheduled_to = db.relationship('Appointment', remote_side=[id], uselist=False)

    def clinical_record(self):
        """The editable clinical fields, keyed the way the API exposes them."""
        return {
            'status': self.status,
            'appointmentType': self.appointment_type,
            'reasonForVisit': self.reason_for_visit,
            'diagnosis': self.diagnosis,
            'doctorNotes': self.doctor_notes,
            'patientNotes': self.patient_notes,
            'vitalSigns': dict(self.vital_signs or {}),
            'prescriptions': [dict(p) for p in (self.prescriptions or [])],
            'followUpRequired': bool(self.follow_up_required),
            'followUpDate': self.follow_up_date,
        }

    def apply_clinical_record(self, record):
        self.status = record['status']
        self.appointment_type = record['appointmentType']
        self.reason_for_visit = record['reasonForVisit']
        self.diagnosis = record['diagnosis']
        self.doctor_notes = record['doctorNotes']
        self.patient_notes = record['patientNotes']
        self.vital_signs = record['vitalSigns']
        self.prescriptions = record['prescriptions']
        self.follow_up_required = record['followUpRequired']
        self.follow_up_date = to_naive_utc(record['followUpDate'])
