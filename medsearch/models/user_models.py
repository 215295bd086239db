from datetime import datetime
from medsearch.extensions import db
from medsearch.domain.doctor_search import display_name
from medsearch.domain.roles import resolve_role, trusted_role
from medsearch.utils.encryption_util import encryptor

# --- Association tables ---
doctor_specialties = db.Table('doctor_specialties',
    db.Column('doctor_id', db.Integer, db.ForeignKey('doctor_profiles.id'), primary_key=True),
    db.Column('specialty_id', db.Integer, db.ForeignKey('specialties.id'), primary_key=True)
)

customer_favorites = db.Table('customer_favorites',
    db.Column('customer_id', db.Integer, db.ForeignKey('customer_profiles.id'), primary_key=True),
    db.Column('doctor_id', db.Integer, db.ForeignKey('doctor_profiles.id'), primary_key=True),
    db.Column('created_at', db.DateTime, default=datetime.utcnow)
)

DEFAULT_AVAILABILITY = [
    {'dayOfWeek': day, 'isActive': day in (1, 2, 3, 4, 5), 'startTime': '09:00', 'endTime': '17:00'}
    for day in (1, 2, 3, 4, 5, 6, 0)
]


class User(db.Model):
    """Local mirror of an identity issued by the external identity provider."""
    __tablename__ = 'users'

    # Opaque id from the identity provider (the JWT ``sub`` claim)
    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), index=True)
    # Provider-controlled partition: only verified assignments write here
    public_metadata = db.Column(db.JSON, nullable=False, default=dict)
    # User-writable partition: preferences only, never trusted for access
    unsafe_metadata = db.Column(db.JSON, nullable=False, default=dict)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_seen = db.Column(db.DateTime)

    # --- Relationships ---
    doctor_profile = db.relationship('DoctorProfile', back_populates='user', uselist=False, cascade="all, delete-orphan")
    customer_profile = db.relationship('CustomerProfile', back_populates='user', uselist=False, cascade="all, delete-orphan")

    @property
    def role_data(self):
        return resolve_role(self.public_metadata, self.unsafe_metadata)

    @property
    def role(self):
        """Role trusted for authorization decisions."""
        return trusted_role(self.public_metadata)

    def update_public_metadata(self, **values):
        # Reassign so SQLAlchemy notices the JSON change
        self.public_metadata = {**(self.public_metadata or {}), **values}

    def update_unsafe_metadata(self, **values):
        self.unsafe_metadata = {**(self.unsafe_metadata or {}), **values}

    def to_dict(self):
        role_data = self.role_data
        profile_data = {}
        if self.doctor_profile:
            profile_data['doctorProfileId'] = self.doctor_profile.id
        if self.customer_profile:
            profile_data['customerProfileId'] = self.customer_profile.id

        return {
            'id': self.id,
            'email': self.email,
            'isActive': self.is_active,
            'metadata': role_data.metadata,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            **role_data.to_dict(),
            **profile_data
        }


class DoctorProfile(db.Model):
    """Public-facing doctor profile used by search and booking."""
    __tablename__ = 'doctor_profiles'

    STATUSES = ('pending_verification', 'verified', 'rejected', 'suspended')
    DURATIONS = (15, 30, 45, 60)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('users.id'), unique=True)
    first_name = db.Column(db.String(255), nullable=False)
    last_name = db.Column(db.String(255), nullable=False)
    license_number = db.Column(db.String(100), nullable=False, unique=True)
    consultation_fee = db.Column(db.Numeric(10, 2), nullable=False, default=1000)
    consultation_duration = db.Column(db.Integer, nullable=False, default=30)
    languages = db.Column(db.JSON, nullable=False, default=lambda: ['Español'])
    about = db.Column(db.Text)
    address = db.Column(db.JSON, default=dict)
    availability = db.Column(db.JSON, default=lambda: [dict(slot) for slot in DEFAULT_AVAILABILITY])
    insurance_accepted = db.Column(db.JSON, default=list)
    is_available_for_emergency = db.Column(db.Boolean, default=False)
    years_of_experience = db.Column(db.Integer, default=0)
    status = db.Column(db.String(30), nullable=False, default='pending_verification', index=True)
    rating_average = db.Column(db.Float, default=0.0)
    rating_count = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', back_populates='doctor_profile')
    specialties = db.relationship('Specialty', secondary=doctor_specialties, backref=db.backref('doctors', lazy='dynamic'))
    appointments = db.relationship('Appointment', back_populates='doctor', lazy='dynamic')
    reviews = db.relationship('Review', back_populates='doctor', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'displayName': display_name(self.first_name, self.last_name),
            'licenseNumber': self.license_number,
            'specialties': [{'id': s.id, 'name': s.name, 'icon': s.icon} for s in self.specialties],
            'consultationFee': float(self.consultation_fee or 0),
            'consultationDuration': self.consultation_duration,
            'languages': self.languages or [],
            'about': self.about,
            'address': self.address or {},
            'availability': self.availability or [],
            'insuranceAccepted': self.insurance_accepted or [],
            'isAvailableForEmergency': self.is_available_for_emergency,
            'yearsOfExperience': self.years_of_experience or 0,
            'status': self.status,
            'ratings': {'average': round(self.rating_average or 0, 2), 'count': self.rating_count or 0},
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class CustomerProfile(db.Model):
    """Patient profile; contact and medical details are encrypted at rest."""
    __tablename__ = 'customer_profiles'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey('users.id'), nullable=False, unique=True)
    first_name = db.Column(db.String(255))
    last_name = db.Column(db.String(255))
    date_of_birth = db.Column(db.String(32))
    gender = db.Column(db.String(32))

    # --- Encrypted ---
    phone_number = db.Column(db.String(512))
    emergency_contact = db.Column(db.Text)
    medical_info = db.Column(db.Text)

    address = db.Column(db.JSON, default=dict)
    notification_preferences = db.Column(db.JSON, default=lambda: {'email': True, 'sms': False, 'reminders': True})
    is_active = db.Column(db.Boolean, default=True)
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', back_populates='customer_profile')
    appointments = db.relationship('Appointment', back_populates='customer', lazy='dynamic')
    favorites = db.relationship('DoctorProfile', secondary=customer_favorites, lazy='dynamic')

    @classmethod
    def for_user(cls, user):
        """Returns the user's profile, creating an empty one on first use."""
        if user.customer_profile is None:
            user.customer_profile = cls(user_id=user.id)
            db.session.flush()
        return user.customer_profile

    def get_phone_number(self):
        return encryptor.decrypt(self.phone_number) if self.phone_number else None

    def set_phone_number(self, value):
        self.phone_number = encryptor.encrypt(value) if value else None

    def get_emergency_contact(self):
        return encryptor.decrypt_json(self.emergency_contact) or {}

    def set_emergency_contact(self, value):
        self.emergency_contact = encryptor.encrypt_json(value) if value else None

    def get_medical_info(self):
        return encryptor.decrypt_json(self.medical_info) or {}

    def set_medical_info(self, value):
        self.medical_info = encryptor.encrypt_json(value) if value else None

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'dateOfBirth': self.date_of_birth,
            'gender': self.gender,
            'phoneNumber': self.get_phone_number(),
            'address': self.address or {},
            'emergencyContact': self.get_emergency_contact(),
            'medicalInfo': self.get_medical_info(),
            'notificationPreferences': self.notification_preferences or {},
            'isActive': self.is_active,
            'version': self.version,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
