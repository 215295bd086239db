from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token

from medsearch import create_app
from medsearch.extensions import db as _db
from medsearch.models.appointment_models import Appointment
from medsearch.models.specialty_models import Specialty
from medsearch.models.user_models import CustomerProfile, DoctorProfile, User
from medsearch.utils.time_util import utcnow


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def make_token(app):
    """Mint a session token the way the identity provider would."""
    def _make_token(user_id, role=None, onboarding_completed=True, email=None, **claims):
        public_metadata = {}
        if role:
            public_metadata = {'role': role, 'onboardingCompleted': onboarding_completed}
        return create_access_token(
            identity=user_id,
            additional_claims={'email': email or f'{user_id}@example.com', 'public_metadata': public_metadata, **claims},
        )
    return _make_token


@pytest.fixture
def auth_headers(make_token):
    def _auth_headers(user_id, role=None, **kwargs):
        return {'Authorization': f'Bearer {make_token(user_id, role, **kwargs)}'}
    return _auth_headers


@pytest.fixture
def make_user(db):
    def _make_user(user_id, role=None, unsafe_metadata=None):
        user = User(
            id=user_id,
            email=f'{user_id}@example.com',
            public_metadata={'role': role, 'onboardingCompleted': True} if role else {},
            unsafe_metadata=unsafe_metadata or {},
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def specialty(db):
    cardiology = Specialty(
        name='Cardiología', name_en='Cardiology', description='Corazón', description_en='Heart',
        icon='❤️', category='Medical', priority=9,
    )
    db.session.add(cardiology)
    db.session.commit()
    return cardiology


@pytest.fixture
def make_doctor(db):
    counter = {'n': 0}

    def _make_doctor(first_name='María', last_name='González', status='verified', city='Madrid',
                     fee=1000, rating=4.5, experience=10, specialties=(), user_id=None):
        counter['n'] += 1
        doctor = DoctorProfile(
            user_id=user_id,
            first_name=first_name,
            last_name=last_name,
            license_number=f'LIC-{counter["n"]:04d}',
            consultation_fee=fee,
            address={'city': city},
            rating_average=rating,
            rating_count=10,
            years_of_experience=experience,
            status=status,
        )
        doctor.specialties = list(specialties)
        db.session.add(doctor)
        db.session.commit()
        return doctor
    return _make_doctor


@pytest.fixture
def make_appointment(db):
    def _make_appointment(doctor, customer, status='pending', days_ahead=3, **fields):
        appointment = Appointment(
            doctor_id=doctor.id,
            customer_id=customer.id,
            scheduled_date=utcnow() + timedelta(days=days_ahead),
            status=status,
            **fields
        )
        db.session.add(appointment)
        db.session.commit()
        return appointment
    return _make_appointment


@pytest.fixture
def customer(db, make_user):
    user = make_user('cust-1', 'customer')
    profile = CustomerProfile(user_id=user.id, first_name='Laura', last_name='Pérez')
    db.session.add(profile)
    db.session.commit()
    return profile


@pytest.fixture
def doctor_user(db, make_user, make_doctor, specialty):
    user = make_user('doc-1', 'doctor')
    return make_doctor(user_id=user.id, specialties=[specialty])
