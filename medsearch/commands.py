import click
from flask.cli import with_appcontext
from medsearch.extensions import db
from medsearch.domain.roles import ROLES
from medsearch.models.specialty_models import Specialty, DEFAULT_SPECIALTIES
from medsearch.models.system_models import RevokedToken
from medsearch.models.user_models import User, DoctorProfile
from medsearch.utils.time_util import utcnow

DEMO_DOCTORS = [
    {'first_name': 'María', 'last_name': 'González', 'license_number': 'MED-1001', 'consultation_fee': 1200,
     'years_of_experience': 15, 'city': 'Madrid', 'specialty': 'Cardiología', 'rating': 4.8, 'count': 127},
    {'first_name': 'Carlos', 'last_name': 'Rodríguez', 'license_number': 'MED-1002', 'consultation_fee': 800,
     'years_of_experience': 10, 'city': 'Barcelona', 'specialty': 'Pediatría', 'rating': 4.9, 'count': 89},
    {'first_name': 'Ana', 'last_name': 'Martínez', 'license_number': 'MED-1003', 'consultation_fee': 950,
     'years_of_experience': 8, 'city': 'Valencia', 'specialty': 'Dermatología', 'rating': 4.7, 'count': 156},
]


def _seed_specialties():
    added = 0
    for specialty_data in DEFAULT_SPECIALTIES:
        if not Specialty.query.filter_by(name=specialty_data['name']).first():
            db.session.add(Specialty(**specialty_data))
            added += 1
    db.session.commit()
    return added


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create all tables and seed the specialty catalogue."""
    db.create_all()
    added = _seed_specialties()
    click.echo(f"Database initialized successfully ({added} specialties added)!")


@click.command('seed-demo')
@with_appcontext
def seed_demo_command():
    """Add a few verified demo doctors for local development."""
    _seed_specialties()
    for doctor_data in DEMO_DOCTORS:
        data = dict(doctor_data)
        if DoctorProfile.query.filter_by(license_number=data['license_number']).first():
            click.echo(f"Doctor already exists: {data['license_number']}")
            continue

        specialty = Specialty.query.filter_by(name=data.pop('specialty')).first()
        doctor = DoctorProfile(
            address={'city': data.pop('city')},
            rating_average=data.pop('rating'),
            rating_count=data.pop('count'),
            status='verified',
            **data
        )
        if specialty:
            doctor.specialties = [specialty]
        db.session.add(doctor)
        click.echo(f"Added doctor: {doctor.first_name} {doctor.last_name}")
    db.session.commit()


@click.command('grant-role')
@click.argument('user_id')
@click.argument('role', type=click.Choice(ROLES))
@click.option('--email', default=None, help='Email to store when the user is not mirrored yet.')
@with_appcontext
def grant_role_command(user_id, role, email):
    """Write ROLE into a user's trusted metadata (bootstraps the first super admin)."""
    user = db.session.get(User, user_id)
    if user is None:
        user = User(id=user_id, email=email, public_metadata={}, unsafe_metadata={})
        db.session.add(user)
    user.update_public_metadata(role=role, onboardingCompleted=True, assignedBy='cli', assignedAt=utcnow().isoformat())
    db.session.commit()
    click.echo(f"Granted '{role}' to {user_id}")


@click.command('purge-revoked-tokens')
@with_appcontext
def purge_revoked_tokens_command():
    """Delete revoked token records whose tokens have expired anyway."""
    deleted = RevokedToken.query.filter(
        RevokedToken.expires_at.isnot(None),
        RevokedToken.expires_at < utcnow()
    ).delete(synchronize_session=False)
    db.session.commit()
    click.echo(f"Purged {deleted} expired revoked tokens")


def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_demo_command)
    app.cli.add_command(grant_role_command)
    app.cli.add_command(purge_revoked_tokens_command)
