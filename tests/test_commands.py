from datetime import timedelta

from medsearch.models.specialty_models import DEFAULT_SPECIALTIES, Specialty
from medsearch.models.system_models import RevokedToken
from medsearch.models.user_models import DoctorProfile, User
from medsearch.utils.time_util import utcnow


def test_init_db_seeds_specialties_once(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['init-db'])
    assert result.exit_code == 0
    assert f'{len(DEFAULT_SPECIALTIES)} specialties added' in result.output

    result = runner.invoke(args=['init-db'])
    assert '(0 specialties added)' in result.output
    assert Specialty.query.count() == len(DEFAULT_SPECIALTIES)


def test_seed_demo_adds_verified_doctors(app):
    runner = app.test_cli_runner()
    runner.invoke(args=['seed-demo'])
    doctors = DoctorProfile.query.all()
    assert len(doctors) == 3
    assert all(d.status == 'verified' for d in doctors)

    result = runner.invoke(args=['seed-demo'])
    assert 'Doctor already exists: MED-1001' in result.output
    assert DoctorProfile.query.count() == 3


def test_grant_role_bootstraps_super_admin(app, db):
    result = app.test_cli_runner().invoke(args=['grant-role', 'root', 'super_admin', '--email', 'root@example.com'])
    assert result.exit_code == 0

    user = db.session.get(User, 'root')
    assert user.role == 'super_admin'
    assert user.email == 'root@example.com'
    assert user.public_metadata['assignedBy'] == 'cli'


def test_grant_role_rejects_unknown_role(app):
    result = app.test_cli_runner().invoke(args=['grant-role', 'root', 'owner'])
    assert result.exit_code != 0


def test_purge_revoked_tokens(app, db):
    db.session.add(RevokedToken(jti='old', expires_at=utcnow() - timedelta(hours=1)))
    db.session.add(RevokedToken(jti='live', expires_at=utcnow() + timedelta(hours=1)))
    db.session.commit()

    result = app.test_cli_runner().invoke(args=['purge-revoked-tokens'])
    assert 'Purged 1 expired revoked tokens' in result.output
    assert [t.jti for t in RevokedToken.query.all()] == ['live']
