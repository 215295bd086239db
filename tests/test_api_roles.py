from datetime import timedelta

from flask_jwt_extended import create_access_token

from medsearch.models.user_models import User


def _create_link(client, auth_headers, role, **extra):
    response = client.post('/api/roles/links', json={'role': role, **extra}, headers=auth_headers('root', 'super_admin'))
    assert response.status_code == 201
    return response.get_json()


def test_users_me_reports_role_and_redirect(client, auth_headers):
    body = client.get('/api/users/me', headers=auth_headers('cust-1', 'customer')).get_json()
    assert body['user']['role'] == 'customer'
    assert body['user']['trusted'] is True
    assert body['redirectPath'] == '/patient/dashboard'
    assert 'book_appointments' in body['permissions']


def test_user_without_role_goes_to_onboarding(client, auth_headers):
    body = client.get('/api/users/me', headers=auth_headers('fresh')).get_json()
    assert body['user']['hasRole'] is False
    assert body['redirectPath'] == '/onboarding'
    assert body['permissions'] == []


def test_self_assigned_role_is_untrusted(client, auth_headers, db):
    headers = auth_headers('fresh')
    response = client.post('/api/roles/self-assign', json={'role': 'doctor'}, headers=headers)
    assert response.status_code == 200
    assert response.get_json()['roleData'] == {
        'role': 'doctor', 'hasRole': True, 'onboardingCompleted': True, 'trusted': False,
    }

    user = db.session.get(User, 'fresh')
    assert user.unsafe_metadata['assignedBy'] == 'self'
    assert user.public_metadata == {}

    body = client.get('/api/users/me', headers=headers).get_json()
    assert body['redirectPath'] == '/doctor/dashboard'
    assert body['permissions'] == []
    assert client.put('/api/doctors/me/availability', json={'availability': []}, headers=headers).status_code == 403


def test_admin_roles_are_not_self_assignable(client, auth_headers):
    response = client.post('/api/roles/self-assign', json={'role': 'super_admin'}, headers=auth_headers('fresh'))
    assert response.status_code == 400
    assert response.get_json()['kind'] == 'validation'


def test_self_assignment_can_be_disabled(app, client, auth_headers):
    app.config['ALLOW_SELF_ROLE_ASSIGNMENT'] = False
    response = client.post('/api/roles/self-assign', json={'role': 'customer'}, headers=auth_headers('fresh'))
    assert response.status_code == 403


def test_role_link_round_trip(client, auth_headers, db):
    link = _create_link(client, auth_headers, 'doctor')
    assert link['url'].startswith('http://localhost:5173/assign-role?role=doctor&token=')

    headers = auth_headers('invitee')
    response = client.post('/api/roles/assign', json={'role': 'doctor', 'token': link['token']}, headers=headers)
    assert response.status_code == 200
    assert response.get_json()['roleData']['trusted'] is True

    user = db.session.get(User, 'invitee')
    assert user.public_metadata['role'] == 'doctor'
    assert user.public_metadata['assignedBy'] == 'link'
    assert 'manage_own_profile' in client.get('/api/users/me', headers=headers).get_json()['permissions']


def test_role_link_is_single_use(client, auth_headers):
    link = _create_link(client, auth_headers, 'customer')
    payload = {'role': 'customer', 'token': link['token']}
    assert client.post('/api/roles/assign', json=payload, headers=auth_headers('first')).status_code == 200

    response = client.post('/api/roles/assign', json=payload, headers=auth_headers('second'))
    assert response.status_code == 400
    assert response.get_json()['kind'] == 'invalid_role_token'


def test_role_link_must_match_requested_role(client, auth_headers):
    link = _create_link(client, auth_headers, 'customer')
    response = client.post('/api/roles/assign', json={'role': 'company_admin', 'token': link['token']},
                           headers=auth_headers('sneaky'))
    assert response.status_code == 400
    assert response.get_json()['kind'] == 'invalid_role_token'


def test_bound_role_link_rejects_other_users(client, auth_headers):
    link = _create_link(client, auth_headers, 'doctor', userId='intended')
    payload = {'role': 'doctor', 'token': link['token']}
    assert client.post('/api/roles/assign', json=payload, headers=auth_headers('someone-else')).status_code == 400
    assert client.post('/api/roles/assign', json=payload, headers=auth_headers('intended')).status_code == 200


def test_expired_and_forged_links_rejected(client, auth_headers):
    expired = create_access_token(
        identity='root',
        additional_claims={'purpose': 'role_assignment', 'role': 'doctor'},
        expires_delta=timedelta(seconds=-10),
    )
    response = client.post('/api/roles/assign', json={'role': 'doctor', 'token': expired}, headers=auth_headers('late'))
    assert response.status_code == 400

    response = client.post('/api/roles/assign', json={'role': 'doctor', 'token': 'not-a-jwt'}, headers=auth_headers('late'))
    assert response.status_code == 400


def test_session_token_is_not_a_role_link(client, make_token, auth_headers):
    session_token = make_token('root', 'super_admin')
    response = client.post('/api/roles/assign', json={'role': 'super_admin', 'token': session_token},
                           headers=auth_headers('climber'))
    assert response.status_code == 400


def test_role_link_cannot_be_used_as_session(client, auth_headers):
    link = _create_link(client, auth_headers, 'customer')
    response = client.get('/api/users/me', headers={'Authorization': f"Bearer {link['token']}"})
    assert response.status_code == 400


def test_only_super_admin_issues_links(client, auth_headers):
    response = client.post('/api/roles/links', json={'role': 'doctor'}, headers=auth_headers('admin-1', 'company_admin'))
    assert response.status_code == 403


def test_super_admin_sets_role_directly(client, auth_headers, make_user, db):
    make_user('target')
    response = client.put('/api/admin/users/target/role', json={'role': 'company_admin'},
                          headers=auth_headers('root', 'super_admin'))
    assert response.status_code == 200
    assert db.session.get(User, 'target').role == 'company_admin'

    response = client.put('/api/admin/users/nobody/role', json={'role': 'doctor'}, headers=auth_headers('root', 'super_admin'))
    assert response.status_code == 404


def test_complete_onboarding(client, auth_headers, make_user):
    make_user('newbie', unsafe_metadata={'role': 'customer', 'onboardingCompleted': False})
    headers = auth_headers('newbie')
    assert client.get('/api/users/me', headers=headers).get_json()['redirectPath'] == '/onboarding/customer'

    response = client.post('/api/users/me/onboarding', headers=headers)
    assert response.status_code == 200
    assert response.get_json()['redirectPath'] == '/patient/dashboard'


def test_logout_revokes_token(client, auth_headers):
    headers = auth_headers('cust-1', 'customer')
    assert client.post('/api/auth/logout', headers=headers).status_code == 200
    assert client.get('/api/users/me', headers=headers).status_code == 401
