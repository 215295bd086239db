import pytest

from medsearch.domain.roles import (
    ROLE_PERMISSIONS, get_redirect_path, has_permission,
    merge_metadata, permissions_for, resolve_role, trusted_role,
)


def test_provider_role_wins_over_user_writable_role():
    data = resolve_role({'role': 'doctor'}, {'role': 'customer'})
    assert data.role == 'doctor'
    assert data.trusted is True


def test_falls_back_to_user_writable_role():
    data = resolve_role({}, {'role': 'customer', 'onboardingCompleted': True})
    assert data.role == 'customer'
    assert data.has_role is True
    assert data.onboarding_completed is True
    assert data.trusted is False


def test_no_role_anywhere():
    data = resolve_role(None, None)
    assert data.role is None
    assert data.has_role is False
    assert data.onboarding_completed is False


def test_unknown_role_string_resolves_to_none():
    assert resolve_role({'role': 'janitor'}).role is None


def test_metadata_merge_prefers_provider_keys():
    merged = merge_metadata({'onboardingCompleted': False}, {'onboardingCompleted': True, 'theme': 'dark'})
    assert merged == {'onboardingCompleted': False, 'theme': 'dark'}


def test_trusted_role_ignores_user_writable_partition():
    assert trusted_role({}) is None
    assert trusted_role({'role': 'company_admin'}) == 'company_admin'


@pytest.mark.parametrize('role,action,expected', [
    ('customer', 'book_appointments', True),
    ('customer', 'manage_specialties', False),
    ('doctor', 'respond_to_reviews', True),
    ('doctor', 'book_appointments', False),
    ('company_admin', 'view_reports', True),
    ('company_admin', 'manage_roles', False),
    ('super_admin', 'anything_at_all', True),
    (None, 'view_doctors', False),
    ('ghost', 'view_doctors', False),
])
def test_has_permission(role, action, expected):
    assert has_permission(role, action) is expected


def test_permission_table_is_exact():
    assert ROLE_PERMISSIONS['customer'] == {
        'view_doctors', 'book_appointments', 'view_own_appointments', 'rate_doctors', 'view_own_profile',
    }
    assert ROLE_PERMISSIONS['doctor'] == {
        'view_own_appointments', 'manage_availability', 'view_patient_info', 'respond_to_reviews',
        'manage_own_profile',
    }
    assert ROLE_PERMISSIONS['company_admin'] == {
        'moderate_doctors', 'moderate_customers', 'view_reports', 'manage_specialties', 'view_all_appointments',
    }
    assert permissions_for('super_admin') == ['*']
    assert permissions_for(None) == []


@pytest.mark.parametrize('public,unsafe,expected', [
    ({}, {}, '/onboarding'),
    ({}, {'role': 'doctor'}, '/onboarding/doctor'),
    ({'role': 'customer', 'onboardingCompleted': True}, {}, '/patient/dashboard'),
    ({'role': 'doctor', 'onboardingCompleted': True}, {}, '/doctor/dashboard'),
    ({'role': 'company_admin', 'onboardingCompleted': True}, {}, '/admin/dashboard'),
    ({'role': 'super_admin', 'onboardingCompleted': True}, {}, '/admin/dashboard'),
])
def test_redirect_path(public, unsafe, expected):
    assert get_redirect_path(resolve_role(public, unsafe)) == expected
