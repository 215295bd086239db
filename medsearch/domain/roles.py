# /medsearch/domain/roles.py
"""Role resolution and the static permission table.

A user's metadata bag comes in two partitions: ``public_metadata`` is written
only by the identity provider (or by this service after a verified
assignment) and ``unsafe_metadata`` is writable by the user. The resolved role
prefers the provider partition and falls back to the user-writable one, but
authorization only ever trusts the provider partition.
"""
from dataclasses import dataclass, field
from typing import Optional

CUSTOMER = 'customer'
DOCTOR = 'doctor'
COMPANY_ADMIN = 'company_admin'
SUPER_ADMIN = 'super_admin'

ROLES = (CUSTOMER, DOCTOR, COMPANY_ADMIN, SUPER_ADMIN)
SELF_ASSIGNABLE_ROLES = frozenset({CUSTOMER, DOCTOR})

WILDCARD = '*'

ROLE_PERMISSIONS = {
    CUSTOMER: frozenset({
        'view_doctors',
        'book_appointments',
        'view_own_appointments',
        'rate_doctors',
        'view_own_profile',
    }),
    DOCTOR: frozenset({
        'view_own_appointments',
        'manage_availability',
        'view_patient_info',
        'respond_to_reviews',
        'manage_own_profile',
    }),
    COMPANY_ADMIN: frozenset({
        'moderate_doctors',
        'moderate_customers',
        'view_reports',
        'manage_specialties',
        'view_all_appointments',
    }),
    SUPER_ADMIN: frozenset({WILDCARD}),
}

DASHBOARD_PATHS = {
    CUSTOMER: '/patient/dashboard',
    DOCTOR: '/doctor/dashboard',
    COMPANY_ADMIN: '/admin/dashboard',
    SUPER_ADMIN: '/admin/dashboard',
}


@dataclass(frozen=True)
class RoleData:
    role: Optional[str]
    has_role: bool
    onboarding_completed: bool
    trusted: bool = False
    metadata: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            'role': self.role,
            'hasRole': self.has_role,
            'onboardingCompleted': self.onboarding_completed,
            'trusted': self.trusted,
        }


def _normalize_role(value):
    if isinstance(value, str) and value in ROLES:
        return value
    return None


def merge_metadata(public_metadata, unsafe_metadata):
    """Merges both partitions; provider-controlled keys win on conflict."""
    merged = dict(unsafe_metadata or {})
    merged.update(public_metadata or {})
    return merged


def trusted_role(public_metadata) -> Optional[str]:
    """The role used for authorization: provider partition only."""
    return _normalize_role((public_metadata or {}).get('role'))


def resolve_role(public_metadata=None, unsafe_metadata=None) -> RoleData:
    """Resolves ``{role, hasRole, onboardingCompleted}`` from a metadata bag."""
    provider_role = trusted_role(public_metadata)
    user_role = _normalize_role((unsafe_metadata or {}).get('role'))
    role = provider_role or user_role
    metadata = merge_metadata(public_metadata, unsafe_metadata)

    return RoleData(
        role=role,
        has_role=role is not None,
        onboarding_completed=bool(metadata.get('onboardingCompleted')),
        trusted=provider_role is not None,
        metadata=metadata,
    )


def has_permission(role, action) -> bool:
    if not role:
        return False
    permissions = ROLE_PERMISSIONS.get(role)
    if not permissions:
        return False
    return WILDCARD in permissions or action in permissions


def permissions_for(role):
    return sorted(ROLE_PERMISSIONS.get(role, ()))


def get_redirect_path(role_data: RoleData) -> str:
    if not role_data.has_role or not role_data.role:
        return '/onboarding'
    if not role_data.onboarding_completed:
        return f'/onboarding/{role_data.role}'
    return DASHBOARD_PATHS.get(role_data.role, '/')
