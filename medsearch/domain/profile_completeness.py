# /medsearch/domain/profile_completeness.py
import math
from datetime import date, datetime

COMPLETENESS_FIELDS = (
    'dateOfBirth',
    'gender',
    'phoneNumber',
    'address.street',
    'emergencyContact.name',
    'medicalInfo.bloodType',
)


def _lookup(profile, path):
    value = profile
    for part in path.split('.'):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _is_filled(value) -> bool:
    if value is None or value is False:
        return False
    return str(value).strip() != ''


def missing_fields(profile):
    profile = profile or {}
    return [path for path in COMPLETENESS_FIELDS if not _is_filled(_lookup(profile, path))]


def profile_completeness(profile) -> int:
    """Percentage (0-100) of the checklist fields that are filled in."""
    if not profile:
        return 0
    filled = len(COMPLETENESS_FIELDS) - len(missing_fields(profile))
    # Half-up rounding
    return int(math.floor(100 * filled / len(COMPLETENESS_FIELDS) + 0.5))


def account_status(profile):
    if not profile:
        return 'unknown'
    return 'active' if profile.get('isActive', True) else 'inactive'


def calculate_age(date_of_birth, today=None):
    if not date_of_birth:
        return None
    if isinstance(date_of_birth, str):
        try:
            date_of_birth = date.fromisoformat(date_of_birth[:10])
        except ValueError:
            return None
    if isinstance(date_of_birth, datetime):
        date_of_birth = date_of_birth.date()

    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age
