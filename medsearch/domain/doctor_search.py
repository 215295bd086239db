# /medsearch/domain/doctor_search.py
"""Doctor search: text, location, specialty, rating and price filters plus sorting.

``search_doctors`` is pure. It copies what it keeps and never touches the
collection it was given, so it can be re-run on every filter change.
"""
import re
from dataclasses import dataclass, field
from typing import Optional

from medsearch.domain.errors import ValidationError

SORT_RATING = 'rating'
SORT_FEE = 'fee'
SORT_EXPERIENCE = 'experience'

# Default direction per sort key: True means descending
SORT_DEFAULTS = {
    SORT_RATING: True,
    SORT_FEE: False,
    SORT_EXPERIENCE: True,
}


@dataclass(frozen=True)
class DoctorCard:
    """Flat, searchable view of a doctor profile."""
    id: Optional[int]
    name: str
    specialty: str = ''
    specialties: tuple = ()
    location: str = ''
    rating: float = 0.0
    rating_count: int = 0
    fee: float = 0.0
    experience: int = 0
    extra: dict = field(default_factory=dict, compare=False)

    @classmethod
    def from_profile(cls, profile):
        specialties = tuple(s.name for s in sorted(profile.specialties, key=lambda s: -s.priority))
        address = profile.address or {}
        return cls(
            id=profile.id,
            name=display_name(profile.first_name, profile.last_name),
            specialty=specialties[0] if specialties else '',
            specialties=specialties,
            location=address.get('city', ''),
            rating=float(profile.rating_average or 0),
            rating_count=profile.rating_count or 0,
            fee=float(profile.consultation_fee or 0),
            experience=profile.years_of_experience or 0,
            extra={'profile': profile},
        )


@dataclass(frozen=True)
class DoctorFilters:
    specialty: Optional[str] = None
    min_rating: float = 0
    max_price: Optional[float] = None


def parse_price(value):
    """'$1,200' -> 1200.0"""
    if value is None or value == '':
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = re.sub(r'[^0-9.\-]', '', str(value))
    try:
        return float(cleaned)
    except ValueError:
        raise ValidationError(f"Invalid price '{value}'")


def display_name(first_name, last_name):
    first_name = (first_name or '').strip()
    last_name = (last_name or '').strip()
    prefix = 'Dra.' if first_name.lower().endswith('a') else 'Dr.'
    return f'{prefix} {first_name} {last_name}'.strip()


def _contains(haystack, needle):
    return needle.lower() in (haystack or '').lower()


def _sort(doctors, sort_by, sort_order):
    if not sort_by:
        return doctors
    if sort_by not in SORT_DEFAULTS:
        raise ValidationError(
            f"Invalid sortBy '{sort_by}'",
            details={'allowed': sorted(SORT_DEFAULTS)},
        )
    if sort_order not in (None, '', 'asc', 'desc'):
        raise ValidationError(f"Invalid sortOrder '{sort_order}'")

    descending = SORT_DEFAULTS[sort_by] if not sort_order else sort_order == 'desc'
    key = {
        SORT_RATING: lambda d: d.rating,
        SORT_FEE: lambda d: d.fee,
        SORT_EXPERIENCE: lambda d: d.experience,
    }[sort_by]
    # sorted() is stable in both directions, so ties keep input order
    return sorted(doctors, key=key, reverse=descending)


def search_doctors(doctors, query='', location='', filters=None, sort_by=None, sort_order=None):
    filters = filters or DoctorFilters()
    results = list(doctors)

    query = (query or '').strip()
    if query:
        results = [d for d in results if _contains(d.name, query) or _contains(d.specialty, query)]

    location = (location or '').strip()
    if location:
        results = [d for d in results if _contains(d.location, location)]

    if filters.specialty:
        results = [
            d for d in results
            if d.specialty == filters.specialty or filters.specialty in d.specialties
        ]

    if filters.min_rating and filters.min_rating > 0:
        results = [d for d in results if d.rating >= filters.min_rating]

    if filters.max_price is not None:
        results = [d for d in results if d.fee <= filters.max_price]

    return _sort(results, sort_by, sort_order)


def paginate(items, page=1, limit=20):
    page = max(int(page or 1), 1)
    limit = max(int(limit or 1), 1)
    total = len(items)
    start = (page - 1) * limit
    return items[start:start + limit], {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': (total + limit - 1) // limit,
    }
