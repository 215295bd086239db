"""Error types raised by the domain rules.

Controllers let these propagate; ``register_error_handlers`` turns them into
JSON responses carrying ``kind`` so clients can branch on it.
"""


class DomainError(Exception):
    status_code = 400
    kind = 'domain_error'

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'error': self.message, 'kind': self.kind}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(DomainError):
    kind = 'validation'


class InvalidTransitionError(DomainError):
    status_code = 409
    kind = 'invalid_transition'


class StaleEditError(DomainError):
    status_code = 409
    kind = 'stale_edit'


class RoleTokenError(DomainError):
    kind = 'invalid_role_token'
