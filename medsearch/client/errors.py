"""Errors raised by the MedSearch API client, with user-facing messages."""

NETWORK = 'network'
TIMEOUT = 'timeout'
HTTP = 'http'
VALIDATION = 'validation'
STALE_EDIT = 'stale_edit'
PARSE = 'parse'

DEFAULT_LOCALE = 'es'

MESSAGES = {
    'es': {
        NETWORK: 'No se pudo conectar con el servidor. Verifica tu conexión.',
        TIMEOUT: 'El servidor tardó demasiado en responder. Inténtalo de nuevo.',
        VALIDATION: 'Los datos enviados no son válidos.',
        STALE_EDIT: 'Otra persona modificó este registro. Recarga los datos e inténtalo de nuevo.',
        PARSE: 'El servidor devolvió una respuesta no válida.',
        401: 'Tu sesión ha expirado. Inicia sesión de nuevo.',
        403: 'No tienes permiso para realizar esta acción.',
        404: 'No se encontró el recurso solicitado.',
        409: 'La operación entra en conflicto con el estado actual.',
        429: 'Demasiadas solicitudes. Espera un momento.',
        HTTP: 'Error del servidor ({status}).',
    },
    'en': {
        NETWORK: 'Could not reach the server. Check your connection.',
        TIMEOUT: 'The server took too long to respond. Please try again.',
        VALIDATION: 'The submitted data is not valid.',
        STALE_EDIT: 'Someone else changed this record. Reload it and try again.',
        PARSE: 'The server returned an invalid response.',
        401: 'Your session has expired. Please sign in again.',
        403: 'You do not have permission to do this.',
        404: 'The requested resource was not found.',
        409: 'The request conflicts with the current state.',
        429: 'Too many requests. Please wait a moment.',
        HTTP: 'Server error ({status}).',
    },
}


def localized_message(kind, status_code=None, locale=DEFAULT_LOCALE):
    catalog = MESSAGES.get(locale) or MESSAGES[DEFAULT_LOCALE]
    if kind == HTTP and status_code in catalog:
        return catalog[status_code]
    return catalog[kind].format(status=status_code)


class ApiError(Exception):
    """A failed API call.

    ``kind`` is one of network, timeout, http, validation, stale_edit or
    parse.
    ``message`` is localized for display; ``server_message`` keeps the
    ``error`` text the API returned, when there was one.
    """

    def __init__(self, kind, status_code=None, server_message=None, details=None, locale=DEFAULT_LOCALE):
        self.kind = kind
        self.status_code = status_code
        self.server_message = server_message
        self.details = details
        self.message = localized_message(kind, status_code, locale)
        super().__init__(self.message)

    def __repr__(self):
        return f'ApiError(kind={self.kind!r}, status_code={self.status_code!r}, message={self.message!r})'
