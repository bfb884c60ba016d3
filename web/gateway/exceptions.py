"""DRF exception handler that keeps the API's ``{"detail": CODE}`` shape.

Views return domain errors themselves; this handler only normalises the
errors DRF raises before a view runs (authentication, permissions,
throttling, malformed JSON) so clients see one error vocabulary.
"""

from rest_framework import exceptions, status
from rest_framework.views import exception_handler

_CODES = {
    exceptions.NotAuthenticated: "UNAUTHORIZED",
    exceptions.AuthenticationFailed: "UNAUTHORIZED",
    exceptions.PermissionDenied: "FORBIDDEN",
    exceptions.Throttled: "THROTTLED",
    exceptions.ParseError: "INVALID_INPUT",
    exceptions.MethodNotAllowed: "METHOD_NOT_ALLOWED",
    exceptions.NotFound: "NOT_FOUND",
}


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return None

    code = next((c for cls, c in _CODES.items() if isinstance(exc, cls)), None)
    if code is None:
        return response

    # DRF answers NotAuthenticated with 403 when no authenticator sets a
    # WWW-Authenticate header; unauthenticated callers always get 401 here.
    if code == "UNAUTHORIZED":
        response.status_code = status.HTTP_401_UNAUTHORIZED
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    response.data = {"detail": code, "message": message}
    return response
