"""Helpers turning validation and domain errors into API responses."""

from pydantic import ValidationError
from rest_framework.response import Response


def error_response(code: str, message: str, status_code: int) -> Response:
    return Response({"detail": code, "message": message}, status=status_code)


def validation_error_response(exc: ValidationError) -> Response:
    """400 with the first validation problem, e.g. ``quantity: Input should be greater than 0``."""
    first = exc.errors()[0]
    where = ".".join(str(p) for p in first.get("loc", ())) or "body"
    return error_response("INVALID_INPUT", f"{where}: {first.get('msg', 'invalid value')}", 400)


def domain_error_response(exc) -> Response:
    """Response for an ``apps.orders.domain.OrderError`` (or subclass)."""
    return error_response(str(exc), exc.message, exc.http_status)
