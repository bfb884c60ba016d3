"""Logging filters for enriching log records with request context.

Adding ``RequestIdFilter`` to a handler (see ``LOGGING`` in
``config.settings``) gives every record a ``request_id`` attribute, so the
JSON formatter can correlate orchestrator, gateway-client and access log
lines of the same request.
"""

from logging import Filter, LogRecord

from .middleware import REQUEST_ID_CTX


class RequestIdFilter(Filter):
    """Attach a ``request_id`` attribute to log records.

    The value comes from ``REQUEST_ID_CTX`` set by ``RequestIdMiddleware``.
    Outside a request (management commands, startup) it is ``"-"``.
    Records that already carry a ``request_id`` (passed via ``extra``) keep it.
    """

    def filter(self, record: LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = REQUEST_ID_CTX.get()
        return True
