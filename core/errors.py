"""
Error taxonomy for staticserve.

Startup errors abort the process; request errors are converted into an HTTP
status response at the request boundary.
"""


class StaticServerError(Exception):
    """Base class for all staticserve errors."""


class ConfigError(StaticServerError):
    """Invalid configuration or a listener that cannot be bound."""


class HandlerError(StaticServerError):
    """Conflicting or invalid template handler registration."""


class RequestError(StaticServerError):
    """An error that ends a single request with an HTTP status."""

    status_code = 500


class NotFound(RequestError):
    status_code = 404


class TraversalRejected(NotFound):
    """The request path resolves outside the document root."""


class RenderError(RequestError):
    status_code = 500
