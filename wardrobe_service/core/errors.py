"""
Service Errors
Error taxonomy shared by the suggestion pipeline and the catalog routes.
"""


class ServiceError(Exception):
    """Base error carrying a user-facing message and an HTTP status."""
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidInput(ServiceError):
    """Client-correctable input error. Never retried."""
    status_code = 400


class ConfigurationError(ServiceError):
    """Operator-fixable configuration problem (e.g. missing credential)."""
    status_code = 500


class UpstreamError(ServiceError):
    """Model provider or transport failure, surfaced as-is."""
    status_code = 500


class NotFound(ServiceError):
    status_code = 404


class StoreUnavailable(ServiceError):
    """Datastore, object store or identity backend not reachable."""
    status_code = 503
