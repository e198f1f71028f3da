"""Error taxonomy for the site builder.

Raised by the services layer, converted to a uniform
{success: false, error} JSON body at the request boundary
(see register_error_handlers in app/__init__.py).
"""


class SiteError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(SiteError):
    """Missing or malformed request fields."""

    status_code = 400


class NotFoundError(SiteError):
    """Unknown subdomain on lookup or delete."""

    status_code = 404


class ConflictError(SiteError):
    """Subdomain already taken."""

    status_code = 409


class StorageIOError(SiteError):
    """Underlying persistence failed. Never retried automatically."""

    status_code = 500
