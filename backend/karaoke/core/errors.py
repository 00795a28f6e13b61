"""
Error taxonomy shared by every service.

Services raise these; the API layer turns them into JSON responses using
``status_code`` and ``message``. Messages are short and safe to show to users.
"""


class KaraokeError(Exception):
    """Base class for all expected, user-reportable failures."""
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(KaraokeError):
    status_code = 404
    default_message = "Not found"


class ConflictError(KaraokeError):
    """Unique-constraint violation or a concurrent write that lost the race."""
    status_code = 409
    default_message = "Conflicting update, please try again"


class InvalidArgumentError(KaraokeError):
    status_code = 400
    default_message = "Invalid request"


class InvalidStateError(KaraokeError):
    """Illegal status transition."""
    status_code = 409
    default_message = "Action not allowed right now"


class PermissionDeniedError(KaraokeError):
    status_code = 403
    default_message = "You are not allowed to do that"


class ExpiredError(KaraokeError):
    status_code = 410
    default_message = "Invitation has expired"


class ExhaustedError(KaraokeError):
    status_code = 410
    default_message = "Invitation has been fully used"


class UpstreamError(KaraokeError):
    """The video lookup service failed. Keeps the upstream HTTP status."""
    status_code = 502
    default_message = "Video search failed"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ServiceNotConfiguredError(KaraokeError):
    status_code = 500
    default_message = "Service is not configured"


class RequestTimeoutError(KaraokeError):
    """Outbound call exceeded the configured timeout. Safe to retry."""
    status_code = 504
    default_message = "Request timed out, please try again"
