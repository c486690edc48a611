from app.core.exceptions.base import AppException

# =============================================================================
# Generic Domain Exceptions (raised by Services, rendered by the API handlers)
# =============================================================================


class ValidationError(AppException):
    """Required input is missing or invalid; nothing was mutated."""

    def __init__(self, message: str = "Validation failed", exception: Exception | None = None):
        super().__init__(message, exception)


class MalformedTokenError(ValidationError):
    """A signed token could not be decoded into claims."""

    def __init__(self, message: str = "Malformed token", exception: Exception | None = None):
        super().__init__(message, exception)


class UpstreamError(AppException):
    """A store gateway call failed; nothing was mutated."""

    def __init__(
        self, message: str = "Upstream verification failed", exception: Exception | None = None
    ):
        super().__init__(message, exception)


class PersistenceError(AppException):
    """The subscription store could not be written."""

    def __init__(
        self, message: str = "Failed to persist subscriptions", exception: Exception | None = None
    ):
        super().__init__(message, exception)
