from app.core.exceptions.domain import UpstreamError


class GooglePlayException(UpstreamError):
    """
    Exception related to Google Play Developer API operations
    """

    def __init__(self, message, exception: Exception | None = None):
        super().__init__(message, exception)


class GooglePlayNotConfiguredException(GooglePlayException):
    """
    Exception raised when no Google service account is configured
    """

    def __init__(
        self,
        message="Google Play service account not configured",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class GooglePlayAuthenticationException(GooglePlayException):
    """
    Exception raised when an access token cannot be obtained
    """

    def __init__(
        self,
        message="Google Play authentication failed",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class GooglePlayPurchaseNotFoundException(GooglePlayException):
    """
    Exception raised when the purchase token is unknown to Google Play
    """

    def __init__(
        self,
        message="Google Play purchase not found",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class GooglePlayConnectionErrorException(GooglePlayException):
    """
    Exception raised when the Android Publisher API call fails
    """

    def __init__(
        self,
        message="Google Play connection error",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)
