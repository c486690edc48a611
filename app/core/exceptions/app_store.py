from app.core.exceptions.domain import UpstreamError


class AppStoreException(UpstreamError):
    """
    Exception related to App Store operations
    """

    def __init__(self, message, exception: Exception | None = None):
        super().__init__(message, exception)


class AppStoreClientNotInitializedException(AppStoreException):
    """
    Exception raised when App Store credentials are not configured
    """

    def __init__(
        self,
        message="App Store client not initialized",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class AppStoreNotFoundException(AppStoreException):
    """
    Exception raised when the App Store resource is not found
    """

    def __init__(
        self,
        message="App Store resource not found",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class AppStoreInvalidCredentialsException(AppStoreException):
    """
    Exception raised when the App Store credentials are invalid
    """

    def __init__(
        self,
        message="App Store credentials are invalid",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class AppStoreRateLimitExceededException(AppStoreException):
    """
    Exception raised when the App Store connection is rate-limited
    """

    def __init__(
        self,
        message="App Store connection rate-limited",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class AppStoreConnectionErrorException(AppStoreException):
    """
    Exception raised when there is a connection error with the App Store
    """

    def __init__(
        self,
        message="App Store connection error",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class AppStoreReceiptException(AppStoreException):
    """
    Exception raised when verifyReceipt answers with a non-zero status
    """

    def __init__(
        self,
        message="App Store rejected the receipt",
        status: int | None = None,
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)
        self.status = status
