from pydantic import BaseModel


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class BadRequestResponse(ErrorResponse):
    error: str = "Bad request"


class InternalServerErrorResponse(ErrorResponse):
    error: str = "Failed to persist subscriptions"


class BadGatewayResponse(ErrorResponse):
    error: str = "Upstream verification failed"


class ServiceUnavailableResponse(ErrorResponse):
    error: str = "Store client not configured"
