from app.schemas.base import BaseSchema


class HealthCheckResponse(BaseSchema):
    """Liveness probe payload"""

    status: str
    version: str
