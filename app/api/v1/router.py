from fastapi import APIRouter

from app.api.v1.endpoints import subscriptions, verify, webhooks

api_v1_router = APIRouter(prefix="/api/v1")


api_v1_router.include_router(
    verify.router,
    tags=["Verification"],
)

api_v1_router.include_router(
    webhooks.router,
    prefix="/webhooks",
    tags=["Webhooks"],
)

api_v1_router.include_router(
    subscriptions.router,
    tags=["Subscriptions"],
)
