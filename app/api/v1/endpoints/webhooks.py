from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.v1.deps.services import get_reconciliation_engine, get_token_codec
from app.core import responses
from app.schemas import AppleWebhookRequest, WebhookResponse
from app.services.reconciliation import ReconciliationEngine
from app.services.token_codec import TokenCodec

router = APIRouter()


@router.post(
    "/apple",
    response_model=WebhookResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": responses.InternalServerErrorResponse},
    },
    summary="App Store Server Notifications V2",
    description=(
        "Apply a notification to its subscription. Malformed notifications are "
        "rejected with 400 so Apple retries them."
    ),
)
async def apple_notification(
    body: AppleWebhookRequest,
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    engine: Annotated[ReconciliationEngine, Depends(get_reconciliation_engine)],
):
    notification_type, subscription = await engine.handle_signed_notification(
        body.signed_payload, codec
    )

    return WebhookResponse(notification_type=notification_type, subscription=subscription)
