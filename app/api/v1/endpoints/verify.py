from typing import Annotated

from fastapi import APIRouter, Depends, status
from loguru import logger

from app.api.v1.deps.services import (
    get_app_store_gateway,
    get_google_play_gateway,
    get_reconciliation_engine,
    get_token_codec,
)
from app.core import responses
from app.core.exceptions.app_store import AppStoreException
from app.schemas import (
    AndroidPurchaseRequest,
    AndroidVerificationResponse,
    AppleTransactionRequest,
    AppleVerificationResponse,
    DecodeTokenRequest,
    DecodeTokenResponse,
    LegacyReceiptRequest,
    LegacyReceiptResponse,
)
from app.services.payments.app_store import AppStoreGateway
from app.services.payments.google_play import GooglePlayGateway
from app.services.reconciliation import ReconciliationEngine, parse_environment
from app.services.token_codec import TokenCodec

router = APIRouter()

UPSTREAM_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": responses.InternalServerErrorResponse},
    status.HTTP_502_BAD_GATEWAY: {"model": responses.BadGatewayResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": responses.ServiceUnavailableResponse},
}


@router.post(
    "/verify/apple",
    response_model=AppleVerificationResponse,
    responses=UPSTREAM_RESPONSES,
    summary="Verify an App Store transaction",
    description=(
        "Look up a transaction with the App Store Server API, decode its signed "
        "transaction info and record the subscription as active."
    ),
)
async def verify_apple_transaction(
    body: AppleTransactionRequest,
    gateway: Annotated[AppStoreGateway, Depends(get_app_store_gateway)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    engine: Annotated[ReconciliationEngine, Depends(get_reconciliation_engine)],
):
    data = await gateway.fetch_transaction(body.transaction_id)
    decoded = codec.decode(data.get("signedTransactionInfo"))

    if decoded is None:
        logger.error(f"App Store returned undecodable transaction info for {body.transaction_id}")
        raise AppStoreException("App Store returned malformed signedTransactionInfo")

    subscription = await engine.record_transaction(decoded)

    return AppleVerificationResponse(
        environment=subscription.environment,
        data=data,
        decoded=decoded,
        subscription=subscription,
    )


@router.post(
    "/verify/receipt",
    response_model=LegacyReceiptResponse,
    responses=UPSTREAM_RESPONSES,
    summary="Verify a legacy app receipt",
    description="Verify a base64 receipt with verifyReceipt and record its newest subscription.",
)
async def verify_legacy_receipt(
    body: LegacyReceiptRequest,
    gateway: Annotated[AppStoreGateway, Depends(get_app_store_gateway)],
    engine: Annotated[ReconciliationEngine, Depends(get_reconciliation_engine)],
):
    data = await gateway.verify_legacy_receipt(body.receipt_data)
    subscription = await engine.record_legacy_receipt(data)

    return LegacyReceiptResponse(
        environment=parse_environment(data.get("environment"), gateway.current_environment),
        data=data,
        subscription=subscription,
    )


@router.post(
    "/verify/android",
    response_model=AndroidVerificationResponse,
    responses=UPSTREAM_RESPONSES,
    summary="Verify a Google Play purchase",
    description="One-time products are verified only; subscriptions are also recorded.",
)
async def verify_android_purchase(
    body: AndroidPurchaseRequest,
    gateway: Annotated[GooglePlayGateway, Depends(get_google_play_gateway)],
    engine: Annotated[ReconciliationEngine, Depends(get_reconciliation_engine)],
):
    if body.is_subscription:
        data = await gateway.verify_subscription(body.product_id, body.token)
    else:
        data = await gateway.verify_product(body.product_id, body.token)

    subscription = await engine.record_android_purchase(
        body.product_id, body.token, data, body.is_subscription
    )

    return AndroidVerificationResponse(data=data, subscription=subscription)


@router.post(
    "/decode",
    response_model=DecodeTokenResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": responses.BadRequestResponse}},
    summary="Decode a signed token",
    description="Return the claims of a JWS without verifying its signature.",
)
async def decode_token(
    body: DecodeTokenRequest,
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
):
    return DecodeTokenResponse(decoded=codec.decode_or_raise(body.token))
