from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.v1.deps.services import get_app_store_gateway, get_reconciliation_engine
from app.core import responses
from app.schemas import SubscriptionGroupResponse, SubscriptionListResponse
from app.services.payments.app_store import AppStoreGateway
from app.services.reconciliation import ReconciliationEngine

router = APIRouter()


@router.get(
    "/subscriptions",
    response_model=SubscriptionListResponse,
    summary="List subscriptions",
    description="All recorded subscriptions, one per original transaction id.",
)
async def list_subscriptions(
    engine: Annotated[ReconciliationEngine, Depends(get_reconciliation_engine)],
):
    return SubscriptionListResponse(data=await engine.list_subscriptions())


@router.get(
    "/subscription-groups/{group_id}/subscriptions",
    response_model=SubscriptionGroupResponse,
    responses={
        status.HTTP_502_BAD_GATEWAY: {"model": responses.BadGatewayResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": responses.ServiceUnavailableResponse},
    },
    summary="List the subscriptions of an App Store subscription group",
)
async def subscription_group_subscriptions(
    group_id: str,
    gateway: Annotated[AppStoreGateway, Depends(get_app_store_gateway)],
):
    return SubscriptionGroupResponse(
        data=await gateway.get_subscription_group_subscriptions(group_id)
    )
