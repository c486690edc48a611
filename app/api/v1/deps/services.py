from fastapi import Request

from app.repos.subscription_store import SubscriptionStore
from app.services.payments.app_store import AppStoreGateway
from app.services.payments.google_play import GooglePlayGateway
from app.services.reconciliation import ReconciliationEngine
from app.services.token_codec import TokenCodec

# Services are built once in the application lifespan and kept on app.state.
# Tests replace these providers through app.dependency_overrides.


def get_subscription_store(request: Request) -> SubscriptionStore:
    return request.app.state.subscription_store


def get_reconciliation_engine(request: Request) -> ReconciliationEngine:
    return request.app.state.reconciliation_engine


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_app_store_gateway(request: Request) -> AppStoreGateway:
    return request.app.state.app_store_gateway


def get_google_play_gateway(request: Request) -> GooglePlayGateway:
    return request.app.state.google_play_gateway
