from fastapi import FastAPI
from fastapi.concurrency import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.api.routes import api_router
from app.core.config import Environment, settings
from app.core.errors import setup_exception_handlers
from app.core.logger import configure_uvicorn_logging, setup_logger, shutdown_logger
from app.middleware.logging import LoggingMiddleware
from app.repos.subscription_store import SubscriptionStore
from app.services.payments.app_store import AppStoreGateway
from app.services.payments.google_play import GooglePlayGateway
from app.services.reconciliation import ReconciliationEngine
from app.services.token_codec import TokenCodec


async def _init_services(app: FastAPI):
    """Build the services the request handlers depend on"""

    store = SubscriptionStore(settings.subscriptions_file)
    logger.info(f"Subscription store at {store.path}")

    app.state.subscription_store = store
    app.state.reconciliation_engine = ReconciliationEngine(
        store, default_environment=settings.apple_environment
    )
    app.state.token_codec = TokenCodec()
    app.state.app_store_gateway = AppStoreGateway()
    app.state.google_play_gateway = GooglePlayGateway()


async def _shutdown_services(app: FastAPI):
    """Close the store gateways gracefully"""

    await app.state.app_store_gateway.close_client()
    await app.state.google_play_gateway.close()
    logger.success("Store gateways closed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""

    setup_logger()
    configure_uvicorn_logging()

    logger.info("Initializing resources...")
    await _init_services(app)
    logger.success("Resources initialized.")

    yield  # Application runs here

    logger.info("Cleaning up resources...")
    await _shutdown_services(app)
    logger.success("Resources cleaned up.")
    shutdown_logger()


ALLOWED_ENVIRONMENTS = {Environment.LOCAL, Environment.DEV, Environment.STG}

app = FastAPI(
    title=settings.app_title,
    version=settings.app_version,
    description=settings.app_description,
    openapi_url=("/openapi.json" if settings.current_environment in ALLOWED_ENVIRONMENTS else None),
    docs_url="/docs" if settings.current_environment in ALLOWED_ENVIRONMENTS else None,
    redoc_url="/redoc" if settings.current_environment in ALLOWED_ENVIRONMENTS else None,
    lifespan=lifespan,
    generate_unique_id_function=lambda route: f"{route.tags[0]}-{route.name}",
)

# Set CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Set logging middleware
app.add_middleware(LoggingMiddleware)

setup_exception_handlers(app)

# Include API router
app.include_router(api_router)
