"""FastAPI application for the Earnings Service."""

from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.errors import register_error_handlers
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from libs.common.supabase import IdentityGateway, StorageService
from libs.db.config import create_engine_from_settings, create_session_factory
from services.earnings_service.paystack_client import PaystackClient
from services.earnings_service.routers import (
    admin_courses_router,
    admin_router,
    admin_tasks_router,
    auth_router,
    courses_router,
    payments_router,
    tasks_router,
    wallet_router,
    webhooks_router,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the engine and outbound clients for the life of the process."""
    settings = get_settings()
    engine = create_engine_from_settings(settings)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.identity = IdentityGateway(settings)
    app.state.storage = StorageService(settings)
    app.state.paystack = PaystackClient(settings)
    logger.info("Earnings service started (%s)", settings.ENVIRONMENT)
    try:
        yield
    finally:
        await app.state.paystack.aclose()
        await engine.dispose()
        logger.info("Earnings service stopped")


def create_app() -> FastAPI:
    """Create and configure the Earnings Service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="Earnio Earnings Service",
        version="0.1.0",
        description="Signup fees, referrals, task rewards, withdrawals and paid courses.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Structured logging + request tracing
    add_observability_middleware(app)
    register_error_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "earnings"}

    app.include_router(auth_router)
    app.include_router(payments_router)
    app.include_router(webhooks_router)
    app.include_router(wallet_router)
    app.include_router(tasks_router)
    app.include_router(courses_router)
    app.include_router(admin_router)
    app.include_router(admin_courses_router)
    app.include_router(admin_tasks_router)

    return app


app = create_app()
