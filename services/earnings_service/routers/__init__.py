"""Routers package."""

from services.earnings_service.routers.admin import router as admin_router
from services.earnings_service.routers.admin_courses import (
    router as admin_courses_router,
)
from services.earnings_service.routers.admin_tasks import router as admin_tasks_router
from services.earnings_service.routers.auth import router as auth_router
from services.earnings_service.routers.courses import router as courses_router
from services.earnings_service.routers.payments import router as payments_router
from services.earnings_service.routers.tasks import router as tasks_router
from services.earnings_service.routers.wallet import router as wallet_router
from services.earnings_service.routers.webhooks import router as webhooks_router

__all__ = [
    "admin_courses_router",
    "admin_router",
    "admin_tasks_router",
    "auth_router",
    "courses_router",
    "payments_router",
    "tasks_router",
    "wallet_router",
    "webhooks_router",
]
