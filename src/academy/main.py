"""Builds the academy FastAPI app. ``uvicorn academy.main:app`` serves it."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import APIRouter, FastAPI

from academy.auth.router import router as auth_router
from academy.certificates.router import router as certificates_router
from academy.config import get_settings
from academy.courses.router import router as courses_router
from academy.dashboard.router import router as dashboard_router
from academy.database import close_db, init_db
from academy.enrollment.router import router as enrollment_router
from academy.groups.router import router as groups_router
from academy.health.router import router as health_router
from academy.leaderboard.router import router as leaderboard_router
from academy.middleware import setup_middleware
from academy.notifications.router import router as notifications_router
from academy.redis_client import close_redis, init_redis
from academy.subscriptions.router import router as subscriptions_router
from academy.users.router import router as users_router

logger = structlog.get_logger()

API_ROUTERS: tuple[APIRouter, ...] = (
    auth_router,
    users_router,
    courses_router,
    enrollment_router,
    groups_router,
    subscriptions_router,
    leaderboard_router,
    notifications_router,
    certificates_router,
    dashboard_router,
)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info("academy_started", environment=settings.environment, version=settings.app_version)
    try:
        yield
    finally:
        await close_redis()
        await close_db()
        logger.info("academy_stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Coding Academy API",
        description="Courses, groups, session credits and certificates for a children's coding academy",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    setup_middleware(app, settings)

    app.include_router(health_router, tags=["Health"])
    for router in API_ROUTERS:
        app.include_router(router)
    return app


app = create_app()
