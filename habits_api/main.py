"""
Точка входа Habit Tracker API

create_app собирает приложение: пул соединений, сервис токенов,
хеширование паролей, middleware и обработчики ошибок.
Запуск: uvicorn habits_api.main:app
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from habits_api.audit import configure_audit_logging
from habits_api.auth import PasswordHasher
from habits_api.config import Settings, get_settings
from habits_api.database import Database
from habits_api.errors import register_exception_handlers
from habits_api.logging_config import setup_logging
from habits_api.metrics import PrometheusMiddleware
from habits_api.routers import auth, habits, health, tags, users
from habits_api.security import (
    RateLimitMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from habits_api.tokens import TokenService

logger = logging.getLogger("habits_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    if settings.database_auto_create:
        app.state.database.create_all()
    logger.info("Habit Tracker API started (environment: %s)", settings.environment)
    yield
    app.state.database.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    setup_logging(settings)
    configure_audit_logging(
        enabled=settings.audit_log_enabled,
        actions=settings.audit_action_set,
        log_path=settings.audit_log_path,
    )
    if not settings.jwt_secret:
        logger.warning("JWT_SECRET is not set: registration and login will fail")

    app = FastAPI(
        title="Habit Tracker API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = Database(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    app.state.token_service = TokenService(
        settings.jwt_secret,
        ttl=timedelta(minutes=settings.jwt_expires_minutes),
        algorithm=settings.jwt_algorithm,
    )
    app.state.password_hasher = PasswordHasher(
        scheme=settings.password_hash_scheme, bcrypt_rounds=settings.bcrypt_rounds
    )

    register_exception_handlers(app)

    # Последний добавленный middleware выполняется первым
    if settings.rate_limit_enabled:
        app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.rate_limit_per_minute)
    app.add_middleware(SecurityHeadersMiddleware)
    if settings.metrics_enabled:
        app.add_middleware(PrometheusMiddleware)
    if settings.cors_origin_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origin_list,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
        )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(health.router)
    if settings.metrics_enabled:
        app.include_router(health.metrics_router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(habits.router)
    app.include_router(tags.router)

    return app


app = create_app()
