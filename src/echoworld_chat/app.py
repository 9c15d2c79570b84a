from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from echoworld_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from echoworld_chat.api.v1.routers import (
    conversations,
    health,
    messages,
    notifications,
    ws,
)
from echoworld_chat.application.exceptions import (
    AppError,
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PartialFailureError,
    TransientStoreError,
    ValidationError,
)
from echoworld_chat.config import settings
from echoworld_chat.infrastructure.bus.redis_presence import presence_channel_factory
from echoworld_chat.infrastructure.bus.redis_pubsub import (
    RedisPubSubPublisher,
    subscriber_factory,
)
from echoworld_chat.infrastructure.db.session import engine
from echoworld_chat.infrastructure.db.uow import open_uow
from echoworld_chat.realtime.broadcaster import RealtimeBroadcaster

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[AppError], int] = {
    AuthenticationError: 401,
    ForbiddenError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    ValidationError: 422,
    PartialFailureError: 500,
    TransientStoreError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    app.state.redis = redis
    app.state.broadcaster = RealtimeBroadcaster(RedisPubSubPublisher(redis))
    app.state.subscriber_factory = subscriber_factory(redis)
    app.state.presence_factory = presence_channel_factory(redis)
    app.state.uow_factory = open_uow
    logger.info("Redis connection pool created")

    yield

    await redis.aclose()
    await engine.dispose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="EchoWorld Chat",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(notifications.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        status_code = next(
            (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)),
            500,
        )
        if status_code >= 500:
            logger.warning("%s: %s", type(exc).__name__, exc.detail)
        return JSONResponse(status_code=status_code, content={"detail": exc.detail})
