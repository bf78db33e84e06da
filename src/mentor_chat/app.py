from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mentor_chat.api.v1.routers import health, messages, ws
from mentor_chat.application.exceptions import (
    AppError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StoreError,
    UnauthenticatedError,
    ValidationError,
)
from mentor_chat.config import settings

logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[AppError], int] = {
    NotFoundError: 404,
    ForbiddenError: 403,
    UnauthenticatedError: 401,
    ConflictError: 409,
    ValidationError: 422,
    StoreError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    yield

    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Mentor Chat",
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

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        status_code = next(
            (code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)),
            500,
        )
        if status_code >= 500:
            logger.warning("Request failed: %s", exc.detail)
        return JSONResponse(status_code=status_code, content={"detail": exc.detail})
