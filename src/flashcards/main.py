from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.cors import CORSMiddleware

from .config import Settings, settings
from .errors import InvalidQualityError, NotFoundError
from .logging import configure_logging, logger
from .middleware import AccessLogAndMetricsMiddleware, RequestIDMiddleware
from .routers import cards, decks, health
from .store import Store, create_store


async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": f"{exc.kind} not found", "kind": exc.kind, "id": exc.id},
    )


async def _invalid_quality_handler(request: Request, exc: InvalidQualityError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _domain_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    # リクエストモデル以外（ドメインモデル再検証）で起きた検証エラー
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(include_url=False, include_context=False)},
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    app.state.store.close()


def create_app(store: Store | None = None, config: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    ストアは引数で注入でき、省略時は設定から生成する。ハンドラは
    `app.state.store` を依存性経由で受け取る。
    """
    config = config or settings
    configure_logging(config)
    app = FastAPI(title="Flashcards API", version="0.1.0", lifespan=_lifespan)
    app.state.store = store if store is not None else create_store(config)

    configured_origins = list(config.allowed_cors_origins)
    allow_credentials = bool(configured_origins)
    if not configured_origins:
        configured_origins = ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=configured_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # 後から追加したミドルウェアが外側: RequestID → AccessLog → CORS → ルータ
    app.add_middleware(AccessLogAndMetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(InvalidQualityError, _invalid_quality_handler)
    app.add_exception_handler(ValidationError, _domain_validation_handler)

    app.include_router(health.router)
    app.include_router(decks.router, prefix="/api/decks")
    app.include_router(cards.router, prefix="/api/cards")

    logger.info("app_created", environment=config.environment, store_backend=config.store_backend)
    return app


def run() -> None:
    """Serve the app with uvicorn using HOST/PORT from settings."""
    uvicorn.run(create_app(), host=settings.host, port=settings.port, log_config=None)
