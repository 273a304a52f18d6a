from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from paneldump import __version__
from paneldump.api.routes import health, parse
from paneldump.config import get_settings
from paneldump.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(get_settings().log_level)
    yield


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="paneldump resources",
        version=__version__,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.cors_origins],
            allow_methods=["*"],
            allow_headers=["*"],
            allow_credentials=True,
        )

    # the plugin's resource routes, plus the bare path for direct calls
    app.include_router(parse.router, prefix=settings.plugin_resource_prefix, tags=["parse"])
    app.include_router(parse.router, prefix=settings.api_prefix, tags=["parse"])
    app.include_router(health.router, tags=["health"])
    return app


app = create_app()
