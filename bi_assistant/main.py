"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bi_assistant import __version__
from bi_assistant.api.router import api_router
from bi_assistant.core.config import settings
from bi_assistant.core.logfire_setup import (
    instrument_app,
    instrument_httpx,
    instrument_openai,
    setup_logfire,
)
from bi_assistant.core.logging_config import setup_logging
from bi_assistant.core.middleware import RequestContextMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup and shutdown events."""
    setup_logging()
    instrument_httpx()
    instrument_openai()
    yield


# Environments where API docs should be visible
SHOW_DOCS_ENVIRONMENTS = ("local", "staging", "development")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    show_docs = settings.ENVIRONMENT in SHOW_DOCS_ENVIRONMENTS

    app = FastAPI(
        title=settings.PROJECT_NAME,
        summary="Chat assistant for a business-intelligence product",
        version=__version__,
        openapi_url="/openapi.json" if show_docs else None,
        docs_url="/docs" if show_docs else None,
        redoc_url="/redoc" if show_docs else None,
        openapi_tags=[
            {"name": "health", "description": "Health check endpoints"},
            {"name": "assistant", "description": "Run user queries through the agent graph"},
        ],
        lifespan=lifespan,
    )

    setup_logfire()
    instrument_app(app)

    app.add_middleware(RequestContextMiddleware)
    app.include_router(api_router)

    return app


app = create_app()
