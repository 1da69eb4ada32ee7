"""Logfire configuration and instrumentation."""

import logfire
from fastapi import FastAPI

from bi_assistant.core.config import settings


def setup_logfire() -> None:
    """Configure logfire; spans are only exported when a token is set."""
    logfire.configure(
        token=settings.LOGFIRE_TOKEN,
        service_name=settings.LOGFIRE_SERVICE_NAME,
        environment=settings.LOGFIRE_ENVIRONMENT,
        send_to_logfire="if-token-present",
        console=False,
    )


def instrument_app(app: FastAPI) -> None:
    """Instrument the FastAPI application."""
    logfire.instrument_fastapi(app)


def instrument_httpx() -> None:
    """Instrument outgoing HTTP calls (content generation endpoint)."""
    logfire.instrument_httpx()


def instrument_openai() -> None:
    """Instrument the OpenAI SDK used by the langchain client."""
    if settings.LLM_PROVIDER == "openai":
        logfire.instrument_openai()
