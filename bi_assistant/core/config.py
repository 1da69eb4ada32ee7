"""Application configuration using Pydantic BaseSettings."""

from pathlib import Path
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def find_env_file() -> Path | None:
    """Find .env file in current or parent directories."""
    current = Path.cwd()
    for path in [current, current.parent]:
        env_file = path / ".env"
        if env_file.exists():
            return env_file
    return None


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_ignore_empty=True,
        extra="ignore",
    )

    # === Project ===
    PROJECT_NAME: str = "bi_assistant"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "local", "staging", "production"] = "local"

    # === Logfire ===
    LOGFIRE_TOKEN: str | None = None
    LOGFIRE_SERVICE_NAME: str = "bi_assistant"
    LOGFIRE_ENVIRONMENT: str = "development"

    # === Content generation ===
    LLM_PROVIDER: Literal["vertex", "openai"] = "vertex"
    AI_MODEL: str = "gemini-2.0-flash"
    AI_TEMPERATURE: float = 0.7
    AI_MAX_OUTPUT_TOKENS: int = 4096
    AI_TOP_P: float = 0.95

    # OpenAI (langchain client); OPENAI_MODEL replaces per-agent model names
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4.1"

    # Vertex AI cloud function
    VERTEX_AI_ENDPOINT: str = ""
    VERTEX_CF_AUTH_TOKEN: str = ""

    # === Agent runtime ===
    AGENT_MAX_TURNS: int = 10
    GENERATION_TIMEOUT_SECONDS: float = 60.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def GENERATE_CONTENT_URL(self) -> str:
        """Build the cloud function URL for content generation."""
        return f"{self.VERTEX_AI_ENDPOINT.rstrip('/')}/generate_content"


settings = Settings()
