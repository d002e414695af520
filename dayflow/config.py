from __future__ import annotations

import logging
import os

from pydantic import BaseModel, ConfigDict


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    openai_temperature: float = float(os.getenv("OPENAI_TEMPERATURE", 0.2))
    openai_api_host: str = os.getenv(
        "OPENAI_API_HOST", "https://api.openai.com/v1"
    )

    llm_provider: str = os.getenv("LLM_PROVIDER", "openai")
    openrouter_api_key: str = os.getenv("OPENROUTER_API_KEY", "")
    openrouter_api_host: str = os.getenv(
        "OPENROUTER_API_HOST", "https://openrouter.ai/api/v1"
    )

    project_timezone: str = os.getenv("PROJECT_TIMEZONE", "UTC")

    google_client_id: str = os.getenv("GOOGLE_CLIENT_ID", "")
    allow_anonymous: bool = _env_flag("ALLOW_ANONYMOUS")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    sqlite_db_path: str = os.getenv("SQLITE_DB_PATH", "dayflow.db")

    def model_post_init(self, __context: dict[str, object]) -> None:
        logger = logging.getLogger(__name__)
        provider = (self.llm_provider or "openai").lower()
        if provider == "openai" and not self.openai_api_key:
            logger.warning(
                "OPENAI_API_KEY is not configured. Smart suggestions will be unavailable."
            )
        if provider == "openrouter" and not (
            self.openrouter_api_key or self.openai_api_key
        ):
            logger.warning(
                "OpenRouter credentials are missing. Smart suggestions will be unavailable."
            )
        if not self.google_client_id and not self.allow_anonymous:
            logger.warning(
                "GOOGLE_CLIENT_ID is not configured and anonymous access is off; "
                "every request will be rejected."
            )


settings = Settings()
