# mealplanner/config/settings.py
"""
Application configuration using pydantic-settings (pydantic v2 style).

This centralizes environment-driven configuration. Prefer reading values
from environment variables; do not rely on os.getenv inline defaults which
can silently hide missing configuration.
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application configuration loaded from environment.

    Relevant environment variables:
      - OPENAI_API_KEY / OPENAI_MODEL / OPENAI_BASE_URL
      - AZURE_OPENAI_ENDPOINT / AZURE_OPENAI_API_KEY
      - AZURE_OPENAI_DEPLOYMENT_NAME / AZURE_OPENAI_API_VERSION
      - RATE_LIMIT_RPM / RATE_LIMIT_WINDOW_SECONDS
      - SHOPPING_LIST_COVERAGE_MODE
      - LOG_LEVEL
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: Optional[str] = None
    openai_timeout_seconds: float = 60.0
    openai_max_attempts: int = Field(default=3, ge=1)
    openai_max_tokens: int = 4000

    # Azure OpenAI (takes precedence when endpoint + deployment are set)
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_key: Optional[str] = None
    azure_openai_deployment_name: Optional[str] = None
    azure_openai_api_version: str = "2025-01-01-preview"

    # Sampling temperatures per operation
    plan_temperature: float = 0.7
    meal_temperature: float = 0.8
    shopping_list_temperature: float = 0.5
    classifier_temperature: float = 0.3
    chat_temperature: float = 0.7
    chat_max_tokens: int = 500

    # Rate limiting
    rate_limit_rpm: int = Field(default=60, ge=1)
    rate_limit_window_seconds: float = Field(default=3600.0, gt=0)
    rate_limit_max_keys: int = Field(default=10000, ge=1)

    # Shopping list coverage verification
    shopping_list_coverage_mode: Literal["off", "warn", "strict"] = "warn"
    shopping_list_coverage_cutoff: float = Field(default=0.8, ge=0.0, le=1.0)

    log_level: str = "INFO"

    # --- validators / post-init checks ---
    @field_validator(
        "openai_api_key", "azure_openai_api_key", "azure_openai_endpoint"
    )
    @classmethod
    def maybe_strip(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @property
    def use_azure(self) -> bool:
        return bool(self.azure_openai_endpoint and self.azure_openai_deployment_name)

    def model_post_init(self, __context) -> None:  # pydantic v2 hooks
        """
        Light-weight notice that runs after model is constructed.
        Uses logging (not print) so messages show up in server logs.
        """
        if self.use_azure:
            if not self.azure_openai_api_key:
                logger.warning(
                    "AZURE_OPENAI_ENDPOINT is set but AZURE_OPENAI_API_KEY is missing. "
                    "Meal generation calls will fail."
                )
        elif not self.openai_api_key:
            logger.info(
                "OPENAI_API_KEY not set. Meal generation features will be unavailable."
            )


# single exporter
settings = Settings()
