"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "SUBCONIC Backend"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 10000
    cors_origins: List[str] = ["*"]
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    llm_timeout_ms: int = 90000
    llm_temperature: float = 0.7
    llm_top_p: float | None = None
    llm_max_output_tokens: int = 2000
    prompt_template: Literal["structured", "sectioned"] = "structured"
    plan_required_fields: Optional[List[str]] = None
    plan_failure_policy: Literal["error", "fallback"] = "error"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "subconic"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
