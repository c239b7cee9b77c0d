"""Application settings.

Values come from the process environment, then `.env`. Names are the
upper-case aliases below (DATABASE_URL, SUPABASE_ISSUER, ...).

The three Supabase settings are required in every environment, tests
included; loading fails without them.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LLM_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_SUMMARY_MODEL = "google/gemini-3-flash-preview"
DEFAULT_CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"

REQUIRED_AUTH_SETTINGS = ("SUPABASE_JWKS_URL", "SUPABASE_ISSUER", "SUPABASE_AUDIENCES")


class Environment(str, Enum):
    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    scribe_env: Environment = Field(default=Environment.LOCAL, alias="SCRIBE_ENV")
    database_url: str = Field(alias="DATABASE_URL")
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # Session credentials (dashboard)
    supabase_jwks_url: str | None = Field(default=None, alias="SUPABASE_JWKS_URL")
    supabase_issuer: str | None = Field(default=None, alias="SUPABASE_ISSUER")
    supabase_audiences: str | None = Field(default=None, alias="SUPABASE_AUDIENCES")

    # Summarization
    llm_gateway_url: str = Field(default=DEFAULT_LLM_GATEWAY_URL, alias="LLM_GATEWAY_URL")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    summary_model: str = Field(default=DEFAULT_SUMMARY_MODEL, alias="SUMMARY_MODEL")
    llm_timeout_s: int = Field(default=60, alias="LLM_TIMEOUT_S")

    default_language: str = Field(default="en-US", alias="DEFAULT_LANGUAGE")
    cors_allow_headers: str = Field(default=DEFAULT_CORS_ALLOW_HEADERS, alias="CORS_ALLOW_HEADERS")

    @model_validator(mode="after")
    def require_auth_settings(self) -> "Settings":
        values = {
            "SUPABASE_JWKS_URL": self.supabase_jwks_url,
            "SUPABASE_ISSUER": self.supabase_issuer,
            "SUPABASE_AUDIENCES": self.supabase_audiences,
        }
        missing = [name for name in REQUIRED_AUTH_SETTINGS if not values[name]]
        if missing:
            raise ValueError(f"Missing required Supabase auth settings: {', '.join(missing)}")
        return self

    @property
    def audience_list(self) -> list[str]:
        """SUPABASE_AUDIENCES split on commas, blanks dropped."""
        raw = self.supabase_audiences or ""
        return [part.strip() for part in raw.split(",") if part.strip()]

    @property
    def normalized_issuer(self) -> str | None:
        return self.supabase_issuer.rstrip("/") if self.supabase_issuer else None


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process.

    Raises:
        ValidationError: A required setting is missing or malformed.
    """
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
