"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from coverletter.core.constants import (
    BASE_DELAY,
    CLAUSE_DELAY,
    PERIODIC_DELAY,
    PERIODIC_EVERY,
    SENTENCE_END_DELAY,
    WHITESPACE_DELAY,
)


class Settings(BaseSettings):
    deepseek_api_key: str = ""
    deepseek_base_url: str = "https://api.deepseek.com"
    deepseek_model: str = "deepseek-chat"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2048
    llm_timeout_seconds: float = 60.0
    relay_pacing_enabled: bool = True
    relay_sentence_end_delay: float = SENTENCE_END_DELAY
    relay_clause_delay: float = CLAUSE_DELAY
    relay_whitespace_delay: float = WHITESPACE_DELAY
    relay_periodic_delay: float = PERIODIC_DELAY
    relay_periodic_every: int = PERIODIC_EVERY
    relay_base_delay: float = BASE_DELAY
    langfuse_secret_key: str = ""
    langfuse_public_key: str = ""
    langfuse_host: str = "https://cloud.langfuse.com"
    allowed_origins: str = "http://localhost:3000,http://localhost:8000"
    log_level: str = "INFO"
    log_format: str = "console"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


_settings: Settings | None = None


def load_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
