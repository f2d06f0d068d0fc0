from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = "You are a friendly and helpful chat assistant."

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Storage. Unset means every /conversations route degrades to "not configured".
    DATABASE_URL: Optional[str] = None
    DATABASE_ECHO: bool = False

    # Model provider
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_CHAT_MODEL: str = "gpt-4o-mini"
    CHAT_SYSTEM_PROMPT: str = DEFAULT_SYSTEM_PROMPT
    CHAT_MAX_DURATION: float = 30.0
    # Serve the deterministic fixture stream instead of calling OpenAI
    CHAT_MOCK: bool = False

    # Langfuse credentials
    LANGFUSE_HOST: Optional[str] = None
    LANGFUSE_SECRET_KEY: Optional[str] = None
    LANGFUSE_PUBLIC_KEY: Optional[str] = None

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    @property
    def storage_configured(self) -> bool:
        return bool(self.DATABASE_URL)

    @property
    def provider_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY)

    @property
    def langfuse_configured(self) -> bool:
        return bool(self.LANGFUSE_SECRET_KEY and self.LANGFUSE_PUBLIC_KEY)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
