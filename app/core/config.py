from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Base
    APP_ENV: str = "dev"  # dev | test | staging | prod
    APP_NAME: str = "Flashcards Study API"
    APP_VERSION: str = "0.1.0"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:4321"

    # Database
    DATABASE_URL: str = "sqlite:///./flashcards.db"

    # Auth (tokens issued by the external provider)
    AUTH_JWT_SECRET: str = "change_me"
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: str = "authenticated"  # "" = no audience check

    # Identity: pseudo-id when the users table refuses the insert (dev only)
    IDENTITY_FALLBACK_ENABLED: bool = True

    # AI (OpenAI-compatible endpoint, OpenRouter by default)
    AI_API_KEY: str = ""
    AI_BASE_URL: str = "https://openrouter.ai/api/v1"
    AI_MODEL: str = "anthropic/claude-3-haiku:beta"
    AI_TIMEOUT_SECONDS: float = 30.0

    # AI candidates waiting for review
    CANDIDATE_TTL_MINUTES: int = 30

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
