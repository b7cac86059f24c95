from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Base
    APP_ENV: str = "dev"  # dev | staging | prod | test
    APP_NAME: str = "TypeMind API"
    APP_VERSION: str = "0.1.0"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Security
    API_KEY: str = "change_me"
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Database
    DATABASE_URL: str = "sqlite:///./typemind.db"

    # OpenAI (contenu + audio)
    OPENAI_API_KEY: str | None = None
    OPENAI_CONTENT_MODEL: str = "gpt-4o-mini"
    OPENAI_STT_MODEL: str = "whisper-1"
    OPENAI_TTS_MODEL: str = "tts-1"
    EXTERNAL_TIMEOUT_SECONDS: float = 30.0
    MAX_AUDIO_MB: int = 25

    # Scoring
    MIN_ELAPSED_MS: int = 1000  # plancher anti division par ~0

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
