"""Application configuration"""

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from functools import lru_cache
from pathlib import Path

# Get the project directory (parent of the package directory)
PROJECT_DIR = Path(__file__).parent.parent
ENV_FILE = PROJECT_DIR / ".env"


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "AI Learning Assistant"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./learning_assistant.db"

    # Redis (embedding cache)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Preferred AI provider: "openrouter", "gemini", "groq" or "openai"
    AI_PROVIDER: str = "gemini"

    # OpenRouter (chat only)
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_MODEL: str = "google/gemma-2-9b-it:free"
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_REFERER: str = "http://localhost:8000"

    # Gemini
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_EMBEDDING_MODEL: str = "models/embedding-001"

    # Groq (chat only)
    GROQ_API_KEY: str = ""
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-ada-002"

    # Generation defaults
    AI_TEMPERATURE: float = 0.7
    AI_MAX_TOKENS: int = 1000

    # Outbound provider calls
    PROVIDER_TIMEOUT_SECONDS: float = 30.0
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_BASE_DELAY_SECONDS: float = 1.0
    RETRY_MAX_DELAY_SECONDS: float = 10.0
    RETRY_BACKOFF_MULTIPLIER: float = 2.0
    RETRY_JITTER_SECONDS: float = 1.0
    RETRY_RATE_LIMITED: bool = True

    # RAG Settings
    RAG_CHUNK_SIZE: int = 1000
    RAG_CHUNK_OVERLAP: int = 200
    RAG_MAX_CHUNKS: int = 100
    RAG_MAX_CONTENT_LENGTH: int = 100000
    RAG_EMBED_BATCH_SIZE: int = 10
    RAG_BATCH_PAUSE_SECONDS: float = 0.1
    RAG_TOP_K: int = 5
    RAG_HYBRID_PREVIEW_LENGTH: int = 200
    RAG_ENABLE_CACHE: bool = False
    RAG_CACHE_TTL: int = 3600

    # Rate Limiting (inbound questions)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MAX_REQUESTS: int = 10
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_SWEEP_MINUTES: int = 5

    # Background processing
    MAX_BACKGROUND_TASKS: int = 4

    # Uploads
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra="ignore"  # Ignore extra fields in .env
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
