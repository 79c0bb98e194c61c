"""
Application configuration settings
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "DevCollab Suggestions"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Security
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"

    # Database
    DATABASE_URL: str
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # CORS (comma separated)
    ALLOWED_HOSTS: str = "*"

    # Groq inference
    GROQ_API_KEY: Optional[str] = None
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    INFERENCE_TIMEOUT_SECONDS: float = 60.0
    INFERENCE_TEMPERATURE: float = 0.2
    INFERENCE_MAX_TOKENS: int = 800

    # Suggestion cache
    SUGGESTION_CACHE_TTL_HOURS: int = 24

    # Refresh sweeps
    SCHEDULER_ENABLED: bool = True
    REFRESH_BATCH_SIZE: int = 5
    REFRESH_BATCH_DELAY_SECONDS: float = 2.0
    REFRESH_HOURLY_CRON: str = "0 * * * *"
    REFRESH_NIGHTLY_CRON: str = "0 2 * * *"

    # Generation jobs
    JOB_MAX_ATTEMPTS: int = 3
    JOB_MIN_BACKOFF_SECONDS: float = 5.0
    JOB_MAX_BACKOFF_SECONDS: float = 60.0
    JOB_BACKOFF_FACTOR: float = 2.0
    JOB_MAX_CONCURRENCY: int = 4

    # Model routing
    RATE_LIMIT_HEADROOM_THRESHOLD: float = 0.15
    RATE_LIMIT_COOLDOWN_SECONDS: float = 300.0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def allowed_hosts(self) -> List[str]:
        return [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()]


# Create settings instance
settings = Settings()
