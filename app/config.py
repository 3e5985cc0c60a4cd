"""
Application settings.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Database (batches + profiles)
    DATABASE_URL: str = "sqlite:///./data/consulta_saldo.db"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # File storage
    DATA_DIR: str = "./data"
    RESULTS_DIR: str = "./data/results"

    # Balance provider: token authority
    V8_AUTH_URL: str = ""
    V8_CLIENT_ID: str = ""
    V8_USERNAME: str = ""
    V8_PASSWORD: str = ""
    V8_AUDIENCE: str = ""
    V8_SCOPE: str = "offline_access"

    # Balance provider: consultation API
    V8_CONSULTATION_URL: str = ""
    WEBHOOK_URL: str = ""
    ALLOWED_PROVIDERS: List[str] = ["bms", "qi", "cartos"]
    HTTP_TIMEOUT_SECONDS: float = 30.0
    TOKEN_REFRESH_MARGIN_SECONDS: int = 300

    # Webhook correlation
    POLL_INTERVAL_SECONDS: float = 1.0
    POLL_MAX_ATTEMPTS: int = 20
    CORRELATION_TTL_SECONDS: int = 3600

    # Identity provider
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
