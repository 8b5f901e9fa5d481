from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]

    # JWT
    SECRET_KEY: str = "change-this-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Email: "mock" keeps messages in memory, "smtp" delivers them
    EMAIL_BACKEND: str = "mock"
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = ""
    SMTP_FROM_NAME: str = "Returns Desk"
    SMTP_TIMEOUT_SECONDS: int = 10
    ADMIN_NOTIFICATION_EMAIL: Optional[str] = "returns-admin@localhost"
    RETURN_EMAILS_ENABLED: bool = True
    NOTIFICATION_WORKERS: int = 4

    DEFAULT_RETURN_ADDRESS: str = "Z236 Weija-Oblogo Rd, Accra, Ghana"
    DEFAULT_REJECTION_REASON: str = (
        "Return request does not meet our return policy requirements."
    )

    # Store calls
    STORE_CALL_TIMEOUT_SECONDS: int = 10
    STORE_READ_RETRIES: int = 2
    STORE_RETRY_BACKOFF_MS: int = 50

    # RA numbers
    RA_SEQUENCE_ENABLED: bool = True
    RA_FALLBACK_ATTEMPTS: int = 5

    # per-order locks serializing duplicate checks; defaults to the temp dir
    LOCKS_DIR: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
