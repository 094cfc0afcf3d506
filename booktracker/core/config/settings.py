from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional

class Settings(BaseSettings):
    # Database settings
    DATABASE_URL: str = "sqlite:///./booktracker.db"

    # JWT settings
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Session transport: "cookie" or "bearer"
    TOKEN_TRANSPORT: str = "cookie"
    SESSION_COOKIE_NAME: str = "token"
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: str = "lax"

    # Password hashing
    BCRYPT_ROUNDS: int = 10

    # OTP policy
    OTP_LENGTH: int = 6
    OTP_EXPIRE_MINUTES: int = 5
    OTP_MAX_ATTEMPTS: int = 5
    OTP_LOCK_MINUTES: int = 5

    # Registration
    ALLOWED_EMAIL_DOMAINS: List[str] = []

    # Email settings: "smtp", "api" or "console"
    EMAIL_BACKEND: str = "console"
    EMAIL_HOST: str = "smtp.gmail.com"
    EMAIL_PORT: int = 587
    EMAIL_HOST_USER: str = ""
    EMAIL_HOST_PASSWORD: str = ""
    EMAIL_USE_TLS: bool = True
    EMAIL_API_URL: str = "https://api.resend.com/emails"
    EMAIL_API_KEY: str = ""
    DEFAULT_FROM_EMAIL: str = "Book Tracker <no-reply@booktracker.local>"
    EMAIL_TIMEOUT_SECONDS: float = 10.0

    # Google OAuth
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_REDIRECT_URI: str = "http://localhost:8000/api/auth/google/callback"
    OAUTH_TIMEOUT_SECONDS: float = 10.0

    # API settings
    API_V1_PREFIX: str = "/api"
    PROJECT_NAME: str = "Book Tracker API"
    DEBUG: bool = False
    FRONTEND_URL: str = "http://localhost:5173"
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    # Logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # Rate limiting
    REDIS_URL: Optional[str] = None
    RATE_LIMIT_PER_MINUTE: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    """
    Get settings instance with caching
    Returns:
        Settings instance
    """
    return Settings()
