# storefront/config.py
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Optional

from fastapi import Request
from pydantic_settings import BaseSettings

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./storefront.db"

    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Auth cookie attributes
    COOKIE_DOMAIN: Optional[str] = None
    APP_ENV: str = "development"

    FRONTEND_BASE_URL: str = "http://localhost:3000"

    STRIPE_API_URL: str = "https://api.stripe.com"
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    PAYMENT_CURRENCY: str = "jpy"
    PAYMENT_TIMEOUT_SECONDS: float = 10.0
    WEBHOOK_TOLERANCE_SECONDS: int = 300

    # Flat shipping surcharge, in minor currency units
    SHIPPING_COST: int = 500

    UPLOAD_DIR: str = "uploads"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file: ClassVar[str] = str(env_path)

    @property
    def database_url(self) -> str:
        # SQLAlchemy needs postgresql:// instead of the legacy postgres:// scheme
        url = self.DATABASE_URL
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url

    @property
    def cookie_secure(self) -> bool:
        return self.APP_ENV == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


# FastAPI dependency: the settings the running app was built with
def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
