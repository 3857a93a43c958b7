"""Application settings read from the environment (and a local .env file)"""
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    environment: str = "development"
    log_level: str = "INFO"

    # Auth
    secret_key: str = "your-secret-key-keep-it-secret"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(ge=1, default=30)

    # Payments; no Stripe key means the in-memory gateway is used
    stripe_secret_key: Optional[str] = None
    payment_currency: str = "inr"
    payment_timeout_seconds: float = Field(gt=0, default=10.0)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "environment": os.getenv("ENVIRONMENT"),
            "log_level": os.getenv("LOG_LEVEL"),
            "secret_key": os.getenv("SECRET_KEY"),
            "algorithm": os.getenv("JWT_ALGORITHM"),
            "access_token_expire_minutes": os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES"),
            "stripe_secret_key": os.getenv("STRIPE_SECRET_KEY"),
            "payment_currency": os.getenv("PAYMENT_CURRENCY"),
            "payment_timeout_seconds": os.getenv("PAYMENT_TIMEOUT_SECONDS"),
        }
        return cls(**{key: value for key, value in values.items() if value})


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
