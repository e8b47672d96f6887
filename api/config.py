"""
@file        config.py
@brief       Environment-driven settings for the SmartPantry API
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17
"""

from functools import lru_cache
from typing import List, Optional
import os

from pydantic import BaseModel, Field

# Only these algorithms may ever be configured (prevents alg:none / confusion attacks)
ALLOWED_JWT_ALGORITHMS = ("HS256", "RS256")


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    """Runtime configuration, read once from the environment."""

    environment: str = "development"

    # JWT
    jwt_algorithm: str = "HS256"
    jwt_secret_key: Optional[str] = None
    jwt_private_key: Optional[str] = None
    jwt_public_key: Optional[str] = None
    jwt_issuer: str = "smartpantry-api"
    jwt_audience: str = "smartpantry-frontend"
    access_token_expiration: str = "24h"
    refresh_token_expiration: str = "7d"
    temporary_token_expiration: str = "1h"

    # Password hashing
    bcrypt_rounds: int = 12

    # Session
    session_expiring_threshold_minutes: int = 5

    # Token blacklist ("redis" or "memory")
    token_blacklist_backend: str = "redis"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0

    cors_allow_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=os.getenv("ENVIRONMENT", "development"),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            jwt_secret_key=os.getenv("JWT_SECRET_KEY"),
            jwt_private_key=os.getenv("JWT_PRIVATE_KEY"),
            jwt_public_key=os.getenv("JWT_PUBLIC_KEY"),
            jwt_issuer=os.getenv("JWT_ISSUER", "smartpantry-api"),
            jwt_audience=os.getenv("JWT_AUDIENCE", "smartpantry-frontend"),
            access_token_expiration=os.getenv("JWT_ACCESS_TOKEN_EXPIRATION", "24h"),
            refresh_token_expiration=os.getenv("JWT_REFRESH_TOKEN_EXPIRATION", "7d"),
            temporary_token_expiration=os.getenv("JWT_TEMPORARY_TOKEN_EXPIRATION", "1h"),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
            session_expiring_threshold_minutes=int(os.getenv("SESSION_EXPIRING_THRESHOLD_MINUTES", "5")),
            token_blacklist_backend=os.getenv("TOKEN_BLACKLIST_BACKEND", "redis"),
            redis_host=os.getenv("REDIS_HOST", "localhost"),
            redis_port=int(os.getenv("REDIS_PORT", "6379")),
            redis_db=int(os.getenv("REDIS_DB", "0")),
            cors_allow_origins=_split_csv(os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000")),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings (call get_settings.cache_clear() after changing env)"""
    return Settings.from_env()
