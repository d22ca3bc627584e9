"""Application settings and validation."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv(override=False)

BASE = Path(__file__).resolve().parent.parent


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing or invalid."""


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    ENV: str
    DATABASE_URL: str
    JWT_SECRET: Optional[str]
    JWT_ALGORITHM: str
    ACCESS_TOKEN_TTL_SECONDS: int
    REFRESH_TOKEN_TTL_SECONDS: int
    COOKIE_SECURE: bool
    CORS_ORIGIN_URL: Optional[str]
    LOG_LEVEL: str

    def __init__(self, **overrides):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{BASE / 'data.db'}"
        self.JWT_SECRET = os.getenv("JWT_SECRET") or None
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_TTL_SECONDS = int(os.getenv("ACCESS_TOKEN_TTL_SECONDS", "60"))
        self.REFRESH_TOKEN_TTL_SECONDS = int(os.getenv("REFRESH_TOKEN_TTL_SECONDS", str(60 * 60)))
        self.COOKIE_SECURE = _env_bool("COOKIE_SECURE", "false")
        self.CORS_ORIGIN_URL = os.getenv("CORS_ORIGIN_URL") or None
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        for key, value in overrides.items():
            if not hasattr(self, key):
                raise ConfigurationError(f"unknown setting: {key}")
            setattr(self, key, value)
        self._validate()

    def _validate(self):
        if self.ACCESS_TOKEN_TTL_SECONDS <= 0 or self.REFRESH_TOKEN_TTL_SECONDS <= 0:
            raise ConfigurationError("token lifetimes must be positive")

    def require_jwt_secret(self) -> str:
        """Return the signing secret or fail hard if it was never configured.

        The check is deferred to the first token operation so the public
        course routes keep working on a deployment without admin access.
        """
        if not self.JWT_SECRET:
            raise ConfigurationError("JWT_SECRET is not set")
        return self.JWT_SECRET


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
