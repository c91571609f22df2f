# -*- coding: utf-8 -*-
"""Environment driven configuration."""

import re
from datetime import timedelta

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import InvalidConfig
from .file_provider import FileSecretProvider, DEFAULT_TCP_ADDR
from .providers import EnvSecretProvider, DEFAULT_JWT_SECRET_ENV, DEFAULT_JWT_SECRET
from .store import DEFAULT_MAX_DEPRECATED

PROVIDER_ENV = "env"
PROVIDER_FILE = "file"

_DURATION_PART = re.compile(r"(\d+)(ms|h|m|s)")

_DURATION_UNITS = {
    "h": "hours",
    "m": "minutes",
    "s": "seconds",
    "ms": "milliseconds",
}


def parse_duration(value):
    """Parse a duration such as ``24h``, ``1h30m`` or ``500ms`` into a timedelta."""
    value = (value or "").strip()
    if not value:
        raise InvalidConfig("duration cannot be empty")

    total = timedelta()
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        total += timedelta(**{_DURATION_UNITS[match.group(2)]: int(match.group(1))})
        pos = match.end()

    if pos != len(value):
        raise InvalidConfig(f"invalid duration {value!r}")
    return total


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    SECRET_PROVIDER: str = PROVIDER_ENV

    SECRETS_FILE_PATH: str = "secrets.json"
    SECRETS_TCP_ADDR: str = DEFAULT_TCP_ADDR
    SECRETS_MAX_DEPRECATED: int = DEFAULT_MAX_DEPRECATED

    JWT_SECRET: str = DEFAULT_JWT_SECRET
    JWT_EXPIRY: str = "24h"

    API_KEY: str = "dev-api-key"

    LOG_LEVEL: str = "INFO"

    @property
    def jwt_expiry(self):
        return parse_duration(self.JWT_EXPIRY)

    @field_validator("SECRET_PROVIDER", mode="before")
    @classmethod
    def normalize_provider(cls, v):
        v = str(v).strip().lower()
        if v not in (PROVIDER_ENV, PROVIDER_FILE):
            raise ValueError(f"SECRET_PROVIDER must be {PROVIDER_ENV!r} or {PROVIDER_FILE!r}")
        return v

    @field_validator("JWT_EXPIRY")
    @classmethod
    def check_expiry(cls, v):
        # raises InvalidConfig, a ValueError, which pydantic reports
        parse_duration(v)
        return v


def load_settings(**overrides):
    return Settings(**overrides)


def build_secret_provider(settings):
    """Return the secret provider selected by ``settings.SECRET_PROVIDER``."""
    if settings.SECRET_PROVIDER == PROVIDER_FILE:
        return FileSecretProvider(settings.SECRETS_FILE_PATH,
                                  tcp_addr=settings.SECRETS_TCP_ADDR,
                                  max_deprecated=settings.SECRETS_MAX_DEPRECATED)
    return EnvSecretProvider(DEFAULT_JWT_SECRET_ENV, default=settings.JWT_SECRET)
