"""Configuration for skinmaxx, read from the environment (and a .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

# Face++ regional endpoints: global first, then US
DEFAULT_ENDPOINTS = (
    "https://api.faceplusplus.com/facepp/v3/detect",
    "https://api-us.faceplusplus.com/facepp/v3/detect",
)
DEFAULT_TIMEOUT = 12.0  # seconds per endpoint attempt
DEFAULT_HTML_BACKOFF = 2.0  # seconds, after an HTML 5xx page
DEFAULT_DB_NAME = ".skinmaxx.db"
RETURN_ATTRIBUTES = "age,gender,emotion,beauty,skinstatus"


@dataclass(frozen=True)
class ProviderConfig:
    """Credentials and endpoint policy for the face-detection provider."""

    api_key: str | None = None
    api_secret: str | None = None
    endpoints: tuple[str, ...] = DEFAULT_ENDPOINTS
    timeout: float = DEFAULT_TIMEOUT
    html_backoff: float = DEFAULT_HTML_BACKOFF
    return_attributes: str = RETURN_ATTRIBUTES

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and bool(self.api_secret)


@dataclass(frozen=True)
class Settings:
    """Process-level settings."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    db_path: Path = Path(DEFAULT_DB_NAME)


def _env_str(name: str) -> str | None:
    val = os.getenv(name)
    if val is None:
        return None
    val = val.strip()
    return val or None


def _env_float(name: str, default: float) -> float:
    val = _env_str(name)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _parse_endpoints(value: str | None) -> tuple[str, ...]:
    if not value:
        return DEFAULT_ENDPOINTS
    endpoints = tuple(e.strip() for e in value.split(",") if e.strip())
    return endpoints or DEFAULT_ENDPOINTS


def load_provider_config() -> ProviderConfig:
    """Build provider config from FACEPP_* and SKINMAXX_* variables."""
    return ProviderConfig(
        api_key=_env_str("FACEPP_API_KEY"),
        api_secret=_env_str("FACEPP_API_SECRET"),
        endpoints=_parse_endpoints(_env_str("SKINMAXX_FACEPP_ENDPOINTS")),
        timeout=_env_float("SKINMAXX_PROVIDER_TIMEOUT", DEFAULT_TIMEOUT),
    )


def load_settings(dotenv: bool = True) -> Settings:
    """Load settings, optionally reading a .env file first.

    Variables already present in the environment win over .env values.
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))
    db = _env_str("SKINMAXX_DB")
    return Settings(
        provider=load_provider_config(),
        db_path=Path(db) if db else Path(DEFAULT_DB_NAME),
    )


def mask_secret(value: str | None) -> str:
    """Mask a credential for logging: first 8 and last 4 characters."""
    if not value:
        return "NOT SET"
    if len(value) <= 12:
        return "*" * len(value)
    return f"{value[:8]}...{value[-4:]}"
