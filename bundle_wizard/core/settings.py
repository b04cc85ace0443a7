from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_API_BASE = "http://localhost:8000"
DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]


@dataclass(slots=True)
class Settings:
    converter_api_base: str = DEFAULT_API_BASE
    converter_timeout: float = DEFAULT_TIMEOUT_SECONDS
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def load_settings() -> Settings:
    """Read service configuration from the environment."""

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]

    return Settings(
        converter_api_base=(os.getenv("CONVERTER_API_BASE") or DEFAULT_API_BASE).rstrip("/"),
        converter_timeout=_float_env("CONVERTER_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
