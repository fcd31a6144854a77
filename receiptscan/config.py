import logging
import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_MODEL = "gemini-1.5-pro"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw!r}")


def _log_level_env(name: str, default: str) -> str:
    raw = os.getenv(name, "").strip().upper()
    if not raw:
        return default
    if not isinstance(logging.getLevelName(raw), int):
        raise ValueError(f"{name} must be a logging level name, got: {raw!r}")
    return raw


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    gemini_model: str = DEFAULT_MODEL
    gemini_base_url: str = DEFAULT_BASE_URL
    receipt_provider: str = "gemini"
    max_attempts: int = 5
    timeout_seconds: float = 60.0
    static_dir: str = "static"
    host: str = "0.0.0.0"
    port: int = 8443
    tls_cert_file: str = "cert.pem"
    tls_key_file: str = "key.pem"
    sentry_dsn: str = ""
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Build settings from the environment. Call ``get_settings.cache_clear()`` after changing env vars."""
    return Settings(
        # API_KEY wins so existing batch setups keep working
        api_key=os.getenv("API_KEY") or os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
        gemini_base_url=os.getenv("GEMINI_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        receipt_provider=os.getenv("RECEIPT_PROVIDER", "gemini").lower().strip(),
        max_attempts=_int_env("RECEIPT_MAX_ATTEMPTS", 5),
        timeout_seconds=_float_env("RECEIPT_TIMEOUT_SECONDS", 60.0),
        static_dir=os.getenv("STATIC_DIR", "static"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_int_env("PORT", 8443),
        tls_cert_file=os.getenv("TLS_CERT_FILE", "cert.pem"),
        tls_key_file=os.getenv("TLS_KEY_FILE", "key.pem"),
        sentry_dsn=os.getenv("SENTRY_DSN", ""),
        log_level=_log_level_env("LOG_LEVEL", "INFO"),
    )
