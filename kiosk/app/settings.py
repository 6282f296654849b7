from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def load_env_file(env_path: Path) -> None:
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("export "):
            line = line[len("export ") :]

        key, separator, value = line.partition("=")
        if not separator:
            continue

        env_key = key.strip()
        if not env_key:
            continue

        env_value = _strip_quotes(value.strip())
        os.environ.setdefault(env_key, env_value)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_mode(
    key: str,
    default: str,
    allowed: tuple[str, ...],
) -> str:
    value = os.getenv(key, default).strip().lower()
    if value not in allowed:
        allowed_csv = ", ".join(allowed)
        raise ValueError(f"{key} must be one of: {allowed_csv}")
    return value


def _env_csv(key: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(key, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    service_name: str
    service_version: str
    environment: str
    log_level: str
    host: str
    port: int
    kiosk_id: str
    translation_mode: str
    translation_base_url: str
    translation_timeout_seconds: float
    translation_retry_attempts: int
    translation_retry_delay_ms: int
    translation_default_confidence: float
    translation_max_text_length: int = 5000
    translation_health_check_interval_seconds: float = 60.0
    cors_allow_origins: tuple[str, ...] = ("*",)
    realtime_enabled: bool = True
    realtime_client_queue_maxsize: int = 128
    realtime_recent_events_limit: int = 200

    @property
    def translation_retry_delay_seconds(self) -> float:
        return max(0, self.translation_retry_delay_ms) / 1000.0

    @property
    def user_agent(self) -> str:
        return f"{self.service_name}/{self.service_version}"

    def redacted(self) -> dict[str, str | int | float | bool | list[str]]:
        return {
            "service_name": self.service_name,
            "service_version": self.service_version,
            "environment": self.environment,
            "log_level": self.log_level,
            "host": self.host,
            "port": self.port,
            "kiosk_id": self.kiosk_id,
            "translation_mode": self.translation_mode,
            "translation_base_url": self.translation_base_url,
            "translation_timeout_seconds": self.translation_timeout_seconds,
            "translation_retry_attempts": self.translation_retry_attempts,
            "translation_retry_delay_ms": self.translation_retry_delay_ms,
            "translation_default_confidence": self.translation_default_confidence,
            "translation_max_text_length": self.translation_max_text_length,
            "translation_health_check_interval_seconds": (
                self.translation_health_check_interval_seconds
            ),
            "cors_allow_origins": list(self.cors_allow_origins),
            "realtime_enabled": self.realtime_enabled,
            "realtime_client_queue_maxsize": self.realtime_client_queue_maxsize,
            "realtime_recent_events_limit": self.realtime_recent_events_limit,
        }


def build_settings(project_root: Path) -> Settings:
    load_env_file(project_root / ".env")

    return Settings(
        service_name=os.getenv("KIOSK_SERVICE_NAME", "airport-kiosk-gateway"),
        service_version=os.getenv("KIOSK_SERVICE_VERSION", "1.0.0"),
        environment=os.getenv("KIOSK_ENV", "development"),
        log_level=os.getenv("KIOSK_LOG_LEVEL", "INFO").upper(),
        host=os.getenv("KIOSK_HOST", "127.0.0.1"),
        port=int(os.getenv("KIOSK_PORT", "7001")),
        kiosk_id=os.getenv("KIOSK_ID", "kiosk-01").strip() or "kiosk-01",
        translation_mode=_env_mode(
            "TRANSLATION_MODE",
            "mymemory",
            ("mymemory", "mock"),
        ),
        translation_base_url=os.getenv(
            "TRANSLATION_BASE_URL",
            "https://api.mymemory.translated.net",
        ).strip(),
        translation_timeout_seconds=float(os.getenv("TRANSLATION_TIMEOUT_SECONDS", "10.0")),
        translation_retry_attempts=int(os.getenv("TRANSLATION_RETRY_ATTEMPTS", "3")),
        translation_retry_delay_ms=int(os.getenv("TRANSLATION_RETRY_DELAY_MS", "1000")),
        translation_default_confidence=float(
            os.getenv("TRANSLATION_DEFAULT_CONFIDENCE", "0.5")
        ),
        translation_max_text_length=int(os.getenv("TRANSLATION_MAX_TEXT_LENGTH", "5000")),
        translation_health_check_interval_seconds=float(
            os.getenv("TRANSLATION_HEALTH_CHECK_INTERVAL_SECONDS", "60.0")
        ),
        cors_allow_origins=_env_csv("KIOSK_CORS_ALLOW_ORIGINS", "*"),
        realtime_enabled=_env_bool("REALTIME_ENABLED", True),
        realtime_client_queue_maxsize=int(
            os.getenv("REALTIME_CLIENT_QUEUE_MAXSIZE", "128")
        ),
        realtime_recent_events_limit=int(os.getenv("REALTIME_RECENT_EVENTS_LIMIT", "200")),
    )
