from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from kiosk.app.translation.errors import ErrorKind

OFFLINE_PROVIDER = "Offline Mode"
OFFLINE_CONFIDENCE = 0.5


def new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    source_language: str
    target_language: str
    session_id: str

    @classmethod
    def create(
        cls,
        text: str,
        source_language: str | None,
        target_language: str | None,
        session_id: str | None = None,
    ) -> TranslationRequest:
        if not isinstance(text, str):
            raise TypeError(f"text must be a str, got {type(text).__name__}")
        return cls(
            text=text,
            source_language=(source_language or "auto").strip(),
            target_language=(target_language or "en").strip(),
            session_id=(session_id or "").strip() or new_session_id(),
        )

    def validation_error(self, max_length: int) -> str | None:
        if not self.text.strip():
            return "Text cannot be empty"
        if len(self.text) > max_length:
            return f"Text too long (max {max_length} characters)"
        return None


@dataclass(frozen=True)
class TranslationResult:
    translated_text: str
    detected_source_language: str
    source_language: str
    target_language: str
    confidence: float
    provider: str
    processing_time: timedelta
    success: bool
    session_id: str
    error_message: str | None = None
    error_kind: ErrorKind | None = None
    attempts: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")
        if self.success and self.error_message:
            raise ValueError("successful result cannot carry an error message")
        if not self.success and not self.error_message:
            raise ValueError("failed result requires an error message")

    @property
    def processing_ms(self) -> float:
        return round(self.processing_time.total_seconds() * 1000.0, 3)

    def to_dict(self) -> dict[str, object]:
        return {
            "translated_text": self.translated_text,
            "detected_source_language": self.detected_source_language,
            "source_language": self.source_language,
            "target_language": self.target_language,
            "confidence": self.confidence,
            "provider": self.provider,
            "processing_time_ms": self.processing_ms,
            "success": self.success,
            "error_message": self.error_message,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "session_id": self.session_id,
            "attempts": self.attempts,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class ProviderPayload:
    text: str
    confidence: float


@dataclass(frozen=True)
class LanguageInfo:
    code: str
    name: str
    native_name: str


@dataclass(frozen=True)
class LanguageDetection:
    language: str
    confidence: float
    language_name: str
    fallback: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "language": self.language,
            "confidence": self.confidence,
            "language_name": self.language_name,
            "fallback": self.fallback,
        }
