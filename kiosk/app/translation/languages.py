from __future__ import annotations

from kiosk.app.translation.types import LanguageDetection, LanguageInfo

AUTO_DETECT = "auto"
DEFAULT_SOURCE_LANGUAGE = "en"

SUPPORTED_LANGUAGES: tuple[LanguageInfo, ...] = (
    LanguageInfo(code="en", name="English", native_name="English"),
    LanguageInfo(code="ja", name="Japanese", native_name="日本語"),
    LanguageInfo(code="it", name="Italian", native_name="Italiano"),
    LanguageInfo(code="ko", name="Korean", native_name="한국어"),
)

_ALIASES: dict[str, str] = {
    "en": "en",
    "english": "en",
    "ja": "ja",
    "japanese": "ja",
    "jp": "ja",
    "it": "it",
    "italian": "it",
    "ko": "ko",
    "korean": "ko",
    "kr": "ko",
}

_NAMES = {info.code: info.name for info in SUPPORTED_LANGUAGES}


class UnsupportedLanguageError(ValueError):
    """Raised when a language code cannot be mapped to a supported language."""


def normalize_language_code(code: str | None) -> str | None:
    """Map a caller-supplied code or name to the provider's two-letter code.

    Case, surrounding whitespace and region subtags are ignored, so ``"ja-JP"``,
    ``"JA"`` and ``"Japanese"`` all become ``"ja"``. Returns ``None`` for
    anything outside :data:`SUPPORTED_LANGUAGES`.
    """
    if code is None:
        return None
    lowered = code.strip().lower().replace("_", "-")
    if not lowered:
        return None
    if lowered in _ALIASES:
        return _ALIASES[lowered]
    primary = lowered.split("-", 1)[0]
    return _ALIASES.get(primary)


def get_language_name(code: str) -> str:
    normalized = normalize_language_code(code)
    if normalized is None:
        return code
    return _NAMES[normalized]


def _is_japanese(char: str) -> bool:
    point = ord(char)
    return (
        0x3040 <= point <= 0x309F  # hiragana
        or 0x30A0 <= point <= 0x30FF  # katakana
        or 0x4E00 <= point <= 0x9FAF  # kanji
    )


def _is_hangul(char: str) -> bool:
    point = ord(char)
    return 0xAC00 <= point <= 0xD7A3 or 0x1100 <= point <= 0x11FF or 0x3130 <= point <= 0x318F


def detect_language(text: str) -> LanguageDetection:
    """Script-based guess; Latin-script text is reported as English."""
    letters = [char for char in text if not char.isspace()]
    if not letters:
        return LanguageDetection(
            language=DEFAULT_SOURCE_LANGUAGE,
            confidence=0.7,
            language_name=_NAMES[DEFAULT_SOURCE_LANGUAGE],
            fallback=True,
        )

    japanese = sum(1 for char in letters if _is_japanese(char))
    hangul = sum(1 for char in letters if _is_hangul(char))
    if japanese or hangul:
        language = "ja" if japanese >= hangul else "ko"
        ratio = max(japanese, hangul) / len(letters)
        return LanguageDetection(
            language=language,
            confidence=round(min(1.0, ratio + 0.2), 4),
            language_name=_NAMES[language],
        )

    return LanguageDetection(
        language=DEFAULT_SOURCE_LANGUAGE,
        confidence=0.8,
        language_name=_NAMES[DEFAULT_SOURCE_LANGUAGE],
        fallback=True,
    )


def resolve_language_pair(source: str, target: str, text: str) -> tuple[str, str]:
    if source.strip().lower() == AUTO_DETECT:
        resolved_source: str | None = detect_language(text).language
    else:
        resolved_source = normalize_language_code(source)
    resolved_target = normalize_language_code(target)

    if resolved_source is None:
        raise UnsupportedLanguageError(f"Unsupported source language: {source}")
    if resolved_target is None:
        raise UnsupportedLanguageError(f"Unsupported target language: {target}")
    if resolved_source == resolved_target:
        raise UnsupportedLanguageError(
            f"Source and target languages must differ ({resolved_source})"
        )
    return resolved_source, resolved_target


def language_pair_token(source: str, target: str) -> str:
    return f"{source}|{target}"


def language_choices() -> list[tuple[str, str]]:
    return [(info.code, info.name) for info in SUPPORTED_LANGUAGES]
