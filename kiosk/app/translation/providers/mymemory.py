from __future__ import annotations

import math
from typing import Any

import httpx

from kiosk.app.translation.languages import language_pair_token
from kiosk.app.translation.providers.base import (
    ProviderFormatError,
    ProviderQuotaError,
    ProviderServiceError,
    TranslationProvider,
)
from kiosk.app.translation.types import ProviderPayload

QUOTA_SENTINELS = ("PLEASE SELECT", "MYMEMORY WARNING")

_MATCH_TOKENS: dict[str, float] = {
    "exact": 1.0,
    "high": 0.9,
    "medium": 0.5,
    "low": 0.1,
    "true": 1.0,
    "false": 0.0,
}


def _as_number(value: Any) -> float | None:
    # bool is an int subclass; it must be handled before the numeric branch.
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        token = value.strip().lower()
        if token in _MATCH_TOKENS:
            return _MATCH_TOKENS[token]
        try:
            number = float(token)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def decode_match_value(value: Any, default: float = 0.5) -> float:
    """Normalize MyMemory's ``match`` field to a confidence in [0, 1].

    The provider sends it as a JSON number, a numeric string, a boolean, a
    word such as ``"exact"``, or leaves it out. Anything that cannot be read
    as a number falls back to ``default``.
    """
    number = _as_number(value)
    if number is None:
        return default
    return max(0.0, min(1.0, number))


def _as_int(value: Any) -> int | None:
    number = _as_number(value)
    if number is None:
        return None
    return int(number)


def _is_quota_sentinel(text: str) -> bool:
    upper = text.lstrip().upper()
    return any(upper.startswith(sentinel) for sentinel in QUOTA_SENTINELS)


class MyMemoryProvider(TranslationProvider):
    def __init__(self, default_confidence: float = 0.5) -> None:
        self._default_confidence = max(0.0, min(1.0, default_confidence))

    @property
    def name(self) -> str:
        return "MyMemory"

    def build_request(
        self,
        client: httpx.AsyncClient,
        text: str,
        source_language: str,
        target_language: str,
    ) -> httpx.Request:
        return client.build_request(
            "GET",
            "/get",
            params={"q": text, "langpair": language_pair_token(source_language, target_language)},
        )

    def parse_response(self, response: httpx.Response) -> ProviderPayload:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderFormatError("mymemory_invalid_json") from exc

        if not isinstance(payload, dict):
            raise ProviderFormatError("mymemory_unexpected_payload")

        if _as_number(payload.get("quotaFinished")) == 1.0:
            raise ProviderQuotaError("mymemory_quota_finished")

        response_data = payload.get("responseData")
        if not isinstance(response_data, dict):
            raise ProviderFormatError("mymemory_missing_response_data")

        raw_text = response_data.get("translatedText")
        text = raw_text.strip() if isinstance(raw_text, str) else ""
        if text and _is_quota_sentinel(text):
            raise ProviderQuotaError("mymemory_quota_sentinel")

        status = _as_int(payload.get("responseStatus"))
        if status is not None and status >= 400:
            details = payload.get("responseDetails")
            detail_text = str(details).strip() if details else ""
            raise ProviderServiceError(detail_text or str(status))

        if text:
            confidence = decode_match_value(response_data.get("match"), self._default_confidence)
            return ProviderPayload(text=text, confidence=confidence)

        best = self._best_match(payload.get("matches"))
        if best is None:
            raise ProviderFormatError("mymemory_empty_translation")
        return best

    def _best_match(self, matches: Any) -> ProviderPayload | None:
        if not isinstance(matches, list):
            return None

        candidates: list[tuple[float, dict[str, Any]]] = []
        for item in matches:
            if not isinstance(item, dict):
                continue
            translation = item.get("translation")
            if not isinstance(translation, str) or not translation.strip():
                continue
            quality = _as_number(item.get("quality"))
            candidates.append((quality if quality is not None else 0.0, item))

        if not candidates:
            return None

        _, best = max(candidates, key=lambda candidate: candidate[0])
        return ProviderPayload(
            text=best["translation"].strip(),
            confidence=decode_match_value(best.get("match"), self._default_confidence),
        )
