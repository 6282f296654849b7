from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

CANNED_TRANSLATIONS: dict[tuple[str, str], dict[str, str]] = {
    ("en", "ja"): {
        "hello": "こんにちは",
        "thank you": "ありがとうございます",
        "where is the gate?": "ゲートはどこですか？",
        "test": "テスト",
    },
    ("ja", "en"): {
        "こんにちは": "Hello",
        "ありがとうございます": "Thank you",
        "ゲートはどこですか？": "Where is the gate?",
    },
    ("en", "it"): {
        "hello": "Ciao",
        "thank you": "Grazie",
        "where is the gate?": "Dov'è il gate?",
    },
    ("it", "en"): {
        "ciao": "Hello",
        "grazie": "Thank you",
    },
    ("en", "ko"): {
        "hello": "안녕하세요",
        "thank you": "감사합니다",
        "where is the gate?": "게이트가 어디에 있나요?",
    },
    ("ko", "en"): {
        "안녕하세요": "Hello",
        "감사합니다": "Thank you",
    },
}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    return float(raw)


@dataclass
class MockState:
    request_count: int = 0
    failure_start_request: int = -1
    failure_span_requests: int = 0
    failure_status_code: int = 503
    response_delay_seconds: float = 0.0

    def should_fail(self) -> bool:
        if self.failure_start_request < 0 or self.failure_span_requests <= 0:
            return False

        end = self.failure_start_request + self.failure_span_requests
        return self.failure_start_request <= self.request_count < end


def mock_translate(text: str, source: str, target: str) -> tuple[str, float]:
    """Canned phrase lookup; unknown text is tagged with the target language."""
    table = CANNED_TRANSLATIONS.get((source, target), {})
    translated = table.get(text.strip().lower()) or table.get(text.strip())
    if translated is not None:
        return translated, 1.0
    return f"[{target}] {text}", 0.5


def create_mock_app() -> FastAPI:
    app = FastAPI(title="MyMemory Mock Provider")

    state = MockState(
        failure_start_request=_env_int("MYMEMORY_MOCK_FAILURE_START_REQUEST", -1),
        failure_span_requests=_env_int("MYMEMORY_MOCK_FAILURE_SPAN_REQUESTS", 0),
        failure_status_code=_env_int("MYMEMORY_MOCK_FAILURE_STATUS_CODE", 503),
        response_delay_seconds=_env_float("MYMEMORY_MOCK_RESPONSE_DELAY_SECONDS", 0.0),
    )
    app.state.mock_state = state

    @app.get("/health")
    async def health() -> dict[str, object]:
        return {
            "status": "ok",
            "request_count": state.request_count,
            "failure_start_request": state.failure_start_request,
            "failure_span_requests": state.failure_span_requests,
            "failure_status_code": state.failure_status_code,
            "response_delay_seconds": state.response_delay_seconds,
        }

    @app.get("/get")
    async def get_translation(
        q: str = Query(default=""),
        langpair: str = Query(default=""),
    ) -> JSONResponse:
        state.request_count += 1

        if state.response_delay_seconds > 0:
            await asyncio.sleep(state.response_delay_seconds)

        if state.should_fail():
            return JSONResponse(
                status_code=state.failure_status_code,
                content={"responseStatus": state.failure_status_code},
            )

        source, separator, target = langpair.partition("|")
        if not separator or not source or not target:
            return JSONResponse(
                content={
                    "responseData": {
                        "translatedText": "INVALID LANGUAGE PAIR SPECIFIED.",
                        "match": 0,
                    },
                    "responseStatus": "403",
                    "responseDetails": "INVALID LANGUAGE PAIR SPECIFIED.",
                    "quotaFinished": False,
                    "matches": [],
                }
            )

        if source == target:
            return JSONResponse(
                content={
                    "responseData": {
                        "translatedText": "PLEASE SELECT TWO DISTINCT LANGUAGES",
                        "match": 0,
                    },
                    "responseStatus": "403",
                    "responseDetails": "PLEASE SELECT TWO DISTINCT LANGUAGES",
                    "quotaFinished": False,
                    "matches": [],
                }
            )

        translated, match = mock_translate(q, source, target)
        return JSONResponse(
            content={
                "responseData": {"translatedText": translated, "match": match},
                "quotaFinished": False,
                "responseDetails": "",
                "responseStatus": 200,
                "matches": [
                    {
                        "id": state.request_count,
                        "segment": q,
                        "translation": translated,
                        "source": source,
                        "target": target,
                        "quality": "74",
                        "match": str(match),
                        "created-by": "MyMemory Mock",
                    }
                ],
            }
        )

    return app


app = create_mock_app()
