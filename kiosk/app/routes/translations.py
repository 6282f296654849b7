from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from kiosk.app.translation.languages import AUTO_DETECT, detect_language

router = APIRouter(prefix="/api/translation", tags=["translation"])


class TranslateBody(BaseModel):
    text: str
    source_language: str = AUTO_DETECT
    target_language: str = "en"
    session_id: str | None = None


class DetectBody(BaseModel):
    text: str


def new_request_id() -> str:
    return uuid.uuid4().hex


def api_error(
    status_code: int,
    message: str,
    code: str,
    request_id: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "message": message,
            "code": code,
            "request_id": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details or {},
        },
    )


@router.post("/translate")
async def translate(request: Request, body: TranslateBody) -> dict[str, Any]:
    gateway = request.app.state.translation_gateway
    request_id = new_request_id()
    result = await gateway.translate(
        body.text,
        body.source_language,
        body.target_language,
        session_id=body.session_id or request_id,
    )
    return result.to_dict()


@router.get("/quick")
async def quick_translate(
    request: Request,
    text: str = Query(min_length=1),
    source: str = Query(default=AUTO_DETECT, alias="from"),
    target: str = Query(default="en", alias="to"),
    session_id: str | None = Query(default=None),
) -> Response:
    gateway = request.app.state.translation_gateway
    request_id = new_request_id()
    result = await gateway.translate(text, source, target, session_id=session_id or request_id)
    if result.success:
        return PlainTextResponse(result.translated_text)
    return api_error(
        status_code=400,
        message=result.error_message or "Translation failed",
        code="TRANSLATION_ERROR",
        request_id=request_id,
        details={"error_kind": result.error_kind.value if result.error_kind else None},
    )


@router.get("/health")
async def get_translation_health(request: Request) -> dict[str, Any]:
    settings = request.app.state.settings
    gateway = request.app.state.translation_gateway
    available = await gateway.is_service_available()
    return {
        "is_healthy": available,
        "status": "healthy" if available else "unhealthy",
        "check_time": datetime.now(timezone.utc).isoformat(),
        "details": {
            "service_available": available,
            "supported_languages": [
                f"{name} ({code})" for code, name in gateway.get_supported_languages()
            ],
            "provider": gateway.provider_name,
            "version": settings.service_version,
            "last_checked_at": gateway.health.snapshot()["last_checked_at"],
        },
    }


@router.get("/languages")
def get_supported_languages(request: Request) -> dict[str, str]:
    gateway = request.app.state.translation_gateway
    languages = dict(gateway.get_supported_languages())
    languages[AUTO_DETECT] = "Auto-detect"
    return languages


@router.post("/detect", response_model=None)
def detect(body: DetectBody) -> dict[str, Any] | JSONResponse:
    if not body.text.strip():
        return api_error(
            status_code=400,
            message="Text cannot be empty",
            code="VALIDATION_ERROR",
            request_id=new_request_id(),
        )
    detection = detect_language(body.text)
    return {
        "language": detection.language,
        "confidence": detection.confidence,
        "language_name": detection.language_name,
    }


@router.get("/status")
def get_translation_status(request: Request) -> dict[str, Any]:
    gateway = request.app.state.translation_gateway
    return gateway.snapshot()
