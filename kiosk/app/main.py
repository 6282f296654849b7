from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Callable

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kiosk.app.logging_config import configure_logging
from kiosk.app.realtime.manager import KioskEventBroadcaster
from kiosk.app.routes.health import router as health_router
from kiosk.app.routes.realtime import router as realtime_router
from kiosk.app.routes.translations import api_error
from kiosk.app.routes.translations import router as translations_router
from kiosk.app.settings import Settings, build_settings
from kiosk.app.translation.gateway import TranslationGateway
from kiosk.mock.mymemory_mock_app import create_mock_app


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _service_logger() -> logging.Logger:
    return logging.getLogger("kiosk.gateway")


def _mock_client_factory(settings: Settings) -> Callable[[], httpx.AsyncClient]:
    mock_app = create_mock_app()

    def _factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url="http://mymemory.mock",
            transport=httpx.ASGITransport(app=mock_app),
            timeout=httpx.Timeout(settings.translation_timeout_seconds),
            headers={"User-Agent": settings.user_agent},
        )

    return _factory


def build_gateway(settings: Settings, logger: logging.Logger) -> TranslationGateway:
    client_factory = None
    if settings.translation_mode == "mock":
        client_factory = _mock_client_factory(settings)
    return TranslationGateway(settings=settings, logger=logger, client_factory=client_factory)


def create_app() -> FastAPI:
    settings = build_settings(_project_root())
    configure_logging(settings.log_level)
    logger = _service_logger()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        app.state.started_at = datetime.now(timezone.utc)
        gateway = build_gateway(settings, logger)
        broadcaster = KioskEventBroadcaster(
            settings=settings,
            logger=logger,
            status_provider=lambda: gateway.is_online,
        )
        gateway.register_status_handler(broadcaster.publish_connection_status)
        gateway.register_result_handler(broadcaster.publish_translation_result)
        app.state.translation_gateway = gateway
        app.state.event_broadcaster = broadcaster

        logger.info(
            "service_startup",
            extra={
                "event": "startup",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
            },
        )
        logger.info(
            "service_config_loaded",
            extra={
                "event": "config_loaded",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
                "config": settings.redacted(),
            },
        )
        await broadcaster.start()
        await gateway.start()
        yield
        await gateway.stop()
        await broadcaster.stop()
        logger.info(
            "service_shutdown",
            extra={
                "event": "shutdown",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
            },
        )

    app = FastAPI(
        title=settings.service_name,
        version=settings.service_version,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):  # type: ignore[no-untyped-def]
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [str(error.get("msg", "invalid value")) for error in exc.errors()]
        logger.warning(
            "request_validation_failed",
            extra={
                "event": "request_validation_failed",
                "service_name": settings.service_name,
                "service_version": settings.service_version,
                "path": request.url.path,
                "errors": errors,
            },
        )
        return api_error(
            status_code=400,
            message="Invalid request parameters",
            code="VALIDATION_ERROR",
            request_id=uuid.uuid4().hex,
            details={"errors": errors},
        )

    @app.get("/")
    def root() -> dict[str, object]:
        return {
            "service": settings.service_name,
            "version": settings.service_version,
            "status": "running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": [
                "/api/translation/translate",
                "/api/translation/quick",
                "/api/translation/health",
                "/api/translation/languages",
                "/api/translation/detect",
                "/api/translation/status",
                "/health",
                "/ws/events",
            ],
        }

    app.include_router(health_router)
    app.include_router(translations_router)
    app.include_router(realtime_router)
    return app


app = create_app()
