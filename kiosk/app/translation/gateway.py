from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from time import monotonic
from typing import Any, Awaitable, Callable, Union

import httpx

from kiosk.app.settings import Settings
from kiosk.app.translation.errors import ErrorKind, describe_failure
from kiosk.app.translation.health import GatewayHealthState
from kiosk.app.translation.languages import (
    UnsupportedLanguageError,
    language_choices,
    resolve_language_pair,
)
from kiosk.app.translation.providers.base import (
    TranslationProvider,
    TranslationProviderError,
)
from kiosk.app.translation.providers.mymemory import MyMemoryProvider
from kiosk.app.translation.retry import AttemptOk, RetryableFailure, run_with_retry
from kiosk.app.translation.types import (
    OFFLINE_CONFIDENCE,
    OFFLINE_PROVIDER,
    TranslationRequest,
    TranslationResult,
)

StatusHandler = Callable[[bool], Union[Awaitable[None], None]]
ResultHandler = Callable[[TranslationResult], Union[Awaitable[None], None]]


@dataclass
class GatewayMetrics:
    mode: str
    provider_name: str
    started_at: str | None = None
    running: bool = False
    requests_total: int = 0
    requests_succeeded: int = 0
    requests_failed: int = 0
    validation_failures: int = 0
    offline_echoes: int = 0
    retry_events: int = 0
    status_changes: int = 0
    average_processing_ms: float = 0.0
    last_processing_ms: float = 0.0
    last_result_at: str | None = None
    last_error: str | None = None


class TranslationGateway:
    """Retrying client for the translation provider with offline fallback.

    ``translate`` never raises for network, service or payload problems: every
    call returns a :class:`TranslationResult`, and failed results echo the
    original text so the kiosk can always show what the passenger said.
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        provider: TranslationProvider | None = None,
        health: GatewayHealthState | None = None,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._provider = provider or MyMemoryProvider(
            default_confidence=settings.translation_default_confidence
        )
        self._health = health or GatewayHealthState(
            recheck_interval_seconds=settings.translation_health_check_interval_seconds
        )
        self._client_factory = client_factory
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()
        self._metrics = GatewayMetrics(
            mode=settings.translation_mode,
            provider_name=self._provider.name,
        )
        self._status_handlers: list[StatusHandler] = []
        self._result_handlers: list[ResultHandler] = []

    @property
    def health(self) -> GatewayHealthState:
        return self._health

    @property
    def provider_name(self) -> str:
        return self._provider.name

    @property
    def is_online(self) -> bool:
        return self._health.is_online

    def register_status_handler(self, handler: StatusHandler) -> None:
        self._status_handlers.append(handler)

    def register_result_handler(self, handler: ResultHandler) -> None:
        self._result_handlers.append(handler)

    async def start(self) -> None:
        await self._ensure_client()
        async with self._lock:
            self._metrics.running = True
            self._metrics.started_at = datetime.now(timezone.utc).isoformat()
            self._metrics.last_error = None

        self._logger.info(
            "translation_gateway_started",
            extra=self._extra(
                "translation_started",
                translation_mode=self._settings.translation_mode,
                provider_name=self._provider.name,
                retry_attempts=self._settings.translation_retry_attempts,
                timeout_seconds=self._settings.translation_timeout_seconds,
            ),
        )

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

        async with self._lock:
            self._metrics.running = False

    async def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
        session_id: str | None = None,
    ) -> TranslationResult:
        request = TranslationRequest.create(text, source_language, target_language, session_id)
        started = monotonic()

        error = request.validation_error(self._settings.translation_max_text_length)
        source = target = ""
        if error is None:
            try:
                source, target = resolve_language_pair(
                    request.source_language,
                    request.target_language,
                    request.text,
                )
            except UnsupportedLanguageError as exc:
                error = str(exc)

        if error is not None:
            self._logger.warning(
                "translation_validation_failed",
                extra=self._extra(
                    "translation_validation_failed",
                    session_id=request.session_id,
                    reason=error,
                    text_length=len(request.text),
                ),
            )
            result = self._failure(
                request,
                started,
                kind=ErrorKind.VALIDATION,
                detail=error,
                detected_source=request.source_language,
                attempts=0,
            )
        elif not self._health.should_attempt_live_call():
            result = self._offline_echo(request, source, started)
        else:
            result = await self._translate_live(request, source, target, started)

        await self._finish(result)
        return result

    async def is_service_available(self) -> bool:
        client = await self._ensure_client()
        try:
            request = self._provider.build_availability_request(client)
            response = await self._send(client, request)
            available = 200 <= response.status_code < 300
            reason = str(response.status_code)
        except asyncio.TimeoutError:
            available = False
            reason = "timeout"
        except httpx.RequestError as exc:
            available = False
            reason = f"{type(exc).__name__}:{exc}"

        await self._record_health(available)
        self._logger.info(
            "translation_availability_checked",
            extra=self._extra(
                "translation_availability_check",
                available=available,
                reason=reason,
            ),
        )
        return available

    async def force_status(self, online: bool) -> None:
        """Set the online flag by hand; subscribers are notified on a flip."""
        await self._record_health(online)

    def get_supported_languages(self) -> list[tuple[str, str]]:
        return language_choices()

    def snapshot(self) -> dict[str, Any]:
        payload = asdict(self._metrics)
        payload["health"] = self._health.snapshot()
        payload["is_online"] = self._health.is_online
        payload["client_open"] = self._client is not None
        return payload

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            if self._client_factory is not None:
                self._client = self._client_factory()
            else:
                self._client = httpx.AsyncClient(
                    base_url=self._settings.translation_base_url.rstrip("/"),
                    timeout=httpx.Timeout(self._settings.translation_timeout_seconds),
                    headers={"User-Agent": self._settings.user_agent},
                    follow_redirects=True,
                )
        return self._client

    async def _send(self, client: httpx.AsyncClient, request: httpx.Request) -> httpx.Response:
        # httpx timeouts bound each read, not the whole exchange.
        return await asyncio.wait_for(
            client.send(request),
            timeout=self._settings.translation_timeout_seconds,
        )

    async def _translate_live(
        self,
        request: TranslationRequest,
        source: str,
        target: str,
        started: float,
    ) -> TranslationResult:
        client = await self._ensure_client()
        self._logger.info(
            "translation_requested",
            extra=self._extra(
                "translation_requested",
                session_id=request.session_id,
                language_pair=f"{source}|{target}",
                text_length=len(request.text),
            ),
        )

        def _on_retry(attempt: int, failure: RetryableFailure, delay: float) -> None:
            self._logger.warning(
                "translation_attempt_failed",
                extra=self._extra(
                    "translation_retry",
                    session_id=request.session_id,
                    attempt=attempt,
                    max_attempts=self._settings.translation_retry_attempts,
                    reason=failure.reason,
                    retry_in_seconds=delay,
                ),
            )

        report = await run_with_retry(
            send=lambda: self._send(
                client,
                self._provider.build_request(client, request.text, source, target),
            ),
            max_attempts=self._settings.translation_retry_attempts,
            base_delay_seconds=self._settings.translation_retry_delay_seconds,
            sleep=self._sleep,
            on_retry=_on_retry,
        )
        if report.delays:
            async with self._lock:
                self._metrics.retry_events += len(report.delays)

        outcome = report.outcome
        if not isinstance(outcome, AttemptOk):
            # A terminal 4xx concerns this request only; the provider answered.
            if isinstance(outcome, RetryableFailure):
                await self._record_health(False)
            return self._failure(
                request,
                started,
                kind=outcome.kind,
                detail=outcome.reason,
                detected_source=source,
                attempts=report.attempts,
            )

        try:
            payload = self._provider.parse_response(outcome.response)
        except TranslationProviderError as exc:
            if exc.kind is ErrorKind.QUOTA_EXCEEDED:
                await self._record_health(False)
            return self._failure(
                request,
                started,
                kind=exc.kind,
                detail=exc.reason,
                detected_source=source,
                attempts=report.attempts,
            )

        await self._record_health(True)
        return TranslationResult(
            translated_text=payload.text,
            detected_source_language=source,
            source_language=request.source_language,
            target_language=request.target_language,
            confidence=payload.confidence,
            provider=self._provider.name,
            processing_time=self._elapsed(started),
            success=True,
            session_id=request.session_id,
            attempts=report.attempts,
        )

    def _offline_echo(
        self,
        request: TranslationRequest,
        source: str,
        started: float,
    ) -> TranslationResult:
        self._logger.info(
            "translation_offline_echo",
            extra=self._extra(
                "translation_offline_echo",
                session_id=request.session_id,
                last_checked_at=self._health.snapshot()["last_checked_at"],
            ),
        )
        return TranslationResult(
            translated_text=request.text,
            detected_source_language=source,
            source_language=request.source_language,
            target_language=request.target_language,
            confidence=OFFLINE_CONFIDENCE,
            provider=OFFLINE_PROVIDER,
            processing_time=self._elapsed(started),
            success=True,
            session_id=request.session_id,
            attempts=0,
        )

    def _failure(
        self,
        request: TranslationRequest,
        started: float,
        kind: ErrorKind,
        detail: str,
        detected_source: str,
        attempts: int,
    ) -> TranslationResult:
        return TranslationResult(
            translated_text=request.text,
            detected_source_language=detected_source,
            source_language=request.source_language,
            target_language=request.target_language,
            confidence=0.0,
            provider=self._provider.name,
            processing_time=self._elapsed(started),
            success=False,
            session_id=request.session_id,
            error_message=describe_failure(kind, detail),
            error_kind=kind,
            attempts=attempts,
        )

    async def _record_health(self, online: bool) -> None:
        if not self._health.record(online):
            return

        async with self._lock:
            self._metrics.status_changes += 1

        status = "online" if online else "offline"
        self._logger.info(
            "translation_connection_status_changed",
            extra=self._extra("connection_status_changed", status=status),
        )
        for handler in self._status_handlers:
            try:
                outcome = handler(online)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                self._logger.error(
                    "translation_status_handler_error",
                    extra=self._extra("translation_status_handler_error", reason=str(exc)),
                )

    async def _finish(self, result: TranslationResult) -> None:
        for handler in self._result_handlers:
            try:
                outcome = handler(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                self._logger.error(
                    "translation_result_handler_error",
                    extra=self._extra(
                        "translation_result_handler_error",
                        reason=str(exc),
                        session_id=result.session_id,
                    ),
                )

        latency_ms = result.processing_ms
        async with self._lock:
            previous_count = self._metrics.requests_total
            previous_avg = self._metrics.average_processing_ms
            self._metrics.requests_total += 1
            if result.success:
                self._metrics.requests_succeeded += 1
            else:
                self._metrics.requests_failed += 1
                self._metrics.last_error = result.error_message
            if result.error_kind is ErrorKind.VALIDATION:
                self._metrics.validation_failures += 1
            if result.provider == OFFLINE_PROVIDER:
                self._metrics.offline_echoes += 1
            self._metrics.last_processing_ms = latency_ms
            self._metrics.last_result_at = result.created_at.isoformat()
            self._metrics.average_processing_ms = round(
                ((previous_avg * previous_count) + latency_ms)
                / max(1, self._metrics.requests_total),
                3,
            )

        if result.success:
            self._logger.info(
                "translation_completed",
                extra=self._extra(
                    "translation_completed",
                    session_id=result.session_id,
                    provider=result.provider,
                    confidence=result.confidence,
                    attempts=result.attempts,
                    processing_ms=latency_ms,
                ),
            )
        elif result.error_kind is not ErrorKind.VALIDATION:
            self._logger.warning(
                "translation_failed",
                extra=self._extra(
                    "translation_failed",
                    session_id=result.session_id,
                    error_kind=result.error_kind.value if result.error_kind else None,
                    reason=result.error_message,
                    attempts=result.attempts,
                    processing_ms=latency_ms,
                ),
            )

    def _elapsed(self, started: float) -> timedelta:
        return timedelta(seconds=max(0.0, monotonic() - started))

    def _extra(self, event: str, **fields: Any) -> dict[str, Any]:
        return {
            "event": event,
            "service_name": self._settings.service_name,
            "service_version": self._settings.service_version,
            **fields,
        }
