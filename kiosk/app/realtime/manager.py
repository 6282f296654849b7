from __future__ import annotations

import asyncio
import itertools
import logging
import uuid
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from fastapi import WebSocket

from kiosk.app.settings import Settings
from kiosk.app.translation.types import TranslationResult

CONNECTION_STATUS_EVENT = "connection.status"
TRANSLATION_RESULT_EVENT = "translation.result"
PONG_EVENT = "pong"


@dataclass
class BroadcastMetrics:
    started_at: str | None = None
    running: bool = False
    connected_screens: int = 0
    screens_seen: int = 0
    events_published: int = 0
    events_dropped: int = 0
    last_sequence: int = 0
    last_event_at: str | None = None
    last_error: str | None = None
    by_type: dict[str, int] = field(default_factory=dict)


@dataclass
class _ScreenConnection:
    screen_id: str
    websocket: WebSocket
    outbox: asyncio.Queue[dict[str, Any]]
    writer: asyncio.Task[None] | None = None


class KioskEventBroadcaster:
    """Pushes gateway events to the kiosk screens attached over websocket.

    Every screen owns a bounded outbox and a single writer task, so the socket
    is only ever written from one place. A screen that falls behind loses its
    oldest queued events; the ``sequence`` field on each event lets it notice
    the gap. Newly attached screens first receive the current connection
    status.
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        status_provider: Callable[[], bool] | None = None,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._status_provider = status_provider
        self._metrics = BroadcastMetrics()
        self._screens: dict[str, _ScreenConnection] = {}
        self._history: deque[dict[str, Any]] = deque(
            maxlen=max(1, settings.realtime_recent_events_limit)
        )
        self._type_counts: Counter[str] = Counter()
        self._sequence = itertools.count(1)
        self._closing = False
        self._lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self._settings.realtime_enabled

    async def start(self) -> None:
        if not self.enabled:
            self._logger.info(
                "realtime_disabled",
                extra=self._extra("realtime_disabled"),
            )
            return

        self._closing = False
        async with self._lock:
            self._metrics.started_at = datetime.now(timezone.utc).isoformat()
            self._metrics.running = True
            self._metrics.last_error = None

    async def stop(self) -> None:
        self._closing = True
        for screen_id in list(self._screens):
            await self.detach(screen_id)

        async with self._lock:
            self._metrics.running = False
            self._metrics.connected_screens = 0

    async def attach(self, websocket: WebSocket) -> str | None:
        if not self.enabled:
            await websocket.close(code=1013)
            return None

        await websocket.accept()
        connection = _ScreenConnection(
            screen_id=uuid.uuid4().hex[:12],
            websocket=websocket,
            outbox=asyncio.Queue(maxsize=max(1, self._settings.realtime_client_queue_maxsize)),
        )
        if self._status_provider is not None:
            connection.outbox.put_nowait(
                self._envelope(CONNECTION_STATUS_EVENT, self._status_payload(self._status_provider()))
            )

        async with self._lock:
            self._screens[connection.screen_id] = connection
            self._metrics.connected_screens = len(self._screens)
            self._metrics.screens_seen += 1

        connection.writer = asyncio.create_task(
            self._write_loop(connection),
            name=f"kiosk-screen-writer-{connection.screen_id}",
        )
        self._logger.info(
            "realtime_screen_attached",
            extra=self._extra("realtime_screen_attached", screen_id=connection.screen_id),
        )
        return connection.screen_id

    async def detach(self, screen_id: str) -> None:
        async with self._lock:
            connection = self._screens.pop(screen_id, None)
            self._metrics.connected_screens = len(self._screens)

        if connection is None:
            return

        writer = connection.writer
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass

        try:
            await connection.websocket.close()
        except Exception:
            # Already closed by the client side.
            pass

    async def publish_connection_status(self, online: bool) -> None:
        await self.publish(CONNECTION_STATUS_EVENT, self._status_payload(online))

    async def publish_translation_result(self, result: TranslationResult) -> None:
        await self.publish(TRANSLATION_RESULT_EVENT, result.to_dict())

    async def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        if not self.enabled:
            return

        event = self._envelope(event_type, payload)
        async with self._lock:
            self._history.append(event)
            self._type_counts[event_type] += 1
            self._metrics.events_published += 1
            self._metrics.last_sequence = event["sequence"]
            self._metrics.last_event_at = event["timestamp"]
            self._metrics.by_type = dict(self._type_counts)
            screens = list(self._screens.values())

        dropped = sum(0 if self._offer(screen, event) else 1 for screen in screens)
        if dropped:
            async with self._lock:
                self._metrics.events_dropped += dropped

    async def reply(self, screen_id: str, event_type: str, payload: dict[str, Any]) -> None:
        """Queue an event for one screen only; it is not kept in history."""
        connection = self._screens.get(screen_id)
        if connection is None:
            return
        if not self._offer(connection, self._envelope(event_type, payload)):
            async with self._lock:
                self._metrics.events_dropped += 1

    def snapshot(self) -> dict[str, Any]:
        payload = asdict(self._metrics)
        payload["realtime_enabled"] = self.enabled
        payload["history_size"] = len(self._history)
        payload["screen_ids"] = sorted(self._screens)
        return payload

    def recent_events(self, limit: int = 20) -> list[dict[str, Any]]:
        """Newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._history))[:limit]

    def _offer(self, connection: _ScreenConnection, event: dict[str, Any]) -> bool:
        """Enqueue ``event``; returns False when an older event had to be dropped."""
        evicted = False
        if connection.outbox.full():
            try:
                connection.outbox.get_nowait()
                evicted = True
            except asyncio.QueueEmpty:
                pass
        connection.outbox.put_nowait(event)
        return not evicted

    def _envelope(self, event_type: str, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "event": event_type,
            "sequence": next(self._sequence),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "payload": payload,
        }

    def _status_payload(self, online: bool) -> dict[str, Any]:
        return {
            "status": "online" if online else "offline",
            "kiosk_id": self._settings.kiosk_id,
        }

    async def _write_loop(self, connection: _ScreenConnection) -> None:
        while not self._closing:
            event = await connection.outbox.get()
            try:
                await connection.websocket.send_json(event)
            except Exception as exc:
                async with self._lock:
                    self._metrics.last_error = str(exc)
                self._logger.warning(
                    "realtime_screen_send_failed",
                    extra=self._extra(
                        "realtime_send_failed",
                        screen_id=connection.screen_id,
                        reason=str(exc),
                    ),
                )
                break

        await self.detach(connection.screen_id)

    def _extra(self, event: str, **fields: Any) -> dict[str, Any]:
        return {
            "event": event,
            "service_name": self._settings.service_name,
            "service_version": self._settings.service_version,
            **fields,
        }
