from __future__ import annotations

import asyncio
import logging
import unittest
from typing import Any

from kiosk.app.realtime.manager import KioskEventBroadcaster
from kiosk.app.settings import Settings


class _FakeScreen:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.release = asyncio.Event()
        self.closed_with: int | None = None

    async def accept(self) -> None:
        return None

    async def send_json(self, data: dict[str, Any]) -> None:
        await self.release.wait()
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = dict(
        service_name="airport-kiosk-gateway",
        service_version="1.0.0-test",
        environment="test",
        log_level="INFO",
        host="127.0.0.1",
        port=7001,
        kiosk_id="kiosk-test",
        translation_mode="mock",
        translation_base_url="http://mymemory.test",
        translation_timeout_seconds=2.0,
        translation_retry_attempts=1,
        translation_retry_delay_ms=0,
        translation_default_confidence=0.5,
        realtime_client_queue_maxsize=2,
        realtime_recent_events_limit=3,
    )
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


class KioskEventBroadcasterTest(unittest.IsolatedAsyncioTestCase):
    async def _drain(self, screen: _FakeScreen, expected: int) -> None:
        for _ in range(200):
            if len(screen.sent) >= expected:
                return
            await asyncio.sleep(0.005)
        self.fail(f"screen received {len(screen.sent)} of {expected} events")

    async def test_slow_screen_loses_oldest_events(self) -> None:
        broadcaster = KioskEventBroadcaster(_settings(), logging.getLogger("kiosk.test.realtime"))
        await broadcaster.start()
        screen = _FakeScreen()
        screen_id = await broadcaster.attach(screen)  # type: ignore[arg-type]
        self.assertIsNotNone(screen_id)

        for index in range(4):
            await broadcaster.publish("translation.result", {"index": index})

        screen.release.set()
        await self._drain(screen, 2)

        self.assertEqual([event["payload"]["index"] for event in screen.sent], [2, 3])
        snapshot = broadcaster.snapshot()
        self.assertEqual(snapshot["events_published"], 4)
        self.assertEqual(snapshot["events_dropped"], 2)
        self.assertEqual(snapshot["history_size"], 3)
        self.assertEqual(
            [event["payload"]["index"] for event in broadcaster.recent_events(limit=10)],
            [3, 2, 1],
        )

        await broadcaster.stop()
        self.assertEqual(screen.closed_with, 1000)
        self.assertEqual(broadcaster.snapshot()["connected_screens"], 0)

    async def test_attached_screen_receives_current_status_first(self) -> None:
        broadcaster = KioskEventBroadcaster(
            _settings(),
            logging.getLogger("kiosk.test.realtime"),
            status_provider=lambda: False,
        )
        await broadcaster.start()
        screen = _FakeScreen()
        screen.release.set()
        await broadcaster.attach(screen)  # type: ignore[arg-type]
        await self._drain(screen, 1)

        self.assertEqual(screen.sent[0]["event"], "connection.status")
        self.assertEqual(screen.sent[0]["payload"]["status"], "offline")
        self.assertEqual(broadcaster.snapshot()["events_published"], 0)
        await broadcaster.stop()

    async def test_disabled_broadcaster_refuses_screens(self) -> None:
        broadcaster = KioskEventBroadcaster(
            _settings(realtime_enabled=False),
            logging.getLogger("kiosk.test.realtime"),
        )
        await broadcaster.start()
        screen = _FakeScreen()

        self.assertIsNone(await broadcaster.attach(screen))  # type: ignore[arg-type]
        self.assertEqual(screen.closed_with, 1013)
        await broadcaster.publish_connection_status(False)
        self.assertEqual(broadcaster.recent_events(), [])


if __name__ == "__main__":
    unittest.main()
