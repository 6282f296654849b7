from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
def get_health(request: Request) -> dict[str, Any]:
    settings = request.app.state.settings
    started_at = request.app.state.started_at
    gateway_snapshot = request.app.state.translation_gateway.snapshot()
    realtime_snapshot = request.app.state.event_broadcaster.snapshot()
    now = datetime.now(timezone.utc)
    uptime_seconds = max(0.0, (now - started_at).total_seconds())

    return {
        "status": "ok",
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment,
        "kiosk_id": settings.kiosk_id,
        "started_at": started_at.isoformat(),
        "uptime_seconds": round(uptime_seconds, 3),
        "checks": {
            "translation_mode": settings.translation_mode,
            "translation_running": gateway_snapshot["running"],
            "translation_online": gateway_snapshot["is_online"],
            "translation_last_checked_at": gateway_snapshot["health"]["last_checked_at"],
            "realtime_enabled": realtime_snapshot["realtime_enabled"],
            "realtime_running": realtime_snapshot["running"],
        },
    }
