from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Request, WebSocket, WebSocketDisconnect

from kiosk.app.realtime.manager import PONG_EVENT

router = APIRouter(tags=["realtime"])


@router.get("/realtime/status")
def get_broadcast_status(request: Request) -> dict[str, Any]:
    return request.app.state.event_broadcaster.snapshot()


@router.get("/realtime/recent")
def get_recent_events(
    request: Request,
    limit: int = Query(default=20, ge=1, le=200),
) -> dict[str, Any]:
    events = request.app.state.event_broadcaster.recent_events(limit=limit)
    return {"events": events, "count": len(events)}


@router.websocket("/ws/events")
async def kiosk_screen_socket(websocket: WebSocket) -> None:
    broadcaster = websocket.app.state.event_broadcaster
    screen_id = await broadcaster.attach(websocket)
    if screen_id is None:
        return

    # Screens only send keepalives; anything else is ignored.
    try:
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await broadcaster.reply(screen_id, PONG_EVENT, {"screen_id": screen_id})
    except WebSocketDisconnect:
        pass
    finally:
        await broadcaster.detach(screen_id)
