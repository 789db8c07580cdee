"""WebSocket hub: pushes candle updates and receives viewport range events."""

from __future__ import annotations

import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

log = structlog.get_logger(__name__)

router = APIRouter()


class DashboardHub:
    """Manages WebSocket connections and broadcasts JSON payloads to all clients."""

    def __init__(self) -> None:
        self.connections: list[WebSocket] = []

    async def connect(self, ws: WebSocket) -> None:
        """Accept a WebSocket connection and add it to the active connections list."""
        await ws.accept()
        self.connections.append(ws)
        log.info("dashboard_ws_connected", total=len(self.connections))

    def disconnect(self, ws: WebSocket) -> None:
        """Remove a WebSocket connection from the active connections list."""
        if ws in self.connections:
            self.connections.remove(ws)
        log.info("dashboard_ws_disconnected", total=len(self.connections))

    async def broadcast(self, payload: str) -> None:
        """Send a payload to all connected clients, removing broken connections."""
        for ws in self.connections.copy():
            try:
                await ws.send_text(payload)
            except Exception:
                self.connections.remove(ws)
                log.warning("dashboard_ws_broadcast_error", remaining=len(self.connections))


def parse_range_event(message: str) -> int | None:
    """Earliest visible time from a ``{"type": "range", "from": ms}`` message."""
    try:
        data = json.loads(message)
    except ValueError:
        return None
    if not isinstance(data, dict) or data.get("type") != "range":
        return None
    visible_from = data.get("from")
    if isinstance(visible_from, bool) or not isinstance(visible_from, (int, float)):
        return None
    return int(visible_from)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for live updates and viewport range changes."""
    ws_hub: DashboardHub = websocket.app.state.hub
    await ws_hub.connect(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            visible_from = parse_range_event(message)
            if visible_from is None:
                continue
            session = websocket.app.state.session
            if session is not None:
                await session.on_range_change(visible_from)
    except WebSocketDisconnect:
        ws_hub.disconnect(websocket)
