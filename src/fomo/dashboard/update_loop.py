"""Periodic WebSocket update loop pushing the trailing candle to clients."""

from __future__ import annotations

import asyncio
import json

import structlog
from fastapi import FastAPI

log = structlog.get_logger(__name__)


def build_update(session) -> dict | None:
    """Payload describing the newest candle and the series size."""
    latest = session.store.latest()
    if latest is None:
        return None
    return {
        "type": "candle",
        "candle": latest.to_dict(),
        "candles": len(session.store),
        "oldest_time": session.store.oldest_time(),
        "history_exhausted": session.store.exhausted,
    }


async def dashboard_update_loop(app: FastAPI) -> None:
    """Broadcast the trailing candle whenever it changes.

    Runs until the application shuts down. Older candles only change through
    pagination, which clients pick up from the series size and re-fetch.
    """
    update_interval = getattr(app.state, "update_interval", 1.0)
    log.info("dashboard_update_loop_started", interval=update_interval)

    last_payload: str | None = None
    while True:
        try:
            await asyncio.sleep(update_interval)
            session = app.state.session
            hub = app.state.hub
            if session is None or not hub.connections:
                continue

            update = build_update(session)
            if update is None:
                continue
            payload = json.dumps(update)
            if payload == last_payload:
                continue
            last_payload = payload
            await hub.broadcast(payload)

        except asyncio.CancelledError:
            log.info("dashboard_update_loop_cancelled")
            break
        except Exception:
            log.warning("dashboard_update_loop_error", exc_info=True)
            await asyncio.sleep(1)
