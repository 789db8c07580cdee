"""Tests for dashboard JSON endpoints and the WebSocket range channel."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from factories import EIGHT_HOURS_MS, T0, make_candle
from fomo.dashboard.app import create_dashboard_app
from fomo.dashboard.routes.ws import parse_range_event
from fomo.dashboard.update_loop import build_update
from fomo.export import CSV_COLUMNS
from fomo.series.store import CandleSeriesStore


@pytest.fixture
def session() -> MagicMock:
    """Session stand-in backed by a real store."""
    store = CandleSeriesStore()
    store.initialize(
        [
            make_candle(T0, funding="0.07"),
            make_candle(T0 + EIGHT_HOURS_MS, funding="-0.063"),
        ]
    )
    session = MagicMock()
    session.store = store
    session.symbol = "BTCUSDT"
    session.interval = "8h"
    session.status.return_value = {"candles": 2, "history_exhausted": False}
    session.on_range_change = AsyncMock(return_value=False)
    return session


@pytest.fixture
def client(session: MagicMock) -> TestClient:
    app = create_dashboard_app()
    app.state.session = session
    return TestClient(app)


class TestApi:
    """REST endpoints."""

    def test_candles(self, client: TestClient) -> None:
        body = client.get("/api/candles").json()
        assert [c["open_time"] for c in body] == [T0, T0 + EIGHT_HOURS_MS]
        assert body[0]["sentiment_index"] == 3
        assert body[0]["color"] == "#ef4444"
        assert body[1]["funding_rate_8h"] == "-0.063"

    def test_candle_detail(self, client: TestClient) -> None:
        body = client.get(f"/api/candles/{T0}").json()
        assert body["label"] == "FOMO"
        assert body["index_display"] == "3 FOMO"
        assert body["close"] == "105"

    def test_candle_detail_missing(self, client: TestClient) -> None:
        assert client.get(f"/api/candles/{T0 + 1}").status_code == 404

    def test_export(self, client: TestClient) -> None:
        response = client.get("/api/export.csv")
        assert response.status_code == 200
        assert "fomo_finder_btcusdt_8h.csv" in response.headers["content-disposition"]
        lines = response.text.strip().split("\n")
        assert lines[0] == ",".join(CSV_COLUMNS)
        assert len(lines) == 3

    def test_status(self, client: TestClient) -> None:
        assert client.get("/api/status").json()["candles"] == 2

    def test_no_session_is_unavailable(self) -> None:
        client = TestClient(create_dashboard_app())
        assert client.get("/api/candles").status_code == 503


class TestWebSocket:
    """Viewport range events."""

    def test_range_event_forwarded(self, client: TestClient, session: MagicMock) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text(json.dumps({"type": "range", "from": T0}))
            ws.send_text("ping")
        session.on_range_change.assert_awaited_once_with(T0)

    @pytest.mark.parametrize(
        "message, expected",
        [
            ('{"type": "range", "from": 1704067200000}', 1704067200000),
            ('{"type": "range", "from": 1.5e12}', 1_500_000_000_000),
            ('{"type": "range"}', None),
            ('{"type": "range", "from": true}', None),
            ('{"type": "hello", "from": 1}', None),
            ("[1, 2]", None),
            ("ping", None),
        ],
    )
    def test_parse_range_event(self, message: str, expected: int | None) -> None:
        assert parse_range_event(message) == expected


class TestUpdatePayload:
    """Trailing candle push payload."""

    def test_build_update(self, session: MagicMock) -> None:
        update = build_update(session)
        assert update["type"] == "candle"
        assert update["candle"]["open_time"] == T0 + EIGHT_HOURS_MS
        assert update["candles"] == 2

    def test_empty_series(self, session: MagicMock) -> None:
        session.store = CandleSeriesStore()
        assert build_update(session) is None
