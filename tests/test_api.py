"""Tests for the HTTP surface — /health, /weights, /evaluate, /backtest."""

import math

import pytest
from fastapi.testclient import TestClient

from signalcore.api.routers import configure_routers, json_safe
from signalcore.config import Config, ScorerConfig
from signalcore.main import app
from signalcore.strategy.weights import PatternWeightTable

client = TestClient(app)

DIP = 120


@pytest.fixture(autouse=True)
def _default_routers():
    configure_routers()
    yield
    configure_routers()


# ── Health and weights ───────────────────────────────────────────────────


class TestHealth:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_weights_default(self):
        resp = client.get("/weights")
        assert resp.status_code == 200
        data = resp.json()
        assert data["version"] == "2024.1"
        assert len(data["entries"]) == 16

    def test_weights_injected(self):
        configure_routers(weight_table=PatternWeightTable(version="empty", entries=()))
        assert client.get("/weights").json() == {"version": "empty", "entries": []}


# ── Evaluate ─────────────────────────────────────────────────────────────


class TestEvaluate:
    def test_dip_is_buy(self, dip_rows):
        resp = client.post("/evaluate", json={"candles": dip_rows[:DIP + 1]})
        assert resp.status_code == 200
        data = resp.json()
        assert data["decision"]["direction"] == "BUY"
        assert data["timestamp"] == dip_rows[DIP]["timestamp"]
        assert data["symbol"] == "EUR/USD"
        assert set(data["market"]) == {"open", "reason"}
        opportunity = data["opportunity"]
        assert opportunity["signal_type"] == "BUY"
        assert opportunity["stop_loss"] == data["levels"]["stop_loss"]

    def test_symbol_override(self, dip_rows):
        body = {"candles": dip_rows[:DIP + 1], "symbol": "GBP/USD"}
        data = client.post("/evaluate", json=body).json()
        assert data["symbol"] == "GBP/USD"
        assert data["opportunity"]["symbol"] == "GBP/USD"

    def test_min_confidence_downgrades(self, dip_rows):
        body = {"candles": dip_rows[:DIP + 1], "min_confidence": 99}
        data = client.post("/evaluate", json=body).json()
        assert data["decision"]["direction"] == "NONE"
        assert data["opportunity"] is None
        assert data["levels"] is None

    def test_configured_gate_applies(self, dip_rows):
        configure_routers(config=Config(scorer=ScorerConfig(min_confidence=99)))
        data = client.post("/evaluate", json={"candles": dip_rows[:DIP + 1]}).json()
        assert data["decision"]["direction"] == "NONE"

    def test_quiet_range_is_none(self, dip_rows):
        data = client.post("/evaluate", json={"candles": dip_rows[:61]}).json()
        assert data["decision"]["direction"] == "NONE"
        assert data["opportunity"] is None

    def test_bad_ohlc_is_400(self, dip_rows):
        rows = [dict(r) for r in dip_rows[:30]]
        rows[10]["high"] = rows[10]["close"] - 0.001
        resp = client.post("/evaluate", json={"candles": rows})
        assert resp.status_code == 400
        assert "10" in resp.json()["detail"]

    def test_missing_field_is_422(self, dip_rows):
        rows = [dict(r) for r in dip_rows[:30]]
        del rows[3]["close"]
        resp = client.post("/evaluate", json={"candles": rows})
        assert resp.status_code == 422
        assert "Candle 3" in resp.json()["detail"]

    def test_mixed_offsets_are_normalised(self, dip_rows):
        rows = [dict(r) for r in dip_rows[:DIP + 1]]
        rows[-1]["timestamp"] = rows[-1]["timestamp"].replace("Z", "+00:00")
        data = client.post("/evaluate", json={"candles": rows}).json()
        assert data["timestamp"] == dip_rows[DIP]["timestamp"]

    def test_out_of_order_offset_is_400(self, dip_rows):
        rows = [dict(r) for r in dip_rows[:30]]
        # 11:00+03:00 is 08:00Z, before row 10
        rows[11]["timestamp"] = rows[11]["timestamp"].replace("Z", "+03:00")
        assert client.post("/evaluate", json={"candles": rows}).status_code == 400

    def test_empty_candles_is_422(self):
        assert client.post("/evaluate", json={"candles": []}).status_code == 422
        assert client.post("/evaluate", json={}).status_code == 422

    def test_bad_min_confidence_is_422(self, dip_rows):
        body = {"candles": dip_rows[:30], "min_confidence": 150}
        assert client.post("/evaluate", json=body).status_code == 422


# ── Backtest ─────────────────────────────────────────────────────────────


class TestBacktest:
    def test_runs(self, dip_rows):
        resp = client.post("/backtest", json={"candles": dip_rows})
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_trades"] >= 1
        assert data["period"] == {
            "start": dip_rows[0]["timestamp"], "end": dip_rows[-1]["timestamp"],
        }
        assert data["weight_table_version"] == "2024.1"

    def test_max_trades(self, dip_rows):
        data = client.post("/backtest", json={"candles": dip_rows, "max_trades": 1}).json()
        assert data["total_trades"] == 1

    def test_fractional_max_trades_is_422(self, dip_rows):
        resp = client.post("/backtest", json={"candles": dip_rows, "max_trades": 1.5})
        assert resp.status_code == 422
        assert "whole number" in resp.json()["detail"]

    def test_integral_float_max_trades_accepted(self, dip_rows):
        data = client.post("/backtest", json={"candles": dip_rows, "max_trades": 1.0}).json()
        assert data["total_trades"] == 1

    def test_too_few_candles_is_400(self, dip_rows):
        resp = client.post("/backtest", json={"candles": dip_rows[:50]})
        assert resp.status_code == 400
        assert "50" in resp.json()["detail"]

    def test_period_filter_applies(self, dip_rows):
        body = {"candles": dip_rows, "start": "2024-01-01", "end": "2024-01-02"}
        assert client.post("/backtest", json=body).status_code == 400

    def test_invalid_period_is_422(self, dip_rows):
        body = {"candles": dip_rows, "start": "not-a-date"}
        assert client.post("/backtest", json=body).status_code == 422


# ── JSON safety ──────────────────────────────────────────────────────────


class TestJsonSafe:
    def test_non_finite_floats_become_none(self):
        data = {"pf": math.inf, "nested": [1.5, -math.inf, {"x": math.nan}], "ok": "a"}
        assert json_safe(data) == {"pf": None, "nested": [1.5, None, {"x": None}], "ok": "a"}

    def test_tuples_become_lists(self):
        assert json_safe((1, 2.0)) == [1, 2.0]
