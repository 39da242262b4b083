from datetime import datetime, timezone

import httpx
import pytest

from agents.sentinel.deps import get_analyzer, get_monitor, get_registry
from agents.sentinel.main import app
from agents.sentinel.models.schemas import RecheckResult, RugScanResponse
from agents.sentinel.models.enums import RugType, Severity, TokenStatus
from agents.sentinel.models.signals import LiquiditySignal, PoolInfo
from agents.sentinel.services.analyzer import TokenAnalyzer
from shared.config import settings

TOKEN = "0x1234567890abcdef1234567890abcdef12345678"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class StubCollector:
    def __init__(self, result=None):
        self.result = result

    async def collect(self, address, network, context=None):
        return self.result


class StubMonitor:
    def __init__(self):
        self.calls = []

    async def run_rug_scan(self, max_tokens=20):
        self.calls.append(max_tokens)
        return RugScanResponse(checked=3, failed=0, rugs_found=1, posts_created=1)


@pytest.fixture
def monitor():
    return StubMonitor()


@pytest.fixture
async def client(registry, monitor):
    market = LiquiditySignal(symbol="TEST", name="Test Token", price_usd=0.001,
                             pools=[PoolInfo(address="0xpool", reserve_usd=50_000)])
    analyzer = TokenAnalyzer(registry, {"liquidity": StubCollector(market)}, clock=lambda: NOW)
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_analyzer] = lambda: analyzer
    app.dependency_overrides[get_monitor] = lambda: monitor
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        c.headers["x-api-key"] = settings.API_SECRET_KEY
        yield c
    app.dependency_overrides.clear()


async def test_health_needs_no_key(client):
    resp = await client.get("/api/v1/sentinel/health", headers={"x-api-key": ""})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["agent"] == "sentinel"
    assert body["total_tracked"] == 0


async def test_missing_key_is_rejected(client):
    resp = await client.get("/api/v1/sentinel/stats", headers={"x-api-key": "wrong"})
    assert resp.status_code == 401


async def test_analyze_scores_and_tracks(client, registry):
    resp = await client.post("/api/v1/sentinel/analyze", json={"address": TOKEN})

    assert resp.status_code == 200
    body = resp.json()
    assert body["score"] == 50
    assert body["risk_level"] == "medium"
    assert body["contributing"] == ["liquidity"]
    assert body["short_text"].startswith("🔍 $TEST safety check")
    assert "source_code" not in (body["signals"].get("verification") or {})
    assert (await registry.get(TOKEN, "base")).original_score == 50


async def test_analyze_rejects_bad_address(client):
    resp = await client.post("/api/v1/sentinel/analyze", json={"address": "0xnope"})
    assert resp.status_code == 400


async def test_analyze_unresolvable_is_404(client, registry):
    app.dependency_overrides[get_analyzer] = lambda: TokenAnalyzer(registry, {"liquidity": StubCollector()})
    resp = await client.post("/api/v1/sentinel/analyze", json={"address": TOKEN})
    assert resp.status_code == 404


async def test_tracked_listing_and_lookup(client, tracked_token, registry):
    resp = await client.get("/api/v1/sentinel/tracked")
    assert resp.status_code == 200
    assert [t["address"] for t in resp.json()] == [TOKEN]

    resp = await client.get("/api/v1/sentinel/tracked", params={"status": "rugged"})
    assert resp.json() == []

    resp = await client.get(f"/api/v1/sentinel/tracked/base/{TOKEN.upper().replace('0X', '0x')}")
    assert resp.status_code == 200
    assert resp.json()["status"] == "active"

    resp = await client.get("/api/v1/sentinel/tracked/base/0x" + "0" * 40)
    assert resp.status_code == 404


async def test_stats_report_prediction_accuracy(client, registry):
    for address, score in (("0x" + "a" * 40, 20), ("0x" + "b" * 40, 80), ("0x" + "c" * 40, 60)):
        await registry.track_analyzed_token(address, "base", score=score, price=1.0, liquidity=1000)
    rugged = RecheckResult(current_liquidity=0, price_drop_percent=100, liquidity_drop_percent=100,
                           rug_type=RugType.LIQUIDITY_PULL, severity=Severity.CRITICAL,
                           new_status=TokenStatus.RUGGED)
    await registry.save_check("0x" + "a" * 40, "base", rugged, checked_at=NOW)
    await registry.save_check("0x" + "b" * 40, "base", rugged, checked_at=NOW)

    resp = await client.get("/api/v1/sentinel/stats")

    assert resp.json() == {
        "total_tracked": 3,
        "active_tokens": 1,
        "suspicious_tokens": 0,
        "rugged_tokens": 2,
        "delisted_tokens": 0,
        "prediction_accuracy": 50.0,
    }


async def test_incidents_empty(client):
    resp = await client.get("/api/v1/sentinel/incidents")
    assert resp.status_code == 200
    assert resp.json() == []


async def test_manual_scan(client, monitor):
    resp = await client.post("/api/v1/sentinel/scan", params={"max_tokens": 5})

    assert resp.status_code == 200
    assert resp.json()["rugs_found"] == 1
    assert monitor.calls == [5]
