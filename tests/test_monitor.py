from datetime import datetime, timedelta, timezone

import pytest

from agents.sentinel.models.enums import RugType, Severity, TokenStatus
from agents.sentinel.models.schemas import PublishResult, RecheckResult
from agents.sentinel.models.signals import GoPlusAnalysis, HoneypotSignal, LiquiditySignal, PoolInfo
from agents.sentinel.services.monitor import (
    RecheckUnavailable, RugMonitor, drop_percent, evaluate_recheck,
)
from agents.sentinel.services.publisher import IncidentPublisher, PublishError
from agents.sentinel.services.registry import as_utc

TOKEN = "0x1234567890abcdef1234567890abcdef12345678"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


QUIET_CHECK = RecheckResult(
    current_price=1.0, current_liquidity=20_000, price_drop_percent=0, liquidity_drop_percent=0,
    new_status=TokenStatus.ACTIVE,
)


def market(price: float | None, liquidity: float) -> LiquiditySignal:
    return LiquiditySignal(price_usd=price, pools=[PoolInfo(address="0xpool", reserve_usd=liquidity)])


class FakeCollector:
    """Returns a preset result per address (or the same one for every address)."""

    def __init__(self, result=None, by_address: dict | None = None):
        self.result = result
        self.by_address = by_address or {}
        self.calls: list[str] = []

    async def collect(self, address, network, context=None):
        self.calls.append(address)
        result = self.by_address.get(address, self.result)
        if isinstance(result, Exception):
            raise result
        return result


class FakePublisher:
    def __init__(self):
        self.published = []

    async def publish(self, incident):
        self.published.append(incident)
        return PublishResult(success=True, post_id=f"post-{len(self.published)}")


def make_monitor(registry, sleeps, liquidity, honeypot=None, goplus=None, publisher=None):
    return RugMonitor(
        registry,
        liquidity=FakeCollector(liquidity) if not isinstance(liquidity, FakeCollector) else liquidity,
        honeypot=FakeCollector(honeypot),
        goplus=FakeCollector(goplus),
        publisher=publisher,
        sleep=sleeps,
        clock=lambda: NOW,
    )


def test_drop_percent_without_baseline_is_zero():
    assert drop_percent(0, 10) == 0.0
    assert drop_percent(None, 10) == 0.0
    assert drop_percent(10, None) == 0.0
    assert drop_percent(50_000, 500) == 99.0
    assert drop_percent(0.001, 0.00005) == 95.0


def test_price_rise_is_a_negative_drop():
    assert drop_percent(1.0, 1.5) == -50.0


async def test_price_crash_and_liquidity_pull(tracked_token):
    result = evaluate_recheck(tracked_token, market(0.00005, 500))

    assert result.price_drop_percent == 95.0
    assert result.liquidity_drop_percent == 99.0
    assert result.rug_type is RugType.PRICE_CRASH
    assert result.severity is Severity.CRITICAL
    assert result.new_status is TokenStatus.RUGGED
    assert result.indicators[0] == "Price crashed 95.0% ($0.001 → $0.00005)"
    assert result.indicators[1].startswith("Liquidity pulled: 99.0% removed ($50,000.00 → $500.00)")


async def test_confirmed_price_crash_is_suspicious(tracked_token):
    result = evaluate_recheck(tracked_token, market(0.00015, 45_000))

    assert result.rug_type is RugType.PRICE_CRASH
    assert result.severity is Severity.CONFIRMED
    assert result.new_status is TokenStatus.SUSPICIOUS


async def test_honeypot_flip(tracked_token):
    result = evaluate_recheck(
        tracked_token,
        market(0.0009, 48_000),
        HoneypotSignal(is_honeypot=True, honeypot_reason="Sell reverted"),
    )

    assert result.rug_type is RugType.HONEYPOT_FLIP
    assert result.severity is Severity.CRITICAL
    assert result.new_status is TokenStatus.RUGGED
    assert result.indicators == ["Now flagged as honeypot: Sell reverted"]


async def test_honeypot_at_baseline_is_not_a_flip(registry):
    await registry.track_analyzed_token(TOKEN, "base", score=5, price=1.0, liquidity=1000, is_honeypot=True)
    token = await registry.get(TOKEN, "base")

    result = evaluate_recheck(token, market(1.0, 1000), HoneypotSignal(is_honeypot=True))

    assert result.rug_type is None
    assert result.new_status is TokenStatus.ACTIVE


async def test_price_warning_only_records_indicator(tracked_token):
    result = evaluate_recheck(tracked_token, market(0.00045, 50_000))

    assert result.rug_type is None
    assert result.severity is Severity.WARNING
    assert result.new_status is TokenStatus.ACTIVE
    assert result.indicators == ["Price down 55.0% since analysis"]


async def test_trading_restriction_does_not_downgrade_critical(tracked_token):
    result = evaluate_recheck(
        tracked_token,
        market(0.00001, 50_000),
        goplus=GoPlusAnalysis(cannot_sell_all=True, owner_change_balance=True),
    )

    assert result.rug_type is RugType.PRICE_CRASH
    assert result.severity is Severity.CRITICAL
    assert "Trading restricted: cannot sell all" in result.indicators
    assert "Owner can modify holder balances" in result.indicators


async def test_trading_disabled_alone_is_confirmed(tracked_token):
    result = evaluate_recheck(tracked_token, market(0.001, 50_000), goplus=GoPlusAnalysis(cannot_buy=True))

    assert result.rug_type is RugType.TRADING_DISABLED
    assert result.severity is Severity.CONFIRMED
    assert result.new_status is TokenStatus.SUSPICIOUS


async def test_missing_market_is_a_liquidity_pull(tracked_token):
    result = evaluate_recheck(tracked_token, LiquiditySignal(found=False))

    assert result.rug_type is RugType.LIQUIDITY_PULL
    assert result.severity is Severity.CRITICAL
    assert result.current_price is None
    assert result.price_drop_percent == 0.0
    assert result.liquidity_drop_percent == 100.0


async def test_zero_baseline_never_divides(registry):
    await registry.track_analyzed_token(TOKEN, "base", score=60, price=0, liquidity=0)
    token = await registry.get(TOKEN, "base")

    result = evaluate_recheck(token, market(0.5, 100))

    assert result.price_drop_percent == 0.0
    assert result.liquidity_drop_percent == 0.0
    assert result.rug_type is None


async def test_check_token_persists_and_returns_incident(registry, tracked_token, sleeps):
    monitor = make_monitor(registry, sleeps, market(0.00005, 500))

    incident = await monitor.check_token(tracked_token)

    assert incident.rug_type is RugType.PRICE_CRASH
    assert incident.severity is Severity.CRITICAL
    assert incident.original_score == 80
    assert incident.we_predicted_it is False
    assert incident.detected_at == NOW

    row = await registry.get(TOKEN, "base")
    assert row.status == TokenStatus.RUGGED.value
    assert row.current_price == 0.00005
    assert row.current_liquidity == 500
    assert as_utc(row.last_checked_at) == NOW
    assert len(row.rug_indicators) == 2


async def test_warning_only_check_still_saves_indicators(registry, tracked_token, sleeps):
    monitor = make_monitor(registry, sleeps, market(0.00045, 50_000))

    assert await monitor.check_token(tracked_token) is None

    row = await registry.get(TOKEN, "base")
    assert row.status == TokenStatus.ACTIVE.value
    assert row.rug_indicators == ["Price down 55.0% since analysis"]


async def test_no_market_data_raises(registry, tracked_token, sleeps):
    monitor = make_monitor(registry, sleeps, None)

    with pytest.raises(RecheckUnavailable):
        await monitor.check_token(tracked_token)

    row = await registry.get(TOKEN, "base")
    assert row.last_checked_at is None


async def test_rugged_token_never_returns_to_active(registry, tracked_token, sleeps):
    await make_monitor(registry, sleeps, market(0.00005, 500)).check_token(tracked_token)
    recovered = make_monitor(registry, sleeps, market(0.002, 80_000))

    await recovered.check_token(tracked_token)

    row = await registry.get(TOKEN, "base")
    assert row.status == TokenStatus.RUGGED.value
    assert row.current_price == 0.002


async def test_scan_skips_recently_checked_and_paces(registry, sleeps):
    fresh = "0x" + "a" * 40
    stale = "0x" + "b" * 40
    never = "0x" + "c" * 40
    for address in (fresh, stale, never):
        await registry.track_analyzed_token(address, "base", score=70, price=1.0, liquidity=20_000,
                                            analyzed_at=NOW - timedelta(days=3))

    def save(address, hours_ago):
        return registry.save_check(
            address, "base",
            QUIET_CHECK,
            checked_at=NOW - timedelta(hours=hours_ago),
        )

    await save(fresh, 1)
    await save(stale, 12)

    liquidity = FakeCollector(market(1.0, 20_000))
    monitor = make_monitor(registry, sleeps, liquidity)

    scan = await monitor.scan_for_rugs(max_tokens=10)

    assert liquidity.calls == [never, stale]
    assert scan.checked == 2
    assert scan.failed == 0
    assert scan.incidents == []
    assert sleeps.calls == [0.2]


async def test_one_failed_token_does_not_stop_the_scan(registry, sleeps):
    broken = "0x" + "d" * 40
    rugged = "0x" + "e" * 40
    for address in (broken, rugged):
        await registry.track_analyzed_token(address, "base", score=30, price=1.0, liquidity=20_000)

    liquidity = FakeCollector(by_address={broken: None, rugged: market(0.01, 100)})
    monitor = make_monitor(registry, sleeps, liquidity)

    scan = await monitor.scan_for_rugs()

    assert scan.checked == 1
    assert scan.failed == 1
    assert [i.token_address for i in scan.incidents] == [rugged]
    assert scan.incidents[0].we_predicted_it is True


async def test_rugged_and_suspicious_tokens_are_not_rechecked(registry, tracked_token, sleeps):
    await make_monitor(registry, sleeps, market(0.00005, 500)).check_token(tracked_token)
    liquidity = FakeCollector(market(0.001, 50_000))

    scan = await make_monitor(registry, sleeps, liquidity).scan_for_rugs()

    assert scan.checked == 0
    assert liquidity.calls == []


async def test_run_rug_scan_publishes_each_incident(registry, sleeps):
    addresses = ["0x" + c * 40 for c in "12"]
    for address in addresses:
        await registry.track_analyzed_token(address, "base", score=40, price=1.0, liquidity=10_000)
    publisher = FakePublisher()
    monitor = make_monitor(registry, sleeps, market(0.01, 50), publisher=publisher)

    summary = await monitor.run_rug_scan(max_tokens=5)

    assert summary.checked == 2
    assert summary.rugs_found == 2
    assert summary.posts_created == 2
    assert len(publisher.published) == 2
    # one pacing delay between tokens, one between posts
    assert sleeps.calls == [0.2, 1.0]


async def test_price_to_zero_is_a_crash(tracked_token):
    result = evaluate_recheck(tracked_token, market(0.0, 40_000))

    assert drop_percent(0.001, 0.0) == 100.0
    assert result.price_drop_percent == 100.0
    assert result.rug_type is RugType.PRICE_CRASH
    assert result.severity is Severity.CRITICAL
    assert result.new_status is TokenStatus.RUGGED
    assert result.indicators[0] == "Price crashed 100.0% ($0.001 → $0)"


class FlakyChannel:
    """Fails the first send, succeeds afterwards."""

    name = "flaky"

    def __init__(self):
        self.attempts = 0

    async def send(self, text: str) -> str:
        self.attempts += 1
        if self.attempts == 1:
            raise PublishError("channel down")
        return "0xretried"


async def test_failed_alert_is_published_on_the_next_pass(registry, tracked_token, sleeps):
    now = [NOW]
    channel = FlakyChannel()
    monitor = RugMonitor(
        registry,
        liquidity=FakeCollector(market(0.00005, 500)),
        honeypot=FakeCollector(),
        goplus=FakeCollector(),
        publisher=IncidentPublisher(registry, channel, clock=lambda: now[0]),
        sleep=sleeps,
        clock=lambda: now[0],
    )

    first = await monitor.run_rug_scan()

    assert (first.checked, first.rugs_found, first.posts_created) == (1, 1, 0)
    assert await registry.get_incident_posted_at(TOKEN, "base") is None
    assert await registry.recent_incidents() == []

    now[0] = NOW + timedelta(hours=7)
    second = await monitor.run_rug_scan()

    assert second.checked == 0
    assert second.posts_created == 1
    assert channel.attempts == 2
    assert await registry.get_incident_posted_at(TOKEN, "base") == NOW + timedelta(hours=7)
    incidents = await registry.recent_incidents()
    assert len(incidents) == 1
    assert incidents[0].rug_type is RugType.PRICE_CRASH
    assert incidents[0].severity is Severity.CRITICAL
    assert incidents[0].price_drop_percent == 95.0
    assert incidents[0].detected_at == NOW
    assert incidents[0].post_hash == "0xretried"

    third = await monitor.run_rug_scan()
    assert third.posts_created == 0
    assert channel.attempts == 2
