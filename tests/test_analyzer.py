from datetime import datetime, timezone

import pytest

from agents.sentinel.models.enums import RiskLevel, Sentiment, TokenStatus
from agents.sentinel.models.signals import (
    ContractVerification, HoneypotSignal, LiquiditySignal, PoolInfo, SocialSentiment, TokenSignals,
)
from agents.sentinel.services.analyzer import (
    InvalidAddressError, TokenAnalyzer, UnresolvableTokenError, build_context,
    format_report_short, validate_address,
)

TOKEN = "0x1234567890abcdef1234567890abcdef12345678"
DEPLOYER = "0x9999999999999999999999999999999999999999"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class StubCollector:
    def __init__(self, result=None):
        self.result = result
        self.contexts = []

    async def collect(self, address, network, context=None):
        self.contexts.append(context)
        return self.result


class BrokenRegistry:
    async def track_analyzed_token(self, *args, **kwargs):
        raise RuntimeError("database is locked")


def market() -> LiquiditySignal:
    return LiquiditySignal(
        symbol="TEST", name="Test Token", price_usd=0.001,
        pools=[PoolInfo(address="0xpool", reserve_usd=50_000, volume_24h=5_000)],
    )


def test_validate_address():
    assert validate_address(" " + TOKEN.upper().replace("0X", "0x") + " ") == TOKEN
    for bad in ("", "0x123", "1234567890abcdef1234567890abcdef1234567890", "0x" + "g" * 40):
        with pytest.raises(InvalidAddressError):
            validate_address(bad)


async def test_invalid_address_never_reaches_collectors(registry):
    stub = StubCollector(market())
    analyzer = TokenAnalyzer(registry, {"liquidity": stub})

    with pytest.raises(InvalidAddressError):
        await analyzer.analyze_token("not-an-address")
    assert stub.contexts == []


async def test_all_collectors_failing_gives_degraded_report(registry):
    analyzer = TokenAnalyzer(registry, {"liquidity": StubCollector(), "honeypot": StubCollector()}, clock=lambda: NOW)

    report = await analyzer.analyze_token(TOKEN)

    assert report.score == 50
    assert report.risk_level is RiskLevel.UNKNOWN
    assert report.assessment.contributing == []
    assert await registry.get(TOKEN, "base") is None


async def test_strict_mode_rejects_tokens_with_no_data(registry):
    analyzer = TokenAnalyzer(registry, {"liquidity": StubCollector()})

    with pytest.raises(UnresolvableTokenError):
        await analyzer.analyze_token(TOKEN, strict=True)


async def test_phase_two_sees_phase_one_findings(registry):
    sentiment = StubCollector(SocialSentiment(sentiment=Sentiment.BULLISH))
    deployer = StubCollector()
    source = StubCollector()
    collectors = {
        "liquidity": StubCollector(market()),
        "honeypot": StubCollector(HoneypotSignal(simulation_success=True, creator_address=DEPLOYER)),
        "verification": StubCollector(ContractVerification(
            is_verified=True, contract_name="Test", source_code="contract Test {}",
        )),
        "sentiment": sentiment,
        "deployer": deployer,
        "source_security": source,
    }
    analyzer = TokenAnalyzer(registry, collectors, clock=lambda: NOW)

    report = await analyzer.analyze_token(TOKEN, "Base")

    ctx = deployer.contexts[0]
    assert ctx.symbol == "TEST"
    assert ctx.deployer_address == DEPLOYER
    assert source.contexts[0].source_code == "contract Test {}"
    assert sentiment.contexts[0].is_verified
    assert collectors["liquidity"].contexts == [None]

    assert report.network == "base"
    assert report.signals.sentiment.sentiment is Sentiment.BULLISH
    assert report.assessment.contributing == ["honeypot", "verification", "liquidity", "sentiment"]
    assert report.score == 75
    assert "Test Token ($TEST) on base" in report.summary
    assert "[" not in report.summary


async def test_analysis_tracks_baseline_once(registry):
    collectors = {
        "liquidity": StubCollector(market()),
        "honeypot": StubCollector(HoneypotSignal(is_honeypot=True)),
    }
    analyzer = TokenAnalyzer(registry, collectors, clock=lambda: NOW)

    first = await analyzer.analyze_token(TOKEN)
    collectors["honeypot"].result = HoneypotSignal(simulation_success=True)
    await analyzer.analyze_token(TOKEN)

    row = await registry.get(TOKEN, "base")
    assert row.original_score == first.score
    assert row.original_honeypot is True
    assert row.original_price == 0.001
    assert row.original_liquidity == 50_000
    assert row.symbol == "TEST"
    assert row.status == TokenStatus.ACTIVE.value


async def test_tracking_failure_does_not_fail_analysis():
    analyzer = TokenAnalyzer(BrokenRegistry(), {"liquidity": StubCollector(market())}, clock=lambda: NOW)

    report = await analyzer.analyze_token(TOKEN)

    assert report.score == 50
    assert report.signals.liquidity.symbol == "TEST"


def test_context_falls_back_to_simulation_metadata():
    ctx = build_context(TokenSignals(
        liquidity=LiquiditySignal(found=False),
        honeypot=HoneypotSignal(token_symbol="HP", token_name="Honey", owner_address=DEPLOYER),
    ))

    assert ctx.symbol == "HP"
    assert ctx.name == "Honey"
    assert ctx.deployer_address == DEPLOYER
    assert not ctx.is_verified


async def test_short_report(registry):
    collectors = {
        "liquidity": StubCollector(market()),
        "verification": StubCollector(ContractVerification(is_verified=False)),
    }
    report = await TokenAnalyzer(registry, collectors, clock=lambda: NOW).analyze_token(TOKEN)

    text = format_report_short(report)

    assert text.startswith("🔍 $TEST safety check")
    assert "🟠 HIGH risk · 35/100" in text
    assert "⚠️ Contract source code NOT VERIFIED" in text
    assert text.endswith("0x1234...5678 (base)")
