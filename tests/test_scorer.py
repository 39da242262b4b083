import pytest

from agents.sentinel.models.enums import GoPlusLevel, MentionTone, RiskLevel, Sentiment
from agents.sentinel.models.signals import (
    ClankerInfo, ContractVerification, DeployerIntel, GoPlusAnalysis, HolderAnalysis,
    HoneypotSignal, LiquiditySignal, Mention, MentionSignal, PoolInfo, ProtocolSignal,
    SecurityIssue, SocialSentiment, SourceSecuritySignal, TokenSignals,
)
from agents.sentinel.services.scorer import risk_level_for, score_signals


def clean_signals() -> TokenSignals:
    return TokenSignals(
        liquidity=LiquiditySignal(pools=[PoolInfo(address="0xpool", reserve_usd=150_000, volume_24h=20_000)],
                                  price_usd=1.2),
        honeypot=HoneypotSignal(simulation_success=True, is_open_source=True, holder_count=900),
        verification=ContractVerification(is_verified=True, contract_name="Token"),
        source_security=SourceSecuritySignal(score=95),
        holders=HolderAnalysis(total_holders=600),
        goplus=GoPlusAnalysis(risk_level=GoPlusLevel.LOW),
        protocol=ProtocolSignal(token_price=1.2, protocol_name="Token", tvl=20_000_000),
    )


def test_no_signals_is_neutral_and_unknown():
    result = score_signals(TokenSignals())

    assert result.score == 50
    assert result.risk_level is RiskLevel.UNKNOWN
    assert result.warnings == []
    assert result.contributing == []


def test_clean_token_is_clamped_to_100():
    result = score_signals(clean_signals())

    assert result.score == 100
    assert result.risk_level is RiskLevel.LOW
    assert result.warnings == []


def test_honeypot_is_critical_regardless_of_score():
    signals = clean_signals().model_copy(update={
        "honeypot": HoneypotSignal(is_honeypot=True, honeypot_reason="Sell reverted"),
    })
    result = score_signals(signals)

    assert result.score == 45
    assert result.risk_level is RiskLevel.CRITICAL
    assert "[honeypot] 🚨 HONEYPOT DETECTED: Sell reverted" in result.warnings


def test_score_never_goes_below_zero():
    signals = TokenSignals(
        honeypot=HoneypotSignal(is_honeypot=True, sell_tax=99, is_mintable=True, can_take_back_ownership=True),
        verification=ContractVerification(is_verified=False),
        goplus=GoPlusAnalysis(risk_level=GoPlusLevel.CRITICAL),
    )
    result = score_signals(signals)

    assert result.score == 0
    assert result.risk_level is RiskLevel.CRITICAL


@pytest.mark.parametrize("signals, expected", [
    (TokenSignals(verification=ContractVerification(is_verified=False)), 35),
    (TokenSignals(verification=ContractVerification(is_verified=True)), 60),
    (TokenSignals(source_security=SourceSecuritySignal(score=75)), 55),
    (TokenSignals(source_security=SourceSecuritySignal(score=45)), 30),
    (TokenSignals(source_security=SourceSecuritySignal(score=25)), 20),
    (TokenSignals(source_security=SourceSecuritySignal(score=60)), 50),
    (TokenSignals(honeypot=HoneypotSignal(sell_tax=15)), 40),
    (TokenSignals(honeypot=HoneypotSignal(sell_tax=25)), 30),
    (TokenSignals(honeypot=HoneypotSignal(is_mintable=True)), 40),
    (TokenSignals(honeypot=HoneypotSignal(can_take_back_ownership=True)), 25),
    (TokenSignals(liquidity=LiquiditySignal(pools=[PoolInfo(address="0xp", reserve_usd=5_000)])), 40),
    (TokenSignals(liquidity=LiquiditySignal(pools=[PoolInfo(address="0xp", reserve_usd=50_000)])), 50),
    (TokenSignals(sentiment=SocialSentiment(sentiment=Sentiment.BULLISH)), 55),
    (TokenSignals(sentiment=SocialSentiment(sentiment=Sentiment.BEARISH)), 45),
    (TokenSignals(holders=HolderAnalysis(risk_level=RiskLevel.CRITICAL)), 30),
    (TokenSignals(holders=HolderAnalysis(risk_level=RiskLevel.HIGH)), 40),
    (TokenSignals(holders=HolderAnalysis(risk_level=RiskLevel.MEDIUM, total_holders=500)), 55),
    (TokenSignals(goplus=GoPlusAnalysis(risk_level=GoPlusLevel.HIGH)), 35),
    (TokenSignals(goplus=GoPlusAnalysis(risk_level=GoPlusLevel.MEDIUM)), 45),
    (TokenSignals(goplus=GoPlusAnalysis(risk_level=GoPlusLevel.LOW, trust_list=True)), 60),
    (TokenSignals(protocol=ProtocolSignal()), 47),
    (TokenSignals(protocol=ProtocolSignal(token_price=1.0, tvl=2_000_000, audit_count=2)), 56),
])
def test_signal_weights(signals, expected):
    assert score_signals(signals).score == expected


def test_mentions_add_three_and_subtract_five():
    mentions = MentionSignal(account="bankr", mentions=[
        Mention(text="gem", tone=MentionTone.POSITIVE),
        Mention(text="alpha", tone=MentionTone.POSITIVE),
        Mention(text="careful", tone=MentionTone.NEGATIVE),
    ])
    result = score_signals(TokenSignals(mentions=mentions))

    assert result.score == 51
    assert "[mentions] 💰 @bankr mentioned positively (2x)" in result.positives
    assert "[mentions] ⚠️ @bankr warned about this token (1x)" in result.warnings


@pytest.mark.parametrize("intel, expected", [
    (DeployerIntel(overall_risk=RiskLevel.CRITICAL), 20),
    (DeployerIntel(overall_risk=RiskLevel.HIGH), 35),
    (DeployerIntel(overall_risk=RiskLevel.MEDIUM, clanker=ClankerInfo()), 55),
    (DeployerIntel(overall_risk=RiskLevel.LOW, clanker=ClankerInfo(is_verified_builder=True)), 75),
])
def test_deployer_weights_and_launch_bonus(intel, expected):
    assert score_signals(TokenSignals(deployer=intel)).score == expected


def test_every_finding_is_tagged_with_its_source():
    signals = TokenSignals(
        liquidity=LiquiditySignal(found=False, warnings=["Token not found or not indexed yet"]),
        verification=ContractVerification(is_verified=False),
        source_security=SourceSecuritySignal(score=60, issues=[
            SecurityIssue(name="Reentrancy", severity="critical", description="", fix=""),
        ]),
        holders=HolderAnalysis(risk_level=RiskLevel.HIGH, warnings=["🔥 12.0% burned"]),
    )
    result = score_signals(signals)

    assert "[liquidity] Token not found or not indexed yet" in result.warnings
    assert "[holders] 🔥 12.0% burned" in result.warnings
    assert "[source_security] 🚨 1 CRITICAL security issue(s) in contract" in result.warnings
    sources = {w[1:w.index("]")] for w in result.warnings + result.positives}
    assert sources <= set(result.contributing)
    assert result.contributing == ["verification", "source_security", "liquidity", "holders"]


def test_scoring_is_deterministic():
    first = score_signals(clean_signals())
    second = score_signals(clean_signals())
    assert first.model_dump() == second.model_dump()


@pytest.mark.parametrize("score, level", [
    (100, RiskLevel.LOW),
    (70, RiskLevel.LOW),
    (69, RiskLevel.MEDIUM),
    (50, RiskLevel.MEDIUM),
    (49, RiskLevel.HIGH),
    (30, RiskLevel.HIGH),
    (29, RiskLevel.CRITICAL),
    (0, RiskLevel.CRITICAL),
])
def test_risk_level_bands(score, level):
    assert risk_level_for(score, is_honeypot=False, any_signal=True) is level
