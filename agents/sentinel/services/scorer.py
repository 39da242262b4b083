"""
Composite Scorer — reduces a bundle of signals to one 0-100 score.

Starts at a neutral 50 and applies fixed additive adjustments per signal,
then clamps to 0-100. Missing signals contribute nothing. No clock, no
randomness: the same signals always give the same score.

Every warning and positive is tagged with the signal it came from,
e.g. "[goplus] 🛡️ Hidden owner - ...".
"""
from dataclasses import dataclass, field

from agents.sentinel.config import BASELINE_SCORE, HIGH_LIQUIDITY_USD, LOW_LIQUIDITY_USD, MANY_HOLDERS
from agents.sentinel.models.enums import GoPlusLevel, RiskLevel, Sentiment
from agents.sentinel.models.schemas import RiskAssessment
from agents.sentinel.models.signals import TokenSignals


@dataclass
class _Scorecard:
    score: int = BASELINE_SCORE
    source: str = ""
    warnings: list[str] = field(default_factory=list)
    positives: list[str] = field(default_factory=list)

    def add(self, points: int):
        self.score += points

    def warn(self, text: str):
        self.warnings.append(f"[{self.source}] {text}")

    def praise(self, text: str):
        self.positives.append(f"[{self.source}] {text}")


def _honeypot(card: _Scorecard, hp):
    if hp.is_honeypot:
        card.add(-50)
        card.warn(f"🚨 HONEYPOT DETECTED: {hp.honeypot_reason or 'Cannot sell tokens'}")
    elif hp.simulation_success:
        card.add(10)
        card.praise("✅ Not a honeypot - buy/sell simulation passed")

    if hp.sell_tax > 20:
        card.add(-20)
    elif hp.sell_tax > 10:
        card.add(-10)
    if hp.sell_tax > 10:
        card.warn(f"⚠️ High sell tax: {hp.sell_tax:.1f}%")
    if hp.buy_tax > 10:
        card.warn(f"⚠️ High buy tax: {hp.buy_tax:.1f}%")
    if hp.sell_tax <= 5 and hp.buy_tax <= 5:
        card.praise(f"✅ Low taxes: Buy {hp.buy_tax:.1f}% / Sell {hp.sell_tax:.1f}%")

    if hp.is_mintable:
        card.add(-10)
        card.warn("⚠️ Token is mintable - supply can be inflated")
    if hp.can_take_back_ownership:
        card.add(-25)
        card.warn("🚨 Owner can reclaim ownership - major red flag")
    if hp.is_open_source:
        card.praise("✅ Open source contract")
    if hp.holder_count and hp.holder_count > 100:
        card.praise(f"👥 {hp.holder_count:,} holders")


def _verification(card: _Scorecard, verification):
    if verification.is_verified:
        card.add(10)
        card.praise("✅ Contract source verified")
    else:
        card.add(-15)
        card.warn("⚠️ Contract source code NOT VERIFIED")


def _source_security(card: _Scorecard, sec):
    if sec.score >= 90:
        card.add(10)
    elif sec.score >= 70:
        card.add(5)
    elif sec.score < 30:
        card.add(-30)
    elif sec.score < 50:
        card.add(-20)

    criticals = sec.count("critical")
    highs = sec.count("high")
    if criticals:
        card.warn(f"🚨 {criticals} CRITICAL security issue(s) in contract")
    if highs:
        card.warn(f"⚠️ {highs} HIGH severity security issue(s)")
    if sec.score >= 80:
        card.praise(f"✅ Security score: {sec.score}/100")


def _liquidity(card: _Scorecard, liq):
    total = liq.total_liquidity
    if total > HIGH_LIQUIDITY_USD:
        card.add(5)
    elif total < LOW_LIQUIDITY_USD:
        card.add(-10)
    for w in liq.warnings:
        card.warn(w)
    if liq.trending:
        card.praise("🔥 Currently trending on GeckoTerminal")


def _sentiment(card: _Scorecard, sentiment):
    if sentiment.sentiment is Sentiment.BULLISH:
        card.add(5)
        card.praise("📈 Bullish sentiment on Farcaster")
    elif sentiment.sentiment is Sentiment.BEARISH:
        card.add(-5)
        card.warn("📉 Bearish sentiment on Farcaster")


def _mentions(card: _Scorecard, mentions):
    positive, negative = mentions.positive_count, mentions.negative_count
    card.add(positive * 3 - negative * 5)
    if positive:
        card.praise(f"💰 @{mentions.account} mentioned positively ({positive}x)")
    if negative:
        card.warn(f"⚠️ @{mentions.account} warned about this token ({negative}x)")


def _deployer(card: _Scorecard, intel):
    if intel.overall_risk is RiskLevel.CRITICAL:
        card.add(-30)
    elif intel.overall_risk is RiskLevel.HIGH:
        card.add(-15)
    elif intel.overall_risk is RiskLevel.LOW:
        card.add(10)
    if intel.clanker and intel.clanker.launched_via_clanker:
        card.add(5)
        if intel.clanker.is_verified_builder:
            card.add(10)
    for f in intel.risk_factors:
        card.warn(f)
    for f in intel.positive_factors:
        card.praise(f)


def _holders(card: _Scorecard, holders):
    if holders.risk_level is RiskLevel.CRITICAL:
        card.add(-20)
        card.warn("🐋 CRITICAL: Extreme holder concentration detected")
    elif holders.risk_level is RiskLevel.HIGH:
        card.add(-10)
        card.warn("🐋 High holder concentration risk")
    elif holders.risk_level is RiskLevel.LOW:
        card.add(5)
        card.praise("✅ Healthy holder distribution")
    if holders.total_holders >= MANY_HOLDERS:
        card.add(5)
    if holders.total_holders >= 100:
        card.praise(f"👥 {holders.total_holders:,} unique holders")
    for w in holders.warnings:
        card.warn(w)


def _goplus(card: _Scorecard, gp):
    points = {
        GoPlusLevel.CRITICAL: -25,
        GoPlusLevel.HIGH: -15,
        GoPlusLevel.MEDIUM: -5,
        GoPlusLevel.LOW: 5,
    }
    card.add(points[gp.risk_level])
    if gp.trust_list:
        card.add(5)
        card.praise("🛡️ On trust list")

    for risk in gp.risks:
        if risk.severity in (GoPlusLevel.CRITICAL, GoPlusLevel.HIGH):
            card.warn(f"🛡️ {risk.title} - {risk.description}")
    if gp.risk_level is GoPlusLevel.CRITICAL:
        card.warn("🛡️ CRITICAL security risk detected")
    elif gp.risk_level is GoPlusLevel.LOW:
        card.praise("🛡️ Low security risk")
    for note in gp.warnings[:2]:
        card.praise(f"ℹ️ {note}")


def _protocol(card: _Scorecard, protocol):
    if protocol.tvl and protocol.tvl > 10_000_000:
        card.add(5)
    elif protocol.tvl and protocol.tvl > 1_000_000:
        card.add(3)
    if protocol.tvl and protocol.tvl > 1_000_000:
        card.praise(f"📊 Protocol TVL ${protocol.tvl / 1e6:.2f}M")
    if protocol.audit_count:
        card.add(3)
        card.praise(f"✅ {protocol.audit_count} audit(s) on record")
    if not protocol.tracked:
        card.add(-3)
        card.warn("📊 Token not tracked - may be very new or low liquidity")


_RULES = [
    ("honeypot", _honeypot),
    ("verification", _verification),
    ("source_security", _source_security),
    ("liquidity", _liquidity),
    ("sentiment", _sentiment),
    ("mentions", _mentions),
    ("deployer", _deployer),
    ("holders", _holders),
    ("goplus", _goplus),
    ("protocol", _protocol),
]


def risk_level_for(score: int, is_honeypot: bool, any_signal: bool) -> RiskLevel:
    if is_honeypot:
        return RiskLevel.CRITICAL
    if not any_signal:
        return RiskLevel.UNKNOWN
    if score >= 70:
        return RiskLevel.LOW
    if score >= 50:
        return RiskLevel.MEDIUM
    if score >= 30:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def score_signals(signals: TokenSignals) -> RiskAssessment:
    card = _Scorecard()
    contributing = []
    for name, rule in _RULES:
        signal = getattr(signals, name)
        if signal is None:
            continue
        contributing.append(name)
        card.source = name
        rule(card, signal)

    score = max(0, min(100, card.score))
    is_honeypot = bool(signals.honeypot and signals.honeypot.is_honeypot)
    return RiskAssessment(
        score=score,
        risk_level=risk_level_for(score, is_honeypot, bool(contributing)),
        warnings=card.warnings,
        positives=card.positives,
        contributing=contributing,
    )
