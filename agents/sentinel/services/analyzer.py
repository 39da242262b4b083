"""
Token Analyzer — runs every collector for one token and scores the result.

Collection happens in two concurrent phases. Phase one needs only the
address; phase two needs what phase one found (symbol, deployer, verified
source). A collector that fails or returns None just leaves its slot empty.
"""
import asyncio
import re
from datetime import datetime, timezone
from typing import Callable
import structlog

from shared.outcomes import get_ledger
from agents.sentinel.config import AGENT_NAME, DEFAULT_NETWORK
from agents.sentinel.models.enums import RiskLevel
from agents.sentinel.models.schemas import RiskAssessment, TokenReport
from agents.sentinel.models.signals import CollectionContext, TokenSignals
from agents.sentinel.services.collectors.base import SignalCollector
from agents.sentinel.services.collectors.deployer import DeployerCollector
from agents.sentinel.services.collectors.goplus import GoPlusCollector
from agents.sentinel.services.collectors.holders import HolderCollector
from agents.sentinel.services.collectors.honeypot import HoneypotCollector
from agents.sentinel.services.collectors.liquidity import LiquidityCollector
from agents.sentinel.services.collectors.protocol import ProtocolCollector
from agents.sentinel.services.collectors.social import MentionCollector, SentimentCollector
from agents.sentinel.services.collectors.source_scan import SourceScanCollector
from agents.sentinel.services.collectors.verification import VerificationCollector
from agents.sentinel.services.registry import TokenRegistry
from agents.sentinel.services.scorer import score_signals

logger = structlog.get_logger()

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

PHASE_ONE = ("liquidity", "honeypot", "verification", "goplus", "holders")
PHASE_TWO = ("sentiment", "mentions", "source_security", "deployer", "protocol")

RISK_MARKERS = {
    RiskLevel.LOW: "🟢",
    RiskLevel.MEDIUM: "🟡",
    RiskLevel.HIGH: "🟠",
    RiskLevel.CRITICAL: "🔴",
    RiskLevel.UNKNOWN: "⚪",
}

_SOURCE_TAG = re.compile(r"^\[\w+\] ")


class InvalidAddressError(ValueError):
    pass


class UnresolvableTokenError(LookupError):
    pass


def validate_address(address: str) -> str:
    address = (address or "").strip()
    if not ADDRESS_RE.match(address):
        raise InvalidAddressError(f"Invalid token address: {address!r}")
    return address.lower()


def default_collectors() -> dict[str, SignalCollector]:
    ledger = get_ledger(AGENT_NAME)
    return {
        "liquidity": LiquidityCollector(ledger=ledger),
        "honeypot": HoneypotCollector(ledger=ledger),
        "verification": VerificationCollector(ledger=ledger),
        "goplus": GoPlusCollector(ledger=ledger),
        "holders": HolderCollector(ledger=ledger),
        "sentiment": SentimentCollector(ledger=ledger),
        "mentions": MentionCollector(ledger=ledger),
        "source_security": SourceScanCollector(ledger=ledger),
        "deployer": DeployerCollector(ledger=ledger),
        "protocol": ProtocolCollector(ledger=ledger),
    }


def build_context(signals: TokenSignals) -> CollectionContext:
    """What phase two needs from phase one."""
    liq, hp, ver = signals.liquidity, signals.honeypot, signals.verification
    symbol = (liq.symbol if liq else None) or (hp.token_symbol if hp else None)
    name = (liq.name if liq else None) or (hp.token_name if hp else None)
    deployer = (hp.creator_address or hp.owner_address) if hp else None
    return CollectionContext(
        symbol=symbol,
        name=name,
        deployer_address=deployer,
        is_verified=bool(ver and ver.is_verified),
        source_code=ver.source_code if ver else None,
        contract_name=ver.contract_name if ver else None,
    )


def _strip_tag(text: str) -> str:
    return _SOURCE_TAG.sub("", text)


def _price(value: float | None) -> str:
    if value is None:
        return "n/a"
    if value >= 1:
        return f"${value:,.4f}"
    return f"${value:.10f}".rstrip("0").rstrip(".")


def build_summary(address: str, network: str, signals: TokenSignals, assessment: RiskAssessment) -> str:
    ctx = build_context(signals)
    risk = assessment.risk_level
    price = signals.liquidity.price_usd if signals.liquidity else None
    lines = [
        f"{ctx.name or 'Unknown Token'} (${ctx.symbol or 'UNKNOWN'}) on {network}",
        f"Contract: {address}",
        f"Price: {_price(price)}",
        f"Risk: {RISK_MARKERS[risk]} {risk.value.upper()} (score {assessment.score}/100)",
    ]
    if assessment.warnings:
        lines.append("Warnings:")
        lines.extend(f"- {_strip_tag(w)}" for w in assessment.warnings[:3])
    if assessment.positives:
        lines.append("Positives:")
        lines.extend(f"- {_strip_tag(p)}" for p in assessment.positives[:3])
    return "\n".join(lines)


def format_report_short(report: TokenReport) -> str:
    """Compact text for a social post."""
    a = report.assessment
    symbol = build_context(report.signals).symbol or "UNKNOWN"
    lines = [
        f"🔍 ${symbol} safety check",
        f"{RISK_MARKERS[a.risk_level]} {a.risk_level.value.upper()} risk · {a.score}/100",
    ]
    lines.extend(_strip_tag(w) for w in a.warnings[:2])
    lines.extend(_strip_tag(p) for p in a.positives[:2])
    lines.append(f"{report.address[:6]}...{report.address[-4:]} ({report.network})")
    return "\n".join(lines)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenAnalyzer:
    def __init__(
        self,
        registry: TokenRegistry | None = None,
        collectors: dict[str, SignalCollector] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.registry = registry if registry is not None else TokenRegistry()
        self.collectors = collectors if collectors is not None else default_collectors()
        self._now = clock

    async def _run_phase(self, names, address, network, context, signals: dict):
        active = [n for n in names if n in self.collectors]
        results = await asyncio.gather(
            *(self.collectors[n].collect(address, network, context) for n in active)
        )
        signals.update(zip(active, results))

    async def collect_signals(self, address: str, network: str) -> TokenSignals:
        found: dict = {}
        await self._run_phase(PHASE_ONE, address, network, None, found)
        context = build_context(TokenSignals(**found))
        await self._run_phase(PHASE_TWO, address, network, context, found)
        return TokenSignals(**found)

    async def analyze_token(self, address: str, network: str = DEFAULT_NETWORK, strict: bool = False) -> TokenReport:
        address = validate_address(address)
        network = network.lower()
        logger.info("token_analysis_started", address=address[:10], network=network)

        signals = await self.collect_signals(address, network)
        present = signals.present()
        if not present and strict:
            raise UnresolvableTokenError(f"No data available for {address} on {network}")

        assessment = score_signals(signals)
        report = TokenReport(
            address=address,
            network=network,
            timestamp=self._now(),
            signals=signals,
            assessment=assessment,
            summary=build_summary(address, network, signals, assessment),
        )
        logger.info(
            "token_analyzed",
            address=address[:10],
            score=assessment.score,
            risk=assessment.risk_level.value,
            signals=len(present),
        )

        if present:
            await self._track(report)
        return report

    async def _track(self, report: TokenReport):
        signals = report.signals
        ctx = build_context(signals)
        try:
            await self.registry.track_analyzed_token(
                report.address,
                report.network,
                report.score,
                symbol=ctx.symbol,
                name=ctx.name,
                price=signals.liquidity.price_usd if signals.liquidity else None,
                liquidity=signals.liquidity.total_liquidity if signals.liquidity else None,
                is_honeypot=bool(
                    (signals.honeypot and signals.honeypot.is_honeypot)
                    or (signals.goplus and signals.goplus.is_honeypot)
                ),
                analyzed_at=report.timestamp,
            )
        except Exception as e:
            logger.error("token_tracking_failed", address=report.address[:10], error=str(e))
