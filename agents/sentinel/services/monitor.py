"""
Rug Monitor — re-checks tracked tokens against their baseline.

Each pass picks the stalest active tokens, re-collects market, sale
simulation and security flags, and compares them with what we saw at first
analysis. Status only moves forward: active -> suspicious | rugged.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable
import structlog

from agents.sentinel.config import (
    LIQUIDITY_PULL_PCT, LIQUIDITY_WARNING_PCT, MAX_TOKENS_PER_SCAN, PACED_SCAN_DELAY,
    POST_DELAY, PRICE_CRASH_CRITICAL_PCT, PRICE_CRASH_PCT, PRICE_WARNING_PCT,
    RECHECK_STALE_AFTER, RISKY_SCORE_CUTOFF,
)
from agents.sentinel.models.db import TrackedToken
from agents.sentinel.models.enums import RugType, Severity, TokenStatus
from agents.sentinel.models.schemas import RecheckResult, RugIncident, RugScanResponse, ScanResult
from agents.sentinel.models.signals import GoPlusAnalysis, HoneypotSignal, LiquiditySignal
from agents.sentinel.services.collectors.goplus import GoPlusCollector
from agents.sentinel.services.collectors.honeypot import HoneypotCollector
from agents.sentinel.services.collectors.liquidity import LiquidityCollector
from agents.sentinel.services.registry import TokenRegistry, as_utc

logger = structlog.get_logger()


class RecheckUnavailable(Exception):
    """The market data provider gave us nothing to compare against."""


def drop_percent(original: float | None, current: float | None) -> float:
    """Percent fall from original to current.

    0 when there is no baseline or the current value is unknown; a current
    value of 0 is a full 100% drop.
    """
    if not original or original <= 0 or current is None:
        return 0.0
    return round((original - current) / original * 100, 2)


def _usd(value: float) -> str:
    if value >= 1:
        return f"${value:,.2f}"
    return "$" + f"{value:.10f}".rstrip("0").rstrip(".")


def evaluate_recheck(
    token: TrackedToken,
    liquidity: LiquiditySignal,
    honeypot: HoneypotSignal | None = None,
    goplus: GoPlusAnalysis | None = None,
) -> RecheckResult:
    """Compare a fresh read of the market against the token's baseline.

    Checks run in a fixed order; the first rug type to fire names the
    incident and later checks can only raise its severity.
    """
    current_price = liquidity.price_usd
    current_liquidity = liquidity.total_liquidity
    price_drop = drop_percent(token.original_price, current_price)
    liquidity_drop = drop_percent(token.original_liquidity, current_liquidity)

    indicators: list[str] = []
    rug_type: RugType | None = None
    severity = Severity.WARNING

    def fire(kind: RugType, level: Severity):
        nonlocal rug_type, severity
        if rug_type is None:
            rug_type = kind
        severity = severity.escalate(level)

    if price_drop >= PRICE_CRASH_PCT:
        indicators.append(
            f"Price crashed {price_drop:.1f}% ({_usd(token.original_price or 0)} → {_usd(current_price or 0)})"
        )
        fire(RugType.PRICE_CRASH, Severity.CRITICAL if price_drop >= PRICE_CRASH_CRITICAL_PCT else Severity.CONFIRMED)
    elif price_drop >= PRICE_WARNING_PCT:
        indicators.append(f"Price down {price_drop:.1f}% since analysis")

    if liquidity_drop >= LIQUIDITY_PULL_PCT:
        indicators.append(
            f"Liquidity pulled: {liquidity_drop:.1f}% removed "
            f"({_usd(token.original_liquidity or 0)} → {_usd(current_liquidity)})"
        )
        fire(RugType.LIQUIDITY_PULL, Severity.CRITICAL)
    elif liquidity_drop >= LIQUIDITY_WARNING_PCT:
        indicators.append(f"Liquidity down {liquidity_drop:.1f}%")

    honeypot_now = bool((honeypot and honeypot.is_honeypot) or (goplus and goplus.is_honeypot))
    if honeypot_now and not token.original_honeypot:
        reason = honeypot.honeypot_reason if honeypot and honeypot.honeypot_reason else "sells now fail"
        indicators.append(f"Now flagged as honeypot: {reason}")
        fire(RugType.HONEYPOT_FLIP, Severity.CRITICAL)

    if goplus and goplus.trading_restricted:
        restrictions = [
            label for label, on in (
                ("cannot sell all", goplus.cannot_sell_all),
                ("trading cooldown", goplus.trading_cooldown),
                ("cannot buy", goplus.cannot_buy),
            ) if on
        ]
        indicators.append(f"Trading restricted: {', '.join(restrictions)}")
        fire(RugType.TRADING_DISABLED, Severity.CONFIRMED)

    if goplus and goplus.owner_change_balance:
        indicators.append("Owner can modify holder balances")

    if not liquidity.tradeable:
        indicators.append("No tradeable market data (delisted or pools removed)")
        fire(RugType.LIQUIDITY_PULL, Severity.CONFIRMED)

    if rug_type is None:
        new_status = TokenStatus.ACTIVE
    elif severity is Severity.CRITICAL:
        new_status = TokenStatus.RUGGED
    else:
        new_status = TokenStatus.SUSPICIOUS

    return RecheckResult(
        current_price=current_price,
        current_liquidity=current_liquidity,
        price_drop_percent=price_drop,
        liquidity_drop_percent=liquidity_drop,
        indicators=indicators,
        rug_type=rug_type,
        severity=severity,
        new_status=new_status,
    )


def build_incident(token: TrackedToken, result: RecheckResult, detected_at: datetime) -> RugIncident:
    return RugIncident(
        token_address=token.address,
        token_symbol=token.symbol,
        token_name=token.name,
        network=token.network,
        rug_type=result.rug_type,
        severity=result.severity,
        original_price=token.original_price or 0.0,
        current_price=result.current_price or 0.0,
        price_drop_percent=result.price_drop_percent,
        original_liquidity=token.original_liquidity or 0.0,
        current_liquidity=result.current_liquidity,
        liquidity_drop_percent=result.liquidity_drop_percent,
        indicators=result.indicators,
        original_score=token.original_score,
        original_analyzed_at=as_utc(token.original_analyzed_at),
        we_predicted_it=token.original_score < RISKY_SCORE_CUTOFF,
        detected_at=detected_at,
    )


def pending_incident(token: TrackedToken) -> RugIncident:
    """Rebuild the incident for a token whose alert never went out."""
    return RugIncident(
        token_address=token.address,
        token_symbol=token.symbol,
        token_name=token.name,
        network=token.network,
        rug_type=RugType(token.rug_type),
        severity=Severity(token.rug_severity),
        original_price=token.original_price or 0.0,
        current_price=token.current_price or 0.0,
        price_drop_percent=token.rug_price_drop or 0.0,
        original_liquidity=token.original_liquidity or 0.0,
        current_liquidity=token.current_liquidity or 0.0,
        liquidity_drop_percent=token.rug_liquidity_drop or 0.0,
        indicators=list(token.rug_indicators or []),
        original_score=token.original_score,
        original_analyzed_at=as_utc(token.original_analyzed_at),
        we_predicted_it=token.original_score < RISKY_SCORE_CUTOFF,
        detected_at=as_utc(token.rug_detected_at or token.last_checked_at),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RugMonitor:
    def __init__(
        self,
        registry: TokenRegistry,
        liquidity: LiquidityCollector | None = None,
        honeypot: HoneypotCollector | None = None,
        goplus: GoPlusCollector | None = None,
        publisher=None,
        sleep=asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.registry = registry
        self.liquidity = liquidity or LiquidityCollector()
        self.honeypot = honeypot or HoneypotCollector()
        self.goplus = goplus or GoPlusCollector()
        self.publisher = publisher
        self._sleep = sleep
        self._now = clock

    async def check_token(self, token: TrackedToken) -> RugIncident | None:
        liquidity, honeypot, goplus = await asyncio.gather(
            self.liquidity.collect(token.address, token.network),
            self.honeypot.collect(token.address, token.network),
            self.goplus.collect(token.address, token.network),
        )
        if liquidity is None:
            # Provider outage, not a delisting (404 comes back as found=False); retry next pass
            raise RecheckUnavailable(f"no market data for {token.address} on {token.network}")

        result = evaluate_recheck(token, liquidity, honeypot, goplus)
        now = self._now()
        status = await self.registry.save_check(
            token.address,
            token.network,
            result,
            price_change_24h=liquidity.price_change_24h,
            checked_at=now,
        )

        if result.rug_type is None or result.severity is Severity.WARNING:
            if result.indicators:
                logger.info("rug_indicators_recorded", token=token.symbol, indicators=len(result.indicators))
            return None

        logger.warning(
            "rug_detected",
            token=token.symbol,
            address=token.address[:10],
            rug_type=result.rug_type.value,
            severity=result.severity.value,
            status=status.value if status else None,
        )
        return build_incident(token, result, now)

    async def scan_for_rugs(
        self,
        max_tokens: int = MAX_TOKENS_PER_SCAN,
        stale_after: float = RECHECK_STALE_AFTER,
    ) -> ScanResult:
        cutoff = self._now() - timedelta(seconds=stale_after)
        tokens = await self.registry.select_stale(max_tokens, cutoff)
        logger.info("rug_scan_started", tokens=len(tokens))

        scan = ScanResult()
        for i, token in enumerate(tokens):
            if i:
                await self._sleep(PACED_SCAN_DELAY)
            try:
                incident = await self.check_token(token)
            except Exception as e:
                scan.failed += 1
                logger.error("rug_check_failed", token=token.symbol, address=token.address[:10], error=str(e))
                continue
            scan.checked += 1
            if incident:
                scan.incidents.append(incident)

        logger.info("rug_scan_complete", checked=scan.checked, failed=scan.failed, rugs=len(scan.incidents))
        return scan

    async def run_rug_scan(self, max_tokens: int = MAX_TOKENS_PER_SCAN) -> RugScanResponse:
        """One monitor pass, then publish whatever it found.

        Rugs detected on an earlier pass whose alert failed are published
        again first.
        """
        pending = []
        if self.publisher is not None:
            pending = [pending_incident(t) for t in await self.registry.select_unposted(max_tokens)]
            if pending:
                logger.info("republishing_pending_incidents", count=len(pending))

        scan = await self.scan_for_rugs(max_tokens=max_tokens)
        posts = 0
        if self.publisher is not None:
            for i, incident in enumerate(pending + scan.incidents):
                if i:
                    await self._sleep(POST_DELAY)
                result = await self.publisher.publish(incident)
                if result.success:
                    posts += 1

        return RugScanResponse(
            checked=scan.checked,
            failed=scan.failed,
            rugs_found=len(scan.incidents),
            posts_created=posts,
        )
