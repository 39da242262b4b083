"""
Tracked-Token Registry — every scored token, its baseline, and what the
monitor has seen since.

Rows are created once at first analysis and never deleted. Only the rug
monitor (current values, status) and the incident publisher (incident
fields, incident rows) write to them afterwards.
"""
from datetime import datetime, timezone
from sqlalchemy import select, update, func
import structlog

from shared.database import async_session
from agents.sentinel.models.db import TrackedToken, RugIncidentRecord
from agents.sentinel.models.enums import TokenStatus
from agents.sentinel.models.schemas import RecheckResult, RugIncident, TrackingStats
from agents.sentinel.config import RISKY_SCORE_CUTOFF

logger = structlog.get_logger()


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class TokenRegistry:
    def __init__(self, session_factory=None):
        self.session_factory = session_factory or async_session

    @property
    def enabled(self) -> bool:
        return self.session_factory is not None

    async def track_analyzed_token(
        self,
        address: str,
        network: str,
        score: int,
        symbol: str | None = None,
        name: str | None = None,
        price: float | None = None,
        liquidity: float | None = None,
        is_honeypot: bool = False,
        analyzed_at: datetime | None = None,
    ) -> bool:
        """Record the baseline for a newly scored token.

        Returns True when a row was created. A token that is already tracked
        keeps its original baseline and status.
        """
        if not self.enabled:
            return False
        address, network = address.lower(), network.lower()

        async with self.session_factory() as db:
            existing = await db.get(TrackedToken, (address, network))
            if existing is not None:
                return False
            db.add(TrackedToken(
                address=address,
                network=network,
                symbol=symbol or "UNKNOWN",
                name=name or "Unknown Token",
                original_score=score,
                original_price=price or 0.0,
                original_liquidity=liquidity or 0.0,
                original_honeypot=is_honeypot,
                original_analyzed_at=analyzed_at or datetime.now(timezone.utc),
                status=TokenStatus.ACTIVE.value,
                rug_indicators=[],
            ))
            await db.commit()

        logger.info("token_tracked", address=address[:10], network=network, score=score)
        return True

    async def get(self, address: str, network: str) -> TrackedToken | None:
        if not self.enabled:
            return None
        async with self.session_factory() as db:
            return await db.get(TrackedToken, (address.lower(), network.lower()))

    async def list_tracked(
        self, status: TokenStatus | None = None, limit: int = 50, offset: int = 0,
    ) -> list[TrackedToken]:
        if not self.enabled:
            return []
        q = select(TrackedToken)
        if status:
            q = q.where(TrackedToken.status == status.value)
        q = q.order_by(TrackedToken.original_analyzed_at.desc()).offset(offset).limit(limit)
        async with self.session_factory() as db:
            result = await db.execute(q)
            return list(result.scalars().all())

    async def select_stale(self, max_tokens: int, cutoff: datetime) -> list[TrackedToken]:
        """Active tokens never checked or last checked before cutoff, oldest first."""
        if not self.enabled:
            return []
        async with self.session_factory() as db:
            result = await db.execute(
                select(TrackedToken)
                .where(
                    TrackedToken.status == TokenStatus.ACTIVE.value,
                    (TrackedToken.last_checked_at.is_(None)) | (TrackedToken.last_checked_at < cutoff),
                )
                .order_by(TrackedToken.last_checked_at.asc().nulls_first())
                .limit(max_tokens)
            )
            return list(result.scalars().all())

    async def select_unposted(self, limit: int) -> list[TrackedToken]:
        """Detected rugs whose alert has not gone out yet, oldest detection first."""
        if not self.enabled:
            return []
        async with self.session_factory() as db:
            result = await db.execute(
                select(TrackedToken)
                .where(
                    TrackedToken.status.in_([TokenStatus.SUSPICIOUS.value, TokenStatus.RUGGED.value]),
                    TrackedToken.rug_type.is_not(None),
                    TrackedToken.incident_posted_at.is_(None),
                )
                .order_by(TrackedToken.rug_detected_at.asc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def save_check(
        self,
        address: str,
        network: str,
        result: RecheckResult,
        price_change_24h: float | None = None,
        checked_at: datetime | None = None,
    ) -> TokenStatus | None:
        """Persist one re-check. Returns the status the row ends up with.

        Status only moves forward out of active; a suspicious, rugged or
        delisted token is never put back.
        """
        if not self.enabled:
            return None
        async with self.session_factory() as db:
            token = await db.get(TrackedToken, (address.lower(), network.lower()))
            if token is None:
                return None
            token.current_price = result.current_price
            token.current_liquidity = result.current_liquidity
            token.price_change_24h = price_change_24h
            token.last_checked_at = checked_at or datetime.now(timezone.utc)
            token.rug_indicators = list(result.indicators)
            if token.status == TokenStatus.ACTIVE.value:
                token.status = result.new_status.value
                if result.new_status is not TokenStatus.ACTIVE and result.rug_type is not None:
                    token.rug_type = result.rug_type.value
                    token.rug_severity = result.severity.value
                    token.rug_price_drop = result.price_drop_percent
                    token.rug_liquidity_drop = result.liquidity_drop_percent
                    token.rug_detected_at = token.last_checked_at
            status = TokenStatus(token.status)
            await db.commit()
        return status

    async def get_incident_posted_at(self, address: str, network: str) -> datetime | None:
        if not self.enabled:
            return None
        async with self.session_factory() as db:
            result = await db.execute(
                select(TrackedToken.incident_posted_at).where(
                    TrackedToken.address == address.lower(),
                    TrackedToken.network == network.lower(),
                )
            )
            return as_utc(result.scalar_one_or_none())

    async def record_publication(
        self, incident: RugIncident, posted_at: datetime, post_hash: str | None,
    ) -> bool:
        """Latch incident_posted_at and append the incident row in one transaction.

        The latch only applies while incident_posted_at is still unset, so a
        concurrent second publish cannot mark the token twice. Returns False
        when the token was already marked.
        """
        if not self.enabled:
            return False
        address, network = incident.token_address.lower(), incident.network.lower()
        async with self.session_factory() as db:
            latched = await db.execute(
                update(TrackedToken)
                .where(
                    TrackedToken.address == address,
                    TrackedToken.network == network,
                    TrackedToken.incident_posted_at.is_(None),
                )
                .values(incident_posted_at=posted_at, incident_hash=post_hash)
            )
            if latched.rowcount == 0:
                await db.rollback()
                return False

            db.add(RugIncidentRecord(
                token_address=address,
                token_symbol=incident.token_symbol,
                token_name=incident.token_name,
                network=network,
                rug_type=incident.rug_type.value,
                severity=incident.severity.value,
                original_price=incident.original_price,
                current_price=incident.current_price,
                price_drop_percent=incident.price_drop_percent,
                original_liquidity=incident.original_liquidity,
                current_liquidity=incident.current_liquidity,
                liquidity_drop_percent=incident.liquidity_drop_percent,
                indicators=list(incident.indicators),
                original_score=incident.original_score,
                original_analyzed_at=incident.original_analyzed_at,
                we_predicted_it=incident.we_predicted_it,
                detected_at=incident.detected_at,
                posted_at=posted_at,
                post_hash=post_hash,
            ))
            await db.commit()
        return True

    async def recent_incidents(self, limit: int = 20) -> list[RugIncident]:
        if not self.enabled:
            return []
        async with self.session_factory() as db:
            result = await db.execute(
                select(RugIncidentRecord)
                .order_by(RugIncidentRecord.detected_at.desc(), RugIncidentRecord.id.desc())
                .limit(limit)
            )
            rows = result.scalars().all()

        incidents = []
        for row in rows:
            incident = RugIncident.model_validate(row)
            incident.detected_at = as_utc(incident.detected_at)
            incident.posted_at = as_utc(incident.posted_at)
            incident.original_analyzed_at = as_utc(incident.original_analyzed_at)
            incidents.append(incident)
        return incidents

    async def get_tracking_stats(self) -> TrackingStats:
        if not self.enabled:
            return TrackingStats()
        async with self.session_factory() as db:
            by_status = await db.execute(
                select(TrackedToken.status, func.count()).group_by(TrackedToken.status)
            )
            counts = {status: n for status, n in by_status.all()}

            predicted_q = await db.execute(
                select(func.count()).select_from(TrackedToken).where(
                    TrackedToken.status == TokenStatus.RUGGED.value,
                    TrackedToken.original_score < RISKY_SCORE_CUTOFF,
                )
            )
            predicted = predicted_q.scalar() or 0

        rugged = counts.get(TokenStatus.RUGGED.value, 0)
        return TrackingStats(
            total_tracked=sum(counts.values()),
            active_tokens=counts.get(TokenStatus.ACTIVE.value, 0),
            suspicious_tokens=counts.get(TokenStatus.SUSPICIOUS.value, 0),
            rugged_tokens=rugged,
            delisted_tokens=counts.get(TokenStatus.DELISTED.value, 0),
            prediction_accuracy=round(predicted / rugged * 100, 1) if rugged else 100.0,
        )
