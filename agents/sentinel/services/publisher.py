"""
Incident Publisher — posts rug alerts once per token.

The token's incident_posted_at column is the de-duplication latch: it is
re-read right before posting and set in the same transaction that appends
the incident row. A failed post leaves it unset so the next pass retries.
"""
from datetime import datetime, timezone
from typing import Callable, Protocol
import httpx
import structlog

from shared.config import settings
from shared.telegram_bot import send_alert
from agents.sentinel.config import HTTP_TIMEOUT
from agents.sentinel.models.enums import Severity
from agents.sentinel.models.schemas import PublishResult, RugIncident
from agents.sentinel.services.registry import TokenRegistry

logger = structlog.get_logger()

NEYNAR_CAST_URL = "https://api.neynar.com/v2/farcaster/cast"

SEVERITY_MARKERS = {
    Severity.WARNING: "⚠️",
    Severity.CONFIRMED: "🚨",
    Severity.CRITICAL: "💀",
}


class PublishError(Exception):
    pass


class Publisher(Protocol):
    name: str

    async def send(self, text: str) -> str:
        """Post text and return the provider's id for the post."""
        ...


def short_address(address: str) -> str:
    return f"{address[:10]}...{address[-8:]}"


def format_incident_message(incident: RugIncident) -> str:
    marker = SEVERITY_MARKERS[incident.severity]
    symbol = incident.token_symbol or "UNKNOWN"
    lines = [
        f"{marker} RUG ALERT: ${symbol}",
        "",
        f"Type: {incident.rug_type.value.replace('_', ' ')} ({incident.severity.value})",
    ]
    if incident.price_drop_percent > 0:
        lines.append(f"Price: -{incident.price_drop_percent:.1f}%")
    if incident.liquidity_drop_percent > 0:
        lines.append(f"Liquidity: -{incident.liquidity_drop_percent:.1f}%")

    if incident.indicators:
        lines.append("")
        lines.extend(f"• {i}" for i in incident.indicators[:3])

    lines.append("")
    if incident.original_analyzed_at:
        lines.append(
            f"Analyzed {incident.original_analyzed_at:%Y-%m-%d} with score {incident.original_score}/100"
        )
    if incident.we_predicted_it:
        lines.append("🎯 We called it: flagged as high risk at analysis")
    else:
        lines.append("Scored as lower risk at analysis")
    lines.append(f"Contract: {short_address(incident.token_address)}")
    return "\n".join(lines)


class TelegramPublisher:
    name = "telegram"

    def __init__(self, chat_id: int | None = None, token: str | None = None, client: httpx.AsyncClient | None = None):
        self.chat_id = chat_id if chat_id is not None else settings.TELEGRAM_ALERT_CHAT_ID
        self.token = token
        self.client = client

    async def send(self, text: str) -> str:
        message_id = await send_alert(self.chat_id, text, token=self.token, client=self.client)
        return str(message_id)


class FarcasterPublisher:
    name = "farcaster"

    def __init__(
        self,
        signer_uuid: str | None = None,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.signer_uuid = signer_uuid or settings.FARCASTER_SIGNER_UUID
        self.api_key = api_key or settings.NEYNAR_API_KEY
        self.client = client

    async def send(self, text: str) -> str:
        payload = {"signer_uuid": self.signer_uuid, "text": text}
        headers = {"x-api-key": self.api_key, "content-type": "application/json"}
        if self.client is not None:
            resp = await self.client.post(NEYNAR_CAST_URL, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                resp = await client.post(NEYNAR_CAST_URL, json=payload, headers=headers)
        resp.raise_for_status()

        cast_hash = ((resp.json().get("cast") or {}).get("hash"))
        if not cast_hash:
            raise PublishError("Neynar response missing cast hash")
        return cast_hash


def build_publisher(channel: str | None = None) -> Publisher | None:
    """Publisher for the configured alert channel, or None when it lacks credentials."""
    channel = (channel or settings.ALERT_CHANNEL).lower()
    if channel == "telegram" and settings.TELEGRAM_BOT_TOKEN and settings.TELEGRAM_ALERT_CHAT_ID:
        return TelegramPublisher()
    if channel == "farcaster" and settings.FARCASTER_SIGNER_UUID and settings.NEYNAR_API_KEY:
        return FarcasterPublisher()
    logger.warning("alert_channel_not_configured", channel=channel)
    return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IncidentPublisher:
    def __init__(
        self,
        registry: TokenRegistry,
        publisher: Publisher | None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.registry = registry
        self.publisher = publisher
        self._now = clock

    async def publish(self, incident: RugIncident) -> PublishResult:
        already = await self.registry.get_incident_posted_at(incident.token_address, incident.network)
        if already is not None:
            logger.info("incident_already_posted", token=incident.token_symbol, posted_at=already.isoformat())
            return PublishResult(success=False, skipped=True)

        if self.publisher is None:
            return PublishResult(success=False, error="no alert channel configured")

        text = format_incident_message(incident)
        try:
            post_id = await self.publisher.send(text)
        except Exception as e:
            logger.error(
                "incident_publish_failed",
                channel=self.publisher.name,
                token=incident.token_symbol,
                error=str(e),
            )
            return PublishResult(success=False, error=str(e))

        posted_at = self._now()
        incident.posted_at = posted_at
        incident.post_hash = post_id
        latched = await self.registry.record_publication(incident, posted_at, post_id)
        if not latched and self.registry.enabled:
            logger.warning("incident_latch_lost", token=incident.token_symbol, post_id=post_id)

        logger.info(
            "incident_published",
            channel=self.publisher.name,
            token=incident.token_symbol,
            rug_type=incident.rug_type.value,
            post_id=post_id,
        )
        return PublishResult(success=True, post_id=post_id)
