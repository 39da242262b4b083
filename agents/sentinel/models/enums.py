from enum import Enum


class TokenStatus(str, Enum):
    ACTIVE = "active"
    SUSPICIOUS = "suspicious"
    RUGGED = "rugged"
    DELISTED = "delisted"

    @property
    def monitored(self) -> bool:
        return self is TokenStatus.ACTIVE


class RugType(str, Enum):
    PRICE_CRASH = "price_crash"
    LIQUIDITY_PULL = "liquidity_pull"
    HONEYPOT_FLIP = "honeypot_flip"
    OWNER_DUMP = "owner_dump"
    TRADING_DISABLED = "trading_disabled"


class Severity(str, Enum):
    WARNING = "warning"
    CONFIRMED = "confirmed"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def escalate(self, other: "Severity") -> "Severity":
        """Return the more severe of the two; severity never goes down."""
        return other if other.rank > self.rank else self


_SEVERITY_RANK = {
    Severity.WARNING: 0,
    Severity.CONFIRMED: 1,
    Severity.CRITICAL: 2,
}


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class HolderKind(str, Enum):
    BURN = "burn"
    INFRASTRUCTURE = "infrastructure"
    POOL = "pool"
    CONTRACT = "contract"
    WALLET = "wallet"

    @property
    def excluded(self) -> bool:
        """Burn addresses, pools and infrastructure are not adversarial holders."""
        return self in (HolderKind.BURN, HolderKind.INFRASTRUCTURE, HolderKind.POOL)


class Sentiment(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"
    UNKNOWN = "unknown"


class MentionTone(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class GoPlusLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"
