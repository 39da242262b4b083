"""
Signal results — one nullable piece of evidence per provider.

Provider-specific field names stop at the collectors; everything here is
already normalized (percentages as 0-100, USD as floats).
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from agents.sentinel.models.enums import (
    GoPlusLevel, HolderKind, MentionTone, RiskLevel, Sentiment,
)


class PoolInfo(BaseModel):
    address: str
    name: str = ""
    dex: str = ""
    reserve_usd: float = 0.0
    volume_24h: float = 0.0


class LiquiditySignal(BaseModel):
    found: bool = True
    symbol: Optional[str] = None
    name: Optional[str] = None
    price_usd: Optional[float] = None
    price_change_24h: Optional[float] = None
    volume_24h: Optional[float] = None
    fdv_usd: Optional[float] = None
    pools: list[PoolInfo] = Field(default_factory=list)
    trending: bool = False
    warnings: list[str] = Field(default_factory=list)

    @property
    def total_liquidity(self) -> float:
        return sum(p.reserve_usd for p in self.pools)

    @property
    def tradeable(self) -> bool:
        return self.found and bool(self.pools)


class HoneypotSignal(BaseModel):
    is_honeypot: bool = False
    honeypot_reason: Optional[str] = None
    simulation_success: bool = False
    buy_tax: float = 0.0
    sell_tax: float = 0.0
    transfer_tax: float = 0.0
    is_open_source: bool = False
    is_proxy: bool = False
    is_mintable: bool = False
    can_take_back_ownership: bool = False
    holder_count: Optional[int] = None
    owner_address: Optional[str] = None
    creator_address: Optional[str] = None
    token_symbol: Optional[str] = None
    token_name: Optional[str] = None


class ContractVerification(BaseModel):
    is_verified: bool
    contract_name: Optional[str] = None
    compiler: Optional[str] = None
    optimization_used: bool = False
    license: Optional[str] = None
    source_code: Optional[str] = Field(default=None, exclude=True)


class SecurityIssue(BaseModel):
    name: str
    severity: str  # critical, high, medium, low, info
    description: str
    fix: str


class SourceSecuritySignal(BaseModel):
    contract_name: Optional[str] = None
    issues: list[SecurityIssue] = Field(default_factory=list)
    gas_optimizations: list[str] = Field(default_factory=list)
    score: int = 100
    recommendations: list[str] = Field(default_factory=list)

    def count(self, severity: str) -> int:
        return sum(1 for i in self.issues if i.severity == severity)


class HolderInfo(BaseModel):
    address: str
    balance: float
    percent: float
    kind: HolderKind = HolderKind.WALLET
    label: Optional[str] = None


class HolderAnalysis(BaseModel):
    total_holders: int = 0
    top_holders: list[HolderInfo] = Field(default_factory=list)
    concentration_pct: float = 0.0
    largest_wallet_pct: float = 0.0
    whale_count: int = 0
    lp_pct: float = 0.0
    burned_pct: float = 0.0
    risk_level: RiskLevel = RiskLevel.LOW
    warnings: list[str] = Field(default_factory=list)


class GoPlusRisk(BaseModel):
    title: str
    description: str
    severity: GoPlusLevel


class GoPlusAnalysis(BaseModel):
    risk_level: GoPlusLevel = GoPlusLevel.LOW
    risk_score: int = 0
    risks: list[GoPlusRisk] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    trust_list: bool = False
    is_honeypot: bool = False
    cannot_sell_all: bool = False
    cannot_buy: bool = False
    trading_cooldown: bool = False
    owner_change_balance: bool = False
    holder_count: Optional[int] = None

    @property
    def trading_restricted(self) -> bool:
        return self.cannot_sell_all or self.trading_cooldown or self.cannot_buy


class ClankerInfo(BaseModel):
    launched_via_clanker: bool = True
    is_verified_builder: bool = False
    deployer_username: Optional[str] = None
    admin_address: Optional[str] = None


class DeployerIntel(BaseModel):
    deployer_address: Optional[str] = None
    contracts_deployed: Optional[int] = None
    reputation: str = "unknown"  # unknown, new, established
    clanker: Optional[ClankerInfo] = None
    webacy_risk_score: Optional[float] = None
    webacy_risk_level: Optional[RiskLevel] = None
    sanctioned: bool = False
    mixer_usage: bool = False
    rug_history: bool = False
    overall_risk: RiskLevel = RiskLevel.MEDIUM
    risk_factors: list[str] = Field(default_factory=list)
    positive_factors: list[str] = Field(default_factory=list)


class SocialMention(BaseModel):
    author: str
    text: str
    timestamp: Optional[datetime] = None
    hash: str


class SocialSentiment(BaseModel):
    mention_count: int = 0
    recent_count: int = 0
    bullish_count: int = 0
    bearish_count: int = 0
    sentiment: Sentiment = Sentiment.UNKNOWN
    top_mentioners: list[str] = Field(default_factory=list)
    recent_mentions: list[SocialMention] = Field(default_factory=list)


class Mention(BaseModel):
    text: str
    timestamp: Optional[datetime] = None
    hash: str = ""
    tone: MentionTone = MentionTone.NEUTRAL


class MentionSignal(BaseModel):
    account: str
    mentions: list[Mention] = Field(default_factory=list)

    @property
    def positive_count(self) -> int:
        return sum(1 for m in self.mentions if m.tone is MentionTone.POSITIVE)

    @property
    def negative_count(self) -> int:
        return sum(1 for m in self.mentions if m.tone is MentionTone.NEGATIVE)


class ProtocolSignal(BaseModel):
    token_price: Optional[float] = None
    protocol_name: Optional[str] = None
    tvl: Optional[float] = None
    audit_count: int = 0

    @property
    def tracked(self) -> bool:
        return self.token_price is not None


class TokenSignals(BaseModel):
    liquidity: Optional[LiquiditySignal] = None
    honeypot: Optional[HoneypotSignal] = None
    verification: Optional[ContractVerification] = None
    source_security: Optional[SourceSecuritySignal] = None
    holders: Optional[HolderAnalysis] = None
    goplus: Optional[GoPlusAnalysis] = None
    deployer: Optional[DeployerIntel] = None
    sentiment: Optional[SocialSentiment] = None
    mentions: Optional[MentionSignal] = None
    protocol: Optional[ProtocolSignal] = None

    def present(self) -> list[str]:
        return [name for name in type(self).model_fields if getattr(self, name) is not None]


class CollectionContext(BaseModel):
    """Phase-one findings handed to collectors that need them."""
    symbol: Optional[str] = None
    name: Optional[str] = None
    deployer_address: Optional[str] = None
    is_verified: bool = False
    source_code: Optional[str] = None
    contract_name: Optional[str] = None
