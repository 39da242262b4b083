from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from agents.sentinel.models.enums import RiskLevel, RugType, Severity, TokenStatus
from agents.sentinel.models.signals import TokenSignals


class RiskAssessment(BaseModel):
    score: int
    risk_level: RiskLevel
    warnings: list[str] = Field(default_factory=list)
    positives: list[str] = Field(default_factory=list)
    contributing: list[str] = Field(default_factory=list)


class TokenReport(BaseModel):
    address: str
    network: str
    timestamp: datetime
    signals: TokenSignals
    assessment: RiskAssessment
    summary: str

    @property
    def score(self) -> int:
        return self.assessment.score

    @property
    def risk_level(self) -> RiskLevel:
        return self.assessment.risk_level


class RugIncident(BaseModel):
    token_address: str
    token_symbol: Optional[str] = None
    token_name: Optional[str] = None
    network: str
    rug_type: RugType
    severity: Severity
    original_price: float = 0.0
    current_price: float = 0.0
    price_drop_percent: float = 0.0
    original_liquidity: float = 0.0
    current_liquidity: float = 0.0
    liquidity_drop_percent: float = 0.0
    indicators: list[str] = Field(default_factory=list)
    original_score: int
    original_analyzed_at: Optional[datetime] = None
    we_predicted_it: bool = False
    detected_at: datetime
    posted_at: Optional[datetime] = None
    post_hash: Optional[str] = None

    model_config = {"from_attributes": True}


class RecheckResult(BaseModel):
    """Outcome of comparing one re-check against the baseline."""
    current_price: Optional[float] = None
    current_liquidity: float
    price_drop_percent: float
    liquidity_drop_percent: float
    indicators: list[str] = Field(default_factory=list)
    rug_type: Optional[RugType] = None
    severity: Severity = Severity.WARNING
    new_status: TokenStatus


class ScanResult(BaseModel):
    checked: int = 0
    failed: int = 0
    incidents: list[RugIncident] = Field(default_factory=list)


class PublishResult(BaseModel):
    success: bool
    skipped: bool = False
    post_id: Optional[str] = None
    error: Optional[str] = None


# ============ API ============

class AnalyzeRequest(BaseModel):
    address: str
    network: str = "base"


class AnalyzeResponse(BaseModel):
    address: str
    network: str
    timestamp: datetime
    score: int
    risk_level: RiskLevel
    warnings: list[str]
    positives: list[str]
    contributing: list[str]
    summary: str
    short_text: str
    signals: TokenSignals


class TrackedTokenResponse(BaseModel):
    address: str
    network: str
    symbol: Optional[str]
    name: Optional[str]
    original_score: int
    original_price: Optional[float]
    original_liquidity: Optional[float]
    original_analyzed_at: Optional[datetime]
    current_price: Optional[float]
    current_liquidity: Optional[float]
    price_change_24h: Optional[float]
    last_checked_at: Optional[datetime]
    status: TokenStatus
    rug_indicators: list[str] = Field(default_factory=list)
    incident_posted_at: Optional[datetime]
    incident_hash: Optional[str]

    model_config = {"from_attributes": True}


class TrackingStats(BaseModel):
    total_tracked: int = 0
    active_tokens: int = 0
    suspicious_tokens: int = 0
    rugged_tokens: int = 0
    delisted_tokens: int = 0
    prediction_accuracy: float = 100.0


class RugScanResponse(BaseModel):
    checked: int
    failed: int
    rugs_found: int
    posts_created: int


class HealthResponse(BaseModel):
    status: str = "ok"
    agent: str = "sentinel"
    version: str = "1.0.0"
    total_tracked: int = 0
    rugged_tokens: int = 0
    outcomes: dict = Field(default_factory=dict)
