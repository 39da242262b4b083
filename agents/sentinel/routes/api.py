"""
Sentinel REST API routes.
"""
from fastapi import APIRouter, Depends, HTTPException, Query

from shared.auth import verify_api_key
from shared.outcomes import get_ledger
from agents.sentinel.config import AGENT_NAME, MAX_TOKENS_PER_SCAN
from agents.sentinel.deps import get_analyzer, get_monitor, get_registry
from agents.sentinel.models.enums import TokenStatus
from agents.sentinel.models.schemas import (
    AnalyzeRequest, AnalyzeResponse, HealthResponse, RugIncident,
    RugScanResponse, TrackedTokenResponse, TrackingStats,
)
from agents.sentinel.services.analyzer import (
    InvalidAddressError, TokenAnalyzer, UnresolvableTokenError, format_report_short,
)
from agents.sentinel.services.monitor import RugMonitor
from agents.sentinel.services.registry import TokenRegistry
import structlog

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/sentinel", tags=["sentinel"])


@router.get("/health", response_model=HealthResponse)
async def health(registry: TokenRegistry = Depends(get_registry)):
    resp = HealthResponse(outcomes=get_ledger(AGENT_NAME).get_stats())
    if not registry.enabled:
        resp.status = "ok (no db)"
        return resp
    try:
        stats = await registry.get_tracking_stats()
        resp.total_tracked = stats.total_tracked
        resp.rugged_tokens = stats.rugged_tokens
    except Exception as e:
        logger.error("health_stats_failed", error=str(e))
        resp.status = "ok (no db)"
    return resp


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    req: AnalyzeRequest,
    analyzer: TokenAnalyzer = Depends(get_analyzer),
    _key: bool = Depends(verify_api_key),
):
    try:
        report = await analyzer.analyze_token(req.address, req.network, strict=True)
    except InvalidAddressError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UnresolvableTokenError as e:
        raise HTTPException(status_code=404, detail=str(e))

    a = report.assessment
    return AnalyzeResponse(
        address=report.address,
        network=report.network,
        timestamp=report.timestamp,
        score=a.score,
        risk_level=a.risk_level,
        warnings=a.warnings,
        positives=a.positives,
        contributing=a.contributing,
        summary=report.summary,
        short_text=format_report_short(report),
        signals=report.signals,
    )


@router.get("/tracked", response_model=list[TrackedTokenResponse])
async def list_tracked(
    status: TokenStatus | None = None,
    limit: int = Query(50, le=200),
    offset: int = Query(0, ge=0),
    registry: TokenRegistry = Depends(get_registry),
    _key: bool = Depends(verify_api_key),
):
    return await registry.list_tracked(status=status, limit=limit, offset=offset)


@router.get("/tracked/{network}/{address}", response_model=TrackedTokenResponse)
async def get_tracked(
    network: str,
    address: str,
    registry: TokenRegistry = Depends(get_registry),
    _key: bool = Depends(verify_api_key),
):
    token = await registry.get(address, network)
    if token is None:
        raise HTTPException(status_code=404, detail="Token not tracked")
    return token


@router.get("/incidents", response_model=list[RugIncident])
async def list_incidents(
    limit: int = Query(20, le=100),
    registry: TokenRegistry = Depends(get_registry),
    _key: bool = Depends(verify_api_key),
):
    return await registry.recent_incidents(limit)


@router.get("/stats", response_model=TrackingStats)
async def tracking_stats(
    registry: TokenRegistry = Depends(get_registry),
    _key: bool = Depends(verify_api_key),
):
    return await registry.get_tracking_stats()


@router.post("/scan", response_model=RugScanResponse)
async def run_scan(
    max_tokens: int = Query(MAX_TOKENS_PER_SCAN, ge=1, le=100),
    monitor: RugMonitor = Depends(get_monitor),
    _key: bool = Depends(verify_api_key),
):
    return await monitor.run_rug_scan(max_tokens=max_tokens)
