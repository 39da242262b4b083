"""
Token Risk Sentinel — FastAPI application (port 8010)

Scores tokens from on-chain, market, security and social signals, tracks
every scored token, and re-checks them on a schedule so rugs are caught
and alerted once.

Interfaces: HTTP API + scheduled rug scans + Telegram/Farcaster alerts
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from shared.utils.logging import setup_logging
from shared.utils.scheduler import start_scheduler, stop_scheduler, add_interval_job
from shared.outcomes import get_ledger
from agents.sentinel.routes.api import router
from agents.sentinel.deps import get_monitor
from agents.sentinel.config import AGENT_NAME, MAX_TOKENS_PER_SCAN, RUG_SCAN_INTERVAL
import structlog

setup_logging()
logger = structlog.get_logger()
outcomes = get_ledger(AGENT_NAME)


async def _rug_scan_job():
    try:
        result = await get_monitor().run_rug_scan(max_tokens=MAX_TOKENS_PER_SCAN)
        logger.info("rug_scan_job_done", **result.model_dump())
        outcomes.record("rug_scan", success=True, context=result.model_dump())
    except Exception as e:
        logger.error("rug_scan_job_failed", error=str(e))
        outcomes.record("rug_scan", success=False, error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("sentinel_agent_starting", interfaces=["api", "scheduler", "alerts"])
    start_scheduler()
    add_interval_job(_rug_scan_job, seconds=RUG_SCAN_INTERVAL, job_id="sentinel_rug_scan")

    yield

    stop_scheduler()
    logger.info("sentinel_agent_stopped")


app = FastAPI(
    title="Token Risk Sentinel",
    description="Token risk scoring and rug monitoring. Aggregates liquidity, sale simulation, holder, contract, deployer and social signals into one 0-100 score and alerts when tracked tokens rug.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("agents.sentinel.main:app", host="0.0.0.0", port=8010, reload=True)
