"""
Signal Collector base — the contract every provider adapter follows.

collect() never raises: any failure is logged and turned into None, so one
broken provider only removes its own evidence from the score. Each
collector owns its rate limiter and cache, and maps our network names to
the provider's chain identifiers; an unsupported network returns None
without touching the network.
"""
import asyncio
from typing import Any, Optional
import httpx
import structlog

from shared.outcomes import OutcomeLedger
from shared.utils.cache import TTLCache
from shared.utils.rate_limit import RateLimiter
from shared.utils.retry import (
    DEFAULT_POLICY, MalformedResponseError, RetryPolicy, with_retry_and_outcome,
)
from agents.sentinel.config import CACHE_TTL, HTTP_TIMEOUT, RATE_LIMITS
from agents.sentinel.models.signals import CollectionContext

logger = structlog.get_logger()


class SignalCollector:
    name = "collector"
    provider = ""
    # Network name -> provider chain id; None means chain-agnostic
    networks: Optional[dict[str, Any]] = None

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        limiter: RateLimiter | None = None,
        cache: TTLCache | None = None,
        policy: RetryPolicy = DEFAULT_POLICY,
        ledger: OutcomeLedger | None = None,
        sleep=asyncio.sleep,
    ):
        self._client = client
        self.limiter = limiter or RateLimiter(RATE_LIMITS.get(self.provider, 0.0), sleep=sleep)
        self.cache = cache if cache is not None else TTLCache(ttl=CACHE_TTL.get(self.provider, 60))
        self.policy = policy
        self.ledger = ledger
        self._sleep = sleep

    def supports(self, network: str) -> bool:
        return self.networks is None or network.lower() in self.networks

    def chain_id(self, network: str) -> Any:
        return None if self.networks is None else self.networks.get(network.lower())

    async def collect(self, address: str, network: str, context: CollectionContext | None = None):
        network = network.lower()
        if not self.supports(network):
            logger.debug("collector_network_unsupported", collector=self.name, network=network)
            return None
        try:
            return await self._collect(address.lower(), network, context or CollectionContext())
        except Exception as e:
            logger.warning(
                "collector_failed",
                collector=self.name,
                address=address[:10],
                network=network,
                error=str(e)[:200],
            )
            return None

    async def _collect(self, address: str, network: str, context: CollectionContext):
        raise NotImplementedError

    # ---- HTTP helpers ----

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        params: dict | None = None,
        json: Any = None,
        headers: dict | None = None,
        cache_key: Any = None,
        allow_404: bool = False,
        task: str | None = None,
    ) -> Any:
        if cache_key is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        async def _call():
            await self.limiter.acquire()
            if self._client is not None:
                resp = await self._client.request(method, url, params=params, json=json, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                    resp = await client.request(method, url, params=params, json=json, headers=headers)
            if allow_404 and resp.status_code == 404:
                return None
            resp.raise_for_status()
            try:
                return resp.json()
            except ValueError as e:
                raise MalformedResponseError(f"{self.provider} returned non-JSON body") from e

        data = await with_retry_and_outcome(
            self.ledger, task or self.name, _call, policy=self.policy, sleep=self._sleep
        )
        if cache_key is not None and data is not None:
            self.cache.set(cache_key, data)
        return data

    async def _get_json(self, url: str, **kwargs) -> Any:
        return await self._request_json("GET", url, **kwargs)

    async def _post_json(self, url: str, payload: Any, **kwargs) -> Any:
        return await self._request_json("POST", url, json=payload, **kwargs)


def as_float(value: Any, default: float = 0.0) -> float:
    """Providers send numbers as strings, numbers or null."""
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def flag(value: Any) -> bool:
    """GoPlus-style '1'/'0' flags."""
    return str(value) == "1"


def require_dict(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise MalformedResponseError(f"expected object for {what}, got {type(data).__name__}")
    return data
