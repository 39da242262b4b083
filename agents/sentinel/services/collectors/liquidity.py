"""
Liquidity/price collector — GeckoTerminal token, pool and trending data.
"""
import structlog

from shared.config import settings
from agents.sentinel.config import GECKOTERMINAL_NETWORKS, LOW_LIQUIDITY_USD
from agents.sentinel.models.signals import LiquiditySignal, PoolInfo
from agents.sentinel.services.collectors.base import SignalCollector, as_float, require_dict

logger = structlog.get_logger()

TOP_POOLS = 5
LOW_VOLUME_USD = 1_000


class LiquidityCollector(SignalCollector):
    name = "liquidity"
    provider = "geckoterminal"
    networks = GECKOTERMINAL_NETWORKS

    def __init__(self, *args, base_url: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.base_url = (base_url or settings.GECKOTERMINAL_API_URL).rstrip("/")

    async def _collect(self, address, network, context):
        net = self.chain_id(network)
        headers = {"Accept": "application/json"}

        token_data = await self._get_json(
            f"{self.base_url}/networks/{net}/tokens/{address}",
            headers=headers,
            allow_404=True,
            cache_key=("token", net, address),
            task="geckoterminal_token",
        )
        if token_data is None:
            return LiquiditySignal(found=False, warnings=["Token not found or not indexed yet"])

        attrs = require_dict(require_dict(token_data, "token").get("data"), "token.data").get("attributes") or {}
        pools_data = await self._get_json(
            f"{self.base_url}/networks/{net}/tokens/{address}/pools",
            params={"page": 1},
            headers=headers,
            allow_404=True,
            cache_key=("pools", net, address),
            task="geckoterminal_pools",
        )
        pools, change_24h = self._parse_pools(pools_data)
        trending = await self._is_trending(net, address, attrs.get("symbol"))

        # A reported "0" is a real price; only a missing field is unknown
        price = as_float(attrs["price_usd"]) if attrs.get("price_usd") not in (None, "") else None
        signal = LiquiditySignal(
            found=True,
            symbol=attrs.get("symbol"),
            name=attrs.get("name"),
            price_usd=price,
            price_change_24h=change_24h,
            volume_24h=as_float((attrs.get("volume_usd") or {}).get("h24")),
            fdv_usd=as_float(attrs.get("fdv_usd"), default=0.0) or None,
            pools=pools,
            trending=trending,
        )
        signal.warnings = self._warnings(signal)
        return signal

    def _parse_pools(self, data) -> tuple[list[PoolInfo], float | None]:
        if not data:
            return [], None
        pools = []
        change_24h = None
        for item in (data.get("data") or [])[:TOP_POOLS]:
            attrs = item.get("attributes") or {}
            dex = ((item.get("relationships") or {}).get("dex") or {}).get("data") or {}
            pools.append(PoolInfo(
                address=attrs.get("address", ""),
                name=attrs.get("name", ""),
                dex=dex.get("id", ""),
                reserve_usd=as_float(attrs.get("reserve_in_usd")),
                volume_24h=as_float((attrs.get("volume_usd") or {}).get("h24")),
            ))
            if change_24h is None:
                raw = (attrs.get("price_change_percentage") or {}).get("h24")
                if raw is not None:
                    change_24h = as_float(raw)
        return pools, change_24h

    async def _is_trending(self, net: str, address: str, symbol: str | None) -> bool:
        try:
            data = await self._get_json(
                f"{self.base_url}/networks/{net}/trending_pools",
                headers={"Accept": "application/json"},
                cache_key=("trending", net),
                task="geckoterminal_trending",
            )
        except Exception as e:
            logger.debug("trending_fetch_failed", network=net, error=str(e)[:100])
            return False
        base_token_id = f"{net}_{address}".lower()
        symbol = (symbol or "").lower()
        for item in (data or {}).get("data") or []:
            base = ((item.get("relationships") or {}).get("base_token") or {}).get("data") or {}
            if (base.get("id") or "").lower() == base_token_id:
                return True
            name = ((item.get("attributes") or {}).get("name") or "").lower()
            if symbol and name.split(" / ")[0] == symbol:
                return True
        return False

    def _warnings(self, signal: LiquiditySignal) -> list[str]:
        warnings = []
        if not signal.price_usd:
            warnings.append("No price data available - low liquidity or new token")
        if not signal.pools:
            warnings.append("No liquidity pools found")
        elif len(signal.pools) == 1:
            warnings.append("Only one liquidity pool - limited trading options")
        if signal.total_liquidity < LOW_LIQUIDITY_USD:
            warnings.append(f"Low total liquidity: ${signal.total_liquidity:,.2f}")
        total_volume = sum(p.volume_24h for p in signal.pools)
        if total_volume < LOW_VOLUME_USD:
            warnings.append(f"Very low 24h volume: ${total_volume:,.2f}")
        return warnings
