"""
Protocol/TVL collector — DeFi Llama coin price and protocol lookup.

A token DeFi Llama does not price is "not tracked" (usually very new or
thin). The protocol list is large, so it is cached for an hour.
"""
from agents.sentinel.config import CACHE_TTL, DEFILLAMA_CHAINS
from agents.sentinel.models.signals import ProtocolSignal
from agents.sentinel.services.collectors.base import SignalCollector, as_float

COINS_API = "https://coins.llama.fi/prices/current"
PROTOCOLS_API = "https://api.llama.fi/protocols"


def match_protocol(protocols: list[dict], query: str) -> dict | None:
    """Exact symbol/name/slug match only; substring matches are too noisy."""
    q = query.lower().lstrip("$")
    if not q:
        return None
    for p in protocols:
        if q in ((p.get("symbol") or "").lower(), (p.get("name") or "").lower(), (p.get("slug") or "").lower()):
            return p
    return None


class ProtocolCollector(SignalCollector):
    name = "protocol"
    provider = "defillama"
    networks = DEFILLAMA_CHAINS

    async def _collect(self, address, network, context):
        coin_key = f"{self.chain_id(network)}:{address}"
        prices = await self._get_json(
            f"{COINS_API}/{coin_key}",
            cache_key=("price", coin_key),
            task="defillama_price",
        )
        coin = ((prices or {}).get("coins") or {}).get(coin_key) or {}
        price = as_float(coin.get("price"), default=0.0) or None

        protocol = None
        if context.symbol:
            protocols = await self._get_json(PROTOCOLS_API, cache_key=("protocols",), task="defillama_protocols")
            if isinstance(protocols, list):
                self.cache.set(("protocols",), protocols, ttl=CACHE_TTL["defillama_protocols"])
                protocol = match_protocol(protocols, context.symbol)

        if not protocol:
            return ProtocolSignal(token_price=price)
        return ProtocolSignal(
            token_price=price,
            protocol_name=protocol.get("name"),
            tvl=as_float(protocol.get("tvl"), default=0.0) or None,
            audit_count=len(protocol.get("audit_links") or []),
        )
