"""
Holder concentration collector — Alchemy transfer history.

Balances are rebuilt from the most recent transfers, the top holders are
classified (burn address, known infrastructure, liquidity pool, large
unidentified contract, contract, wallet) and concentration is measured
over what adversarial wallets can actually sell: burn addresses, pools and
infrastructure are removed from both the numerator and the denominator.
"""
import asyncio
import structlog

from shared.config import settings
from shared.utils.retry import MalformedResponseError
from agents.sentinel.config import (
    ALCHEMY_NETWORKS, BURN_ADDRESSES, DEX_FACTORIES, HOLDER_CONCENTRATION_TOP,
    HOLDER_TOP_N, HOLDER_TRANSFER_LIMIT, KNOWN_CONTRACTS, LARGE_CONTRACT_PCT,
    SELECTOR_FACTORY, SELECTOR_TOKEN0, WHALE_PCT,
)
from agents.sentinel.models.enums import HolderKind, RiskLevel
from agents.sentinel.models.signals import HolderAnalysis, HolderInfo
from agents.sentinel.services.collectors.base import SignalCollector, require_dict

logger = structlog.get_logger()

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def rebuild_balances(transfers: list[dict]) -> dict[str, int]:
    balances: dict[str, int] = {}
    for t in transfers:
        value = _raw_value(t)
        sender = (t.get("from") or ZERO_ADDRESS).lower()
        receiver = (t.get("to") or ZERO_ADDRESS).lower()
        if sender != ZERO_ADDRESS:
            balances[sender] = balances.get(sender, 0) - value
        if receiver != ZERO_ADDRESS:
            balances[receiver] = balances.get(receiver, 0) + value
    return {addr: bal for addr, bal in balances.items() if bal > 0}


def _raw_value(transfer: dict) -> int:
    raw = (transfer.get("rawContract") or {}).get("value")
    if isinstance(raw, str) and raw.startswith("0x"):
        return int(raw, 16)
    value = transfer.get("value")
    if value is None:
        return 0
    # Decimal-adjusted fallback; fine for relative shares
    return int(float(value) * 10**18)


def classify_static(address: str) -> tuple[HolderKind, str] | None:
    """Addresses we can label without an RPC call."""
    if address in BURN_ADDRESSES:
        return HolderKind.BURN, "Burn Address"
    if address in KNOWN_CONTRACTS:
        return HolderKind.INFRASTRUCTURE, KNOWN_CONTRACTS[address]
    return None


def summarize_holders(holders: list[HolderInfo], total_holders: int, total_supply: int) -> HolderAnalysis:
    """Concentration and risk for already-classified top holders (largest first)."""
    excluded_balance = sum(h.balance for h in holders if h.kind.excluded)
    circulating = total_supply - excluded_balance

    def share(h: HolderInfo) -> float:
        return h.balance / circulating * 100 if circulating > 0 else 0.0

    wallets = [h for h in holders if not h.kind.excluded]
    concentration = sum(share(h) for h in wallets[:HOLDER_CONCENTRATION_TOP])
    whale_count = sum(1 for h in wallets if share(h) >= WHALE_PCT)
    largest = share(wallets[0]) if wallets else 0.0
    lp_pct = sum(h.percent for h in holders if h.kind in (HolderKind.POOL, HolderKind.INFRASTRUCTURE))
    burned_pct = sum(h.percent for h in holders if h.kind is HolderKind.BURN)

    warnings = []
    if lp_pct > 0:
        warnings.append(f"💧 {lp_pct:.1f}% in LP/staking contracts")
    if burned_pct > 0:
        warnings.append(f"🔥 {burned_pct:.1f}% burned")

    risk = RiskLevel.LOW
    if concentration >= 80:
        risk = RiskLevel.CRITICAL
        warnings.append(f"⚠️ Top 10 wallets control {concentration:.1f}% of circulating supply")
    elif concentration >= 60:
        risk = RiskLevel.HIGH
        warnings.append(f"⚠️ High concentration: Top 10 wallets hold {concentration:.1f}%")
    elif concentration >= 40:
        risk = RiskLevel.MEDIUM

    if whale_count >= 5:
        warnings.append(f"🐋 {whale_count} wallets hold >1% each")

    if largest >= 50:
        risk = RiskLevel.CRITICAL
        warnings.append(f"⚠️ Single wallet holds {largest:.1f}% of circulating supply")
    elif largest >= 25:
        if risk is RiskLevel.LOW:
            risk = RiskLevel.MEDIUM
        warnings.append(f"⚠️ Largest wallet holds {largest:.1f}%")

    return HolderAnalysis(
        total_holders=total_holders,
        top_holders=holders[:20],
        concentration_pct=round(concentration, 2),
        largest_wallet_pct=round(largest, 2),
        whale_count=whale_count,
        lp_pct=round(lp_pct, 2),
        burned_pct=round(burned_pct, 2),
        risk_level=risk,
        warnings=warnings,
    )


class HolderCollector(SignalCollector):
    name = "holders"
    provider = "alchemy"
    networks = ALCHEMY_NETWORKS

    def __init__(self, *args, api_key: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_key = settings.ALCHEMY_API_KEY if api_key is None else api_key

    def supports(self, network: str) -> bool:
        return bool(self.api_key) and super().supports(network)

    def _url(self, network: str) -> str:
        return f"https://{self.chain_id(network)}.g.alchemy.com/v2/{self.api_key}"

    async def _rpc(self, network: str, method: str, params: list, task: str):
        data = require_dict(await self._post_json(
            self._url(network),
            {"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
            task=task,
        ), method)
        if "error" in data:
            raise MalformedResponseError(f"{method}: {data['error']}")
        return data.get("result")

    async def _collect(self, address, network, context):
        result = await self._rpc(network, "alchemy_getAssetTransfers", [{
            "fromBlock": "0x0",
            "toBlock": "latest",
            "contractAddresses": [address],
            "category": ["erc20"],
            "excludeZeroValue": True,
            "order": "desc",
            "maxCount": hex(HOLDER_TRANSFER_LIMIT),
        }], task="alchemy_transfers")
        transfers = (result or {}).get("transfers") or []
        if not transfers:
            return None

        balances = rebuild_balances(transfers)
        total_supply = sum(balances.values())
        if total_supply <= 0:
            return None

        ranked = sorted(balances.items(), key=lambda kv: kv[1], reverse=True)[:HOLDER_TOP_N]
        holders = await asyncio.gather(*(
            self._classify(network, addr, bal, bal / total_supply * 100) for addr, bal in ranked
        ))
        return summarize_holders(list(holders), len(balances), total_supply)

    async def _classify(self, network: str, address: str, balance: int, percent: float) -> HolderInfo:
        static = classify_static(address)
        if static:
            kind, label = static
            return HolderInfo(address=address, balance=balance, percent=percent, kind=kind, label=label)

        try:
            code = await self._rpc(network, "eth_getCode", [address, "latest"], task="alchemy_get_code")
        except Exception as e:
            logger.debug("holder_code_lookup_failed", address=address[:10], error=str(e)[:100])
            code = None
        is_contract = code not in (None, "0x", "0x0")
        dex = await self._pool_dex(network, address) if is_contract else None

        if dex:
            kind, label = HolderKind.POOL, dex
        elif is_contract and percent >= LARGE_CONTRACT_PCT:
            kind, label = HolderKind.INFRASTRUCTURE, "Large Contract (likely LP/Staking)"
        elif is_contract:
            kind, label = HolderKind.CONTRACT, "Contract"
        else:
            kind, label = HolderKind.WALLET, None
        return HolderInfo(address=address, balance=balance, percent=percent, kind=kind, label=label)

    async def _pool_dex(self, network: str, address: str) -> str | None:
        """Pools answer token0(); factory() tells us which DEX.

        Non-pool contracts revert on token0(), which comes back as an RPC error.
        """
        try:
            token0 = await self._rpc(network, "eth_call", [{"to": address, "data": SELECTOR_TOKEN0}, "latest"], task="alchemy_eth_call")
        except Exception:
            return None
        if not token0 or len(token0) < 66:
            return None
        try:
            factory = await self._rpc(network, "eth_call", [{"to": address, "data": SELECTOR_FACTORY}, "latest"], task="alchemy_eth_call")
        except Exception:
            factory = None
        if factory and len(factory) >= 66:
            return DEX_FACTORIES.get("0x" + factory[-40:].lower(), "LP Pool")
        return "Unknown LP"
