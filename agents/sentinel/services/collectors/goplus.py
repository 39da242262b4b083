"""
Third-party security collector — GoPlus token_security.

GoPlus returns '1'/'0' string flags and fractional taxes. analyze_goplus()
turns them into an additive risk score and a level; the raw trading flags
are kept on the result because the rug monitor re-reads them.
"""
from shared.config import settings
from shared.utils.retry import MalformedResponseError
from agents.sentinel.config import GOPLUS_CHAINS
from agents.sentinel.models.enums import GoPlusLevel
from agents.sentinel.models.signals import GoPlusAnalysis, GoPlusRisk
from agents.sentinel.services.collectors.base import SignalCollector, as_float, flag, require_dict


def _level(score: int) -> GoPlusLevel:
    if score >= 50:
        return GoPlusLevel.CRITICAL
    if score >= 30:
        return GoPlusLevel.HIGH
    if score >= 15:
        return GoPlusLevel.MEDIUM
    return GoPlusLevel.LOW


def analyze_goplus(security: dict) -> GoPlusAnalysis:
    risks: list[GoPlusRisk] = []
    warnings: list[str] = []
    score = 0

    def risk(title: str, description: str, severity: GoPlusLevel, points: int):
        nonlocal score
        risks.append(GoPlusRisk(title=title, description=description, severity=severity))
        score += points

    if flag(security.get("is_honeypot")):
        risk("Honeypot Detected", "This token is a honeypot - you will not be able to sell it", GoPlusLevel.CRITICAL, 50)
    if flag(security.get("cannot_sell_all")):
        risk("Cannot Sell All", "Token holders cannot sell all of their tokens", GoPlusLevel.CRITICAL, 40)
    if flag(security.get("cannot_buy")):
        risk("Trading Disabled", "Token buying is currently disabled", GoPlusLevel.CRITICAL, 40)

    sell_tax = as_float(security.get("sell_tax"))
    buy_tax = as_float(security.get("buy_tax"))
    if sell_tax > 0.5:
        risk("Extreme Sell Tax", f"Sell tax is {sell_tax * 100:.1f}%", GoPlusLevel.CRITICAL, 40)
    elif sell_tax > 0.1:
        risk("High Sell Tax", f"Sell tax is {sell_tax * 100:.1f}%", GoPlusLevel.HIGH, 20)
    elif sell_tax > 0.05:
        risk("Moderate Sell Tax", f"Sell tax is {sell_tax * 100:.1f}%", GoPlusLevel.MEDIUM, 10)
    if buy_tax > 0.1:
        risk("High Buy Tax", f"Buy tax is {buy_tax * 100:.1f}%", GoPlusLevel.HIGH, 15)

    if flag(security.get("slippage_modifiable")):
        risk("Modifiable Taxes", "Owner can modify buy/sell taxes at any time", GoPlusLevel.HIGH, 15)
    if flag(security.get("transfer_pausable")):
        risk("Pausable Transfers", "Token transfers can be paused by owner", GoPlusLevel.HIGH, 15)
    if flag(security.get("can_take_back_ownership")):
        risk("Recoverable Ownership", "Ownership can be reclaimed even after renouncing", GoPlusLevel.HIGH, 15)
    if flag(security.get("hidden_owner")):
        risk("Hidden Owner", "Contract has a hidden owner mechanism", GoPlusLevel.HIGH, 15)
    if flag(security.get("owner_change_balance")):
        risk("Balance Manipulation", "Owner can directly modify token balances", GoPlusLevel.CRITICAL, 35)
    if flag(security.get("is_mintable")):
        risk("Mintable Token", "New tokens can be minted, diluting holders", GoPlusLevel.MEDIUM, 10)
    if security.get("is_open_source") == "0":
        risk("Unverified Contract", "Contract source code is not verified", GoPlusLevel.MEDIUM, 10)

    if flag(security.get("is_proxy")):
        warnings.append("Contract is a proxy - implementation can be upgraded")
        score += 5
    if flag(security.get("is_blacklisted")):
        risk("Blacklist Function", "Token has blacklist functionality that can block addresses", GoPlusLevel.MEDIUM, 10)
    if flag(security.get("is_whitelisted")):
        warnings.append("Token has whitelist functionality")
        score += 5
    if flag(security.get("trading_cooldown")):
        warnings.append("Token has trading cooldown restrictions")
        score += 5
    if flag(security.get("is_anti_whale")) and flag(security.get("anti_whale_modifiable")):
        warnings.append("Anti-whale limits can be modified by owner")
        score += 5

    owner_percent = as_float(security.get("owner_percent"))
    if owner_percent > 0.1:
        risk(
            "High Owner Holdings",
            f"Owner holds {owner_percent * 100:.2f}% of supply",
            GoPlusLevel.HIGH if owner_percent > 0.5 else GoPlusLevel.MEDIUM,
            15 if owner_percent > 0.5 else 8,
        )
    if flag(security.get("is_airdrop_scam")):
        risk("Airdrop Scam", "Token is flagged as an airdrop scam", GoPlusLevel.HIGH, 25)

    trust_list = flag(security.get("trust_list"))
    if trust_list:
        warnings.append("Token is on a trust list")
        score = max(0, score - 10)

    holder_count = security.get("holder_count")
    return GoPlusAnalysis(
        risk_level=_level(score),
        risk_score=min(100, score),
        risks=risks,
        warnings=warnings,
        trust_list=trust_list,
        is_honeypot=flag(security.get("is_honeypot")),
        cannot_sell_all=flag(security.get("cannot_sell_all")),
        cannot_buy=flag(security.get("cannot_buy")),
        trading_cooldown=flag(security.get("trading_cooldown")),
        owner_change_balance=flag(security.get("owner_change_balance")),
        holder_count=int(holder_count) if str(holder_count or "").isdigit() else None,
    )


class GoPlusCollector(SignalCollector):
    name = "goplus"
    provider = "goplus"
    networks = GOPLUS_CHAINS

    def __init__(self, *args, base_url: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.base_url = (base_url or settings.GOPLUS_API_URL).rstrip("/")

    async def _collect(self, address, network, context):
        chain_id = self.chain_id(network)
        data = require_dict(await self._get_json(
            f"{self.base_url}/token_security/{chain_id}",
            params={"contract_addresses": address},
            headers={"Accept": "application/json"},
            cache_key=(chain_id, address),
        ), "token_security")

        if data.get("code") != 1:
            raise MalformedResponseError(f"GoPlus error: {data.get('message')}")
        security = (data.get("result") or {}).get(address)
        if not security:
            return None
        return analyze_goplus(security)
