"""
Deployer reputation collector.

Combines three sources about whoever launched the token:
- Etherscan v2 account history (how many contracts they deployed)
- Clanker launch info (Farcaster-native launcher, verified-builder tag)
- Webacy address risk (sanctions, mixers, rug history)

Each source is optional; one failing only drops its own factors.
"""
import asyncio
import structlog

from shared.config import settings
from agents.sentinel.config import (
    CLANKER_NETWORKS, DEPLOYER_ESTABLISHED_CONTRACTS, ETHERSCAN_CHAINS, WEBACY_CHAINS,
)
from agents.sentinel.models.enums import RiskLevel
from agents.sentinel.models.signals import ClankerInfo, DeployerIntel
from agents.sentinel.services.collectors.base import SignalCollector, as_float, require_dict

logger = structlog.get_logger()

ETHERSCAN_V2_API = "https://api.etherscan.io/v2/api"
CLANKER_API = "https://www.clanker.world/api/get-clanker-by-address"
WEBACY_API = "https://api.webacy.com/addresses"

_SANCTION_TAGS = {"sanctioned", "ofac_sanctioned"}
_MIXER_TAGS = {"mixer_usage", "tumbler"}
_RUG_TAGS = {"rug_pull", "rugpull_history"}


def webacy_level(score: float) -> RiskLevel:
    if score >= 70:
        return RiskLevel.CRITICAL
    if score >= 50:
        return RiskLevel.HIGH
    if score >= 25:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def reputation_for(contracts_deployed: int) -> str:
    if contracts_deployed >= DEPLOYER_ESTABLISHED_CONTRACTS:
        return "established"
    if contracts_deployed == 1:
        return "new"
    return "unknown"


def assess_deployer(intel: DeployerIntel) -> DeployerIntel:
    """Fill risk/positive factors and the overall risk from the raw findings."""
    risks: list[str] = []
    positives: list[str] = []

    if intel.sanctioned:
        risks.append("⚠️ SANCTIONED ADDRESS - Do not interact")
    if intel.rug_history:
        risks.append("🚨 Deployer has rug pull history")
    if intel.mixer_usage:
        risks.append("⚠️ Deployer has used mixers/tumblers")
    if intel.webacy_risk_level is RiskLevel.CRITICAL:
        risks.append("🔴 Critical risk score from Webacy")
    elif intel.webacy_risk_level is RiskLevel.HIGH:
        risks.append("🟠 High risk score from Webacy")
    elif intel.webacy_risk_level is RiskLevel.LOW:
        positives.append("✅ Low risk score from Webacy")

    if intel.contracts_deployed is not None:
        if intel.contracts_deployed == 0:
            risks.append("⚠️ No deployment history - new deployer")
        elif intel.contracts_deployed == 1:
            risks.append("⚠️ First contract from this deployer")
        elif intel.reputation == "established":
            positives.append(f"✅ Established deployer ({intel.contracts_deployed} contracts)")

    if intel.clanker:
        positives.append("✅ Launched via Clanker (Farcaster-native)")
        if intel.clanker.is_verified_builder:
            positives.append("✅ Verified builder on Clanker")

    overall = RiskLevel.MEDIUM
    if intel.sanctioned or intel.rug_history:
        overall = RiskLevel.CRITICAL
    elif intel.webacy_risk_level is RiskLevel.CRITICAL or len(risks) >= 3:
        overall = RiskLevel.CRITICAL
    elif intel.webacy_risk_level is RiskLevel.HIGH or len(risks) >= 2:
        overall = RiskLevel.HIGH
    elif positives and not risks:
        overall = RiskLevel.LOW

    return intel.model_copy(update={
        "risk_factors": risks,
        "positive_factors": positives,
        "overall_risk": overall,
    })


class DeployerCollector(SignalCollector):
    name = "deployer"
    provider = "etherscan"
    networks = ETHERSCAN_CHAINS

    def __init__(
        self,
        *args,
        etherscan_key: str | None = None,
        webacy_key: str | None = None,
        clanker_key: str | None = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.etherscan_key = settings.ETHERSCAN_API_KEY if etherscan_key is None else etherscan_key
        self.webacy_key = settings.WEBACY_API_KEY if webacy_key is None else webacy_key
        self.clanker_key = settings.CLANKER_API_KEY if clanker_key is None else clanker_key

    async def _collect(self, address, network, context):
        clanker = None
        if network in CLANKER_NETWORKS:
            clanker = await self._optional(self._clanker(address), "clanker")

        deployer = context.deployer_address or (clanker.admin_address if clanker else None)
        if not deployer and not clanker:
            return None

        history, webacy = None, None
        if deployer:
            history, webacy = await asyncio.gather(
                self._optional(self._contracts_deployed(deployer, network), "etherscan_history"),
                self._optional(self._webacy(deployer, network), "webacy"),
            )

        intel = DeployerIntel(deployer_address=deployer.lower() if deployer else None, clanker=clanker)
        if history is not None:
            intel.contracts_deployed = history
            intel.reputation = reputation_for(history)
        if webacy is not None:
            intel.webacy_risk_score = webacy["score"]
            intel.webacy_risk_level = webacy_level(webacy["score"])
            intel.sanctioned = webacy["sanctioned"]
            intel.mixer_usage = webacy["mixer"]
            intel.rug_history = webacy["rug"]
        return assess_deployer(intel)

    async def _optional(self, coro, source: str):
        try:
            return await coro
        except Exception as e:
            logger.warning("deployer_source_failed", source=source, error=str(e)[:150])
            return None

    async def _contracts_deployed(self, deployer: str, network: str) -> int | None:
        if not self.etherscan_key:
            return None
        data = require_dict(await self._get_json(
            ETHERSCAN_V2_API,
            params={
                "chainid": self.chain_id(network),
                "module": "account",
                "action": "txlist",
                "address": deployer,
                "startblock": 0,
                "endblock": 99999999,
                "sort": "asc",
                "apikey": self.etherscan_key,
            },
            cache_key=("txlist", network, deployer.lower()),
            task="etherscan_txlist",
        ), "txlist")
        txs = data.get("result")
        if not isinstance(txs, list):
            # "No transactions found" comes back as status 0 with a string result
            return 0
        return sum(1 for tx in txs if not tx.get("to") and tx.get("contractAddress"))

    async def _clanker(self, address: str) -> ClankerInfo | None:
        headers = {"Accept": "application/json"}
        if self.clanker_key:
            headers["x-api-key"] = self.clanker_key
        payload = await self._get_json(
            CLANKER_API,
            params={"address": address},
            headers=headers,
            allow_404=True,
            cache_key=("clanker", address),
            task="clanker_lookup",
        )
        data = (payload or {}).get("data")
        if not data:
            return None
        return ClankerInfo(
            is_verified_builder=bool((data.get("tags") or {}).get("verified")),
            admin_address=data.get("admin"),
            deployer_username=data.get("requestor_username"),
        )

    async def _webacy(self, deployer: str, network: str) -> dict | None:
        chain = WEBACY_CHAINS.get(network)
        if not self.webacy_key or not chain:
            return None
        data = require_dict(await self._get_json(
            f"{WEBACY_API}/{deployer}",
            params={"chain": chain},
            headers={"x-api-key": self.webacy_key},
            cache_key=("webacy", chain, deployer.lower()),
            task="webacy_address",
        ), "webacy")
        tags = {
            tag.get("key")
            for issue in data.get("issues") or []
            for tag in issue.get("tags") or []
        }
        return {
            "score": round(as_float(data.get("overallRisk"))),
            "sanctioned": bool(tags & _SANCTION_TAGS),
            "mixer": bool(tags & _MIXER_TAGS),
            "rug": bool(tags & _RUG_TAGS),
        }
