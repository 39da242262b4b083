"""
Contract verification collector — Etherscan v2 getsourcecode.

One API key covers every chain on the v2 endpoint. The verified source is
kept on the result so the source scanner does not fetch it twice.
"""
from shared.config import settings
from agents.sentinel.config import ETHERSCAN_CHAINS
from agents.sentinel.models.signals import ContractVerification
from agents.sentinel.services.collectors.base import SignalCollector, require_dict

ETHERSCAN_V2_API = "https://api.etherscan.io/v2/api"


class VerificationCollector(SignalCollector):
    name = "verification"
    provider = "etherscan"
    networks = ETHERSCAN_CHAINS

    def __init__(self, *args, api_key: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_key = settings.ETHERSCAN_API_KEY if api_key is None else api_key

    async def _collect(self, address, network, context):
        chain_id = self.chain_id(network)
        params = {
            "chainid": chain_id,
            "module": "contract",
            "action": "getsourcecode",
            "address": address,
        }
        if self.api_key:
            params["apikey"] = self.api_key

        data = require_dict(
            await self._get_json(ETHERSCAN_V2_API, params=params, cache_key=(chain_id, address)),
            "getsourcecode",
        )
        results = data.get("result")
        if str(data.get("status")) != "1" or not isinstance(results, list) or not results:
            return ContractVerification(is_verified=False)

        row = results[0]
        source = row.get("SourceCode") or ""
        return ContractVerification(
            is_verified=bool(source),
            contract_name=row.get("ContractName") or None,
            compiler=row.get("CompilerVersion") or None,
            optimization_used=row.get("OptimizationUsed") == "1",
            license=row.get("LicenseType") or None,
            source_code=source or None,
        )
