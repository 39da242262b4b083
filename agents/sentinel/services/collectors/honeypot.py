"""
Sale-simulation collector — honeypot.is buys and sells the token against
its main pair and reports whether the sell went through, plus taxes.
"""
from agents.sentinel.config import HONEYPOT_CHAINS
from agents.sentinel.models.signals import HoneypotSignal
from agents.sentinel.services.collectors.base import SignalCollector, as_float, require_dict

HONEYPOT_API = "https://api.honeypot.is/v2/IsHoneypot"


class HoneypotCollector(SignalCollector):
    name = "sale_simulation"
    provider = "honeypot"
    networks = HONEYPOT_CHAINS

    async def _collect(self, address, network, context):
        chain_id = self.chain_id(network)
        data = require_dict(await self._get_json(
            HONEYPOT_API,
            params={"address": address, "chainID": chain_id},
            headers={"Accept": "application/json"},
            cache_key=(chain_id, address),
        ), "honeypot")

        result = data.get("honeypotResult") or {}
        sim = data.get("simulationResult") or {}
        code = data.get("contractCode") or {}
        flags = data.get("flags") or []
        token = data.get("token") or {}
        holders = (data.get("holderAnalysis") or {}).get("holders")
        contract = data.get("contract") or {}

        return HoneypotSignal(
            is_honeypot=bool(result.get("isHoneypot")),
            honeypot_reason=result.get("honeypotReason"),
            simulation_success=bool(data.get("simulationSuccess")),
            buy_tax=as_float(sim.get("buyTax")),
            sell_tax=as_float(sim.get("sellTax")),
            transfer_tax=as_float(sim.get("transferTax")),
            is_open_source=bool(code.get("openSource")),
            is_proxy=bool(code.get("isProxy")),
            is_mintable="mintable" in flags,
            can_take_back_ownership="canTakeBackOwnership" in flags,
            holder_count=int(holders) if holders is not None else None,
            owner_address=contract.get("owner") or token.get("owner"),
            creator_address=contract.get("creator") or token.get("creator"),
            token_symbol=token.get("symbol"),
            token_name=token.get("name"),
        )
