"""
Source-security scanner — regex checks over verified Solidity source.

Runs on the source the verification collector already fetched, so it makes
no network calls of its own. A pattern match is a lead, not a finding.
"""
import json
import re
from dataclasses import dataclass
from typing import Callable

from agents.sentinel.models.signals import SecurityIssue, SourceSecuritySignal
from agents.sentinel.services.collectors.base import SignalCollector

SEVERITY_PENALTY = {"critical": 25, "high": 15, "medium": 8, "low": 3, "info": 1}

# Standard ERC-20 entry points, always public
_ERC20_PUBLIC = {"transfer", "transferFrom", "approve", "increaseAllowance", "decreaseAllowance"}
_GUARDS = ("onlyOwner", "onlyRole", "modifier", "require", "_msgSender", "internal", "private")


@dataclass(frozen=True)
class _Pattern:
    name: str
    severity: str
    check: Callable[[str], bool]
    description: str
    fix: str


def _has(pattern: str, flags: int = 0) -> Callable[[str], bool]:
    compiled = re.compile(pattern, flags)
    return lambda code: bool(compiled.search(code))


def _unchecked_call(code: str) -> bool:
    return bool(re.search(r"\.call\{[^}]*\}\([^)]*\)\s*;", code)) and not re.search(
        r"\(bool\s+\w+,?\s*\)?\s*=", code
    )


def _pre_08_arithmetic(code: str) -> bool:
    is_08 = re.search(r"pragma\s+solidity\s+[\^~>=<\s]*0\.(8|9)\.", code)
    return not is_08 and bool(re.search(r"[+\-*]", code)) and "SafeMath" not in code


def _missing_access_control(code: str) -> bool:
    for match in re.finditer(r"function\s+(\w+)\s*\([^)]*\)\s+(?:external|public)(?!\s+view|\s+pure)[^{;]*", code):
        if match.group(1) in _ERC20_PUBLIC:
            continue
        if not any(guard in match.group(0) for guard in _GUARDS):
            return True
    return False


def _flash_loan(code: str) -> bool:
    return bool(re.search(r"balanceOf\s*\([^)]*\)\s*[<>=]", code)) and not re.search(
        r"require\s*\([^)]*msg\.value", code
    )


VULNERABILITY_PATTERNS = [
    _Pattern(
        "Reentrancy", "critical",
        lambda code: any(re.search(p, code) for p in (r"\.call\{[^}]*value[^}]*\}\s*\(", r"\.call\.value\(", r"\.send\(")),
        "External call before state update - classic reentrancy vector",
        "Use checks-effects-interactions pattern or ReentrancyGuard",
    ),
    _Pattern(
        "Unchecked External Call", "high", _unchecked_call,
        "External call return value not checked",
        "Check return value: (bool success, ) = addr.call{...}(...); require(success);",
    ),
    _Pattern(
        "tx.origin Authentication", "high",
        lambda code: bool(re.search(r"require\s*\([^)]*tx\.origin", code) or re.search(r"if\s*\([^)]*tx\.origin", code)),
        "Using tx.origin for auth is vulnerable to phishing",
        "Use msg.sender instead of tx.origin for authentication",
    ),
    _Pattern(
        "Unsafe Delegatecall", "critical", _has(r"\.delegatecall\("),
        "delegatecall can be dangerous if target is user-controlled",
        "Ensure delegatecall target is trusted and immutable",
    ),
    _Pattern(
        "Potential Integer Overflow", "medium", _pre_08_arithmetic,
        "Arithmetic operations without overflow protection (pre-0.8)",
        "Use Solidity 0.8+ or OpenZeppelin SafeMath",
    ),
    _Pattern(
        "Selfdestruct Present", "high", _has(r"(selfdestruct|suicide)\s*\("),
        "selfdestruct can permanently destroy the contract",
        "Consider if selfdestruct is necessary; add strict access controls",
    ),
    _Pattern(
        "Missing Access Control", "high", _missing_access_control,
        "State-changing function may lack access control",
        "Add onlyOwner or role-based access control modifier",
    ),
    _Pattern(
        "Frontrunning Vulnerable", "medium", _has(r"block\.timestamp|blockhash\s*\("),
        "Using block values for randomness/timing is frontrunnable",
        "Use commit-reveal scheme or Chainlink VRF for randomness",
    ),
    _Pattern(
        "Flash Loan Attack Vector", "medium", _flash_loan,
        "Balance checks may be manipulable via flash loans",
        "Use time-weighted averages or multi-block checks for price/balance",
    ),
    _Pattern(
        "Private Data Exposure", "low",
        _has(r"(string|bytes\d*|uint\d*|address)\s+private\s+\w+\s*="),
        "Private variables are readable on-chain",
        "Never store sensitive data on-chain, even as private",
    ),
]

GAS_PATTERNS = {
    "Storage Read in Loop": _has(r"for\s*\([^)]+\)\s*\{[\s\S]*?storage[\s\S]*?\}"),
    "Long Error Strings": _has(r'require\s*\([^,]+,\s*"[^"]{32,}"'),
    "Post-increment in Loop": _has(r"for\s*\([^)]*\w+\+\+\s*\)"),
    "Unoptimized Storage Layout": _has(r"uint256[\s\S]{0,50}uint8[\s\S]{0,50}uint256"),
    "Zero Address Check": _has(r"require\s*\(\s*\w+\s*!=\s*address\s*\(\s*0\s*\)"),
}


def flatten_source(source: str) -> str:
    """Etherscan returns multi-file sources as (double-braced) JSON."""
    text = source.strip()
    if text.startswith("{{") and text.endswith("}}"):
        text = text[1:-1]
    if not text.startswith("{"):
        return source
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return source
    files = parsed.get("sources", parsed) if isinstance(parsed, dict) else {}
    parts = []
    for entry in files.values():
        if isinstance(entry, str):
            parts.append(entry)
        elif isinstance(entry, dict) and isinstance(entry.get("content"), str):
            parts.append(entry["content"])
    return "\n".join(parts) if parts else source


def score_issues(issues: list[SecurityIssue]) -> int:
    score = 100 - sum(SEVERITY_PENALTY.get(i.severity, 0) for i in issues)
    return max(0, score)


def recommendations(issues: list[SecurityIssue], gas: list[str]) -> list[str]:
    recs = []
    criticals = sum(1 for i in issues if i.severity == "critical")
    highs = sum(1 for i in issues if i.severity == "high")
    if criticals:
        recs.append(f"{criticals} CRITICAL issue(s) found - do not interact before review")
    if highs:
        recs.append(f"{highs} HIGH severity issue(s) need attention")
    names = {i.name for i in issues}
    if "Reentrancy" in names:
        recs.append("Consider using OpenZeppelin ReentrancyGuard")
    if "Missing Access Control" in names:
        recs.append("Add Ownable or AccessControl from OpenZeppelin")
    if len(gas) > 3:
        recs.append("Multiple gas optimizations possible - review for production")
    if not issues and not gas:
        recs.append("No major issues detected - still recommend professional audit")
    return recs


def scan_source(source: str, contract_name: str | None = None) -> SourceSecuritySignal:
    code = flatten_source(source)
    issues = [
        SecurityIssue(name=p.name, severity=p.severity, description=p.description, fix=p.fix)
        for p in VULNERABILITY_PATTERNS
        if p.check(code)
    ]
    gas = [name for name, check in GAS_PATTERNS.items() if check(code)]
    return SourceSecuritySignal(
        contract_name=contract_name,
        issues=issues,
        gas_optimizations=gas,
        score=score_issues(issues),
        recommendations=recommendations(issues, gas),
    )


class SourceScanCollector(SignalCollector):
    """Scans only verified contracts; unverified ones yield no signal."""
    name = "source_scan"
    provider = "etherscan"

    async def _collect(self, address, network, context):
        if not context.is_verified or not context.source_code:
            return None
        return scan_source(context.source_code, context.contract_name)
