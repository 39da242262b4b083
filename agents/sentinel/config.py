AGENT_NAME = "sentinel"
DEFAULT_NETWORK = "base"

# HTTP
HTTP_TIMEOUT = 15                  # seconds per provider request

# Rug monitor
RUG_SCAN_INTERVAL = 3600 * 6       # Scheduled scan every 6 hours
RECHECK_STALE_AFTER = 3600 * 6     # Skip tokens checked within the last 6 hours
MAX_TOKENS_PER_SCAN = 20
PACED_SCAN_DELAY = 0.2             # Pause between tokens in a monitor pass
POST_DELAY = 1.0                   # Pause between incident posts

# Rug thresholds (percent drop from baseline)
PRICE_CRASH_PCT = 80
PRICE_CRASH_CRITICAL_PCT = 95
PRICE_WARNING_PCT = 50
LIQUIDITY_PULL_PCT = 90
LIQUIDITY_WARNING_PCT = 50

# Scores below this were flagged as risky at first analysis
RISKY_SCORE_CUTOFF = 50

# Composite scorer
BASELINE_SCORE = 50
HIGH_LIQUIDITY_USD = 100_000
LOW_LIQUIDITY_USD = 10_000
MANY_HOLDERS = 500

# Per-provider minimum interval between calls (seconds)
RATE_LIMITS = {
    "geckoterminal": 2.0,   # public tier: 30 req/min
    "honeypot": 0.5,
    "etherscan": 0.25,      # 5 req/s
    "alchemy": 0.1,
    "goplus": 1.0,
    "neynar": 0.2,
    "clanker": 0.5,
    "webacy": 0.5,
    "defillama": 0.2,
}

# Seconds a provider response stays cached
CACHE_TTL = {
    "geckoterminal": 60,
    "honeypot": 300,
    "etherscan": 3600,
    "goplus": 300,
    "defillama": 300,
    "defillama_protocols": 3600,
}

# Network name -> provider chain identifier
GECKOTERMINAL_NETWORKS = {
    "ethereum": "eth",
    "eth": "eth",
    "base": "base",
    "arbitrum": "arbitrum",
    "optimism": "optimism",
    "polygon": "polygon_pos",
    "bsc": "bsc",
    "avalanche": "avax",
    "solana": "solana",
}

HONEYPOT_CHAINS = {
    "ethereum": 1,
    "eth": 1,
    "base": 8453,
    "bsc": 56,
    "binance": 56,
}

ETHERSCAN_CHAINS = {
    "ethereum": 1,
    "eth": 1,
    "base": 8453,
    "bsc": 56,
    "binance": 56,
    "arbitrum": 42161,
    "optimism": 10,
    "polygon": 137,
}

GOPLUS_CHAINS = {
    "ethereum": "1",
    "eth": "1",
    "base": "8453",
    "bsc": "56",
    "binance": "56",
    "arbitrum": "42161",
    "optimism": "10",
    "polygon": "137",
    "avalanche": "43114",
}

ALCHEMY_NETWORKS = {
    "ethereum": "eth-mainnet",
    "eth": "eth-mainnet",
    "base": "base-mainnet",
    "arbitrum": "arb-mainnet",
    "optimism": "opt-mainnet",
    "polygon": "polygon-mainnet",
}

DEFILLAMA_CHAINS = {
    "ethereum": "ethereum",
    "eth": "ethereum",
    "base": "base",
    "arbitrum": "arbitrum",
    "optimism": "optimism",
    "polygon": "polygon",
    "bsc": "bsc",
    "avalanche": "avax",
}

WEBACY_CHAINS = {
    "ethereum": "eth",
    "eth": "eth",
    "base": "base",
    "arbitrum": "arb",
    "optimism": "opt",
    "polygon": "pol",
    "bsc": "bsc",
}

# Clanker only launches on Base
CLANKER_NETWORKS = {"base": 8453}

# Farcaster sentiment (Neynar cast search); Neynar is chain-agnostic
SENTIMENT_WINDOW_DAYS = 7
SENTIMENT_MIN_CASTS = 3
BULLISH_KEYWORDS = ["moon", "pump", "bullish", "buy", "long", "lfg", "gem", "alpha", "🚀", "📈", "💎"]
BEARISH_KEYWORDS = ["dump", "rug", "scam", "sell", "short", "bearish", "avoid", "honeypot", "📉", "⚠️", "🚨"]

# Watched account for corroborating mentions (@bankr)
WATCHED_ACCOUNT_FID = 21152
WATCHED_ACCOUNT_NAME = "bankr"
MENTION_POSITIVE_WORDS = ["buy", "long", "bullish", "alpha", "gem", "opportunity", "undervalued"]
MENTION_NEGATIVE_WORDS = ["sell", "avoid", "scam", "rug", "careful", "warning", "overvalued"]

# Holder analysis
HOLDER_TRANSFER_LIMIT = 1000
HOLDER_TOP_N = 30
HOLDER_CONCENTRATION_TOP = 10
LARGE_CONTRACT_PCT = 20            # Unidentified contracts above this are infrastructure
WHALE_PCT = 1

BURN_ADDRESSES = {
    "0x0000000000000000000000000000000000000000",
    "0x000000000000000000000000000000000000dead",
    "0xdead000000000000000042069420694206942069",
    "0x0000000000000000000000000000000000000001",
}

# Routers, lockers and other known infrastructure (lower-case)
KNOWN_CONTRACTS = {
    "0x7a250d5630b4cf539739df2c5dacb4c659f2488d": "Uniswap V2 Router",
    "0xe592427a0aece92de3edee1f18e0157c05861564": "Uniswap V3 Router",
    "0x3fc91a3afd70395cd496c647d5a6cc9d4b2b7fad": "Uniswap Universal Router",
    "0x2626664c2603336e57b271c5c0b26f421741e481": "Uniswap V3 Router (Base)",
    "0x4752ba5dbc23f44d87826276bf6fd6b1c372ad24": "Uniswap V2 Router (Base)",
    "0xcf77a3ba9a5ca399b7c97c74d54e5b1beb874e43": "Aerodrome Router",
    "0x10ed43c718714eb63d5aa57b78b54704e256024e": "PancakeSwap Router",
    "0x663a5c229c09b049e36dcc11a9b0d4a8eb9db214": "UNCX Locker",
    "0xe2fe530c047f2d85298b07d9333c05737f1435fb": "Team Finance Locker",
}

# Factory address -> DEX name, for pool identification
DEX_FACTORIES = {
    "0x5c69bee701ef814a2b6a3edd4b1652cb9cc5aa6f": "Uniswap V2",
    "0x1f98431c8ad98523631ae4a59f267346ea31f984": "Uniswap V3",
    "0x8909dc15e40173ff4699343b6eb8132c65e18ec6": "Uniswap V2 (Base)",
    "0x33128a8fc17869897dce68ed026d694621f6fdfd": "Uniswap V3 (Base)",
    "0x420dd381b31aef6683db6b902084cb0ffece40da": "Aerodrome",
    "0xca143ce32fe78f1f7019d7d551a6402fc5350c73": "PancakeSwap V2",
}

# ABI selectors for pool detection
SELECTOR_TOKEN0 = "0x0dfe1681"
SELECTOR_FACTORY = "0xc45a0155"

# Deployer reputation
DEPLOYER_ESTABLISHED_CONTRACTS = 5
