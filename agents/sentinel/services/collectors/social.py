"""
Social collectors — Farcaster via Neynar.

SentimentCollector searches casts for $SYMBOL and classifies the last week
by keyword. MentionCollector reads one watched account's feed and tags each
mention of the token as positive, negative or neutral.
"""
from datetime import datetime, timedelta, timezone
from typing import Callable

from shared.config import settings
from agents.sentinel.config import (
    BEARISH_KEYWORDS, BULLISH_KEYWORDS, MENTION_NEGATIVE_WORDS, MENTION_POSITIVE_WORDS,
    SENTIMENT_MIN_CASTS, SENTIMENT_WINDOW_DAYS, WATCHED_ACCOUNT_FID, WATCHED_ACCOUNT_NAME,
)
from agents.sentinel.models.enums import MentionTone, Sentiment
from agents.sentinel.models.signals import Mention, MentionSignal, SocialMention, SocialSentiment
from agents.sentinel.services.collectors.base import SignalCollector, require_dict

NEYNAR_API = "https://api.neynar.com/v2/farcaster"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value) -> datetime | None:
    if not value:
        return None
    try:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def classify_sentiment(texts: list[str]) -> tuple[Sentiment, int, int]:
    bullish = sum(1 for t in texts if any(kw in t.lower() for kw in BULLISH_KEYWORDS))
    bearish = sum(1 for t in texts if any(kw in t.lower() for kw in BEARISH_KEYWORDS))
    sentiment = Sentiment.UNKNOWN
    if len(texts) >= SENTIMENT_MIN_CASTS:
        if bullish > bearish * 2:
            sentiment = Sentiment.BULLISH
        elif bearish > bullish * 2:
            sentiment = Sentiment.BEARISH
        elif bullish + bearish > 0:
            sentiment = Sentiment.NEUTRAL
    return sentiment, bullish, bearish


def mention_tone(text: str) -> MentionTone:
    lowered = text.lower()
    if any(w in lowered for w in MENTION_NEGATIVE_WORDS):
        return MentionTone.NEGATIVE
    if any(w in lowered for w in MENTION_POSITIVE_WORDS):
        return MentionTone.POSITIVE
    return MentionTone.NEUTRAL


class _NeynarCollector(SignalCollector):
    provider = "neynar"

    def __init__(self, *args, api_key: str | None = None, clock: Callable[[], datetime] = _utcnow, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_key = settings.NEYNAR_API_KEY if api_key is None else api_key
        self._now = clock

    def supports(self, network: str) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict:
        return {"x-api-key": self.api_key, "accept": "application/json"}


class SentimentCollector(_NeynarCollector):
    name = "sentiment"

    async def _collect(self, address, network, context):
        if not context.symbol:
            return None
        query = context.symbol if context.symbol.startswith("$") else f"${context.symbol}"
        data = require_dict(await self._get_json(
            f"{NEYNAR_API}/cast/search",
            params={"q": query, "limit": 25},
            headers=self._headers(),
            task="neynar_cast_search",
        ), "cast_search")
        casts = (data.get("result") or {}).get("casts") or []

        cutoff = self._now() - timedelta(days=SENTIMENT_WINDOW_DAYS)
        recent = [c for c in casts if (_parse_ts(c.get("timestamp")) or cutoff) > cutoff]
        sentiment, bullish, bearish = classify_sentiment([c.get("text") or "" for c in recent])

        by_reach = sorted(casts, key=lambda c: (c.get("author") or {}).get("follower_count") or 0, reverse=True)
        top = []
        for c in by_reach:
            name = (c.get("author") or {}).get("username")
            if name and name not in top:
                top.append(name)
            if len(top) == 5:
                break

        return SocialSentiment(
            mention_count=len(casts),
            recent_count=len(recent),
            bullish_count=bullish,
            bearish_count=bearish,
            sentiment=sentiment,
            top_mentioners=top,
            recent_mentions=[
                SocialMention(
                    author=(c.get("author") or {}).get("username") or "",
                    text=(c.get("text") or "")[:200],
                    timestamp=_parse_ts(c.get("timestamp")),
                    hash=c.get("hash") or "",
                )
                for c in recent[:10]
            ],
        )


class MentionCollector(_NeynarCollector):
    name = "mentions"

    def __init__(self, *args, fid: int = WATCHED_ACCOUNT_FID, account: str = WATCHED_ACCOUNT_NAME, **kwargs):
        super().__init__(*args, **kwargs)
        self.fid = fid
        self.account = account

    async def _collect(self, address, network, context):
        if not context.symbol:
            return None
        data = require_dict(await self._get_json(
            f"{NEYNAR_API}/feed/user/casts",
            params={"fid": self.fid, "limit": 100},
            headers=self._headers(),
            cache_key=("feed", self.fid),
            task="neynar_user_feed",
        ), "user_feed")

        symbol = context.symbol.lower().lstrip("$")
        terms = [symbol, f"${symbol}", address.lower()]
        mentions = []
        for cast in data.get("casts") or []:
            text = cast.get("text") or ""
            if any(term and term in text.lower() for term in terms):
                mentions.append(Mention(
                    text=text[:300],
                    timestamp=_parse_ts(cast.get("timestamp")),
                    hash=cast.get("hash") or "",
                    tone=mention_tone(text),
                ))
        return MentionSignal(account=self.account, mentions=mentions)
