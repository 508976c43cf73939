# market_feed.py
# One-shot client for the SET index quote. Polling belongs to the caller.

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import requests

logger = logging.getLogger(__name__)

SET_QUOTE_URL = "https://www.set.or.th/api/market/index/SET/quote"
DEFAULT_MAX_AGE = 15 * 60  # seconds


@dataclass(frozen=True)
class MarketQuote:
    index: str
    value: str
    fetched_at: float = field(default_factory=time.time)
    max_age: float = DEFAULT_MAX_AGE

    def is_stale(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now - self.fetched_at > self.max_age


def _fmt(x) -> str:
    return f"{float(x):,.2f}"


def fetch_market_quote(url: str = SET_QUOTE_URL, timeout: float = 10.0,
                       session: Optional[requests.Session] = None) -> Optional[MarketQuote]:
    """Latest index/value pair, or None when the feed is unreachable or malformed."""
    http = session or requests
    try:
        r = http.get(url, headers={"User-Agent": "Mozilla/5.0"}, timeout=timeout)
        r.raise_for_status()
        payload = r.json()
        index = payload["index"]["last"]
        value = payload["total_trade"]["value"]
        if index is None or value is None:
            raise ValueError("quote is missing index or value")
        return MarketQuote(index=_fmt(index), value=_fmt(value))
    except (requests.RequestException, ValueError, KeyError, TypeError) as e:
        logger.warning("Market feed unavailable: %s", e)
        return None
