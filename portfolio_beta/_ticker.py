"""Provider-specific symbol normalization.

The same mapping is used for fetch URLs and cache keys, so ``"brk.b"``,
``" BRK.B "`` and ``"BRK.B"`` always resolve to one cache entry per provider.
"""

from __future__ import annotations

import re

from portfolio_beta.constants import PROVIDER_STOOQ, PROVIDER_YAHOO, STOOQ_DEFAULT_SUFFIX

_EXCHANGE_SUFFIX = re.compile(r"\.[a-z]{2,}$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def normalize_stooq_symbol(raw: str) -> str:
    ticker = (raw or "").strip().upper()
    if not ticker:
        raise ValueError("Cannot normalize an empty ticker")
    if _EXCHANGE_SUFFIX.search(ticker):
        return ticker.lower()
    ticker = _WHITESPACE.sub("", ticker)
    if "." in ticker:
        return ticker.lower()
    return f"{ticker.lower()}{STOOQ_DEFAULT_SUFFIX}"


def normalize_yahoo_symbol(raw: str) -> str:
    ticker = (raw or "").strip().upper()
    if not ticker:
        raise ValueError("Cannot normalize an empty ticker")
    # share classes: BRK.B -> BRK-B
    return ticker.replace(".", "-")


_NORMALIZERS = {
    PROVIDER_STOOQ: normalize_stooq_symbol,
    PROVIDER_YAHOO: normalize_yahoo_symbol,
}


def normalize_symbol(raw: str, provider: str) -> str:
    """Map a display ticker to the form ``provider`` expects."""
    try:
        normalizer = _NORMALIZERS[provider]
    except KeyError:
        raise KeyError(f"Unknown price provider: {provider!r}") from None
    return normalizer(raw)
