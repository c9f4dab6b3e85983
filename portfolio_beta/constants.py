"""
Core Constants Module

Provider identifiers, endpoint templates and holding status labels shared by
the adapters, the aggregator and the result layer.
"""

# Price Providers
# ===============

PROVIDER_STOOQ = "stooq"
PROVIDER_YAHOO = "yahoo"

VALID_PROVIDERS = (PROVIDER_YAHOO, PROVIDER_STOOQ)

STOOQ_DEFAULT_SUFFIX = ".us"   # US listing suffix appended to bare tickers

STOOQ_URL_TEMPLATE = "https://stooq.com/q/d/l/?s={symbol}&i=d"
YAHOO_URL_TEMPLATE = (
    "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
    "?range=2y&interval=1d&events=history"
)

# Holding Status
# ==============
# Per-holding computation states: pending -> (cache_hit | fetching) -> (computed | failed)

STATUS_PENDING = "pending"
STATUS_CACHE_HIT = "cache_hit"
STATUS_FETCHING = "fetching"
STATUS_COMPUTED = "computed"
STATUS_FAILED = "failed"
