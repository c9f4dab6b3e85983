"""
Beta flag generation: an interpretive layer over ``PortfolioResult``.

Flags are structured dicts with type, severity, human-readable message and
the underlying values so consumers can tell trustworthy holdings apart from
failed or thinly sampled ones.
"""

from typing import Any, Dict, List

from portfolio_beta import config

_SEVERITY_ORDER = {"error": 0, "warning": 1, "info": 2}


def generate_flags(result) -> List[Dict[str, Any]]:
    """
    Generate ordered flags from a PortfolioResult.

    Severity levels (returned in this order):
    - "error": holding failed; its beta is undefined and counts as zero
    - "warning": beta computed from fewer observations than the reliability threshold
    - "info": cache hits and the weight share carried by undefined betas

    Args:
        result: A PortfolioResult (or any object with ``per_holding`` and
                ``undefined_weight``)

    Returns:
        List of structured flag dicts, ordered by severity.
    """
    flags: List[Dict[str, Any]] = []
    min_n = int(config.DATA_QUALITY_THRESHOLDS["min_reliable_observations"])

    for h in result.per_holding:
        if h.failed:
            flags.append(
                {
                    "type": "holding_failed",
                    "severity": "error",
                    "message": f"{h.ticker}: beta unavailable ({h.error or 'unknown error'}), counted as 0",
                    "ticker": h.ticker,
                    "error": h.error,
                    "weight": h.weight,
                }
            )
        elif h.beta is not None and not h.reliable:
            flags.append(
                {
                    "type": "low_sample_size",
                    "severity": "warning",
                    "message": f"{h.ticker}: beta {h.beta:.2f} rests on only {h.sample_size} observations (< {min_n})",
                    "ticker": h.ticker,
                    "sample_size": h.sample_size,
                    "threshold": min_n,
                }
            )

    cached = [h.ticker for h in result.per_holding if h.served_from_cache]
    if cached:
        flags.append(
            {
                "type": "served_from_cache",
                "severity": "info",
                "message": f"{len(cached)} of {len(result.per_holding)} betas served from cache",
                "tickers": cached,
            }
        )

    undefined_weight = float(result.undefined_weight)
    if undefined_weight > 0:
        flags.append(
            {
                "type": "undefined_weight",
                "severity": "info",
                "message": f"{undefined_weight:.1%} of portfolio weight has no beta and contributes 0",
                "undefined_weight": undefined_weight,
            }
        )

    flags.sort(key=lambda f: _SEVERITY_ORDER.get(f["severity"], 99))
    return flags
