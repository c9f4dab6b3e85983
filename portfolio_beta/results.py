"""Result objects for single-symbol and portfolio beta runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from portfolio_beta._vendor import make_json_safe
from portfolio_beta.beta_utils import is_reliable
from portfolio_beta.constants import STATUS_CACHE_HIT, STATUS_PENDING
from portfolio_beta.data_objects import BetaEstimate


@dataclass
class HoldingBeta:
    """Outcome of one holding within a batch."""

    ticker: str
    symbol: str
    weight: float
    beta: Optional[float] = None
    sample_size: int = 0
    served_from_cache: bool = False
    failed: bool = False
    error: Optional[str] = None
    status: str = STATUS_PENDING

    @property
    def contribution(self) -> float:
        """Weighted beta; undefined betas contribute zero."""
        return self.weight * self.beta if self.beta is not None else 0.0

    @property
    def estimate(self) -> BetaEstimate:
        return BetaEstimate(beta=self.beta, sample_size=self.sample_size)

    @property
    def reliable(self) -> bool:
        return not self.failed and is_reliable(self.estimate)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticker": self.ticker,
            "symbol": self.symbol,
            "weight": self.weight,
            "beta": self.beta,
            "sample_size": self.sample_size,
            "served_from_cache": self.served_from_cache,
            "failed": self.failed,
            "reliable": self.reliable,
            "error": self.error,
            "status": self.status,
            "contribution": self.contribution,
        }


@dataclass
class PortfolioResult:
    """
    Per-holding betas plus the weighted portfolio beta.

    ``portfolio_beta = sum(weight_i * beta_i)`` over all holdings, with
    undefined betas counted as zero and their weight left in the basis.
    """

    per_holding: List[HoldingBeta]
    portfolio_beta: float
    provider: str = ""
    market_symbol: str = ""
    lookback_days: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_holdings(cls, per_holding: List[HoldingBeta], **kwargs: Any) -> "PortfolioResult":
        total = sum(h.contribution for h in per_holding)
        return cls(per_holding=per_holding, portfolio_beta=total, **kwargs)

    @property
    def failed_holdings(self) -> List[HoldingBeta]:
        return [h for h in self.per_holding if h.failed]

    @property
    def unreliable_holdings(self) -> List[HoldingBeta]:
        return [h for h in self.per_holding if not h.reliable]

    @property
    def undefined_weight(self) -> float:
        """Share of the portfolio whose beta is undefined (counted as zero)."""
        return sum(h.weight for h in self.per_holding if h.beta is None)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "portfolio_beta": self.portfolio_beta,
            "holdings": len(self.per_holding),
            "failed": len(self.failed_holdings),
            "unreliable": len(self.unreliable_holdings),
            "served_from_cache": sum(1 for h in self.per_holding if h.served_from_cache),
            "undefined_weight": self.undefined_weight,
        }

    def to_api_response(self) -> Dict[str, Any]:
        return make_json_safe({
            "portfolio_beta": self.portfolio_beta,
            "provider": self.provider,
            "market_symbol": self.market_symbol,
            "lookback_days": self.lookback_days,
            "per_holding": [h.to_dict() for h in self.per_holding],
            "summary": self.get_summary(),
            "metadata": self.metadata,
        })

    def to_cli_report(self) -> str:
        """Plain-text table, largest weight first, with a portfolio total row."""
        rows = sorted(self.per_holding, key=lambda h: h.weight, reverse=True)
        width = max([len("Portfolio")] + [len(h.ticker) for h in rows])

        lines = [
            f"Portfolio beta vs {self.market_symbol} ({self.provider}, {self.lookback_days}d lookback)",
            "",
            f"{'Ticker':<{width}}  {'Weight':>7}  {'Beta':>7}  {'w×β':>7}  {'N':>5}  Note",
            "-" * (width + 44),
        ]
        for h in rows:
            beta = f"{h.beta:.2f}" if h.beta is not None else "-"
            contrib = f"{h.contribution:.3f}" if h.beta is not None else "-"
            if h.failed:
                note = f"FAILED ({h.error})" if h.error else "FAILED"
            elif h.status == STATUS_CACHE_HIT:
                note = "cached"
            else:
                note = ""
            if not h.failed and h.beta is not None and not h.reliable:
                note = f"{note} low-n".strip()
            lines.append(
                f"{h.ticker:<{width}}  {h.weight:>7.1%}  {beta:>7}  {contrib:>7}  {h.sample_size:>5}  {note}".rstrip()
            )
        lines.append("-" * (width + 44))
        lines.append(f"{'Portfolio':<{width}}  {1:>7.0%}  {'':>7}  {self.portfolio_beta:>7.3f}")
        return "\n".join(lines)


@dataclass
class StockBetaResult:
    """Single symbol against a market proxy."""

    ticker: str
    symbol: str
    market_symbol: str
    provider: str
    lookback_days: int
    beta: Optional[float]
    sample_size: int
    served_from_cache: bool = False

    @property
    def reliable(self) -> bool:
        return is_reliable(BetaEstimate(beta=self.beta, sample_size=self.sample_size))

    def to_api_response(self) -> Dict[str, Any]:
        payload = make_json_safe(self)
        payload["reliable"] = self.reliable
        return payload

    def to_cli_report(self) -> str:
        beta = f"{self.beta:.4f}" if self.beta is not None else "undefined"
        tags = []
        if self.served_from_cache:
            tags.append("cached")
        if not self.reliable:
            tags.append("unreliable")
        suffix = f"  [{', '.join(tags)}]" if tags else ""
        return (
            f"{self.ticker} ({self.symbol}) beta vs {self.market_symbol} "
            f"[{self.provider}, {self.lookback_days}d]: {beta}  n={self.sample_size}{suffix}"
        )
