"""
Exception hierarchy for beta estimation.

Per-holding faults (``DataUnavailable``, ``NetworkFailure``, ``ZeroVariance``)
are caught by the aggregator and recorded on the holding. Batch-level faults
(``PortfolioInputError`` and ``MarketDataUnavailable``) propagate to the caller.
``CacheCorruption`` never leaves ``beta_cache``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


class BetaEngineError(Exception):
    """Base exception for all portfolio_beta errors."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source_name = source_name
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "source_name": self.source_name,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.source_name:
            parts.append(f"[source={self.source_name}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class DataUnavailable(BetaEngineError):
    """Provider returned an empty, malformed or too-short price history."""


class MarketDataUnavailable(DataUnavailable):
    """The market proxy series could not be loaded; the batch cannot proceed."""


class NetworkFailure(BetaEngineError):
    """Transport-level failure: non-2xx status, timeout or connection error."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        status_code: Optional[int] = None,
        request_url: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, original_error, context)
        self.status_code = status_code
        self.request_url = request_url

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "request_url": self.request_url,
        })
        return data

    def is_timeout(self) -> bool:
        return self.status_code is None and "timeout" in self.message.lower()


class ZeroVariance(BetaEngineError):
    """Market returns have zero variance over the window; beta is undefined."""


class InsufficientOverlap(BetaEngineError):
    """Fewer aligned observations than a beta estimate needs."""


class CacheCorruption(BetaEngineError):
    """A stored cache value could not be parsed."""


class PortfolioInputError(BetaEngineError, ValueError):
    """Holdings input cannot be processed at all."""


class EmptyPortfolioError(PortfolioInputError):
    """No holdings were supplied or parsed."""


class InvalidWeightsError(PortfolioInputError):
    """Raw holding weights do not sum to a positive total."""
