"""Logging surface.

All package modules log through ``portfolio_logger`` and the instrumentation
decorators defined here. The decorators accept both plain and ``async``
callables.
"""

from __future__ import annotations

import functools
import inspect
import logging
import time
from typing import Any, Callable


portfolio_logger = logging.getLogger("portfolio_beta")

_SEVERITY_LEVELS = {
    "low": logging.INFO,
    "medium": logging.WARNING,
    "high": logging.ERROR,
    "critical": logging.CRITICAL,
}


def _wrap(
    fn: Callable[..., Any],
    before: Callable[[], Any],
    after: Callable[[Any], None],
    on_error: Callable[[BaseException], None],
) -> Callable[..., Any]:
    if inspect.iscoroutinefunction(fn):

        @functools.wraps(fn)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            state = before()
            try:
                result = await fn(*args, **kwargs)
            except Exception as exc:
                on_error(exc)
                raise
            after(state)
            return result

        return async_wrapper

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        state = before()
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            on_error(exc)
            raise
        after(state)
        return result

    return wrapper


def log_operation(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Log start/finish of ``name`` at DEBUG level."""

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        def before() -> None:
            portfolio_logger.debug("operation %s started", name)

        def after(_state: Any) -> None:
            portfolio_logger.debug("operation %s completed", name)

        def on_error(exc: BaseException) -> None:
            portfolio_logger.debug("operation %s aborted: %s", name, type(exc).__name__)

        return _wrap(fn, before, after, on_error)

    return deco


def log_timing(threshold: float = 0.0) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Warn when the wrapped call takes longer than ``threshold`` seconds."""

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        def before() -> float:
            return time.perf_counter()

        def after(started: float) -> None:
            elapsed = time.perf_counter() - started
            if threshold and elapsed > threshold:
                portfolio_logger.warning("slow operation %s: %.2fs (threshold %.2fs)", fn.__qualname__, elapsed, threshold)
            else:
                portfolio_logger.debug("%s took %.3fs", fn.__qualname__, elapsed)

        def on_error(_exc: BaseException) -> None:
            return None

        return _wrap(fn, before, after, on_error)

    return deco


def log_errors(severity: str = "medium") -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Log exceptions escaping the wrapped call, then re-raise them."""
    level = _SEVERITY_LEVELS.get(severity, logging.WARNING)

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        def before() -> None:
            return None

        def after(_state: Any) -> None:
            return None

        def on_error(exc: BaseException) -> None:
            portfolio_logger.log(level, "%s failed [%s]: %s", fn.__qualname__, severity, exc)

        return _wrap(fn, before, after, on_error)

    return deco


def log_portfolio_operation(
    event: str,
    details: dict[str, Any] | None = None,
    execution_time: float | None = None,
) -> dict[str, Any]:
    if details:
        portfolio_logger.info("[%s] %s", event, details)
    else:
        portfolio_logger.info("[%s]", event)
    return {"event": event, "details": details or {}, "execution_time": execution_time}


def log_critical_alert(
    alert_type: str,
    severity: str,
    message: str,
    action: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    portfolio_logger.warning("critical_alert[%s/%s]: %s %s %s", alert_type, severity, message, action or "", details or {})
