"""HTTP transport used by the price providers.

Providers depend only on the ``Transport`` protocol: one awaitable GET that
returns the response body or raises ``NetworkFailure``. ``RequestsTransport``
runs a blocking ``requests`` call in a worker thread so each fetch is a
suspension point for the event loop. There are no retries.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Optional, Protocol, runtime_checkable

import requests
from requests import Response

from portfolio_beta import config
from portfolio_beta._logging import portfolio_logger
from portfolio_beta.exceptions import NetworkFailure


@runtime_checkable
class Transport(Protocol):
    async def get_text(self, url: str) -> str: ...


class RequestsTransport:
    """Thin wrapper over a ``requests.Session`` with a per-request timeout."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self.timeout = float(timeout if timeout is not None else config.TRANSPORT_CONFIG["timeout_seconds"])
        self.session = session or requests.Session()
        self.user_agent = user_agent or config.TRANSPORT_CONFIG["user_agent"]

    @property
    def headers(self) -> Dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "*/*"}

    async def get_text(self, url: str) -> str:
        return await asyncio.to_thread(self._get, url)

    def _get(self, url: str) -> str:
        portfolio_logger.debug("GET %s", url)
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
        except requests.Timeout as exc:
            raise NetworkFailure("Timeout", request_url=url, original_error=exc) from exc
        except requests.RequestException as exc:
            raise NetworkFailure("Network Error", request_url=url, original_error=exc) from exc
        return self._handle_response(response, url)

    def _handle_response(self, response: Response, url: str) -> str:
        if not 200 <= response.status_code < 300:
            raise NetworkFailure(
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                request_url=url,
            )
        return response.text

    def close(self) -> None:
        self.session.close()
