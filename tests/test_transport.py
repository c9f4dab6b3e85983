"""Tests for the requests-backed transport."""

import pytest
import requests

from portfolio_beta.exceptions import NetworkFailure
from portfolio_beta.transport import RequestsTransport, Transport


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, outcome):
        self.outcome = outcome
        self.requests = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.requests.append({"url": url, "headers": headers, "timeout": timeout})
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    def close(self):
        self.closed = True


@pytest.mark.asyncio
async def test_returns_body_and_sends_headers():
    session = FakeSession(FakeResponse(200, "Date,Close\n"))
    transport = RequestsTransport(timeout=5, session=session, user_agent="beta-test")

    body = await transport.get_text("https://example.test/a")

    assert body == "Date,Close\n"
    (sent,) = session.requests
    assert sent["timeout"] == 5.0
    assert sent["headers"]["User-Agent"] == "beta-test"
    assert isinstance(transport, Transport)


@pytest.mark.asyncio
async def test_non_2xx_status():
    transport = RequestsTransport(session=FakeSession(FakeResponse(503, "busy")))

    with pytest.raises(NetworkFailure) as exc_info:
        await transport.get_text("https://example.test/b")

    assert exc_info.value.status_code == 503
    assert exc_info.value.request_url == "https://example.test/b"
    assert not exc_info.value.is_timeout()


@pytest.mark.asyncio
async def test_timeout():
    transport = RequestsTransport(session=FakeSession(requests.Timeout("slow")))

    with pytest.raises(NetworkFailure) as exc_info:
        await transport.get_text("https://example.test/c")

    assert exc_info.value.is_timeout()
    assert isinstance(exc_info.value.original_error, requests.Timeout)


@pytest.mark.asyncio
async def test_connection_error():
    transport = RequestsTransport(session=FakeSession(requests.ConnectionError("refused")))

    with pytest.raises(NetworkFailure, match="Network Error"):
        await transport.get_text("https://example.test/d")


def test_close_closes_session():
    session = FakeSession(FakeResponse())
    RequestsTransport(session=session).close()
    assert session.closed
