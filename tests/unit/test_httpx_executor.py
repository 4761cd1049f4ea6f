"""Unit tests for HttpxRequestExecutor using httpx.MockTransport (no network)."""
from __future__ import annotations

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from steamweb.app.domain.retrying_fetcher import RetryingFetcher
from steamweb.app.infrastructure.http.httpx_executor import HttpxRequestExecutor, RequestTimeout
from steamweb.app.ports.request_executor import (
    RequestError,
    RequestStatusError,
    StreamConsumedError,
    TransientRequestError,
)

INVENTORY_URL = "https://steamcommunity.com/inventory/76561197960287930/730/2"
TIMEOUT = RequestTimeout(connect_seconds=1.0, read_seconds=2.0)


class RecordingHandler:
    """MockTransport handler that replays scripted responses and records requests."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self._responses)) - 1
        outcome = self._responses[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class NotGzipStream(httpx.AsyncByteStream):
    """Streamed body that claims gzip encoding but is plain bytes."""

    async def __aiter__(self):
        yield b"this is not gzip"


def _executor(handler: RecordingHandler) -> HttpxRequestExecutor:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxRequestExecutor(client, TIMEOUT)


async def _fetch_text(executor: HttpxRequestExecutor, *args, **kwargs) -> str:
    try:
        response = await executor.handle_web_request(*args, **kwargs)
        return await response.get_response_stream().read()
    finally:
        await executor.close()


def test_get_sends_data_as_query_and_request_headers():
    handler = RecordingHandler(httpx.Response(200, text='{"success": 1}'))
    executor = _executor(handler)

    text = asyncio.run(
        _fetch_text(
            executor,
            INVENTORY_URL,
            "get",
            {"l": "english", "count": "75"},
            {"sessionid": "abc", "steamLoginSecure": "xyz"},
            True,
            "https://steamcommunity.com/",
        )
    )

    assert text == '{"success": 1}'
    request = handler.requests[0]
    assert request.method == "GET"
    assert parse_qs(request.url.query.decode()) == {"l": ["english"], "count": ["75"]}
    assert request.headers["X-Requested-With"] == "XMLHttpRequest"
    assert request.headers["Referer"] == "https://steamcommunity.com/"
    assert request.headers["Cookie"] == "sessionid=abc; steamLoginSecure=xyz"


def test_post_sends_data_as_form_body_without_optional_headers():
    handler = RecordingHandler(httpx.Response(200, text="ok"))
    executor = _executor(handler)

    asyncio.run(_fetch_text(executor, "https://steamcommunity.com/tradeoffer/new/send", "POST", {"partner": "42"}, None, False, ""))

    request = handler.requests[0]
    assert request.method == "POST"
    assert parse_qs(request.content.decode()) == {"partner": ["42"]}
    assert "X-Requested-With" not in request.headers
    assert "Referer" not in request.headers
    assert "Cookie" not in request.headers


def test_response_stream_is_not_drained_until_read_and_reads_once():
    handler = RecordingHandler(httpx.Response(200, text="body"))
    executor = _executor(handler)

    async def run() -> None:
        try:
            response = await executor.handle_web_request(INVENTORY_URL, "GET")
            stream = response.get_response_stream()
            assert await stream.read() == "body"
            with pytest.raises(StreamConsumedError):
                await stream.read()
        finally:
            await executor.close()

    asyncio.run(run())


def test_closed_stream_cannot_be_read():
    handler = RecordingHandler(httpx.Response(200, text="body"))
    executor = _executor(handler)

    async def run() -> None:
        try:
            stream = (await executor.handle_web_request(INVENTORY_URL, "GET")).get_response_stream()
            await stream.close()
            with pytest.raises(StreamConsumedError):
                await stream.read()
        finally:
            await executor.close()

    asyncio.run(run())


@pytest.mark.parametrize("status_code", [500, 502, 503, 429])
def test_server_errors_and_throttling_are_transient(status_code):
    handler = RecordingHandler(httpx.Response(status_code, text="busy"))
    executor = _executor(handler)

    with pytest.raises(TransientRequestError, match=str(status_code)):
        asyncio.run(_fetch_text(executor, INVENTORY_URL, "GET"))


@pytest.mark.parametrize("status_code", [400, 401, 403, 404])
def test_client_errors_are_not_transient(status_code):
    handler = RecordingHandler(httpx.Response(status_code, text="nope"))
    executor = _executor(handler)

    with pytest.raises(RequestStatusError) as exc_info:
        asyncio.run(_fetch_text(executor, INVENTORY_URL, "GET"))

    assert exc_info.value.status_code == status_code
    assert not isinstance(exc_info.value, TransientRequestError)


@pytest.mark.parametrize(
    "error",
    [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("read timed out"),
        httpx.RemoteProtocolError("server disconnected"),
    ],
)
def test_transport_errors_are_transient(error):
    handler = RecordingHandler(error)
    executor = _executor(handler)

    with pytest.raises(TransientRequestError) as exc_info:
        asyncio.run(_fetch_text(executor, INVENTORY_URL, "GET"))

    assert exc_info.value.__cause__ is error


def test_retry_fetch_recovers_from_transient_status_over_httpx():
    handler = RecordingHandler(httpx.Response(503), httpx.Response(200, text="Response From Steam"))
    executor = _executor(handler)
    fetcher = RetryingFetcher(executor)

    async def run() -> str | None:
        try:
            return await fetcher.retry_fetch(0, 3, INVENTORY_URL, "GET")
        finally:
            await executor.close()

    assert asyncio.run(run()) == "Response From Steam"
    assert len(handler.requests) == 2


def test_retry_fetch_gives_up_on_persistent_transport_errors():
    handler = RecordingHandler(httpx.ConnectError("connection refused"))
    executor = _executor(handler)
    fetcher = RetryingFetcher(executor)

    async def run() -> str | None:
        try:
            return await fetcher.retry_fetch(0, 2, INVENTORY_URL, "GET")
        finally:
            await executor.close()

    assert asyncio.run(run()) is None
    assert len(handler.requests) == 2


def test_close_closes_underlying_client():
    client = httpx.AsyncClient(transport=httpx.MockTransport(RecordingHandler(httpx.Response(200))))
    executor = HttpxRequestExecutor(client, TIMEOUT)

    asyncio.run(executor.close())

    assert client.is_closed


def test_corrupt_encoded_body_is_mapped_to_request_error():
    handler = RecordingHandler(
        httpx.Response(200, headers={"Content-Encoding": "gzip"}, stream=NotGzipStream())
    )
    executor = _executor(handler)
    fetcher = RetryingFetcher(executor)

    async def run() -> str | None:
        try:
            return await fetcher.retry_fetch(0, 3, INVENTORY_URL, "GET")
        finally:
            await executor.close()

    with pytest.raises(RequestError) as exc_info:
        asyncio.run(run())

    assert not isinstance(exc_info.value, TransientRequestError)
    assert isinstance(exc_info.value.__cause__, httpx.DecodingError)
    assert len(handler.requests) == 1
