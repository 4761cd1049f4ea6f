"""Concrete request executor using httpx (injected where RequestExecutor is needed)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import httpx

from steamweb.app.ports.request_executor import (
    RequestError,
    RequestExecutor,
    RequestStatusError,
    Response,
    ResponseStream,
    StreamConsumedError,
    TransientRequestError,
)

# Methods whose data travels in the query string rather than the body.
_QUERY_METHODS = frozenset({"GET", "HEAD", "DELETE", "OPTIONS"})
_TRANSIENT_STATUS_CODES = frozenset({429})


@dataclass(frozen=True)
class RequestTimeout:
    """Connect and read timeouts in seconds."""

    connect_seconds: float
    read_seconds: float


def _is_transient_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in _TRANSIENT_STATUS_CODES


class _HttpxResponseStream:
    """Adapts a streamed httpx.Response body to the ResponseStream protocol."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._consumed = False

    async def read(self) -> str:
        if self._consumed:
            raise StreamConsumedError(f"response stream for {self._response.url} already read")
        self._consumed = True
        try:
            await self._response.aread()
        except httpx.TransportError as exc:
            raise TransientRequestError(
                f"reading response from {self._response.url} failed: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RequestError(
                f"reading response from {self._response.url} failed: {exc}"
            ) from exc
        finally:
            await self._response.aclose()
        return self._response.text

    async def close(self) -> None:
        self._consumed = True
        await self._response.aclose()


class _HttpxResponseAdapter:
    """Adapts httpx.Response to the Response protocol."""

    def __init__(self, response: httpx.Response) -> None:
        self._stream = _HttpxResponseStream(response)

    def get_response_stream(self) -> ResponseStream:
        return self._stream


class HttpxRequestExecutor(RequestExecutor):
    """RequestExecutor implementation using httpx.AsyncClient."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: RequestTimeout,
        *,
        follow_redirects: bool = True,
    ) -> None:
        self._client = client
        self._timeout = httpx.Timeout(
            connect=timeout.connect_seconds,
            read=timeout.read_seconds,
            write=timeout.read_seconds,
            pool=timeout.connect_seconds,
        )
        self._follow_redirects = follow_redirects

    def _build_request(
        self,
        url: str,
        method: str,
        data: Mapping[str, str] | None,
        cookies: Mapping[str, str] | None,
        xhr: bool,
        referer: str,
    ) -> httpx.Request:
        verb = method.strip().upper()
        headers: dict[str, str] = {}
        if xhr:
            headers["X-Requested-With"] = "XMLHttpRequest"
        if referer:
            headers["Referer"] = referer
        if cookies:
            headers["Cookie"] = "; ".join(f"{name}={value}" for name, value in cookies.items())

        if verb in _QUERY_METHODS:
            return self._client.build_request(
                verb, url, params=dict(data or {}), headers=headers, timeout=self._timeout
            )
        return self._client.build_request(
            verb, url, data=dict(data or {}), headers=headers, timeout=self._timeout
        )

    async def handle_web_request(
        self,
        url: str,
        method: str,
        data: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
        xhr: bool = True,
        referer: str = "",
    ) -> Response:
        request = self._build_request(url, method, data, cookies, xhr, referer)
        try:
            response = await self._client.send(
                request,
                stream=True,
                follow_redirects=self._follow_redirects,
            )
        except httpx.TransportError as exc:
            raise TransientRequestError(f"{request.method} {url} failed: {exc}") from exc
        except httpx.HTTPError as exc:
            raise RequestError(f"{request.method} {url} failed: {exc}") from exc

        status_code = response.status_code
        if status_code >= 400:
            await response.aclose()
            message = f"http status {status_code} for {request.method} {response.url}"
            if _is_transient_status(status_code):
                raise TransientRequestError(message)
            raise RequestStatusError(message, status_code=status_code)

        return _HttpxResponseAdapter(response)

    async def close(self) -> None:
        await self._client.aclose()
