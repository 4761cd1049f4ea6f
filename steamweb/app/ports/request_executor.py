"""Request executor port: contract for performing a single web request.

The retrying fetcher depends on this port; infrastructure (e.g. httpx)
implements it. Only `TransientRequestError` is treated as retryable.
"""
from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable


class RequestError(Exception):
    """Base for request executor failures. Not retried unless transient."""


class TransientRequestError(RequestError):
    """Raised on network-level failures (connect, timeout, 5xx, 429)."""


class RequestStatusError(RequestError):
    """Raised when the server answers with a non-retryable error status."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class StreamConsumedError(RuntimeError):
    """Raised when a response stream is read more than once."""


@runtime_checkable
class ResponseStream(Protocol):
    """Open, readable, non-restartable response body."""

    async def read(self) -> str:
        """Drain the remaining body as text. Raise StreamConsumedError on second call."""
        ...

    async def close(self) -> None: ...


@runtime_checkable
class Response(Protocol):
    """Minimal view of a response: only the body stream is exposed."""

    def get_response_stream(self) -> ResponseStream: ...


@runtime_checkable
class RequestExecutor(Protocol):
    """Port: perform one web request. Implementations live in infrastructure."""

    async def handle_web_request(
        self,
        url: str,
        method: str,
        data: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
        xhr: bool = True,
        referer: str = "",
    ) -> Response:
        """Perform the request; raise TransientRequestError or RequestError on failure."""
        ...

    async def close(self) -> None:
        """Release resources (e.g. connection pool). No-op allowed if nothing to close."""
        ...
