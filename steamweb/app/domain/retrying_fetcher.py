"""Retrying fetcher: wraps a RequestExecutor with bounded, fixed-delay retries.

Uses the request executor port; the executor is built in the composition root.
Only TransientRequestError is retried. Every other error propagates unchanged and
aborts the retry loop. Running out of attempts is not an error: the retry
variants return None.
"""
from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any, Awaitable, Callable, Mapping, TypeVar

from loguru import logger

from steamweb.app.core import SERVICE_NAME
from steamweb.app.core.backoff import RetryCancelled, fixed_delay, to_seconds
from steamweb.app.ports.request_executor import (
    RequestExecutor,
    Response,
    ResponseStream,
    TransientRequestError,
)

T = TypeVar("T")


class FetchCancelledError(Exception):
    """Raised when the caller's cancel event fires during a retry call."""


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class RetryingFetcher:
    """Fault-tolerant access to a single-request executor.

    `fetch` and `fetch_stream` make exactly one request. `retry_fetch` and
    `retry_fetch_stream` make up to max_attempts requests, waiting `delay`
    between attempts that failed transiently, and return None once the budget
    is spent. With max_attempts <= 0 no request is made at all.
    """

    def __init__(self, executor: RequestExecutor) -> None:
        self._executor = executor

    async def request(
        self,
        url: str,
        method: str,
        data: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
        xhr: bool = True,
        referer: str = "",
    ) -> Response:
        return await self._executor.handle_web_request(url, method, data, cookies, xhr, referer)

    async def fetch(
        self,
        url: str,
        method: str,
        data: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
        xhr: bool = True,
        referer: str = "",
    ) -> str:
        response = await self.request(url, method, data, cookies, xhr, referer)
        return await response.get_response_stream().read()

    async def fetch_stream(
        self,
        url: str,
        method: str,
        data: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
        xhr: bool = True,
        referer: str = "",
    ) -> ResponseStream:
        response = await self.request(url, method, data, cookies, xhr, referer)
        return response.get_response_stream()

    async def retry_fetch(
        self,
        delay: float | timedelta,
        max_attempts: int,
        url: str,
        method: str,
        data: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
        xhr: bool = True,
        referer: str = "",
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> str | None:
        return await self._retry(
            lambda: self.fetch(url, method, data, cookies, xhr, referer),
            delay,
            max_attempts,
            url=url,
            method=method,
            cancel_event=cancel_event,
        )

    async def retry_fetch_stream(
        self,
        delay: float | timedelta,
        max_attempts: int,
        url: str,
        method: str,
        data: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
        xhr: bool = True,
        referer: str = "",
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ResponseStream | None:
        return await self._retry(
            lambda: self.fetch_stream(url, method, data, cookies, xhr, referer),
            delay,
            max_attempts,
            url=url,
            method=method,
            cancel_event=cancel_event,
        )

    async def _retry(
        self,
        operation: Callable[[], Awaitable[T]],
        delay: float | timedelta,
        max_attempts: int,
        *,
        url: str,
        method: str,
        cancel_event: asyncio.Event | None,
    ) -> T | None:
        delay_seconds = to_seconds(delay)
        if max_attempts <= 0:
            _log("fetch_retry_skipped", url=url, method=method, max_attempts=max_attempts)
            return None

        attempt = 0
        try:
            async for attempt in fixed_delay(delay_seconds, max_attempts, cancel_event=cancel_event):
                _log("fetch_attempt", url=url, method=method, attempt=attempt, max_attempts=max_attempts)
                try:
                    result = await self._attempt(operation, cancel_event)
                except TransientRequestError as exc:
                    _log(
                        "fetch_transient_failure",
                        url=url,
                        method=method,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        error=str(exc),
                    )
                    continue
                _log("fetch_succeeded", url=url, method=method, attempt=attempt)
                return result
        except RetryCancelled as exc:
            _log("fetch_cancelled", url=url, method=method, attempt=attempt)
            raise FetchCancelledError(f"fetch of {url} cancelled after {attempt} attempt(s)") from exc

        _log("fetch_retry_exhausted", url=url, method=method, attempts=attempt, delay_seconds=delay_seconds)
        return None

    async def _attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        cancel_event: asyncio.Event | None,
    ) -> T:
        if cancel_event is None:
            return await operation()
        if cancel_event.is_set():
            raise RetryCancelled()

        task = asyncio.ensure_future(operation())
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task.done():
            return task.result()

        task.cancel()
        # outcome of the abandoned attempt is irrelevant once cancelled
        await asyncio.gather(task, return_exceptions=True)
        raise RetryCancelled()
