"""Fetcher composition root: build and lifecycle-manage concrete dependencies.

Composition may: import concrete classes, call factories, store interface types,
manage high-level lifecycle.
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from steamweb.app.config.settings import Settings
from steamweb.app.core import SERVICE_NAME
from steamweb.app.domain.models import RetryPolicy
from steamweb.app.domain.retrying_fetcher import RetryingFetcher
from steamweb.app.infrastructure.http.factory import create_request_executor
from steamweb.app.ports.request_executor import RequestExecutor


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class FetcherDependencies:
    """Holds the wired executor and fetcher and their lifecycle."""

    def __init__(self, *, settings: Settings, executor: RequestExecutor | None = None) -> None:
        self._settings = settings
        self._injected_executor = executor
        self._executor: RequestExecutor | None = None
        self._fetcher: RetryingFetcher | None = None
        self._retry_policy = RetryPolicy(
            delay_seconds=settings.retry_delay_seconds,
            max_attempts=settings.retry_max_attempts,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    @property
    def fetcher(self) -> RetryingFetcher:
        if self._fetcher is None:
            raise RuntimeError("fetcher is not initialized")
        return self._fetcher

    async def connect(self) -> None:
        if self._executor is None:
            if self._injected_executor is not None:
                self._executor = self._injected_executor
            else:
                self._executor = create_request_executor(self._settings)
        self._fetcher = RetryingFetcher(self._executor)
        _log(
            "fetcher_ready",
            executor=type(self._executor).__name__,
            retry_delay_seconds=self._retry_policy.delay_seconds,
            retry_max_attempts=self._retry_policy.max_attempts,
        )

    async def close(self) -> None:
        if self._executor is not None:
            try:
                await self._executor.close()
            except Exception as exc:
                logger.warning("request executor close failed: {}", exc)
            self._executor = None

        self._fetcher = None


def create_fetcher_dependencies(
    settings: Settings | None = None,
    *,
    executor: RequestExecutor | None = None,
) -> FetcherDependencies:
    return FetcherDependencies(settings=settings or Settings(), executor=executor)
