"""Request executor factory: builds RequestExecutor from settings (no provider logic in composition)."""
from __future__ import annotations

import httpx

from steamweb.app.config.settings import Settings
from steamweb.app.infrastructure.http.httpx_executor import HttpxRequestExecutor, RequestTimeout
from steamweb.app.ports.request_executor import RequestExecutor


def create_request_executor(settings: Settings) -> RequestExecutor:
    backend = settings.executor_backend.strip().lower()

    if backend == "httpx":
        headers: dict[str, str] = {}
        if settings.request_user_agent:
            headers["User-Agent"] = settings.request_user_agent
        return HttpxRequestExecutor(
            httpx.AsyncClient(headers=headers),
            RequestTimeout(
                connect_seconds=settings.request_connect_timeout_seconds,
                read_seconds=settings.request_read_timeout_seconds,
            ),
            follow_redirects=settings.follow_redirects,
        )

    raise ValueError(f"Unsupported executor backend: {backend}")
