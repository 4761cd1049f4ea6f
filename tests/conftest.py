from __future__ import annotations

import pytest

from steamweb.app.domain.retrying_fetcher import RetryingFetcher
from tests.fakes import FakeResponse, ScriptedExecutor


@pytest.fixture()
def response() -> FakeResponse:
    return FakeResponse()


@pytest.fixture()
def executor(response: FakeResponse) -> ScriptedExecutor:
    return ScriptedExecutor(response)


@pytest.fixture()
def fetcher(executor: ScriptedExecutor) -> RetryingFetcher:
    return RetryingFetcher(executor)
