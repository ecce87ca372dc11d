from __future__ import annotations

from typing import Any

import httpx
import pytest

from packages.core.job_store import JobStore
from tests.factories import WebhookRecorder


@pytest.fixture
def webhook(monkeypatch: pytest.MonkeyPatch) -> WebhookRecorder:
    recorder = WebhookRecorder()

    class _AsyncClient:
        def __init__(self, *args: Any, **kwargs: Any) -> None:  # noqa: D401 - test helper
            recorder.client_kwargs.append(kwargs)

        async def __aenter__(self) -> "_AsyncClient":
            return self

        async def __aexit__(self, *exc_info: object) -> None:
            return None

        async def post(self, url: str, **kwargs: Any) -> httpx.Response:
            recorder.calls.append({"url": url, "json": kwargs.get("json"), "headers": kwargs.get("headers")})
            return await recorder.handler(url)

    monkeypatch.setattr(httpx, "AsyncClient", _AsyncClient)
    return recorder


@pytest.fixture
def store() -> JobStore:
    return JobStore()
