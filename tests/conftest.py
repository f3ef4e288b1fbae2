from __future__ import annotations

from typing import Callable, List

import httpx
import pytest

from smartstay.config.settings import Settings

LITEAPI_TEST_KEY = "sand_test_key_1234"
GEMINI_TEST_KEY = "gemini-test-key-9876"
LITEAPI_TEST_BASE = "https://api.liteapi.test/v3.0"


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "LITEAPI_AUTH_HEADER_NAME",
        "LITEAPI_HMAC_SECRET",
        "LITEAPI_DEFAULT_COUNTRY",
        "LITEAPI_TIMEOUT_MS",
        "GEMINI_TIMEOUT_S",
        "PORT",
        "GOOGLE_API_KEY",
        "GEMINI_BASE_URL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LITEAPI_BASE_URL", LITEAPI_TEST_BASE)
    monkeypatch.setenv("LITEAPI_KEY", LITEAPI_TEST_KEY)
    monkeypatch.setenv("LITEAPI_AUTH_SCHEME", "apikey")
    monkeypatch.setenv("GEMINI_API_KEY", GEMINI_TEST_KEY)
    monkeypatch.setenv("GEMINI_MODEL", "gemini-1.5-flash")
    return monkeypatch


@pytest.fixture
def settings(env: pytest.MonkeyPatch) -> Settings:
    return Settings()


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def transport_factory() -> Callable[[Callable[[httpx.Request], httpx.Response]], RecordingTransport]:
    return RecordingTransport
