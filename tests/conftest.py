# tests/conftest.py
from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from datetime import datetime
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from altcha_guard.core.settings import Settings
from altcha_guard.main import create_app
from altcha_guard.services.replay import MemoryReplayCache

TEST_HMAC_KEY = "test-hmac-key"
VALID_TOKEN = "abc123"
INVALID_TOKEN = "wrong-number"
MALFORMED_TOKEN = "not-a-payload"
EXPLODING_TOKEN = "verifier-crash"


class FakeClock:
    """Monotonic clock the tests can move forward by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChallengeProvider:
    """Records challenge requests and returns a fixed challenge body."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int, datetime]] = []
        self.error: Exception | None = None

    def create(self, hmac_key: str, max_number: int, expires: datetime) -> dict[str, Any]:
        self.calls.append((hmac_key, max_number, expires))
        if self.error is not None:
            raise self.error
        return {
            "algorithm": "SHA-256",
            "challenge": "c" * 64,
            "maxnumber": max_number,
            "salt": "s4lt?expires=1700000000",
            "signature": "5" * 64,
        }


class FakeSolutionVerifier:
    """Accepts `VALID_TOKEN` and any token listed in `valid_tokens`.

    `delay` keeps each call busy in its worker thread so concurrent requests
    overlap inside the verify step.
    """

    def __init__(self) -> None:
        self.valid_tokens = {VALID_TOKEN}
        self.calls: list[str] = []
        self.delay = 0.0
        self._lock = threading.Lock()

    def verify(self, payload: str, hmac_key: str, check_expires: bool) -> tuple[bool, str | None]:
        with self._lock:
            self.calls.append(payload)
        if self.delay:
            time.sleep(self.delay)
        assert hmac_key == TEST_HMAC_KEY
        assert check_expires is True
        if payload == EXPLODING_TOKEN:
            raise RuntimeError("internal verifier state for " + hmac_key)
        if payload == MALFORMED_TOKEN:
            return False, "Failed to parse payload"
        return payload in self.valid_tokens, None


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def replay_cache(clock: FakeClock) -> MemoryReplayCache:
    return MemoryReplayCache(clock=clock)


@pytest.fixture()
def provider() -> FakeChallengeProvider:
    return FakeChallengeProvider()


@pytest.fixture()
def verifier() -> FakeSolutionVerifier:
    return FakeSolutionVerifier()


@pytest.fixture()
def test_settings() -> Settings:
    """Provide settings isolated from the developer's environment."""
    return Settings(
        altcha_hmac_key=TEST_HMAC_KEY,
        altcha_max_number=1_000,
        expire_minutes=5,
        replay_detection_enabled=True,
        cache_backend="memory",
        cors_origin="*",
    )


@pytest.fixture()
def app(
    test_settings: Settings,
    replay_cache: MemoryReplayCache,
    provider: FakeChallengeProvider,
    verifier: FakeSolutionVerifier,
) -> FastAPI:
    return create_app(test_settings, cache=replay_cache, provider=provider, verifier=verifier)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
