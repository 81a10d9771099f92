import pytest
from pydantic import ValidationError

from altcha_guard.core.settings import DEFAULT_HMAC_KEY, Settings


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ALTCHA_HMAC_KEY",
        "PORT",
        "ALTCHA_EXPIRE_MINUTES",
        "REPLAY_DETECTION_ENABLED",
        "CACHE_BACKEND",
        "CORS_ORIGIN",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    settings = Settings(_env_file=None)

    assert settings.altcha_hmac_key == DEFAULT_HMAC_KEY
    assert settings.uses_default_hmac_key
    assert settings.port == 3000
    assert settings.expire_minutes == 5
    assert settings.ttl_seconds == 300
    assert settings.replay_detection_enabled is True
    assert settings.cache_backend == "memory"
    assert settings.cors_origin == "*"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("ALTCHA_HMAC_KEY", "s3cret")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("ALTCHA_EXPIRE_MINUTES", "20")
    monkeypatch.setenv("REPLAY_DETECTION_ENABLED", "false")
    monkeypatch.setenv("CACHE_BACKEND", "bounded")
    monkeypatch.setenv("CORS_ORIGIN", "https://example.org")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.altcha_hmac_key == "s3cret"
    assert not settings.uses_default_hmac_key
    assert settings.port == 8080
    assert settings.ttl_seconds == 1200
    assert settings.replay_detection_enabled is False
    assert settings.cache_backend == "bounded"
    assert settings.cors_origin == "https://example.org"
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("ALTCHA_EXPIRE_MINUTES", "0"),
        ("ALTCHA_MAX_NUMBER", "-5"),
        ("CACHE_SWEEP_INTERVAL_SECONDS", "0"),
        ("CACHE_BACKEND", "redis"),
    ],
)
def test_invalid_values_are_rejected(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
