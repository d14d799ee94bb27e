# tests/test_settings.py
"""Tests for environment-driven settings."""

import pytest

from ethos_gate.core.settings import Settings


def test_comma_separated_lists_are_split(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ETHOS_API_URLS", "https://a.example/api, https://b.example/api")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://app.example,https://admin.example")

    loaded = Settings()  # type: ignore[call-arg]

    assert loaded.ethos_api_urls == ["https://a.example/api", "https://b.example/api"]
    assert loaded.allowed_origins == ["https://app.example", "https://admin.example"]


def test_json_lists_are_still_accepted(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ALLOWED_ORIGINS", '["https://app.example"]')

    assert Settings().allowed_origins == ["https://app.example"]  # type: ignore[call-arg]


def test_empty_secret_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_SECRET", "   ")

    with pytest.raises(ValueError):
        Settings()  # type: ignore[call-arg]
