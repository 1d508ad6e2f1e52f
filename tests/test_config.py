from __future__ import annotations

import pytest

from company_registry.core.config import Config


def test_allowed_countries_from_env(monkeypatch):
    monkeypatch.setenv("ACL_ALLOWED_COUNTRIES", "Cyprus, Greece ,,Malta")
    assert Config.allowed_countries() == frozenset({"Cyprus", "Greece", "Malta"})


def test_allowed_countries_default(monkeypatch):
    monkeypatch.delenv("ACL_ALLOWED_COUNTRIES", raising=False)
    assert Config.allowed_countries() == frozenset({"Cyprus"})


def test_allowed_origins_are_deduplicated(monkeypatch):
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "http://a.test,http://b.test,http://a.test")
    assert Config.allowed_origins(["http://b.test", "http://c.test"]) == [
        "http://a.test",
        "http://b.test",
        "http://c.test",
    ]


def test_validate_requires_credentials_outside_development(monkeypatch):
    monkeypatch.setattr(Config, "ENVIRONMENT", "production")
    monkeypatch.setattr(Config, "SUPABASE_URL", "")
    with pytest.raises(ValueError, match="SUPABASE_URL"):
        Config.validate()


def test_validate_skips_credentials_in_development(monkeypatch):
    monkeypatch.setattr(Config, "ENVIRONMENT", "development")
    Config.validate()
