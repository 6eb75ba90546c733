"""
Tests for Configuration

Tests covering:
1. Defaults without environment overrides
2. Environment overrides feed the eligibility policy
3. Engine built from configuration persists under the data directory
"""

from __future__ import annotations

from bto import MaritalStatus, User, get_engine
from utils.config import Config

ENV_VARS = (
    "HOST",
    "PORT",
    "DEBUG",
    "LOG_LEVEL",
    "BTO_SINGLE_MIN_AGE",
    "BTO_MARRIED_MIN_AGE",
    "BTO_MAX_OFFICER_SLOTS",
    "BTO_ENFORCE_WINDOW",
    "DATA_DIR",
)


def clear_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestConfig:
    """Environment-driven settings."""

    def test_defaults(self, monkeypatch):
        clear_env(monkeypatch)
        config = Config.load()
        assert config.port == 8000
        assert config.debug is False
        assert config.log_level == "INFO"
        assert config.enforce_window is True
        assert config.max_officer_slots == 10
        policy = config.eligibility_policy()
        assert (policy.single_min_age, policy.married_min_age) == (35, 21)

    def test_overrides(self, monkeypatch):
        clear_env(monkeypatch)
        monkeypatch.setenv("PORT", "9100")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("BTO_SINGLE_MIN_AGE", "30")
        monkeypatch.setenv("BTO_ENFORCE_WINDOW", "false")
        config = Config.load()
        assert config.port == 9100
        assert config.log_level == "DEBUG"
        assert config.enforce_window is False
        assert config.eligibility_policy().single_min_age == 30
        assert config.to_dict()["single_min_age"] == 30

    def test_engine_from_config(self, monkeypatch, tmp_path):
        clear_env(monkeypatch)
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        monkeypatch.setenv("BTO_MAX_OFFICER_SLOTS", "4")

        engine = get_engine()
        assert get_engine() is engine
        assert engine.context.max_officer_slots == 4
        engine.add_user(User("S3000001D", "Alice Ng", 40, MaritalStatus.SINGLE))
        assert (tmp_path / "housing.json").exists()
