"""Tests for runtime configuration."""

from __future__ import annotations

import pytest

from src.config import DEFAULT_RESPAWN_NODE, GameConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "NEON_RESPAWN_NODE",
        "NEON_FLEE_CHANCE",
        "NEON_DEFAULT_MOB_XP",
        "NEON_STUN_DELAY_PER_ROUND",
        "NEON_SESSION_TTL",
        "NEON_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestGameConfig:
    """Tests for GameConfig."""

    def test_defaults(self):
        config = GameConfig()
        assert config.respawn_node == DEFAULT_RESPAWN_NODE
        assert config.flee_chance == 0.5
        assert config.default_mob_experience == 10
        assert config.stun_delay_per_round == 2
        assert config.session_ttl_seconds is None
        assert config.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch):
        """Test every setting can come from the environment."""
        monkeypatch.setenv("NEON_RESPAWN_NODE", "room-z")
        monkeypatch.setenv("NEON_FLEE_CHANCE", "0.25")
        monkeypatch.setenv("NEON_DEFAULT_MOB_XP", "15")
        monkeypatch.setenv("NEON_STUN_DELAY_PER_ROUND", "3")
        monkeypatch.setenv("NEON_SESSION_TTL", "600")
        monkeypatch.setenv("NEON_LOG_LEVEL", "debug")

        config = GameConfig()

        assert config.respawn_node == "room-z"
        assert config.flee_chance == 0.25
        assert config.default_mob_experience == 15
        assert config.stun_delay_per_round == 3
        assert config.session_ttl_seconds == 600
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("value", ["1.5", "-0.1"])
    def test_invalid_flee_chance(self, monkeypatch, value):
        """Test a flee chance outside 0-1 is rejected."""
        monkeypatch.setenv("NEON_FLEE_CHANCE", value)
        with pytest.raises(ValueError, match="flee_chance"):
            GameConfig()

    def test_explicit_values(self):
        config = GameConfig(respawn_node="lobby", flee_chance=1.0)
        assert config.respawn_node == "lobby"
        assert config.flee_chance == 1.0
