"""
Runtime configuration for Neon Grid.

Values default to the game's tuning constants and can be overridden
through environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

# Where defeated players wake up (Neon Plaza)
DEFAULT_RESPAWN_NODE = "122.124.10.10"


@dataclass
class GameConfig:
    """
    Tunable game settings.

    Configuration via environment variables:
        NEON_RESPAWN_NODE: Location id players respawn at after defeat
        NEON_FLEE_CHANCE: Probability (0-1) that fleeing succeeds (default: 0.5)
        NEON_DEFAULT_MOB_XP: XP awarded for mobs without their own value (default: 10)
        NEON_STUN_DELAY_PER_ROUND: Delay added per stun round (default: 2)
        NEON_SESSION_TTL: Idle seconds before an event session expires (unset: never)
        NEON_LOG_LEVEL: Logging level name (default: INFO)
    """

    respawn_node: str = DEFAULT_RESPAWN_NODE
    flee_chance: float = 0.5
    default_mob_experience: int = 10
    stun_delay_per_round: int = 2
    session_ttl_seconds: float | None = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Override defaults from the environment."""
        if os.getenv("NEON_RESPAWN_NODE"):
            self.respawn_node = os.getenv("NEON_RESPAWN_NODE", self.respawn_node)

        if os.getenv("NEON_FLEE_CHANCE"):
            self.flee_chance = float(os.getenv("NEON_FLEE_CHANCE", self.flee_chance))

        if os.getenv("NEON_DEFAULT_MOB_XP"):
            self.default_mob_experience = int(
                os.getenv("NEON_DEFAULT_MOB_XP", self.default_mob_experience)
            )

        if os.getenv("NEON_STUN_DELAY_PER_ROUND"):
            self.stun_delay_per_round = int(
                os.getenv("NEON_STUN_DELAY_PER_ROUND", self.stun_delay_per_round)
            )

        if os.getenv("NEON_SESSION_TTL"):
            self.session_ttl_seconds = float(os.getenv("NEON_SESSION_TTL", "0")) or None

        if os.getenv("NEON_LOG_LEVEL"):
            self.log_level = os.getenv("NEON_LOG_LEVEL", self.log_level).upper()

        if not 0.0 <= self.flee_chance <= 1.0:
            raise ValueError(f"flee_chance must be between 0 and 1, got {self.flee_chance}")


def configure_logging(config: GameConfig | None = None) -> None:
    """Apply the configured log level to the root logger."""
    config = config or GameConfig()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
