"""
Effect Store Service for Neon Grid.

Tracks timed stat effects per combatant for the duration of a fight.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from src.models.move import ActiveEffect, EffectKind, ResolvedEffect

logger = logging.getLogger(__name__)


# =============================================================================
# Result Models
# =============================================================================


class RoundTickResult(BaseModel):
    """Result of ending an exchange for one combatant."""

    combatant_id: str
    effects_expired: list[str] = Field(default_factory=list)
    effects_remaining: int = 0


# =============================================================================
# Effect Store
# =============================================================================


@dataclass
class EffectStore:
    """
    Registry of active effects keyed by combatant id.

    Stuns are never stored here; they only change move delays.
    """

    effects: dict[str, list[ActiveEffect]] = field(default_factory=dict)

    def get_effects(self, combatant_id: str) -> list[ActiveEffect]:
        """Get the active effects on a combatant (empty if none)."""
        return self.effects.get(combatant_id, [])

    def add_effect(self, combatant_id: str, effect: ResolvedEffect) -> ActiveEffect | None:
        """
        Store a resolved effect against a combatant.

        Args:
            combatant_id: Combatant the effect lands on
            effect: Effect produced by an attack

        Returns:
            The stored ActiveEffect, or None for stuns
        """
        if effect.effect == EffectKind.STUN:
            return None

        rounds = effect.rounds or 1
        active = ActiveEffect(
            effect=effect.effect,
            stat=effect.stat,
            amount=effect.amount or 0,
            rounds=rounds,
            initial_rounds=rounds,
            target=effect.target,
            initiator=effect.initiator,
            message=effect.message,
        )
        self.effects.setdefault(combatant_id, []).append(active)
        logger.debug("Effect %s added to %s for %d rounds", active.effect.value, combatant_id, rounds)
        return active

    def tick_round(self, combatant_id: str) -> RoundTickResult:
        """
        Decrement every effect on a combatant and drop the expired ones.

        Called once at the end of each combat exchange.
        """
        result = RoundTickResult(combatant_id=combatant_id)
        current = self.effects.get(combatant_id)
        if not current:
            return result

        remaining: list[ActiveEffect] = []
        for effect in current:
            if effect.tick():
                result.effects_expired.append(effect.effect.value)
            else:
                remaining.append(effect)

        if remaining:
            self.effects[combatant_id] = remaining
        else:
            del self.effects[combatant_id]
        result.effects_remaining = len(remaining)
        return result

    def clear(self, combatant_id: str) -> None:
        """Remove all effects from a combatant (combat ended)."""
        self.effects.pop(combatant_id, None)
