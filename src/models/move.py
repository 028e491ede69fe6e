"""
Move and Effect Models for Neon Grid.

A move is a combat action with a delay (how many turns it takes to
charge) and optional success/failure effect lists.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class StatName(str, Enum):
    """Attributes a move can attack or defend with."""

    BODY = "body"
    REFLEXES = "reflexes"
    AGILITY = "agility"
    CHARISMA = "charisma"
    TECH = "tech"
    LUCK = "luck"


class EffectKind(str, Enum):
    """What an effect entry does when it resolves."""

    STUN = "stun"
    REDUCE_STAT = "reduceStat"
    INCREASE_STAT = "increaseStat"


class EffectTarget(str, Enum):
    """Who an effect lands on, relative to the move's user."""

    SELF = "self"
    OPPONENT = "opponent"


class MoveType(str, Enum):
    """How a move is listed in combat help."""

    ATTACK = "attack"
    SPECIAL = "special"


# =============================================================================
# Effects
# =============================================================================


class MoveEffect(BaseModel):
    """One entry of a move's success or failure list."""

    effect: EffectKind
    target: EffectTarget = EffectTarget.OPPONENT
    stat: str | None = None
    amount: int | None = None
    rounds: int = Field(default=1, ge=1)
    message: str | None = None

    @model_validator(mode="after")
    def validate_stat_modifier(self) -> MoveEffect:
        """Stat modifiers must name the stat and the amount."""
        if self.effect in (EffectKind.REDUCE_STAT, EffectKind.INCREASE_STAT):
            if self.stat is None or self.amount is None:
                raise ValueError(f"{self.effect.value} effects require stat and amount")
        return self


class ActiveEffect(BaseModel):
    """
    An effect currently applied to a combatant.

    Stored in the EffectStore under the affected combatant's id and
    decremented once per combat exchange.
    """

    effect: EffectKind
    stat: str | None = None
    amount: int = 0
    rounds: int = Field(ge=0)
    initial_rounds: int = Field(ge=0)
    target: EffectTarget = EffectTarget.OPPONENT
    initiator: str = Field(description="Display name of the combatant that caused it")
    message: str | None = None

    def tick(self) -> bool:
        """
        Advance one exchange.

        Returns:
            True if the effect has expired
        """
        self.rounds -= 1
        return self.rounds <= 0

    def modifier_for(self, stat: str) -> int:
        """Signed contribution of this effect to a stat."""
        if self.rounds <= 0 or self.stat != stat:
            return 0
        if self.effect == EffectKind.INCREASE_STAT:
            return self.amount
        if self.effect == EffectKind.REDUCE_STAT:
            return -self.amount
        return 0


class ResolvedEffect(BaseModel):
    """A move effect that resolved in an attack, stamped with its initiator."""

    effect: EffectKind
    target: EffectTarget
    stat: str | None = None
    amount: int | None = None
    rounds: int = 1
    message: str | None = None
    initiator: str


# =============================================================================
# Moves
# =============================================================================


class Move(BaseModel):
    """A combat move known by players and mobs."""

    id: str = ""
    name: str
    help_description: str = ""
    move_type: MoveType = MoveType.ATTACK
    attack_stat: str
    defence_stat: str
    delay: int = Field(default=1, ge=1, le=8, description="Turns before the move executes")
    base_power: float = 3
    scaling_factor: float = 0.6
    damage_dice: int = Field(default=6, ge=1)
    success: list[MoveEffect] | None = None
    failure: list[MoveEffect] | None = None

    def stun_rounds(self) -> int:
        """Total rounds across the move's success-side stun entries."""
        return sum(e.rounds or 1 for e in self.success or [] if e.effect == EffectKind.STUN)


class MobMove(Move):
    """A mob's move, weighted for random selection."""

    usage_chance: float = Field(default=0, ge=0)
