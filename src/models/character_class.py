"""
Character class models for Neon Grid.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class MoveGrowth(BaseModel):
    """A move unlocked at a given level."""

    level: int = Field(ge=1)
    move_id: str


class CharacterClass(BaseModel):
    """
    A class a player can be granted through a quest reward.

    Determines the stat spread, hitpoint formula and move list.
    """

    id: str
    name: str
    description: str = "No description available."
    base_hitpoints: int = Field(default=10, ge=1)
    hp_per_level: float = Field(default=2, ge=0)
    hp_per_bod: float = Field(default=1, ge=0)
    primary_stat: str
    secondary_stats: list[str] = Field(default_factory=list)
    move_growth: list[MoveGrowth] = Field(default_factory=list)

    @model_validator(mode="after")
    def normalize_growth(self) -> CharacterClass:
        """Drop the primary stat from secondaries and order growth by level."""
        self.secondary_stats = [s for s in self.secondary_stats if s != self.primary_stat]
        levels = [g.level for g in self.move_growth]
        if len(levels) != len(set(levels)):
            raise ValueError("Duplicate levels in move growth are not allowed")
        self.move_growth.sort(key=lambda g: g.level)
        return self

    def moves_for_level(self, level: int) -> list[str]:
        """Move ids available at or below a level."""
        return [g.move_id for g in self.move_growth if g.level <= level]

    def moves_unlocked_at(self, level: int) -> list[str]:
        """Move ids that become available exactly at a level."""
        return [g.move_id for g in self.move_growth if g.level == level]
