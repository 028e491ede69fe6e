"""
Combatant Models for Neon Grid.

Players and mob instances share a stat block and a display name, which is
everything combat resolution needs. Players are persisted; mob instances
live only for the length of an encounter.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Literal, Union

from pydantic import BaseModel, Field

from src.models.move import MobMove
from src.models.quest import UserQuestRecord


class CombatStats(BaseModel):
    """
    Named numeric attributes of a combatant.

    Unknown stats (e.g. a mob's ``dexterity``) are accepted as extra fields
    and read through ``value``.
    """

    model_config = {"extra": "allow"}

    hitpoints: int = 20
    current_hitpoints: int = 20
    energy: int = 20
    current_energy: int = 20
    armor: int = 0
    body: int = 1
    reflexes: int = 1
    agility: int = 1
    charisma: int = 1
    tech: int = 1
    luck: int = 1
    level: int = 1
    experience: int = 0

    def value(self, stat: str) -> float:
        """Get a stat by name, 0 if absent."""
        raw = getattr(self, stat, None)
        if raw is None and self.model_extra:
            raw = self.model_extra.get(stat)
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return 0
        return raw


class Weapon(BaseModel):
    """Equipped weapon."""

    name: str = ""
    damage: int = 0


class Equipment(BaseModel):
    """Equipped items relevant to combat."""

    weapon: Weapon | None = None


# =============================================================================
# Player
# =============================================================================


class Player(BaseModel):
    """A connected player character."""

    kind: Literal["player"] = "player"
    id: str
    avatar_name: str
    current_node: str | None = None
    class_id: str | None = None
    class_name: str | None = None
    stats: CombatStats = Field(default_factory=CombatStats)
    equipment: Equipment | None = None
    quests: list[UserQuestRecord] = Field(default_factory=list)
    moves: list[str] = Field(default_factory=list, description="Known move ids")

    @property
    def combatant_id(self) -> str:
        return self.id

    @property
    def display_name(self) -> str:
        return self.avatar_name

    def get_quest_record(self, quest_id: str) -> UserQuestRecord | None:
        """Get the player's record for a quest, if any."""
        for record in self.quests:
            if record.quest_id == str(quest_id):
                return record
        return None

    def has_quest(self, quest_id: str) -> bool:
        """True if the player holds the quest, active or completed."""
        return self.get_quest_record(quest_id) is not None

    def get_active_quest_record(self, quest_id: str) -> UserQuestRecord | None:
        """Get the player's unfinished record for a quest, skipping completed runs."""
        for record in self.quests:
            if record.quest_id == str(quest_id) and not record.completed:
                return record
        return None

    def has_active_quest(self, quest_id: str) -> bool:
        """True if any of the player's records for the quest is unfinished."""
        return self.get_active_quest_record(quest_id) is not None

    def quest_event_ids(self) -> tuple[set[str], set[str]]:
        """Completed and current quest event ids across all records."""
        completed: set[str] = set()
        current: set[str] = set()
        for record in self.quests:
            completed.update(record.completed_event_ids)
            if record.current_event_id:
                current.add(record.current_event_id)
        return completed, current


# =============================================================================
# Mobs
# =============================================================================


class MobTemplate(BaseModel):
    """Authoring record a mob instance is spawned from."""

    id: str
    name: str
    description: str = ""
    image: str | None = None
    level: int = 1
    hitpoints: int = 10
    stats: CombatStats = Field(default_factory=CombatStats)
    experience_points: int | None = None
    moves: list[MobMove] = Field(default_factory=list)


class MobSpawn(BaseModel):
    """A mob a location can spawn, with its percent chance."""

    mob_id: str
    chance: float = Field(ge=0, le=100)


class MobInstance(BaseModel):
    """An ephemeral mob fighting one player."""

    kind: Literal["mob"] = "mob"
    instance_id: str
    mob_id: str
    name: str
    description: str = ""
    image: str | None = None
    level: int = 1
    stats: CombatStats = Field(default_factory=CombatStats)
    equipment: Equipment | None = None
    experience_points: int | None = None
    moves: list[MobMove] = Field(default_factory=list)
    spawned_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def combatant_id(self) -> str:
        return self.instance_id

    @property
    def display_name(self) -> str:
        return self.name


Combatant = Union[Player, MobInstance]


def create_mob_instance(template: MobTemplate) -> MobInstance:
    """Spawn a fresh instance of a mob template at full health."""
    stats = template.stats.model_copy(deep=True)
    stats.level = template.level
    stats.hitpoints = template.hitpoints
    stats.current_hitpoints = template.hitpoints
    return MobInstance(
        instance_id=f"{template.id}-{int(time.time() * 1000)}",
        mob_id=template.id,
        name=template.name,
        description=template.description,
        image=template.image,
        level=template.level,
        stats=stats,
        experience_points=template.experience_points,
        moves=[m.model_copy(deep=True) for m in template.moves],
    )
