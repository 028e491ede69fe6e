"""Shared builders for Neon Grid tests."""

from __future__ import annotations

from collections.abc import Iterable

from src.db.memory import (
    InMemoryActorStore,
    InMemoryClassStore,
    InMemoryEventStore,
    InMemoryLocationStore,
    InMemoryMessenger,
    InMemoryMobFactory,
    InMemoryMoveStore,
    InMemoryPlayerStore,
    InMemoryQuestStore,
)
from src.engine import GameEngine
from src.models.combatant import CombatStats, MobTemplate, Player
from src.models.move import MobMove, Move


class SequenceRoller:
    """
    Deterministic Roller returning queued values in order.

    Values are clamped into the requested range; once the queue is empty
    ``default`` is returned.
    """

    def __init__(self, values: Iterable[int] = (), default: int = 10) -> None:
        self.values = list(values)
        self.default = default
        self.calls: list[tuple[int, int]] = []

    def __call__(self, low: int, high: int) -> int:
        self.calls.append((low, high))
        value = self.values.pop(0) if self.values else self.default
        return min(max(value, low), high)

    def extend(self, values: Iterable[int]) -> None:
        self.values.extend(values)


class FixedChance:
    """Chance source returning queued fractions, then ``default``."""

    def __init__(self, values: Iterable[float] = (), default: float = 0.0) -> None:
        self.values = list(values)
        self.default = default

    def __call__(self) -> float:
        return self.values.pop(0) if self.values else self.default


def first_move_draw(total: float) -> float:
    """WeightDraw that always lands on the first weighted move."""
    return 0.0


def make_player(player_id: str = "p1", **overrides) -> Player:
    stats = overrides.pop("stats", None) or CombatStats(
        hitpoints=30, current_hitpoints=30, body=5, reflexes=5, agility=5, tech=5
    )
    data = {
        "id": player_id,
        "avatar_name": "Nova",
        "current_node": "room-a",
        "stats": stats,
        "moves": ["punch"],
    }
    data.update(overrides)
    return Player(**data)


def make_move(move_id: str = "punch", **overrides) -> Move:
    data = {
        "id": move_id,
        "name": move_id.capitalize(),
        "help_description": "A quick jab",
        "attack_stat": "body",
        "defence_stat": "reflexes",
        "delay": 1,
        "base_power": 3,
        "scaling_factor": 0.6,
        "damage_dice": 6,
    }
    data.update(overrides)
    return Move(**data)


def make_mob_move(move_id: str = "bite", usage_chance: float = 100, **overrides) -> MobMove:
    data = {
        "id": move_id,
        "name": move_id.capitalize(),
        "attack_stat": "body",
        "defence_stat": "reflexes",
        "delay": 1,
        "usage_chance": usage_chance,
    }
    data.update(overrides)
    return MobMove(**data)


def make_template(template_id: str = "rat", **overrides) -> MobTemplate:
    data = {
        "id": template_id,
        "name": template_id.capitalize(),
        "hitpoints": 10,
        "level": 1,
        "stats": CombatStats(body=3, reflexes=3),
        "experience_points": 25,
        "moves": [make_mob_move()],
    }
    data.update(overrides)
    return MobTemplate(**data)


class World:
    """A full set of in-memory collaborators plus an engine over them."""

    def __init__(self, roller=None, chance=None, draw=first_move_draw, config=None) -> None:
        self.players = InMemoryPlayerStore()
        self.quests = InMemoryQuestStore()
        self.classes = InMemoryClassStore()
        self.moves = InMemoryMoveStore()
        self.events = InMemoryEventStore()
        self.locations = InMemoryLocationStore()
        self.mobs = InMemoryMobFactory()
        self.actors = InMemoryActorStore()
        self.messenger = InMemoryMessenger()
        self.roller = roller or SequenceRoller()
        self.chance = chance or FixedChance()

        extra = {"config": config} if config is not None else {}
        self.engine = GameEngine(
            players=self.players,
            quests=self.quests,
            classes=self.classes,
            moves=self.moves,
            events=self.events,
            locations=self.locations,
            mobs=self.mobs,
            messenger=self.messenger,
            actors=self.actors,
            roller=self.roller,
            draw=draw,
            chance=self.chance,
            **extra,
        )
        self.moves.add(make_move())
