"""
In-memory implementations of collaborator interfaces for testing.

These implementations store everything in dictionaries, making tests
fast and isolated from the real database and socket layer. Records are
deep-copied on the way in and out so callers never share state with the
store.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from src.models.actor import Actor
from src.models.character_class import CharacterClass
from src.models.combatant import (
    MobInstance,
    MobSpawn,
    MobTemplate,
    Player,
    create_mob_instance,
)
from src.models.event_tree import StoryEvent
from src.models.message import Channel, MessagePayload
from src.models.move import Move
from src.models.quest import Quest

T = TypeVar("T", bound=BaseModel)


def _set_path(record: Any, path: str, value: Any) -> None:
    """Assign a dotted path on nested models/dicts."""
    *parents, leaf = path.split(".")
    target = record
    for part in parents:
        target = target[part] if isinstance(target, dict) else getattr(target, part)
    if isinstance(target, dict):
        target[leaf] = value
    else:
        setattr(target, leaf, value)


class InMemoryPlayerStore:
    """In-memory implementation of PlayerStore."""

    def __init__(self) -> None:
        self._players: dict[str, Player] = {}

    def add(self, player: Player) -> Player:
        """Seed a player synchronously (test setup)."""
        self._players[player.id] = deepcopy(player)
        return player

    async def find_by_id(self, player_id: str) -> Player | None:
        player = self._players.get(str(player_id))
        return deepcopy(player) if player else None

    async def save(self, player: Player) -> None:
        self._players[player.id] = deepcopy(player)

    async def update_fields(self, player_id: str, fields: dict[str, Any]) -> Player | None:
        player = self._players.get(str(player_id))
        if player is None:
            return None
        for path, value in fields.items():
            _set_path(player, path, deepcopy(value))
        return deepcopy(player)


class _InMemoryDefinitionStore(Generic[T]):
    """Read-mostly store of authored definitions keyed by id."""

    def __init__(self, records: list[T] | None = None) -> None:
        self._records: dict[str, T] = {}
        for record in records or []:
            self.add(record)

    def add(self, record: T) -> T:
        """Seed a definition synchronously (test setup)."""
        self._records[str(record.id)] = deepcopy(record)
        return record

    async def find_by_id(self, record_id: str) -> T | None:
        record = self._records.get(str(record_id))
        return deepcopy(record) if record else None

    async def find_all(self) -> list[T]:
        return [deepcopy(r) for r in self._records.values()]


class InMemoryQuestStore(_InMemoryDefinitionStore[Quest]):
    """In-memory implementation of QuestStore."""


class InMemoryClassStore(_InMemoryDefinitionStore[CharacterClass]):
    """In-memory implementation of ClassStore."""


class InMemoryMoveStore(_InMemoryDefinitionStore[Move]):
    """In-memory implementation of MoveStore."""


class InMemoryEventStore(_InMemoryDefinitionStore[StoryEvent]):
    """In-memory implementation of EventStore."""

    async def find_by_actor(self, actor_id: str) -> list[StoryEvent]:
        return [deepcopy(e) for e in self._records.values() if e.actor_id == str(actor_id)]


class InMemoryActorStore(_InMemoryDefinitionStore[Actor]):
    """In-memory implementation of ActorStore."""


class InMemoryLocationStore:
    """In-memory implementation of LocationStore."""

    def __init__(
        self,
        exits: dict[str, list[str]] | None = None,
        spawns: dict[str, list[MobSpawn]] | None = None,
    ) -> None:
        self._exits: dict[str, list[str]] = dict(exits or {})
        self._spawns: dict[str, list[MobSpawn]] = dict(spawns or {})

    def add_exit(self, from_location: str, to_location: str) -> None:
        self._exits.setdefault(from_location, []).append(to_location)

    async def get_exits(self, location_id: str) -> list[str]:
        return list(self._exits.get(location_id, []))

    def add_spawn(self, location_id: str, mob_id: str, chance: float) -> None:
        self._spawns.setdefault(location_id, []).append(MobSpawn(mob_id=mob_id, chance=chance))

    async def get_spawns(self, location_id: str) -> list[MobSpawn]:
        return [s.model_copy() for s in self._spawns.get(location_id, [])]


class InMemoryMobFactory:
    """MobFactory spawning instances from in-memory templates."""

    def __init__(self, templates: list[MobTemplate] | None = None) -> None:
        self._templates: dict[str, MobTemplate] = {t.id: t for t in templates or []}

    def add(self, template: MobTemplate) -> MobTemplate:
        self._templates[template.id] = template
        return template

    async def instantiate(self, template_id: str) -> MobInstance | None:
        template = self._templates.get(str(template_id))
        if template is None:
            return None
        return create_mob_instance(template)


# =============================================================================
# Messaging
# =============================================================================


@dataclass
class SentMessage:
    """A message captured by the in-memory messenger."""

    player_id: str | None
    channel: Channel | None
    payload: MessagePayload
    location_id: str | None = None
    exclude_player_id: str | None = None


class InMemoryMessenger:
    """
    Messenger that records everything instead of delivering it.

    Broadcasts are recorded with ``player_id=None`` and the location id.
    """

    def __init__(self) -> None:
        self.sent: list[SentMessage] = []

    async def send_to_player(
        self, player_id: str, channel: Channel, payload: MessagePayload
    ) -> None:
        self.sent.append(SentMessage(player_id=player_id, channel=channel, payload=payload))

    async def broadcast_to_location(
        self,
        location_id: str,
        payload: MessagePayload,
        exclude_player_id: str | None = None,
    ) -> None:
        self.sent.append(
            SentMessage(
                player_id=None,
                channel=None,
                payload=payload,
                location_id=location_id,
                exclude_player_id=exclude_player_id,
            )
        )

    def texts(self, player_id: str, channel: Channel | None = None) -> list[str]:
        """Texts sent to a player, optionally filtered by channel."""
        return [
            m.payload.text
            for m in self.sent
            if m.player_id == player_id and (channel is None or m.channel == channel)
        ]

    def broadcasts(self, location_id: str | None = None) -> list[str]:
        """Texts broadcast to a location (or anywhere)."""
        return [
            m.payload.text
            for m in self.sent
            if m.player_id is None and (location_id is None or m.location_id == location_id)
        ]

    def clear(self) -> None:
        self.sent.clear()
