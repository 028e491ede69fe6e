"""
Collaborator interface definitions for Neon Grid.

Uses Protocol classes to define the contract the game core relies on.
Implementations can wrap a real database and socket layer or be the
in-memory versions used for testing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from src.models.actor import Actor
    from src.models.character_class import CharacterClass
    from src.models.combatant import MobInstance, MobSpawn, Player
    from src.models.event_tree import StoryEvent
    from src.models.message import Channel, MessagePayload
    from src.models.move import Move
    from src.models.quest import Quest


class PlayerStore(Protocol):
    """
    Interface for player persistence.

    Player records are the only durable combatant state.
    """

    async def find_by_id(self, player_id: str) -> Player | None:
        """Load a player by id."""
        ...

    async def save(self, player: Player) -> None:
        """Insert or replace a player record."""
        ...

    async def update_fields(self, player_id: str, fields: dict[str, Any]) -> Player | None:
        """
        Update individual fields without rewriting the record.

        Keys are dotted paths, e.g. ``{"stats.current_hitpoints": 12}``.
        Returns the updated player, or None if it does not exist.
        """
        ...


class QuestStore(Protocol):
    """Interface for quest definitions."""

    async def find_by_id(self, quest_id: str) -> Quest | None:
        """Get a quest by id."""
        ...

    async def find_all(self) -> list[Quest]:
        """Get every quest definition."""
        ...


class ClassStore(Protocol):
    """Interface for character class definitions."""

    async def find_by_id(self, class_id: str) -> CharacterClass | None:
        """Get a class by id."""
        ...

    async def find_all(self) -> list[CharacterClass]:
        """Get every class definition."""
        ...


class MoveStore(Protocol):
    """Interface for move definitions."""

    async def find_by_id(self, move_id: str) -> Move | None:
        """Get a move by id."""
        ...

    async def find_all(self) -> list[Move]:
        """Get every move definition."""
        ...


class EventStore(Protocol):
    """Interface for story event and conversation trees."""

    async def find_by_id(self, event_id: str) -> StoryEvent | None:
        """Get an event tree by id."""
        ...

    async def find_all(self) -> list[StoryEvent]:
        """Get every event tree."""
        ...

    async def find_by_actor(self, actor_id: str) -> list[StoryEvent]:
        """Get the event trees an actor can start."""
        ...


class ActorStore(Protocol):
    """Interface for actor definitions."""

    async def find_by_id(self, actor_id: str) -> Actor | None:
        """Get an actor by id."""
        ...


class LocationStore(Protocol):
    """Interface for the world map."""

    async def get_exits(self, location_id: str) -> list[str]:
        """Get the ids of locations reachable from a location."""
        ...

    async def get_spawns(self, location_id: str) -> list[MobSpawn]:
        """Get the mobs that may spawn for a player entering a location."""
        ...


class Messenger(Protocol):
    """Interface for delivering text to connected players."""

    async def send_to_player(
        self, player_id: str, channel: Channel, payload: MessagePayload
    ) -> None:
        """Send a message to one player on a console channel."""
        ...

    async def broadcast_to_location(
        self,
        location_id: str,
        payload: MessagePayload,
        exclude_player_id: str | None = None,
    ) -> None:
        """Send a system message to everyone at a location."""
        ...


class MobFactory(Protocol):
    """Interface for spawning mob instances from templates."""

    async def instantiate(self, template_id: str) -> MobInstance | None:
        """Create a fresh, unsaved mob instance, or None if unknown."""
        ...
