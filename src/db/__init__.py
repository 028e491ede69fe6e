"""
Storage layer for Neon Grid.

Provides interfaces for the collaborators the game core depends on:
- PlayerStore: durable player records
- QuestStore, ClassStore, MoveStore, EventStore, ActorStore: authored
  definitions
- LocationStore: room exits and mob spawns
- Messenger: delivery to connected players
- MobFactory: spawning mob instances

Implementations:
- InMemory*: For testing (no external dependencies)
"""

from __future__ import annotations

from src.db.interfaces import (
    ActorStore,
    ClassStore,
    EventStore,
    LocationStore,
    Messenger,
    MobFactory,
    MoveStore,
    PlayerStore,
    QuestStore,
)
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
    SentMessage,
)

__all__ = [
    # Protocols
    "ActorStore",
    "ClassStore",
    "EventStore",
    "LocationStore",
    "Messenger",
    "MobFactory",
    "MoveStore",
    "PlayerStore",
    "QuestStore",
    # In-memory implementations
    "InMemoryActorStore",
    "InMemoryClassStore",
    "InMemoryEventStore",
    "InMemoryLocationStore",
    "InMemoryMessenger",
    "InMemoryMobFactory",
    "InMemoryMoveStore",
    "InMemoryPlayerStore",
    "InMemoryQuestStore",
    "SentMessage",
]
