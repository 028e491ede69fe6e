"""
Service layer for Neon Grid.

Services orchestrate game logic on top of the collaborator interfaces.
"""

from __future__ import annotations

from src.services.actors import ActorService
from src.services.combat import CombatService
from src.services.effects import EffectStore
from src.services.events import EventService
from src.services.player import PlayerService
from src.services.quest import QuestProgressionService
from src.services.state import GameState, PlayerLocks

__all__ = [
    "ActorService",
    "CombatService",
    "EffectStore",
    "EventService",
    "GameState",
    "PlayerLocks",
    "PlayerService",
    "QuestProgressionService",
]
