"""
Actor Service for Neon Grid.

Small talk for actors with no event to offer: each player hears an
actor's lines in order, wrapping around after the last one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from src.db.interfaces import ActorStore
from src.models.combatant import Player
from src.models.message import Channel
from src.services.events import EventResult
from src.services.quest import QuestProgressionService
from src.services.state import GameState

logger = logging.getLogger(__name__)


@dataclass
class ActorService:
    """Service for actor small talk."""

    actors: ActorStore
    state: GameState
    quests: QuestProgressionService

    async def handle_small_talk(self, player: Player, actor_id: str) -> EventResult | None:
        """
        Say the actor's next line to the player.

        Lines carrying quest completion events push the player's quests
        along. Returns None when the actor does not exist.
        """
        actor = await self.actors.find_by_id(actor_id)
        if actor is None:
            return None

        messages = actor.ordered_messages()
        if not messages:
            return EventResult(
                message=f"{actor.name} has nothing to say.", is_end=True, channel=Channel.CHAT
            )

        index = self.state.next_chat_index(player.id, actor.id, len(messages))
        line = messages[index]
        logger.debug("Actor %s says line %d to %s", actor.id, index, player.id)

        if line.quest_completion_events:
            await self.quests.handle_quest_progression(
                player, actor.id, line.quest_completion_events
            )

        return EventResult(
            message=f'{actor.name} says: "{line.message}"', is_end=True, channel=Channel.CHAT
        )
