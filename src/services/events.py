"""
Event Service for Neon Grid.

Runs a player through an authored event tree one numeric choice at a
time. A choice can start a fight, roll a stat check, teleport the player
or simply move to the next node, and any of them may push quests along.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import BaseModel

from src.db.interfaces import EventStore, MobFactory, PlayerStore
from src.models.combatant import Player
from src.models.event_tree import (
    Choice,
    EventNode,
    StoryEvent,
    ensure_consistent_quest_events,
    find_node,
)
from src.models.message import Channel
from src.services.combat import COMBAT_HELP_HINT, CombatService
from src.services.player import PlayerService
from src.services.quest import QuestProgressionService
from src.services.state import EventSession, GameState
from src.skills.checks import SkillCheckResult, skill_check
from src.skills.choices import (
    filter_choices_by_restrictions,
    format_response,
    node_is_visible,
    validate_choice_input,
)
from src.skills.dice import Roller, random_int

logger = logging.getLogger(__name__)

TOO_TIRED_FOR_COMBAT = "You're too tired to face this challenge right now. Rest and recover first."
TOO_TIRED_FOR_EVENT = (
    "You notice something interesting might happen, but you're too tired to engage "
    "fully right now. Get some sleep."
)
MOB_FLED = "You were going to encounter a creature, but it seems to have fled."
ENCOUNTER_FAILED = "Something went wrong with the encounter."


# =============================================================================
# Result Models
# =============================================================================


class TeleportAction(BaseModel):
    """Location a choice sends the player to."""

    target_node: str


class EventResult(BaseModel):
    """What a step of an event produced for the player."""

    message: str | None = None
    has_choices: bool = False
    is_end: bool = False
    error: bool = False
    channel: Channel = Channel.INFO
    combat_initiated: bool = False
    teleport_action: TeleportAction | None = None
    skill_check: SkillCheckResult | None = None


# =============================================================================
# Event Service
# =============================================================================


@dataclass
class EventService:
    """Service for stepping players through event trees."""

    players: PlayerStore
    events: EventStore
    mobs: MobFactory
    state: GameState
    combat: CombatService
    quests: QuestProgressionService
    progression: PlayerService
    roller: Roller = random_int

    # -------------------------------------------------------------------------
    # Entry Points
    # -------------------------------------------------------------------------

    async def start_event(self, player: Player, event: StoryEvent) -> EventResult | None:
        """
        Open an event at its root node.

        Returns None when the root's class restrictions turn the player
        away.
        """
        root = event.root_node
        if not node_is_visible(root, player):
            logger.info("Player %s restricted from event %s", player.id, event.id)
            return None

        self.state.set_active_event(
            player.id, event.id, root, event.actor_id, event.is_story_event
        )
        if root.activate_quest_id:
            await self.quests.handle_quest_progression(
                player, event.actor_id, [], root.activate_quest_id
            )

        response = format_response(root, player)
        if not response.has_choices:
            self.state.clear_active_event(player.id)
        return EventResult(
            message=response.message, has_choices=response.has_choices, is_end=response.is_end
        )

    async def handle_actor_chat(self, player: Player, actor_id: str) -> EventResult | None:
        """
        Talk to an actor: resume the open event or start the actor's first
        event the player qualifies for.
        """
        try:
            session = self.state.get_active_event(player.id)
            if session is not None:
                return self._resume(player, session)

            available = [
                e for e in await self.events.find_by_actor(actor_id) if _event_available(e, player)
            ]
            if not available:
                return None

            event = available[0]
            if event.requires_energy and player.stats.current_energy < 1:
                return EventResult(message=TOO_TIRED_FOR_EVENT, is_end=True)
            return await self.start_event(player, event)
        except Exception as e:
            logger.error("Error handling actor chat for %s: %s", player.id, e)
            return None

    def _resume(self, player: Player, session: EventSession) -> EventResult | None:
        response = format_response(session.current_node, player)
        if not response.has_choices:
            self.state.clear_active_event(player.id)
            return None
        return EventResult(message=response.message, has_choices=True)

    async def process_event_input(self, player: Player, text: str) -> EventResult | None:
        """
        Apply one numeric choice to the player's open event.

        Args:
            player: Player making the choice
            text: Raw console input

        Returns:
            EventResult, or None when there is no open event or it broke
        """
        session = self.state.get_active_event(player.id)
        if session is None:
            return None

        try:
            event = await self.events.find_by_id(session.event_id)
            if event is None:
                logger.error("Event %s not found for %s", session.event_id, player.id)
                self.state.clear_active_event(player.id)
                return None

            node = find_node(event.root_node, session.current_node.id)
            if node is None:
                self.state.clear_active_event(player.id)
                return None
            ensure_consistent_quest_events(node)

            valid = filter_choices_by_restrictions(node.choices, player)
            if not valid:
                self.state.clear_active_event(player.id)
                return None

            validation = validate_choice_input(text, valid)
            if validation.error:
                return EventResult(
                    message=validation.message, error=True, has_choices=True, channel=Channel.ERROR
                )

            choice = validation.selected.choice
            if choice.is_combat:
                return await self._start_encounter(player, choice)
            return await self._follow_choice(player, session, choice)
        except Exception as e:
            logger.error("Error processing event input for %s: %s", player.id, e)
            self.state.clear_active_event(player.id)
            return None

    # -------------------------------------------------------------------------
    # Choice Handling
    # -------------------------------------------------------------------------

    async def _start_encounter(self, player: Player, choice: Choice) -> EventResult:
        """Turn a combat choice into a fight with a freshly spawned mob."""
        if player.stats.current_energy < 1:
            self.state.clear_active_event(player.id)
            return EventResult(
                message=TOO_TIRED_FOR_COMBAT, error=True, is_end=True, channel=Channel.ERROR
            )

        player.stats.current_energy -= 1
        try:
            await self.players.update_fields(
                player.id, {"stats.current_energy": player.stats.current_energy}
            )
        except Exception as e:
            logger.error("Failed to save energy for %s: %s", player.id, e)
        await self.progression.send_status(player)
        self.state.clear_active_event(player.id)

        try:
            mob = await self.mobs.instantiate(choice.mob_id)
            if mob is None:
                logger.error("Mob %s for event choice not found", choice.mob_id)
                return EventResult(message=f"{choice.text}\n\n{MOB_FLED}", is_end=True)

            self.state.set_player_mob(player.id, mob)
            self.state.set_combat_session(player.id, mob)
            await self.progression.send(
                player.id,
                Channel.COMBAT,
                f"{choice.text}\n\nA hostile creature attacks you!",
                help_text=COMBAT_HELP_HINT,
                image=mob.image,
            )
            await self.progression.broadcast(
                player.current_node,
                f"{player.avatar_name} engages in combat with {mob.name}!",
                player.id,
            )

            self.combat.queue_mob_move(player, mob)
            try:
                await self.combat.process_combat_until_input(player, mob)
            except Exception as e:
                logger.error("Combat scheduler failed for %s: %s", player.id, e)
            return EventResult(is_end=True, combat_initiated=True)
        except Exception as e:
            logger.error("Error starting encounter for %s: %s", player.id, e)
            self.combat.cleanup_player(player.id)
            return EventResult(
                message=ENCOUNTER_FAILED, error=True, is_end=True, channel=Channel.ERROR
            )

    async def _follow_choice(
        self, player: Player, session: EventSession, choice: Choice
    ) -> EventResult:
        teleport = (
            TeleportAction(target_node=choice.teleport_to_node) if choice.teleport_to_node else None
        )
        # Leaving a conversation never completes quest events
        if choice.is_exit and choice.next_node is not None:
            choice.next_node.quest_completion_events = []

        next_node = choice.next_node
        check: SkillCheckResult | None = None
        channel = Channel.INFO
        if choice.is_skill_check:
            check = skill_check(
                player, choice.skill_check_stat, choice.skill_check_target_number, self.roller
            )
            channel = Channel.SUCCESS if check.passed else Channel.ERROR
            next_node = choice.next_node if check.passed else choice.failure_node
            if next_node is None:
                self.state.clear_active_event(player.id)
                return EventResult(
                    message=check.describe(choice.text),
                    is_end=True,
                    channel=channel,
                    teleport_action=teleport,
                    skill_check=check,
                )

        await self._apply_quest_triggers(player, session, choice, next_node)

        if next_node is None:
            self.state.clear_active_event(player.id)
            return EventResult(message=choice.text, is_end=True, teleport_action=teleport)

        self.state.set_active_event(
            player.id, session.event_id, next_node, session.actor_id, session.is_story_event
        )
        response = format_response(next_node, player)
        if not response.has_choices:
            self.state.clear_active_event(player.id)

        message = response.message
        if check is not None:
            message = f"{check.describe(choice.text)}\n{message}"
        return EventResult(
            message=message,
            has_choices=response.has_choices,
            is_end=response.is_end,
            channel=channel,
            teleport_action=teleport,
            skill_check=check,
        )

    async def _apply_quest_triggers(
        self,
        player: Player,
        session: EventSession,
        choice: Choice,
        next_node: EventNode | None,
    ) -> None:
        """Push quest completion events and activations carried by a choice."""
        completion_ids = choice.quest_completion_events or (
            next_node.quest_completion_events if next_node is not None else None
        )
        if completion_ids:
            await self.quests.handle_quest_progression(player, session.actor_id, completion_ids)

        quest_id = choice.activate_quest_id or (
            next_node.activate_quest_id if next_node is not None else None
        )
        if quest_id:
            await self.quests.handle_quest_progression(player, session.actor_id, [], quest_id)

    def is_in_event(self, player_id: str) -> bool:
        return self.state.in_event(player_id)


def _event_available(event: StoryEvent, player: Player) -> bool:
    """True if the player meets the root node's quest requirements."""
    root = event.root_node
    if not root.required_quest_id:
        return True
    record = player.get_active_quest_record(root.required_quest_id)
    if record is None:
        return False
    if root.required_quest_event_id:
        return record.current_event_id == root.required_quest_event_id
    return True
