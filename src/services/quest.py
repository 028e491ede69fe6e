"""
Quest Progression Service for Neon Grid.

Moves a player's quest pointers forward in response to event-tree
choices, actor conversations and mob kills, and grants the rewards
attached to the events they reach.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

from src.db.interfaces import ClassStore, PlayerStore, QuestStore
from src.models.combatant import Player
from src.models.message import Channel
from src.models.quest import (
    KillProgress,
    Quest,
    QuestEvent,
    QuestEventType,
    RewardType,
    UserQuestRecord,
    create_quest_record,
)
from src.services.player import PlayerService

logger = logging.getLogger(__name__)

NO_CHOICES_HINT = "No available choices"
NO_HINT = "No hint available"


# =============================================================================
# Result Models
# =============================================================================


class QuestUpdateType(str, Enum):
    """What happened to a quest."""

    QUEST_START = "quest_start"
    QUEST_PROGRESS = "quest_progress"
    QUEST_COMPLETE = "quest_complete"
    KILL_PROGRESS = "kill_progress"


class QuestUpdate(BaseModel):
    """Summary of one change to a player's quest."""

    type: QuestUpdateType
    quest_id: str
    quest_title: str
    event_id: str | None = None
    is_complete: bool = False
    message: str | None = None
    experience_awarded: int = 0
    new_level: int | None = Field(default=None, description="Set when a reward levelled the player")


class RewardOutcome(BaseModel):
    """What handle_event_rewards granted."""

    experience: int = 0
    new_level: int | None = None
    class_name: str | None = None


class ActiveQuestInfo(BaseModel):
    """Journal entry for one in-progress quest."""

    quest_id: str
    current_event_id: str
    title: str
    hints: list[str]


class PlayerQuestInfo(BaseModel):
    """Quest ids grouped by state."""

    active_quest_ids: list[str] = Field(default_factory=list)
    completed_quest_ids: list[str] = Field(default_factory=list)
    completed_event_ids: list[str] = Field(default_factory=list)


# =============================================================================
# Quest Progression Service
# =============================================================================


@dataclass
class QuestProgressionService:
    """
    Service for advancing quests.

    Quest records are written with ``update_fields`` before any reward is
    granted, because rewards load and save the player on their own. The
    player object passed in is refreshed from the store after every
    change.
    """

    players: PlayerStore
    quests: QuestStore
    classes: ClassStore
    progression: PlayerService

    # -------------------------------------------------------------------------
    # Progression
    # -------------------------------------------------------------------------

    async def handle_quest_progression(
        self,
        player: Player,
        actor_id: str | None,
        completion_event_ids: list[str] | None,
        quest_to_activate_id: str | None = None,
    ) -> QuestUpdate | None:
        """
        Apply the first quest change triggered by an interaction.

        In order: advance a quest whose current event leads to one of
        ``completion_event_ids``; activate ``quest_to_activate_id``; start
        a quest whose start event belongs to ``actor_id``; advance a quest
        whose next event belongs to ``actor_id``.

        Args:
            player: Player to update (refreshed in place on change)
            actor_id: Actor being talked to, if any
            completion_event_ids: Quest event ids this interaction completes
            quest_to_activate_id: Quest to start, if any

        Returns:
            QuestUpdate for the change made, or None when nothing matched
        """
        try:
            return await self._progress(
                player, actor_id, [str(e) for e in completion_event_ids or []], quest_to_activate_id
            )
        except Exception as e:
            logger.error("Quest progression failed for %s: %s", player.id, e)
            return None

    async def _progress(
        self,
        player: Player,
        actor_id: str | None,
        completion_event_ids: list[str],
        quest_to_activate_id: str | None,
    ) -> QuestUpdate | None:
        all_quests = await self.quests.find_all()
        by_id = {q.id: q for q in all_quests}

        # 1. Completion events reached from the current event
        if completion_event_ids:
            for record in player.quests:
                if record.completed:
                    continue
                quest = by_id.get(record.quest_id)
                current = quest.get_event(record.current_event_id) if quest else None
                if current is None:
                    continue
                next_id = next(
                    (n for n in current.next_event_ids if n in completion_event_ids), None
                )
                next_event = quest.get_event(next_id)
                if next_event is None:
                    continue
                return await self._advance(player, quest, record, next_event, next_event.is_end)

        # 2. Explicit activation
        if quest_to_activate_id and not player.has_active_quest(quest_to_activate_id):
            quest = by_id.get(str(quest_to_activate_id))
            if quest is None:
                logger.warning("Quest %s to activate not found", quest_to_activate_id)
            elif quest.start_event is None:
                logger.warning("Quest %s has no start event", quest.id)
            else:
                return await self._start(player, quest)

        if not actor_id:
            return None
        actor_id = str(actor_id)

        # 3. A quest this actor hands out
        for quest in all_quests:
            if player.has_quest(quest.id):
                continue
            start = quest.start_event
            if start is not None and start.actor_id == actor_id:
                return await self._start(player, quest)

        # 4. A quest this actor moves along
        for record in player.quests:
            if record.completed:
                continue
            quest = by_id.get(record.quest_id)
            current = quest.get_event(record.current_event_id) if quest else None
            if current is None:
                continue
            for next_id in current.next_event_ids:
                next_event = quest.get_event(next_id)
                if next_event is not None and next_event.actor_id == actor_id:
                    finished = next_event.is_end or not next_event.choices
                    return await self._advance(player, quest, record, next_event, finished)

        # 5. Nothing to do
        return None

    async def _start(self, player: Player, quest: Quest) -> QuestUpdate:
        start = quest.start_event
        player.quests.append(create_quest_record(quest, start))
        await self._save_quests(player)

        text = f"New Quest: {quest.title}"
        if start.message:
            text += f"\n\n{start.message}"
        await self.progression.send(player.id, Channel.QUESTS, text)
        logger.info("Player %s started quest %s", player.id, quest.id)

        rewards = await self.handle_event_rewards(player, start)
        await self._refresh(player)
        return QuestUpdate(
            type=QuestUpdateType.QUEST_START,
            quest_id=quest.id,
            quest_title=quest.title,
            event_id=start.id,
            message=start.message or None,
            experience_awarded=rewards.experience,
            new_level=rewards.new_level,
        )

    async def _advance(
        self,
        player: Player,
        quest: Quest,
        record: UserQuestRecord,
        event: QuestEvent,
        finished: bool,
    ) -> QuestUpdate:
        record.advance_to(event.id)
        if finished:
            record.mark_completed()
        await self._save_quests(player)

        if finished:
            await self._announce_completion(player, quest, event)
            logger.info("Player %s completed quest %s", player.id, quest.id)
        elif event.message:
            await self.progression.send(player.id, Channel.QUESTS, event.message)

        rewards = await self.handle_event_rewards(player, event)
        await self._refresh(player)
        return QuestUpdate(
            type=QuestUpdateType.QUEST_COMPLETE if finished else QuestUpdateType.QUEST_PROGRESS,
            quest_id=quest.id,
            quest_title=quest.title,
            event_id=event.id,
            is_complete=finished,
            message=event.message or None,
            experience_awarded=rewards.experience,
            new_level=rewards.new_level,
        )

    async def _announce_completion(self, player: Player, quest: Quest, event: QuestEvent) -> None:
        completed = f'Quest "{quest.title}" completed!'
        if event.event_type == QuestEventType.CHAT:
            if event.message:
                await self.progression.send(player.id, Channel.QUESTS, event.message)
            await self.progression.send(player.id, Channel.SUCCESS, completed)
        else:
            await self.progression.send(player.id, Channel.SUCCESS, completed)
            if event.message:
                await self.progression.send(player.id, Channel.QUESTS, event.message)

    # -------------------------------------------------------------------------
    # Kills
    # -------------------------------------------------------------------------

    async def handle_mob_kill(
        self, player: Player, mob_id: str, mob_name: str | None = None
    ) -> list[QuestUpdate]:
        """
        Count a kill against every quest waiting on this mob.

        The first kill creates a counter at ``quantity - 1``; later kills
        decrement it. At zero the quest advances to the kill event.

        Args:
            player: Player who made the kill
            mob_id: Template id of the defeated mob
            mob_name: Name used in "remaining" messages

        Returns:
            One QuestUpdate per quest affected
        """
        try:
            return await self._count_kill(player, str(mob_id), mob_name or "mobs")
        except Exception as e:
            logger.error("Error handling mob kill for %s: %s", player.id, e)
            return []

    async def _count_kill(self, player: Player, mob_id: str, mob_name: str) -> list[QuestUpdate]:
        by_id = {q.id: q for q in await self.quests.find_all()}
        updates: list[QuestUpdate] = []
        reached: list[QuestEvent] = []

        for record in player.quests:
            if record.completed:
                continue
            quest = by_id.get(record.quest_id)
            current = quest.get_event(record.current_event_id) if quest else None
            if current is None:
                continue

            for next_id in current.next_event_ids:
                target = quest.get_event(next_id)
                if target is None or target.event_type != QuestEventType.KILL:
                    continue
                if not target.mob_id or str(target.mob_id) != mob_id:
                    continue

                progress = record.get_kill_progress(target.id)
                if progress is None:
                    progress = KillProgress(event_id=target.id, remaining=target.quantity - 1)
                    record.kill_progress.append(progress)
                else:
                    progress.remaining -= 1

                if progress.remaining > 0:
                    text = f"{progress.remaining} more {mob_name} remaining to kill."
                    await self.progression.send(
                        player.id, Channel.QUESTS, f'Quest "{quest.title}": {text}'
                    )
                    updates.append(
                        QuestUpdate(
                            type=QuestUpdateType.KILL_PROGRESS,
                            quest_id=quest.id,
                            quest_title=quest.title,
                            event_id=target.id,
                            message=text,
                        )
                    )
                    break

                record.advance_to(target.id)
                record.kill_progress = [k for k in record.kill_progress if k.event_id != target.id]
                text = f'Quest "{quest.title}" updated: Kill requirement complete!'
                if target.message:
                    text += f"\n\n{target.message}"
                await self.progression.send(player.id, Channel.QUESTS, text)
                if target.is_end:
                    record.mark_completed()
                    await self.progression.send(
                        player.id, Channel.SUCCESS, f'Quest "{quest.title}" completed!'
                    )
                reached.append(target)
                updates.append(
                    QuestUpdate(
                        type=(
                            QuestUpdateType.QUEST_COMPLETE
                            if target.is_end
                            else QuestUpdateType.QUEST_PROGRESS
                        ),
                        quest_id=quest.id,
                        quest_title=quest.title,
                        event_id=target.id,
                        is_complete=target.is_end,
                        message=target.message or None,
                    )
                )
                break

        if not updates:
            return updates

        await self._save_quests(player)
        for event in reached:
            rewards = await self.handle_event_rewards(player, event)
            for update in updates:
                if update.event_id == event.id:
                    update.experience_awarded = rewards.experience
                    update.new_level = rewards.new_level
        await self._refresh(player)
        return updates

    # -------------------------------------------------------------------------
    # Rewards
    # -------------------------------------------------------------------------

    async def handle_event_rewards(self, player: Player, event: QuestEvent) -> RewardOutcome:
        """
        Grant the rewards attached to a quest event.

        A failing reward is logged and skipped; the rest are still granted.
        """
        outcome = RewardOutcome()
        for reward in event.rewards:
            if reward.type == RewardType.GAIN_CLASS:
                await self._grant_class(player, reward.value, outcome)
            elif reward.type == RewardType.EXPERIENCE_POINTS:
                await self._grant_experience(player, reward.value, outcome)
        return outcome

    async def _grant_class(self, player: Player, class_id: str, outcome: RewardOutcome) -> None:
        character_class = await self.classes.find_by_id(class_id)
        if character_class is None:
            logger.error("Class %s not found for reward to %s", class_id, player.id)
            return
        try:
            result = await self.progression.set_player_class(player.id, character_class.id)
        except ValueError as e:
            logger.error("Error handling class reward for %s: %s", player.id, e)
            return

        outcome.class_name = result.class_name
        await self.progression.send(
            player.id,
            Channel.SUCCESS,
            f"You have gained the {result.class_name} class!\n"
            f"Your hitpoints are now {result.hitpoints}.\n"
            f"You have gained {result.move_count} class moves!",
        )

    async def _grant_experience(self, player: Player, value: str, outcome: RewardOutcome) -> None:
        try:
            amount = int(value)
        except (TypeError, ValueError):
            logger.error("Invalid experience reward %r for %s", value, player.id)
            return
        if amount <= 0:
            return

        try:
            result = await self.progression.award_experience(player.id, amount, suppress_message=True)
        except ValueError as e:
            logger.error("Error handling experience reward for %s: %s", player.id, e)
            return
        if not result.success:
            return

        outcome.experience += amount
        text = f"You gained {amount} experience points!"
        if result.level_up:
            outcome.new_level = result.new_level
            text += f"\nYou reached level {result.new_level}!"
        await self.progression.send(player.id, Channel.SUCCESS, text)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_active_quests(self, player: Player) -> list[ActiveQuestInfo]:
        """Journal entries for the player's unfinished quests."""
        by_id = {q.id: q for q in await self.quests.find_all()}
        active: list[ActiveQuestInfo] = []

        for record in player.quests:
            if record.completed:
                continue
            quest = by_id.get(record.quest_id)
            if quest is None:
                logger.warning("Quest %s held by %s not found", record.quest_id, player.id)
                continue
            current = quest.get_event(record.current_event_id)
            if current is None:
                logger.warning(
                    "Event %s of quest %s not found", record.current_event_id, quest.id
                )
                continue

            hints: list[str] = []
            for next_id in current.next_event_ids:
                next_event = quest.get_event(next_id)
                if next_event is not None:
                    hints.append(_hint_for(next_event, record))

            active.append(
                ActiveQuestInfo(
                    quest_id=quest.id,
                    current_event_id=current.id,
                    title=quest.title,
                    hints=hints or [NO_CHOICES_HINT],
                )
            )
        return active

    def get_player_quest_info(self, player: Player) -> PlayerQuestInfo:
        info = PlayerQuestInfo()
        for record in player.quests:
            if record.completed:
                info.completed_quest_ids.append(record.quest_id)
            else:
                info.active_quest_ids.append(record.quest_id)
            info.completed_event_ids.extend(record.completed_event_ids)
        return info

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def _save_quests(self, player: Player) -> None:
        updated = await self.players.update_fields(player.id, {"quests": player.quests})
        if updated is None:
            raise ValueError(f"Player {player.id} not found")

    async def _refresh(self, player: Player) -> None:
        """Reload the stored player into the caller's object."""
        fresh = await self.progression.get_player(player.id)
        for name in Player.model_fields:
            setattr(player, name, getattr(fresh, name))


def _hint_for(event: QuestEvent, record: UserQuestRecord) -> str:
    hint = event.hint or NO_HINT
    if event.event_type == QuestEventType.KILL and "[Quantity]" in hint:
        progress = record.get_kill_progress(event.id)
        remaining = progress.remaining if progress else event.quantity
        hint = hint.replace("[Quantity]", str(remaining))
    return hint
