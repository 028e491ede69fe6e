"""
Quest models for Neon Grid.

A quest is a directed graph of events. A player's progress through it is
a UserQuestRecord pointing at the current event, plus the trail of
events already passed and any pending kill counters.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class QuestEventType(str, Enum):
    """How a quest event is reached."""

    CHAT = "chat"  # Talk to an actor
    KILL = "kill"  # Defeat a number of a specific mob
    CONVERSATION = "conversation"  # Reached through an event tree


class RewardType(str, Enum):
    """Rewards granted when a quest event is reached."""

    EXPERIENCE_POINTS = "experiencePoints"
    GAIN_CLASS = "gainClass"


class QuestReward(BaseModel):
    """A reward attached to a quest event. ``value`` is stored as text."""

    type: RewardType
    value: str


class QuestEventChoice(BaseModel):
    """Edge to the next event in the quest graph."""

    next_event_id: str


class QuestEvent(BaseModel):
    """One step of a quest."""

    id: str
    event_type: QuestEventType = QuestEventType.CHAT
    hint: str = ""
    choices: list[QuestEventChoice] = Field(default_factory=list)
    is_start: bool = False
    is_end: bool = False
    actor_id: str | None = None
    message: str = ""
    mob_id: str | None = None
    quantity: int = Field(default=1, ge=1)
    rewards: list[QuestReward] = Field(default_factory=list)

    @property
    def next_event_ids(self) -> list[str]:
        return [c.next_event_id for c in self.choices]


class Quest(BaseModel):
    """A quest definition."""

    id: str
    title: str
    journal_description: str = ""
    events: list[QuestEvent] = Field(default_factory=list)

    def get_event(self, event_id: str | None) -> QuestEvent | None:
        """Find an event by id."""
        if event_id is None:
            return None
        for event in self.events:
            if event.id == str(event_id):
                return event
        return None

    @property
    def start_event(self) -> QuestEvent | None:
        return next((e for e in self.events if e.is_start), None)


# =============================================================================
# Player Progress
# =============================================================================


class KillProgress(BaseModel):
    """Kills still needed to reach a kill-type event."""

    event_id: str
    remaining: int


class UserQuestRecord(BaseModel):
    """A player's position within one quest."""

    quest_id: str
    current_event_id: str | None = None
    completed_event_ids: list[str] = Field(default_factory=list)
    completed: bool = False
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    kill_progress: list[KillProgress] = Field(default_factory=list)

    def advance_to(self, event_id: str) -> None:
        """Move the pointer forward, remembering where it was."""
        if self.current_event_id:
            self.completed_event_ids.append(self.current_event_id)
        self.current_event_id = event_id

    def mark_completed(self) -> None:
        self.completed = True
        self.completed_at = datetime.now(UTC)

    def get_kill_progress(self, event_id: str) -> KillProgress | None:
        return next((k for k in self.kill_progress if k.event_id == event_id), None)


def create_quest_record(quest: Quest, start_event: QuestEvent) -> UserQuestRecord:
    """Start a quest at its start event."""
    return UserQuestRecord(
        quest_id=quest.id,
        current_event_id=start_event.id,
    )
