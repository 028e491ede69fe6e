"""
Actor Models for Neon Grid.

Actors are the non-combat characters players talk to. When none of an
actor's events apply, they cycle through a fixed set of lines.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ActorChatMessage(BaseModel):
    """One line of an actor's small talk."""

    message: str
    order: int = 0
    quest_completion_events: list[str] = Field(default_factory=list)


class Actor(BaseModel):
    """A talkable character."""

    id: str
    name: str
    description: str = ""
    image: str | None = None
    chat_messages: list[ActorChatMessage] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: object) -> str:
        return str(value)

    def ordered_messages(self) -> list[ActorChatMessage]:
        return sorted(self.chat_messages, key=lambda m: m.order)
