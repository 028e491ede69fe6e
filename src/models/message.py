"""
Outbound message models for Neon Grid.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class Channel(str, Enum):
    """Client console channels a player message can be routed to."""

    COMBAT = "combat"
    ERROR = "error"
    SUCCESS = "success"
    INFO = "info"
    QUESTS = "quests"
    CHAT = "chat"
    PLAYER_STATUS = "playerStatus"
    LIST = "list"


class MessagePayload(BaseModel):
    """Text sent to a player or broadcast to a location."""

    text: str
    help_text: str | None = None
    image: str | None = None
