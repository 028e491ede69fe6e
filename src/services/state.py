"""
Per-player game state for Neon Grid.

Holds the in-flight state that is never persisted: combat sessions,
queued moves, active event sessions, spawned mobs and who is standing
where. Every registry is keyed by player (or combatant) id, and callers
mutate a player's entries only while holding that player's lock from
``PlayerLocks``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field

from src.models.combatant import MobInstance
from src.models.event_tree import EventNode
from src.models.move import Move

logger = logging.getLogger(__name__)


# =============================================================================
# Session Records
# =============================================================================


class CombatSession(BaseModel):
    """The mob a player is currently fighting."""

    mob_instance_id: str
    mob_name: str


class CombatDelayEntry(BaseModel):
    """A committed move counting down to execution."""

    delay: int = Field(ge=0)
    move: Move
    target_id: str


class NodeVisit(BaseModel):
    """One step in an event session's history."""

    node_id: str | None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class EventSession(BaseModel):
    """A player's position inside an event tree."""

    event_id: str
    current_node: EventNode = Field(description="Snapshot of the node being shown")
    actor_id: str | None = None
    is_story_event: bool = False
    node_history: list[NodeVisit] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# =============================================================================
# Locks
# =============================================================================


@dataclass
class PlayerLocks:
    """One asyncio lock per player id."""

    _locks: dict[str, asyncio.Lock] = field(default_factory=dict)

    def lock_for(self, player_id: str) -> asyncio.Lock:
        """Get or create the lock for a player."""
        if player_id not in self._locks:
            self._locks[player_id] = asyncio.Lock()
        return self._locks[player_id]

    @asynccontextmanager
    async def hold(self, player_id: str) -> AsyncIterator[None]:
        """Hold a player's lock for the duration of the block."""
        async with self.lock_for(player_id):
            yield

    def discard(self, player_id: str) -> None:
        """Forget an idle player's lock (on disconnect)."""
        lock = self._locks.get(player_id)
        if lock is not None and not lock.locked():
            del self._locks[player_id]


# =============================================================================
# Registries
# =============================================================================


@dataclass
class GameState:
    """
    In-memory registries for all players' transient state.

    ``session_ttl_seconds`` expires idle event sessions when set.
    """

    session_ttl_seconds: float | None = None

    combat_sessions: dict[str, CombatSession] = field(default_factory=dict)
    combat_delays: dict[str, CombatDelayEntry] = field(default_factory=dict)
    # Stun turns owed by a combatant, folded into its next delay computation
    pending_stuns: dict[str, int] = field(default_factory=dict)
    active_events: dict[str, EventSession] = field(default_factory=dict)
    player_mobs: dict[str, MobInstance] = field(default_factory=dict)
    location_players: dict[str, set[str]] = field(default_factory=dict)
    # player id -> actor id -> index of the next small-talk line
    actor_chat_index: dict[str, dict[str, int]] = field(default_factory=dict)

    # Combat sessions

    def get_combat_session(self, player_id: str) -> CombatSession | None:
        return self.combat_sessions.get(player_id)

    def set_combat_session(self, player_id: str, mob: MobInstance) -> CombatSession:
        session = CombatSession(mob_instance_id=mob.instance_id, mob_name=mob.name)
        self.combat_sessions[player_id] = session
        return session

    def clear_combat_session(self, player_id: str) -> None:
        self.combat_sessions.pop(player_id, None)

    def in_combat(self, player_id: str) -> bool:
        return player_id in self.combat_sessions

    # Combat delays

    def get_combat_delay(self, combatant_id: str) -> CombatDelayEntry | None:
        return self.combat_delays.get(combatant_id)

    def set_combat_delay(self, combatant_id: str, move: Move, target_id: str) -> CombatDelayEntry:
        entry = CombatDelayEntry(delay=move.delay or 1, move=move, target_id=target_id)
        self.combat_delays[combatant_id] = entry
        return entry

    def clear_combat_delay(self, combatant_id: str) -> None:
        self.combat_delays.pop(combatant_id, None)
        self.pending_stuns.pop(combatant_id, None)

    def add_pending_stun(self, combatant_id: str, turns: int) -> None:
        if turns > 0:
            self.pending_stuns[combatant_id] = self.pending_stuns.get(combatant_id, 0) + turns

    def take_pending_stun(self, combatant_id: str) -> int:
        return self.pending_stuns.pop(combatant_id, 0)

    # Spawned mobs

    def get_player_mob(self, player_id: str) -> MobInstance | None:
        return self.player_mobs.get(player_id)

    def set_player_mob(self, player_id: str, mob: MobInstance) -> None:
        self.player_mobs[player_id] = mob

    def clear_player_mob(self, player_id: str) -> None:
        mob = self.player_mobs.pop(player_id, None)
        if mob is not None:
            self.clear_combat_delay(mob.instance_id)

    # Event sessions

    def get_active_event(self, player_id: str, now: datetime | None = None) -> EventSession | None:
        """Get a player's event session, expiring it if it has idled past the TTL."""
        session = self.active_events.get(player_id)
        if session is None or self.session_ttl_seconds is None:
            return session

        now = now or datetime.now(UTC)
        if now - session.updated_at > timedelta(seconds=self.session_ttl_seconds):
            logger.info("Event session %s for %s expired", session.event_id, player_id)
            self.clear_active_event(player_id)
            return None
        return session

    def set_active_event(
        self,
        player_id: str,
        event_id: str,
        node: EventNode,
        actor_id: str | None = None,
        is_story_event: bool = False,
    ) -> EventSession:
        """
        Store or advance a player's event session.

        The node is snapshotted; history grows whenever the node changes.
        """
        snapshot = node.model_copy(deep=True)
        session = self.active_events.get(player_id)

        if session is None or session.event_id != event_id:
            session = EventSession(
                event_id=event_id,
                current_node=snapshot,
                actor_id=actor_id,
                is_story_event=is_story_event,
                node_history=[NodeVisit(node_id=snapshot.id)],
            )
        else:
            if session.current_node.id != snapshot.id:
                session.node_history.append(NodeVisit(node_id=snapshot.id))
            session.current_node = snapshot
            session.actor_id = actor_id
            session.is_story_event = is_story_event
            session.updated_at = datetime.now(UTC)

        self.active_events[player_id] = session
        return session

    def clear_active_event(self, player_id: str) -> None:
        self.active_events.pop(player_id, None)

    def in_event(self, player_id: str) -> bool:
        return self.get_active_event(player_id) is not None

    # Room occupancy

    def add_player_to_location(self, player_id: str, location_id: str) -> None:
        self.location_players.setdefault(location_id, set()).add(player_id)

    def remove_player_from_location(self, player_id: str, location_id: str) -> None:
        players = self.location_players.get(location_id)
        if players is None:
            return
        players.discard(player_id)
        if not players:
            del self.location_players[location_id]

    def players_at(self, location_id: str) -> set[str]:
        return set(self.location_players.get(location_id, set()))

    # Actor small talk

    def next_chat_index(self, player_id: str, actor_id: str, count: int) -> int:
        """Take the player's current line index for an actor and advance it."""
        indices = self.actor_chat_index.setdefault(player_id, {})
        current = indices.get(actor_id, 0) % count
        indices[actor_id] = (current + 1) % count
        return current

    def clear_chat_indices(self, player_id: str) -> None:
        self.actor_chat_index.pop(player_id, None)
