"""
Player Service for Neon Grid.

Owns the durable side of a player: experience and levels, class grants,
death and respawn, and movement between locations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from src.config import GameConfig
from src.db.interfaces import ClassStore, Messenger, MoveStore, PlayerStore
from src.models.combatant import Player
from src.models.message import Channel, MessagePayload
from src.models.move import Move, MoveType
from src.services.effects import EffectStore
from src.services.state import GameState
from src.skills.progression import apply_level_up, derive_class_stats, level_for_experience

logger = logging.getLogger(__name__)


# =============================================================================
# Result Models
# =============================================================================


class ExperienceResult(BaseModel):
    """Result of awarding experience."""

    success: bool
    level_up: bool = False
    old_level: int = 1
    new_level: int = 1
    experience_gained: int = 0
    total_experience: int = 0
    new_hitpoints: int | None = None
    unlocked_moves: list[str] = Field(default_factory=list)
    message: str | None = None


class ClassChangeResult(BaseModel):
    """Result of granting a class."""

    success: bool
    class_name: str
    hitpoints: int
    move_count: int


class DeathResult(BaseModel):
    """Result of handling a player's defeat."""

    success: bool
    new_location: str
    player_died: bool = True


def status_line(player: Player) -> str:
    """The HP/energy line shown on the status channel."""
    stats = player.stats
    return (
        f"HP: {stats.current_hitpoints}/{stats.hitpoints} | "
        f"Energy: {stats.current_energy}/{stats.energy}"
    )


# =============================================================================
# Player Service
# =============================================================================


@dataclass
class PlayerService:
    """Service for player progression and movement."""

    players: PlayerStore
    classes: ClassStore
    moves: MoveStore
    messenger: Messenger
    state: GameState
    effects: EffectStore
    config: GameConfig = field(default_factory=GameConfig)

    async def get_player(self, player_id: str) -> Player:
        """
        Load a player or fail.

        Raises:
            ValueError: If the player does not exist
        """
        player = await self.players.find_by_id(player_id)
        if player is None:
            raise ValueError(f"Player {player_id} not found")
        return player

    async def send(
        self,
        player_id: str,
        channel: Channel,
        text: str,
        help_text: str | None = None,
        image: str | None = None,
    ) -> None:
        """Send console text to a player."""
        await self.messenger.send_to_player(
            player_id, channel, MessagePayload(text=text, help_text=help_text, image=image)
        )

    async def broadcast(
        self, location_id: str | None, text: str, exclude_player_id: str | None = None
    ) -> None:
        """Send a system message to a location, if the player is somewhere."""
        if not location_id:
            return
        await self.messenger.broadcast_to_location(
            location_id, MessagePayload(text=text), exclude_player_id=exclude_player_id
        )

    async def send_status(self, player: Player) -> None:
        await self.send(player.id, Channel.PLAYER_STATUS, status_line(player))

    # -------------------------------------------------------------------------
    # Experience
    # -------------------------------------------------------------------------

    async def award_experience(
        self, player_id: str, amount: int, suppress_message: bool = False
    ) -> ExperienceResult:
        """
        Add experience and apply any level-ups.

        A player at 0 HP is handled as a death instead and gains nothing.

        Args:
            player_id: Player to award
            amount: Experience points
            suppress_message: Skip the level-up announcement (callers that
                word their own)

        Returns:
            ExperienceResult describing the change
        """
        player = await self.get_player(player_id)

        if player.stats.current_hitpoints <= 0:
            await self.handle_player_death(player_id)
            return ExperienceResult(success=False, message="Player was defeated")

        old_level = player.stats.level
        total = player.stats.experience + amount
        new_level = level_for_experience(old_level, total)

        result = ExperienceResult(
            success=True,
            old_level=old_level,
            new_level=new_level,
            experience_gained=amount,
            total_experience=total,
        )
        player.stats.experience = total

        if new_level > old_level:
            result.level_up = True
            result.new_hitpoints = apply_level_up(player.stats, new_level)
            result.unlocked_moves = await self._unlock_class_moves(player, old_level, new_level)
            logger.info("Player %s reached level %d", player.id, new_level)

        await self.players.save(player)

        if result.unlocked_moves:
            names = ", ".join(result.unlocked_moves)
            noun = "moves" if len(result.unlocked_moves) > 1 else "move"
            await self.send(player.id, Channel.SUCCESS, f"You've unlocked new {noun}: {names}!")

        if result.level_up and not suppress_message:
            await self.send(
                player.id,
                Channel.SUCCESS,
                f"Congratulations! You have reached level {new_level}!\n"
                f"Your stats have increased!\n"
                f"Your maximum health is now {player.stats.hitpoints} points.",
            )

        await self.send_status(player)
        return result

    async def _unlock_class_moves(self, player: Player, old_level: int, new_level: int) -> list[str]:
        """Refresh the player's class moves, returning names of newly unlocked ones."""
        if not player.class_id:
            return []
        character_class = await self.classes.find_by_id(player.class_id)
        if character_class is None:
            logger.warning("Class %s for player %s not found", player.class_id, player.id)
            return []

        player.moves = character_class.moves_for_level(new_level)
        unlocked: list[str] = []
        for level in range(old_level + 1, new_level + 1):
            for move_id in character_class.moves_unlocked_at(level):
                move = await self.moves.find_by_id(move_id)
                unlocked.append(move.name if move else move_id)
        return unlocked

    # -------------------------------------------------------------------------
    # Classes
    # -------------------------------------------------------------------------

    async def set_player_class(self, player_id: str, class_id: str) -> ClassChangeResult:
        """
        Grant a class, rebuilding stats, hitpoints and moves.

        Raises:
            ValueError: If the player or class does not exist
        """
        player = await self.get_player(player_id)
        character_class = await self.classes.find_by_id(class_id)
        if character_class is None:
            raise ValueError(f"Class {class_id} not found")

        player.stats = derive_class_stats(player.stats, character_class)
        player.class_id = character_class.id
        player.class_name = character_class.name
        player.moves = character_class.moves_for_level(player.stats.level)
        await self.players.save(player)

        logger.info(
            "Player %s is now %s (level %d, %d HP)",
            player.id,
            character_class.name,
            player.stats.level,
            player.stats.hitpoints,
        )
        return ClassChangeResult(
            success=True,
            class_name=character_class.name,
            hitpoints=player.stats.hitpoints,
            move_count=len(player.moves),
        )

    # -------------------------------------------------------------------------
    # Death and Movement
    # -------------------------------------------------------------------------

    async def handle_player_death(self, player_id: str) -> DeathResult:
        """Heal the player, send them to the respawn point and drop all combat state."""
        player = await self.get_player(player_id)
        old_location = player.current_node

        player.stats.current_hitpoints = player.stats.hitpoints
        player.current_node = self.config.respawn_node
        await self.players.save(player)

        if old_location:
            self.state.remove_player_from_location(player.id, old_location)
        self.state.add_player_to_location(player.id, player.current_node)

        mob = self.state.get_player_mob(player.id)
        if mob is not None:
            self.effects.clear(mob.instance_id)
        self.state.clear_combat_session(player.id)
        self.state.clear_combat_delay(player.id)
        self.state.clear_player_mob(player.id)
        self.effects.clear(player.id)

        await self.send_status(player)
        return DeathResult(success=True, new_location=player.current_node)

    async def move_player(self, player: Player, location_id: str) -> Player:
        """Relocate a player, updating occupancy and dropping their spawned mob."""
        old_location = player.current_node
        updated = await self.players.update_fields(player.id, {"current_node": location_id})
        if updated is None:
            raise ValueError(f"Player {player.id} not found")
        player.current_node = location_id

        if old_location:
            self.state.remove_player_from_location(player.id, old_location)
            await self.broadcast(old_location, f"{player.avatar_name} has left.", player.id)
        self.state.add_player_to_location(player.id, location_id)
        await self.broadcast(location_id, f"{player.avatar_name} has arrived.", player.id)

        self.state.clear_player_mob(player.id)
        return player

    # -------------------------------------------------------------------------
    # Moves
    # -------------------------------------------------------------------------

    async def get_player_moves(self, player: Player) -> list[Move]:
        """Resolve the player's known move ids, skipping missing ones."""
        known: list[Move] = []
        for move_id in player.moves:
            move = await self.moves.find_by_id(move_id)
            if move is None:
                logger.warning("Move %s known by %s not found", move_id, player.id)
                continue
            known.append(move)
        return known

    async def format_combat_help(self, player: Player) -> str:
        """Combat help text listing the player's moves."""
        lines = []
        for move in await self.get_player_moves(player):
            kind = "Combat move" if move.move_type == MoveType.ATTACK else "Special move"
            lines.append(f"{move.name} ...........{kind}: {move.help_description}")

        return "\n".join(
            [
                "Combat Commands:",
                "---------------",
                *lines,
                "flee.............Attempt to escape combat",
                "?.................Display this help message",
            ]
        )
