"""
Combat Service for Neon Grid.

Drives a fight between one player and one mob. Each side commits to a
move that takes ``delay`` turns to charge; the scheduler fast-forwards to
whichever move is ready first, resolves it and repeats until the player
has to choose again or someone falls.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel

from src.config import GameConfig
from src.db.interfaces import LocationStore, PlayerStore
from src.models.combatant import Combatant, MobInstance, Player
from src.models.message import Channel
from src.models.move import EffectKind, EffectTarget, Move, ResolvedEffect
from src.services.effects import EffectStore
from src.services.player import PlayerService, status_line
from src.services.state import CombatDelayEntry, GameState
from src.skills.combat import (
    AttackResult,
    WeightDraw,
    apply_stun_effect,
    resolve_attack,
    select_mob_move,
    uniform_draw,
)
from src.skills.dice import Roller, random_fraction, random_int

logger = logging.getLogger(__name__)

COMBAT_HELP_HINT = "Type ? to see available combat commands."

DEFEAT_TEXT = (
    "*** YOU HAVE BEEN DEFEATED ***\n"
    "Everything goes dark...\n\n"
    "You wake up in Neon Plaza with a splitting headache, unsure how you got here. "
    "Your wounds have been treated, but the memory of your defeat lingers."
)

# Called with (player, mob) after a mob is defeated
KillHook = Callable[[Player, MobInstance], Awaitable[object]]


class CombatOutcome(str, Enum):
    """Why the scheduler handed control back."""

    AWAITING_INPUT = "awaiting_input"
    WAITING = "waiting"  # Both moves still charging
    VICTORY = "victory"
    DEFEAT = "defeat"


class CombatCommandResult(BaseModel):
    """Result of a combat command."""

    success: bool
    error: bool = False
    message: str | None = None
    outcome: CombatOutcome | None = None


class CombatStatus(BaseModel):
    """Snapshot of a player's fight."""

    in_combat: bool
    player_health: int | None = None
    enemy_health: int | None = None
    enemy_name: str | None = None


def format_preparing_status(
    player_move: Move,
    player_effective: int,
    player_nominal: int,
    mob: MobInstance,
    mob_move: Move,
    mob_effective: int,
    mob_nominal: int,
) -> str:
    """Status line for two moves that are both still charging."""
    player_flag = " - stunned!" if player_effective > player_nominal else ""
    mob_flag = " - stunned!" if mob_effective > mob_nominal else ""
    return (
        f"You prepare {player_move.name} ({player_effective} delay{player_flag})\n"
        f"{mob.name} is preparing {mob_move.name} ({mob_effective} delay{mob_flag})"
    )


def _health_block(player: Player, mob: MobInstance) -> str:
    return (
        f"Status:\n"
        f"{player.avatar_name}: {player.stats.current_hitpoints} HP\n"
        f"{mob.name}: {mob.stats.current_hitpoints} HP"
    )


# =============================================================================
# Combat Service
# =============================================================================


@dataclass
class CombatService:
    """
    Service for running fights.

    Quest bookkeeping on a kill is not done here: register a KillHook.
    """

    players: PlayerStore
    locations: LocationStore
    state: GameState
    effects: EffectStore
    progression: PlayerService
    config: GameConfig = field(default_factory=GameConfig)
    roller: Roller = random_int
    draw: WeightDraw = uniform_draw
    chance: Callable[[], float] = random_fraction
    kill_hooks: list[KillHook] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def resolve(self, move: Move, attacker: Combatant, defender: Combatant) -> AttackResult:
        """Resolve a move using the effects currently on both combatants."""
        return resolve_attack(
            move,
            attacker,
            defender,
            self.effects.get_effects(attacker.combatant_id),
            self.effects.get_effects(defender.combatant_id),
            self.roller,
        )

    def apply_effect(
        self, effect: ResolvedEffect | None, initiator: Combatant, other: Combatant
    ) -> None:
        """
        Register a resolved effect on the combatant it targets.

        ``self`` effects land on whichever combatant's name matches the
        effect's initiator; ``opponent`` effects land on the other one.
        Stuns only affect delays and are ignored here.
        """
        if effect is None or effect.effect == EffectKind.STUN:
            return

        if initiator.display_name == effect.initiator:
            owner, opponent = initiator, other
        else:
            owner, opponent = other, initiator

        target = owner if effect.target == EffectTarget.SELF else opponent
        self.effects.add_effect(target.combatant_id, effect)

    def select_mob_move(self, mob: MobInstance) -> Move:
        return select_mob_move(mob.moves, self.draw)

    def queue_mob_move(self, player: Player, mob: MobInstance) -> CombatDelayEntry:
        """Commit the mob to its next move."""
        move = self.select_mob_move(mob)
        return self.state.set_combat_delay(mob.instance_id, move, player.id)

    # -------------------------------------------------------------------------
    # Scheduler
    # -------------------------------------------------------------------------

    async def process_combat_until_input(self, player: Player, mob: MobInstance) -> CombatOutcome:
        """
        Run queued moves until the player must act or the fight ends.

        Each pass adds any stun owed to a side onto its delay, advances
        both delays by the smaller one and executes whatever reached 0.
        """
        while True:
            player_entry = self.state.get_combat_delay(player.id)
            mob_entry = self.state.get_combat_delay(mob.instance_id)
            if player_entry is None or mob_entry is None:
                return CombatOutcome.AWAITING_INPUT

            player_nominal = player_entry.delay
            mob_nominal = mob_entry.delay
            player_effective = player_nominal + self.state.take_pending_stun(player.id)
            mob_effective = mob_nominal + self.state.take_pending_stun(mob.instance_id)

            step = min(player_effective, mob_effective)
            player_entry.delay = max(0, player_effective - step)
            mob_entry.delay = max(0, mob_effective - step)

            player_move: Move | None = None
            mob_move: Move | None = None
            if player_entry.delay <= 0:
                player_move = player_entry.move
                self.state.clear_combat_delay(player.id)
            if mob_entry.delay <= 0:
                mob_move = mob_entry.move
                self.state.clear_combat_delay(mob.instance_id)

            if player_move is None and mob_move is None:
                await self.progression.send(
                    player.id,
                    Channel.COMBAT,
                    format_preparing_status(
                        player_entry.move,
                        player_effective,
                        player_nominal,
                        mob,
                        mob_entry.move,
                        mob_effective,
                        mob_nominal,
                    ),
                )
                return CombatOutcome.WAITING

            outcome = await self._execute_exchange(player, mob, player_move, mob_move)
            if outcome is not None:
                return outcome

            if mob_move is not None and mob.stats.current_hitpoints > 0:
                self.queue_mob_move(player, mob)

            if self.state.get_combat_delay(player.id) is None:
                return CombatOutcome.AWAITING_INPUT

    async def _execute_exchange(
        self,
        player: Player,
        mob: MobInstance,
        player_move: Move | None,
        mob_move: Move | None,
    ) -> CombatOutcome | None:
        """Resolve the ready moves (player first). Returns an outcome if the fight ended."""
        player_result: AttackResult | None = None
        mob_result: AttackResult | None = None

        if player_move is not None:
            player_result = self.resolve(player_move, player, mob)
            for effect in player_result.effects:
                self.apply_effect(effect, player, mob)
            if player_result.damage > 0:
                mob.stats.current_hitpoints -= player_result.damage
            if player_result.success:
                self.state.add_pending_stun(
                    mob.instance_id,
                    apply_stun_effect(0, player_move, self.config.stun_delay_per_round),
                )

        if mob_move is not None and mob.stats.current_hitpoints > 0:
            mob_result = self.resolve(mob_move, mob, player)
            for effect in mob_result.effects:
                self.apply_effect(effect, mob, player)
            if mob_result.success:
                self.state.add_pending_stun(
                    player.id, apply_stun_effect(0, mob_move, self.config.stun_delay_per_round)
                )
            if mob_result.damage > 0:
                await self._damage_player(player, mob_result.damage)

        self.effects.tick_round(player.id)
        self.effects.tick_round(mob.instance_id)

        if player.stats.current_hitpoints <= 0:
            text = ""
            if mob_move is not None and mob_result is not None:
                text = f"{mob.name} uses {mob_move.name}! {mob_result.message}\n\n"
            await self._handle_defeat(player, mob, text + DEFEAT_TEXT)
            return CombatOutcome.DEFEAT

        if mob.stats.current_hitpoints <= 0:
            text = ""
            if player_move is not None and player_result is not None:
                text = f"You use {player_move.name}! {player_result.message}\n"
            text += f" {mob.name} has been defeated!\n\nVictory! You have defeated {mob.name}!"
            await self._handle_victory(player, mob, text)
            return CombatOutcome.VICTORY

        parts: list[str] = []
        if player_move is not None and player_result is not None:
            parts.append(
                f"You use {player_move.name}! {player_result.message}\n\n"
                f"{_health_block(player, mob)}"
            )
        if mob_move is not None and mob_result is not None:
            parts.append(f"{mob.name} uses {mob_move.name}! {mob_result.message}")
        await self.progression.send(player.id, Channel.COMBAT, "\n\n".join(parts), image=mob.image)
        return None

    async def _damage_player(self, player: Player, damage: int) -> None:
        player.stats.current_hitpoints -= damage
        await self.progression.send_status(player)
        await self.players.update_fields(
            player.id, {"stats.current_hitpoints": player.stats.current_hitpoints}
        )

    def _end_combat(self, player: Player, mob: MobInstance) -> None:
        self.state.clear_combat_session(player.id)
        self.state.clear_combat_delay(player.id)
        self.state.clear_player_mob(player.id)
        self.effects.clear(player.id)
        self.effects.clear(mob.instance_id)

    async def _handle_victory(self, player: Player, mob: MobInstance, text: str) -> None:
        await self.progression.send(player.id, Channel.COMBAT, text, image=mob.image)

        for hook in self.kill_hooks:
            await hook(player, mob)

        self._end_combat(player, mob)

        experience = mob.experience_points or self.config.default_mob_experience
        try:
            result = await self.progression.award_experience(
                player.id, experience, suppress_message=True
            )
        except Exception as e:
            logger.error("Failed to award experience to %s: %s", player.id, e)
        else:
            if result.success:
                await self.progression.send(
                    player.id, Channel.SUCCESS, f"You gained {experience} experience points!"
                )
                if result.level_up:
                    await self.progression.send(
                        player.id,
                        Channel.SUCCESS,
                        f"Congratulations! You have reached level {result.new_level}!\n"
                        f"All your stats have increased by 1!\n"
                        f"Your maximum health is now {result.new_hitpoints} points.",
                    )

        await self.progression.broadcast(
            player.current_node, f"{player.avatar_name} has defeated {mob.name}!", player.id
        )

    async def _handle_defeat(self, player: Player, mob: MobInstance, text: str) -> None:
        old_location = player.current_node
        self._end_combat(player, mob)
        death = await self.progression.handle_player_death(player.id)
        player.current_node = death.new_location
        player.stats.current_hitpoints = player.stats.hitpoints

        await self.progression.broadcast(
            old_location, f"{player.avatar_name} has been defeated by {mob.name}!", player.id
        )
        await self.progression.send(player.id, Channel.COMBAT, text, image=mob.image)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def _error(self, player: Player, message: str) -> CombatCommandResult:
        await self.progression.send(player.id, Channel.ERROR, message)
        return CombatCommandResult(success=False, error=True, message=message)

    async def _unusable_mob(self, player: Player, mob: MobInstance) -> CombatCommandResult:
        logger.error("Mob %s has no moves, ending fight for %s", mob.mob_id, player.id)
        self._end_combat(player, mob)
        return await self._error(player, "Your target is no longer available.")

    def _current_mob(self, player: Player) -> MobInstance | None:
        """The mob the player is fighting, if the session still points at it."""
        session = self.state.get_combat_session(player.id)
        mob = self.state.get_player_mob(player.id)
        if session is None or mob is None or mob.instance_id != session.mob_instance_id:
            return None
        return mob

    async def handle_fight_command(self, player: Player, target: str | None) -> CombatCommandResult:
        """Start a fight with the mob spawned at the player's location."""
        if not target:
            return await self._error(player, "Usage: fight <mob name>")

        if self.state.in_combat(player.id):
            return await self._error(player, "You are already in combat!")

        mob = self.state.get_player_mob(player.id)
        if mob is None or mob.name.lower() != target.strip().lower():
            return await self._error(player, f'No mob named "{target}" found in current location.')

        self.state.set_combat_session(player.id, mob)
        message = f"You engage in combat with {mob.name}!"
        await self.progression.send(
            player.id, Channel.COMBAT, message, help_text=COMBAT_HELP_HINT, image=mob.image
        )
        await self.progression.broadcast(
            player.current_node, f"{player.avatar_name} engages in combat with {mob.name}!", player.id
        )
        return CombatCommandResult(success=True, message=message)

    async def handle_combat_command(self, player: Player, move_name: str) -> CombatCommandResult:
        """Queue one of the player's moves and run the fight forward."""
        if not self.state.in_combat(player.id):
            return await self._error(player, "You are not in combat!")

        known = await self.progression.get_player_moves(player)
        move = next((m for m in known if m.name.lower() == move_name.strip().lower()), None)
        if move is None:
            return await self._error(player, f'You don\'t know the move "{move_name}"')

        mob = self._current_mob(player)
        if mob is None:
            self.state.clear_combat_session(player.id)
            return await self._error(player, "Your target is no longer available.")
        if not mob.moves:
            return await self._unusable_mob(player, mob)

        if self.state.get_combat_delay(player.id) is not None:
            message = "You are still executing your previous move."
            await self.progression.send(player.id, Channel.COMBAT, message)
            return CombatCommandResult(success=False, error=True, message=message)

        self.state.set_combat_delay(player.id, move, mob.instance_id)
        if self.state.get_combat_delay(mob.instance_id) is None:
            self.queue_mob_move(player, mob)

        outcome = await self.process_combat_until_input(player, mob)
        return CombatCommandResult(success=True, outcome=outcome)

    async def handle_flee_command(self, player: Player) -> CombatCommandResult:
        """
        Try to run away.

        The mob gets a free hit with its first move, then a coin flip
        decides whether the player escapes to a random exit.
        """
        if not self.state.in_combat(player.id):
            return await self._error(player, "You are not in combat!")

        mob = self._current_mob(player)
        if mob is None:
            self.state.clear_combat_session(player.id)
            return await self._error(player, "Your target is no longer available.")
        if not mob.moves:
            return await self._unusable_mob(player, mob)

        mob_move = mob.moves[0]
        mob_result = self.resolve(mob_move, mob, player)
        for effect in mob_result.effects:
            self.apply_effect(effect, mob, player)
        if mob_result.damage > 0:
            await self._damage_player(player, mob_result.damage)

        self.effects.tick_round(player.id)
        self.effects.tick_round(mob.instance_id)

        attack_text = f"{mob.name} uses {mob_move.name}! {mob_result.message}\n\n"
        if player.stats.current_hitpoints <= 0:
            await self._handle_defeat(player, mob, attack_text + DEFEAT_TEXT)
            return CombatCommandResult(success=False, outcome=CombatOutcome.DEFEAT)

        health = f"\n{_health_block(player, mob)}"
        if self.chance() >= self.config.flee_chance:
            message = f"{attack_text}You fail to escape!{health}"
            await self.progression.send(player.id, Channel.COMBAT, message, image=mob.image)
            return CombatCommandResult(success=False, message=message)

        exits = await self.locations.get_exits(player.current_node) if player.current_node else []
        if not exits:
            return await self._error(player, "There is nowhere to flee to!")

        old_location = player.current_node
        self._end_combat(player, mob)
        destination = exits[min(int(self.chance() * len(exits)), len(exits) - 1)]
        await self.progression.move_player(player, destination)

        message = f"{attack_text}You successfully flee from combat!{health}"
        await self.progression.send(player.id, Channel.COMBAT, message, image=mob.image)
        await self.progression.broadcast(
            old_location, f"{player.avatar_name} flees from combat with {mob.name}!", player.id
        )
        return CombatCommandResult(success=True, message=message)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_combat_status(self, player_id: str) -> CombatStatus:
        """Report whether a player is fighting and both sides' health."""
        if not self.state.in_combat(player_id):
            return CombatStatus(in_combat=False)

        player = await self.players.find_by_id(player_id)
        mob = self._current_mob(player) if player else None
        if player is None or mob is None:
            self.state.clear_combat_session(player_id)
            return CombatStatus(in_combat=False)

        return CombatStatus(
            in_combat=True,
            player_health=player.stats.current_hitpoints,
            enemy_health=mob.stats.current_hitpoints,
            enemy_name=mob.name,
        )

    def cleanup_player(self, player_id: str) -> None:
        """Drop every trace of a player's fight (disconnect)."""
        mob = self.state.get_player_mob(player_id)
        if mob is not None:
            self.effects.clear(mob.instance_id)
        self.state.clear_combat_session(player_id)
        self.state.clear_combat_delay(player_id)
        self.state.clear_player_mob(player_id)
        self.effects.clear(player_id)
