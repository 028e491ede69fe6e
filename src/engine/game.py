"""
Game Engine for Neon Grid.

The orchestration layer that turns player commands into service calls.
Every entry point runs under the acting player's lock, so one player's
combat, event and quest state is never touched by two commands at once
while different players proceed concurrently.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from src.config import GameConfig
from src.db.interfaces import (
    ActorStore,
    ClassStore,
    EventStore,
    LocationStore,
    Messenger,
    MobFactory,
    MoveStore,
    PlayerStore,
    QuestStore,
)
from src.models.combatant import MobInstance, Player
from src.models.message import Channel
from src.services.actors import ActorService
from src.services.combat import CombatCommandResult, CombatService, CombatStatus
from src.services.effects import EffectStore
from src.services.events import EventResult, EventService
from src.services.player import PlayerService
from src.services.quest import ActiveQuestInfo, QuestProgressionService, QuestUpdate
from src.services.state import GameState, PlayerLocks
from src.skills.combat import WeightDraw, pick_spawn, uniform_draw
from src.skills.dice import Roller, random_fraction, random_int

logger = logging.getLogger(__name__)

HELP_COMMAND = "?"
FLEE_COMMAND = "flee"


@dataclass
class GameEngine:
    """
    Main game engine wiring stores to services.

    Randomness is injectable (``roller``, ``draw``, ``chance``) so whole
    fights can be replayed deterministically.
    """

    players: PlayerStore
    quests: QuestStore
    classes: ClassStore
    moves: MoveStore
    events: EventStore
    locations: LocationStore
    mobs: MobFactory
    messenger: Messenger
    actors: ActorStore
    config: GameConfig = field(default_factory=GameConfig)
    roller: Roller = random_int
    draw: WeightDraw = uniform_draw
    chance: Callable[[], float] = random_fraction

    # Components (initialized in __post_init__)
    state: GameState = field(init=False)
    effects: EffectStore = field(init=False)
    locks: PlayerLocks = field(init=False)
    progression: PlayerService = field(init=False)
    combat: CombatService = field(init=False)
    quest_service: QuestProgressionService = field(init=False)
    event_service: EventService = field(init=False)
    actor_service: ActorService = field(init=False)

    def __post_init__(self) -> None:
        """Initialize engine components."""
        self.state = GameState(session_ttl_seconds=self.config.session_ttl_seconds)
        self.effects = EffectStore()
        self.locks = PlayerLocks()
        self.progression = PlayerService(
            players=self.players,
            classes=self.classes,
            moves=self.moves,
            messenger=self.messenger,
            state=self.state,
            effects=self.effects,
            config=self.config,
        )
        self.combat = CombatService(
            players=self.players,
            locations=self.locations,
            state=self.state,
            effects=self.effects,
            progression=self.progression,
            config=self.config,
            roller=self.roller,
            draw=self.draw,
            chance=self.chance,
        )
        self.quest_service = QuestProgressionService(
            players=self.players,
            quests=self.quests,
            classes=self.classes,
            progression=self.progression,
        )
        self.event_service = EventService(
            players=self.players,
            events=self.events,
            mobs=self.mobs,
            state=self.state,
            combat=self.combat,
            quests=self.quest_service,
            progression=self.progression,
            roller=self.roller,
        )
        self.actor_service = ActorService(
            actors=self.actors, state=self.state, quests=self.quest_service
        )
        self.combat.kill_hooks.append(self._on_mob_killed)

    async def _on_mob_killed(self, player: Player, mob: MobInstance) -> list[QuestUpdate]:
        return await self.quest_service.handle_mob_kill(player, mob.mob_id, mob.name)

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    async def connect(self, player_id: str) -> Player:
        """Place a player in their room and show their status."""
        async with self.locks.hold(player_id):
            player = await self.progression.get_player(player_id)
            if player.current_node:
                self.state.add_player_to_location(player.id, player.current_node)
                await self._spawn_on_entry(player)
            await self.progression.send_status(player)
            return player

    async def disconnect(self, player_id: str) -> None:
        """Drop every piece of transient state a player owns."""
        async with self.locks.hold(player_id):
            self.combat.cleanup_player(player_id)
            self.state.clear_active_event(player_id)
            self.state.clear_chat_indices(player_id)
            player = await self.players.find_by_id(player_id)
            if player is not None and player.current_node:
                self.state.remove_player_from_location(player_id, player.current_node)
        self.locks.discard(player_id)
        logger.info("Player %s disconnected", player_id)

    async def move(self, player_id: str, location_id: str) -> Player:
        """Walk a player to another location."""
        async with self.locks.hold(player_id):
            if self.state.in_combat(player_id):
                raise ValueError("Cannot leave a location while in combat")
            player = await self.progression.get_player(player_id)
            player = await self.progression.move_player(player, location_id)
            await self._spawn_on_entry(player)
            return player

    async def spawn_mob(self, player_id: str, template_id: str) -> MobInstance | None:
        """Spawn a mob for a player to fight at their location."""
        async with self.locks.hold(player_id):
            return await self._spawn(player_id, template_id)

    async def _spawn(self, player_id: str, template_id: str) -> MobInstance | None:
        mob = await self.mobs.instantiate(template_id)
        if mob is None:
            logger.warning("Mob template %s not found", template_id)
            return None
        self.state.set_player_mob(player_id, mob)
        return mob

    async def _spawn_on_entry(self, player: Player) -> MobInstance | None:
        """Roll the location's spawn table unless the player already has a mob."""
        if self.state.get_player_mob(player.id) is not None:
            logger.debug("Player %s already has a mob, skipping spawn", player.id)
            return None

        spawns = await self.locations.get_spawns(player.current_node)
        template_id = pick_spawn(spawns, self.chance)
        if template_id is None:
            return None

        mob = await self._spawn(player.id, template_id)
        if mob is not None:
            logger.debug(
                "Spawned %s (%s) for %s at %s",
                mob.instance_id,
                mob.name,
                player.id,
                player.current_node,
            )
        return mob

    # -------------------------------------------------------------------------
    # Combat
    # -------------------------------------------------------------------------

    async def fight(self, player_id: str, target: str | None) -> CombatCommandResult:
        async with self.locks.hold(player_id):
            player = await self.progression.get_player(player_id)
            return await self.combat.handle_fight_command(player, target)

    async def combat_command(self, player_id: str, text: str) -> CombatCommandResult:
        """
        Handle input typed during combat.

        ``?`` shows the move list, ``flee`` tries to escape and anything
        else is taken as a move name.
        """
        command = text.strip()
        if command.lower() == FLEE_COMMAND:
            return await self.flee(player_id)

        async with self.locks.hold(player_id):
            player = await self.progression.get_player(player_id)
            if command == HELP_COMMAND:
                help_text = await self.progression.format_combat_help(player)
                await self.progression.send(player.id, Channel.INFO, help_text)
                return CombatCommandResult(success=True, message=help_text)
            return await self.combat.handle_combat_command(player, command)

    async def flee(self, player_id: str) -> CombatCommandResult:
        async with self.locks.hold(player_id):
            player = await self.progression.get_player(player_id)
            return await self.combat.handle_flee_command(player)

    async def combat_status(self, player_id: str) -> CombatStatus:
        async with self.locks.hold(player_id):
            return await self.combat.get_combat_status(player_id)

    # -------------------------------------------------------------------------
    # Events and Quests
    # -------------------------------------------------------------------------

    async def chat(self, player_id: str, actor_id: str) -> EventResult | None:
        """
        Talk to an actor, opening or resuming one of their events.

        With no event to offer the actor falls back to small talk.
        """
        async with self.locks.hold(player_id):
            player = await self.progression.get_player(player_id)
            result = await self.event_service.handle_actor_chat(player, actor_id)
            if result is None:
                await self.quest_service.handle_quest_progression(player, actor_id, [])
                result = await self.actor_service.handle_small_talk(player, actor_id)
            await self._deliver(player, result)
            return result

    async def choose(self, player_id: str, text: str) -> EventResult | None:
        """Answer the open event with a numbered choice."""
        async with self.locks.hold(player_id):
            player = await self.progression.get_player(player_id)
            result = await self.event_service.process_event_input(player, text)
            await self._deliver(player, result)
            return result

    def in_event(self, player_id: str) -> bool:
        return self.event_service.is_in_event(player_id)

    async def active_quests(self, player_id: str) -> list[ActiveQuestInfo]:
        async with self.locks.hold(player_id):
            player = await self.progression.get_player(player_id)
            return await self.quest_service.get_active_quests(player)

    async def _deliver(self, player: Player, result: EventResult | None) -> None:
        """Send an event result to the player and carry out any teleport."""
        if result is None:
            return
        if result.message:
            await self.progression.send(player.id, result.channel, result.message)
        if result.teleport_action is not None:
            fresh = await self.progression.get_player(player.id)
            fresh = await self.progression.move_player(fresh, result.teleport_action.target_node)
            await self._spawn_on_entry(fresh)
