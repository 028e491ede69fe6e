"""
Tests for the player service: experience, classes, death and movement.
"""

from __future__ import annotations

import pytest
from helpers import World, make_move, make_player, make_template

from src.models.character_class import CharacterClass, MoveGrowth
from src.models.combatant import CombatStats, create_mob_instance
from src.models.message import Channel
from src.models.move import EffectKind, EffectTarget, ResolvedEffect
from src.services.player import status_line


@pytest.fixture
def world():
    world = World()
    world.classes.add(
        CharacterClass(
            id="c1",
            name="Hacker",
            primary_stat="tech",
            secondary_stats=["reflexes", "tech"],
            move_growth=[
                MoveGrowth(level=1, move_id="hack"),
                MoveGrowth(level=3, move_id="overload"),
            ],
        )
    )
    world.moves.add(make_move("overload"))
    world.players.add(make_player())
    return world


@pytest.fixture
def service(world):
    return world.engine.progression


class TestAwardExperience:
    """Tests for award_experience."""

    @pytest.mark.asyncio
    async def test_below_threshold(self, world, service):
        """Test experience accumulates without a level-up."""
        result = await service.award_experience("p1", 60)

        assert result.success is True
        assert result.level_up is False
        stored = await world.players.find_by_id("p1")
        assert stored.stats.experience == 60
        assert stored.stats.level == 1

    @pytest.mark.asyncio
    async def test_level_up(self, world, service):
        """Test reaching 100 experience raises the level and hitpoints."""
        result = await service.award_experience("p1", 100)

        assert result.level_up is True
        assert result.new_level == 2
        assert result.new_hitpoints == 41
        stored = await world.players.find_by_id("p1")
        assert stored.stats.body == 6
        assert stored.stats.current_hitpoints == 41
        assert world.messenger.texts("p1", Channel.SUCCESS) == [
            "Congratulations! You have reached level 2!\n"
            "Your stats have increased!\n"
            "Your maximum health is now 41 points."
        ]
        assert world.messenger.texts("p1", Channel.PLAYER_STATUS) == [
            "HP: 41/41 | Energy: 20/20"
        ]

    @pytest.mark.asyncio
    async def test_suppressed_announcement(self, world, service):
        """Test callers can word the level-up themselves."""
        await service.award_experience("p1", 100, suppress_message=True)
        assert world.messenger.texts("p1", Channel.SUCCESS) == []

    @pytest.mark.asyncio
    async def test_skips_levels(self, world, service):
        """Test a large award can pass several thresholds at once."""
        result = await service.award_experience("p1", 500)
        assert result.new_level == 4

    @pytest.mark.asyncio
    async def test_unlocks_class_moves(self, world, service):
        """Test levelling into a class growth entry teaches the move."""
        await service.set_player_class("p1", "c1")

        result = await service.award_experience("p1", 241)

        assert result.unlocked_moves == ["Overload"]
        stored = await world.players.find_by_id("p1")
        assert stored.moves == ["hack", "overload"]
        assert "You've unlocked new move: Overload!" in world.messenger.texts("p1", Channel.SUCCESS)

    @pytest.mark.asyncio
    async def test_defeated_player_respawns(self, world, service):
        """Test a player at 0 HP is handled as dead instead."""
        stats = CombatStats(hitpoints=30, current_hitpoints=0)
        world.players.add(make_player(stats=stats))

        result = await service.award_experience("p1", 100)

        assert result.success is False
        stored = await world.players.find_by_id("p1")
        assert stored.stats.experience == 0
        assert stored.stats.current_hitpoints == 30
        assert stored.current_node == world.engine.config.respawn_node

    @pytest.mark.asyncio
    async def test_unknown_player(self, service):
        """Test awarding a missing player raises."""
        with pytest.raises(ValueError):
            await service.award_experience("ghost", 10)


class TestSetPlayerClass:
    """Tests for set_player_class."""

    @pytest.mark.asyncio
    async def test_derives_stats(self, world, service):
        """Test the class spread and hitpoint formula."""
        result = await service.set_player_class("p1", "c1")

        assert result.class_name == "Hacker"
        assert result.hitpoints == 14
        assert result.move_count == 1
        stored = await world.players.find_by_id("p1")
        assert stored.class_id == "c1"
        assert stored.stats.tech == 4
        assert stored.stats.reflexes == 3
        assert stored.stats.body == 2
        assert stored.stats.current_hitpoints == 14

    @pytest.mark.asyncio
    async def test_unknown_class(self, service):
        """Test a missing class raises."""
        with pytest.raises(ValueError, match="Class nope not found"):
            await service.set_player_class("p1", "nope")


class TestDeathAndMovement:
    """Tests for handle_player_death and move_player."""

    @pytest.mark.asyncio
    async def test_death_clears_combat_state(self, world, service):
        """Test dying drops the fight and every effect."""
        mob = create_mob_instance(make_template())
        state = world.engine.state
        state.set_player_mob("p1", mob)
        state.set_combat_session("p1", mob)
        effect = ResolvedEffect(
            effect=EffectKind.REDUCE_STAT,
            target=EffectTarget.OPPONENT,
            stat="body",
            amount=1,
            initiator="Nova",
        )
        world.engine.effects.add_effect("p1", effect)
        world.engine.effects.add_effect(mob.instance_id, effect)

        result = await service.handle_player_death("p1")

        assert result.new_location == world.engine.config.respawn_node
        assert not state.in_combat("p1")
        assert state.get_player_mob("p1") is None
        assert world.engine.effects.get_effects("p1") == []
        assert world.engine.effects.get_effects(mob.instance_id) == []
        assert "p1" in state.players_at(result.new_location)

    @pytest.mark.asyncio
    async def test_move_player(self, world, service):
        """Test moving updates occupancy and tells both rooms."""
        state = world.engine.state
        state.add_player_to_location("p1", "room-a")
        state.set_player_mob("p1", create_mob_instance(make_template()))
        player = await service.get_player("p1")

        await service.move_player(player, "room-b")

        assert player.current_node == "room-b"
        assert "p1" not in state.players_at("room-a")
        assert "p1" in state.players_at("room-b")
        assert state.get_player_mob("p1") is None
        assert world.messenger.broadcasts("room-a") == ["Nova has left."]
        assert world.messenger.broadcasts("room-b") == ["Nova has arrived."]


def test_status_line():
    """Test the status channel format."""
    player = make_player(stats=CombatStats(hitpoints=30, current_hitpoints=12, current_energy=7))
    assert status_line(player) == "HP: 12/30 | Energy: 7/20"
