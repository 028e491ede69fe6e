"""
Tests for the event service: starting events, numbered choices and the
special choice kinds (combat, skill check, teleport).
"""

from __future__ import annotations

import pytest
from helpers import SequenceRoller, World, make_player, make_template

from src.models.event_tree import Choice, EventNode, StoryEvent
from src.models.message import Channel
from src.models.quest import Quest, QuestEvent, QuestEventChoice, UserQuestRecord
from src.services.events import (
    MOB_FLED,
    TOO_TIRED_FOR_COMBAT,
    TOO_TIRED_FOR_EVENT,
)

# =============================================================================
# Fixtures
# =============================================================================


def _courier_quest() -> Quest:
    return Quest(
        id="q1",
        title="Courier Run",
        events=[
            QuestEvent(
                id="e0",
                is_start=True,
                actor_id="fixer",
                message="Find work.",
                choices=[QuestEventChoice(next_event_id="e1")],
            ),
            QuestEvent(
                id="e1",
                message="Job accepted.",
                choices=[QuestEventChoice(next_event_id="e2")],
            ),
            QuestEvent(id="e2", is_end=True, message="Paid."),
        ],
    )


def _job_board(exit_events: list[str] | None = None) -> StoryEvent:
    return StoryEvent(
        id="board-event",
        title="Job Board",
        actor_id="board",
        root_node=EventNode(
            id="board",
            prompt="The job board flickers.",
            choices=[
                Choice(
                    text="Take the courier job",
                    next_node=EventNode(
                        id="take", prompt="You pocket the chip.", quest_completion_events=["e1"]
                    ),
                ),
                Choice(
                    text="Exit",
                    next_node=EventNode(
                        id="leave", prompt="You walk away.", quest_completion_events=exit_events
                    ),
                ),
            ],
        ),
    )


@pytest.fixture
def roller():
    return SequenceRoller()


@pytest.fixture
def world(roller):
    world = World(roller=roller)
    world.players.add(
        make_player(quests=[UserQuestRecord(quest_id="q1", current_event_id="e0")])
    )
    world.quests.add(_courier_quest())
    world.mobs.add(make_template())
    return world


async def _stored_record(world: World) -> UserQuestRecord:
    player = await world.players.find_by_id("p1")
    return player.get_quest_record("q1")


# =============================================================================
# Plain Choices
# =============================================================================


class TestJobBoard:
    """Tests for plain choices and quest completion events."""

    @pytest.mark.asyncio
    async def test_chat_starts_event(self, world):
        """Test talking to an actor opens their event."""
        world.events.add(_job_board())

        result = await world.engine.chat("p1", "board")

        assert result.message == (
            "The job board flickers.\n\nResponses:\n1. Take the courier job\n2. Exit"
        )
        assert result.has_choices is True
        assert world.engine.in_event("p1")
        assert result.message in world.messenger.texts("p1", Channel.INFO)

    @pytest.mark.asyncio
    async def test_exit_does_not_complete_quest_events(self, world):
        """Test leaving the board leaves the quest where it was."""
        world.events.add(_job_board())
        await world.engine.chat("p1", "board")

        result = await world.engine.choose("p1", "2")

        assert result.message == "You walk away."
        assert result.is_end is True
        assert not world.engine.in_event("p1")
        record = await _stored_record(world)
        assert record.current_event_id == "e0"
        assert record.completed_event_ids == []

    @pytest.mark.asyncio
    async def test_exit_ignores_authored_completion_events(self, world):
        """Test an exit choice never completes events, even ones authored on it."""
        world.events.add(_job_board(exit_events=["e1"]))
        await world.engine.chat("p1", "board")

        await world.engine.choose("p1", "2")

        record = await _stored_record(world)
        assert record.current_event_id == "e0"

    @pytest.mark.asyncio
    async def test_take_job_advances_quest(self, world):
        """Test the other branch completes its quest event."""
        world.events.add(_job_board())
        await world.engine.chat("p1", "board")

        result = await world.engine.choose("p1", "1")

        assert result.message == "You pocket the chip."
        record = await _stored_record(world)
        assert record.current_event_id == "e1"
        assert record.completed_event_ids == ["e0"]
        assert "Job accepted." in world.messenger.texts("p1", Channel.QUESTS)

    @pytest.mark.asyncio
    async def test_invalid_input_keeps_session(self, world):
        """Test bad input reports an error and leaves the event open."""
        world.events.add(_job_board())
        await world.engine.chat("p1", "board")

        result = await world.engine.choose("p1", "9")

        assert result.error is True
        assert result.message == "Invalid choice. Please choose 1-2."
        assert world.engine.in_event("p1")
        assert "Invalid choice. Please choose 1-2." in world.messenger.texts("p1", Channel.ERROR)

    @pytest.mark.asyncio
    async def test_multi_step_history(self, world):
        """Test walking deeper appends to the session history."""
        world.events.add(
            StoryEvent(
                id="alley",
                title="Alley",
                actor_id="vendor",
                root_node=EventNode(
                    id="r",
                    prompt="A vendor waves.",
                    choices=[
                        Choice(
                            text="Approach",
                            next_node=EventNode(
                                id="s",
                                prompt="Want noodles?",
                                choices=[Choice(text="Yes"), Choice(text="No")],
                            ),
                        )
                    ],
                ),
            )
        )
        await world.engine.chat("p1", "vendor")

        await world.engine.choose("p1", "1")
        session = world.engine.state.get_active_event("p1")
        assert [v.node_id for v in session.node_history] == ["r", "s"]

        result = await world.engine.choose("p1", "2")
        assert result.message == "No"
        assert result.is_end is True
        assert not world.engine.in_event("p1")

    @pytest.mark.asyncio
    async def test_choose_without_event(self, world):
        """Test input with no open event does nothing."""
        assert await world.engine.choose("p1", "1") is None

    @pytest.mark.asyncio
    async def test_missing_event_clears_session(self, world):
        """Test a session pointing at a deleted event is dropped."""
        world.engine.state.set_active_event("p1", "gone", EventNode(id="x"))
        assert await world.engine.choose("p1", "1") is None
        assert not world.engine.in_event("p1")

    @pytest.mark.asyncio
    async def test_chat_resumes_open_event(self, world):
        """Test chatting again re-shows the current node."""
        world.events.add(_job_board())
        first = await world.engine.chat("p1", "board")
        second = await world.engine.chat("p1", "board")
        assert second.message == first.message


# =============================================================================
# Event Gating
# =============================================================================


class TestEventAvailability:
    """Tests for which events an actor offers."""

    @pytest.mark.asyncio
    async def test_required_quest_event(self, world):
        """Test events tied to a quest step only open on that step."""
        world.events.add(
            StoryEvent(
                id="drop",
                title="Dropoff",
                actor_id="fixer",
                root_node=EventNode(
                    id="d",
                    prompt="Got the package?",
                    required_quest_id="q1",
                    required_quest_event_id="e1",
                    choices=[Choice(text="Hand it over")],
                ),
            )
        )
        assert await world.engine.event_service.handle_actor_chat(
            await world.players.find_by_id("p1"), "fixer"
        ) is None

        world.players.add(
            make_player(quests=[UserQuestRecord(quest_id="q1", current_event_id="e1")])
        )
        result = await world.engine.event_service.handle_actor_chat(
            await world.players.find_by_id("p1"), "fixer"
        )
        assert result.message.startswith("Got the package?")

    @pytest.mark.asyncio
    async def test_required_quest_checks_unfinished_run(self, world):
        """Test a completed earlier run does not hide the current run's step."""
        world.events.add(
            StoryEvent(
                id="drop",
                title="Dropoff",
                actor_id="fixer",
                root_node=EventNode(
                    id="d",
                    prompt="Got the package?",
                    required_quest_id="q1",
                    required_quest_event_id="e1",
                    choices=[Choice(text="Hand it over")],
                ),
            )
        )
        world.players.add(
            make_player(
                quests=[
                    UserQuestRecord(quest_id="q1", current_event_id="e2", completed=True),
                    UserQuestRecord(quest_id="q1", current_event_id="e1"),
                ]
            )
        )

        result = await world.engine.event_service.handle_actor_chat(
            await world.players.find_by_id("p1"), "fixer"
        )

        assert result.message.startswith("Got the package?")

    @pytest.mark.asyncio
    async def test_too_tired(self, world):
        """Test an exhausted player cannot start an energy event."""
        stats = make_player().stats.model_copy(update={"current_energy": 0})
        world.players.add(make_player(stats=stats))
        world.events.add(_job_board())

        result = await world.engine.chat("p1", "board")

        assert result.message == TOO_TIRED_FOR_EVENT
        assert not world.engine.in_event("p1")

    @pytest.mark.asyncio
    async def test_restricted_root(self, world):
        """Test a class-restricted root turns the player away."""
        world.events.add(
            StoryEvent(
                id="precinct",
                title="Precinct",
                actor_id="sarge",
                root_node=EventNode(
                    id="p",
                    prompt="Badge?",
                    restrictions=["enforcerOnly"],
                    choices=[Choice(text="Show badge")],
                ),
            )
        )
        player = await world.players.find_by_id("p1")
        event = await world.events.find_by_id("precinct")
        assert await world.engine.event_service.start_event(player, event) is None

    @pytest.mark.asyncio
    async def test_root_activates_quest(self, world):
        """Test an event whose root activates a quest starts it."""
        world.quests.add(
            Quest(
                id="q2",
                title="Static",
                events=[QuestEvent(id="s0", is_start=True, message="Listen closely.")],
            )
        )
        world.events.add(
            StoryEvent(
                id="radio",
                title="Radio",
                actor_id="radio",
                root_node=EventNode(
                    id="rr",
                    prompt="The radio crackles.",
                    activate_quest_id="q2",
                    choices=[Choice(text="Turn it off")],
                ),
            )
        )

        await world.engine.chat("p1", "radio")

        player = await world.players.find_by_id("p1")
        assert player.has_active_quest("q2")
        assert "New Quest: Static\n\nListen closely." in world.messenger.texts("p1", Channel.QUESTS)


# =============================================================================
# Special Choices
# =============================================================================


def _single_choice_event(choice: Choice, requires_energy: bool = True) -> StoryEvent:
    return StoryEvent(
        id="special",
        title="Special",
        actor_id="npc",
        requires_energy=requires_energy,
        root_node=EventNode(id="root", prompt="Something stirs.", choices=[choice]),
    )


class TestSkillCheckChoice:
    """Tests for skill check choices."""

    def _hack(self, failure: bool = True) -> Choice:
        return Choice(
            text="Hack the terminal",
            skill_check_stat="tech",
            skill_check_target_number=12,
            next_node=EventNode(id="ok", prompt="Access granted."),
            failure_node=EventNode(id="bad", prompt="Alarms blare.") if failure else None,
        )

    @pytest.mark.asyncio
    async def test_meeting_target_passes(self, world, roller):
        """Test a total equal to the target passes."""
        world.events.add(_single_choice_event(self._hack()))
        await world.engine.chat("p1", "npc")
        roller.extend([7])

        result = await world.engine.choose("p1", "1")

        assert result.message == (
            "Hack the terminal\n\n"
            "SKILL CHECK: TECH (5) + D20 (7) = 12 vs 12\n"
            "SUCCESS! You passed the tech check.\n"
            "\n"
            "Access granted."
        )
        assert result.channel == Channel.SUCCESS
        assert result.skill_check.passed is True

    @pytest.mark.asyncio
    async def test_failure_branch(self, world, roller):
        """Test a miss follows the failure node."""
        world.events.add(_single_choice_event(self._hack()))
        await world.engine.chat("p1", "npc")
        roller.extend([6])

        result = await world.engine.choose("p1", "1")

        assert "FAILURE! You failed the tech check.\n\nAlarms blare." in result.message
        assert result.message.endswith("Alarms blare.")
        assert result.channel == Channel.ERROR

    @pytest.mark.asyncio
    async def test_failure_without_branch_ends(self, world, roller):
        """Test a miss with no failure node ends the event."""
        world.events.add(_single_choice_event(self._hack(failure=False)))
        await world.engine.chat("p1", "npc")
        roller.extend([1])

        result = await world.engine.choose("p1", "1")

        assert result.is_end is True
        assert result.message.endswith("FAILURE! You failed the tech check.\n")
        assert not world.engine.in_event("p1")


class TestCombatChoice:
    """Tests for choices that start a fight."""

    @pytest.mark.asyncio
    async def test_starts_combat(self, world):
        """Test the choice spends energy and opens combat with a queued mob move."""
        world.events.add(_single_choice_event(Choice(text="Ambush", mob_id="rat")))
        await world.engine.chat("p1", "npc")

        result = await world.engine.choose("p1", "1")

        assert result.combat_initiated is True
        assert result.is_end is True
        assert not world.engine.in_event("p1")
        assert world.engine.state.in_combat("p1")
        mob = world.engine.state.get_player_mob("p1")
        assert world.engine.state.get_combat_delay(mob.instance_id) is not None
        stored = await world.players.find_by_id("p1")
        assert stored.stats.current_energy == 19
        assert "Ambush\n\nA hostile creature attacks you!" in world.messenger.texts(
            "p1", Channel.COMBAT
        )

    @pytest.mark.asyncio
    async def test_too_tired(self, world):
        """Test an exhausted player cannot take the fight."""
        stats = make_player().stats.model_copy(update={"current_energy": 0})
        world.players.add(make_player(stats=stats))
        world.events.add(
            _single_choice_event(Choice(text="Ambush", mob_id="rat"), requires_energy=False)
        )
        await world.engine.chat("p1", "npc")

        result = await world.engine.choose("p1", "1")

        assert result.message == TOO_TIRED_FOR_COMBAT
        assert result.is_end is True
        assert not world.engine.in_event("p1")
        assert not world.engine.state.in_combat("p1")
        assert TOO_TIRED_FOR_COMBAT in world.messenger.texts("p1", Channel.ERROR)

    @pytest.mark.asyncio
    async def test_missing_mob(self, world):
        """Test an unknown mob id ends the event without combat."""
        world.events.add(_single_choice_event(Choice(text="Ambush", mob_id="ghost")))
        await world.engine.chat("p1", "npc")

        result = await world.engine.choose("p1", "1")

        assert result.message == f"Ambush\n\n{MOB_FLED}"
        assert not world.engine.state.in_combat("p1")


class TestTeleportChoice:
    """Tests for choices that move the player."""

    @pytest.mark.asyncio
    async def test_teleport(self, world):
        """Test the player is moved to the target location."""
        world.events.add(
            _single_choice_event(Choice(text="Step into the portal", teleport_to_node="room-z"))
        )
        await world.engine.chat("p1", "npc")

        result = await world.engine.choose("p1", "1")

        assert result.teleport_action.target_node == "room-z"
        assert result.message == "Step into the portal"
        stored = await world.players.find_by_id("p1")
        assert stored.current_node == "room-z"
        assert "p1" in world.engine.state.players_at("room-z")
