"""
Choice Gate Skill.

Decides which of a node's choices a player may see, maps numeric input
onto them and renders a node for the console.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import BaseModel

from src.models.combatant import Player
from src.models.event_tree import Choice, EventNode, Restriction

logger = logging.getLogger(__name__)

ENFORCER_CLASS = "Enforcer"


class ValidChoice(BaseModel):
    """A visible choice and its index in the node's full choice list."""

    choice: Choice
    original_index: int


class ChoiceValidation(BaseModel):
    """Result of mapping player input onto the visible choices."""

    error: bool
    message: str | None = None
    selected: ValidChoice | None = None


class FormattedResponse(BaseModel):
    """A node rendered as console text."""

    message: str
    has_choices: bool
    is_end: bool


def _passes_restrictions(restrictions: Sequence[Restriction], player: Player) -> bool:
    for restriction in restrictions:
        if restriction == Restriction.NO_CLASS and player.class_id:
            return False
        if restriction == Restriction.ENFORCER_ONLY and player.class_name != ENFORCER_CLASS:
            return False
    return True


def filter_choices_by_restrictions(
    choices: Sequence[Choice], player: Player
) -> list[ValidChoice]:
    """
    Filter choices down to those visible to a player.

    A choice is hidden when its next node:
    - activates a quest the player already holds (active or completed)
    - is blocked by a quest event the player has completed or is on
    - carries a class restriction the player fails

    Order and original indices are preserved.
    """
    completed_ids, current_ids = player.quest_event_ids()
    seen_ids = completed_ids | current_ids

    visible: list[ValidChoice] = []
    for index, choice in enumerate(choices):
        node = choice.next_node
        if node is not None:
            if node.activate_quest_id and player.has_quest(node.activate_quest_id):
                continue
            if seen_ids.intersection(node.block_if_quest_event_ids):
                logger.debug("Choice %r blocked by quest events for %s", choice.text, player.id)
                continue
            if not _passes_restrictions(node.restrictions, player):
                continue
        visible.append(ValidChoice(choice=choice, original_index=index))
    return visible


def node_is_visible(node: EventNode, player: Player) -> bool:
    """True if a node's own class restrictions admit the player."""
    return _passes_restrictions(node.restrictions, player)


def validate_choice_input(text: str, valid_choices: Sequence[ValidChoice]) -> ChoiceValidation:
    """
    Map 1-based numeric input onto the visible choices.

    Returns an error result for non-numeric or out-of-range input.
    """
    count = len(valid_choices)
    try:
        number = int(str(text).strip())
    except ValueError:
        return ChoiceValidation(
            error=True,
            message=f"Please enter a number between 1 and {count} to choose your response.",
        )

    if number < 1 or number > count:
        return ChoiceValidation(error=True, message=f"Invalid choice. Please choose 1-{count}.")

    return ChoiceValidation(error=False, selected=valid_choices[number - 1])


def format_response(node: EventNode, player: Player) -> FormattedResponse:
    """Render a node's prompt followed by its numbered visible choices."""
    response = f"{node.prompt}\n\n"
    valid_choices = filter_choices_by_restrictions(node.choices, player)

    if valid_choices:
        response += "Responses:\n"
        for number, valid in enumerate(valid_choices, start=1):
            response += f"{number}. {valid.choice.text}\n"

    has_choices = bool(valid_choices)
    return FormattedResponse(message=response.strip(), has_choices=has_choices, is_end=not has_choices)
