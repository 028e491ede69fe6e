"""
Event Tree Models for Neon Grid.

Story events and conversations are trees of nodes: a prompt plus a list
of choices, each of which may lead to another node. Trees can be deep,
so every traversal here walks an explicit queue instead of recursing.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

ROOT_PATH = "rootNode"


class Restriction(str, Enum):
    """Class gates that hide a node from some players."""

    NO_CLASS = "noClass"
    ENFORCER_ONLY = "enforcerOnly"


def _coerce_id(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


# =============================================================================
# Nodes and Choices
# =============================================================================


class Choice(BaseModel):
    """
    One selectable option under a node.

    Besides branching to ``next_node`` a choice may start combat
    (``mob_id``), roll a skill check, teleport the player or carry quest
    completion events. Class gating lives on ``next_node.restrictions``.
    """

    text: str
    next_node: EventNode | None = None
    quest_completion_events: list[str] | None = None
    activate_quest_id: str | None = None
    mob_id: str | None = None
    teleport_to_node: str | None = None
    skill_check_stat: str | None = None
    skill_check_target_number: int | None = None
    failure_node: EventNode | None = None

    @field_validator("activate_quest_id", "mob_id", "teleport_to_node", mode="before")
    @classmethod
    def coerce_ids(cls, value: object) -> str | None:
        return _coerce_id(value)

    @property
    def is_combat(self) -> bool:
        return bool(self.mob_id)

    @property
    def is_skill_check(self) -> bool:
        return bool(self.skill_check_stat) and bool(self.skill_check_target_number)

    @property
    def is_exit(self) -> bool:
        return "exit" in self.text.lower()


class EventNode(BaseModel):
    """A prompt and the choices offered under it."""

    id: str | None = None
    prompt: str = ""
    choices: list[Choice] = Field(default_factory=list)
    restrictions: list[Restriction] = Field(default_factory=list)
    required_quest_id: str | None = None
    required_quest_event_id: str | None = None
    activate_quest_id: str | None = None
    # None and [] are distinct until ensure_consistent_quest_events runs
    quest_completion_events: list[str] | None = None
    block_if_quest_event_ids: list[str] = Field(default_factory=list)

    @field_validator(
        "id",
        "required_quest_id",
        "required_quest_event_id",
        "activate_quest_id",
        mode="before",
    )
    @classmethod
    def coerce_ids(cls, value: object) -> str | None:
        return _coerce_id(value)


Choice.model_rebuild()
EventNode.model_rebuild()


class StoryEvent(BaseModel):
    """An authored event tree, optionally bound to an actor."""

    id: str
    title: str
    actor_id: str | None = None
    requires_energy: bool = True
    is_story_event: bool = False
    root_node: EventNode

    @model_validator(mode="after")
    def assign_ids(self) -> StoryEvent:
        assign_node_ids(self.root_node)
        return self


# =============================================================================
# Traversal
# =============================================================================


def iter_nodes(root: EventNode) -> Iterator[tuple[EventNode, str]]:
    """Breadth-first walk yielding (node, path) pairs."""
    queue: deque[tuple[EventNode, str]] = deque([(root, ROOT_PATH)])
    while queue:
        node, path = queue.popleft()
        yield node, path
        for index, choice in enumerate(node.choices):
            if choice.next_node is not None:
                queue.append((choice.next_node, f"{path}.choices[{index}].nextNode"))
            if choice.failure_node is not None:
                queue.append((choice.failure_node, f"{path}.choices[{index}].failureNode"))


def assign_node_ids(root: EventNode) -> EventNode:
    """Give every node without an id a stable id derived from its path."""
    for node, path in iter_nodes(root):
        if node.id is None:
            node.id = f"generated_{path.replace('.', '_')}"
    return root


def find_node(root: EventNode, node_id: str | int | None) -> EventNode | None:
    """
    Find a node by id using breadth-first search.

    Args:
        root: Root of the tree
        node_id: Id to look for; raw or stringified forms both match

    Returns:
        The matching node, the root when node_id is empty, or None
    """
    if node_id is None or str(node_id) == "":
        return root

    target = str(node_id)
    for node, _path in iter_nodes(root):
        if node.id is not None and str(node.id) == target:
            return node

    logger.warning("Node %s not found in event tree (root %s)", target, root.id)
    return None


def ensure_consistent_quest_events(node: EventNode) -> EventNode:
    """
    Make quest completion event fields uniform across sibling choices.

    If any child node declares non-empty completion events, every sibling
    child node gets the field initialized to [] when absent. Ids are never
    copied between siblings.
    """
    children = [c.next_node for c in node.choices if c.next_node is not None]
    if not any(child.quest_completion_events for child in children):
        return node

    for child in children:
        if child.quest_completion_events is None:
            child.quest_completion_events = []
    return node
