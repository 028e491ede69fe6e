"""
Core Data Models for Neon Grid.

These models define the game's records: players and mobs, their moves
and effects, character classes, quests and the event trees players walk
through.

Players are persisted through a PlayerStore; quests, classes, moves,
events and actors are authored definitions loaded read-only.
"""

from src.models.actor import Actor, ActorChatMessage
from src.models.character_class import CharacterClass, MoveGrowth
from src.models.combatant import (
    Combatant,
    CombatStats,
    Equipment,
    MobInstance,
    MobSpawn,
    MobTemplate,
    Player,
    Weapon,
    create_mob_instance,
)
from src.models.event_tree import (
    Choice,
    EventNode,
    Restriction,
    StoryEvent,
    assign_node_ids,
    ensure_consistent_quest_events,
    find_node,
    iter_nodes,
)
from src.models.message import Channel, MessagePayload
from src.models.move import (
    ActiveEffect,
    EffectKind,
    EffectTarget,
    MobMove,
    Move,
    MoveEffect,
    MoveType,
    ResolvedEffect,
    StatName,
)
from src.models.quest import (
    KillProgress,
    Quest,
    QuestEvent,
    QuestEventChoice,
    QuestEventType,
    QuestReward,
    RewardType,
    UserQuestRecord,
    create_quest_record,
)

__all__ = [
    # Actors
    "Actor",
    "ActorChatMessage",
    # Character classes
    "CharacterClass",
    "MoveGrowth",
    # Combatants
    "Combatant",
    "CombatStats",
    "Equipment",
    "MobInstance",
    "MobSpawn",
    "MobTemplate",
    "Player",
    "Weapon",
    "create_mob_instance",
    # Event trees
    "Choice",
    "EventNode",
    "Restriction",
    "StoryEvent",
    "assign_node_ids",
    "ensure_consistent_quest_events",
    "find_node",
    "iter_nodes",
    # Messages
    "Channel",
    "MessagePayload",
    # Moves
    "ActiveEffect",
    "EffectKind",
    "EffectTarget",
    "MobMove",
    "Move",
    "MoveEffect",
    "MoveType",
    "ResolvedEffect",
    "StatName",
    # Quests
    "KillProgress",
    "Quest",
    "QuestEvent",
    "QuestEventChoice",
    "QuestEventType",
    "QuestReward",
    "RewardType",
    "UserQuestRecord",
    "create_quest_record",
]
