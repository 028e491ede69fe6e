"""
Player Progression Skill.

Level thresholds, level-up stat growth and class stat derivation.
"""

from __future__ import annotations

import math

from src.models.character_class import CharacterClass
from src.models.combatant import CombatStats

# Experience needed to reach each level (index 0 = level 1)
LEVEL_THRESHOLDS = [0, 100, 241, 465, 781, 1202, 1742, 2415, 3236, 4220, 5383]

ATTRIBUTES = ("body", "reflexes", "agility", "tech", "luck", "charisma")

# Classless hitpoint formula
BASE_HITPOINTS = 20
HITPOINTS_PER_LEVEL = 3
HITPOINTS_PER_BODY = 2.5


def level_for_experience(current_level: int, experience: int) -> int:
    """Level reached with the given experience, never below current_level."""
    level = current_level
    while level < len(LEVEL_THRESHOLDS) and experience >= LEVEL_THRESHOLDS[level]:
        level += 1
    return level


def apply_level_up(stats: CombatStats, new_level: int) -> int:
    """
    Raise every attribute by 1, set the level and recompute hitpoints.

    Heals to full. Returns the new maximum hitpoints.
    """
    for attr in ATTRIBUTES:
        setattr(stats, attr, getattr(stats, attr) + 1)
    stats.level = new_level
    hitpoints = (
        BASE_HITPOINTS
        + HITPOINTS_PER_LEVEL * new_level
        + math.ceil(stats.body * HITPOINTS_PER_BODY)
    )
    stats.hitpoints = hitpoints
    stats.current_hitpoints = hitpoints
    return hitpoints


def derive_class_stats(stats: CombatStats, character_class: CharacterClass) -> CombatStats:
    """
    Rebuild a stat block for a class at the stats' current level.

    Every attribute starts at 1 and gains ``level``; the primary stat
    gains ``2*level`` more and secondary stats ``level`` more. Hitpoints
    follow the class formula and are refilled.
    """
    derived = stats.model_copy(deep=True)
    level = derived.level
    for attr in ATTRIBUTES:
        bonus = level
        if attr == character_class.primary_stat:
            bonus += level * 2
        elif attr in character_class.secondary_stats:
            bonus += level
        setattr(derived, attr, 1 + bonus)

    derived.hitpoints = int(
        character_class.base_hitpoints
        + character_class.hp_per_level * level
        + math.ceil(character_class.hp_per_bod * derived.body)
    )
    derived.current_hitpoints = derived.hitpoints
    return derived
