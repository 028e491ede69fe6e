"""
Stateless Skills for Neon Grid.

Skills are pure functions that:
- Take structured input (Pydantic models)
- Execute game rules (dice, attacks, checks, levels)
- Return structured output
- NEVER touch stores or session state
"""

from src.skills.checks import SkillCheckResult, skill_check
from src.skills.choices import (
    ChoiceValidation,
    FormattedResponse,
    ValidChoice,
    filter_choices_by_restrictions,
    format_response,
    validate_choice_input,
)
from src.skills.combat import (
    AttackResult,
    apply_stun_effect,
    calculate_damage,
    is_stunned,
    pick_spawn,
    resolve_attack,
    select_mob_move,
)
from src.skills.dice import DiceResult, roll_d20, roll_dice
from src.skills.progression import (
    LEVEL_THRESHOLDS,
    apply_level_up,
    derive_class_stats,
    level_for_experience,
)

__all__ = [
    # Checks
    "SkillCheckResult",
    "skill_check",
    # Choices
    "ChoiceValidation",
    "FormattedResponse",
    "ValidChoice",
    "filter_choices_by_restrictions",
    "format_response",
    "validate_choice_input",
    # Combat
    "AttackResult",
    "apply_stun_effect",
    "calculate_damage",
    "is_stunned",
    "pick_spawn",
    "resolve_attack",
    "select_mob_move",
    # Dice
    "DiceResult",
    "roll_d20",
    "roll_dice",
    # Progression
    "LEVEL_THRESHOLDS",
    "apply_level_up",
    "derive_class_stats",
    "level_for_experience",
]
