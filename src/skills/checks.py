"""
Stat Check Skill.

Event choices can gate a branch on a stat check: d20 plus the player's
stat against a target number.
"""

from __future__ import annotations

from pydantic import BaseModel

from src.models.combatant import Player
from src.skills.dice import Roller, random_int, roll_d20


class SkillCheckResult(BaseModel):
    """Result of a stat check."""

    stat: str
    stat_value: float
    roll: int
    total: float
    target: int
    passed: bool

    def describe(self, choice_text: str) -> str:
        """Console text for the check, headed by the choice that triggered it."""
        value = int(self.stat_value) if float(self.stat_value).is_integer() else self.stat_value
        total = int(self.total) if float(self.total).is_integer() else self.total
        text = f"{choice_text}\n\n"
        text += (
            f"SKILL CHECK: {self.stat.upper()} ({value}) + D20 ({self.roll}) "
            f"= {total} vs {self.target}\n"
        )
        if self.passed:
            text += f"SUCCESS! You passed the {self.stat} check.\n"
        else:
            text += f"FAILURE! You failed the {self.stat} check.\n"
        return text


def skill_check(
    player: Player, stat: str, target: int, roller: Roller = random_int
) -> SkillCheckResult:
    """
    Roll d20 + stat against a target. Meeting the target passes.

    Args:
        player: Player making the check
        stat: Stat name, e.g. "tech"
        target: Number the total must reach
        roller: Dice source

    Returns:
        SkillCheckResult
    """
    stat_value = player.stats.value(stat)
    roll = roll_d20(roller=roller).total
    total = stat_value + roll
    return SkillCheckResult(
        stat=stat,
        stat_value=stat_value,
        roll=roll,
        total=total,
        target=target,
        passed=total >= target,
    )
