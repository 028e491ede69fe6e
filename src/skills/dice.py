"""
Dice Rolling Skill.

Fair, cryptographically random dice for combat and skill checks. Every
roll goes through a ``Roller`` so callers can substitute a deterministic
source.
"""

from __future__ import annotations

import re
import secrets
from collections.abc import Callable

from pydantic import BaseModel, Field

# Roller(low, high) -> uniform integer in [low, high]
Roller = Callable[[int, int], int]


def random_int(low: int, high: int) -> int:
    """Uniform integer in the inclusive range [low, high]."""
    if high < low:
        raise ValueError(f"Empty range: [{low}, {high}]")
    return low + secrets.randbelow(high - low + 1)


def random_fraction() -> float:
    """Uniform float in [0, 1)."""
    return secrets.randbelow(1_000_000) / 1_000_000


class DiceResult(BaseModel):
    """Result of a dice roll."""

    notation: str = Field(description="Original dice notation")
    rolls: list[int] = Field(description="Individual die results")
    modifier: int = Field(default=0, description="Any +/- modifier")
    total: int = Field(description="Final result")


def roll_dice(notation: str, roller: Roller = random_int) -> DiceResult:
    """
    Roll dice using NdX or NdX+M notation.

    Args:
        notation: Dice notation string, e.g. "1d20" or "1d6+2"
        roller: Source of individual die results

    Returns:
        DiceResult with individual rolls and total
    """
    notation = notation.lower().strip()

    match = re.match(r"^(\d+)d(\d+)([+-]\d+)?$", notation)
    if not match:
        raise ValueError(f"Invalid dice notation: {notation}")

    num_dice = int(match.group(1))
    die_size = int(match.group(2))
    modifier = int(match.group(3)) if match.group(3) else 0

    if num_dice < 1 or die_size < 1:
        raise ValueError("Number of dice and die size must be positive")

    rolls = [roller(1, die_size) for _ in range(num_dice)]

    return DiceResult(
        notation=notation,
        rolls=rolls,
        modifier=modifier,
        total=sum(rolls) + modifier,
    )


def roll_d20(modifier: int = 0, roller: Roller = random_int) -> DiceResult:
    """Convenience function for d20 rolls."""
    notation = f"1d20{'+' if modifier >= 0 else ''}{modifier}" if modifier else "1d20"
    return roll_dice(notation, roller)


def roll_die(sides: int, roller: Roller = random_int) -> int:
    """Roll a single die with the given number of sides."""
    return roll_dice(f"1d{max(1, int(sides))}", roller).total
