"""Tests for the dice rolling skill."""

from __future__ import annotations

import pytest
from helpers import SequenceRoller

from src.skills.dice import random_fraction, random_int, roll_d20, roll_dice, roll_die


class TestRollDice:
    """Test the roll_dice function."""

    def test_simple_roll(self):
        """Test basic NdX notation."""
        result = roll_dice("2d6")
        assert result.notation == "2d6"
        assert len(result.rolls) == 2
        assert all(1 <= r <= 6 for r in result.rolls)
        assert result.total == sum(result.rolls)
        assert result.modifier == 0

    def test_roll_with_modifier(self):
        """Test NdX+M notation."""
        result = roll_dice("1d20+5")
        assert result.notation == "1d20+5"
        assert len(result.rolls) == 1
        assert 1 <= result.rolls[0] <= 20
        assert result.modifier == 5
        assert result.total == result.rolls[0] + 5

    def test_roll_with_negative_modifier(self):
        """Test NdX-M notation."""
        result = roll_dice("1d20-3")
        assert result.modifier == -3
        assert result.total == result.rolls[0] - 3

    def test_invalid_notation(self):
        """Test that invalid notation raises ValueError."""
        with pytest.raises(ValueError, match="Invalid dice notation"):
            roll_dice("banana")

    def test_zero_dice_rejected(self):
        """Test that 0dX raises ValueError."""
        with pytest.raises(ValueError, match="must be positive"):
            roll_dice("0d6")

    def test_injected_roller(self):
        """Test that every die comes from the supplied roller."""
        roller = SequenceRoller([2, 5, 6])
        result = roll_dice("3d6+1", roller)
        assert result.rolls == [2, 5, 6]
        assert result.total == 14
        assert roller.calls == [(1, 6), (1, 6), (1, 6)]


class TestConvenienceFunctions:
    """Test convenience roll functions."""

    def test_roll_d20(self):
        """Test d20 convenience function."""
        result = roll_d20()
        assert len(result.rolls) == 1
        assert 1 <= result.rolls[0] <= 20

    def test_roll_d20_with_modifier(self):
        """Test d20 with modifier."""
        result = roll_d20(modifier=5, roller=SequenceRoller([7]))
        assert result.modifier == 5
        assert result.total == 12

    def test_roll_die(self):
        """Test single die with a deterministic roller."""
        assert roll_die(8, SequenceRoller([8])) == 8

    def test_random_int_bounds(self):
        """Test random_int stays inside its inclusive range."""
        values = {random_int(1, 3) for _ in range(200)}
        assert values <= {1, 2, 3}

    def test_random_int_empty_range(self):
        """Test an inverted range raises ValueError."""
        with pytest.raises(ValueError):
            random_int(5, 1)

    def test_random_fraction(self):
        """Test fractions fall in [0, 1)."""
        assert all(0 <= random_fraction() < 1 for _ in range(100))
