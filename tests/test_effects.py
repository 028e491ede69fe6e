"""
Tests for the Effect Store service.
"""

from __future__ import annotations

from src.models.move import EffectKind, EffectTarget, ResolvedEffect
from src.services.effects import EffectStore


def _reduce(rounds: int = 2, amount: int = 2, stat: str = "body") -> ResolvedEffect:
    return ResolvedEffect(
        effect=EffectKind.REDUCE_STAT,
        target=EffectTarget.OPPONENT,
        stat=stat,
        amount=amount,
        rounds=rounds,
        initiator="Nova",
    )


class TestEffectStore:
    """Tests for EffectStore."""

    def test_empty_combatant_has_no_effects(self):
        """Test unknown combatants report an empty list."""
        assert EffectStore().get_effects("nobody") == []

    def test_add_effect_records_initial_rounds(self):
        """Test stored effects remember their starting duration."""
        store = EffectStore()
        active = store.add_effect("mob-1", _reduce(rounds=3))

        assert active is not None
        assert active.rounds == 3
        assert active.initial_rounds == 3
        assert store.get_effects("mob-1") == [active]

    def test_stuns_are_not_stored(self):
        """Test stun effects never enter the store."""
        store = EffectStore()
        stun = ResolvedEffect(
            effect=EffectKind.STUN, target=EffectTarget.OPPONENT, rounds=2, initiator="Nova"
        )
        assert store.add_effect("mob-1", stun) is None
        assert store.get_effects("mob-1") == []

    def test_tick_expires_after_rounds(self):
        """Test an effect lasts exactly its number of exchanges."""
        store = EffectStore()
        store.add_effect("mob-1", _reduce(rounds=2))

        first = store.tick_round("mob-1")
        assert first.effects_expired == []
        assert first.effects_remaining == 1
        assert store.get_effects("mob-1")[0].rounds == 1

        second = store.tick_round("mob-1")
        assert second.effects_expired == ["reduceStat"]
        assert second.effects_remaining == 0
        assert store.get_effects("mob-1") == []
        assert "mob-1" not in store.effects

    def test_tick_only_touches_one_combatant(self):
        """Test ticking one combatant leaves others alone."""
        store = EffectStore()
        store.add_effect("mob-1", _reduce(rounds=1))
        store.add_effect("p1", _reduce(rounds=1))

        store.tick_round("mob-1")

        assert store.get_effects("mob-1") == []
        assert len(store.get_effects("p1")) == 1

    def test_tick_without_effects(self):
        """Test ticking a combatant with nothing stored is harmless."""
        result = EffectStore().tick_round("p1")
        assert result.effects_expired == []
        assert result.effects_remaining == 0

    def test_mixed_durations(self):
        """Test short effects expire while long ones remain."""
        store = EffectStore()
        store.add_effect("p1", _reduce(rounds=1, stat="body"))
        store.add_effect("p1", _reduce(rounds=3, stat="tech"))

        result = store.tick_round("p1")

        assert result.effects_expired == ["reduceStat"]
        assert [e.stat for e in store.get_effects("p1")] == ["tech"]

    def test_clear(self):
        """Test clear drops every effect on a combatant."""
        store = EffectStore()
        store.add_effect("p1", _reduce())
        store.add_effect("p1", _reduce(stat="tech"))

        store.clear("p1")
        store.clear("p1")

        assert store.get_effects("p1") == []
