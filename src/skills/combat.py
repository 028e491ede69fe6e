"""
Combat Resolution Skill.

Pure functions for resolving one attack, computing stun delay and
picking a mob's next move. Nothing here touches stores or mutates a
combatant: damage and effect registration are the caller's job.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from typing import Protocol

from pydantic import BaseModel, Field

from src.models.combatant import Combatant, MobSpawn
from src.models.move import (
    ActiveEffect,
    EffectKind,
    MobMove,
    Move,
    MoveEffect,
    ResolvedEffect,
)
from src.skills.dice import Roller, random_fraction, random_int, roll_d20, roll_die

# Damage formula constants
DEFAULT_BASE_POWER = 3
DEFAULT_SCALING_FACTOR = 0.6
DEFAULT_DAMAGE_DICE = 6
LEVEL_SCALING = 0.1  # +10% damage per attacker level
DELAY_DIVISOR = 5
ARMOR_DIVISOR = 2
STUN_DELAY_PER_ROUND = 2

# Draw(total) -> uniform float in [0, total)
WeightDraw = Callable[[float], float]


class _TimedEffect(Protocol):
    effect: EffectKind
    rounds: int


class AttackResult(BaseModel):
    """Outcome of one move resolved by an attacker against a defender."""

    success: bool
    damage: int = 0
    effects: list[ResolvedEffect] = Field(
        default_factory=list, description="Non-stun effects for the caller to apply"
    )
    stun_rounds: int = Field(default=0, description="Stun rounds landed on the defender")
    message: str = ""
    attacker_roll: int
    defender_roll: int
    attacker_total: float
    defender_total: float


# =============================================================================
# Stat and Effect Helpers
# =============================================================================


def effective_stat(base: float, effects: Iterable[ActiveEffect], stat: str) -> float:
    """Base stat adjusted by every active increase/reduce effect on it."""
    return base + sum(e.modifier_for(stat) for e in effects)


def is_stunned(effects: Iterable[_TimedEffect] | None) -> bool:
    """True if any effect is a stun with rounds remaining."""
    return any(e.effect == EffectKind.STUN and e.rounds > 0 for e in effects or [])


def apply_stun_effect(
    delay: int, move: Move | None, per_round: int = STUN_DELAY_PER_ROUND
) -> int:
    """
    Delay after the stun entries of an opposing move are applied.

    Each success-side stun entry adds ``per_round`` turns per round.
    """
    if move is None:
        return delay
    return delay + per_round * move.stun_rounds()


def substitute_names(text: str, attacker: Combatant, defender: Combatant) -> str:
    """Fill [name]/[Self] and [opponent]/[Opponent] placeholders."""
    return (
        text.replace("[name]", attacker.display_name)
        .replace("[opponent]", defender.display_name)
        .replace("[Self]", attacker.display_name)
        .replace("[Opponent]", defender.display_name)
    )


def _format_stat(base: float, effective: float, roll: int) -> str:
    modifier = effective - base
    shown = f"{_num(base)}"
    if modifier:
        shown += f"{'+' if modifier >= 0 else ''}{_num(modifier)}"
    return f"{shown}+{roll}"


def _num(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


# =============================================================================
# Attack Resolution
# =============================================================================


def calculate_damage(
    move: Move,
    attacker: Combatant,
    defender: Combatant,
    attacker_stat: float,
    roller: Roller = random_int,
) -> int:
    """
    Damage dealt by a successful attack.

    ``max(1, floor((power + stat*scaling + weapon + dN - armor/2)
    * (1 + level*0.1) * (delay/5)))``
    """
    base_power = move.base_power or DEFAULT_BASE_POWER
    scaling_factor = move.scaling_factor or DEFAULT_SCALING_FACTOR
    damage_dice = move.damage_dice or DEFAULT_DAMAGE_DICE
    level = attacker.stats.value("level") or 1

    weapon_bonus = 0
    if attacker.equipment and attacker.equipment.weapon:
        weapon_bonus = attacker.equipment.weapon.damage or 0
    armor = defender.stats.value("armor")
    dice_roll = roll_die(damage_dice, roller)

    raw = base_power + attacker_stat * scaling_factor + weapon_bonus + dice_roll
    raw -= armor / ARMOR_DIVISOR
    level_multiplier = 1 + level * LEVEL_SCALING
    delay_multiplier = (move.delay or 1) / DELAY_DIVISOR
    return max(1, math.floor(raw * level_multiplier * delay_multiplier))


def resolve_attack(
    move: Move,
    attacker: Combatant,
    defender: Combatant,
    attacker_effects: Sequence[ActiveEffect] = (),
    defender_effects: Sequence[ActiveEffect] = (),
    roller: Roller = random_int,
) -> AttackResult:
    """
    Resolve one move from attacker against defender.

    Both sides roll a d20 and add their effective stat; the attacker
    must beat the defender's total outright.

    Args:
        move: Move being executed
        attacker: Combatant using the move
        defender: Combatant receiving it
        attacker_effects: Active effects on the attacker
        defender_effects: Active effects on the defender
        roller: Dice source (attacker d20, defender d20, damage die)

    Returns:
        AttackResult with damage, effects to apply and message text
    """
    attacker_roll = roll_d20(roller=roller).total
    defender_roll = roll_d20(roller=roller).total

    attacker_base = attacker.stats.value(move.attack_stat)
    defender_base = defender.stats.value(move.defence_stat)
    attacker_stat = effective_stat(attacker_base, attacker_effects, move.attack_stat)
    defender_stat = effective_stat(defender_base, defender_effects, move.defence_stat)

    attacker_total = attacker_stat + attacker_roll
    defender_total = defender_stat + defender_roll
    success = attacker_total > defender_total

    messages = [
        f"({_format_stat(attacker_base, attacker_stat, attacker_roll)} vs "
        f"{_format_stat(defender_base, defender_stat, defender_roll)})"
    ]
    effects: list[ResolvedEffect] = []
    damage = 0
    stun_rounds = 0

    def stamp(entry: MoveEffect) -> None:
        effects.append(
            ResolvedEffect(
                effect=entry.effect,
                target=entry.target,
                stat=entry.stat,
                amount=entry.amount,
                rounds=entry.rounds,
                message=entry.message,
                initiator=attacker.display_name,
            )
        )
        if entry.message:
            messages.append(substitute_names(entry.message, attacker, defender))

    if success:
        damage = calculate_damage(move, attacker, defender, attacker_stat, roller)
        dpr = damage / (move.delay or 1)
        messages.append(f"The attack hits for {damage} damage! (DPR: {dpr:.2f})")
        for entry in move.success or []:
            if entry.effect == EffectKind.STUN:
                stun_rounds += entry.rounds or 1
                messages.append(
                    substitute_names("[opponent] staggers from the attack!", attacker, defender)
                )
            else:
                stamp(entry)
    else:
        messages.append("The attack fails!")
        for entry in move.failure or []:
            stamp(entry)

    return AttackResult(
        success=success,
        damage=damage,
        effects=effects,
        stun_rounds=stun_rounds,
        message=" ".join(messages),
        attacker_roll=attacker_roll,
        defender_roll=defender_roll,
        attacker_total=attacker_total,
        defender_total=defender_total,
    )


# =============================================================================
# Mob Move Selection
# =============================================================================


def uniform_draw(total: float) -> float:
    return random_fraction() * total


def select_mob_move(moves: Sequence[MobMove], draw: WeightDraw = uniform_draw) -> MobMove:
    """
    Pick a mob move weighted by usage chance.

    Draws in [0, total) and walks the list subtracting weights until the
    draw is used up. Falls back to the first move when nothing is picked
    (e.g. every weight is 0).
    """
    if not moves:
        raise ValueError("Mob has no moves to select from")

    total = sum(m.usage_chance for m in moves)
    remaining = draw(total)
    for move in moves:
        remaining -= move.usage_chance
        if remaining <= 0:
            return move.model_copy(update={"delay": move.delay or 1})
    return moves[0].model_copy(update={"delay": moves[0].delay or 1})


# =============================================================================
# Spawning
# =============================================================================


def pick_spawn(
    spawns: Sequence[MobSpawn], chance: Callable[[], float] = random_fraction
) -> str | None:
    """
    Pick which mob, if any, spawns when a player enters a location.

    Chances are percentages. When they add up to exactly 100 a single
    roll walks the cumulative ranges so something always spawns.
    Otherwise every entry rolls on its own and one of the passing
    entries is picked at random.

    Returns:
        The chosen mob template id, or None
    """
    if not spawns:
        return None

    if sum(s.chance for s in spawns) == 100:
        roll = chance() * 100
        cumulative = 0.0
        for spawn in spawns:
            cumulative += spawn.chance
            if roll < cumulative:
                return spawn.mob_id
        return None

    eligible = [s for s in spawns if chance() * 100 < s.chance]
    if not eligible:
        return None
    return eligible[min(int(chance() * len(eligible)), len(eligible) - 1)].mob_id
