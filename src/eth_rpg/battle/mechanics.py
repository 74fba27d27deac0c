"""Damage, crit and dodge calculation.

Implements the hit pipeline (order matters):
    raw -> matchup dealt -> matchup received -> one-shot dealt
        -> one-shot received -> minus defense (floor 1) -> anti-burst
        -> familiar bonus

Each multiplicative step rounds half-up to an integer.
"""

from __future__ import annotations

import math

from eth_rpg.battle.entities import FighterState
from eth_rpg.battle.matchups import get_damage_modifier, get_receive_modifier
from eth_rpg.battle.rng import BattleRNG
from eth_rpg.battle.skills import (
    CLASS_PASSIVES,
    CRIT_MULTIPLIER,
    base_crit_chance,
    round_half_up,
)
from eth_rpg.models import MatchupAdvantage

DODGE_SCALING = 0.0003
MAX_DODGE_CHANCE = 0.75
ANTI_BURST_EXCESS_FACTOR = 0.5


def crit_chance(state: FighterState) -> float:
    """Crit probability for a basic attack (luck-scaled plus class bonus)."""
    return base_crit_chance(state.stats.luck) + CLASS_PASSIVES[state.class_id].crit_chance_bonus


def dodge_chance(defender: FighterState) -> float:
    """Probability that *defender* dodges an incoming offensive action."""
    chance = defender.stats.dexterity * DODGE_SCALING
    chance += CLASS_PASSIVES[defender.class_id].dodge_chance_bonus
    return min(MAX_DODGE_CHANCE, max(0.0, chance))


def basic_attack(actor: FighterState, rng: BattleRNG) -> tuple[int, bool]:
    """Roll a basic attack.  Returns ``(raw_damage, is_crit)``.

    ``str * 0.3 + U(0, luck * 0.1) + U(0, dex * 0.05)``, then a crit roll.
    """
    stats = actor.stats
    raw = math.floor(
        stats.strength * 0.3
        + rng.random_float() * stats.luck * 0.1
        + rng.random_float() * stats.dexterity * 0.05
    )
    is_crit = rng.chance(crit_chance(actor))
    if is_crit:
        raw = round_half_up(raw * CRIT_MULTIPLIER)
    return raw, is_crit


def calculate_defense(state: FighterState) -> int:
    base = math.floor(state.stats.hp * 0.02)
    return round_half_up(base * (1 + CLASS_PASSIVES[state.class_id].defense_multiplier))


def apply_anti_burst(damage: int, target: FighterState) -> int:
    """Halve the part of a hit above the target's anti-burst threshold."""
    threshold_pct = CLASS_PASSIVES[target.class_id].anti_burst_threshold
    if threshold_pct <= 0:
        return damage
    threshold = target.max_hp * threshold_pct
    if damage > threshold:
        return round_half_up(threshold + (damage - threshold) * ANTI_BURST_EXCESS_FACTOR)
    return damage


def calculate_damage(
    raw: int,
    actor: FighterState,
    target: FighterState,
    actor_advantage: MatchupAdvantage,
    target_advantage: MatchupAdvantage,
    *,
    half_defense: bool = False,
) -> int:
    """Final damage of one hit after every modifier.  Always >= 1."""
    damage = round_half_up(raw * get_damage_modifier(actor_advantage))
    damage = round_half_up(damage * get_receive_modifier(target_advantage))
    damage = round_half_up(damage * actor.damage_dealt_modifier)
    damage = round_half_up(damage * target.damage_received_modifier)

    defense = calculate_defense(target)
    if half_defense:
        defense = math.floor(defense * 0.5)
    damage = max(1, damage - defense)

    damage = apply_anti_burst(damage, target)

    bonus_rate = CLASS_PASSIVES[actor.class_id].bonus_damage_per_int
    if bonus_rate > 0:
        damage += round_half_up(actor.stats.intelligence * bonus_rate)
    return damage
