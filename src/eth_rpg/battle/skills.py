"""Class skills and passives.

Every class owns exactly one active skill and one passive.  Skills are
plain functions over the mutable :class:`FighterState` pair; they return
a :class:`SkillResult` with the *raw* damage (before matchup, defense and
one-shot modifiers, which the simulator applies).  Effects that shape
later hits (buffs, shields, counter stance) are returned rather than
applied so they never leak into the hit that created them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable

from eth_rpg.battle.entities import FighterState
from eth_rpg.battle.rng import BattleRNG
from eth_rpg.models import CharacterClassId

C = CharacterClassId

BASE_CRIT_CHANCE = 0.08
LUCK_CRIT_SCALING = 0.0003
CRIT_MULTIPLIER = 1.8


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (not banker's rounding)."""
    return math.floor(value + 0.5)


def base_crit_chance(luck: int) -> float:
    return BASE_CRIT_CHANCE + luck * LUCK_CRIT_SCALING


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SkillResult:
    damage: int = 0
    healed: int = 0
    is_crit: bool = False
    is_stun: bool = False
    mp_drained: int = 0
    next_dealt_multiplier: float = 1.0
    """Applied to the actor's next landed hit."""

    target_next_dealt_multiplier: float = 1.0
    """Applied to the target's next landed hit."""

    next_received_multiplier: float = 1.0
    """Applied to the next hit the actor takes."""

    reflect_next_hit: bool = False


SkillFn = Callable[[FighterState, FighterState, BattleRNG], SkillResult]


@dataclass(frozen=True)
class SkillDefinition:
    name: str
    mp_cost: int
    cooldown: int
    offensive: bool
    """Offensive skills can be dodged; support skills always resolve."""

    execute: SkillFn
    ignores_half_defense: bool = False


@dataclass(frozen=True)
class PassiveDefinition:
    name: str
    battle_start_hp_bonus: float = 0.0
    turn_end_heal_percent: float = 0.0
    crit_chance_bonus: float = 0.0
    dodge_chance_bonus: float = 0.0
    defense_multiplier: float = 0.0
    mp_cost_reduction: float = 0.0
    bonus_damage_per_int: float = 0.0
    mp_recovery_interval: int = 0
    mp_recovery_percent: float = 0.0
    anti_burst_threshold: float = 0.0


# ---------------------------------------------------------------------------
# Skill implementations
# ---------------------------------------------------------------------------

def _roll_crit(base: float, chance: float, rng: BattleRNG) -> tuple[float, bool]:
    is_crit = rng.chance(chance)
    return (base * CRIT_MULTIPLIER if is_crit else base), is_crit


def _heavy_strike(actor: FighterState, target: FighterState, rng: BattleRNG) -> SkillResult:
    damage, is_crit = _roll_crit(actor.stats.strength * 0.5, base_crit_chance(actor.stats.luck), rng)
    is_stun = rng.chance(0.15)
    return SkillResult(damage=round_half_up(damage), is_crit=is_crit, is_stun=is_stun)


def _arbitrage(actor: FighterState, target: FighterState, rng: BattleRNG) -> SkillResult:
    # Two hits; defense is later applied once to the total.
    hit = actor.stats.strength * 0.25
    first, first_crit = _roll_crit(hit, base_crit_chance(actor.stats.luck), rng)
    second, second_crit = _roll_crit(hit, 0.35, rng)
    return SkillResult(
        damage=round_half_up(first + second),
        is_crit=first_crit or second_crit,
    )


def _nft_snipe(actor: FighterState, target: FighterState, rng: BattleRNG) -> SkillResult:
    base = actor.stats.luck * 0.4 + actor.stats.strength * 0.1
    chance = 0.80 if actor.stats.luck > target.stats.luck else 0.25
    damage, is_crit = _roll_crit(base, chance, rng)
    return SkillResult(damage=round_half_up(damage), is_crit=is_crit)


def _hostile_takeover(actor: FighterState, target: FighterState, rng: BattleRNG) -> SkillResult:
    damage, is_crit = _roll_crit(actor.stats.strength * 0.25, base_crit_chance(actor.stats.luck), rng)
    return SkillResult(
        damage=round_half_up(damage),
        is_crit=is_crit,
        next_dealt_multiplier=1.15,
        target_next_dealt_multiplier=0.75,
    )


def _divine_shield(actor: FighterState, target: FighterState, rng: BattleRNG) -> SkillResult:
    healed = actor.heal(round_half_up(actor.stats.intelligence * 0.3))
    return SkillResult(healed=healed, next_received_multiplier=0.8)


def _ancient_spell(actor: FighterState, target: FighterState, rng: BattleRNG) -> SkillResult:
    damage, is_crit = _roll_crit(
        actor.stats.intelligence * 0.45, base_crit_chance(actor.stats.luck), rng,
    )
    return SkillResult(damage=round_half_up(damage), is_crit=is_crit)


def _counter_stance(actor: FighterState, target: FighterState, rng: BattleRNG) -> SkillResult:
    return SkillResult(reflect_next_hit=True)


def _portal_strike(actor: FighterState, target: FighterState, rng: BattleRNG) -> SkillResult:
    base = (actor.stats.strength + actor.stats.intelligence) * 0.2
    damage, is_crit = _roll_crit(base, base_crit_chance(actor.stats.luck), rng)
    drained = target.drain_mp(10)
    return SkillResult(damage=round_half_up(damage), is_crit=is_crit, mp_drained=drained)


CLASS_SKILLS: dict[CharacterClassId, SkillDefinition] = {
    C.WARRIOR: SkillDefinition("Heavy Strike", 15, 2, True, _heavy_strike),
    C.ROGUE: SkillDefinition("Arbitrage", 18, 3, True, _arbitrage),
    C.HUNTER: SkillDefinition("NFT Snipe", 18, 2, True, _nft_snipe),
    C.MERCHANT: SkillDefinition("Hostile Takeover", 20, 3, True, _hostile_takeover),
    C.PRIEST: SkillDefinition("Divine Shield", 18, 3, False, _divine_shield),
    C.ELDER_WIZARD: SkillDefinition(
        "Ancient Spell", 35, 3, True, _ancient_spell, ignores_half_defense=True,
    ),
    C.GUARDIAN: SkillDefinition("Counter Stance", 15, 2, False, _counter_stance),
    C.SUMMONER: SkillDefinition("Portal Strike", 22, 3, True, _portal_strike),
}

CLASS_PASSIVES: dict[CharacterClassId, PassiveDefinition] = {
    C.WARRIOR: PassiveDefinition("Iron Will", battle_start_hp_bonus=0.10),
    C.ROGUE: PassiveDefinition("Evasion", dodge_chance_bonus=0.10),
    C.HUNTER: PassiveDefinition("Keen Eye", crit_chance_bonus=0.15),
    C.MERCHANT: PassiveDefinition(
        "Compound Interest", mp_recovery_interval=4, mp_recovery_percent=0.15,
    ),
    C.PRIEST: PassiveDefinition("Blessing", turn_end_heal_percent=0.015),
    C.ELDER_WIZARD: PassiveDefinition("Mana Well", mp_cost_reduction=0.15),
    C.GUARDIAN: PassiveDefinition(
        "Unbreakable", defense_multiplier=0.20, anti_burst_threshold=0.20,
    ),
    C.SUMMONER: PassiveDefinition("Summon Familiar", bonus_damage_per_int=0.05),
}


def effective_mp_cost(class_id: CharacterClassId) -> int:
    skill = CLASS_SKILLS[class_id]
    passive = CLASS_PASSIVES[class_id]
    return round_half_up(skill.mp_cost * (1 - passive.mp_cost_reduction))


def can_use_skill(state: FighterState) -> bool:
    return state.skill_cooldown <= 0 and state.current_mp >= effective_mp_cost(state.class_id)
