"""Battle simulation -- runs one seeded fight between two fighters.

The simulator is pure computation: no I/O and no wall-clock access.  All
randomness comes from a :class:`BattleRNG` seeded from the fighters'
addresses and the nonce, so the same inputs always produce the same
transcript and winner.

Turn structure (actors strictly alternate, fighter 0 first):

1. A stunned actor loses the turn and the stun clears.
2. The actor picks its class skill if MP and cooldown allow, otherwise a
   basic attack.
3. Offensive actions roll the defender's dodge first; a dodge deals 0.
4. Otherwise raw damage and crit are rolled and pushed through the
   damage pipeline (matchup, one-shot modifiers, defense, anti-burst).
5. Secondary effects resolve (stun, MP drain, heal, reflection).
6. The battle ends on a KO or when the turn cap is reached.
"""

from __future__ import annotations

import logging

from eth_rpg.battle.entities import FighterState
from eth_rpg.battle.matchups import resolve_matchup
from eth_rpg.battle.mechanics import basic_attack, calculate_damage, dodge_chance
from eth_rpg.battle.narrative import NarrativeInput, generate_narrative
from eth_rpg.battle.rng import BattleRNG, generate_battle_seed
from eth_rpg.battle.skills import (
    CLASS_PASSIVES,
    CLASS_SKILLS,
    CRIT_MULTIPLIER,
    SkillResult,
    can_use_skill,
    effective_mp_cost,
    round_half_up,
)
from eth_rpg.models import (
    BattleAction,
    BattleFighter,
    BattleResult,
    CharacterSheet,
    MatchupAdvantage,
)

logger = logging.getLogger(__name__)

MAX_TURNS = 40
"""Hard cap on actions (20 rounds of two actions)."""

REFLECT_FRACTION = 0.5


def init_fighter_state(fighter: BattleFighter) -> FighterState:
    """Build starting state, applying passives that act at battle start."""
    passive = CLASS_PASSIVES[fighter.class_id]
    max_hp = round_half_up(fighter.stats.hp * (1 + passive.battle_start_hp_bonus))
    return FighterState(
        class_id=fighter.class_id,
        stats=fighter.stats,
        max_hp=max_hp,
        current_hp=max_hp,
        max_mp=fighter.stats.mp,
        current_mp=fighter.stats.mp,
    )


def _as_fighter(sheet: CharacterSheet, position: int) -> BattleFighter:
    if isinstance(sheet, BattleFighter):
        return sheet
    if isinstance(sheet, CharacterSheet):
        return BattleFighter.from_sheet(sheet)
    raise ValueError(
        f"fighter{position} must be a CharacterSheet, got {type(sheet).__name__}"
    )


class BattleSimulator:
    """Runs a single battle to completion.

    Parameters
    ----------
    max_turns:
        Maximum number of actions before the battle is decided on
        remaining HP.
    """

    def __init__(self, max_turns: int = MAX_TURNS) -> None:
        if max_turns < 1:
            raise ValueError(f"max_turns must be >= 1, got {max_turns}")
        self.max_turns = max_turns

    def run(
        self,
        fighter0: CharacterSheet,
        fighter1: CharacterSheet,
        nonce: str,
    ) -> BattleResult:
        """Simulate a battle and return the full transcript.

        Raises ``ValueError`` for malformed input before any simulation
        work; a partial transcript is never returned.
        """
        fighters = (_as_fighter(fighter0, 0), _as_fighter(fighter1, 1))
        if not isinstance(nonce, str) or not nonce:
            raise ValueError("nonce must be a non-empty string")

        battle_seed = generate_battle_seed(fighters[0].address, fighters[1].address, nonce)
        rng = BattleRNG(int(battle_seed, 16))
        states = (init_fighter_state(fighters[0]), init_fighter_state(fighters[1]))
        matchup = resolve_matchup(fighters[0].class_id, fighters[1].class_id)
        advantages = (matchup.fighter0_advantage, matchup.fighter1_advantage)

        turns: list[BattleAction] = []
        for turn_index in range(self.max_turns):
            actor_idx = turn_index % 2
            action = self._take_turn(
                turn_index + 1, actor_idx, fighters, states, advantages, rng,
            )
            turns.append(action)
            if states[0].is_dead or states[1].is_dead:
                break

        self._check_transcript(turns)
        winner = self._determine_winner(states, fighters)
        winner_state = states[winner]
        logger.debug(
            "Battle %s vs %s (nonce=%s): winner=%d after %d turns",
            fighters[0].address, fighters[1].address, nonce, winner, len(turns),
        )

        return BattleResult(
            fighters=fighters,
            winner=winner,
            turns=tuple(turns),
            total_turns=len(turns),
            winner_hp_remaining=winner_state.current_hp,
            winner_hp_percent=round_half_up(winner_state.hp_fraction * 100),
            matchup=matchup,
            nonce=nonce,
            battle_seed=battle_seed,
        )

    # ------------------------------------------------------------------
    # Single turn
    # ------------------------------------------------------------------

    def _take_turn(
        self,
        turn: int,
        actor_idx: int,
        fighters: tuple[BattleFighter, BattleFighter],
        states: tuple[FighterState, FighterState],
        advantages: tuple[MatchupAdvantage, MatchupAdvantage],
        rng: BattleRNG,
    ) -> BattleAction:
        target_idx = 1 - actor_idx
        actor, target = states[actor_idx], states[target_idx]
        actor_fighter, target_fighter = fighters[actor_idx], fighters[target_idx]
        actor.turns_elapsed += 1

        def record(event: NarrativeInput) -> BattleAction:
            return BattleAction(
                turn=turn,
                actor_index=actor_idx,
                action_type=event.action_type,
                skill_name=event.skill_name,
                damage=event.damage,
                is_crit=event.is_crit,
                is_stun=event.is_stun,
                is_dodge=event.is_dodge,
                reflected=event.reflected,
                mp_drained=event.mp_drained,
                healed=event.healed,
                actor_hp_after=actor.current_hp,
                target_hp_after=target.current_hp,
                narrative=generate_narrative(
                    event,
                    actor_fighter.display_name,
                    target_fighter.display_name,
                    actor.class_id,
                    target.class_id,
                ),
            )

        # 1. Stun
        if actor.is_stunned:
            actor.is_stunned = False
            action = record(NarrativeInput(action_type="stunned"))
            self._apply_turn_end_passives(actor)
            return action

        # 2. Action selection
        skill = CLASS_SKILLS[actor.class_id]
        use_skill = can_use_skill(actor)
        skill_name: str | None = None
        if use_skill:
            actor.current_mp -= effective_mp_cost(actor.class_id)
            actor.skill_cooldown = skill.cooldown
            skill_name = skill.name
        action_type = "skill" if use_skill else "basic_attack"
        offensive = skill.offensive if use_skill else True

        # 3. Dodge
        if offensive and rng.chance(dodge_chance(target)):
            action = record(NarrativeInput(
                action_type=action_type, skill_name=skill_name, is_dodge=True,
            ))
            actor.tick_cooldown()
            self._apply_turn_end_passives(actor)
            return action

        # 4. Raw damage and crit
        if use_skill:
            result = skill.execute(actor, target, rng)
            result = self._apply_skill_crit_bonus(actor, result, rng)
        else:
            raw, is_crit = basic_attack(actor, rng)
            result = SkillResult(damage=raw, is_crit=is_crit)

        damage = 0
        reflected = 0
        if result.damage > 0:
            damage = calculate_damage(
                result.damage, actor, target,
                advantages[actor_idx], advantages[target_idx],
                half_defense=use_skill and skill.ignores_half_defense,
            )
            # One-shot modifiers are consumed by a landed hit.
            actor.damage_dealt_modifier = 1.0
            target.damage_received_modifier = 1.0

            # 5. Secondary effects
            target.take_damage(damage)
            if result.is_stun:
                target.is_stunned = True
            if target.is_reflecting:
                reflected = round_half_up(damage * REFLECT_FRACTION)
                actor.take_damage(reflected)
                target.is_reflecting = False

        actor.damage_dealt_modifier *= result.next_dealt_multiplier
        target.damage_dealt_modifier *= result.target_next_dealt_multiplier
        actor.damage_received_modifier *= result.next_received_multiplier
        if result.reflect_next_hit:
            actor.is_reflecting = True

        action = record(NarrativeInput(
            action_type=action_type,
            skill_name=skill_name,
            damage=damage,
            is_crit=result.is_crit and damage > 0,
            is_stun=result.is_stun and damage > 0,
            reflected=reflected or None,
            mp_drained=result.mp_drained or None,
            healed=result.healed or None,
        ))
        actor.tick_cooldown()

        # 6. Turn end (skipped on KO)
        if not (actor.is_dead or target.is_dead):
            self._apply_turn_end_passives(actor)
        return action

    @staticmethod
    def _apply_skill_crit_bonus(
        actor: FighterState,
        result: SkillResult,
        rng: BattleRNG,
    ) -> SkillResult:
        """Give damaging skills a second crit chance from the class passive."""
        bonus = CLASS_PASSIVES[actor.class_id].crit_chance_bonus
        if bonus <= 0 or result.damage <= 0 or result.is_crit:
            return result
        if not rng.chance(bonus):
            return result
        return SkillResult(
            damage=round_half_up(result.damage * CRIT_MULTIPLIER),
            healed=result.healed,
            is_crit=True,
            is_stun=result.is_stun,
            mp_drained=result.mp_drained,
            next_dealt_multiplier=result.next_dealt_multiplier,
            target_next_dealt_multiplier=result.target_next_dealt_multiplier,
            next_received_multiplier=result.next_received_multiplier,
            reflect_next_hit=result.reflect_next_hit,
        )

    @staticmethod
    def _apply_turn_end_passives(actor: FighterState) -> None:
        passive = CLASS_PASSIVES[actor.class_id]
        if passive.turn_end_heal_percent > 0:
            actor.heal(round_half_up(actor.max_hp * passive.turn_end_heal_percent))
        if (
            passive.mp_recovery_interval > 0
            and actor.turns_elapsed % passive.mp_recovery_interval == 0
        ):
            actor.restore_mp(round_half_up(actor.max_mp * passive.mp_recovery_percent))

    # ------------------------------------------------------------------
    # Outcome
    # ------------------------------------------------------------------

    @staticmethod
    def _determine_winner(
        states: tuple[FighterState, FighterState],
        fighters: tuple[BattleFighter, BattleFighter],
    ) -> int:
        """KO first; else higher HP fraction, then higher power, then fighter 0."""
        if states[0].is_dead and not states[1].is_dead:
            return 1
        if states[1].is_dead and not states[0].is_dead:
            return 0
        if states[0].hp_fraction != states[1].hp_fraction:
            return 0 if states[0].hp_fraction > states[1].hp_fraction else 1
        if fighters[0].stats.power != fighters[1].stats.power:
            return 0 if fighters[0].stats.power > fighters[1].stats.power else 1
        return 0

    def _check_transcript(self, turns: list[BattleAction]) -> None:
        if not turns or len(turns) > self.max_turns:
            raise RuntimeError(f"Transcript length {len(turns)} outside 1..{self.max_turns}")
        for i, action in enumerate(turns):
            if action.turn != i + 1 or action.actor_index != i % 2:
                raise RuntimeError(f"Turn order broken at action {i + 1}")


def simulate_battle(
    fighter0: CharacterSheet,
    fighter1: CharacterSheet,
    nonce: str,
    *,
    max_turns: int = MAX_TURNS,
) -> BattleResult:
    """Convenience wrapper around :meth:`BattleSimulator.run`."""
    return BattleSimulator(max_turns=max_turns).run(fighter0, fighter1, nonce)
