"""Deterministic battle engine: matchups, skills, damage and the turn loop."""

from eth_rpg.battle.matchups import (
    MatchupInfo,
    get_damage_modifier,
    get_matchup_info,
    get_receive_modifier,
    resolve_matchup,
)
from eth_rpg.battle.rng import BattleRNG, generate_battle_seed
from eth_rpg.battle.simulator import MAX_TURNS, BattleSimulator, simulate_battle

__all__ = [
    "MAX_TURNS",
    "BattleRNG",
    "BattleSimulator",
    "MatchupInfo",
    "generate_battle_seed",
    "get_damage_modifier",
    "get_matchup_info",
    "get_receive_modifier",
    "resolve_matchup",
    "simulate_battle",
]
