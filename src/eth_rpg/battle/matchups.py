"""Class matchup resolution.

Two disjoint advantage rings define rock-paper-scissors style bonuses:

    Ring A: warrior -> rogue -> merchant -> priest -> elder_wizard -> warrior
    Ring B: hunter -> summoner -> guardian -> hunter

A class is advantaged against the next class in its ring and
disadvantaged against the previous one.  Cross-ring pairs, self pairs
and non-adjacent pairs in the same ring are neutral.
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_rpg.models import BattleMatchup, CharacterClassId, MatchupAdvantage

C = CharacterClassId
A = MatchupAdvantage

RING_A: tuple[CharacterClassId, ...] = (C.WARRIOR, C.ROGUE, C.MERCHANT, C.PRIEST, C.ELDER_WIZARD)
RING_B: tuple[CharacterClassId, ...] = (C.HUNTER, C.SUMMONER, C.GUARDIAN)

ALL_CLASS_IDS: tuple[CharacterClassId, ...] = RING_A + RING_B

_DAMAGE_MODIFIERS: dict[MatchupAdvantage, float] = {
    A.ADVANTAGED: 1.15,
    A.DISADVANTAGED: 0.80,
    A.NEUTRAL: 1.0,
}

_RECEIVE_MODIFIERS: dict[MatchupAdvantage, float] = {
    A.ADVANTAGED: 0.80,
    A.DISADVANTAGED: 1.15,
    A.NEUTRAL: 1.0,
}


def _ring_advantage(
    ring: tuple[CharacterClassId, ...],
    class_a: CharacterClassId,
    class_b: CharacterClassId,
) -> MatchupAdvantage | None:
    """Advantage of *class_a* over *class_b* within *ring*, or ``None`` if
    either class is outside the ring."""
    if class_a not in ring or class_b not in ring:
        return None
    idx_a = ring.index(class_a)
    idx_b = ring.index(class_b)
    size = len(ring)
    if (idx_a + 1) % size == idx_b:
        return A.ADVANTAGED
    if (idx_b + 1) % size == idx_a:
        return A.DISADVANTAGED
    return A.NEUTRAL


def resolve_matchup(class_a: CharacterClassId, class_b: CharacterClassId) -> BattleMatchup:
    """Resolve the relation between fighter 0 (*class_a*) and fighter 1 (*class_b*).

    The two sides are always mirror images of each other.
    """
    class_a = CharacterClassId(class_a)
    class_b = CharacterClassId(class_b)
    advantage = A.NEUTRAL
    if class_a != class_b:
        for ring in (RING_A, RING_B):
            found = _ring_advantage(ring, class_a, class_b)
            if found is not None:
                advantage = found
                break
    return BattleMatchup(fighter0_advantage=advantage, fighter1_advantage=advantage.invert())


def get_damage_modifier(advantage: MatchupAdvantage) -> float:
    """Multiplier on damage dealt by a fighter with *advantage*."""
    return _DAMAGE_MODIFIERS[advantage]


def get_receive_modifier(advantage: MatchupAdvantage) -> float:
    """Multiplier on damage received by a fighter with *advantage*."""
    return _RECEIVE_MODIFIERS[advantage]


# ---------------------------------------------------------------------------
# Card display info (computed once per process)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MatchupInfo:
    strong_vs: tuple[CharacterClassId, ...]
    weak_vs: tuple[CharacterClassId, ...]


def _compute_matchup_info(class_id: CharacterClassId) -> MatchupInfo:
    strong: list[CharacterClassId] = []
    weak: list[CharacterClassId] = []
    for other in ALL_CLASS_IDS:
        if other == class_id:
            continue
        advantage = resolve_matchup(class_id, other).fighter0_advantage
        if advantage is A.ADVANTAGED:
            strong.append(other)
        elif advantage is A.DISADVANTAGED:
            weak.append(other)
    return MatchupInfo(strong_vs=tuple(strong), weak_vs=tuple(weak))


_MATCHUP_INFO: dict[CharacterClassId, MatchupInfo] = {
    class_id: _compute_matchup_info(class_id) for class_id in ALL_CLASS_IDS
}


def get_matchup_info(class_id: CharacterClassId) -> MatchupInfo:
    """Classes that *class_id* is strong and weak against."""
    return _MATCHUP_INFO[CharacterClassId(class_id)]
