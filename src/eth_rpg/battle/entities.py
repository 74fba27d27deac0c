"""Mutable per-battle fighter state.

A :class:`FighterState` is created from a :class:`BattleFighter` at the
start of a simulation and discarded when it ends.  Only the simulator
and the skill functions mutate it.
"""

from __future__ import annotations

from pydantic import BaseModel

from eth_rpg.models import CharacterClassId, CharacterStats


class FighterState(BaseModel):
    """Combat state layered on top of an immutable character sheet."""

    class_id: CharacterClassId
    stats: CharacterStats
    max_hp: int
    current_hp: int
    max_mp: int
    current_mp: int
    skill_cooldown: int = 0
    is_stunned: bool = False
    is_reflecting: bool = False
    damage_dealt_modifier: float = 1.0
    """One-shot multiplier on this fighter's next hit."""

    damage_received_modifier: float = 1.0
    """One-shot multiplier on the next hit this fighter takes."""

    turns_elapsed: int = 0

    # -- HP queries ----------------------------------------------------------

    @property
    def is_dead(self) -> bool:
        return self.current_hp <= 0

    @property
    def hp_fraction(self) -> float:
        return self.current_hp / self.max_hp

    # -- damage / heal -------------------------------------------------------

    def take_damage(self, amount: int) -> int:
        """Apply *amount* damage, flooring HP at 0.  Returns HP actually lost."""
        if amount <= 0:
            return 0
        hp_lost = min(self.current_hp, amount)
        self.current_hp -= hp_lost
        return hp_lost

    def heal(self, amount: int) -> int:
        """Heal up to ``max_hp``.  Returns HP actually restored."""
        if amount <= 0:
            return 0
        restored = min(amount, self.max_hp - self.current_hp)
        self.current_hp += restored
        return restored

    # -- MP ------------------------------------------------------------------

    def drain_mp(self, amount: int) -> int:
        """Remove up to *amount* MP.  Returns MP actually drained."""
        drained = max(0, min(amount, self.current_mp))
        self.current_mp -= drained
        return drained

    def restore_mp(self, amount: int) -> None:
        self.current_mp = min(self.max_mp, self.current_mp + max(0, amount))

    def tick_cooldown(self) -> None:
        if self.skill_cooldown > 0:
            self.skill_cooldown -= 1

