"""Seeded random number generator for deterministic battle simulation.

A battle is seeded from its two addresses and nonce via 32-bit FNV-1a,
then driven by Mulberry32.  Both algorithms are fixed and tiny, so a
battle replays identically across machines and interpreter versions
(unlike ``random.Random``, whose stream is an implementation detail).
"""

from __future__ import annotations

_MASK32 = 0xFFFFFFFF
_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def fnv1a_32(text: str) -> int:
    """32-bit FNV-1a over the UTF-16 code units of *text*."""
    h = _FNV_OFFSET
    for unit in _utf16_units(text):
        h ^= unit
        h = (h * _FNV_PRIME) & _MASK32
    return h


def _utf16_units(text: str) -> list[int]:
    data = text.encode("utf-16-le", errors="surrogatepass")
    return [int.from_bytes(data[i:i + 2], "little") for i in range(0, len(data), 2)]


def generate_battle_seed(addr0: str, addr1: str, nonce: str) -> str:
    """Return the 8-hex-digit battle seed for a (fighter0, fighter1, nonce) triple."""
    digest = fnv1a_32(f"{addr0.lower()}{addr1.lower()}{nonce}")
    return f"{digest:08x}"


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


class BattleRNG:
    """Mulberry32 generator.

    Parameters
    ----------
    seed:
        Unsigned 32-bit integer seed.
    """

    def __init__(self, seed: int) -> None:
        self._seed = seed & _MASK32
        self._state = self._seed

    @classmethod
    def from_battle(cls, addr0: str, addr1: str, nonce: str) -> BattleRNG:
        return cls(int(generate_battle_seed(addr0, addr1, nonce), 16))

    # -- public properties ---------------------------------------------------

    @property
    def seed(self) -> int:
        """Return the seed this RNG was initialised with."""
        return self._seed

    # -- core random methods -------------------------------------------------

    def random_float(self) -> float:
        """Return a random float in the half-open interval ``[0.0, 1.0)``."""
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        s = self._state
        t = _imul(s ^ (s >> 15), 1 | s)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK32) ^ t
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296

    def chance(self, probability: float) -> bool:
        """Return ``True`` with the given *probability* (always draws)."""
        return self.random_float() < probability

    # -- dunder helpers ------------------------------------------------------

    def __repr__(self) -> str:
        return f"BattleRNG(seed={self._seed})"
