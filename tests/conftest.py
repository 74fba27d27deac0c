"""Shared fixtures: character sheet factory and a controllable clock."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from eth_rpg.models import Achievement, CharacterSheet, CharacterStats

ADDRESS_A = "0x" + "a" * 40
ADDRESS_B = "0x" + "b" * 40


class FakeClock:
    """Callable clock (seconds) that only moves when told to."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_sheet(
    address: str = ADDRESS_A,
    class_id: str = "warrior",
    *,
    ens_name: str | None = None,
    achievements: tuple[tuple[str, str], ...] = (),
    **stats: Any,
) -> CharacterSheet:
    values = {
        "level": 30, "hp": 500, "mp": 100,
        "strength": 100, "intelligence": 100, "dexterity": 100,
        "luck": 100, "power": 1000,
    }
    values.update(stats)
    return CharacterSheet(
        address=address,
        ens_name=ens_name,
        class_id=class_id,
        stats=CharacterStats(**values),
        achievements=tuple(Achievement(id=a_id, tier=tier) for a_id, tier in achievements),
    )


@pytest.fixture
def make_sheet() -> Callable[..., CharacterSheet]:
    return build_sheet


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
