"""Fixtures for ranking tests."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from eth_rpg.ranking.models import AchievementCounts, PlayerRecord


def build_player(address: str, **overrides: Any) -> PlayerRecord:
    values: dict[str, Any] = {
        "address": address,
        "class_id": "warrior",
        "power": 1000,
        "level": 10,
        "wins": 0,
        "losses": 0,
    }
    counts = overrides.pop("counts", None)
    values.update(overrides)
    if counts is not None:
        values["achievement_counts"] = AchievementCounts(**counts)
    return PlayerRecord(**values)


@pytest.fixture
def make_player() -> Callable[..., PlayerRecord]:
    return build_player
