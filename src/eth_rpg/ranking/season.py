"""Season lifecycle: creation, expiry and rollover.

All functions are pure.  ``now_ms`` defaults to the wall clock and can be
pinned for tests and replays.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from eth_rpg.ranking.models import Season

MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR
SEASON_DURATION_MS = 90 * MS_PER_DAY

SEASON_NAMES: tuple[str, ...] = (
    "Genesis Season",
    "Ascension",
    "The Convergence",
    "Shattered Realms",
    "Eternal Flame",
    "Void Rising",
    "Chain of Legends",
    "Dark Epoch",
)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SeasonTimeRemaining:
    days: int
    hours: int
    total_ms: int


def season_name(number: int) -> str:
    """Names cycle: season 9 reuses the first name."""
    return SEASON_NAMES[(number - 1) % len(SEASON_NAMES)]


def create_new_season(previous: Season | None = None, *, now: int | None = None) -> Season:
    """Start the season after *previous*, or the genesis season."""
    number = previous.number + 1 if previous is not None else 1
    started_at = now_ms() if now is None else now
    return Season(
        id=f"s{number}",
        number=number,
        name=season_name(number),
        started_at=started_at,
        ends_at=started_at + SEASON_DURATION_MS,
        is_active=True,
    )


def is_season_expired(season: Season, *, now: int | None = None) -> bool:
    current = now_ms() if now is None else now
    return current >= season.ends_at


def end_season(season: Season) -> Season:
    """Return an inactive copy; *season* itself is left untouched."""
    return season.model_copy(update={"is_active": False})


def get_season_time_remaining(season: Season, *, now: int | None = None) -> SeasonTimeRemaining:
    current = now_ms() if now is None else now
    remaining = max(0, season.ends_at - current)
    return SeasonTimeRemaining(
        days=remaining // MS_PER_DAY,
        hours=(remaining % MS_PER_DAY) // MS_PER_HOUR,
        total_ms=remaining,
    )
