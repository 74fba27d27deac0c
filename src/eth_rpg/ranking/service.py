"""Ranking read and refresh operations.

Readers only ever see precomputed snapshots.  :meth:`RankingService.refresh`
is run periodically by an external scheduler to roll seasons over and
rebuild the three leaderboards.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from pydantic import BaseModel, Field, ValidationError

from eth_rpg.errors import ErrorCode, InvalidInputError, NoSeasonError, UnauthorizedError
from eth_rpg.ranking.engine import (
    compute_battle_ranking,
    compute_explorer_ranking,
    compute_power_ranking,
    find_player_rank,
)
from eth_rpg.ranking.models import LeaderboardSnapshot, LeaderboardType, Season
from eth_rpg.ranking.season import (
    SeasonTimeRemaining,
    create_new_season,
    end_season,
    get_season_time_remaining,
    is_season_expired,
    now_ms,
)
from eth_rpg.ranking.store import RankingStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


# ---------------------------------------------------------------------------
# Request / response shapes
# ---------------------------------------------------------------------------

class LeaderboardQuery(BaseModel):
    type: LeaderboardType = "power"
    season: str | None = Field(default=None, pattern=r"^s\d{1,4}$")
    """Season id; the current season when omitted."""

    address: str | None = None
    """Look up this address's rank across the whole snapshot."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @classmethod
    def parse(cls, params: Mapping[str, Any]) -> LeaderboardQuery:
        """Build a query from raw request parameters.

        Empty strings count as absent.  Raises :class:`InvalidInputError`
        with ``INVALID_QUERY`` on any malformed value.
        """
        cleaned = {k: v for k, v in params.items() if v not in (None, "")}
        try:
            return cls.model_validate(cleaned)
        except ValidationError as exc:
            fields = ", ".join(str(err["loc"][0]) for err in exc.errors() if err["loc"])
            raise InvalidInputError(
                f"Invalid leaderboard query: {fields or 'unknown field'}",
                code=ErrorCode.INVALID_QUERY,
            ) from exc


class RefreshSummary(BaseModel):
    season_id: str
    rolled_over: bool
    total_players: int
    power_ranked: int
    battle_ranked: int
    explorer_ranked: int
    refreshed_at: int


@dataclass(frozen=True)
class SeasonInfo:
    season: Season
    remaining: SeasonTimeRemaining


def verify_cron_secret(authorization: str | None, secret: str | None) -> bool:
    """Check an ``Authorization: Bearer <token>`` header in constant time."""
    if not secret or not authorization or not authorization.startswith("Bearer "):
        return False
    token = authorization[len("Bearer "):]
    return hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8"))


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class RankingService:
    def __init__(
        self,
        store: RankingStore,
        *,
        cron_secret: str | None = None,
        clock_ms: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._cron_secret = cron_secret
        self._clock_ms = clock_ms

    def authorize_refresh(self, authorization: str | None) -> None:
        if not verify_cron_secret(authorization, self._cron_secret):
            raise UnauthorizedError()

    async def ensure_current_season(self) -> tuple[Season, bool]:
        """Return the current season, creating or rolling it over if needed.

        The second element is ``True`` when a new season was started.
        Concurrent callers may both roll over; the last write of the
        current-season pointer wins.
        """
        now = self._clock_ms()
        current = await self._store.get_current_season()
        if current is None:
            season = create_new_season(now=now)
            await self._store.create_season(season)
            logger.info("Started genesis season %s (%s)", season.id, season.name)
            return season, True
        if is_season_expired(current, now=now):
            ended = end_season(current)
            await self._store.update_season(ended)
            season = create_new_season(ended, now=now)
            await self._store.create_season(season)
            logger.info("Season %s ended; started %s (%s)", ended.id, season.id, season.name)
            return season, True
        return current, False

    async def refresh(self) -> RefreshSummary:
        """Roll the season over if due, then rebuild and persist all snapshots."""
        season, rolled_over = await self.ensure_current_season()
        players = await self._store.get_all_player_records(season.id)

        rankings: dict[LeaderboardType, Sequence[Any]] = {
            "power": compute_power_ranking(players),
            "battle": compute_battle_ranking(players),
            "explorer": compute_explorer_ranking(players),
        }
        now = self._clock_ms()
        await asyncio.gather(*(
            self._store.set_leaderboard_snapshot(LeaderboardSnapshot(
                season=season,
                type=type_,
                updated_at=now,
                entries=list(entries),
                total_players=len(players),
            ))
            for type_, entries in rankings.items()
        ))

        summary = RefreshSummary(
            season_id=season.id,
            rolled_over=rolled_over,
            total_players=len(players),
            power_ranked=len(rankings["power"]),
            battle_ranked=len(rankings["battle"]),
            explorer_ranked=len(rankings["explorer"]),
            refreshed_at=now,
        )
        logger.info(
            "Refreshed %s: %d players (power=%d battle=%d explorer=%d)",
            season.id, summary.total_players, summary.power_ranked,
            summary.battle_ranked, summary.explorer_ranked,
        )
        return summary

    async def get_leaderboard(self, query: LeaderboardQuery) -> LeaderboardSnapshot:
        """One page of a leaderboard.

        Raises :class:`NoSeasonError` when rankings were never
        initialized.  A season without a snapshot yet yields an empty
        leaderboard.
        """
        current = await self._store.get_current_season()
        if current is None:
            raise NoSeasonError()

        season_id = query.season or current.id
        snapshot = await self._store.get_leaderboard_snapshot(season_id, query.type)
        if snapshot is None:
            return LeaderboardSnapshot(
                season=current,
                type=query.type,
                updated_at=self._clock_ms(),
            )

        start = (query.page - 1) * query.limit
        player_rank = (
            find_player_rank(snapshot.entries, query.address) if query.address else None
        )
        return snapshot.model_copy(update={
            "entries": snapshot.entries[start:start + query.limit],
            "player_rank": player_rank,
        })

    async def get_season_info(self) -> SeasonInfo:
        season = await self._store.get_current_season()
        if season is None:
            raise NoSeasonError()
        return SeasonInfo(
            season=season,
            remaining=get_season_time_remaining(season, now=self._clock_ms()),
        )
