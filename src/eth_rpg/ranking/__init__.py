"""Season-scoped leaderboards: models, aggregation, persistence and refresh."""

from eth_rpg.ranking.engine import (
    compute_battle_ranking,
    compute_explorer_ranking,
    compute_power_ranking,
    find_player_rank,
)
from eth_rpg.ranking.models import (
    AchievementCounts,
    BattleRankingEntry,
    BattleRecord,
    ExplorerRankingEntry,
    LeaderboardSnapshot,
    PlayerRecord,
    PowerRankingEntry,
    Season,
)
from eth_rpg.ranking.recorder import RankingRecorder
from eth_rpg.ranking.season import (
    create_new_season,
    end_season,
    get_season_time_remaining,
    is_season_expired,
)
from eth_rpg.ranking.service import (
    LeaderboardQuery,
    RankingService,
    RefreshSummary,
    verify_cron_secret,
)
from eth_rpg.ranking.store import RankingStore

__all__ = [
    "AchievementCounts",
    "BattleRankingEntry",
    "BattleRecord",
    "ExplorerRankingEntry",
    "LeaderboardQuery",
    "LeaderboardSnapshot",
    "PlayerRecord",
    "PowerRankingEntry",
    "RankingRecorder",
    "RankingService",
    "RankingStore",
    "RefreshSummary",
    "Season",
    "compute_battle_ranking",
    "compute_explorer_ranking",
    "compute_power_ranking",
    "create_new_season",
    "end_season",
    "find_player_rank",
    "get_season_time_remaining",
    "is_season_expired",
    "verify_cron_secret",
]
