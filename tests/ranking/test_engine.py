"""Tests for leaderboard computation."""

from __future__ import annotations

from eth_rpg.ranking.engine import (
    MAX_LEADERBOARD_SIZE,
    compute_battle_ranking,
    compute_explorer_ranking,
    compute_power_ranking,
    compute_win_rate,
    find_player_rank,
)


class TestPowerRanking:
    def test_sorted_by_power(self, make_player):
        players = [
            make_player("0xaaa", power=500),
            make_player("0xbbb", power=1500),
            make_player("0xccc", power=1000),
        ]
        entries = compute_power_ranking(players)
        assert [(e.rank, e.address) for e in entries] == [(1, "0xbbb"), (2, "0xccc"), (3, "0xaaa")]
        assert all(e.type == "power" for e in entries)

    def test_ties_broken_by_address(self, make_player):
        players = [make_player("0xc", power=10), make_player("0xa", power=10), make_player("0xb", power=10)]
        assert [e.address for e in compute_power_ranking(players)] == ["0xa", "0xb", "0xc"]

    def test_capped(self, make_player):
        players = [make_player(f"0x{i:04d}", power=i) for i in range(MAX_LEADERBOARD_SIZE + 20)]
        entries = compute_power_ranking(players)
        assert len(entries) == MAX_LEADERBOARD_SIZE
        assert entries[-1].rank == MAX_LEADERBOARD_SIZE

    def test_deduplicates_addresses(self, make_player):
        players = [make_player("0xAA", power=1), make_player("0xaa", power=2)]
        entries = compute_power_ranking(players)
        assert len(entries) == 1
        assert entries[0].power == 2

    def test_keeps_metadata(self, make_player):
        entry = compute_power_ranking([make_player("0xa", ens_name="a.eth", level=42)])[0]
        assert entry.ens_name == "a.eth"
        assert entry.level == 42


class TestBattleRanking:
    def test_minimum_battles(self, make_player):
        players = [
            make_player("0xfour", wins=4, losses=0),
            make_player("0xfive", wins=3, losses=2),
        ]
        assert [e.address for e in compute_battle_ranking(players)] == ["0xfive"]

    def test_scores(self, make_player):
        entry = compute_battle_ranking([make_player("0xa", wins=7, losses=3)])[0]
        assert entry.win_rate == 70
        assert entry.rating_score == 7 * 10 + 3 * 2 + 70

    def test_sorted_by_rating_then_address(self, make_player):
        players = [
            make_player("0xb", wins=5, losses=0),
            make_player("0xa", wins=5, losses=0),
            make_player("0xc", wins=10, losses=0),
        ]
        assert [e.address for e in compute_battle_ranking(players)] == ["0xc", "0xa", "0xb"]

    def test_win_rate_rounds_half_up(self):
        assert compute_win_rate(1, 1) == 50
        assert compute_win_rate(1, 7) == 13  # 12.5
        assert compute_win_rate(2, 1) == 67
        assert compute_win_rate(0, 0) == 0


class TestExplorerRanking:
    def test_weighted_score(self, make_player):
        player = make_player("0xa", counts={"legendary": 1, "epic": 1, "rare": 1, "common": 1})
        entry = compute_explorer_ranking([player])[0]
        assert entry.explorer_score == 160
        assert entry.achievement_count == 4

    def test_zero_score_excluded(self, make_player):
        assert compute_explorer_ranking([make_player("0xa")]) == []

    def test_sorted_by_score_then_address(self, make_player):
        players = [
            make_player("0xb", counts={"rare": 1}),
            make_player("0xa", counts={"rare": 1}),
            make_player("0xc", counts={"legendary": 1}),
        ]
        assert [e.address for e in compute_explorer_ranking(players)] == ["0xc", "0xa", "0xb"]


class TestFindPlayerRank:
    def test_case_insensitive(self, make_player):
        entries = compute_power_ranking([make_player("0xabc", power=2), make_player("0xdef", power=1)])
        assert find_player_rank(entries, "0xDEF") == 2

    def test_not_found(self, make_player):
        assert find_player_rank(compute_power_ranking([make_player("0xabc")]), "0x123") is None
