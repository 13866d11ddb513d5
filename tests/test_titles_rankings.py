"""Tests des classements par métrique."""

from __future__ import annotations

import warnings

import pytest

from lycans.titles import GamesContext, RankingDefinition, compute_rankings, normalize_population
from lycans.titles.config import DEFAULT_REDIRECT
from lycans.titles.rankings import rank_metric, rank_ordinal


@pytest.fixture
def trio(make_snapshot):
    """Trois joueurs: b le plus actif, c sous 50 parties."""
    return normalize_population(
        [
            make_snapshot("a", games=50, name="Alice", winRate=60.0, killRate=0.5),
            make_snapshot("b", games=80, name="Bob", winRate=40.0, killRate=1.5),
            make_snapshot("c", games=20, name="Chloé", winRate=70.0),
        ]
    )


def _entries(rankings, player_id):
    return {entry.id: entry for entry in rankings[player_id]}


class TestRankOrdinal:
    def test_first(self):
        assert rank_ordinal(1) == "er"

    def test_others(self):
        assert rank_ordinal(2) == "ème"
        assert rank_ordinal(11) == "ème"


class TestRankMetric:
    """Tests de rank_metric."""

    def test_descending(self, trio):
        definition = RankingDefinition(id="x", metric="gamesPlayed", title="", description="")

        ranked = rank_metric(trio, definition)

        assert ranked["player_id"].to_list() == ["b", "a", "c"]
        assert ranked["rank"].to_list() == [1, 2, 3]

    def test_ascending(self, trio):
        definition = RankingDefinition(
            id="x", metric="gamesPlayed", title="", description="", descending=False
        )

        assert rank_metric(trio, definition)["player_id"].to_list() == ["c", "a", "b"]

    def test_ties_share_rank(self, make_snapshot):
        """Rang = 1 + nombre de valeurs strictement meilleures."""
        population = normalize_population(
            [
                make_snapshot("a", killRate=2.0),
                make_snapshot("b", killRate=2.0),
                make_snapshot("c", killRate=1.0),
            ]
        )
        definition = RankingDefinition(id="x", metric="killRate", title="", description="")

        ranked = rank_metric(population, definition)

        assert dict(zip(ranked["player_id"], ranked["rank"])) == {"a": 1, "b": 1, "c": 3}

    def test_ties_independent_of_input_order(self, make_snapshot):
        """L'ordre d'entrée ne fixe que l'ordre de sortie, pas le rang."""
        snaps = [make_snapshot("z", games=30), make_snapshot("y", games=30), make_snapshot("x", games=40)]
        definition = RankingDefinition(id="x", metric="gamesPlayed", title="", description="")

        forward = rank_metric(normalize_population(snaps), definition)
        backward = rank_metric(normalize_population(snaps[::-1]), definition)

        assert forward["player_id"].to_list() == ["x", "z", "y"]
        assert backward["player_id"].to_list() == ["x", "y", "z"]
        assert forward["rank"].to_list() == backward["rank"].to_list() == [1, 2, 2]

    def test_ascending_ties(self, make_snapshot):
        population = normalize_population(
            [make_snapshot("a", games=10), make_snapshot("b", games=5), make_snapshot("c", games=5)]
        )
        definition = RankingDefinition(
            id="x", metric="gamesPlayed", title="", description="", descending=False
        )

        ranked = rank_metric(population, definition)

        assert dict(zip(ranked["player_id"], ranked["rank"])) == {"b": 1, "c": 1, "a": 3}

    def test_min_games_filter(self, trio):
        definition = RankingDefinition(
            id="x", metric="winRate", title="", description="", min_games=50
        )

        assert rank_metric(trio, definition)["player_id"].to_list() == ["a", "b"]

    def test_min_games_filter_emits_no_warning(self, trio):
        definition = RankingDefinition(
            id="x", metric="winRate", title="", description="", min_games=10
        )

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            ranked = rank_metric(trio, definition)

        assert ranked.height == 3


class TestComputeRankings:
    """Tests de compute_rankings sur les classements du catalogue."""

    def test_participation_titles(self, trio, rule_set):
        rankings = compute_rankings(trio, rule_set.rankings)

        entry = _entries(rankings, "b")["participation-all"]
        assert entry.rank == 1
        assert entry.title == "📊 Rang 1 Participations"
        assert entry.description == "1er joueur le plus actif avec 80 parties"
        assert entry.total_ranked == 3
        assert entry.redirect_to == DEFAULT_REDIRECT

        second = _entries(rankings, "a")["participation-all"]
        assert second.description.startswith("2ème joueur")

    def test_modded_suffix(self, trio, rule_set):
        rankings = compute_rankings(trio, rule_set.rankings, GamesContext.MODDED)

        entry = _entries(rankings, "b")["participation-modded"]
        assert entry.title == "📊 Rang 1 Participations (Parties Moddées)"

    def test_expert_win_rate_needs_50_games(self, trio, rule_set):
        rankings = compute_rankings(trio, rule_set.rankings)

        assert "winrate-50-all" not in _entries(rankings, "c")
        assert _entries(rankings, "c")["winrate-10-all"].rank == 1
        assert _entries(rankings, "a")["winrate-50-all"].rank == 1
        assert _entries(rankings, "b")["winrate-50-all"].rank == 2

    def test_custom_redirect(self, trio, rule_set):
        rankings = compute_rankings(trio, rule_set.rankings)

        entry = _entries(rankings, "b")["killrate-all"]
        assert entry.redirect_to == {"tab": "players", "subTab": "deathStats"}
        assert entry.to_dict()["redirectTo"] == {"tab": "players", "subTab": "deathStats"}

    def test_player_missing_metric_has_no_entry(self, trio, rule_set):
        rankings = compute_rankings(trio, rule_set.rankings)

        assert "killrate-all" not in _entries(rankings, "c")

    def test_max_rank(self, trio):
        definition = RankingDefinition(
            id="top", metric="gamesPlayed", title="Top {rank}", description="", max_rank=1
        )

        rankings = compute_rankings(trio, [definition])

        assert [e.id for e in rankings["b"]] == ["top-all"]
        assert rankings["a"] == []
        assert rankings["c"] == []

    def test_tied_players_share_rank_and_title(self, make_snapshot):
        population = normalize_population(
            [
                make_snapshot("a", killRate=2.0),
                make_snapshot("b", killRate=2.0),
                make_snapshot("c", killRate=1.0),
            ]
        )
        definition = RankingDefinition(
            id="kills", metric="killRate", title="Rang {rank}", description="", max_rank=1
        )

        rankings = compute_rankings(population, [definition])

        assert [e.title for e in rankings["a"]] == ["Rang 1"]
        assert [e.title for e in rankings["b"]] == ["Rang 1"]
        assert rankings["c"] == []

    def test_empty_population(self, rule_set):
        assert compute_rankings(normalize_population([]), rule_set.rankings) == {}

    def test_to_dict(self, trio, rule_set):
        data = _entries(compute_rankings(trio, rule_set.rankings), "b")["participation-all"].to_dict()

        assert data["totalRanked"] == 3
        assert data["value"] == 80.0
        assert data["type"] == "good"
