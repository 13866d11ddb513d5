"""Tests du script de génération des titres."""

from __future__ import annotations

import json
import sys

import pytest

from lycans.titles import GamesContext
from scripts.generate_titles import load_aggregates, main


def _aggregates(count, games=30):
    return [
        {
            "player_id": f"p{i}",
            "player_name": f"Joueur {i}",
            "games_played": games,
            "wins": i,
            "kills": i,
        }
        for i in range(count)
    ]


@pytest.fixture
def stats_file(tmp_path):
    path = tmp_path / "stats.json"
    path.write_text(
        json.dumps({"all": _aggregates(10), "modded": _aggregates(4, games=12)}),
        encoding="utf-8",
    )
    return path


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["generate_titles.py", *map(str, args)])
    main()


class TestLoadAggregates:
    def test_reads_both_contexts(self, stats_file):
        aggregates = load_aggregates(stats_file)

        assert set(aggregates) == {GamesContext.ALL, GamesContext.MODDED}
        assert len(aggregates[GamesContext.ALL]) == 10
        assert aggregates[GamesContext.MODDED][0].games_played == 12

    def test_top_level_list_rejected(self, tmp_path):
        path = tmp_path / "stats.json"
        path.write_text(json.dumps(_aggregates(2)), encoding="utf-8")

        with pytest.raises(ValueError, match="objet JSON attendu"):
            load_aggregates(path)

    def test_missing_context_skipped(self, tmp_path):
        path = tmp_path / "stats.json"
        path.write_text(json.dumps({"all": _aggregates(2)}), encoding="utf-8")

        assert list(load_aggregates(path)) == [GamesContext.ALL]


class TestMain:
    """Tests du point d'entrée CLI."""

    def test_writes_output(self, monkeypatch, stats_file, tmp_path):
        output = tmp_path / "titles.json"

        _run(monkeypatch, "--input", stats_file, "--output", output)

        data = json.loads(output.read_text(encoding="utf-8"))
        assert set(data) == {"all", "modded"}
        assert data["all"]["totalPlayers"] == 10
        # 12 parties: sous le seuil par défaut
        assert data["modded"]["totalPlayers"] == 0
        assert "killRate_extreme_high" in [t["id"] for t in data["all"]["players"]["p9"]["titles"]]

    def test_min_games_option(self, monkeypatch, stats_file, tmp_path):
        output = tmp_path / "titles.json"

        _run(monkeypatch, "--input", stats_file, "--output", output, "--min-games", "10")

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["modded"]["totalPlayers"] == 4
        assert data["modded"]["minGamesRequired"] == 10

    def test_dry_run_single_context(self, monkeypatch, stats_file, tmp_path, capsys):
        _run(monkeypatch, "--input", stats_file, "--context", "all", "--dry-run")

        out = capsys.readouterr().out
        assert "all: 10 joueurs" in out
        assert "modded" not in out
        assert "dry-run" in out
        assert list(tmp_path.iterdir()) == [stats_file]

    def test_output_required_without_dry_run(self, monkeypatch, stats_file):
        with pytest.raises(SystemExit) as exc_info:
            _run(monkeypatch, "--input", stats_file)

        assert exc_info.value.code == 2

    def test_invalid_aggregate_exits(self, monkeypatch, tmp_path):
        path = tmp_path / "stats.json"
        path.write_text(json.dumps({"all": [{"player_id": "p1", "games_played": -1}]}), encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            _run(monkeypatch, "--input", path, "--dry-run")

        assert exc_info.value.code == 1

    def test_invalid_catalog_exits(self, monkeypatch, stats_file, tmp_path):
        catalog = tmp_path / "catalog.json"
        catalog.write_text(json.dumps({"rules": [{"id": "x"}]}), encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            _run(monkeypatch, "--input", stats_file, "--catalog", catalog, "--dry-run")

        assert exc_info.value.code == 1

    def test_non_object_input_exits(self, monkeypatch, tmp_path):
        path = tmp_path / "stats.json"
        path.write_text(json.dumps(_aggregates(2)), encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            _run(monkeypatch, "--input", path, "--dry-run")

        assert exc_info.value.code == 1
