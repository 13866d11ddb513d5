"""Fixtures communes pour les tests.

Ce fichier contient des fixtures partagées pour tous les tests, notamment
des fabriques de snapshots de métriques et le catalogue de titres embarqué.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from lycans.titles import (
    Category,
    CategorizedSnapshot,
    CategorizedValue,
    MetricSample,
    MetricSnapshot,
    RuleSet,
    TitleSettings,
    load_rule_set,
)

SnapshotFactory = Callable[..., MetricSnapshot]


# =============================================================================
# CATALOGUE
# =============================================================================


@pytest.fixture(scope="session")
def rule_set() -> RuleSet:
    """Catalogue de titres embarqué, chargé une seule fois."""
    return load_rule_set()


@pytest.fixture
def open_settings() -> TitleSettings:
    """Paramètres sans seuil global de parties."""
    return TitleSettings(min_games_for_titles=0)


# =============================================================================
# SNAPSHOTS
# =============================================================================


@pytest.fixture
def make_snapshot() -> SnapshotFactory:
    """Fabrique de MetricSnapshot.

    Les métriques sont passées en mots-clés: un nombre seul utilise le nombre
    de parties comme taille d'échantillon, un tuple ``(valeur, échantillon)``
    fixe l'échantillon explicitement.
    """

    def _make(player_id: str, games: int = 30, name: str | None = None, **metrics) -> MetricSnapshot:
        samples = {"gamesPlayed": MetricSample(value=float(games), sample_size=games)}
        for key, raw in metrics.items():
            if isinstance(raw, tuple):
                value, sample = raw
            else:
                value, sample = raw, games
            samples[key] = MetricSample(value=value, sample_size=sample)
        return MetricSnapshot(player_id=player_id, player_name=name or player_id, metrics=samples)

    return _make


@pytest.fixture
def categorized() -> Callable[..., CategorizedSnapshot]:
    """Fabrique de CategorizedSnapshot sans passer par la population.

    Chaque métrique est un tuple ``(valeur, percentile, catégorie)``; une
    catégorie ``None`` simule une métrique non catégorisée.
    """

    def _make(player_id: str = "p1", **values) -> CategorizedSnapshot:
        return CategorizedSnapshot(
            player_id=player_id,
            player_name=player_id,
            values={
                key: CategorizedValue(
                    value=value,
                    percentile=percentile,
                    category=Category.parse(category) if category is not None else None,
                )
                for key, (value, percentile, category) in values.items()
            },
        )

    return _make


@pytest.fixture
def kill_rate_population(make_snapshot: SnapshotFactory) -> list[MetricSnapshot]:
    """20 joueurs de 30 parties, kill rate croissant de 0.1 à 2.0."""
    return [make_snapshot(f"p{i}", killRate=i / 10) for i in range(1, 21)]
