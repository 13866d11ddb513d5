"""Catégorisation des métriques par percentile.

Le percentile d'une valeur est la part de la distribution éligible
strictement inférieure à cette valeur. Les valeurs égales partagent donc le
même percentile et la même catégorie.

Chaque métrique est traitée en deux phases: la distribution complète est
collectée (fenêtre Polars ``over("metric")``) avant toute attribution.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import polars as pl

from lycans.titles.categories import Category
from lycans.titles.config import DEFAULT_PERCENTILE, PERCENTILE_THRESHOLDS
from lycans.titles.metrics import METRIC_REGISTRY, MetricPopulation, MetricSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategorizedValue:
    """Valeur éligible d'un joueur pour une métrique.

    Attributes:
        value: Valeur brute normalisée.
        percentile: Percentile 0-100 dans la population (None si non catégorisée).
        category: Catégorie attribuée (None si la métrique n'est pas catégorisée).
    """

    value: float
    percentile: float | None = None
    category: Category | None = None


@dataclass(frozen=True)
class CategorizedSnapshot:
    """Ensemble des valeurs catégorisées d'un joueur."""

    player_id: str
    player_name: str = ""
    values: dict[str, CategorizedValue] = field(default_factory=dict)

    def get(self, metric: str) -> CategorizedValue | None:
        return self.values.get(metric)

    def category_of(self, metric: str) -> Category | None:
        entry = self.values.get(metric)
        return entry.category if entry is not None else None


def percentile_rank(value: float, distribution: pl.Series | list[float]) -> float:
    """Calcule le percentile d'une valeur dans une distribution.

    Args:
        value: Valeur à situer.
        distribution: Valeurs éligibles (la valeur elle-même incluse).

    Returns:
        Part (0-100) des valeurs strictement inférieures, 50 si vide.
    """
    series = distribution if isinstance(distribution, pl.Series) else pl.Series(distribution)
    series = series.drop_nulls()
    if len(series) == 0:
        return DEFAULT_PERCENTILE
    below = (series < value).sum()
    return float(below / len(series) * 100)


def category_for_percentile(percentile: float) -> Category:
    """Retourne la catégorie associée à un percentile."""
    if percentile >= PERCENTILE_THRESHOLDS["EXTREME_HIGH"]:
        return Category.EXTREME_HIGH
    if percentile >= PERCENTILE_THRESHOLDS["HIGH"]:
        return Category.HIGH
    if percentile >= PERCENTILE_THRESHOLDS["ABOVE_AVERAGE"]:
        return Category.ABOVE_AVERAGE
    if percentile <= PERCENTILE_THRESHOLDS["EXTREME_LOW"]:
        return Category.EXTREME_LOW
    if percentile <= PERCENTILE_THRESHOLDS["LOW"]:
        return Category.LOW
    if percentile <= PERCENTILE_THRESHOLDS["BELOW_AVERAGE"]:
        return Category.BELOW_AVERAGE
    return Category.AVERAGE


def _category_expr(percentile: pl.Expr) -> pl.Expr:
    """Version vectorisée de ``category_for_percentile`` (libellés)."""
    return (
        pl.when(percentile >= PERCENTILE_THRESHOLDS["EXTREME_HIGH"])
        .then(pl.lit(Category.EXTREME_HIGH.name))
        .when(percentile >= PERCENTILE_THRESHOLDS["HIGH"])
        .then(pl.lit(Category.HIGH.name))
        .when(percentile >= PERCENTILE_THRESHOLDS["ABOVE_AVERAGE"])
        .then(pl.lit(Category.ABOVE_AVERAGE.name))
        .when(percentile <= PERCENTILE_THRESHOLDS["EXTREME_LOW"])
        .then(pl.lit(Category.EXTREME_LOW.name))
        .when(percentile <= PERCENTILE_THRESHOLDS["LOW"])
        .then(pl.lit(Category.LOW.name))
        .when(percentile <= PERCENTILE_THRESHOLDS["BELOW_AVERAGE"])
        .then(pl.lit(Category.BELOW_AVERAGE.name))
        .otherwise(pl.lit(Category.AVERAGE.name))
    )


def compute_percentiles(
    population: MetricPopulation,
    registry: Mapping[str, MetricSpec] = METRIC_REGISTRY,
) -> pl.DataFrame:
    """Ajoute ``percentile`` et ``category`` à la population.

    Les métriques non catégorisées gardent des colonnes nulles.
    """
    categorized = [key for key, spec in registry.items() if spec.categorized]
    is_categorized = pl.col("metric").is_in(categorized)

    # rank("min") - 1 = nombre de valeurs strictement inférieures
    below = pl.col("value").rank("min").over("metric").cast(pl.Float64) - 1.0
    percentile = below / pl.len().over("metric").cast(pl.Float64) * 100.0

    return population.frame.with_columns(
        pl.when(is_categorized).then(percentile).otherwise(None).alias("percentile")
    ).with_columns(
        pl.when(is_categorized)
        .then(_category_expr(pl.col("percentile")))
        .otherwise(None)
        .alias("category")
    )


def categorize_population(
    population: MetricPopulation,
    registry: Mapping[str, MetricSpec] = METRIC_REGISTRY,
) -> dict[str, CategorizedSnapshot]:
    """Catégorise toute la population d'un lot.

    Args:
        population: Population éligible (un seul contexte).
        registry: Registre des métriques.

    Returns:
        Dict player_id -> CategorizedSnapshot, dans l'ordre des joueurs du
        lot. Un joueur sans aucune valeur éligible a un snapshot vide.
    """
    values: dict[str, dict[str, CategorizedValue]] = {pid: {} for pid in population.players}

    if not population.is_empty:
        ranked = compute_percentiles(population, registry).sort(["player_id", "metric"])
        for row in ranked.iter_rows(named=True):
            label = row["category"]
            values.setdefault(row["player_id"], {})[row["metric"]] = CategorizedValue(
                value=row["value"],
                percentile=row["percentile"],
                category=Category[label] if label is not None else None,
            )

    logger.debug(
        "Catégorisation: %d joueurs, %d métriques",
        len(values),
        population.frame["metric"].n_unique() if not population.is_empty else 0,
    )

    return {
        pid: CategorizedSnapshot(
            player_id=pid,
            player_name=population.player_names.get(pid, pid),
            values=metric_values,
        )
        for pid, metric_values in values.items()
    }
