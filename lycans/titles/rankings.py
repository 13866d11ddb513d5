"""Classements par métrique (variante « ranking » des titres).

Chaque joueur éligible reçoit son rang sur les métriques de classement
(participations, taux de victoire...). À la différence des titres, le rang
est absolu dans la population du contexte: rang = 1 + nombre de valeurs
strictement meilleures. Les joueurs à égalité partagent le rang; l'ordre
d'entrée ne fixe que l'ordre de sortie.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import polars as pl

from lycans.titles.categories import GamesContext
from lycans.titles.config import DEFAULT_REDIRECT
from lycans.titles.metrics import MetricPopulation
from lycans.titles.rules import RankingDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankingEntry:
    """Rang d'un joueur sur un classement."""

    id: str
    title: str
    description: str
    type: str
    category: str
    rank: int
    value: float
    total_ranked: int
    redirect_to: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_REDIRECT))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "category": self.category,
            "rank": self.rank,
            "value": self.value,
            "totalRanked": self.total_ranked,
            "redirectTo": dict(self.redirect_to),
        }


def rank_ordinal(rank: int) -> str:
    """Suffixe ordinal français: 1er, 2ème, 3ème..."""
    return "er" if rank == 1 else "ème"


def rank_metric(
    population: MetricPopulation,
    definition: RankingDefinition,
) -> pl.DataFrame:
    """Classe les joueurs éligibles sur la métrique d'un classement.

    Returns:
        DataFrame ``player_id | value | rank`` trié par rang.
    """
    frame = population.frame
    values = frame.filter(pl.col("metric") == definition.metric).select("player_id", "value")

    if definition.min_games > 0:
        games = frame.filter(
            (pl.col("metric") == "gamesPlayed") & (pl.col("value") >= definition.min_games)
        ).select("player_id")
        values = values.join(games, on="player_id", how="semi")

    order = {pid: i for i, pid in enumerate(population.players)}
    # rang = 1 + nombre de valeurs strictement meilleures
    return (
        values.with_columns(
            pl.col("value").rank("min", descending=definition.descending).cast(pl.Int64).alias("rank"),
            pl.col("player_id").replace_strict(order, default=len(order), return_dtype=pl.Int64).alias("_order"),
        )
        .sort(["rank", "_order"])
        .select("player_id", "value", "rank")
    )


def compute_rankings(
    population: MetricPopulation,
    definitions: Iterable[RankingDefinition],
    context: GamesContext = GamesContext.ALL,
) -> dict[str, list[RankingEntry]]:
    """Calcule les classements de tous les joueurs d'un contexte.

    Args:
        population: Population éligible du contexte (sans seuil global de parties).
        definitions: Classements à calculer.
        context: Contexte, pour l'identifiant et le suffixe d'affichage.

    Returns:
        Dict player_id -> entrées de classement, dans l'ordre des définitions.
    """
    entries: dict[str, list[RankingEntry]] = {pid: [] for pid in population.players}
    if population.is_empty:
        return entries

    for definition in definitions:
        ranked = rank_metric(population, definition)
        total = ranked.height
        for row in ranked.iter_rows(named=True):
            rank = row["rank"]
            if definition.max_rank is not None and rank > definition.max_rank:
                break
            fields = {
                "rank": rank,
                "ordinal": rank_ordinal(rank),
                "value": row["value"],
                "suffix": context.suffix,
                "total": total,
            }
            entries.setdefault(row["player_id"], []).append(
                RankingEntry(
                    id=f"{definition.id}-{context.value}",
                    title=definition.title.format(**fields),
                    description=definition.description.format(**fields),
                    type=definition.type,
                    category=definition.category,
                    rank=rank,
                    value=row["value"],
                    total_ranked=total,
                    redirect_to=dict(definition.redirect_to or DEFAULT_REDIRECT),
                )
            )
        logger.debug("Classement %s (%s): %d joueurs", definition.id, context.value, total)

    return entries
