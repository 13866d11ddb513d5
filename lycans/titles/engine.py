"""Moteur de génération des titres joueurs.

Ce module fournit ``TitleEngine``, classe responsable de :

- Charger (une fois) le catalogue de règles.
- Exécuter un lot complet pour un contexte: normalisation, catégorisation,
  évaluation, sélection, titre principal et classements.
- Traiter les contextes ``all`` et ``modded`` comme des lots indépendants.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lycans.titles.aggregates import PlayerAggregate, build_metric_snapshot
from lycans.titles.categories import GamesContext
from lycans.titles.categorizer import CategorizedSnapshot, categorize_population
from lycans.titles.config import PERCENTILE_THRESHOLDS, TITLES_ENGINE_VERSION, TitleSettings
from lycans.titles.evaluator import matching_rules
from lycans.titles.metrics import METRIC_REGISTRY, MetricSnapshot, MetricSpec, normalize_population
from lycans.titles.rankings import RankingEntry, compute_rankings
from lycans.titles.rules import RuleSet, load_rule_set
from lycans.titles.selector import TitleAssignment, assign_primary_titles, select_titles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TitlesReport:
    """Résultat d'un lot pour un contexte.

    Attributes:
        context: Contexte évalué.
        assignments: Titres par joueur retenu, dans l'ordre d'entrée.
        rankings: Classements par joueur (population sans seuil global).
        snapshots: Snapshots catégorisés, pour inspection.
        min_games: Seuil global de parties appliqué au lot.
    """

    context: GamesContext
    assignments: tuple[TitleAssignment, ...] = ()
    rankings: dict[str, list[RankingEntry]] = field(default_factory=dict)
    snapshots: dict[str, CategorizedSnapshot] = field(default_factory=dict)
    min_games: int = 0

    def titles_for(self, player_id: str) -> list[str]:
        """Identifiants des titres d'un joueur (liste vide si absent du lot)."""
        for assignment in self.assignments:
            if assignment.player_id == player_id:
                return assignment.rule_ids
        return []

    def assignment_for(self, player_id: str) -> TitleAssignment | None:
        return next((a for a in self.assignments if a.player_id == player_id), None)

    def to_dict(self) -> dict[str, Any]:
        """Export JSON du lot."""
        return {
            "version": TITLES_ENGINE_VERSION,
            "context": self.context.value,
            "totalPlayers": len(self.assignments),
            "minGamesRequired": self.min_games,
            "percentileThresholds": dict(PERCENTILE_THRESHOLDS),
            "players": {
                a.player_id: {
                    **a.to_dict(),
                    "rankings": [r.to_dict() for r in self.rankings.get(a.player_id, [])],
                }
                for a in self.assignments
            },
        }


class TitleEngine:
    """Moteur de titres: un catalogue, plusieurs lots.

    Args:
        rule_set: Catalogue déjà chargé. Si ``None``, chargé depuis
            *catalog_path* (ou le catalogue embarqué).
        catalog_path: Chemin d'un catalogue JSON alternatif.
        settings: Paramètres d'exécution.
        registry: Registre des métriques.
    """

    def __init__(
        self,
        rule_set: RuleSet | None = None,
        *,
        catalog_path: str | Path | None = None,
        settings: TitleSettings | None = None,
        registry: Mapping[str, MetricSpec] = METRIC_REGISTRY,
    ) -> None:
        self._registry = registry
        self._rule_set = rule_set if rule_set is not None else load_rule_set(catalog_path, registry)
        self._settings = settings or TitleSettings()

    @property
    def rule_set(self) -> RuleSet:
        return self._rule_set

    @property
    def settings(self) -> TitleSettings:
        return self._settings

    def generate(
        self,
        snapshots: Iterable[MetricSnapshot],
        context: GamesContext = GamesContext.ALL,
    ) -> TitlesReport:
        """Exécute un lot complet pour un contexte.

        Args:
            snapshots: Métriques des joueurs pour ce contexte uniquement.
            context: Contexte du lot.

        Returns:
            TitlesReport du lot. Une population vide donne un rapport vide.
        """
        snapshots = list(snapshots)
        settings = self._settings

        population = normalize_population(
            snapshots, self._registry, min_games=settings.min_games_for_titles
        )
        categorized = categorize_population(population, self._registry)

        assignments = []
        for player_id, snapshot in categorized.items():
            matched = matching_rules(snapshot, self._rule_set.rules)
            titles = select_titles(matched, snapshot, settings.max_titles)
            assignments.append(
                TitleAssignment(
                    player_id=player_id,
                    player_name=snapshot.player_name,
                    context=context,
                    titles=tuple(titles),
                )
            )

        if settings.assign_primary:
            assignments = assign_primary_titles(assignments)

        rankings: dict[str, list[RankingEntry]] = {}
        if self._rule_set.rankings:
            ranking_population = normalize_population(snapshots, self._registry)
            rankings = compute_rankings(ranking_population, self._rule_set.rankings, context)

        logger.info(
            "Titres [%s]: %d/%d joueurs éligibles (%d+ parties), %d titres attribués",
            context.value,
            len(assignments),
            len(snapshots),
            settings.min_games_for_titles,
            sum(len(a.titles) for a in assignments),
        )

        return TitlesReport(
            context=context,
            assignments=tuple(assignments),
            rankings=rankings,
            snapshots=categorized,
            min_games=settings.min_games_for_titles,
        )

    def generate_from_aggregates(
        self,
        aggregates: Iterable[PlayerAggregate],
        context: GamesContext = GamesContext.ALL,
    ) -> TitlesReport:
        """Comme ``generate``, depuis les agrégats bruts des joueurs."""
        return self.generate((build_metric_snapshot(a) for a in aggregates), context)

    def generate_by_context(
        self,
        snapshots_by_context: Mapping[GamesContext, Iterable[MetricSnapshot]],
    ) -> dict[GamesContext, TitlesReport]:
        """Exécute un lot indépendant par contexte.

        Aucun seuil, aucune catégorie ni aucun titre principal n'est partagé
        entre contextes.
        """
        return {
            GamesContext(context): self.generate(snapshots, GamesContext(context))
            for context, snapshots in snapshots_by_context.items()
        }


def generate_titles(
    snapshots: Iterable[MetricSnapshot],
    rule_set: RuleSet | None = None,
    settings: TitleSettings | None = None,
    context: GamesContext = GamesContext.ALL,
) -> TitlesReport:
    """Raccourci: un lot avec un moteur éphémère."""
    return TitleEngine(rule_set, settings=settings).generate(snapshots, context)


def generate_titles_by_context(
    snapshots_by_context: Mapping[GamesContext, Iterable[MetricSnapshot]],
    rule_set: RuleSet | None = None,
    settings: TitleSettings | None = None,
) -> dict[GamesContext, TitlesReport]:
    """Raccourci: contextes ``all`` et ``modded`` en lots séparés."""
    return TitleEngine(rule_set, settings=settings).generate_by_context(snapshots_by_context)
