"""Sélection et ordonnancement des titres d'un joueur.

HOW IT WORKS:
- Les règles satisfaites sont triées par priorité décroissante, puis par
  index de déclaration (ordre du catalogue)
- Un plafond optionnel coupe la liste triée sans en changer l'ordre
- ``assign_primary_titles`` élit un titre principal par joueur, unique
  entre joueurs quand c'est possible
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from lycans.titles.categories import Category, GamesContext
from lycans.titles.categorizer import CategorizedSnapshot
from lycans.titles.config import DEFAULT_PERCENTILE
from lycans.titles.rules import ExactCategory, Rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TitleRecord:
    """Titre attribué à un joueur.

    Attributes:
        id: Identifiant de la règle source.
        title: Titre affiché.
        emoji: Emoji affiché.
        description: Description affichée.
        priority: Priorité de la règle.
        kind: Famille de la règle (basic, combination, threshold).
        stat: Métrique principale (règles à une métrique uniquement).
        category: Catégorie du joueur sur cette métrique.
        value: Valeur du joueur sur la métrique principale.
        percentile: Percentile (moyenne des conditions pour une combinaison).
        primary_owner: Nom du joueur qui détient ce titre en principal, si
            ce n'est pas le joueur courant.
    """

    id: str
    title: str
    emoji: str
    description: str
    priority: int
    kind: str
    stat: str | None = None
    category: Category | None = None
    value: float | None = None
    percentile: float | None = None
    primary_owner: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "emoji": self.emoji,
            "description": self.description,
            "priority": self.priority,
            "type": self.kind,
        }
        if self.stat is not None:
            data["stat"] = self.stat
        if self.category is not None:
            data["category"] = self.category.name
        if self.value is not None:
            data["value"] = self.value
        if self.percentile is not None:
            data["percentile"] = round(self.percentile, 2)
        if self.primary_owner is not None:
            data["primaryOwner"] = self.primary_owner
        return data


@dataclass(frozen=True)
class TitleAssignment:
    """Titres d'un joueur pour un contexte, du plus au moins prioritaire."""

    player_id: str
    player_name: str
    context: GamesContext
    titles: tuple[TitleRecord, ...] = ()
    primary_title: TitleRecord | None = None

    @property
    def rule_ids(self) -> list[str]:
        return [t.id for t in self.titles]

    def to_dict(self) -> dict[str, Any]:
        return {
            "playerId": self.player_id,
            "playerName": self.player_name,
            "titles": [t.to_dict() for t in self.titles],
            "primaryTitle": self.primary_title.to_dict() if self.primary_title else None,
        }


def build_title_record(rule: Rule, snapshot: CategorizedSnapshot) -> TitleRecord:
    """Construit l'enregistrement d'affichage d'une règle satisfaite."""
    stats = rule.stats
    single = len(stats) == 1
    main = snapshot.get(stats[0]) if single else None

    if single and main is not None:
        percentile = main.percentile
    else:
        # Combinaison: moyenne des percentiles positifs des conditions
        positives = [
            entry.percentile
            for entry in (snapshot.get(stat) for stat in stats)
            if entry is not None and entry.percentile is not None and entry.percentile > 0
        ]
        percentile = sum(positives) / len(positives) if positives else None

    category = None
    if single and main is not None and isinstance(rule.conditions[0], ExactCategory):
        category = main.category

    return TitleRecord(
        id=rule.id,
        title=rule.title,
        emoji=rule.emoji,
        description=rule.description,
        priority=rule.priority,
        kind=rule.kind,
        stat=stats[0] if single else None,
        category=category,
        value=main.value if main is not None else None,
        percentile=percentile,
    )


def sort_rules(rules: Iterable[Rule]) -> list[Rule]:
    """Priorité décroissante, puis ordre de déclaration."""
    return sorted(rules, key=lambda r: (-r.priority, r.declaration_index))


def select_titles(
    matched: Iterable[Rule],
    snapshot: CategorizedSnapshot,
    max_titles: int | None = None,
) -> list[TitleRecord]:
    """Ordonne (et plafonne éventuellement) les titres d'un joueur.

    Args:
        matched: Règles satisfaites par le joueur.
        snapshot: Snapshot catégorisé du joueur.
        max_titles: Nombre maximum de titres (None = pas de plafond).

    Returns:
        Liste triée, vide si aucune règle ne correspond.
    """
    ordered = sort_rules(matched)
    if max_titles is not None:
        ordered = ordered[: max(max_titles, 0)]
    return [build_title_record(rule, snapshot) for rule in ordered]


def _claim_strength(title: TitleRecord, index: int) -> float:
    percentile = title.percentile if title.percentile is not None else DEFAULT_PERCENTILE
    if title.category is not None and title.category.is_low_side:
        percentile = 100 - percentile
    return title.priority * 1000 + percentile * 10 - index


def assign_primary_titles(assignments: Sequence[TitleAssignment]) -> list[TitleAssignment]:
    """Élit un titre principal par joueur, unique entre joueurs si possible.

    1. Chaque (joueur, titre) forme une revendication de force
       ``priorité * 1000 + percentile ajusté * 10 - position`` (percentile
       inversé pour les catégories basses). Les revendications les plus
       fortes sont servies d'abord, un titre ne pouvant être principal
       qu'une fois.
    2. Un joueur resté sans titre principal reprend son premier titre.
    3. Les titres détenus en principal par un autre joueur sont annotés
       avec ``primary_owner``.

    Args:
        assignments: Titres du lot (un seul contexte).

    Returns:
        Nouvelles affectations, dans le même ordre.
    """
    claims = []
    for player_order, assignment in enumerate(assignments):
        for index, title in enumerate(assignment.titles):
            claims.append((_claim_strength(title, index), player_order, index))
    claims.sort(key=lambda c: (-c[0], c[1], c[2]))

    primary: dict[int, TitleRecord] = {}
    owners: dict[str, int] = {}
    for _, player_order, index in claims:
        if player_order in primary:
            continue
        title = assignments[player_order].titles[index]
        if title.id in owners:
            continue
        primary[player_order] = title
        owners[title.id] = player_order

    unique_count = len(primary)
    for player_order, assignment in enumerate(assignments):
        if player_order not in primary and assignment.titles:
            primary[player_order] = assignment.titles[0]

    result = []
    for player_order, assignment in enumerate(assignments):
        titles = tuple(
            replace(t, primary_owner=assignments[owners[t.id]].player_name)
            if t.id in owners and owners[t.id] != player_order
            else t
            for t in assignment.titles
        )
        chosen = primary.get(player_order)
        if chosen is not None:
            chosen = next(t for t in titles if t.id == chosen.id)
        result.append(replace(assignment, titles=titles, primary_title=chosen))

    if assignments:
        logger.info(
            "Titres principaux uniques: %d/%d joueurs", unique_count, len(assignments)
        )
    return result
