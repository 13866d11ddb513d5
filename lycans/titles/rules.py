"""Règles de titres et chargement du catalogue.

HOW IT WORKS:
- Le catalogue JSON (textes opaques + conditions) est validé par Pydantic
- Chaque condition devient une variante typée (ExactCategory, MinCategory,
  MaxCategory, MinValue, MaxValue)
- Les tables de bandes sont dépliées en règles basiques (une par catégorie)
- Chaque règle reçoit un index de déclaration stable, utilisé pour départager
  les priorités égales

Toute incohérence lève ``RuleConfigError`` au chargement.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lycans.titles.categories import Category
from lycans.titles.config import BAND_LEVELS, BASIC_PRIORITIES, DEFAULT_CATALOG_PATH
from lycans.titles.errors import RuleConfigError
from lycans.titles.metrics import METRIC_REGISTRY, MetricSpec

logger = logging.getLogger(__name__)


# =============================================================================
# Conditions typées
# =============================================================================


@dataclass(frozen=True)
class ExactCategory:
    """La catégorie du joueur doit être exactement ``category``."""

    stat: str
    category: Category


@dataclass(frozen=True)
class MinCategory:
    """La catégorie du joueur doit être au moins ``category``."""

    stat: str
    category: Category


@dataclass(frozen=True)
class MaxCategory:
    """La catégorie du joueur doit être au plus ``category``."""

    stat: str
    category: Category


@dataclass(frozen=True)
class MinValue:
    """La valeur brute doit être >= ``value`` (> si ``strict``), hors catégorisation."""

    stat: str
    value: float
    strict: bool = False


@dataclass(frozen=True)
class MaxValue:
    """La valeur brute doit être <= ``value`` (hors catégorisation)."""

    stat: str
    value: float


Condition = Union[ExactCategory, MinCategory, MaxCategory, MinValue, MaxValue]

RuleKind = Literal["basic", "combination", "threshold"]


@dataclass(frozen=True)
class Rule:
    """Règle de titre, statique et immuable.

    Attributes:
        id: Identifiant unique (ex: ``"killRate_extreme_high"``, ``"legende"``).
        title: Titre affiché (opaque).
        emoji: Emoji affiché (opaque).
        description: Description affichée (opaque).
        priority: Plus haut = plus intéressant.
        kind: Famille de la règle.
        conditions: Conditions, toutes requises.
        declaration_index: Position dans le catalogue, départage les priorités égales.
    """

    id: str
    title: str
    emoji: str
    description: str
    priority: int
    kind: RuleKind
    conditions: tuple[Condition, ...]
    declaration_index: int

    @property
    def stats(self) -> tuple[str, ...]:
        """Métriques référencées, sans doublon, dans l'ordre des conditions."""
        return tuple(dict.fromkeys(c.stat for c in self.conditions))


@dataclass(frozen=True)
class RankingDefinition:
    """Définition d'un classement (variante « ranking » des titres).

    Les gabarits ``title``/``description`` acceptent les champs ``{rank}``,
    ``{ordinal}``, ``{value}``, ``{suffix}`` et ``{total}``.
    """

    id: str
    metric: str
    title: str
    description: str
    type: Literal["good", "bad", "neutral"] = "good"
    category: str = "general"
    descending: bool = True
    min_games: int = 0
    max_rank: int | None = None
    redirect_to: dict[str, str] | None = None


@dataclass(frozen=True)
class RuleSet:
    """Catalogue chargé: règles ordonnées et classements."""

    rules: tuple[Rule, ...]
    rankings: tuple[RankingDefinition, ...] = ()
    version: int = 1

    def __len__(self) -> int:
        return len(self.rules)

    def get(self, rule_id: str) -> Rule | None:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None


# =============================================================================
# Schéma du catalogue
# =============================================================================


class TitleTextSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1)
    emoji: str = ""
    description: str = ""


class ConditionSpec(BaseModel):
    """Condition telle qu'écrite dans le catalogue."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    stat: str = Field(..., min_length=1)
    category: str | None = None
    min_category: str | None = Field(default=None, alias="minCategory")
    max_category: str | None = Field(default=None, alias="maxCategory")
    min_value: float | None = Field(default=None, alias="minValue")
    greater_than: float | None = Field(default=None, alias="greaterThan")
    max_value: float | None = Field(default=None, alias="maxValue")


class BandSpec(BaseModel):
    """Table catégorie -> titre pour une seule métrique."""

    model_config = ConfigDict(extra="forbid")

    key: str = Field(..., min_length=1)
    metric: str = Field(..., min_length=1)
    levels: dict[str, TitleTextSpec]

    @field_validator("levels")
    @classmethod
    def check_levels(cls, v: dict[str, TitleTextSpec]) -> dict[str, TitleTextSpec]:
        known = {level for levels in BAND_LEVELS.values() for level in levels}
        unknown = sorted(set(v) - known)
        if unknown:
            raise ValueError(f"niveaux inconnus: {unknown}")
        return v


class RuleSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    kind: Literal["combination", "threshold"] = "combination"
    title: str = Field(..., min_length=1)
    emoji: str = ""
    description: str = ""
    priority: int
    conditions: list[ConditionSpec] = Field(..., min_length=1)


class RankingSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str = Field(..., min_length=1)
    metric: str = Field(..., min_length=1)
    title: str
    description: str
    type: Literal["good", "bad", "neutral"] = "good"
    category: str = "general"
    order: Literal["desc", "asc"] = "desc"
    min_games: int = Field(default=0, ge=0, alias="minGames")
    max_rank: int | None = Field(default=None, ge=1, alias="maxRank")
    redirect_to: dict[str, str] | None = Field(default=None, alias="redirectTo")


class CatalogSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: int = 1
    bands: list[BandSpec] = Field(default_factory=list)
    rules: list[RuleSpec] = Field(default_factory=list)
    rankings: list[RankingSpec] = Field(default_factory=list)


# =============================================================================
# Conversion
# =============================================================================


def _check_metric(stat: str, registry: Mapping[str, MetricSpec], where: str) -> MetricSpec:
    spec = registry.get(stat)
    if spec is None:
        raise RuleConfigError(f"{where}: métrique inconnue {stat!r}")
    return spec


def parse_condition(
    spec: ConditionSpec,
    registry: Mapping[str, MetricSpec] = METRIC_REGISTRY,
    *,
    where: str = "condition",
) -> tuple[Condition, ...]:
    """Convertit une condition du catalogue en variantes typées.

    ``category`` + ``minCategory`` donne « au moins ``minCategory`` »
    (la catégorie exacte est alors incluse); même logique avec
    ``maxCategory``. Une catégorie basse sous son ``minCategory`` (ex: LOW +
    BELOW_AVERAGE) donne « au plus ``minCategory`` »; une catégorie moyenne
    ou haute sous son plancher donne « au moins ``category`` ».

    ``minValue``/``maxValue`` ajoutent un seuil brut inclusif,
    ``greaterThan`` un seuil brut strict.

    Raises:
        RuleConfigError: Métrique inconnue, catégorie invalide, condition
            vide ou combinaison contradictoire.
    """
    metric = _check_metric(spec.stat, registry, where)
    where = f"{where} [{spec.stat}]"

    category = Category.parse(spec.category) if spec.category is not None else None
    floor = Category.parse(spec.min_category) if spec.min_category is not None else None
    ceiling = Category.parse(spec.max_category) if spec.max_category is not None else None

    conditions: list[Condition] = []
    if floor is not None and ceiling is not None:
        raise RuleConfigError(f"{where}: minCategory et maxCategory sont exclusifs")
    if floor is not None:
        if category is not None and category < floor:
            if category.is_low_side:
                conditions.append(MaxCategory(spec.stat, floor))
            else:
                conditions.append(MinCategory(spec.stat, category))
        else:
            conditions.append(MinCategory(spec.stat, floor))
    elif ceiling is not None:
        if category is not None and category > ceiling:
            raise RuleConfigError(
                f"{where}: category {category.name} au-dessus de maxCategory {ceiling.name}"
            )
        conditions.append(MaxCategory(spec.stat, ceiling))
    elif category is not None:
        conditions.append(ExactCategory(spec.stat, category))

    if conditions and not metric.categorized:
        raise RuleConfigError(f"{where}: métrique non catégorisée, seuils bruts uniquement")

    if spec.min_value is not None:
        conditions.append(MinValue(spec.stat, spec.min_value))
    if spec.greater_than is not None:
        conditions.append(MinValue(spec.stat, spec.greater_than, strict=True))
    if spec.max_value is not None:
        conditions.append(MaxValue(spec.stat, spec.max_value))

    if not conditions:
        raise RuleConfigError(f"{where}: condition sans contrainte")
    return tuple(conditions)


def expand_band(band: BandSpec, registry: Mapping[str, MetricSpec] = METRIC_REGISTRY) -> list[dict[str, Any]]:
    """Déplie une table de bandes en règles basiques (une par catégorie).

    Ordre: de EXTREME_HIGH à EXTREME_LOW. Une catégorie sans niveau (même
    après repli) ne produit pas de règle.
    """
    metric = _check_metric(band.metric, registry, f"bande {band.key!r}")
    if not metric.categorized:
        raise RuleConfigError(f"bande {band.key!r}: métrique non catégorisée")

    expanded = []
    for category in sorted(Category, reverse=True):
        text = next(
            (band.levels[level] for level in BAND_LEVELS[category.name] if level in band.levels),
            None,
        )
        if text is None:
            continue
        expanded.append(
            {
                "id": f"{band.key}_{category.name.lower()}",
                "title": text.title,
                "emoji": text.emoji,
                "description": text.description,
                "priority": BASIC_PRIORITIES[category.name],
                "conditions": (ExactCategory(band.metric, category),),
            }
        )
    return expanded


def _check_template(template: str, ranking_id: str) -> None:
    try:
        template.format(rank=1, ordinal="er", value=0.0, suffix="", total=1)
    except (KeyError, IndexError, ValueError) as e:
        raise RuleConfigError(f"classement {ranking_id!r}: gabarit invalide {template!r} ({e})") from e


def build_rule_set(
    catalog: Mapping[str, Any],
    registry: Mapping[str, MetricSpec] = METRIC_REGISTRY,
) -> RuleSet:
    """Construit un RuleSet validé depuis un catalogue en mémoire.

    Ordre de déclaration: règles basiques (bandes), puis règles du catalogue
    dans leur ordre d'écriture.

    Raises:
        RuleConfigError: Catalogue invalide.
    """
    try:
        spec = CatalogSpec.model_validate(catalog)
    except ValidationError as e:
        raise RuleConfigError(f"Catalogue de titres invalide: {e}") from e

    pending: list[tuple[RuleKind, dict[str, Any]]] = []
    for band in spec.bands:
        pending.extend(("basic", entry) for entry in expand_band(band, registry))

    for rule in spec.rules:
        conditions: list[Condition] = []
        for cond in rule.conditions:
            conditions.extend(parse_condition(cond, registry, where=f"règle {rule.id!r}"))
        pending.append(
            (
                rule.kind,
                {
                    "id": rule.id,
                    "title": rule.title,
                    "emoji": rule.emoji,
                    "description": rule.description,
                    "priority": rule.priority,
                    "conditions": tuple(conditions),
                },
            )
        )

    rules: list[Rule] = []
    seen: set[str] = set()
    for index, (kind, entry) in enumerate(pending):
        if entry["id"] in seen:
            raise RuleConfigError(f"Identifiant de règle dupliqué: {entry['id']!r}")
        seen.add(entry["id"])
        rules.append(Rule(kind=kind, declaration_index=index, **entry))

    rankings = []
    ranking_ids: set[str] = set()
    for ranking in spec.rankings:
        _check_metric(ranking.metric, registry, f"classement {ranking.id!r}")
        if ranking.id in ranking_ids:
            raise RuleConfigError(f"Identifiant de classement dupliqué: {ranking.id!r}")
        ranking_ids.add(ranking.id)
        _check_template(ranking.title, ranking.id)
        _check_template(ranking.description, ranking.id)
        rankings.append(
            RankingDefinition(
                id=ranking.id,
                metric=ranking.metric,
                title=ranking.title,
                description=ranking.description,
                type=ranking.type,
                category=ranking.category,
                descending=ranking.order == "desc",
                min_games=ranking.min_games,
                max_rank=ranking.max_rank,
                redirect_to=ranking.redirect_to,
            )
        )

    logger.info(
        "Catalogue de titres chargé: %d règles, %d classements", len(rules), len(rankings)
    )
    return RuleSet(rules=tuple(rules), rankings=tuple(rankings), version=spec.version)


def load_rule_set(
    path: str | Path | None = None,
    registry: Mapping[str, MetricSpec] = METRIC_REGISTRY,
) -> RuleSet:
    """Charge et valide le catalogue JSON.

    Args:
        path: Chemin du catalogue. Si ``None``, catalogue embarqué.
        registry: Registre des métriques autorisées.

    Raises:
        RuleConfigError: Fichier absent, JSON illisible ou catalogue invalide.
    """
    catalog_path = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    try:
        raw = json.loads(catalog_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise RuleConfigError(f"Catalogue introuvable: {catalog_path}") from e
    except json.JSONDecodeError as e:
        raise RuleConfigError(f"Catalogue JSON illisible ({catalog_path}): {e}") from e
    if not isinstance(raw, dict):
        raise RuleConfigError(f"Catalogue invalide ({catalog_path}): objet JSON attendu")
    return build_rule_set(raw, registry)
