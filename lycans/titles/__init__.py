"""Moteur de titres et de classements des joueurs Lycans.

Pipeline: agrégats -> normalisation -> catégorisation par percentile ->
évaluation des règles -> sélection des titres.
"""

from .aggregates import CampRecord, PlayerAggregate, build_metric_snapshot
from .categories import Category, GamesContext
from .categorizer import (
    CategorizedSnapshot,
    CategorizedValue,
    categorize_population,
    category_for_percentile,
    percentile_rank,
)
from .config import TitleSettings
from .engine import TitleEngine, TitlesReport, generate_titles, generate_titles_by_context
from .errors import RuleConfigError
from .evaluator import condition_holds, matching_rules
from .metrics import METRIC_REGISTRY, MetricPopulation, MetricSample, MetricSnapshot, MetricSpec, normalize_population
from .rankings import RankingEntry, compute_rankings
from .rules import (
    ExactCategory,
    MaxCategory,
    MaxValue,
    MinCategory,
    MinValue,
    RankingDefinition,
    Rule,
    RuleSet,
    build_rule_set,
    load_rule_set,
)
from .selector import TitleAssignment, TitleRecord, assign_primary_titles, select_titles

__all__ = [
    "METRIC_REGISTRY",
    "CampRecord",
    "CategorizedSnapshot",
    "CategorizedValue",
    "Category",
    "ExactCategory",
    "GamesContext",
    "MaxCategory",
    "MaxValue",
    "MetricPopulation",
    "MetricSample",
    "MetricSnapshot",
    "MetricSpec",
    "MinCategory",
    "MinValue",
    "PlayerAggregate",
    "RankingDefinition",
    "RankingEntry",
    "Rule",
    "RuleConfigError",
    "RuleSet",
    "TitleAssignment",
    "TitleEngine",
    "TitleRecord",
    "TitleSettings",
    "TitlesReport",
    "assign_primary_titles",
    "build_metric_snapshot",
    "build_rule_set",
    "categorize_population",
    "category_for_percentile",
    "compute_rankings",
    "condition_holds",
    "generate_titles",
    "generate_titles_by_context",
    "load_rule_set",
    "matching_rules",
    "normalize_population",
    "percentile_rank",
    "select_titles",
]
