"""Évaluation des règles sur un snapshot catégorisé.

Évaluation purement déclarative: une règle correspond si toutes ses
conditions sont vraies. Une métrique absente ou non éligible rend la
condition fausse, jamais une erreur.
"""

from __future__ import annotations

from collections.abc import Iterable

from lycans.titles.categorizer import CategorizedSnapshot
from lycans.titles.rules import (
    Condition,
    ExactCategory,
    MaxCategory,
    MaxValue,
    MinCategory,
    MinValue,
    Rule,
)


def condition_holds(condition: Condition, snapshot: CategorizedSnapshot) -> bool:
    """Indique si une condition est satisfaite par le joueur."""
    entry = snapshot.get(condition.stat)
    if entry is None:
        return False

    if isinstance(condition, ExactCategory):
        return entry.category is not None and entry.category == condition.category
    if isinstance(condition, MinCategory):
        return entry.category is not None and entry.category >= condition.category
    if isinstance(condition, MaxCategory):
        return entry.category is not None and entry.category <= condition.category
    if isinstance(condition, MinValue):
        if condition.strict:
            return entry.value > condition.value
        return entry.value >= condition.value
    if isinstance(condition, MaxValue):
        return entry.value <= condition.value
    raise TypeError(f"Condition non supportée: {type(condition).__name__}")


def rule_matches(rule: Rule, snapshot: CategorizedSnapshot) -> bool:
    return all(condition_holds(c, snapshot) for c in rule.conditions)


def matching_rules(snapshot: CategorizedSnapshot, rules: Iterable[Rule]) -> list[Rule]:
    """Retourne les règles satisfaites, dans l'ordre du catalogue."""
    return [rule for rule in rules if rule_matches(rule, snapshot)]
