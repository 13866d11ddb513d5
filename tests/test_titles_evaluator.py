"""Tests de l'évaluation des conditions et des règles."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from lycans.titles import (
    Category,
    ExactCategory,
    MaxCategory,
    MaxValue,
    MinCategory,
    MinValue,
    build_rule_set,
    condition_holds,
    matching_rules,
)


class TestConditionHolds:
    """Tests de chaque variante de condition."""

    @pytest.mark.parametrize(
        ("player_category", "expected"),
        [("HIGH", True), ("EXTREME_HIGH", False), ("ABOVE_AVERAGE", False)],
    )
    def test_exact_category(self, categorized, player_category, expected):
        snapshot = categorized(talking=(300.0, 70.0, player_category))
        condition = ExactCategory("talking", Category.HIGH)

        assert condition_holds(condition, snapshot) is expected

    @pytest.mark.parametrize(
        ("player_category", "expected"),
        [("ABOVE_AVERAGE", True), ("EXTREME_HIGH", True), ("AVERAGE", False)],
    )
    def test_min_category(self, categorized, player_category, expected):
        snapshot = categorized(winRate=(60.0, 60.0, player_category))
        condition = MinCategory("winRate", Category.ABOVE_AVERAGE)

        assert condition_holds(condition, snapshot) is expected

    @pytest.mark.parametrize(
        ("player_category", "expected"),
        [("EXTREME_LOW", True), ("LOW", True), ("BELOW_AVERAGE", False)],
    )
    def test_max_category(self, categorized, player_category, expected):
        snapshot = categorized(loot=(5.0, 20.0, player_category))
        condition = MaxCategory("loot", Category.LOW)

        assert condition_holds(condition, snapshot) is expected

    def test_min_value_ignores_category(self, categorized):
        """Le seuil brut ne dépend pas de la catégorie."""
        snapshot = categorized(gamesPlayed=(100.0, 0.0, "EXTREME_LOW"))

        assert condition_holds(MinValue("gamesPlayed", 100), snapshot)
        assert not condition_holds(MinValue("gamesPlayed", 101), snapshot)

    def test_strict_min_value_excludes_bound(self, categorized):
        """Un écart de 15 exactement n'est pas « spécialiste »."""
        at_bound = categorized(campBalanceSpread=(15.0, None, None))
        above = categorized(campBalanceSpread=(15.5, None, None))
        condition = MinValue("campBalanceSpread", 15, strict=True)

        assert not condition_holds(condition, at_bound)
        assert condition_holds(condition, above)

    def test_max_value_on_raw_metric(self, categorized):
        snapshot = categorized(campBalanceSpread=(10.0, None, None))

        assert condition_holds(MaxValue("campBalanceSpread", 10), snapshot)
        assert not condition_holds(MaxValue("campBalanceSpread", 9.5), snapshot)

    def test_missing_metric_is_false(self, categorized):
        snapshot = categorized(talking=(300.0, 70.0, "HIGH"))

        assert not condition_holds(MinCategory("loot", Category.EXTREME_LOW), snapshot)
        assert not condition_holds(MinValue("loot", 0), snapshot)

    def test_category_condition_on_uncategorized_value_is_false(self, categorized):
        snapshot = categorized(talking=(300.0, None, None))

        assert not condition_holds(MinCategory("talking", Category.EXTREME_LOW), snapshot)

    def test_unknown_condition_type(self, categorized):
        @dataclass(frozen=True)
        class Between:
            stat: str

        snapshot = categorized(talking=(300.0, 70.0, "HIGH"))

        with pytest.raises(TypeError, match="Between"):
            condition_holds(Between("talking"), snapshot)  # type: ignore[arg-type]


class TestMatchingRules:
    """Tests de la conjonction des conditions."""

    @pytest.fixture
    def philosopher_rules(self):
        return build_rule_set(
            {
                "rules": [
                    {
                        "id": "philosophe",
                        "title": "Le·a Philosophe",
                        "priority": 10,
                        "conditions": [
                            {"stat": "talking", "minCategory": "HIGH"},
                            {"stat": "loot", "maxCategory": "LOW"},
                            {"stat": "gamesPlayed", "minValue": 50},
                        ],
                    }
                ]
            }
        )

    def test_all_conditions_hold(self, categorized, philosopher_rules):
        snapshot = categorized(
            talking=(900.0, 90.0, "EXTREME_HIGH"),
            loot=(2.0, 10.0, "EXTREME_LOW"),
            gamesPlayed=(60.0, 50.0, "AVERAGE"),
        )

        assert [r.id for r in matching_rules(snapshot, philosopher_rules.rules)] == ["philosophe"]

    @pytest.mark.parametrize(
        "override",
        [
            {"talking": (400.0, 55.0, "ABOVE_AVERAGE")},
            {"loot": (9.0, 40.0, "BELOW_AVERAGE")},
            {"gamesPlayed": (49.0, 50.0, "AVERAGE")},
        ],
    )
    def test_one_failing_condition_blocks_rule(self, categorized, philosopher_rules, override):
        """Pas de sémantique OU: une seule condition fausse suffit à rejeter."""
        values = {
            "talking": (900.0, 90.0, "EXTREME_HIGH"),
            "loot": (2.0, 10.0, "EXTREME_LOW"),
            "gamesPlayed": (60.0, 50.0, "AVERAGE"),
        }
        values.update(override)

        assert matching_rules(categorized(**values), philosopher_rules.rules) == []

    def test_missing_metric_blocks_rule(self, categorized, philosopher_rules):
        snapshot = categorized(
            talking=(900.0, 90.0, "EXTREME_HIGH"),
            gamesPlayed=(60.0, 50.0, "AVERAGE"),
        )

        assert matching_rules(snapshot, philosopher_rules.rules) == []

    def test_order_independent(self, categorized, rule_set):
        """Inverser l'ordre des règles ne change pas l'ensemble des correspondances."""
        snapshot = categorized(
            talking=(900.0, 90.0, "EXTREME_HIGH"),
            loot=(2.0, 10.0, "EXTREME_LOW"),
            winRate=(70.0, 88.0, "EXTREME_HIGH"),
        )

        forward = {r.id for r in matching_rules(snapshot, rule_set.rules)}
        backward = {r.id for r in matching_rules(snapshot, reversed(rule_set.rules))}

        assert forward == backward
        assert {"talking_extreme_high", "philosophe"} <= forward
