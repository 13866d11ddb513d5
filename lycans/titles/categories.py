"""Catégories ordonnées et contextes de parties."""

from __future__ import annotations

from enum import Enum, IntEnum

from lycans.titles.errors import RuleConfigError


class Category(IntEnum):
    """Catégories de percentile, totalement ordonnées."""

    EXTREME_LOW = 1
    LOW = 2
    BELOW_AVERAGE = 3
    AVERAGE = 4
    ABOVE_AVERAGE = 5
    HIGH = 6
    EXTREME_HIGH = 7

    @property
    def is_low_side(self) -> bool:
        """Indique si la catégorie est sous la moyenne."""
        return self < Category.AVERAGE

    @classmethod
    def parse(cls, label: str | Category) -> Category:
        """Convertit un libellé (ex: ``"HIGH"``) en catégorie.

        Raises:
            RuleConfigError: Si le libellé ne fait pas partie des 7 catégories.
        """
        if isinstance(label, Category):
            return label
        try:
            return cls[str(label).strip().upper()]
        except KeyError:
            raise RuleConfigError(f"Catégorie inconnue: {label!r}") from None


class GamesContext(str, Enum):
    """Univers d'évaluation indépendants."""

    ALL = "all"
    MODDED = "modded"

    @property
    def suffix(self) -> str:
        """Suffixe d'affichage des classements."""
        return " (Parties Moddées)" if self is GamesContext.MODDED else ""
