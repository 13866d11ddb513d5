"""Configuration centralisée du moteur de titres.

Ce module regroupe toutes les constantes de politique (seuils de percentiles,
priorités, minimums de parties) pour assurer la cohérence entre le
normaliseur, le catégoriseur et le sélecteur de titres.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# =============================================================================
# Version du catalogue
# =============================================================================

TITLES_ENGINE_VERSION = "2.0"
# Version du format d'export des titres.
#
# Historique:
# - 1.0: Titres basiques + combinaisons, priorité seule
# - 2.0: Règles typées, index de déclaration, titre principal unique


# =============================================================================
# Seuils de percentiles (partagés par toutes les métriques)
# =============================================================================

PERCENTILE_THRESHOLDS = {
    "EXTREME_HIGH": 85,  # Top 15%
    "HIGH": 65,  # Top 35%
    "ABOVE_AVERAGE": 55,  # Top 45%
    "BELOW_AVERAGE": 45,  # Bottom 55%
    "LOW": 35,  # Bottom 35%
    "EXTREME_LOW": 15,  # Bottom 15%
}

DEFAULT_PERCENTILE = 50.0  # Distribution vide


# =============================================================================
# Éligibilité
# =============================================================================

MIN_GAMES_FOR_TITLES = 25  # Parties minimum pour recevoir des titres
MIN_GAMES_FOR_ROLE_TITLES = 10  # Parties minimum pour les titres de rôle


# =============================================================================
# Titres basiques (une métrique)
# =============================================================================

# Priorité par catégorie
BASIC_PRIORITIES = {
    "EXTREME_HIGH": 8,
    "HIGH": 6,
    "ABOVE_AVERAGE": 4,
    "AVERAGE": 3,
    "BELOW_AVERAGE": 4,
    "LOW": 6,
    "EXTREME_LOW": 8,
}

# Niveau du catalogue lu pour chaque catégorie, avec repli
BAND_LEVELS = {
    "EXTREME_HIGH": ("extremeHigh", "high"),
    "HIGH": ("high",),
    "ABOVE_AVERAGE": ("aboveAverage", "average"),
    "AVERAGE": ("average",),
    "BELOW_AVERAGE": ("belowAverage", "average"),
    "LOW": ("low",),
    "EXTREME_LOW": ("extremeLow", "low"),
}


# =============================================================================
# Camps
# =============================================================================

# Taux de victoire attendus par camp (%), pour normaliser l'équilibre
EXPECTED_WIN_RATES = {
    "villageois": 52.0,
    "loup": 28.0,
    "solo": 20.0,
}

MIN_CAMP_RATES_FOR_BALANCE = 2

# Parties minimum (strictement supérieur) pour un taux par camp
MIN_CAMP_GAMES = {
    "villageois": 5,
    "loup": 5,
    "solo": 3,
}

# Réunions minimum pour la survie en réunion, par camp
MIN_MEETING_GAMES = {
    "villageois": 5,
    "loup": 5,
    "solo": 3,
}


# =============================================================================
# Classements
# =============================================================================

DEFAULT_REDIRECT = {"tab": "players", "subTab": "playersGeneral"}


# =============================================================================
# Catalogue
# =============================================================================

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "data" / "catalog.json"


@dataclass(frozen=True)
class TitleSettings:
    """Paramètres d'une exécution du moteur de titres.

    Attributes:
        min_games_for_titles: Parties minimum pour entrer dans la population.
        max_titles: Nombre maximum de titres conservés par joueur (None = tous).
        assign_primary: Si True, élit un titre principal unique par joueur.
    """

    min_games_for_titles: int = MIN_GAMES_FOR_TITLES
    max_titles: int | None = None
    assign_primary: bool = True
