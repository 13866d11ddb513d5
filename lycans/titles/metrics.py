"""Registre des métriques et normalisation de la population.

Chaque métrique a une taille d'échantillon minimale propre (parties,
réunions, votes, positions...). Un joueur sous ce minimum est exclu de la
population de cette métrique uniquement, il reste éligible pour les autres.

La population est un DataFrame Polars au format long:
``player_id | metric | value | sample_size``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Annotated

import polars as pl
from pydantic import BaseModel, ConfigDict, Field

from lycans.titles.config import (
    MIN_CAMP_GAMES,
    MIN_GAMES_FOR_ROLE_TITLES,
    MIN_MEETING_GAMES,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Registre
# =============================================================================


@dataclass(frozen=True)
class MetricSpec:
    """Définition d'une métrique utilisable dans les règles.

    Attributes:
        key: Clé de la métrique (ex: ``"killRate"``).
        label: Libellé lisible.
        min_sample: Taille d'échantillon minimale pour être éligible.
        categorized: Si False, la métrique n'est lue qu'en valeur brute
            (seuils ``minValue``/``maxValue``) et ne reçoit pas de catégorie.
    """

    key: str
    label: str
    min_sample: int = 1
    categorized: bool = True


# Rôles suivis pour les titres d'assignation (nom en jeu -> suffixe de clé)
ROLE_KEYS = {
    "Chasseur": "Chasseur",
    "Alchimiste": "Alchimiste",
    "Amoureux": "Amoureux",
    "Agent": "Agent",
    "Espion": "Espion",
    "Idiot du Village": "Idiot",
    "Chasseur de Prime": "ChasseurDePrime",
    "Contrebandier": "Contrebandier",
    "La Bête": "Bete",
    "Vaudou": "Vaudou",
    "Scientifique": "Scientifique",
}

# Variantes regroupées sous un même rôle
ROLE_ALIASES = {
    "Amoureux Loup": "Amoureux",
    "Amoureux Villageois": "Amoureux",
}

MIN_GAMES_FOR_WIN_RATE = 10
MIN_MEETINGS_FOR_AGGRESSIVENESS = 25
MIN_VOTES_FOR_ACCURACY = 10
MIN_MEETINGS_FOR_EARLY_VOTE = 5
MIN_HUNTER_GAMES = 10
MIN_ZONE_POSITIONS = 10
MIN_WOLF_GAMES = 5
MIN_WOLF_NIGHTS = 5
MIN_POTION_GAMES = 5


def role_percent_key(role_key: str) -> str:
    """Clé de la fréquence (%) d'un rôle."""
    return f"role{role_key}Percent"


def role_games_key(role_key: str) -> str:
    """Clé du nombre de parties jouées dans un rôle."""
    return f"role{role_key}Games"


def _build_registry() -> dict[str, MetricSpec]:
    specs = [
        MetricSpec("gamesPlayed", "Parties jouées"),
        MetricSpec("winRate", "Taux de victoire", MIN_GAMES_FOR_WIN_RATE),
        MetricSpec("winRateVillageois", "Victoires Villageois", MIN_CAMP_GAMES["villageois"] + 1),
        MetricSpec("winRateLoup", "Victoires Loup", MIN_CAMP_GAMES["loup"] + 1),
        MetricSpec("winRateSolo", "Victoires Solo", MIN_CAMP_GAMES["solo"] + 1),
        MetricSpec("campVillageois", "Parties en Villageois (%)"),
        MetricSpec("campLoup", "Parties en Loup (%)"),
        MetricSpec("campSolo", "Parties en Solo (%)"),
        MetricSpec("campBalanceSpread", "Écart entre camps", 2, categorized=False),
        MetricSpec("talking", "Temps de parole / 60 min"),
        MetricSpec("talkingOutsideMeeting", "Parole hors réunion / 60 min"),
        MetricSpec("talkingDuringMeeting", "Parole en réunion / 60 min"),
        MetricSpec("killRate", "Kills par partie"),
        MetricSpec("killRateVillageois", "Kills par partie Villageois", MIN_CAMP_GAMES["villageois"] + 1),
        MetricSpec("killRateLoup", "Kills par partie Loup", MIN_CAMP_GAMES["loup"] + 1),
        MetricSpec("killRateSolo", "Kills par partie Solo", MIN_CAMP_GAMES["solo"] + 1),
        MetricSpec("survival", "Survie fin de partie"),
        MetricSpec("survivalDay1", "Survie au Jour 1"),
        MetricSpec("survivalAtMeetingVillageois", "Survie en réunion Villageois", MIN_MEETING_GAMES["villageois"]),
        MetricSpec("survivalAtMeetingLoup", "Survie en réunion Loup", MIN_MEETING_GAMES["loup"]),
        MetricSpec("survivalAtMeetingSolo", "Survie en réunion Solo", MIN_MEETING_GAMES["solo"]),
        MetricSpec("loot", "Récolte / 60 min"),
        MetricSpec("lootVillageois", "Récolte Villageois / 60 min", MIN_CAMP_GAMES["villageois"] + 1),
        MetricSpec("lootLoup", "Récolte Loup / 60 min", MIN_CAMP_GAMES["loup"] + 1),
        MetricSpec("votingAggressive", "Agressivité de vote", MIN_MEETINGS_FOR_AGGRESSIVENESS),
        MetricSpec("votingAccuracy", "Précision de vote", MIN_VOTES_FOR_ACCURACY),
        MetricSpec("votingFirst", "Vote en premier", MIN_MEETINGS_FOR_EARLY_VOTE),
        MetricSpec("hunterAccuracy", "Précision Chasseur (cibles)", MIN_HUNTER_GAMES),
        MetricSpec("hunterShotAccuracy", "Précision Chasseur (tirs)", MIN_HUNTER_GAMES),
        MetricSpec("winSeries", "Plus longue série de victoires"),
        MetricSpec("lossSeries", "Plus longue série de défaites"),
        MetricSpec("zoneVillagePrincipal", "Zone Village Principal (%)", MIN_ZONE_POSITIONS),
        MetricSpec("zoneFerme", "Zone Ferme (%)", MIN_ZONE_POSITIONS),
        MetricSpec("zoneVillagePecheur", "Zone Village Pêcheur (%)", MIN_ZONE_POSITIONS),
        MetricSpec("zoneRuines", "Zone Ruines (%)", MIN_ZONE_POSITIONS),
        MetricSpec("zoneResteCarte", "Zone Reste de la Carte (%)", MIN_ZONE_POSITIONS),
        MetricSpec("zoneDominantPercentage", "Zone dominante (%)", MIN_ZONE_POSITIONS),
        MetricSpec("wolfTransformRate", "Transformations par nuit", MIN_WOLF_GAMES),
        MetricSpec("wolfUntransformRate", "Détransformations par nuit", MIN_WOLF_GAMES),
        MetricSpec("potionUsage", "Potions / 60 min", MIN_POTION_GAMES),
    ]
    for role_name, role_key in ROLE_KEYS.items():
        specs.append(
            MetricSpec(
                role_percent_key(role_key),
                f"Parties en {role_name} (%)",
                MIN_GAMES_FOR_ROLE_TITLES,
                categorized=False,
            )
        )
        specs.append(
            MetricSpec(
                role_games_key(role_key),
                f"Parties en {role_name}",
                MIN_GAMES_FOR_ROLE_TITLES,
                categorized=False,
            )
        )
    return {spec.key: spec for spec in specs}


METRIC_REGISTRY: dict[str, MetricSpec] = _build_registry()


# =============================================================================
# Entrées par joueur
# =============================================================================


class MetricSample(BaseModel):
    """Valeur d'une métrique et taille de l'échantillon associé."""

    model_config = ConfigDict(frozen=True)

    value: float | None = None
    sample_size: Annotated[int, Field(ge=0)] = 0


class MetricSnapshot(BaseModel):
    """Métriques d'un joueur pour un contexte de parties."""

    model_config = ConfigDict(extra="ignore")

    player_id: str = Field(..., min_length=1)
    player_name: str = ""
    metrics: dict[str, MetricSample] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.player_name or self.player_id


# =============================================================================
# Population
# =============================================================================

POPULATION_SCHEMA = {
    "player_id": pl.Utf8,
    "metric": pl.Utf8,
    "value": pl.Float64,
    "sample_size": pl.Int64,
}


@dataclass(frozen=True)
class MetricPopulation:
    """Population éligible d'un lot d'évaluation.

    Attributes:
        frame: DataFrame long des valeurs éligibles uniquement.
        players: Joueurs retenus dans le lot, dans l'ordre d'entrée.
        player_names: Nom d'affichage par joueur.
    """

    frame: pl.DataFrame
    players: tuple[str, ...] = ()
    player_names: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.frame.is_empty()

    def metric_values(self, metric: str) -> pl.Series:
        """Distribution éligible d'une métrique."""
        return self.frame.filter(pl.col("metric") == metric)["value"]

    def value_of(self, player_id: str, metric: str) -> float | None:
        """Valeur éligible d'un joueur pour une métrique, ou None."""
        rows = self.frame.filter(
            (pl.col("player_id") == player_id) & (pl.col("metric") == metric)
        )
        if rows.is_empty():
            return None
        return rows["value"][0]


def normalize_population(
    snapshots: Iterable[MetricSnapshot],
    registry: Mapping[str, MetricSpec] = METRIC_REGISTRY,
    *,
    min_games: int = 0,
) -> MetricPopulation:
    """Construit la population éligible par métrique.

    Règles d'exclusion (jamais d'exception pour des données manquantes):

    - joueur avec moins de ``min_games`` parties (``gamesPlayed``);
    - valeur ``None``, NaN ou infinie;
    - taille d'échantillon nulle ou sous le minimum de la métrique;
    - clé absente du registre.

    Args:
        snapshots: Métriques par joueur d'un même contexte.
        registry: Registre des métriques connues.
        min_games: Parties minimum pour entrer dans le lot.

    Returns:
        MetricPopulation, vide si aucun joueur n'est retenu.
    """
    rows: list[dict[str, object]] = []
    players: list[str] = []
    names: dict[str, str] = {}
    ignored_keys: set[str] = set()

    for snapshot in snapshots:
        if snapshot.player_id in names:
            logger.warning("Joueur en double ignoré: %s", snapshot.player_id)
            continue
        if min_games > 0:
            games = snapshot.metrics.get("gamesPlayed")
            if games is None or games.value is None or games.value < min_games:
                logger.debug(
                    "Joueur %s exclu du lot (< %d parties)", snapshot.player_id, min_games
                )
                continue
        players.append(snapshot.player_id)
        names[snapshot.player_id] = snapshot.display_name
        for key, sample in snapshot.metrics.items():
            if key not in registry:
                ignored_keys.add(key)
                continue
            rows.append(
                {
                    "player_id": snapshot.player_id,
                    "metric": key,
                    "value": sample.value,
                    "sample_size": sample.sample_size,
                    "min_sample": registry[key].min_sample,
                }
            )

    if ignored_keys:
        logger.debug("Métriques hors registre ignorées: %s", sorted(ignored_keys))

    if not rows:
        return MetricPopulation(
            frame=pl.DataFrame(schema=POPULATION_SCHEMA),
            players=tuple(players),
            player_names=names,
        )

    frame = (
        pl.DataFrame(rows, schema={**POPULATION_SCHEMA, "min_sample": pl.Int64})
        .filter(
            pl.col("value").is_not_null()
            & pl.col("value").is_finite()
            & (pl.col("sample_size") > 0)
            & (pl.col("sample_size") >= pl.col("min_sample"))
        )
        .drop("min_sample")
    )

    logger.debug(
        "Population normalisée: %d joueurs, %d valeurs éligibles sur %d",
        len(players),
        frame.height,
        len(rows),
    )
    return MetricPopulation(frame=frame, players=tuple(players), player_names=names)
