"""Agrégats bruts par joueur et dérivation des métriques.

HOW IT WORKS:
- PlayerAggregate : validation des compteurs produits par les statistiques amont
- CampRecord : compteurs par camp (Villageois, Loup, Solo)
- build_metric_snapshot : dérive chaque métrique avec sa taille d'échantillon

Toute division est protégée: un dénominateur nul rend la métrique absente
au lieu de produire NaN ou l'infini.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lycans.titles.config import EXPECTED_WIN_RATES, MIN_CAMP_GAMES, MIN_CAMP_RATES_FOR_BALANCE
from lycans.titles.metrics import (
    MIN_WOLF_NIGHTS,
    ROLE_ALIASES,
    ROLE_KEYS,
    MetricSample,
    MetricSnapshot,
    role_games_key,
    role_percent_key,
)

CAMPS = ("villageois", "loup", "solo")

# Zones de la carte Village -> clé de métrique
ZONE_KEYS = {
    "Village Principal": "zoneVillagePrincipal",
    "Ferme": "zoneFerme",
    "Village Pêcheur": "zoneVillagePecheur",
    "Ruines": "zoneRuines",
    "Reste de la Carte": "zoneResteCarte",
}

# Pondérations du score d'agressivité de vote
SKIP_PENALTY = 0.5
ABSTENTION_PENALTY = 0.7

NonNegInt = Annotated[int, Field(ge=0)]


class CampRecord(BaseModel):
    """Compteurs d'un joueur dans un camp."""

    model_config = ConfigDict(extra="ignore")

    played: NonNegInt = 0
    won: NonNegInt = 0
    kills: NonNegInt = 0
    meetings_survived: NonNegInt = 0
    loot_per_60: float | None = None


class PlayerAggregate(BaseModel):
    """
    Statistiques agrégées d'un joueur pour un contexte de parties.
    (Per-player aggregates from upstream statistics)

    Les taux déjà normalisés en amont (temps de parole, récolte, potions
    par 60 minutes) sont repris tels quels.
    """

    model_config = ConfigDict(extra="ignore")

    player_id: str = Field(..., min_length=1)
    player_name: str = ""

    games_played: NonNegInt = 0
    wins: NonNegInt = 0
    kills: NonNegInt = 0
    deaths: NonNegInt = 0
    survival_day1_rate: Annotated[float, Field(ge=0, le=100)] | None = None

    camps: dict[str, CampRecord] = Field(default_factory=dict)

    # Parole (secondes par 60 min de jeu)
    talking_per_60: float | None = None
    talking_outside_per_60: float | None = None
    talking_during_per_60: float | None = None

    # Votes
    meetings: NonNegInt = 0
    votes: NonNegInt = 0
    skips: NonNegInt = 0
    abstentions: NonNegInt = 0
    correct_votes: NonNegInt = 0
    meetings_with_votes: NonNegInt = 0
    early_votes: NonNegInt = 0

    # Chasseur
    hunter_games: NonNegInt = 0
    hunter_kills: NonNegInt = 0
    hunter_good_kills: NonNegInt = 0
    hunter_shots: NonNegInt = 0
    hunter_shots_hit: NonNegInt = 0

    # Séries
    longest_win_series: NonNegInt = 0
    longest_loss_series: NonNegInt = 0

    loot_per_60: float | None = None

    # Zones (% du temps passé par zone)
    zone_percentages: dict[str, float] = Field(default_factory=dict)
    zone_positions: NonNegInt = 0

    # Transformations Loup
    wolf_games: NonNegInt = 0
    wolf_nights: NonNegInt = 0
    wolf_transforms: NonNegInt = 0
    wolf_untransforms: NonNegInt = 0

    # Potions
    potion_games: NonNegInt = 0
    potions_per_60: float | None = None

    # Parties par rôle (nom en jeu)
    roles: dict[str, int] = Field(default_factory=dict)

    @field_validator("camps", mode="before")
    @classmethod
    def normalize_camp_keys(cls, v: object) -> object:
        """Accepte ``"Villageois"`` comme ``"villageois"``."""
        if isinstance(v, dict):
            return {str(k).strip().lower(): val for k, val in v.items()}
        return v

    def camp(self, name: str) -> CampRecord:
        return self.camps.get(name) or CampRecord()


def _ratio(numerator: float, denominator: float, scale: float = 100.0) -> float | None:
    if denominator <= 0:
        return None
    return numerator / denominator * scale


def camp_balance_spread(win_rates: dict[str, float | None]) -> tuple[float | None, int]:
    """Écart entre le meilleur et le pire camp, normalisé par camp.

    Chaque taux de victoire est diminué du taux attendu pour son camp
    (``EXPECTED_WIN_RATES``) avant de mesurer l'écart.

    Returns:
        Tuple (écart, nombre de camps pris en compte). L'écart vaut None
        sous ``MIN_CAMP_RATES_FOR_BALANCE`` camps.
    """
    normalized = [
        rate - EXPECTED_WIN_RATES[camp]
        for camp, rate in win_rates.items()
        if rate is not None and camp in EXPECTED_WIN_RATES
    ]
    if len(normalized) < MIN_CAMP_RATES_FOR_BALANCE:
        return None, len(normalized)
    return max(normalized) - min(normalized), len(normalized)


def _camp_metrics(agg: PlayerAggregate, metrics: dict[str, MetricSample]) -> None:
    total = sum(agg.camp(c).played for c in CAMPS)
    win_rates: dict[str, float | None] = {}
    for camp in CAMPS:
        record = agg.camp(camp)
        suffix = camp.capitalize()

        rate = _ratio(record.won, record.played) if record.played > MIN_CAMP_GAMES[camp] else None
        win_rates[camp] = rate
        metrics[f"winRate{suffix}"] = MetricSample(value=rate, sample_size=record.played)
        metrics[f"killRate{suffix}"] = MetricSample(
            value=_ratio(record.kills, record.played, scale=1.0), sample_size=record.played
        )
        metrics[f"survivalAtMeeting{suffix}"] = MetricSample(
            value=_ratio(record.meetings_survived, record.played), sample_size=record.played
        )
        if camp != "solo":
            metrics[f"loot{suffix}"] = MetricSample(
                value=record.loot_per_60, sample_size=record.played
            )
        metrics[f"camp{suffix}"] = MetricSample(
            value=_ratio(record.played, total), sample_size=total
        )

    spread, count = camp_balance_spread(win_rates)
    metrics["campBalanceSpread"] = MetricSample(value=spread, sample_size=count)


def _voting_metrics(agg: PlayerAggregate, metrics: dict[str, MetricSample]) -> None:
    aggressiveness = None
    if agg.meetings > 0:
        voting_rate = agg.votes / agg.meetings * 100
        skipping_rate = agg.skips / agg.meetings * 100
        abstention_rate = agg.abstentions / agg.meetings * 100
        aggressiveness = (
            voting_rate - skipping_rate * SKIP_PENALTY - abstention_rate * ABSTENTION_PENALTY
        )
    metrics["votingAggressive"] = MetricSample(value=aggressiveness, sample_size=agg.meetings)
    metrics["votingAccuracy"] = MetricSample(
        value=_ratio(agg.correct_votes, agg.votes), sample_size=agg.votes
    )
    metrics["votingFirst"] = MetricSample(
        value=_ratio(agg.early_votes, agg.meetings_with_votes),
        sample_size=agg.meetings_with_votes,
    )


def _role_metrics(agg: PlayerAggregate, metrics: dict[str, MetricSample]) -> None:
    counts: dict[str, int] = {}
    for role, count in agg.roles.items():
        role = ROLE_ALIASES.get(role, role)
        counts[role] = counts.get(role, 0) + count

    for role_name, role_key in ROLE_KEYS.items():
        count = counts.get(role_name, 0)
        metrics[role_percent_key(role_key)] = MetricSample(
            value=_ratio(count, agg.games_played), sample_size=agg.games_played
        )
        metrics[role_games_key(role_key)] = MetricSample(
            value=float(count), sample_size=agg.games_played
        )


def build_metric_snapshot(agg: PlayerAggregate) -> MetricSnapshot:
    """Dérive toutes les métriques d'un joueur depuis ses agrégats.

    Les minimums d'échantillon sont appliqués plus tard par
    ``normalize_population``; seules les protections de division et les
    seuils croisés (nuits en Loup) sont appliqués ici.

    Args:
        agg: Agrégats validés du joueur.

    Returns:
        MetricSnapshot prêt pour la normalisation.
    """
    games = agg.games_played
    metrics: dict[str, MetricSample] = {
        "gamesPlayed": MetricSample(value=float(games), sample_size=games),
        "winRate": MetricSample(value=_ratio(agg.wins, games), sample_size=games),
        "killRate": MetricSample(value=agg.kills / max(games, 1), sample_size=games),
        "survival": MetricSample(value=_ratio(games - agg.deaths, games), sample_size=games),
        "survivalDay1": MetricSample(value=agg.survival_day1_rate, sample_size=games),
        "talking": MetricSample(value=agg.talking_per_60, sample_size=games),
        "talkingOutsideMeeting": MetricSample(value=agg.talking_outside_per_60, sample_size=games),
        "talkingDuringMeeting": MetricSample(value=agg.talking_during_per_60, sample_size=games),
        "loot": MetricSample(value=agg.loot_per_60, sample_size=games),
        "winSeries": MetricSample(value=float(agg.longest_win_series), sample_size=games),
        "lossSeries": MetricSample(value=float(agg.longest_loss_series), sample_size=games),
        "hunterAccuracy": MetricSample(
            value=_ratio(agg.hunter_good_kills, agg.hunter_kills), sample_size=agg.hunter_games
        ),
        "hunterShotAccuracy": MetricSample(
            value=_ratio(agg.hunter_shots_hit, agg.hunter_shots), sample_size=agg.hunter_games
        ),
        "potionUsage": MetricSample(value=agg.potions_per_60, sample_size=agg.potion_games),
    }

    _camp_metrics(agg, metrics)
    _voting_metrics(agg, metrics)
    _role_metrics(agg, metrics)

    for zone_name, key in ZONE_KEYS.items():
        metrics[key] = MetricSample(
            value=agg.zone_percentages.get(zone_name), sample_size=agg.zone_positions
        )
    dominant = max(agg.zone_percentages.values()) if agg.zone_percentages else None
    metrics["zoneDominantPercentage"] = MetricSample(value=dominant, sample_size=agg.zone_positions)

    # Taux par nuit: nécessite aussi assez de nuits jouées en Loup
    enough_nights = agg.wolf_nights >= MIN_WOLF_NIGHTS
    metrics["wolfTransformRate"] = MetricSample(
        value=_ratio(agg.wolf_transforms, agg.wolf_nights, scale=1.0) if enough_nights else None,
        sample_size=agg.wolf_games,
    )
    metrics["wolfUntransformRate"] = MetricSample(
        value=_ratio(agg.wolf_untransforms, agg.wolf_nights, scale=1.0) if enough_nights else None,
        sample_size=agg.wolf_games,
    )

    return MetricSnapshot(player_id=agg.player_id, player_name=agg.player_name, metrics=metrics)
