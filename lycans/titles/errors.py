"""Exceptions du moteur de titres."""

from __future__ import annotations


class RuleConfigError(ValueError):
    """Levée quand le catalogue de règles est invalide.

    Détectée au chargement, avant toute évaluation: métrique inconnue,
    catégorie hors des 7 libellés, identifiant dupliqué, condition vide.
    """
