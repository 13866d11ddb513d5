#!/usr/bin/env python3
"""Script de génération des titres joueurs.

Lit les agrégats par joueur (un tableau par contexte) et produit les titres,
titres principaux et classements de chaque contexte.

Format d'entrée:
    {"all": [PlayerAggregate...], "modded": [PlayerAggregate...]}

Usage:
    # Génération complète vers un fichier
    python scripts/generate_titles.py --input stats.json --output titles.json

    # Un seul contexte, sans écriture
    python scripts/generate_titles.py --input stats.json --context modded --dry-run

    # Catalogue alternatif et seuil de parties abaissé
    python scripts/generate_titles.py --input stats.json --catalog my_catalog.json --min-games 10
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Ajouter le répertoire racine du projet au path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lycans.titles import GamesContext, PlayerAggregate, TitleEngine, TitleSettings
from lycans.titles.config import MIN_GAMES_FOR_TITLES, TITLES_ENGINE_VERSION

logger = logging.getLogger(__name__)


def load_aggregates(path: Path) -> dict[GamesContext, list[PlayerAggregate]]:
    """Charge et valide les agrégats par contexte."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Agrégats invalides ({path}): objet JSON attendu")
    result: dict[GamesContext, list[PlayerAggregate]] = {}
    for context in GamesContext:
        rows = raw.get(context.value)
        if rows is None:
            continue
        result[context] = [PlayerAggregate.model_validate(row) for row in rows]
    return result


def main() -> None:
    parser = argparse.ArgumentParser(
        description=f"Génération des titres joueurs (format {TITLES_ENGINE_VERSION})"
    )
    parser.add_argument("--input", required=True, type=Path, help="Fichier JSON des agrégats")
    parser.add_argument("--output", type=Path, help="Fichier JSON de sortie")
    parser.add_argument("--catalog", type=Path, help="Catalogue de titres alternatif")
    parser.add_argument(
        "--context",
        choices=[c.value for c in GamesContext],
        help="Limiter à un contexte",
    )
    parser.add_argument(
        "--min-games",
        type=int,
        default=MIN_GAMES_FOR_TITLES,
        help="Parties minimum pour recevoir des titres",
    )
    parser.add_argument("--max-titles", type=int, help="Nombre maximum de titres par joueur")
    parser.add_argument("--dry-run", action="store_true", help="Simulation (pas d'écriture)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Logs détaillés")
    args = parser.parse_args()

    if not args.dry_run and args.output is None:
        parser.error("Spécifier --output FICHIER ou --dry-run")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s"
    )

    try:
        aggregates = load_aggregates(args.input)
        engine = TitleEngine(
            catalog_path=args.catalog,
            settings=TitleSettings(
                min_games_for_titles=args.min_games, max_titles=args.max_titles
            ),
        )
    except (OSError, ValueError) as e:
        logger.error("Entrée invalide: %s", e)
        sys.exit(1)

    if args.context:
        aggregates = {
            c: rows for c, rows in aggregates.items() if c == GamesContext(args.context)
        }

    output = {}
    for context, rows in aggregates.items():
        report = engine.generate_from_aggregates(rows, context)
        output[context.value] = report.to_dict()
        with_titles = sum(1 for a in report.assignments if a.titles)
        print(f"  {context.value}: {len(report.assignments)} joueurs, {with_titles} avec titres")

    if args.dry_run:
        print("\n(Mode dry-run: aucune écriture effectuée)")
        return

    args.output.write_text(json.dumps(output, ensure_ascii=False, indent=2), encoding="utf-8")
    print(f"\nTitres écrits dans {args.output}")


if __name__ == "__main__":
    main()
