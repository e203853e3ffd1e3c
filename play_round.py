# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Process a league round (or play an exhibition) from the command line.

Usage:
    uv run play_round.py                       # earliest round with unplayed matches
    uv run play_round.py --round 3 --seed 42
    uv run play_round.py --exhibition team-a --box-score
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from config import load_settings
from data.league_store import JsonLeagueStore
from errors import ConfigError, LineupError, RoundProcessingError, StoreError
from round_processor import RoundProcessor
from simulation import format_box_score, mirror_players, simulate_exhibition


def _round_number(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError("round must be at least 1")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Simulate every unplayed match in a league round."
    )
    parser.add_argument(
        "--round", type=_round_number, default=None, dest="round_no",
        help="Round to process (default: earliest round with unplayed matches).",
    )
    parser.add_argument(
        "--data", default=None,
        help="Path to the league JSON store (default: $PENNANT_DATA_PATH or data/league.json).",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Seed for reproducible simulations.",
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Maximum concurrent match simulations.",
    )
    parser.add_argument(
        "--exhibition", metavar="TEAM", default=None,
        help="Play TEAM against a mirrored copy of itself instead of a round.",
    )
    parser.add_argument(
        "--box-score", action="store_true",
        help="Print the box score of an exhibition game.",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Log progress at INFO level.",
    )
    return parser


def run_exhibition(store: JsonLeagueStore, team_id: str, seed: int | None,
                   box_score: bool) -> int:
    lineup = store.get_lineup(team_id)
    result = simulate_exhibition(lineup.batters, lineup.pitchers, seed=seed)
    print(f"{team_id} (B) {result.away_score} - {result.home_score} {team_id}  "
          f"[{result.winner.value}] seed={result.seed}")
    if box_score:
        away = mirror_players(lineup.batters + lineup.pitchers)
        print(format_box_score(result, lineup.batters + lineup.pitchers, away,
                               home_name=team_id, away_name=f"{team_id} (B)"))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    try:
        settings = load_settings(data_path=args.data, seed=args.seed,
                                 max_workers=args.workers)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    store = JsonLeagueStore(settings.data_path)

    if args.exhibition:
        try:
            return run_exhibition(store, args.exhibition, settings.seed, args.box_score)
        except (LineupError, StoreError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    try:
        summary = RoundProcessor.from_store(store, settings).process_round(args.round_no)
    except RoundProcessingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(summary.model_dump(mode="json"), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
