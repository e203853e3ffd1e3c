# /// script
# requires-python = ">=3.12"
# dependencies = ["flask>=3.0", "pydantic>=2.0"]
# ///
"""HTTP entrypoint for the league round engine.

Routes:
    POST /api/league/play-round   simulate the next (or a given) round
    GET  /api/matches/<match_id>  stored match with its box score
    POST /api/exhibition          intra-squad scrimmage for one team

Usage:
    uv run app.py
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from config import load_settings
from data.league_store import JsonLeagueStore
from errors import ConfigError, LineupError, RoundProcessingError, StoreError
from round_processor import RoundProcessor
from simulation import format_box_score, game_result_to_dict, simulate_exhibition

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = Flask(__name__)


def _store() -> JsonLeagueStore:
    return JsonLeagueStore(load_settings().data_path)


def _optional_int(payload: dict, key: str, minimum: int | None = None) -> int | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"'{key}' must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"'{key}' must be an integer") from None
    if minimum is not None and number < minimum:
        raise ValueError(f"'{key}' must be at least {minimum}")
    return number


# ---------------------------------------------------------------------------
# Round trigger
# ---------------------------------------------------------------------------

@app.route("/api/league/play-round", methods=["POST"])
def play_round():
    payload = request.get_json(silent=True) or {}
    try:
        round_no = _optional_int(payload, "round", minimum=1)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        settings = load_settings()
        processor = RoundProcessor.from_store(JsonLeagueStore(settings.data_path), settings)
        summary = processor.process_round(round_no)
    except RoundProcessingError as exc:
        logger.error("Round processing failed: %s", exc)
        return jsonify({"error": str(exc), "stage": exc.stage, "round": exc.round_no}), 500
    except ConfigError as exc:
        logger.error("Bad configuration: %s", exc)
        return jsonify({"error": str(exc), "stage": "config"}), 500

    body = summary.model_dump(mode="json")
    body["success"] = True
    body["played"] = summary.matches_played
    return jsonify(body)


# ---------------------------------------------------------------------------
# Match detail
# ---------------------------------------------------------------------------

@app.route("/api/matches/<match_id>")
def get_match(match_id: str):
    try:
        store = _store()
        match = store.get_match(match_id)
    except (ConfigError, StoreError) as exc:
        return jsonify({"error": str(exc)}), 500
    if match is None:
        return jsonify({"error": f"Match {match_id} not found"}), 404

    body = match.model_dump(mode="json")
    body["box_score"] = None
    if match.result is not None:
        try:
            home = store.get_lineup(match.home_team_id)
            away = store.get_lineup(match.away_team_id)
        except LineupError as exc:
            logger.warning("No box score for match %s: %s", match_id, exc)
        else:
            body["box_score"] = format_box_score(
                match.result,
                home.batters + home.pitchers,
                away.batters + away.pitchers,
                home_name=match.home_team_id,
                away_name=match.away_team_id,
            )
    return jsonify(body)


# ---------------------------------------------------------------------------
# Exhibition
# ---------------------------------------------------------------------------

@app.route("/api/exhibition", methods=["POST"])
def exhibition():
    payload = request.get_json(silent=True) or {}
    team_id = payload.get("team_id")
    if not team_id:
        return jsonify({"error": "'team_id' is required"}), 400
    try:
        seed = _optional_int(payload, "seed")
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        lineup = _store().get_lineup(team_id)
        result = simulate_exhibition(lineup.batters, lineup.pitchers, seed=seed)
    except LineupError as exc:
        return jsonify({"error": str(exc)}), 422
    except (ConfigError, StoreError) as exc:
        return jsonify({"error": str(exc)}), 500
    return jsonify(game_result_to_dict(result))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    app.run(debug=False, port=5000)
