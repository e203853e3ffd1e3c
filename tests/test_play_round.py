# /// script
# requires-python = ">=3.12"
# dependencies = ["pytest>=7.0", "pydantic>=2.0"]
# ///
"""Tests for the play_round command-line entrypoint."""

import json
import sys
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from data.league_store import JsonLeagueStore
from models import Match
from play_round import build_parser, main


def team_rows(base_id):
    rows = [{"player": {"id": base_id + i, "name": f"P{base_id + i}",
                        "stat_1": 50, "stat_2": 55, "stat_3": 50},
             "lineup_type": "BATTER", "order_no": i + 1} for i in range(9)]
    for j, kind in enumerate(("SP", "RP", "CP")):
        rows.append({"player": {"id": base_id + 50 + j, "name": f"{kind}{base_id}",
                                "stat_1": 55, "stat_2": 60, "stat_3": 50},
                     "lineup_type": kind, "order_no": 10 + j})
    return rows


@pytest.fixture
def league(tmp_path, monkeypatch):
    for name in ("PENNANT_DATA_PATH", "PENNANT_SEED", "PENNANT_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "league.json"
    store = JsonLeagueStore(path)
    store.add_matches([
        Match(match_id="m1", round_no=1, home_team_id="A", away_team_id="B"),
    ])
    store.set_lineup_rows("A", team_rows(100))
    store.set_lineup_rows("B", team_rows(200))
    return store


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.round_no is None
    assert args.exhibition is None
    assert not args.box_score


def test_plays_round_and_prints_summary(league, capsys):
    assert main(["--data", str(league.path), "--seed", "3"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["matches_played"] == 1
    assert summary["round_no"] == 1
    assert league.get_match("m1").is_played


def test_nothing_to_do(league, capsys):
    main(["--data", str(league.path)])
    capsys.readouterr()
    assert main(["--data", str(league.path)]) == 0
    assert json.loads(capsys.readouterr().out)["nothing_to_do"] is True


def test_exhibition_with_box_score(league, capsys):
    assert main(["--data", str(league.path), "--exhibition", "A",
                 "--seed", "1", "--box-score"]) == 0
    out = capsys.readouterr().out
    assert "seed=1" in out
    assert "FINAL BOX SCORE" in out
    assert "P100(B)" in out
    assert not league.get_match("m1").is_played


def test_exhibition_unknown_team(league, capsys):
    assert main(["--data", str(league.path), "--exhibition", "ZZZ"]) == 1
    assert "Error" in capsys.readouterr().err


def test_invalid_workers(league, capsys):
    assert main(["--data", str(league.path), "--workers", "0"]) == 1
    assert "Error" in capsys.readouterr().err


def test_corrupt_store_reports_stage(tmp_path, capsys, monkeypatch):
    monkeypatch.delenv("PENNANT_DATA_PATH", raising=False)
    path = tmp_path / "league.json"
    path.write_text("not json")
    assert main(["--data", str(path)]) == 1
    assert "resolve stage failed" in capsys.readouterr().err


@pytest.mark.parametrize("bad", ["0", "-3"])
def test_round_below_one_rejected(bad, capsys):
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(["--round", bad])
    assert exc_info.value.code == 2
    assert "at least 1" in capsys.readouterr().err
