# /// script
# requires-python = ">=3.12"
# dependencies = ["pytest>=7.0", "pydantic>=2.0"]
# ///
"""Tests for the JSON league store.

Validates:
  1. Lineup rows map stat_1/2/3 onto batter and pitcher ratings
  2. Rows are ordered by order_no and split into batters and staff
  3. Unknown lineup types and malformed players raise LineupError
  4. Earliest unplayed round and unplayed listing
  5. Result batches are all-or-nothing and never overwrite a played match
  6. Standings deltas accumulate
  7. Growth processing is idempotent and requires a result
  8. Unreadable documents raise StoreError
"""

import json
import sys
import threading
from pathlib import Path

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from data.league_store import JsonLeagueStore, lineup_from_rows, player_from_lineup_row
from errors import LineupError, StoreError
from models import Match, PlayerRole, StandingsDelta
from simulation import simulate_game


def row(player_id, lineup_type, order_no, s1=50, s2=50, s3=50, name=None):
    return {
        "player": {"id": player_id, "name": name or f"P{player_id}",
                   "stat_1": s1, "stat_2": s2, "stat_3": s3},
        "lineup_type": lineup_type,
        "order_no": order_no,
    }


def team_rows(base_id):
    rows = [row(base_id + i, "BATTER", i + 1) for i in range(9)]
    rows += [row(base_id + 50, "SP", 10), row(base_id + 51, "RP", 11), row(base_id + 52, "CP", 12)]
    return rows


@pytest.fixture
def store(tmp_path):
    s = JsonLeagueStore(tmp_path / "league.json")
    s.add_matches([
        Match(match_id="r1-a", round_no=1, home_team_id="A", away_team_id="B"),
        Match(match_id="r1-b", round_no=1, home_team_id="C", away_team_id="D"),
        Match(match_id="r2-a", round_no=2, home_team_id="A", away_team_id="C"),
    ])
    for i, team in enumerate("ABCD"):
        s.set_lineup_rows(team, team_rows(100 * (i + 1)))
    return s


def played_copy(store, match_id, seed=1):
    m = store.get_match(match_id)
    home, away = store.get_lineup(m.home_team_id), store.get_lineup(m.away_team_id)
    result = simulate_game(home.batters, home.pitchers, away.batters, away.pitchers, seed=seed)
    return m.model_copy(update={"is_played": True, "home_score": result.home_score,
                                "away_score": result.away_score, "result": result})


# ---------------------------------------------------------------------------
# Lineup mapping
# ---------------------------------------------------------------------------

class TestLineupRows:
    def test_batter_mapping(self):
        p = player_from_lineup_row(row(7, "BATTER", 1, s1=80, s2=65, s3=40))
        assert (p.power, p.contact, p.speed) == (80, 65, 40)
        assert p.role == PlayerRole.BATTER
        assert not p.is_pitcher

    def test_pitcher_mapping(self):
        p = player_from_lineup_row(row(8, "RP", 10, s1=90, s2=55, s3=70))
        assert (p.stuff, p.control, p.breaking) == (90, 55, 70)
        assert p.role == PlayerRole.MIDDLE_RELIEVER
        assert p.is_pitcher

    @pytest.mark.parametrize("lineup_type,role", [
        ("SP", PlayerRole.STARTER),
        ("RP", PlayerRole.MIDDLE_RELIEVER),
        ("CP", PlayerRole.CLOSER),
    ])
    def test_pitching_roles(self, lineup_type, role):
        assert player_from_lineup_row(row(1, lineup_type, 1)).role == role

    def test_unknown_type_rejected(self):
        with pytest.raises(LineupError, match="Unknown lineup type"):
            player_from_lineup_row(row(1, "DH", 1))

    def test_missing_player_id_rejected(self):
        bad = row(1, "BATTER", 1)
        del bad["player"]["id"]
        with pytest.raises(LineupError):
            player_from_lineup_row(bad)

    def test_negative_rating_rejected(self):
        with pytest.raises(LineupError):
            player_from_lineup_row(row(1, "BATTER", 1, s1=-5))

    def test_rows_sorted_by_order_no(self):
        rows = [row(3, "BATTER", 3), row(1, "BATTER", 1), row(9, "CP", 12),
                row(2, "BATTER", 2), row(5, "SP", 10)]
        lineup = lineup_from_rows("T", rows)
        assert [p.player_id for p in lineup.batters] == [1, 2, 3]
        assert [p.player_id for p in lineup.pitchers] == [5, 9]
        assert lineup.team_id == "T"


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------

class TestMatches:
    def test_empty_store(self, tmp_path):
        s = JsonLeagueStore(tmp_path / "missing.json")
        assert s.find_earliest_unplayed_round() is None
        assert s.list_unplayed(1) == []
        assert s.get_match("nope") is None

    def test_earliest_unplayed_round(self, store):
        assert store.find_earliest_unplayed_round() == 1
        store.save_results([played_copy(store, "r1-a"), played_copy(store, "r1-b")])
        assert store.find_earliest_unplayed_round() == 2

    def test_list_unplayed_sorted(self, store):
        assert [m.match_id for m in store.list_unplayed(1)] == ["r1-a", "r1-b"]
        assert [m.match_id for m in store.list_unplayed(2)] == ["r2-a"]
        assert store.list_unplayed(7) == []

    def test_save_results_persists(self, store):
        played = played_copy(store, "r1-a", seed=5)
        store.save_results([played])
        reloaded = JsonLeagueStore(store.path).get_match("r1-a")
        assert reloaded.is_played
        assert reloaded.home_score == played.home_score
        assert reloaded.result.winner == played.result.winner
        assert len(reloaded.result.log) == len(played.result.log)

    def test_played_match_never_overwritten(self, store):
        first = played_copy(store, "r1-a", seed=5)
        store.save_results([first])
        with pytest.raises(StoreError, match="already played"):
            store.save_results([played_copy(store, "r1-b"), first])
        # Batch rejected as a whole
        assert not store.get_match("r1-b").is_played
        assert store.get_match("r1-a").result.seed == 5

    def test_unknown_match_rejected(self, store):
        ghost = Match(match_id="ghost", round_no=1, home_team_id="A",
                      away_team_id="B", is_played=True)
        with pytest.raises(StoreError, match="Unknown match"):
            store.save_results([ghost])

    def test_no_temp_file_left_behind(self, store):
        store.save_results([played_copy(store, "r1-a")])
        assert not store.path.with_suffix(".tmp").exists()


# ---------------------------------------------------------------------------
# Standings and growth
# ---------------------------------------------------------------------------

class TestStandings:
    def test_deltas_accumulate(self, store):
        store.apply_delta("A", StandingsDelta(wins=1))
        store.apply_delta("A", StandingsDelta(losses=1, draws=2))
        assert store.get_standings("A") == StandingsDelta(wins=1, losses=1, draws=2)

    def test_unknown_team_has_empty_record(self, store):
        assert store.get_standings("Z") == StandingsDelta()


class TestGrowth:
    def test_credits_every_rostered_player_once(self, store):
        store.save_results([played_copy(store, "r1-a")])
        store.process_match("r1-a")
        store.process_match("r1-a")
        assert store.games_played(100) == 1   # team A batter
        assert store.games_played(252) == 1   # team B closer
        assert store.games_played(300) == 0   # team C did not play

    def test_unplayed_match_rejected(self, store):
        with pytest.raises(StoreError):
            store.process_match("r1-a")


def test_corrupt_document_raises_store_error(tmp_path):
    path = tmp_path / "league.json"
    path.write_text("{not json")
    with pytest.raises(StoreError):
        JsonLeagueStore(path).find_earliest_unplayed_round()


def test_document_layout(store):
    doc = json.loads(store.path.read_text())
    assert set(doc) == {"matches", "standings", "lineups", "growth"}
    assert doc["lineups"]["A"][0]["lineup_type"] == "BATTER"


def test_instances_on_one_path_share_a_lock(tmp_path):
    path = tmp_path / "league.json"

    def bump():
        s = JsonLeagueStore(path)
        for _ in range(200):
            s.apply_delta("A", StandingsDelta(wins=1))

    threads = [threading.Thread(target=bump) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert JsonLeagueStore(path).get_standings("A").wins == 400


def test_concurrent_batches_never_replay_a_match(store):
    played = played_copy(store, "r1-a", seed=3)
    errors = []

    def save():
        try:
            JsonLeagueStore(store.path).save_results([played])
        except StoreError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=save) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(errors) == 3
    assert all("already played" in str(e) for e in errors)
