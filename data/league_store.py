# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""League persistence: match schedule, standings, lineups and growth log.

The round processor only talks to the four collaborator protocols below.
:class:`JsonLeagueStore` implements all of them on top of one JSON document::

    {
      "matches":   {"<match_id>": {...Match...}},
      "standings": {"<team_id>": {"wins": 0, "losses": 0, "draws": 0}},
      "lineups":   {"<team_id>": [{"player": {...}, "lineup_type": "SP", "order_no": 1}]},
      "growth":    {"processed": ["<match_id>"], "games_played": {"<player_id>": 3}}
    }

Lineup rows keep the roster service's storage shape: three generic ratings
``stat_1``/``stat_2``/``stat_3`` that are read as power/contact/speed for
batters and stuff/control/breaking for pitchers.

Usage::

    from data.league_store import JsonLeagueStore

    store = JsonLeagueStore("data/league.json")
    store.find_earliest_unplayed_round()
    store.list_unplayed(3)
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Protocol, Sequence

from pydantic import ValidationError

from errors import LineupError, StoreError
from models import Match, Player, PlayerRole, StandingsDelta, TeamLineup

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------

class LineupProvider(Protocol):
    def get_lineup(self, team_id: str) -> TeamLineup: ...


class MatchStore(Protocol):
    def find_earliest_unplayed_round(self) -> int | None: ...

    def list_unplayed(self, round_no: int) -> list[Match]: ...

    def save_results(self, matches: Sequence[Match]) -> None: ...

    def get_match(self, match_id: str) -> Match | None: ...


class StandingsStore(Protocol):
    def apply_delta(self, team_id: str, delta: StandingsDelta) -> None: ...


class GrowthProcessor(Protocol):
    def process_match(self, match_id: str) -> None: ...


# ---------------------------------------------------------------------------
# Lineup row mapping
# ---------------------------------------------------------------------------

LINEUP_TYPE_ROLES: dict[str, PlayerRole] = {
    "BATTER": PlayerRole.BATTER,
    "SP": PlayerRole.STARTER,
    "RP": PlayerRole.MIDDLE_RELIEVER,
    "CP": PlayerRole.CLOSER,
}


def player_from_lineup_row(row: dict[str, Any]) -> Player:
    """Build a Player from a stored lineup row.

    Raises:
        LineupError: unknown ``lineup_type`` or malformed player record.
    """
    lineup_type = row.get("lineup_type")
    role = LINEUP_TYPE_ROLES.get(lineup_type)
    if role is None:
        raise LineupError(f"Unknown lineup type: {lineup_type!r}")
    p = row.get("player") or {}
    try:
        return Player(
            player_id=p["id"],
            name=p["name"],
            power=p.get("stat_1", 0),
            contact=p.get("stat_2", 0),
            speed=p.get("stat_3", 0),
            stuff=p.get("stat_1", 0),
            control=p.get("stat_2", 0),
            breaking=p.get("stat_3", 0),
            is_pitcher=role != PlayerRole.BATTER,
            role=role,
        )
    except (KeyError, ValidationError) as exc:
        raise LineupError(f"Malformed lineup row {row!r}: {exc}") from exc


def lineup_from_rows(team_id: str, rows: Sequence[dict[str, Any]]) -> TeamLineup:
    """Split ordered lineup rows into batting order and pitching staff."""
    ordered = sorted(rows, key=lambda r: r.get("order_no", 0))
    batters: list[Player] = []
    pitchers: list[Player] = []
    for row in ordered:
        player = player_from_lineup_row(row)
        if player.role == PlayerRole.BATTER:
            batters.append(player)
        else:
            pitchers.append(player)
    return TeamLineup(team_id=team_id, batters=batters, pitchers=pitchers)


# ---------------------------------------------------------------------------
# JSON-backed store
# ---------------------------------------------------------------------------

# One lock per document path, shared by every store instance in the process.
_PATH_LOCKS: dict[Path, threading.RLock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = path.resolve()
    with _PATH_LOCKS_GUARD:
        if key not in _PATH_LOCKS:
            _PATH_LOCKS[key] = threading.RLock()
        return _PATH_LOCKS[key]


def _empty_document() -> dict[str, Any]:
    return {
        "matches": {},
        "standings": {},
        "lineups": {},
        "growth": {"processed": [], "games_played": {}},
    }


class JsonLeagueStore:
    """Single-file league store implementing every collaborator protocol.

    Each mutation rewrites the whole document through a temp file and an
    atomic rename, so a crash mid-write leaves the previous version intact.
    Instances opened on the same path share one lock, so readers and
    writers are serialised across the whole process.

    Args:
        path: Location of the JSON document. Created on first write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = _lock_for(self._path)

    @property
    def path(self) -> Path:
        return self._path

    # -- document I/O ------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return _empty_document()
        try:
            with open(self._path) as f:
                doc = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            raise StoreError(f"Cannot read league store {self._path}: {exc}") from exc
        base = _empty_document()
        base.update(doc)
        return base

    def _save(self, doc: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        try:
            with open(tmp_path, "w") as f:
                json.dump(doc, f, indent=1)
            tmp_path.replace(self._path)  # atomic rename
        except OSError as exc:
            raise StoreError(f"Cannot write league store {self._path}: {exc}") from exc

    # -- seeding helpers (schedule generation lives outside the engine) -----

    def add_matches(self, matches: Sequence[Match]) -> None:
        with self._lock:
            doc = self._load()
            for m in matches:
                doc["matches"][m.match_id] = m.model_dump(mode="json")
            self._save(doc)

    def set_lineup_rows(self, team_id: str, rows: Sequence[dict[str, Any]]) -> None:
        with self._lock:
            doc = self._load()
            doc["lineups"][team_id] = list(rows)
            self._save(doc)

    # -- LineupProvider ----------------------------------------------------

    def get_lineup(self, team_id: str) -> TeamLineup:
        with self._lock:
            rows = self._load()["lineups"].get(team_id, [])
        return lineup_from_rows(team_id, rows)

    # -- MatchStore --------------------------------------------------------

    def _matches(self) -> list[Match]:
        with self._lock:
            raw = self._load()["matches"]
        return [Match.model_validate(m) for m in raw.values()]

    def find_earliest_unplayed_round(self) -> int | None:
        rounds = [m.round_no for m in self._matches() if not m.is_played]
        return min(rounds) if rounds else None

    def list_unplayed(self, round_no: int) -> list[Match]:
        return sorted(
            (m for m in self._matches() if m.round_no == round_no and not m.is_played),
            key=lambda m: m.match_id,
        )

    def get_match(self, match_id: str) -> Match | None:
        with self._lock:
            raw = self._load()["matches"].get(match_id)
        return Match.model_validate(raw) if raw is not None else None

    def save_results(self, matches: Sequence[Match]) -> None:
        """Record every played match in one write.

        Raises:
            StoreError: a match is unknown or was already played; nothing is
                written in that case.
        """
        with self._lock:
            doc = self._load()
            for m in matches:
                existing = doc["matches"].get(m.match_id)
                if existing is None:
                    raise StoreError(f"Unknown match {m.match_id}")
                if existing.get("is_played"):
                    raise StoreError(f"Match {m.match_id} was already played")
            for m in matches:
                doc["matches"][m.match_id] = m.model_dump(mode="json")
            self._save(doc)
        logger.info("Saved %d match results to %s", len(matches), self._path)

    # -- StandingsStore ----------------------------------------------------

    def apply_delta(self, team_id: str, delta: StandingsDelta) -> None:
        with self._lock:
            doc = self._load()
            row = doc["standings"].setdefault(team_id, {"wins": 0, "losses": 0, "draws": 0})
            row["wins"] += delta.wins
            row["losses"] += delta.losses
            row["draws"] += delta.draws
            self._save(doc)

    def get_standings(self, team_id: str) -> StandingsDelta:
        with self._lock:
            row = self._load()["standings"].get(team_id)
        return StandingsDelta(**row) if row else StandingsDelta()

    # -- GrowthProcessor ---------------------------------------------------

    def process_match(self, match_id: str) -> None:
        """Credit a game played to everyone on either roster.

        Safe to call again for the same match; repeats are ignored, so
        operators can retry growth failures wholesale.
        """
        with self._lock:
            doc = self._load()
            growth = doc["growth"]
            if match_id in growth["processed"]:
                logger.debug("Growth for match %s already processed", match_id)
                return
            raw = doc["matches"].get(match_id)
            if raw is None or not raw.get("is_played"):
                raise StoreError(f"Match {match_id} has no recorded result")
            stats = (raw.get("result") or {}).get("stats", {})
            for player_id in stats:
                key = str(player_id)
                growth["games_played"][key] = growth["games_played"].get(key, 0) + 1
            growth["processed"].append(match_id)
            self._save(doc)

    def games_played(self, player_id: int) -> int:
        with self._lock:
            return self._load()["growth"]["games_played"].get(str(player_id), 0)
