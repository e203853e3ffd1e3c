# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Data models for the league round engine."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PlayerRole(str, Enum):
    BATTER = "BATTER"
    STARTER = "STARTER"
    MIDDLE_RELIEVER = "MIDDLE_RELIEVER"
    CLOSER = "CLOSER"


PITCHING_ROLES = frozenset({
    PlayerRole.STARTER,
    PlayerRole.MIDDLE_RELIEVER,
    PlayerRole.CLOSER,
})


class OutcomeCategory(str, Enum):
    HOMERUN = "HOMERUN"
    TRIPLE = "TRIPLE"
    DOUBLE = "DOUBLE"
    SINGLE = "SINGLE"
    WALK = "WALK"
    STRIKEOUT = "STRIKEOUT"
    OUT = "OUT"


HIT_OUTCOMES = frozenset({
    OutcomeCategory.HOMERUN,
    OutcomeCategory.TRIPLE,
    OutcomeCategory.DOUBLE,
    OutcomeCategory.SINGLE,
})


class Half(str, Enum):
    TOP = "TOP"
    BOTTOM = "BOTTOM"


class Winner(str, Enum):
    HOME = "HOME"
    AWAY = "AWAY"
    DRAW = "DRAW"


# ---------------------------------------------------------------------------
# Player ratings
# ---------------------------------------------------------------------------

class Player(BaseModel):
    """Simulation-facing player. Immutable for the duration of a match."""
    model_config = ConfigDict(frozen=True)

    player_id: int
    name: str
    # Batting
    contact: float = Field(default=50.0, ge=0.0, description="Contact rating")
    power: float = Field(default=50.0, ge=0.0, description="Power rating")
    speed: float = Field(default=50.0, ge=0.0, description="Speed rating")
    # Pitching
    stuff: float = Field(default=50.0, ge=0.0, description="Stuff rating")
    control: float = Field(default=50.0, ge=0.0, description="Control rating")
    breaking: float = Field(default=50.0, ge=0.0, description="Breaking ball rating")
    is_pitcher: bool = False
    role: PlayerRole = PlayerRole.BATTER


class TeamLineup(BaseModel):
    """A team's batting order and pitching staff as handed to the simulator."""
    team_id: str
    batters: list[Player] = Field(default_factory=list)
    pitchers: list[Player] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Box score and play-by-play
# ---------------------------------------------------------------------------

class PlayerGameStats(BaseModel):
    """One player's final line for a single match."""
    model_config = ConfigDict(frozen=True)

    at_bats: int = 0
    hits: int = 0
    home_runs: int = 0
    rbi: int = 0
    runs: int = 0
    walks: int = 0
    strikeouts: int = 0
    outs_pitched: int = 0  # thirds of an inning
    earned_runs: int = 0
    pitching_strikeouts: int = 0

    @property
    def innings_pitched_display(self) -> str:
        return f"{self.outs_pitched // 3}.{self.outs_pitched % 3}"


class PlayByPlayEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    inning: int = Field(ge=1)
    half: Half
    batter_name: str
    pitcher_name: str
    outcome: OutcomeCategory
    description: str
    runs_scored: int = 0


class GameResult(BaseModel):
    """Final, immutable outcome of one simulated match."""
    model_config = ConfigDict(frozen=True)

    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    winner: Winner
    log: tuple[PlayByPlayEntry, ...] = ()
    stats: dict[int, PlayerGameStats] = Field(default_factory=dict)
    home_inning_runs: tuple[int, ...] = ()
    away_inning_runs: tuple[int, ...] = ()
    seed: Optional[int] = None


# ---------------------------------------------------------------------------
# League records
# ---------------------------------------------------------------------------

class Match(BaseModel):
    """A scheduled fixture as persisted by the match store."""
    match_id: str
    round_no: int = Field(ge=1)
    league_id: str = ""
    home_team_id: str
    away_team_id: str
    is_played: bool = False
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    result: Optional[GameResult] = None


class StandingsDelta(BaseModel):
    wins: int = 0
    losses: int = 0
    draws: int = 0


class MatchFailure(BaseModel):
    match_id: str
    reason: str


class GrowthFailure(BaseModel):
    match_id: str
    reason: str


class RoundSummary(BaseModel):
    """What a round trigger reports back to its caller."""
    round_no: Optional[int] = None
    matches_played: int = 0
    nothing_to_do: bool = False
    message: str = ""
    failed_matches: list[MatchFailure] = Field(default_factory=list)
    growth_failures: list[GrowthFailure] = Field(default_factory=list)
    standings: dict[str, StandingsDelta] = Field(default_factory=dict)
