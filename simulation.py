# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Baseball match simulation engine.

Resolves each plate appearance from a batter/pitcher rating duel, advances
runners while tracking exactly who is on which base, rotates pitchers by
inning, and accumulates a play-by-play log and per-player box score.

All randomness comes from an explicit ``random.Random`` so a match can be
replayed from its seed and several matches can run side by side.
"""

from __future__ import annotations

import math
import random
from dataclasses import asdict, dataclass, field
from typing import Sequence

from errors import LineupError
from models import (
    HIT_OUTCOMES,
    GameResult,
    Half,
    OutcomeCategory,
    PlayByPlayEntry,
    Player,
    PlayerGameStats,
    PlayerRole,
    Winner,
)


REGULATION_INNINGS = 9
OUTS_PER_HALF = 3

# Exhibition mirror side
EXHIBITION_ID_OFFSET = 10_000
EXHIBITION_NAME_SUFFIX = "(B)"
EXHIBITION_MIN_BATTERS = 9


# ---------------------------------------------------------------------------
# At-bat resolution
# ---------------------------------------------------------------------------

def resolve_at_bat(batter: Player, pitcher: Player,
                   rng: random.Random) -> OutcomeCategory:
    """Resolve one plate appearance into an outcome category.

    Skill is compared as ratios, so a 300-contact batter facing a
    100-control pitcher hits as often as a 90 facing a 30. Thresholds are
    deliberately left unclamped: lopsided matchups can push an outcome to
    near certainty.
    """
    contact_ratio = batter.contact / max(pitcher.control, 1)
    power_ratio = batter.power / max(pitcher.stuff, 1)

    roll = rng.randrange(1000)

    hit_threshold = 250 * math.sqrt(contact_ratio)
    walk_threshold = 80 / math.sqrt(max(pitcher.control, 1) / 50)

    if roll < hit_threshold:
        type_roll = rng.random()
        hr_chance = 0.10 * power_ratio
        if type_roll < hr_chance:
            return OutcomeCategory.HOMERUN
        if type_roll < hr_chance + 0.05:
            return OutcomeCategory.TRIPLE
        if type_roll < hr_chance + 0.20 * power_ratio:
            return OutcomeCategory.DOUBLE
        return OutcomeCategory.SINGLE

    if roll < hit_threshold + walk_threshold:
        return OutcomeCategory.WALK

    strikeout_chance = 0.20 * pitcher.stuff / max(batter.contact, 1)
    if rng.random() < strikeout_chance:
        return OutcomeCategory.STRIKEOUT
    return OutcomeCategory.OUT


# ---------------------------------------------------------------------------
# Base state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BaseOccupancy:
    """Who is standing on first, second and third."""
    first: Player | None = None
    second: Player | None = None
    third: Player | None = None

    def runners(self) -> list[Player]:
        """Runners ordered lead runner first (third, second, first)."""
        return [r for r in (self.third, self.second, self.first) if r is not None]

    def is_empty(self) -> bool:
        return self.first is None and self.second is None and self.third is None

    def bases_string(self) -> str:
        """Return base state string like '110' for runners on 1st and 2nd."""
        return "".join("1" if r is not None else "0"
                       for r in (self.first, self.second, self.third))


@dataclass(frozen=True)
class PlayResult:
    scorers: tuple[Player, ...]
    new_bases: BaseOccupancy
    is_out: bool
    description: str

    @property
    def runs_scored(self) -> int:
        return len(self.scorers)


def _describe(headline: str, scorers: Sequence[Player]) -> str:
    parts = [headline] + [f"{p.name} scores" for p in scorers]
    return ". ".join(parts)


def advance_runners(outcome: OutcomeCategory, bases: BaseOccupancy,
                    batter: Player, rng: random.Random) -> PlayResult:
    """Apply *outcome* to *bases* and report who scored.

    Only a single with a runner on second consumes randomness: that runner
    scores half the time and holds at third otherwise.
    """
    first, second, third = bases.first, bases.second, bases.third

    if outcome is OutcomeCategory.HOMERUN:
        scorers = tuple(bases.runners()) + (batter,)
        headline = f"{batter.name} homers"
        if len(scorers) > 1:
            headline += f" ({len(scorers)}-run homer)"
        return PlayResult(scorers, BaseOccupancy(), False,
                          _describe(headline, scorers[:-1]))

    if outcome is OutcomeCategory.TRIPLE:
        scorers = tuple(bases.runners())
        return PlayResult(scorers, BaseOccupancy(third=batter), False,
                          _describe(f"{batter.name} triples", scorers))

    if outcome is OutcomeCategory.DOUBLE:
        scorers = tuple(r for r in (third, second) if r is not None)
        return PlayResult(scorers, BaseOccupancy(second=batter, third=first), False,
                          _describe(f"{batter.name} doubles", scorers))

    if outcome is OutcomeCategory.SINGLE:
        scored: list[Player] = []
        new_third = None
        if third is not None:
            scored.append(third)
        if second is not None:
            if rng.random() < 0.5:
                scored.append(second)
            else:
                new_third = second
        new_bases = BaseOccupancy(first=batter, second=first, third=new_third)
        return PlayResult(tuple(scored), new_bases, False,
                          _describe(f"{batter.name} singles", scored))

    if outcome is OutcomeCategory.WALK:
        scored = []
        new_second, new_third = second, third
        if first is not None:
            new_second = first
            if second is not None:
                new_third = second
                if third is not None:
                    scored.append(third)
        new_bases = BaseOccupancy(first=batter, second=new_second, third=new_third)
        return PlayResult(tuple(scored), new_bases, False,
                          _describe(f"{batter.name} walks", scored))

    if outcome is OutcomeCategory.STRIKEOUT:
        return PlayResult((), bases, True, f"{batter.name} strikes out")

    if outcome is OutcomeCategory.OUT:
        return PlayResult((), bases, True, f"{batter.name} is out")

    raise ValueError(f"Unknown outcome: {outcome!r}")


# ---------------------------------------------------------------------------
# Pitcher rotation
# ---------------------------------------------------------------------------

def role_for_inning(inning: int) -> PlayerRole:
    if inning <= 6:
        return PlayerRole.STARTER
    if inning <= 8:
        return PlayerRole.MIDDLE_RELIEVER
    return PlayerRole.CLOSER


def select_pitcher(staff: Sequence[Player], inning: int) -> Player:
    """Pick the pitcher for *inning*, falling back to the first staff member."""
    if not staff:
        raise LineupError("Pitching staff is empty")
    role = role_for_inning(inning)
    for p in staff:
        if p.role == role:
            return p
    return staff[0]


# ---------------------------------------------------------------------------
# Game state
# ---------------------------------------------------------------------------

@dataclass
class StatLine:
    """Running box-score line; frozen into a PlayerGameStats when the game ends."""
    at_bats: int = 0
    hits: int = 0
    home_runs: int = 0
    rbi: int = 0
    runs: int = 0
    walks: int = 0
    strikeouts: int = 0
    outs_pitched: int = 0
    earned_runs: int = 0
    pitching_strikeouts: int = 0

    def snapshot(self) -> PlayerGameStats:
        return PlayerGameStats(**asdict(self))


@dataclass
class TeamState:
    """Mutable state for one team during a game."""
    side: str  # "home" or "away"
    batters: list[Player]
    pitchers: list[Player]
    lineup_index: int = 0
    score: int = 0
    inning_runs: list[int] = field(default_factory=list)

    def current_batter(self) -> Player:
        return self.batters[self.lineup_index]

    def advance_batter(self) -> Player:
        self.lineup_index = (self.lineup_index + 1) % len(self.batters)
        return self.batters[self.lineup_index]


@dataclass
class GameState:
    home: TeamState
    away: TeamState
    stats: dict[int, StatLine] = field(default_factory=dict)
    log: list[PlayByPlayEntry] = field(default_factory=list)

    def get_stats(self, player_id: int) -> StatLine:
        if player_id not in self.stats:
            self.stats[player_id] = StatLine()
        return self.stats[player_id]

    def winner(self) -> Winner:
        if self.home.score > self.away.score:
            return Winner.HOME
        if self.home.score < self.away.score:
            return Winner.AWAY
        return Winner.DRAW


def _check_lineup(side: str, batters: Sequence[Player],
                  pitchers: Sequence[Player]) -> None:
    if not batters:
        raise LineupError(f"{side} team has an empty batting order")
    if not pitchers:
        raise LineupError(f"{side} team has no pitchers")


# ---------------------------------------------------------------------------
# Simulator
# ---------------------------------------------------------------------------

class GameSimulator:
    """Plays nine innings between two lineups.

    Each simulator owns its random stream; give concurrent matches separate
    instances.
    """

    def __init__(self, seed: int | None = None):
        if seed is None:
            seed = random.randint(0, 2**31 - 1)
        self.seed = seed
        self.rng = random.Random(seed)

    def simulate(self, home_batters: Sequence[Player], home_pitchers: Sequence[Player],
                 away_batters: Sequence[Player], away_pitchers: Sequence[Player]
                 ) -> GameResult:
        _check_lineup("home", home_batters, home_pitchers)
        _check_lineup("away", away_batters, away_pitchers)

        game = GameState(
            home=TeamState("home", list(home_batters), list(home_pitchers)),
            away=TeamState("away", list(away_batters), list(away_pitchers)),
        )
        for p in [*home_batters, *home_pitchers, *away_batters, *away_pitchers]:
            game.get_stats(p.player_id)

        for inning in range(1, REGULATION_INNINGS + 1):
            self._play_half_inning(game, inning, Half.TOP)
            # Home already ahead after the top of the last inning: no bottom half.
            if inning == REGULATION_INNINGS and game.home.score > game.away.score:
                break
            self._play_half_inning(game, inning, Half.BOTTOM)

        return GameResult(
            home_score=game.home.score,
            away_score=game.away.score,
            winner=game.winner(),
            log=tuple(game.log),
            stats={pid: line.snapshot() for pid, line in game.stats.items()},
            home_inning_runs=tuple(game.home.inning_runs),
            away_inning_runs=tuple(game.away.inning_runs),
            seed=self.seed,
        )

    def _play_half_inning(self, game: GameState, inning: int, half: Half) -> None:
        if half is Half.TOP:
            batting, fielding = game.away, game.home
        else:
            batting, fielding = game.home, game.away
        pitcher = select_pitcher(fielding.pitchers, inning)
        walk_off_possible = half is Half.BOTTOM and inning >= REGULATION_INNINGS

        bases = BaseOccupancy()
        outs = 0
        runs_this_half = 0
        while outs < OUTS_PER_HALF:
            batter = batting.current_batter()
            outcome = resolve_at_bat(batter, pitcher, self.rng)
            play = advance_runners(outcome, bases, batter, self.rng)

            self._record_stats(game, batter, pitcher, outcome, play)
            batting.score += play.runs_scored
            runs_this_half += play.runs_scored
            if play.is_out:
                outs += 1
            bases = play.new_bases

            game.log.append(PlayByPlayEntry(
                inning=inning,
                half=half,
                batter_name=batter.name,
                pitcher_name=pitcher.name,
                outcome=outcome,
                description=play.description,
                runs_scored=play.runs_scored,
            ))
            batting.advance_batter()

            if walk_off_possible and game.home.score > game.away.score:
                break

        batting.inning_runs.append(runs_this_half)

    @staticmethod
    def _record_stats(game: GameState, batter: Player, pitcher: Player,
                      outcome: OutcomeCategory, play: PlayResult) -> None:
        b = game.get_stats(batter.player_id)
        p = game.get_stats(pitcher.player_id)

        if outcome is not OutcomeCategory.WALK:
            b.at_bats += 1
        if outcome in HIT_OUTCOMES:
            b.hits += 1
        if outcome is OutcomeCategory.HOMERUN:
            b.home_runs += 1
        elif outcome is OutcomeCategory.WALK:
            b.walks += 1
        elif outcome is OutcomeCategory.STRIKEOUT:
            b.strikeouts += 1
            p.pitching_strikeouts += 1

        b.rbi += play.runs_scored
        p.earned_runs += play.runs_scored
        for scorer in play.scorers:
            game.get_stats(scorer.player_id).runs += 1

        if play.is_out:
            p.outs_pitched += 1


def simulate_game(home_batters: Sequence[Player], home_pitchers: Sequence[Player],
                  away_batters: Sequence[Player], away_pitchers: Sequence[Player],
                  seed: int | None = None) -> GameResult:
    """Convenience wrapper: simulate one match with a fresh seeded simulator."""
    return GameSimulator(seed).simulate(
        home_batters, home_pitchers, away_batters, away_pitchers
    )


# ---------------------------------------------------------------------------
# Exhibition (intra-squad) games
# ---------------------------------------------------------------------------

def mirror_players(players: Sequence[Player]) -> list[Player]:
    """Copy a roster for the visiting side with non-colliding ids and names."""
    return [
        p.model_copy(update={
            "player_id": p.player_id + EXHIBITION_ID_OFFSET,
            "name": p.name + EXHIBITION_NAME_SUFFIX,
        })
        for p in players
    ]


def simulate_exhibition(batters: Sequence[Player], pitchers: Sequence[Player],
                        seed: int | None = None) -> GameResult:
    """Play a team against a mirrored copy of itself."""
    if len(batters) < EXHIBITION_MIN_BATTERS or not pitchers:
        raise LineupError(
            f"Exhibition needs at least {EXHIBITION_MIN_BATTERS} batters and one "
            f"pitcher (got {len(batters)} batters, {len(pitchers)} pitchers)"
        )
    return simulate_game(batters, pitchers,
                         mirror_players(batters), mirror_players(pitchers),
                         seed=seed)


# ---------------------------------------------------------------------------
# Box score
# ---------------------------------------------------------------------------

def format_box_score(result: GameResult, home_players: Sequence[Player],
                     away_players: Sequence[Player],
                     home_name: str = "Home", away_name: str = "Away") -> str:
    """Render a plain-text line score, batting table and pitching table."""
    lines = []
    lines.append("=" * 60)
    lines.append("FINAL BOX SCORE")
    lines.append("=" * 60)

    innings = max(len(result.away_inning_runs), len(result.home_inning_runs), 1)
    header = f"{'Team':<16}"
    for i in range(1, innings + 1):
        header += f" {i:>2}"
    header += "  |  R"
    lines.append(header)
    lines.append("-" * len(header))
    for name, runs, total in ((away_name, result.away_inning_runs, result.away_score),
                              (home_name, result.home_inning_runs, result.home_score)):
        row = f"{name:<16}"
        for i in range(innings):
            row += f" {runs[i]:>2}" if i < len(runs) else "  X"
        row += f"  | {total:>2}"
        lines.append(row)
    lines.append("")
    lines.append(f"Winner: {result.winner.value}")

    for name, players in ((away_name, away_players), (home_name, home_players)):
        batters = [p for p in players if p.role == PlayerRole.BATTER]
        pitchers = [p for p in players if p.role != PlayerRole.BATTER]

        lines.append(f"\n{name} Batting:")
        lines.append(f"  {'Name':<20} {'AB':>3} {'H':>3} {'HR':>3} {'RBI':>4} {'R':>3} {'BB':>3} {'SO':>3}")
        for p in batters:
            s = result.stats.get(p.player_id, PlayerGameStats())
            lines.append(
                f"  {p.name:<20} {s.at_bats:>3} {s.hits:>3} {s.home_runs:>3} "
                f"{s.rbi:>4} {s.runs:>3} {s.walks:>3} {s.strikeouts:>3}"
            )

        lines.append(f"\n{name} Pitching:")
        lines.append(f"  {'Name':<20} {'IP':>5} {'ER':>3} {'K':>3}")
        for p in pitchers:
            s = result.stats.get(p.player_id, PlayerGameStats())
            lines.append(
                f"  {p.name:<20} {s.innings_pitched_display:>5} "
                f"{s.earned_runs:>3} {s.pitching_strikeouts:>3}"
            )

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Serialization support
# ---------------------------------------------------------------------------

def game_result_to_dict(result: GameResult) -> dict:
    """Serialize a GameResult to a JSON-ready nested record."""
    return result.model_dump(mode="json")
