# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Round orchestration: simulate a round, record it, update standings, run growth.

A round is processed as a strict pipeline::

    resolve round -> fetch unplayed matches -> fetch lineups
      -> simulate (bounded thread pool, one seeded RNG per match)
      -> persist all results in one batch
      -> apply one standings delta per team
      -> growth fan-out (joined, failures collected)

Nothing is written before every simulation has finished, so a failure in
the first four steps leaves the store untouched. Growth failures never fail
the round; they are reported in the summary so they can be retried.
"""

from __future__ import annotations

import logging
import random
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Sequence

from config import Settings, load_settings
from data.league_store import GrowthProcessor, LineupProvider, MatchStore, StandingsStore
from errors import LineupError, RoundProcessingError
from models import (
    GrowthFailure,
    Match,
    MatchFailure,
    RoundSummary,
    StandingsDelta,
    TeamLineup,
    Winner,
)
from simulation import GameSimulator

logger = logging.getLogger(__name__)

NO_MATCHES_REMAIN = "no matches remain"


@dataclass
class ScheduledGame:
    match: Match
    home: TeamLineup
    away: TeamLineup
    seed: int


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def build_standings_deltas(played: Sequence[Match]) -> dict[str, StandingsDelta]:
    """Aggregate one round's W/L/D per team from finished matches."""
    deltas: dict[str, StandingsDelta] = {}
    for m in played:
        if m.result is None:
            raise ValueError(f"Match {m.match_id} has no result")
        home = deltas.setdefault(m.home_team_id, StandingsDelta())
        away = deltas.setdefault(m.away_team_id, StandingsDelta())
        if m.result.winner == Winner.HOME:
            home.wins += 1
            away.losses += 1
        elif m.result.winner == Winner.AWAY:
            away.wins += 1
            home.losses += 1
        else:
            home.draws += 1
            away.draws += 1
    return deltas


def play_scheduled_game(game: ScheduledGame) -> Match:
    """Simulate one fixture and return the match record marked as played."""
    result = GameSimulator(game.seed).simulate(
        game.home.batters, game.home.pitchers,
        game.away.batters, game.away.pitchers,
    )
    return game.match.model_copy(update={
        "is_played": True,
        "home_score": result.home_score,
        "away_score": result.away_score,
        "result": result,
    })


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class RoundProcessor:
    """Runs every unplayed match of a round against the league collaborators."""

    def __init__(self, match_store: MatchStore, standings_store: StandingsStore,
                 lineup_provider: LineupProvider, growth_processor: GrowthProcessor,
                 settings: Settings | None = None):
        self.match_store = match_store
        self.standings_store = standings_store
        self.lineup_provider = lineup_provider
        self.growth_processor = growth_processor
        self.settings = settings or load_settings()

    @classmethod
    def from_store(cls, store, settings: Settings | None = None) -> RoundProcessor:
        """Use a single object that implements all four collaborator protocols."""
        return cls(store, store, store, store, settings)

    # -------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------

    def process_round(self, round_no: int | None = None) -> RoundSummary:
        round_no = self._resolve_round(round_no)
        if round_no is None:
            logger.info("No unplayed matches remain")
            return RoundSummary(nothing_to_do=True, message=NO_MATCHES_REMAIN)

        try:
            matches = sorted(self.match_store.list_unplayed(round_no),
                             key=lambda m: m.match_id)
        except Exception as exc:
            raise RoundProcessingError("fetch", str(exc), round_no) from exc
        if not matches:
            logger.info("Round %d has no unplayed matches", round_no)
            return RoundSummary(
                round_no=round_no, nothing_to_do=True,
                message=f"no unplayed matches in round {round_no}",
            )
        logger.info("Round %d: %d unplayed matches", round_no, len(matches))

        seeds = self._match_seeds(round_no, matches)
        games, failures = self._schedule(round_no, matches, seeds)
        played, sim_failures = self._simulate_all(round_no, games)
        failures.extend(sim_failures)

        deltas = build_standings_deltas(played)
        if played:
            self._persist(round_no, played)
            self._apply_standings(round_no, deltas)
        growth_failures = self._dispatch_growth(played)

        message = f"played {len(played)} of {len(matches)} matches in round {round_no}"
        logger.info("Round %d complete: %s", round_no, message)
        return RoundSummary(
            round_no=round_no,
            matches_played=len(played),
            message=message,
            failed_matches=failures,
            growth_failures=growth_failures,
            standings=deltas,
        )

    # -------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------

    def _resolve_round(self, round_no: int | None) -> int | None:
        if round_no is not None:
            return round_no
        try:
            return self.match_store.find_earliest_unplayed_round()
        except Exception as exc:
            raise RoundProcessingError("resolve", str(exc)) from exc

    def _match_seeds(self, round_no: int, matches: Sequence[Match]) -> dict[str, int]:
        # Seeds are drawn in match order up front so each worker owns its stream.
        if self.settings.seed is None:
            seed_rng = random.Random()
        else:
            seed_rng = random.Random(f"{self.settings.seed}:{round_no}")
        return {m.match_id: seed_rng.randrange(2**31) for m in matches}

    def _schedule(self, round_no: int, matches: Sequence[Match],
                  seeds: dict[str, int]) -> tuple[list[ScheduledGame], list[MatchFailure]]:
        games: list[ScheduledGame] = []
        failures: list[MatchFailure] = []
        lineups: dict[str, TeamLineup] = {}

        def lineup_for(team_id: str) -> TeamLineup:
            if team_id not in lineups:
                lineups[team_id] = self.lineup_provider.get_lineup(team_id)
            return lineups[team_id]

        for m in matches:
            try:
                home = lineup_for(m.home_team_id)
                away = lineup_for(m.away_team_id)
            except LineupError as exc:
                logger.warning("Match %s skipped: %s", m.match_id, exc)
                failures.append(MatchFailure(match_id=m.match_id, reason=str(exc)))
                continue
            except Exception as exc:
                raise RoundProcessingError("lineup", str(exc), round_no) from exc
            games.append(ScheduledGame(m, home, away, seeds[m.match_id]))
        return games, failures

    def _simulate_all(self, round_no: int, games: Sequence[ScheduledGame]
                      ) -> tuple[list[Match], list[MatchFailure]]:
        if not games:
            return [], []
        played: list[Match] = []
        failures: list[MatchFailure] = []

        executor = ThreadPoolExecutor(max_workers=self.settings.max_workers,
                                      thread_name_prefix="simulate")
        try:
            futures: dict[Future, ScheduledGame] = {
                executor.submit(play_scheduled_game, g): g for g in games
            }
            done, not_done = wait(futures, timeout=self.settings.round_timeout(len(games)))
            if not_done:
                raise RoundProcessingError(
                    "simulate", f"{len(not_done)} matches did not finish in time", round_no
                )
            # Keep schedule order regardless of completion order.
            for future, game in futures.items():
                exc = future.exception()
                if exc is None:
                    played.append(future.result())
                elif isinstance(exc, LineupError):
                    logger.warning("Match %s failed to simulate: %s", game.match.match_id, exc)
                    failures.append(MatchFailure(match_id=game.match.match_id, reason=str(exc)))
                else:
                    raise RoundProcessingError(
                        "simulate", f"match {game.match.match_id}: {exc}", round_no
                    ) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return played, failures

    def _persist(self, round_no: int, played: Sequence[Match]) -> None:
        try:
            self.match_store.save_results(played)
        except Exception as exc:
            raise RoundProcessingError("persist", str(exc), round_no) from exc
        logger.info("Round %d: persisted %d results", round_no, len(played))

    def _apply_standings(self, round_no: int, deltas: dict[str, StandingsDelta]) -> None:
        applied: list[str] = []
        for team_id, delta in deltas.items():
            try:
                self.standings_store.apply_delta(team_id, delta)
            except Exception as exc:
                raise RoundProcessingError(
                    "standings",
                    f"team {team_id}: {exc} (already applied: {applied or 'none'})",
                    round_no,
                ) from exc
            applied.append(team_id)
        logger.info("Round %d: standings updated for %d teams", round_no, len(applied))

    def _dispatch_growth(self, played: Sequence[Match]) -> list[GrowthFailure]:
        if not played:
            return []
        failures: list[GrowthFailure] = []
        executor = ThreadPoolExecutor(max_workers=self.settings.max_workers,
                                      thread_name_prefix="growth")
        try:
            futures: dict[Future, str] = {
                executor.submit(self.growth_processor.process_match, m.match_id): m.match_id
                for m in played
            }
            done, not_done = wait(futures, timeout=self.settings.round_timeout(len(played)))
            for future, match_id in futures.items():
                if future in not_done:
                    reason = "growth processing timed out"
                else:
                    exc = future.exception()
                    if exc is None:
                        continue
                    reason = f"{type(exc).__name__}: {exc}"
                    logger.debug("Growth traceback for match %s", match_id, exc_info=exc)
                logger.warning("Growth processing failed for match %s: %s", match_id, reason)
                failures.append(GrowthFailure(match_id=match_id, reason=reason))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return failures
