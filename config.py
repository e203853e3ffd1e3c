# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Centralized configuration for environment variables."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from errors import ConfigError

DATA_PATH_ENV = "PENNANT_DATA_PATH"
MAX_WORKERS_ENV = "PENNANT_MAX_WORKERS"
ROUND_TIMEOUT_ENV = "PENNANT_ROUND_TIMEOUT_PER_MATCH"
SEED_ENV = "PENNANT_SEED"

DEFAULT_DATA_PATH = Path(__file__).resolve().parent / "data" / "league.json"
DEFAULT_MAX_WORKERS = 4
DEFAULT_ROUND_TIMEOUT_PER_MATCH = 30.0


class Settings(BaseModel):
    data_path: Path = DEFAULT_DATA_PATH
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1)
    round_timeout_per_match: float = Field(default=DEFAULT_ROUND_TIMEOUT_PER_MATCH, gt=0)
    seed: Optional[int] = None

    def round_timeout(self, match_count: int) -> float:
        """Wall-clock budget for one stage of a round with *match_count* matches."""
        return self.round_timeout_per_match * max(match_count, 1)


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def load_settings(**overrides) -> Settings:
    """Build Settings from the environment, then apply explicit overrides.

    Overrides with a value of ``None`` are ignored so CLI flags that were not
    given fall through to the environment.
    """
    values: dict = {}
    data_path = os.environ.get(DATA_PATH_ENV, "").strip()
    if data_path:
        values["data_path"] = Path(data_path)
    workers = _env_int(MAX_WORKERS_ENV)
    if workers is not None:
        values["max_workers"] = workers
    timeout = _env_float(ROUND_TIMEOUT_ENV)
    if timeout is not None:
        values["round_timeout_per_match"] = timeout
    seed = _env_int(SEED_ENV)
    if seed is not None:
        values["seed"] = seed

    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc
