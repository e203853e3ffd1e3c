# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Exception types shared by the simulator, the round processor and the stores."""


class PennantError(Exception):
    """Base exception for the league round engine."""


class LineupError(PennantError, ValueError):
    """A lineup cannot be simulated (empty batting order, empty staff, unknown role)."""


class ConfigError(PennantError, ValueError):
    """An environment setting is missing or malformed."""


class StoreError(PennantError):
    """The league store could not be read or written."""


class RoundProcessingError(PennantError):
    """A round failed at a specific stage.

    Attributes:
        stage: Which step failed (``resolve``, ``fetch``, ``lineup``,
            ``simulate``, ``persist`` or ``standings``).
        round_no: The round being processed, if it was resolved.
    """

    def __init__(self, stage: str, message: str, round_no: int | None = None):
        super().__init__(f"{stage} stage failed: {message}")
        self.stage = stage
        self.round_no = round_no
