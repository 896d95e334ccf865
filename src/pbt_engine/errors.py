"""Exception taxonomy for the property-based testing engine."""


class PBTError(Exception):
    """Base class for every error raised by the engine."""


class InvalidArgument(PBTError, ValueError):
    """A strategy or setting was constructed with unusable arguments."""


class StrategyExhausted(PBTError):
    """A filtered strategy could not produce a valid value within its retry bound."""


class TrialTimeout(PBTError):
    """A single trial exceeded its time bound."""


class PropertyFailure(PBTError, AssertionError):
    """A property was falsified. Raised by ``given`` wrappers with the formatted report."""


class StrategyError(PBTError):
    """A strategy raised while drawing a value."""


class OracleMismatch(AssertionError):
    """Candidate and reference implementations disagreed."""

    def __init__(self, message: str, step: int | None = None):
        super().__init__(message)
        self.step = step
