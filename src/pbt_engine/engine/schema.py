"""Records produced by trials, shrinking and whole runs."""

import json
import pprint
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel, Field

from pbt_engine.errors import InvalidArgument


def render_value(value: Any) -> str:
    """Human-diffable rendering of a drawn value."""
    return pprint.pformat(value, width=88, sort_dicts=True)


class Outcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    EXHAUSTED = "exhausted"
    TIMEOUT = "timeout"
    ERROR = "error"


class ReplayToken(BaseModel):
    """Opaque seed + trial index pair that re-executes one trial exactly."""

    seed: int
    trial_index: int = Field(ge=0)

    def encode(self) -> str:
        return f"{self.seed}:{self.trial_index}"

    @staticmethod
    def decode(token: str) -> "ReplayToken":
        seed, sep, index = token.strip().partition(":")
        if not sep:
            raise InvalidArgument(f"Malformed replay token {token!r}")
        try:
            return ReplayToken(seed=int(seed), trial_index=int(index))
        except ValueError as e:
            raise InvalidArgument(f"Malformed replay token {token!r}: {e}") from e


class TrialResult(BaseModel):
    trial_index: int
    seed: int = Field(description="Run seed the trial's source was derived from")
    outcome: Outcome
    reason: Optional[str] = Field(default=None, description="Diagnostic for non-passing trials")
    value: Any = Field(default=None, exclude=True)

    @property
    def passed(self) -> bool:
        return self.outcome == Outcome.PASSED


class Counterexample(BaseModel):
    seed: int
    trial_index: int
    original_value: Any = Field(default=None, exclude=True)
    minimal_value: Any = Field(default=None, exclude=True)
    original_repr: str
    minimal_repr: str
    reason: Optional[str] = None
    shrink_steps: int = 0
    shrink_calls: int = 0
    shrink_stalled: bool = False

    @property
    def replay_token(self) -> ReplayToken:
        return ReplayToken(seed=self.seed, trial_index=self.trial_index)


class RunResult(BaseModel):
    property_name: str
    outcome: Outcome
    seed: int
    trial_count: int = Field(description="Configured fresh-trial budget")
    trials_run: int = 0
    elapsed: float = 0.0
    failed_trial: Optional[int] = None
    message: Optional[str] = None
    counterexample: Optional[Counterexample] = None

    @property
    def passed(self) -> bool:
        return self.outcome == Outcome.PASSED

    @property
    def replay_token(self) -> Optional[ReplayToken]:
        if self.failed_trial is None:
            return None
        return ReplayToken(seed=self.seed, trial_index=self.failed_trial)

    def save(self, output_path: str | Path) -> None:
        """Save result as JSON."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        token = self.replay_token
        if token is not None:
            data["replay_token"] = token.encode()
        with open(output_path, "w") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.info(f"Saved run result to {output_path}")
