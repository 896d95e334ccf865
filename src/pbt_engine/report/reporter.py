"""Human-readable reports and aggregate summaries of runs."""

import json
import textwrap
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field

from pbt_engine.engine.schema import Outcome, RunResult


def _indent(text: str) -> str:
    return textwrap.indent(text, "    ")


def format_report(result: RunResult) -> str:
    """Format a run result for a terminal or an assertion message."""
    name = result.property_name

    if result.outcome == Outcome.PASSED:
        return (
            f"{name}: passed {result.trials_run} trials "
            f"(seed={result.seed}, elapsed {result.elapsed:.3f}s).\n"
            "Only the sampled trials were checked; passing is not a proof of correctness."
        )

    token = result.replay_token.encode() if result.replay_token else "n/a"

    if result.outcome == Outcome.FAILED and result.counterexample is not None:
        ce = result.counterexample
        lines = [
            f"{name}: falsified on trial {ce.trial_index} after {result.trials_run} trials "
            f"(seed={ce.seed}).",
            f"Minimal counterexample ({ce.shrink_steps} shrink steps, {ce.shrink_calls} calls):",
            _indent(ce.minimal_repr),
            "Original failing value:",
            _indent(ce.original_repr),
        ]
        if ce.reason:
            lines += ["Failure:", _indent(ce.reason)]
        if ce.shrink_stalled:
            lines.append("Shrinking stopped early: the strategy offered candidates that were not simpler.")
        lines.append(f"Reproduce with replay token {token} (seed {ce.seed}, trial {ce.trial_index}).")
        return "\n".join(lines)

    headline = {
        Outcome.EXHAUSTED: "strategy exhausted",
        Outcome.TIMEOUT: "trial timed out",
        Outcome.ERROR: "strategy error",
    }.get(result.outcome, result.outcome.value)
    lines = [
        f"{name}: {headline} on trial {result.failed_trial} (seed={result.seed}).",
    ]
    if result.message:
        lines.append(_indent(result.message))
    lines.append(f"Reproduce with replay token {token}.")
    return "\n".join(lines)


class SessionSummary(BaseModel):
    """Aggregate statistics across several runs."""

    total_runs: int = 0
    passed_count: int = 0
    failed_count: int = 0
    exhausted_count: int = 0
    timeout_count: int = 0
    error_count: int = 0
    results: list[RunResult] = Field(default_factory=list)

    @property
    def pass_rate(self) -> float:
        return self.passed_count / max(self.total_runs, 1)

    @property
    def all_passed(self) -> bool:
        return self.passed_count == self.total_runs

    def add(self, result: RunResult) -> None:
        self.results.append(result)
        self.total_runs += 1
        if result.outcome == Outcome.PASSED:
            self.passed_count += 1
        elif result.outcome == Outcome.FAILED:
            self.failed_count += 1
        elif result.outcome == Outcome.EXHAUSTED:
            self.exhausted_count += 1
        elif result.outcome == Outcome.TIMEOUT:
            self.timeout_count += 1
        else:
            self.error_count += 1

    def to_dict(self) -> dict:
        return {
            "total_runs": self.total_runs,
            "passed": self.passed_count,
            "failed": self.failed_count,
            "exhausted": self.exhausted_count,
            "timeout": self.timeout_count,
            "error": self.error_count,
            "pass_rate": round(self.pass_rate, 4),
        }

    def save(self, output_path: str | Path) -> None:
        """Save the summary and every run as JSON."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        data["summary_rates"] = self.to_dict()
        with open(output_path, "w") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.info(f"Saved session report to {output_path}")
