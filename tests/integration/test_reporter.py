"""Integration tests for run reports and session summaries."""
# IMMUTABLE: Do not modify these tests. Fix implementation if tests fail.

import json

from pbt_engine.engine.schema import Outcome, RunResult
from pbt_engine.report.reporter import SessionSummary, format_report
from pbt_engine.runner import run
from pbt_engine.strategies.combinators import lists
from pbt_engine.strategies.primitives import integers


def test_success_report_states_sampling_limits():  # A
    result = run(integers(0, 3), lambda x: True, seed=9, trial_count=12)
    report = format_report(result)
    assert "passed 12 trials" in report
    assert "seed=9" in report
    assert "not a proof" in report


def test_failure_report_has_values_and_reproduction():  # A
    result = run(lists(integers(0, 50)), lambda xs: len(xs) < 2, seed=4)
    report = format_report(result)
    ce = result.counterexample
    assert f"falsified on trial {ce.trial_index}" in report
    assert "[0, 0]" in report
    assert ce.original_repr in report
    assert f"replay token {ce.seed}:{ce.trial_index}" in report


def test_exhausted_and_timeout_reports_have_no_value():  # A
    exhausted = RunResult(
        property_name="p", outcome=Outcome.EXHAUSTED, seed=1, trial_count=10, failed_trial=2,
        message="rejected 100 consecutive draws",
    )
    timeout = RunResult(
        property_name="p", outcome=Outcome.TIMEOUT, seed=1, trial_count=10, failed_trial=0,
        message="Execution timed out after 1.0s",
    )
    assert "strategy exhausted on trial 2" in format_report(exhausted)
    assert "Minimal counterexample" not in format_report(exhausted)
    assert "trial timed out on trial 0" in format_report(timeout)
    assert "1:0" in format_report(timeout)


def test_run_result_save(tmp_path):  # A
    result = run(integers(0, 100), lambda x: x < 20, seed=2)
    path = tmp_path / "out" / "result.json"
    result.save(path)
    data = json.loads(path.read_text())
    assert data["outcome"] == "failed"
    assert data["replay_token"] == result.replay_token.encode()
    assert data["counterexample"]["minimal_repr"] == "20"
    assert "minimal_value" not in data["counterexample"]


def test_session_summary_counts(tmp_path):  # A
    summary = SessionSummary()
    summary.add(run(integers(0, 3), lambda x: True, seed=1, trial_count=5))
    summary.add(run(integers(0, 3), lambda x: False, seed=1))
    summary.add(run(integers(0, 3).filter(lambda x: x > 5), lambda x: True, seed=1, filter_retry_limit=2))
    assert summary.to_dict() == {
        "total_runs": 3,
        "passed": 1,
        "failed": 1,
        "exhausted": 1,
        "timeout": 0,
        "error": 0,
        "pass_rate": 0.3333,
    }
    assert not summary.all_passed
    path = tmp_path / "session.json"
    summary.save(path)
    assert json.loads(path.read_text())["summary_rates"]["total_runs"] == 3
