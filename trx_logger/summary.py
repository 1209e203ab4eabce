"""Aggregate counters and outcome classification for a test run."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, TypeAlias

from trx_logger.models.result import RunCompletion, TestOutcome, TestResult

RunOutcome: TypeAlias = Literal["Aborted", "Canceled", "Completed"]

INCONCLUSIVE_OUTCOMES = frozenset(
    {TestOutcome.SKIPPED, TestOutcome.NOT_FOUND, TestOutcome.NONE}
)


@dataclass(frozen=True, kw_only=True)
class Counters:
    """Result counters of the legacy summary section."""

    executed: int
    failed: int
    inconclusive: int
    not_executed: int
    passed: int
    total: int

    def to_attributes(self) -> dict[str, str]:
        """Return all legacy counter attributes in schema order.

        Counters the legacy format defines but this writer never tracks are
        always zero.
        """
        values = {
            "aborted": 0,
            "completed": 0,
            "disconnected": 0,
            "error": 0,
            "executed": self.executed,
            "failed": self.failed,
            "inconclusive": self.inconclusive,
            "inProgress": 0,
            "notExecuted": self.not_executed,
            "notRunnable": 0,
            "passed": self.passed,
            "passedButRunAborted": 0,
            "pending": 0,
            "timeout": 0,
            "total": self.total,
            "warning": 0,
        }
        return {key: str(value) for key, value in values.items()}


@dataclass(frozen=True, kw_only=True)
class RunSummary:
    """Outcome classification and counters for a run."""

    outcome: RunOutcome
    counters: Counters


def classify_run(completion: RunCompletion) -> RunOutcome:
    """Classify the run; an abort takes precedence over a cancel."""
    if completion.aborted:
        return "Aborted"
    if completion.canceled:
        return "Canceled"
    return "Completed"


def count_results(results: Sequence[TestResult]) -> Counters:
    """Count retained results by outcome."""
    outcomes = [result.outcome for result in results]
    return Counters(
        executed=sum(1 for o in outcomes if o != TestOutcome.SKIPPED),
        failed=sum(1 for o in outcomes if o == TestOutcome.FAILED),
        inconclusive=sum(1 for o in outcomes if o in INCONCLUSIVE_OUTCOMES),
        not_executed=sum(1 for o in outcomes if o == TestOutcome.SKIPPED),
        passed=sum(1 for o in outcomes if o == TestOutcome.PASSED),
        total=len(outcomes),
    )


def summarize(results: Sequence[TestResult], completion: RunCompletion) -> RunSummary:
    """Build the run summary from retained results and completion flags."""
    return RunSummary(outcome=classify_run(completion), counters=count_results(results))
