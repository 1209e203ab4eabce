"""Models for test execution results delivered by the host runner."""

from collections.abc import Sequence
from datetime import datetime, timedelta
from enum import StrEnum

from pydantic import Field

from trx_logger.models.base import Model


class TestOutcome(StrEnum):
    """Outcome of a single test, valued by the legacy outcome names."""

    __test__ = False

    NONE = "None"
    PASSED = "Passed"
    FAILED = "Failed"
    SKIPPED = "Skipped"
    NOT_FOUND = "NotFound"


class MessageLevel(StrEnum):
    """Severity of a run message."""

    INFORMATIONAL = "Informational"
    WARNING = "Warning"
    ERROR = "Error"


class TestMessage(Model):
    """Diagnostic message captured while a test executed."""

    __test__ = False

    category: str = Field(default="StdOutMsgs", description="Message category")
    text: str = Field(..., description="Message text")


class TestCase(Model):
    """Identity of a test case."""

    __test__ = False

    fully_qualified_name: str = Field(
        ..., description="Dot-separated class and method name"
    )
    display_name: str = Field(..., description="Human-readable test name")
    source: str = Field(..., description="Path of the module declaring the test")


class TestResult(Model):
    """Outcome of one executed test."""

    __test__ = False

    test_case: TestCase
    outcome: TestOutcome
    start_time: datetime
    end_time: datetime
    duration: timedelta = Field(default=timedelta())
    messages: Sequence[TestMessage] = Field(default_factory=tuple)
    error_message: str | None = None
    error_stack_trace: str | None = None


class RunMessage(Model):
    """Advisory message emitted by the host during a run."""

    level: MessageLevel = MessageLevel.INFORMATIONAL
    text: str


class RunCompletion(Model):
    """Run-level flags delivered with the completion notification."""

    aborted: bool = False
    canceled: bool = False
