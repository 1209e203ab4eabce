"""Models for recorded test runs replayed by the CLI."""

from collections.abc import Sequence
from datetime import datetime

from pydantic import Field

from trx_logger.models.base import Model
from trx_logger.models.result import RunMessage, TestResult


class RecordedRun(Model):
    """Notifications of a finished run, in delivery order."""

    started: datetime = Field(..., description="Time the run started")
    messages: Sequence[RunMessage] = Field(default_factory=tuple)
    results: Sequence[TestResult] = Field(default_factory=tuple)
    aborted: bool = False
    canceled: bool = False
