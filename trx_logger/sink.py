"""Result sinks receiving test run notifications from the host."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from pathlib import Path

from trx_logger.config import ReportConfig
from trx_logger.errors import RunAlreadyCompletedError
from trx_logger.metadata.base import MetadataProvider
from trx_logger.models.result import (
    MessageLevel,
    RunCompletion,
    TestOutcome,
    TestResult,
)
from trx_logger.report import ReportAssembler
from trx_logger.writer import report_file_name, write_report

log = logging.getLogger(__name__)

LOG_LEVELS: Mapping[MessageLevel, int] = {
    MessageLevel.INFORMATIONAL: logging.INFO,
    MessageLevel.WARNING: logging.WARNING,
    MessageLevel.ERROR: logging.ERROR,
}


def is_ignored(result: TestResult) -> bool:
    """Return whether a result was explicitly ignored.

    Hosts report ignored tests and tests skipped for other reasons with the
    same outcome; only ignored tests come without any messages.
    """
    return result.outcome == TestOutcome.SKIPPED and not result.messages


def _local_now() -> datetime:
    return datetime.now().astimezone()


class ResultSink(ABC):
    """Receiver of the notifications of one test run."""

    @abstractmethod
    def on_result(self, result: TestResult) -> None:
        """Handle the result of one executed test."""

    @abstractmethod
    def on_message(self, level: MessageLevel, text: str) -> None:
        """Handle an advisory run message."""

    @abstractmethod
    def on_complete(self, completion: RunCompletion) -> Path | None:
        """Handle the end of the run, after which no results arrive."""


@dataclass(kw_only=True)
class TrxLogger(ResultSink):
    """Collects results and writes a TRX report when the run completes.

    Notifications must be delivered sequentially; wrap the logger in a
    :class:`QueuedSink` when the host may call it from several threads.
    """

    config: ReportConfig
    metadata_provider_factory: Callable[[], MetadataProvider]
    clock: Callable[[], datetime] = _local_now
    started: datetime | None = None
    _run_started: datetime = field(init=False, repr=False)
    _results: list[TestResult] = field(default_factory=list, init=False, repr=False)
    _completed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self._run_started = self.started if self.started is not None else self.clock()
        log.info("Initializing TRX logger, writing to: %s", self.config.output_dir)

    @property
    def results(self) -> list[TestResult]:
        """Results retained so far, in arrival order."""
        return list(self._results)

    def on_result(self, result: TestResult) -> None:
        """Retain a result unless it was explicitly ignored."""
        self._ensure_running()
        if is_ignored(result):
            log.debug("Dropping ignored test: %s", result.test_case.display_name)
            return
        self._results.append(result)

    def on_message(self, level: MessageLevel, text: str) -> None:
        """Log a run message; messages never reach the report."""
        log.log(LOG_LEVELS.get(level, logging.INFO), "[%s] %s", level, text)

    def on_complete(self, completion: RunCompletion) -> Path:
        """Build the report and write it to the output directory.

        Returns:
            Path of the written report

        Raises:
            RunAlreadyCompletedError: If the run was already completed
            MetadataResolutionError: If metadata lookup fails in strict mode
            OSError: If the report cannot be written

        """
        self._ensure_running()
        self._completed = True

        assembler = ReportAssembler(
            host=self.config.host,
            metadata_provider_factory=self.metadata_provider_factory,
            strict_metadata=self.config.strict_metadata,
            clock=self.clock,
        )
        root = assembler.build(self._results, completion, self._run_started)

        file_name = report_file_name(
            self.config.host.user_name, self.config.host.machine_name, self.clock()
        )
        return write_report(root, self.config.output_dir, file_name)

    def _ensure_running(self) -> None:
        if self._completed:
            raise RunAlreadyCompletedError("Test run has already completed")


@dataclass(kw_only=True)
class QueuedSink(ResultSink):
    """Serializes notifications from any thread onto one consumer.

    Notifications are posted to an asyncio queue owned by ``loop`` and
    forwarded to ``sink`` in arrival order by :meth:`run`, which returns once
    the completion notification has been handled.
    """

    sink: ResultSink
    loop: asyncio.AbstractEventLoop
    _queue: asyncio.Queue[tuple[bool, Callable[[], Path | None]]] = field(
        default_factory=asyncio.Queue, init=False, repr=False
    )

    def on_result(self, result: TestResult) -> None:
        """Queue a result for the wrapped sink."""
        self._post(False, partial(self.sink.on_result, result))

    def on_message(self, level: MessageLevel, text: str) -> None:
        """Queue a run message for the wrapped sink."""
        self._post(False, partial(self.sink.on_message, level, text))

    def on_complete(self, completion: RunCompletion) -> None:
        """Queue the run completion for the wrapped sink."""
        self._post(True, partial(self.sink.on_complete, completion))

    async def run(self) -> Path | None:
        """Forward queued notifications until the run completes.

        Returns:
            Whatever the wrapped sink returns from ``on_complete``

        """
        while True:
            is_completion, deliver = await self._queue.get()
            outcome = deliver()
            if is_completion:
                return outcome

    def _post(self, is_completion: bool, deliver: Callable[[], Path | None]) -> None:
        self.loop.call_soon_threadsafe(self._queue.put_nowait, (is_completion, deliver))
