"""Assembly of TRX report documents from retained test results."""

import logging
import re
import uuid
import xml.etree.ElementTree as ET
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TypeVar

from trx_logger.config import HostIdentity
from trx_logger.errors import MetadataResolutionError
from trx_logger.identifiers import ExecutionIdCache, guid_from_string
from trx_logger.metadata.base import MetadataProvider
from trx_logger.models.metadata import TestMetadata
from trx_logger.models.result import RunCompletion, TestOutcome, TestResult
from trx_logger.namespaces import normalize_namespaces
from trx_logger.summary import summarize

log = logging.getLogger(__name__)

TRX_NAMESPACE = "http://microsoft.com/schemas/VisualStudio/TeamTest/2010"
ADAPTER_TYPE_NAME = (
    "Microsoft.VisualStudio.TestTools.TestTypes.Unit.UnitTestAdapter, "
    "Microsoft.VisualStudio.QualityTools.Tips.UnitTest.Adapter, "
    "Version=12.0.0.0, Culture=neutral, PublicKeyToken=b03f5f7f11d50a3a"
)
TEST_LIST_NAME = "Test list"

_TICKS_PER_SECOND = 10_000_000
# Complement of the XML 1.0 Char production
_INVALID_XML_CHARS = re.compile(
    "[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


def format_duration(value: timedelta) -> str:
    """Format a duration as legacy TimeSpan text, ``[-][d.]hh:mm:ss[.fffffff]``."""
    ticks = (value.days * 86_400 + value.seconds) * _TICKS_PER_SECOND
    ticks += value.microseconds * 10
    sign = "-" if ticks < 0 else ""
    seconds, fraction = divmod(abs(ticks), _TICKS_PER_SECOND)
    minutes, second = divmod(seconds, 60)
    hours, minute = divmod(minutes, 60)
    days, hour = divmod(hours, 24)

    text = f"{sign}{days}." if days else sign
    text += f"{hour:02d}:{minute:02d}:{second:02d}"
    if fraction:
        text += f".{fraction:07d}"
    return text


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as round-trip text with seven fractional digits."""
    text = value.isoformat(timespec="seconds")
    return f"{text[:19]}.{value.microsecond * 10:07d}{text[19:]}"


T = TypeVar("T", str, None)


def xml_text(value: T) -> T:
    """Replace characters XML 1.0 cannot represent with U+FFFD."""
    if value is None:
        return value
    return _INVALID_XML_CHARS.sub("\ufffd", value)


def outcome_text(outcome: TestOutcome) -> str:
    """Return the outcome as written to reports; skips read as inconclusive."""
    if outcome == TestOutcome.SKIPPED:
        return "Inconclusive"
    return outcome.value


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass(kw_only=True)
class ReportContext:
    """State shared by the sections of one report.

    Created for a single :meth:`ReportAssembler.build` call and discarded with
    the document.
    """

    run_id: uuid.UUID
    execution_ids: ExecutionIdCache
    metadata_provider: MetadataProvider
    strict_metadata: bool = True
    _metadata: dict[int, TestMetadata] = field(
        default_factory=dict, init=False, repr=False
    )

    def execution_id(self, result: TestResult) -> str:
        """Return the execution id of a result as text."""
        return str(self.execution_ids.get(result))

    def metadata(self, result: TestResult) -> TestMetadata:
        """Return the metadata of a result's test, resolving it once."""
        key = id(result)
        if (metadata := self._metadata.get(key)) is None:
            metadata = self._metadata[key] = self._resolve(result)
        return metadata

    def _resolve(self, result: TestResult) -> TestMetadata:
        test_case = result.test_case
        try:
            return self.metadata_provider.resolve(
                test_case.fully_qualified_name, test_case.source
            )
        except MetadataResolutionError as e:
            if self.strict_metadata:
                raise
            log.warning("Falling back to default metadata: %s", e, exc_info=e)
            class_name = test_case.fully_qualified_name.rpartition(".")[0]
            return TestMetadata(class_full_name=class_name or test_case.display_name)


@dataclass(frozen=True, kw_only=True)
class ReportAssembler:
    """Builds TRX documents from retained test results."""

    host: HostIdentity
    metadata_provider_factory: Callable[[], MetadataProvider]
    strict_metadata: bool = True
    clock: Callable[[], datetime] = _local_now
    id_factory: Callable[[], uuid.UUID] = uuid.uuid4

    def build(
        self,
        results: Sequence[TestResult],
        completion: RunCompletion,
        run_started: datetime,
    ) -> ET.Element:
        """Build the normalized report tree for a completed run.

        Args:
            results: Results retained by the skip filter, in arrival order
            completion: Run-level abort and cancel flags
            run_started: Time the run started

        Returns:
            Root ``TestRun`` element, fully namespace-qualified

        Raises:
            MetadataResolutionError: If metadata lookup fails in strict mode

        """
        log.info("Started generating TRX output...")

        context = ReportContext(
            run_id=self.id_factory(),
            execution_ids=ExecutionIdCache(id_factory=self.id_factory),
            metadata_provider=self.metadata_provider_factory(),
            strict_metadata=self.strict_metadata,
        )
        run_id = str(context.run_id)
        created = self.clock().astimezone(timezone.utc)

        root = ET.Element(
            f"{{{TRX_NAMESPACE}}}TestRun",
            {
                "id": run_id,
                "name": xml_text(
                    f"{self.host.user_name}@{self.host.machine_name} "
                    f"{created:%Y-%m-%d %H:%M:%S}"
                ),
                "runUser": xml_text(self.host.run_user),
            },
        )
        root.append(self._results(results, context))
        root.append(self._result_summary(results, completion))
        root.append(self._test_definitions(results, context))
        root.append(self._test_entries(results, context))
        root.append(self._test_lists(run_id))
        root.append(self._times(run_started))

        normalize_namespaces(root)
        log.info("Finished generating TRX output...")
        return root

    def _results(
        self, results: Sequence[TestResult], context: ReportContext
    ) -> ET.Element:
        run_id = str(context.run_id)
        section = ET.Element("Results")
        for result in results:
            execution_id = context.execution_id(result)
            element = ET.SubElement(
                section,
                "UnitTestResult",
                {
                    "computerName": xml_text(self.host.machine_name),
                    "duration": format_duration(result.duration),
                    "endTime": format_timestamp(result.end_time),
                    "executionId": execution_id,
                    "outcome": outcome_text(result.outcome),
                    "relativeResultsDirectory": execution_id,
                    "startTime": format_timestamp(result.start_time),
                    "testId": str(
                        guid_from_string(result.test_case.fully_qualified_name)
                    ),
                    "testListId": run_id,
                    "testName": xml_text(result.test_case.display_name),
                    # The legacy format stores the run id here as well
                    "testType": run_id,
                },
            )
            element.append(self._output(result))
        return section

    def _output(self, result: TestResult) -> ET.Element:
        output = ET.Element("Output")
        ET.SubElement(output, "StdOut").text = xml_text(
            "\n".join(message.text for message in result.messages)
        )
        if result.error_message or result.error_stack_trace:
            error_info = ET.SubElement(output, "ErrorInfo")
            ET.SubElement(error_info, "Message").text = xml_text(result.error_message)
            ET.SubElement(error_info, "StackTrace").text = xml_text(
                result.error_stack_trace
            )
        return output

    def _result_summary(
        self, results: Sequence[TestResult], completion: RunCompletion
    ) -> ET.Element:
        summary = summarize(results, completion)
        section = ET.Element("ResultSummary", {"outcome": summary.outcome})
        ET.SubElement(section, "Counters", summary.counters.to_attributes())
        return section

    def _test_definitions(
        self, results: Sequence[TestResult], context: ReportContext
    ) -> ET.Element:
        section = ET.Element("TestDefinitions")
        for result in results:
            test_case = result.test_case
            metadata = context.metadata(result)

            unit_test = ET.SubElement(
                section,
                "UnitTest",
                {
                    "id": str(guid_from_string(test_case.fully_qualified_name)),
                    "name": xml_text(test_case.display_name),
                    "storage": xml_text(test_case.source),
                },
            )
            ET.SubElement(unit_test, "Description").text = xml_text(
                test_case.display_name
                if metadata.description is None
                else metadata.description
            )
            ET.SubElement(unit_test, "Execution", {"id": context.execution_id(result)})

            properties = ET.SubElement(unit_test, "Properties")
            for prop in metadata.properties:
                property_element = ET.SubElement(properties, "Property")
                ET.SubElement(property_element, "Key").text = xml_text(prop.name)
                ET.SubElement(property_element, "Value").text = xml_text(prop.value)

            categories = ET.SubElement(unit_test, "TestCategory")
            for labels in metadata.categories:
                ET.SubElement(categories, "TestCategoryItem").text = xml_text(labels[0])

            ET.SubElement(
                unit_test,
                "TestMethod",
                {
                    "adapterTypeName": ADAPTER_TYPE_NAME,
                    "className": xml_text(metadata.class_full_name),
                    "codeBase": xml_text(test_case.source),
                    "name": xml_text(test_case.display_name),
                },
            )
        return section

    def _test_entries(
        self, results: Sequence[TestResult], context: ReportContext
    ) -> ET.Element:
        run_id = str(context.run_id)
        section = ET.Element("TestEntries")
        for result in results:
            ET.SubElement(
                section,
                "TestEntry",
                {
                    "executionId": context.execution_id(result),
                    # Entries key tests by display name, definitions by
                    # qualified name; consumers rely on both.
                    "testId": str(guid_from_string(result.test_case.display_name)),
                    "testListId": run_id,
                },
            )
        return section

    def _test_lists(self, run_id: str) -> ET.Element:
        section = ET.Element("TestLists")
        ET.SubElement(section, "TestList", {"id": run_id, "name": TEST_LIST_NAME})
        return section

    def _times(self, run_started: datetime) -> ET.Element:
        started = format_timestamp(run_started)
        return ET.Element(
            "Times",
            {
                "creation": started,
                "finish": format_timestamp(self.clock()),
                "queueing": started,
                "start": started,
            },
        )
