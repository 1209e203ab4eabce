"""Tests for TRX report assembly."""

import logging
import uuid
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest

from trx_logger.config import HostIdentity
from trx_logger.errors import MetadataResolutionError
from trx_logger.identifiers import guid_from_string
from trx_logger.metadata.base import MetadataProvider
from trx_logger.metadata.python import PythonMetadataProvider
from trx_logger.metadata.static import StaticMetadataProvider
from trx_logger.models.metadata import TestMetadata, TestProperty
from trx_logger.models.result import (
    RunCompletion,
    TestCase,
    TestMessage,
    TestOutcome,
    TestResult,
)
from trx_logger.report import (
    ADAPTER_TYPE_NAME,
    TRX_NAMESPACE,
    ReportAssembler,
    format_duration,
    format_timestamp,
    outcome_text,
    xml_text,
)
from trx_logger.testing.factories import TestCaseFactory, TestResultFactory

NS = {"t": TRX_NAMESPACE}
FINISHED = datetime(2026, 5, 1, 12, 30, 0, tzinfo=timezone.utc)
STARTED = datetime(2026, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
HOST = HostIdentity(user_name="alice", machine_name="BUILD01", user_domain="CORP")
SAMPLE_SUITE = str(Path(__file__).parent / "fixtures" / "sample_suite.py")


def make_assembler(
    provider: MetadataProvider | None = None, strict_metadata: bool = True
) -> ReportAssembler:
    return ReportAssembler(
        host=HOST,
        metadata_provider_factory=lambda: provider or StaticMetadataProvider(),
        strict_metadata=strict_metadata,
        clock=lambda: FINISHED,
    )


def build(
    results: Sequence[TestResult],
    completion: RunCompletion | None = None,
    provider: MetadataProvider | None = None,
) -> ET.Element:
    return make_assembler(provider).build(
        results, completion or RunCompletion(), STARTED
    )


def find(element: ET.Element, path: str) -> ET.Element:
    found = element.find(path, NS)
    assert found is not None, path
    return found


def make_result(
    qualified_name: str,
    outcome: TestOutcome,
    messages: Sequence[str] = (),
    display_name: str | None = None,
) -> TestResult:
    return TestResultFactory.build(
        test_case=TestCase(
            fully_qualified_name=qualified_name,
            display_name=display_name or qualified_name.rpartition(".")[2],
            source="/tests/suite.py",
        ),
        outcome=outcome,
        messages=tuple(TestMessage(text=text) for text in messages),
    )


class TestFormatting:
    """Tests for value formatting helpers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (timedelta(), "00:00:00"),
            (timedelta(seconds=1, microseconds=234_567), "00:00:01.2345670"),
            (timedelta(hours=2, minutes=3, seconds=4), "02:03:04"),
            (timedelta(days=1, hours=1), "1.01:00:00"),
            (timedelta(seconds=-1.5), "-00:00:01.5000000"),
        ],
    )
    def test_format_duration(self, value: timedelta, expected: str) -> None:
        """Formats durations like legacy TimeSpan text."""
        assert format_duration(value) == expected

    def test_format_timestamp(self) -> None:
        """Formats timestamps as ISO 8601 with offset."""
        assert format_timestamp(STARTED) == "2026-05-01T12:00:00.0000000+00:00"

    def test_format_timestamp_fraction_and_naive(self) -> None:
        """Writes seven fractional digits and no offset for naive timestamps."""
        value = datetime(2026, 5, 1, 12, 0, 0, 123_456)

        assert format_timestamp(value) == "2026-05-01T12:00:00.1234560"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("plain text", "plain text"),
            ("tab\tnew\nline\r", "tab\tnew\nline\r"),
            ("\x1b[31mred\x1b[0m", "\ufffd[31mred\ufffd[0m"),
            ("nul\x00byte", "nul\ufffdbyte"),
            ("lone \ud800 surrogate", "lone \ufffd surrogate"),
            ("\ufffe\uffff", "\ufffd\ufffd"),
            ("emoji \U0001f600", "emoji \U0001f600"),
            (None, None),
        ],
    )
    def test_xml_text(self, value: str | None, expected: str | None) -> None:
        """Replaces characters outside the XML 1.0 character range."""
        assert xml_text(value) == expected

    @pytest.mark.parametrize(
        ("outcome", "expected"),
        [
            (TestOutcome.PASSED, "Passed"),
            (TestOutcome.FAILED, "Failed"),
            (TestOutcome.SKIPPED, "Inconclusive"),
            (TestOutcome.NOT_FOUND, "NotFound"),
            (TestOutcome.NONE, "None"),
        ],
    )
    def test_outcome_text(self, outcome: TestOutcome, expected: str) -> None:
        """Writes skipped tests as inconclusive and others by name."""
        assert outcome_text(outcome) == expected


class TestDocumentShape:
    """Tests for the overall document structure."""

    def test_sections_in_order(self) -> None:
        """Emits the six sections in legacy order under one namespace."""
        root = build([TestResultFactory.build()])

        assert root.tag == f"{{{TRX_NAMESPACE}}}TestRun"
        assert [child.tag.rpartition("}")[2] for child in root] == [
            "Results",
            "ResultSummary",
            "TestDefinitions",
            "TestEntries",
            "TestLists",
            "Times",
        ]
        assert all(el.tag.startswith(f"{{{TRX_NAMESPACE}}}") for el in root.iter())

    def test_root_attributes(self) -> None:
        """Carries run id, run name and run user."""
        root = build([])

        uuid.UUID(root.attrib["id"])
        assert root.attrib["name"] == "alice@BUILD01 2026-05-01 12:30:00"
        assert root.attrib["runUser"] == "CORP\\alice"

    def test_single_test_list_uses_run_id(self) -> None:
        """Declares one default test list identified by the run id."""
        root = build([TestResultFactory.build()])

        lists = root.findall("t:TestLists/t:TestList", NS)
        assert len(lists) == 1
        assert lists[0].attrib == {"id": root.attrib["id"], "name": "Test list"}

    def test_times(self) -> None:
        """Uses the run start for creation, queueing and start, and the clock for finish."""
        times = find(build([]), "t:Times")

        assert times.attrib == {
            "creation": format_timestamp(STARTED),
            "finish": format_timestamp(FINISHED),
            "queueing": format_timestamp(STARTED),
            "start": format_timestamp(STARTED),
        }

    def test_run_ids_differ_between_builds(self) -> None:
        """Generates a new run id for every report."""
        assembler = make_assembler()

        first = assembler.build([], RunCompletion(), STARTED)
        second = assembler.build([], RunCompletion(), STARTED)

        assert first.attrib["id"] != second.attrib["id"]


class TestResultsSection:
    """Tests for the Results section."""

    def test_unit_test_result_attributes(self) -> None:
        """Writes the legacy attributes in schema order."""
        result = TestResultFactory.build(
            test_case=TestCase(
                fully_qualified_name="Suite.ClassA.TestOne",
                display_name="TestOne",
                source="/tests/suite.py",
            ),
            outcome=TestOutcome.FAILED,
            start_time=STARTED,
            end_time=STARTED + timedelta(seconds=2),
            duration=timedelta(seconds=2),
        )
        root = build([result])
        run_id = root.attrib["id"]

        element = find(root, "t:Results/t:UnitTestResult")

        assert list(element.attrib) == [
            "computerName",
            "duration",
            "endTime",
            "executionId",
            "outcome",
            "relativeResultsDirectory",
            "startTime",
            "testId",
            "testListId",
            "testName",
            "testType",
        ]
        assert element.attrib["computerName"] == "BUILD01"
        assert element.attrib["duration"] == "00:00:02"
        assert element.attrib["endTime"] == "2026-05-01T12:00:02.0000000+00:00"
        assert element.attrib["outcome"] == "Failed"
        assert element.attrib["relativeResultsDirectory"] == element.attrib["executionId"]
        assert element.attrib["testId"] == str(guid_from_string("Suite.ClassA.TestOne"))
        assert element.attrib["testListId"] == run_id
        assert element.attrib["testName"] == "TestOne"
        assert element.attrib["testType"] == run_id

    def test_output_joins_messages(self) -> None:
        """Joins message texts with line breaks into StdOut."""
        result = make_result("Suite.A.t", TestOutcome.PASSED, ["first", "second"])

        output = find(build([result]), "t:Results/t:UnitTestResult/t:Output")

        assert find(output, "t:StdOut").text == "first\nsecond"
        assert output.find("t:ErrorInfo", NS) is None

    def test_output_includes_error_info(self) -> None:
        """Adds message and stack trace when the test reported an error."""
        result = TestResultFactory.build(
            outcome=TestOutcome.FAILED,
            error_message="Expected 1, got 2",
            error_stack_trace="at test_math line 3",
        )

        output = find(build([result]), "t:Results/t:UnitTestResult/t:Output")

        assert find(output, "t:ErrorInfo/t:Message").text == "Expected 1, got 2"
        assert find(output, "t:ErrorInfo/t:StackTrace").text == "at test_math line 3"

    def test_error_info_with_stack_trace_only(self) -> None:
        """Adds error info when only the stack trace is present."""
        result = TestResultFactory.build(
            outcome=TestOutcome.FAILED, error_stack_trace="trace"
        )

        output = find(build([result]), "t:Results/t:UnitTestResult/t:Output")

        assert find(output, "t:ErrorInfo/t:Message").text is None
        assert find(output, "t:ErrorInfo/t:StackTrace").text == "trace"


class TestResultSummarySection:
    """Tests for the ResultSummary section."""

    @pytest.mark.parametrize(
        ("completion", "expected"),
        [
            (RunCompletion(aborted=True, canceled=True), "Aborted"),
            (RunCompletion(canceled=True), "Canceled"),
            (RunCompletion(), "Completed"),
        ],
    )
    def test_outcome(self, completion: RunCompletion, expected: str) -> None:
        """Classifies the run from its completion flags."""
        summary = find(build([], completion), "t:ResultSummary")

        assert summary.attrib == {"outcome": expected}

    def test_counters(self) -> None:
        """Counts retained results by outcome."""
        results = [
            make_result("Suite.A.one", TestOutcome.PASSED),
            make_result("Suite.A.two", TestOutcome.FAILED),
            make_result("Suite.A.three", TestOutcome.SKIPPED, ["reason"]),
        ]

        counters = find(build(results), "t:ResultSummary/t:Counters").attrib

        assert counters["total"] == "3"
        assert counters["executed"] == "2"
        assert counters["notExecuted"] == "1"
        assert counters["passed"] == "1"
        assert counters["failed"] == "1"
        assert counters["inconclusive"] == "1"
        assert counters["warning"] == "0"


class TestDefinitionsSection:
    """Tests for the TestDefinitions section."""

    def test_unit_test_from_metadata(self) -> None:
        """Writes resolved description, properties, categories and class name."""
        result = make_result("Suite.ClassA.TestOne", TestOutcome.PASSED)
        provider = StaticMetadataProvider(
            entries={
                "Suite.ClassA.TestOne": TestMetadata(
                    description="Checks one",
                    properties=(
                        TestProperty(name="Owner", value="team-a"),
                        TestProperty(name="Priority", value="1"),
                    ),
                    categories=(("Smoke", "Fast"), ("Nightly",)),
                    class_full_name="suite.ClassA",
                )
            }
        )

        unit_test = find(build([result], provider=provider), "t:TestDefinitions/t:UnitTest")

        assert unit_test.attrib == {
            "id": str(guid_from_string("Suite.ClassA.TestOne")),
            "name": "TestOne",
            "storage": "/tests/suite.py",
        }
        assert [child.tag.rpartition("}")[2] for child in unit_test] == [
            "Description",
            "Execution",
            "Properties",
            "TestCategory",
            "TestMethod",
        ]
        assert find(unit_test, "t:Description").text == "Checks one"
        properties = [
            (find(p, "t:Key").text, find(p, "t:Value").text)
            for p in unit_test.findall("t:Properties/t:Property", NS)
        ]
        assert properties == [("Owner", "team-a"), ("Priority", "1")]
        categories = [
            item.text
            for item in unit_test.findall("t:TestCategory/t:TestCategoryItem", NS)
        ]
        assert categories == ["Smoke", "Nightly"]
        assert find(unit_test, "t:TestMethod").attrib == {
            "adapterTypeName": ADAPTER_TYPE_NAME,
            "className": "suite.ClassA",
            "codeBase": "/tests/suite.py",
            "name": "TestOne",
        }

    def test_description_falls_back_to_display_name(self) -> None:
        """Uses the display name when no description is declared."""
        result = make_result("Suite.ClassA.TestOne", TestOutcome.PASSED)

        unit_test = find(build([result]), "t:TestDefinitions/t:UnitTest")

        assert find(unit_test, "t:Description").text == "TestOne"
        assert len(find(unit_test, "t:Properties")) == 0
        assert len(find(unit_test, "t:TestCategory")) == 0

    def test_duplicate_names_are_not_deduplicated(self) -> None:
        """Writes one definition per result even when names repeat."""
        results = [
            make_result("Suite.A.test_param", TestOutcome.PASSED),
            make_result("Suite.A.test_param", TestOutcome.FAILED),
        ]

        definitions = build(results).findall("t:TestDefinitions/t:UnitTest", NS)

        assert len(definitions) == 2
        assert definitions[0].attrib["id"] == definitions[1].attrib["id"]

    def test_resolves_metadata_once_per_result(self) -> None:
        """Looks up metadata of each result a single time."""
        provider = Mock(spec=MetadataProvider)
        provider.resolve.return_value = TestMetadata(class_full_name="suite.A")
        results = [make_result("Suite.A.one", TestOutcome.PASSED)]

        build(results, provider=provider)

        provider.resolve.assert_called_once_with("Suite.A.one", "/tests/suite.py")

    def test_uses_new_provider_per_report(self) -> None:
        """Creates a metadata provider for every report."""
        factory = Mock(return_value=StaticMetadataProvider())
        assembler = ReportAssembler(host=HOST, metadata_provider_factory=factory)

        assembler.build([], RunCompletion(), STARTED)
        assembler.build([], RunCompletion(), STARTED)

        assert factory.call_count == 2


class TestMetadataFailures:
    """Tests for metadata resolution failures."""

    @pytest.fixture
    def failing_provider(self) -> Mock:
        provider = Mock(spec=MetadataProvider)
        provider.resolve.side_effect = MetadataResolutionError(
            "Suite.Missing.test", "/tests/suite.py", "class 'Suite.Missing' not found"
        )
        return provider

    def test_strict_mode_aborts_report(self, failing_provider: Mock) -> None:
        """Propagates the failure in strict mode."""
        result = make_result("Suite.Missing.test", TestOutcome.PASSED)

        with pytest.raises(MetadataResolutionError, match="Suite.Missing"):
            make_assembler(failing_provider).build([result], RunCompletion(), STARTED)

    def test_lenient_mode_falls_back(
        self, failing_provider: Mock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Falls back to default metadata and logs a warning."""
        result = make_result("Suite.Missing.test", TestOutcome.PASSED)
        assembler = make_assembler(failing_provider, strict_metadata=False)

        with caplog.at_level(logging.WARNING):
            root = assembler.build([result], RunCompletion(), STARTED)

        unit_test = find(root, "t:TestDefinitions/t:UnitTest")
        assert find(unit_test, "t:Description").text == "test"
        assert find(unit_test, "t:TestMethod").attrib["className"] == "Suite.Missing"
        assert "Falling back to default metadata" in caplog.text

    def test_lenient_mode_falls_back_on_invalid_marker(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Treats marker values of the wrong type like any other lookup failure."""
        result = TestResultFactory.build(
            test_case=TestCase(
                fully_qualified_name="Suite.SampleTests.test_numeric_property",
                display_name="test_numeric_property",
                source=SAMPLE_SUITE,
            )
        )
        assembler = make_assembler(PythonMetadataProvider(), strict_metadata=False)

        with caplog.at_level(logging.WARNING):
            root = assembler.build([result], RunCompletion(), STARTED)

        unit_test = find(root, "t:TestDefinitions/t:UnitTest")
        assert find(unit_test, "t:Description").text == "test_numeric_property"
        assert find(unit_test, "t:TestMethod").attrib["className"] == "Suite.SampleTests"
        assert "invalid metadata" in caplog.text


class TestCrossReferences:
    """Tests for ids shared between sections."""

    def test_execution_ids_match_across_sections(self) -> None:
        """Uses one execution id per result in every section."""
        results = TestResultFactory.batch(5)
        root = build(results)

        from_results = [
            el.attrib["executionId"] for el in root.findall("t:Results/t:UnitTestResult", NS)
        ]
        from_definitions = [
            el.attrib["id"]
            for el in root.findall("t:TestDefinitions/t:UnitTest/t:Execution", NS)
        ]
        from_entries = [
            el.attrib["executionId"] for el in root.findall("t:TestEntries/t:TestEntry", NS)
        ]

        assert from_results == from_definitions == from_entries
        assert len(set(from_results)) == 5

    def test_entries_use_display_name_ids(self) -> None:
        """Derives entry test ids from display names and definition ids from qualified names."""
        result = make_result(
            "Suite.ClassA.TestOne", TestOutcome.PASSED, display_name="Test one"
        )
        root = build([result])

        entry = find(root, "t:TestEntries/t:TestEntry")
        definition = find(root, "t:TestDefinitions/t:UnitTest")

        assert entry.attrib["testId"] == str(guid_from_string("Test one"))
        assert definition.attrib["id"] == str(guid_from_string("Suite.ClassA.TestOne"))
        assert entry.attrib["testListId"] == root.attrib["id"]


class TestScenarios:
    """End-to-end assembly scenarios."""

    def test_inconclusive_skip_keeps_message(self) -> None:
        """Writes skipped tests with messages as inconclusive with their output."""
        result = make_result(
            "Suite.ClassA.TestNet",
            TestOutcome.SKIPPED,
            ["reason: network unavailable"],
        )

        element = find(build([result]), "t:Results/t:UnitTestResult")

        assert element.attrib["outcome"] == "Inconclusive"
        assert find(element, "t:Output/t:StdOut").text == "reason: network unavailable"

    def test_test_case_factory_builds_valid_names(self) -> None:
        """Factory test cases resolve against the static provider."""
        test_case = TestCaseFactory.build()
        result = TestResultFactory.build(test_case=test_case)

        unit_test = find(build([result]), "t:TestDefinitions/t:UnitTest")

        assert find(unit_test, "t:TestMethod").attrib["className"] == "Suite.SampleTests"
