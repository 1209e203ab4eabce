"""CLI entry point replaying recorded test runs into TRX reports."""

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from trx_logger.config import ReportConfig
from trx_logger.metadata.loading import load_provider_manifest
from trx_logger.models.result import RunCompletion
from trx_logger.models.run import RecordedRun
from trx_logger.sink import ResultSink, TrxLogger

log = logging.getLogger("trx_logger")


def load_recorded_run(path: Path) -> RecordedRun:
    """Load a recorded run from a JSON file."""
    return RecordedRun.model_validate_json(path.read_text(encoding="utf-8"))


def replay(run: RecordedRun, sink: ResultSink) -> Path | None:
    """Deliver a recorded run's notifications to a sink."""
    for message in run.messages:
        sink.on_message(message.level, message.text)
    for result in run.results:
        sink.on_result(result)
    return sink.on_complete(RunCompletion(aborted=run.aborted, canceled=run.canceled))


def run(
    run_file: Path,
    output_dir: Path,
    metadata_provider: str = "python",
    strict_metadata: bool = True,
) -> int:
    """Replay a recorded run and return exit code."""
    log.info("Loading metadata provider: %s", metadata_provider)
    manifest = load_provider_manifest(metadata_provider)

    log.info("Loading recorded run: %s", run_file)
    try:
        recorded = load_recorded_run(run_file)
    except ValidationError as e:
        log.error("Invalid run file %s: %s", run_file, e)
        raise

    log.info(
        "Replaying %d result(s) and %d message(s)",
        len(recorded.results),
        len(recorded.messages),
    )
    sink = TrxLogger(
        config=ReportConfig(output_dir=output_dir, strict_metadata=strict_metadata),
        metadata_provider_factory=manifest.provider_factory,
        started=recorded.started,
    )
    path = replay(recorded, sink)
    print(path)
    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Write a TRX report for a recorded test run"
    )
    parser.add_argument(
        "--run-file",
        type=Path,
        required=True,
        help="JSON file with the recorded run notifications",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path.cwd(),
        help="Directory the report is written to (default: current directory)",
    )
    parser.add_argument(
        "--metadata-provider",
        default="python",
        help="Metadata provider key (python, static)",
    )
    parser.add_argument(
        "--lenient-metadata",
        action="store_true",
        help="Fall back to default metadata when a test cannot be introspected",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = run(
        run_file=args.run_file,
        output_dir=args.output_dir,
        metadata_provider=args.metadata_provider,
        strict_metadata=not args.lenient_metadata,
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
