"""
Command line entry point for the chunked word frequency counter.
"""

import argparse
import logging
import sys

from chunkfreq.configs import DEFAULT_MAX_IDLE_POLLS, DEFAULT_POLL_INTERVAL, RunConfig
from chunkfreq.word_counter import WordCounter, count_words_sequential

logger = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    """argparse type accepting integers >= 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid positive integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {number}")
    return number


def positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chunkfreq",
        description="Count word frequencies of a large text file with concurrent chunk workers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  chunkfreq corpus.txt report.txt 8                    # 8 chunks, progress bars on stdout
  chunkfreq corpus.txt report.txt 8 --no-progress      # No progress display
  chunkfreq corpus.txt report.txt 32 --max-workers 4   # 32 chunks queued on 4 worker slots
  chunkfreq corpus.txt report.txt 8 --verify           # Compare with a single-pass count
  chunkfreq corpus.txt report.txt 8 --log-level DEBUG  # Show chunk ranges
        """,
    )

    parser.add_argument("source", help="Text file to count")
    parser.add_argument("destination", help="Report file to create")
    parser.add_argument(
        "chunks", type=positive_int, help="Number of line-aligned chunks (one worker each)"
    )

    parser.add_argument(
        "--max-workers",
        type=positive_int,
        default=None,
        help="Worker slots in the pool (default: all CPU cores)",
    )
    parser.add_argument(
        "--poll-interval",
        type=positive_float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Seconds between progress refreshes (default: {DEFAULT_POLL_INTERVAL})",
    )
    parser.add_argument(
        "--max-idle-polls",
        type=positive_int,
        default=DEFAULT_MAX_IDLE_POLLS,
        help="Polls without any started worker before the progress display gives up "
        f"(default: {DEFAULT_MAX_IDLE_POLLS})",
    )
    parser.add_argument(
        "--encoding",
        default="utf-8",
        help="Encoding used to decode words (default: utf-8)",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not render progress bars",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Check the result against a sequential single-pass count",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging verbosity (default: WARNING)",
    )
    return parser


def parse_arguments(argv=None):
    """Parse command line arguments for the word counter."""
    return build_parser().parse_args(argv)


def main(argv=None) -> int:
    args = parse_arguments(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = RunConfig.from_args(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    try:
        result = WordCounter(config).run()
    except OSError as e:
        logger.error(f"Could not split {config.source}: {e}")
        print(f"Error: cannot read source file {config.source}")
        return 1

    if result.partial_chunks:
        print(f"Warning: chunks {result.partial_chunks} were only partially counted")
    if not result.report_written:
        print(f"Warning: report could not be written to {config.destination}")

    if args.verify:
        sequential = count_words_sequential(
            config.source, encoding=config.encoding, errors=config.errors
        )
        if sequential != result.frequencies:
            print("✗ Chunked and sequential counts differ")
            return 1
        print("✓ Chunked and sequential counts are identical")

    return 0


if __name__ == "__main__":
    sys.exit(main())
