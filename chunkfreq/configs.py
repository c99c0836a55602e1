"""
Run configuration for the chunked word frequency counter.

Groups every knob of a run into a single dataclass so the coordinator,
the workers and the progress monitor all read from the same place.
"""

import codecs
import os
from dataclasses import dataclass, field
from typing import Optional


DEFAULT_POLL_INTERVAL = 1.0  # seconds between two progress renders
DEFAULT_MAX_IDLE_POLLS = 10  # polls with no registered worker before giving up


@dataclass
class RunConfig:
    """
    Configuration for a single word count run.

    Attributes:
        source (str): Path of the text file to count
        destination (str): Path of the report file to create
        chunks_number (int): Number of line-aligned chunks (one worker each)
        max_threads (int): Processors available to workers (default: os.cpu_count())
        poll_interval (float): Seconds between two progress monitor polls
        max_idle_polls (int): Empty-registry polls tolerated by the monitor
        encoding (str): Encoding used to decode tokens
        errors (str): Error handler used to decode words and encode the report
        show_progress (bool): Render progress bars on the console

    Example:
        config = RunConfig(
            source="corpus.txt",
            destination="report.txt",
            chunks_number=8,
        )
    """
    source: str
    destination: str
    chunks_number: int
    max_threads: Optional[int] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_idle_polls: int = DEFAULT_MAX_IDLE_POLLS
    encoding: str = "utf-8"
    errors: str = "surrogateescape"
    show_progress: bool = True
    pool_size: int = field(init=False)

    def __post_init__(self):
        if self.chunks_number < 1:
            raise ValueError(f"chunks_number must be >= 1, got {self.chunks_number}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {self.poll_interval}")
        if self.max_idle_polls < 1:
            raise ValueError(f"max_idle_polls must be >= 1, got {self.max_idle_polls}")
        try:
            codecs.lookup(self.encoding)
        except LookupError:
            raise ValueError(f"Unknown encoding: {self.encoding}")

        if self.max_threads is None:
            self.max_threads = os.cpu_count() or 1
        elif self.max_threads < 1:
            raise ValueError(f"max_threads must be >= 1, got {self.max_threads}")

        # One extra slot is reserved for the progress monitor
        self.pool_size = self.max_threads + 1

    @classmethod
    def from_args(cls, args) -> "RunConfig":
        """Build a config from parsed command line arguments."""
        return cls(
            source=args.source,
            destination=args.destination,
            chunks_number=args.chunks,
            max_threads=args.max_workers,
            poll_interval=args.poll_interval,
            max_idle_polls=args.max_idle_polls,
            encoding=args.encoding,
            show_progress=not args.no_progress,
        )
