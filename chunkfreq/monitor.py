"""
Progress Monitor

Polls the worker registry at a fixed interval and redraws one progress bar
per worker until every worker is done. The monitor only observes: it never
waits on a worker and never writes to a worker's state.
"""

import logging
import sys
import threading
import time
from typing import Callable, Optional, TextIO

from chunkfreq.configs import DEFAULT_MAX_IDLE_POLLS, DEFAULT_POLL_INTERVAL
from chunkfreq.worker import WorkerState

logger = logging.getLogger(__name__)

BAR_WIDTH = 50
WAITING_MESSAGE = "Waiting for worker threads to start."


class WorkerRegistry:
    """
    Append-only sequence of worker states.

    The coordinator appends one state per submitted worker while the
    monitor iterates snapshots, so readers never see a list being resized.
    """

    def __init__(self, expected: Optional[int] = None):
        self.expected = expected
        self._lock = threading.Lock()
        self._states: list[WorkerState] = []

    def register(self, state: WorkerState):
        with self._lock:
            self._states.append(state)

    def snapshot(self) -> tuple[WorkerState, ...]:
        with self._lock:
            return tuple(self._states)

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    def all_registered(self) -> bool:
        return self.expected is None or len(self) >= self.expected


def render_progress_bar(index: int, percent: int, width: int = BAR_WIDTH) -> str:
    """
    Render one progress line: `width` cells, percent // 2 of them filled.

    Example:
        >>> render_progress_bar(3, 40, width=10)
        '(Thread 3)[====>     ]   40%'
    """
    filled = percent * width // 100
    cells = []
    for i in range(width):
        if i < filled:
            cells.append("=")
        elif i == filled:
            cells.append(">")
        else:
            cells.append(" ")
    return f"(Thread {index})[{''.join(cells)}]   {percent}%"


def is_worker_complete(state: WorkerState) -> bool:
    # A worker stopped by an I/O error is finished with a frozen percentage
    return state.percentage == 100 or state.finished


class ProgressMonitor:
    """Periodically samples the worker registry and redraws the progress bars."""

    def __init__(
        self,
        registry: WorkerRegistry,
        stream: TextIO = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_idle_polls: int = DEFAULT_MAX_IDLE_POLLS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.registry = registry
        self.stream = stream if stream is not None else sys.stdout
        self.poll_interval = poll_interval
        self.max_idle_polls = max_idle_polls
        self.sleep = sleep
        self.idle_polls = 0
        self.polls = 0
        self._rendered_lines = 0

    def run(self) -> bool:
        """
        Poll until every worker is complete.

        Returns:
            bool: True once all workers completed, False if no worker was
                  registered within max_idle_polls polls
        """
        while True:
            self.polls += 1
            states = self.registry.snapshot()

            if not states:
                self.idle_polls += 1
                self.stream.write(WAITING_MESSAGE + "\n")
                self.stream.flush()
                if self.idle_polls >= self.max_idle_polls:
                    logger.warning(
                        f"No worker registered after {self.idle_polls} polls, "
                        f"progress monitor gives up"
                    )
                    return False
            else:
                self.render(states)
                if self.registry.all_registered() and all(
                    is_worker_complete(state) for state in states
                ):
                    break

            self.sleep(self.poll_interval)

        self.stream.write("\n")
        self.stream.flush()
        logger.debug(f"Progress monitor finished after {self.polls} polls")
        return True

    def render(self, states) -> str:
        """Draw one bar per worker over the previous render."""
        # Padded to the 100% width so a shorter redraw covers the previous one
        lines = [
            render_progress_bar(state.index, state.percentage).ljust(
                len(render_progress_bar(state.index, 100))
            )
            for state in states
        ]
        block = "\n".join(lines)

        prefix = "\r"
        if self.stream.isatty():
            # Cursor sits on the last line of the previous block
            if self._rendered_lines > 1:
                prefix = f"\x1b[{self._rendered_lines - 1}A\r"
            block = "\n".join(line + "\x1b[K" for line in lines)
        self.stream.write(prefix + block)
        self.stream.flush()

        self._rendered_lines = len(lines)
        return block
