"""
Chunked Word Count Coordinator

Runs the whole pipeline for one source file:

1. Split the file into line-aligned chunks
2. Count each chunk in its own worker thread while a progress monitor
   polls the workers
3. Reduce the per-chunk tables into one global table once every worker
   has completed
4. Write the sorted frequency report

Only a failure of the split step aborts a run. Workers hit by an I/O error
hand back partial counts, and a report that cannot be written is logged.
"""

import logging
import os
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

import psutil

from chunkfreq.configs import RunConfig
from chunkfreq.monitor import ProgressMonitor, WorkerRegistry
from chunkfreq.reducer import reduce_frequency_tables
from chunkfreq.report import write_report
from chunkfreq.splitter import ChunkSpec, split_file
from chunkfreq.worker import (
    DECODE_ERRORS,
    ChunkResult,
    ChunkWorker,
    WorkerState,
    tokenize_line,
)

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


def resident_memory_mb(pid: Optional[int] = None) -> float:
    """Resident set size of a process (this one by default), in MB."""
    rss = psutil.Process(pid if pid is not None else os.getpid()).memory_info().rss
    return rss / BYTES_PER_MB


@dataclass
class RunResult:
    """Everything a run produced, besides the report file itself."""
    frequencies: dict[str, int]
    chunks: list[ChunkSpec]
    results: list[ChunkResult]
    max_processors: int
    worker_count: int
    duration_ms: int
    report_written: bool
    monitor_completed: Optional[bool] = None
    memory_mb: float = 0.0

    @property
    def partial_chunks(self) -> list[int]:
        return [result.index for result in self.results if result.is_partial]


class WordCounter:
    """Coordinates splitter, workers, progress monitor, reducer and report writer."""

    def __init__(
        self,
        config: RunConfig,
        stream: TextIO = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.stream = stream
        self.sleep = sleep
        self.registry = WorkerRegistry(expected=config.chunks_number)
        self._start_time: Optional[float] = None

    def split(self) -> list[ChunkSpec]:
        """Compute the chunks. OSError propagates and aborts the run."""
        return split_file(self.config.source, self.config.chunks_number)

    def map(self, chunks: list[ChunkSpec]) -> tuple[list[ChunkResult], Optional[bool]]:
        """
        Count every chunk concurrently and wait for all of them.

        The progress monitor is submitted first, then one worker per chunk.
        Each worker's state is registered as the worker is submitted. The
        pool has one slot per processor plus one for the monitor, so extra
        chunks queue for a free slot.

        Returns:
            Tuple containing:
            - Chunk results in spawn order
            - Monitor outcome (None when progress display is disabled)
        """
        config = self.config
        self.registry = WorkerRegistry(expected=len(chunks))
        with ThreadPoolExecutor(max_workers=config.pool_size) as executor:
            monitor_future = None
            if config.show_progress:
                monitor = ProgressMonitor(
                    self.registry,
                    stream=self.stream,
                    poll_interval=config.poll_interval,
                    max_idle_polls=config.max_idle_polls,
                    sleep=self.sleep,
                )
                monitor_future = executor.submit(monitor.run)

            worker_futures = []
            for chunk in chunks:
                state = WorkerState(index=chunk.index)
                worker = ChunkWorker(
                    config.source,
                    chunk,
                    state=state,
                    encoding=config.encoding,
                    errors=config.errors,
                )
                self.registry.register(state)
                worker_futures.append(executor.submit(worker.run))

            all_futures = list(worker_futures)
            if monitor_future is not None:
                all_futures.append(monitor_future)
            wait(all_futures)

        results = [future.result() for future in worker_futures]

        monitor_completed = None
        if monitor_future is not None:
            error = monitor_future.exception()
            if error is not None:
                logger.error(f"Progress monitor failed: {error}")
                monitor_completed = False
            else:
                monitor_completed = monitor_future.result()

        return results, monitor_completed

    def reduce(self, results: list[ChunkResult]) -> dict[str, int]:
        """Merge the local tables in spawn order."""
        for result in results:
            if result.is_partial:
                logger.warning(
                    f"Chunk {result.index} contributed partial counts "
                    f"({result.bytes_read} bytes read): {result.error}"
                )
        return reduce_frequency_tables(result.table for result in results)

    def elapsed_ms(self) -> int:
        if self._start_time is None:
            return 0
        return int((time.time() - self._start_time) * 1000)

    def run(self) -> RunResult:
        """
        Execute split, map, reduce and report.

        Raises:
            OSError: If the source file cannot be opened or seeked while
                     computing the chunks. No worker is started in that case.
        """
        config = self.config
        self._start_time = time.time()
        logger.info(
            f"Counting words in {config.source} with {config.chunks_number} chunks "
            f"on {config.max_threads} processors"
        )

        chunks = self.split()
        results, monitor_completed = self.map(chunks)
        frequencies = self.reduce(results)

        duration_ms = self.elapsed_ms()
        report_written = write_report(
            config.destination,
            frequencies,
            max_processors=config.max_threads,
            worker_count=len(chunks),
            duration_ms=duration_ms,
            encoding=config.encoding,
            errors=config.errors,
        )

        memory_mb = resident_memory_mb()
        logger.info(
            f"Counted {sum(frequencies.values()):,} words ({len(frequencies):,} distinct) "
            f"in {duration_ms} ms, memory usage {memory_mb:.1f} MB"
        )

        return RunResult(
            frequencies=frequencies,
            chunks=chunks,
            results=results,
            max_processors=config.max_threads,
            worker_count=len(chunks),
            duration_ms=duration_ms,
            report_written=report_written,
            monitor_completed=monitor_completed,
            memory_mb=memory_mb,
        )


def count_words_sequential(
    path: str, encoding: str = "utf-8", errors: str = DECODE_ERRORS
) -> dict[str, int]:
    """Single-pass word count of a whole file, the baseline for verification."""
    word_count = defaultdict(int)
    with open(path, "rb") as f:
        for line in f:
            for word in tokenize_line(line, encoding, errors):
                word_count[word] += 1
    return dict(word_count)


def count_words(config: RunConfig, stream: TextIO = None) -> RunResult:
    """Convenience wrapper running one WordCounter."""
    return WordCounter(config, stream=stream).run()
