"""
Chunk Worker

Counts the words of one chunk of the source file. Each worker opens its own
read cursor, walks its byte range line by line and accumulates a local
frequency table that it hands back to the coordinator when it is done.
While running it publishes a completion percentage that the progress
monitor reads.
"""

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Generator, Optional

from chunkfreq.splitter import ChunkSpec

logger = logging.getLogger(__name__)

DECODE_ERRORS = "surrogateescape"
TOKEN_PATTERN = re.compile(rb"[^ \t\n\r\f]+")


class ChunkStatus(Enum):
    """Outcome of a chunk worker"""
    SUCCESS = "success"
    PARTIAL = "partial"  # an I/O error stopped the worker early


@dataclass
class WorkerState:
    """
    Progress cell of one worker.

    Written only by its own worker and read by the progress monitor without
    locking. The percentage only grows, so a stale read is merely late.
    """
    index: int
    percentage: int = 0
    finished: bool = False


@dataclass
class ChunkResult:
    """Local frequency table of one chunk plus how the worker ended."""
    index: int
    table: dict[str, int] = field(default_factory=dict)
    status: ChunkStatus = ChunkStatus.SUCCESS
    error: Optional[str] = None
    bytes_read: int = 0

    @property
    def is_partial(self) -> bool:
        return self.status == ChunkStatus.PARTIAL


def tokenize_line(
    line: bytes, encoding: str = "utf-8", errors: str = DECODE_ERRORS
) -> Generator[str, None, None]:
    """
    Yield each decoded run of non-delimiter bytes of a raw line.

    Delimiters are space, tab, newline, carriage return and form feed; a
    vertical tab is part of a word. No punctuation stripping and no case
    folding: "Word," and "word" are two different tokens. With the default
    surrogateescape handler, undecodable bytes map to distinct lone
    surrogates, so two different byte tokens never share a key and encode
    back to their original bytes.

    Example:
        >>> list(tokenize_line(b"hello  world\\thello\\n"))
        ['hello', 'world', 'hello']
    """
    for token in TOKEN_PATTERN.findall(line):
        yield token.decode(encoding, errors)


def compute_percentage(position: int, start: int, end: int) -> int:
    """Completion of a chunk in percent, 100 for an empty chunk."""
    if end <= start:
        return 100
    return min(100, round(100 * (position - start) / (end - start)))


class ChunkWorker:
    """Counts the words in one ChunkSpec of the source file."""

    def __init__(
        self,
        source_path: str,
        chunk: ChunkSpec,
        state: Optional[WorkerState] = None,
        encoding: str = "utf-8",
        errors: str = DECODE_ERRORS,
    ):
        self.source_path = source_path
        self.chunk = chunk
        self.state = state if state is not None else WorkerState(index=chunk.index)
        self.encoding = encoding
        self.errors = errors

    def run(self) -> ChunkResult:
        """
        Process the chunk and return its local frequency table.

        I/O errors are never raised: the worker stops at the failing line and
        returns what it counted so far with a PARTIAL status. The percentage
        stays where the last successful line left it.
        """
        chunk = self.chunk
        word_count = defaultdict(int)
        position = chunk.start

        try:
            if chunk.length == 0:
                logger.debug(f"Chunk {chunk.index} is empty, nothing to read")
                self.state.percentage = 100
                return ChunkResult(index=chunk.index)

            with open(self.source_path, "rb") as f:
                f.seek(chunk.start)
                while position < chunk.end:
                    line = f.readline()
                    if not line:
                        # End of file reached before the end of the range
                        logger.debug(f"Chunk {chunk.index} hit end of file at {position}")
                        break

                    for word in tokenize_line(line, self.encoding, self.errors):
                        word_count[word] += 1

                    position = f.tell()
                    self.state.percentage = compute_percentage(
                        position, chunk.start, chunk.end
                    )

            self.state.percentage = 100
            return ChunkResult(
                index=chunk.index,
                table=dict(word_count),
                bytes_read=position - chunk.start,
            )

        except OSError as e:
            logger.warning(
                f"Chunk {chunk.index} stopped at byte {position} after an I/O error, "
                f"its counts are partial: {e}"
            )
            return ChunkResult(
                index=chunk.index,
                table=dict(word_count),
                status=ChunkStatus.PARTIAL,
                error=str(e),
                bytes_read=position - chunk.start,
            )

        finally:
            self.state.finished = True
