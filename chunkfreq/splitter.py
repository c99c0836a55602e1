"""
Offset Splitter

Computes the chunk boundaries of a source file so that every chunk starts
at the beginning of a line. Each boundary is found by jumping to an evenly
spaced byte position and scanning forward to the next line terminator,
which keeps every word inside exactly one chunk.
"""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkSpec:
    """Half-open byte range [start, end) of the source file handled by one worker."""
    index: int
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


def compute_offsets(path: str, chunks_number: int) -> list[int]:
    """
    Compute the start offset of every chunk.

    Args:
        path: Source file path
        chunks_number: Number of chunks to produce (>= 1)

    Returns:
        list[int]: chunks_number non-decreasing offsets, the first one is 0

    Raises:
        ValueError: If chunks_number < 1
        OSError: If the file cannot be opened or seeked

    Example:
        >>> # file content: b"a b\\nb c\\n" (8 bytes)
        >>> compute_offsets("two_lines.txt", 2)
        [0, 8]
    """
    if chunks_number < 1:
        raise ValueError(f"chunks_number must be >= 1, got {chunks_number}")

    offsets = [0] * chunks_number

    # Opened even for a single chunk so an unreadable source fails here
    with open(path, "rb") as f:
        file_length = os.fstat(f.fileno()).st_size
        for i in range(1, chunks_number):
            f.seek(i * file_length // chunks_number)
            # readline() stops right after b"\n" or at end of file
            f.readline()
            offsets[i] = f.tell()

    return offsets


def build_chunk_specs(offsets: list[int], file_length: int) -> list[ChunkSpec]:
    """Turn chunk offsets into contiguous ranges, the last one ending at file_length."""
    chunks = []
    for idx, start in enumerate(offsets):
        end = offsets[idx + 1] if idx < len(offsets) - 1 else file_length
        chunks.append(ChunkSpec(index=idx, start=start, end=end))
    return chunks


def split_file(path: str, chunks_number: int) -> list[ChunkSpec]:
    """Split a file into chunks_number line-aligned chunks."""
    offsets = compute_offsets(path, chunks_number)
    file_length = os.path.getsize(path)
    chunks = build_chunk_specs(offsets, file_length)

    empty_chunks = sum(1 for chunk in chunks if chunk.length == 0)
    logger.info(
        f"Split {path} ({file_length:,} bytes) into {len(chunks)} chunks "
        f"({empty_chunks} empty)"
    )
    for chunk in chunks:
        logger.debug(f"Chunk {chunk.index}: [{chunk.start}, {chunk.end})")

    return chunks
