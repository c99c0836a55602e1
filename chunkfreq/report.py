"""
Report Writer

Serializes the global frequency table and the run metadata into the fixed
plain-text layout of the report file.
"""

import logging

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 47
COLUMN_HEADER = "    Occurrences    Word"
WORD_INDENT = " " * 8


def format_report(
    frequencies: dict[str, int],
    max_processors: int,
    worker_count: int,
    duration_ms: int,
) -> str:
    """
    Build the report text, words in ascending lexicographic order.

    Example:
        >>> print(format_report({'b': 2, 'a': 1}, 4, 1, 3))
        Max Processors: 4
        Duration(1): 3 ms
            Occurrences    Word
        -----------------------------------------------
                a 1
                b 2
        -----------------------------------------------
    """
    lines = [
        f"Max Processors: {max_processors}",
        f"Duration({worker_count}): {duration_ms} ms",
        COLUMN_HEADER,
        SEPARATOR,
    ]
    for word in sorted(frequencies):
        lines.append(f"{WORD_INDENT}{word} {frequencies[word]}")

    # The closing rule is not followed by a newline
    return "\n".join(lines) + "\n" + SEPARATOR


def write_report(
    destination: str,
    frequencies: dict[str, int],
    max_processors: int,
    worker_count: int,
    duration_ms: int,
    encoding: str = "utf-8",
    errors: str = "surrogateescape",
) -> bool:
    """
    Write the report to destination.

    Words are encoded with the same encoding and error handler that decoded
    them, so undecodable source bytes are written back unchanged.

    Returns:
        bool: True if the report was written, False if an I/O error occurred.
              The error is logged, never raised.
    """
    report = format_report(frequencies, max_processors, worker_count, duration_ms)
    try:
        with open(destination, "w", encoding=encoding, errors=errors) as f:
            f.write(report)
    except OSError as e:
        logger.error(f"Could not write report to {destination}: {e}")
        return False

    logger.info(f"Wrote {len(frequencies)} words to {destination}")
    return True
