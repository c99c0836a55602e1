"""
Reducer

Merges the local frequency tables of all chunk workers into the global
frequency table. Runs once, after every worker has completed.
"""

import logging
from typing import Iterable

logger = logging.getLogger(__name__)


def merge_into(global_table: dict[str, int], local_table: dict[str, int]) -> dict[str, int]:
    """Add every count of local_table to global_table, inserting new words."""
    for word, count in local_table.items():
        if word in global_table:
            global_table[word] += count
        else:
            global_table[word] = count
    return global_table


def reduce_frequency_tables(tables: Iterable[dict[str, int]]) -> dict[str, int]:
    """
    Build the global table from the per-chunk tables, in worker spawn order.

    Counts are only ever added, so the order of the tables does not change
    the result. The local tables are left untouched.

    Example:
        >>> reduce_frequency_tables([{'to': 2, 'be': 1}, {'to': 1, 'or': 3}])
        {'to': 3, 'be': 1, 'or': 3}
    """
    global_table: dict[str, int] = {}
    merged = 0
    for table in tables:
        merge_into(global_table, table)
        merged += 1

    logger.debug(f"Reduced {merged} tables into {len(global_table)} distinct words")
    return global_table
