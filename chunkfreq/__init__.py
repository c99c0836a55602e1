"""
Chunked word frequency counter.

Splits a text file into line-aligned chunks, counts each chunk in its own
worker thread under a polling progress display, reduces the partial counts
and writes a sorted frequency report.
"""

from chunkfreq.configs import RunConfig
from chunkfreq.word_counter import RunResult, WordCounter, count_words
