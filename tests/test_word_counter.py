"""
Integration tests for the chunked word count pipeline.

Runs split, map, reduce and report end to end on temporary files and checks
the result against a sequential single-pass count.
"""

import io
import os
import random
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from chunkfreq import worker as worker_module
from chunkfreq.configs import RunConfig
from chunkfreq.report import SEPARATOR
from chunkfreq.word_counter import (
    WordCounter,
    count_words,
    count_words_sequential,
    resident_memory_mb,
)


def make_config(tmp_path, source, chunks_number, **kwargs) -> RunConfig:
    kwargs.setdefault("show_progress", False)
    return RunConfig(
        source=str(source),
        destination=str(tmp_path / "report.txt"),
        chunks_number=chunks_number,
        **kwargs,
    )


@pytest.fixture
def corpus(tmp_path):
    """A few hundred lines of uneven length drawn from a small vocabulary."""
    rng = random.Random(1234)
    vocabulary = ["the", "of", "and", "map", "reduce", "chunk", "Word", "word,", "ünï", "x"]
    lines = []
    for _ in range(300):
        words = [rng.choice(vocabulary) for _ in range(rng.randint(0, 25))]
        lines.append("  ".join(words) if rng.random() < 0.2 else " ".join(words))
    path = tmp_path / "corpus.txt"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class TestRunConfig:
    """Test suite for RunConfig validation."""

    def test_defaults(self, tmp_path):
        config = RunConfig(source="in.txt", destination="out.txt", chunks_number=3)
        assert config.max_threads == (os.cpu_count() or 1)
        assert config.pool_size == config.max_threads + 1
        assert config.poll_interval == 1.0
        assert config.max_idle_polls == 10

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            RunConfig(source="in.txt", destination="out.txt", chunks_number=0)
        with pytest.raises(ValueError):
            RunConfig(source="in.txt", destination="out.txt", chunks_number=1, poll_interval=0)
        with pytest.raises(ValueError):
            RunConfig(source="in.txt", destination="out.txt", chunks_number=1, max_threads=0)
        with pytest.raises(ValueError):
            RunConfig(source="in.txt", destination="out.txt", chunks_number=1, encoding="nope-8")


class TestWordCounter:
    """Test suite for the full pipeline."""

    def test_single_chunk_example(self, tmp_path):
        """'a b\\nb c\\n' with one chunk gives a:1, b:2, c:1 in that order."""
        source = tmp_path / "small.txt"
        source.write_bytes(b"a b\nb c\n")
        config = make_config(tmp_path, source, 1, max_threads=4)

        result = WordCounter(config).run()

        assert result.frequencies == {"a": 1, "b": 2, "c": 1}
        assert result.worker_count == 1
        assert result.max_processors == 4
        assert result.report_written
        lines = (tmp_path / "report.txt").read_text(encoding="utf-8").split("\n")
        assert lines[0] == "Max Processors: 4"
        assert lines[1].startswith("Duration(1): ")
        assert lines[1].endswith(" ms")
        assert lines[4:] == ["        a 1", "        b 2", "        c 1", SEPARATOR]

    def test_matches_sequential_count_for_any_chunk_count(self, tmp_path, corpus):
        """Chunk boundaries never split a word."""
        expected = count_words_sequential(str(corpus))
        for chunks_number in [1, 2, 3, 5, 8, 13, 64]:
            result = WordCounter(make_config(tmp_path, corpus, chunks_number)).run()
            assert result.frequencies == expected, f"mismatch with {chunks_number} chunks"
            assert len(result.chunks) == chunks_number

    def test_more_chunks_than_lines(self, tmp_path):
        """Zero-length chunks contribute nothing and do not break the merge."""
        source = tmp_path / "two_lines.txt"
        source.write_bytes(b"red green\ngreen blue\n")

        result = WordCounter(make_config(tmp_path, source, 12)).run()

        assert result.frequencies == {"red": 1, "green": 2, "blue": 1}
        assert any(chunk.length == 0 for chunk in result.chunks)
        assert result.partial_chunks == []

    def test_empty_file(self, tmp_path):
        source = tmp_path / "empty.txt"
        source.write_bytes(b"")

        result = WordCounter(make_config(tmp_path, source, 3, max_threads=2)).run()

        assert result.frequencies == {}
        lines = (tmp_path / "report.txt").read_text(encoding="utf-8").split("\n")
        assert lines[0] == "Max Processors: 2"
        assert lines[1].startswith("Duration(3): ")
        assert lines[2:] == ["    Occurrences    Word", SEPARATOR, SEPARATOR]

    def test_idempotent_report(self, tmp_path, corpus):
        """Two runs produce the same report apart from the duration line."""
        config = make_config(tmp_path, corpus, 6)
        report_path = tmp_path / "report.txt"

        WordCounter(config).run()
        first = report_path.read_text(encoding="utf-8").split("\n")
        WordCounter(config).run()
        second = report_path.read_text(encoding="utf-8").split("\n")

        assert first[0] == second[0]
        assert first[2:] == second[2:]

    def test_workers_queue_on_small_pool(self, tmp_path, corpus):
        """More chunks than worker slots still completes every chunk."""
        result = WordCounter(make_config(tmp_path, corpus, 9, max_threads=1)).run()
        assert result.frequencies == count_words_sequential(str(corpus))
        assert [r.index for r in result.results] == list(range(9))

    def test_missing_source_aborts_before_workers(self, tmp_path):
        counter = WordCounter(make_config(tmp_path, tmp_path / "missing.txt", 4))
        with pytest.raises(OSError):
            counter.run()
        assert len(counter.registry) == 0
        assert not (tmp_path / "report.txt").exists()

    def test_unreadable_single_chunk_source_aborts(self, tmp_path):
        """A directory is not a readable source, even when there is one chunk."""
        source_dir = tmp_path / "not_a_file"
        source_dir.mkdir()
        counter = WordCounter(make_config(tmp_path, source_dir, 1))
        with pytest.raises(OSError):
            counter.run()
        assert len(counter.registry) == 0
        assert not (tmp_path / "report.txt").exists()

    def test_undecodable_words_are_kept_apart(self, tmp_path):
        """Different invalid byte sequences are counted and written separately."""
        source = tmp_path / "binary.txt"
        source.write_bytes(b"\xff \xfe\n")

        result = WordCounter(make_config(tmp_path, source, 1)).run()

        assert len(result.frequencies) == 2
        report = (tmp_path / "report.txt").read_bytes()
        assert b"        \xfe 1\n" in report
        assert b"        \xff 1\n" in report

    def test_report_uses_source_encoding(self, tmp_path):
        source = tmp_path / "latin1.txt"
        source.write_bytes("café résumé café\n".encode("latin-1"))

        result = WordCounter(make_config(tmp_path, source, 1, encoding="latin-1")).run()

        assert result.frequencies == {"café": 2, "résumé": 1}
        report = (tmp_path / "report.txt").read_bytes()
        assert "        café 2\n".encode("latin-1") in report
        assert "        résumé 1\n".encode("latin-1") in report

    def test_partial_chunk_is_reported(self, tmp_path, monkeypatch, caplog):
        """A worker I/O failure degrades the counts but the report is still written."""
        source = tmp_path / "small.txt"
        source.write_bytes(b"a b\nb c\n")

        def failing_open(*args, **kwargs):
            raise OSError("device not ready")

        monkeypatch.setattr(worker_module, "open", failing_open, raising=False)

        result = WordCounter(make_config(tmp_path, source, 1)).run()

        assert result.partial_chunks == [0]
        assert result.frequencies == {}
        assert result.report_written
        assert "partial counts" in caplog.text

    def test_report_write_failure_is_not_fatal(self, tmp_path, corpus):
        config = RunConfig(
            source=str(corpus),
            destination=str(tmp_path / "no_such_dir" / "report.txt"),
            chunks_number=2,
            show_progress=False,
        )
        result = WordCounter(config).run()
        assert result.report_written is False
        assert result.frequencies == count_words_sequential(str(corpus))

    def test_progress_display(self, tmp_path, corpus):
        """With progress enabled the monitor draws one bar per worker and completes."""
        stream = io.StringIO()
        config = make_config(
            tmp_path, corpus, 3, show_progress=True, poll_interval=0.01, max_idle_polls=1000
        )

        result = WordCounter(config, stream=stream).run()

        assert result.monitor_completed is True
        output = stream.getvalue()
        for index in range(3):
            assert f"(Thread {index})[" in output
        assert "100%" in output
        assert output.endswith("\n")

    def test_count_words_wrapper(self, tmp_path, corpus):
        result = count_words(make_config(tmp_path, corpus, 2))
        assert result.frequencies == count_words_sequential(str(corpus))
        assert result.monitor_completed is None


def test_resident_memory_mb():
    assert resident_memory_mb() > 0
    assert resident_memory_mb(os.getpid()) > 0
