"""
Tests for the process runner.

Children are short Python programs run with the current interpreter so the
tests do not depend on any tool being installed.
"""

from __future__ import annotations

import sys
import time

import pytest

from smbuilder.core.errors import (
    ProcessError,
    ProcessTimeoutError,
    ResourceExhaustionError,
)
from smbuilder.core.process import BoundedBuffer, ProcessRunner


def python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class LineRecorder:
    """on_line callback that keeps every (stream, line) pair."""

    def __init__(self):
        self.lines: list[tuple[str, str]] = []

    def __call__(self, stream: str, line: str) -> None:
        self.lines.append((stream, line))

    def stream(self, name: str) -> list[str]:
        return [line for s, line in self.lines if s == name]


# =============================================================================
# BoundedBuffer
# =============================================================================


@pytest.mark.evergreen
class TestBoundedBuffer:
    """Tests for line splitting and the undrained-bytes cap."""

    def test_lines_across_chunks(self):
        rec = LineRecorder()
        buf = BoundedBuffer("stdout", 1024, on_line=rec)

        buf.feed(b"hel")
        buf.feed(b"lo\nwor")
        buf.feed(b"ld\r\n")

        assert rec.stream("stdout") == ["hello", "world"]
        assert buf.undrained == 0

    def test_flush_partial_line(self):
        rec = LineRecorder()
        buf = BoundedBuffer("stderr", 1024, on_line=rec)

        buf.feed(b"no newline")
        assert rec.lines == []
        buf.flush()

        assert rec.lines == [("stderr", "no newline")]

    def test_retain_counts_against_cap(self):
        buf = BoundedBuffer("stdout", 10, retain=True)
        buf.feed(b"12345\n")

        with pytest.raises(ResourceExhaustionError, match="more than 10 bytes"):
            buf.feed(b"6789\n")

    def test_drained_lines_do_not_count(self):
        buf = BoundedBuffer("stdout", 10)
        for _ in range(100):
            buf.feed(b"123456789\n")
        assert buf.undrained == 0

    def test_unterminated_line_counts(self):
        buf = BoundedBuffer("stderr", 8, label="make")

        with pytest.raises(ResourceExhaustionError, match="make stderr"):
            buf.feed(b"x" * 9)

    def test_getvalue(self):
        buf = BoundedBuffer("stdout", 1024, retain=True)
        buf.feed(b"a\nb")
        buf.flush()
        assert buf.getvalue() == b"a\nb"


# =============================================================================
# ProcessRunner
# =============================================================================


@pytest.mark.evergreen
class TestProcessRunner:
    """Tests for ProcessRunner.run."""

    def test_success_with_capture(self):
        result = ProcessRunner().run(
            python("import sys; print('out'); print('err', file=sys.stderr)"),
            label="child",
            capture=True,
        )

        assert result.ok
        assert result.stdout == b"out\n"
        assert result.stderr == b"err\n"

    def test_no_capture_returns_empty(self):
        result = ProcessRunner().run(python("print('out')"), label="child")

        assert result.ok
        assert result.stdout == b""

    def test_on_line_per_stream(self):
        rec = LineRecorder()
        code = "import sys\nfor i in range(3):\n    print(i, flush=True)\n    print(-i, file=sys.stderr, flush=True)\n"

        ProcessRunner().run(python(code), label="child", on_line=rec)

        assert rec.stream("stdout") == ["0", "1", "2"]
        assert rec.stream("stderr") == ["0", "-1", "-2"]

    def test_nonzero_exit_raises(self):
        with pytest.raises(ProcessError, match="child exited with status 3") as exc_info:
            ProcessRunner().run(python("raise SystemExit(3)"), label="child")

        assert exc_info.value.returncode == 3
        assert exc_info.value.label == "child"

    def test_nonzero_exit_unchecked(self):
        result = ProcessRunner().run(python("raise SystemExit(2)"), label="child", check=False)

        assert result.returncode == 2
        assert not result.ok

    def test_spawn_failure(self, tmp_path):
        with pytest.raises(ProcessError, match="failed to start"):
            ProcessRunner().run([tmp_path / "does-not-exist"], label="ghost")

    def test_cwd(self, tmp_path):
        result = ProcessRunner().run(
            python("import os; print(os.getcwd())"),
            label="child",
            cwd=tmp_path,
            capture=True,
        )

        assert result.stdout.decode().strip() == str(tmp_path.resolve())

    def test_large_stderr_with_silent_stdout(self):
        # 1 MiB on stderr while stdout stays open and empty must not deadlock
        code = "import sys\nfor _ in range(1024):\n    sys.stderr.write('e' * 1023 + '\\n')\n"
        rec = LineRecorder()

        ProcessRunner().run(python(code), label="child", on_line=rec, timeout=60)

        assert len(rec.stream("stderr")) == 1024
        assert rec.stream("stdout") == []

    def test_interleaved_large_output(self):
        code = (
            "import sys\n"
            "for i in range(2000):\n"
            "    sys.stdout.write('o' * 200 + '\\n')\n"
            "    sys.stderr.write('e' * 200 + '\\n')\n"
        )

        result = ProcessRunner().run(python(code), label="child", capture=True, timeout=60)

        assert result.stdout.count(b"\n") == 2000
        assert result.stderr.count(b"\n") == 2000

    def test_capture_over_cap_raises(self):
        code = "import sys\nsys.stderr.write('e\\n' * 100000)\n"
        runner = ProcessRunner(max_buffered=64 * 1024)

        with pytest.raises(ResourceExhaustionError, match="child stderr"):
            runner.run(python(code), label="child", capture=True, timeout=60)

    def test_endless_unterminated_line_raises(self):
        code = "import sys\nwhile True:\n    sys.stdout.write('x' * 4096)\n"
        runner = ProcessRunner(max_buffered=64 * 1024)

        start = time.monotonic()
        with pytest.raises(ResourceExhaustionError, match="child stdout"):
            runner.run(python(code), label="child", timeout=60)
        assert time.monotonic() - start < 30

    def test_timeout_kills_child(self):
        start = time.monotonic()

        with pytest.raises(ProcessTimeoutError, match="child timed out"):
            ProcessRunner().run(python("import time; time.sleep(30)"), label="child", timeout=0.5)

        assert time.monotonic() - start < 10

    def test_timeout_is_process_error(self):
        assert issubclass(ProcessTimeoutError, ProcessError)

    def test_invalid_cap(self):
        with pytest.raises(ValueError):
            ProcessRunner(max_buffered=0)


@pytest.mark.evergreen
class TestRunInteractive:
    """Tests for ProcessRunner.run_interactive."""

    def test_success(self):
        assert ProcessRunner().run_interactive(python("pass"), label="game") == 0

    def test_failure(self):
        with pytest.raises(ProcessError, match="game exited with status 1"):
            ProcessRunner().run_interactive(python("raise SystemExit(1)"), label="game")
