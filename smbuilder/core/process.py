"""
Subprocess execution for smbuilder.

Children are spawned with both output pipes attached and drained from a
single polling loop that reads from every ready stream on each pass, so a
child blocked writing to a full stderr pipe never stalls progress on stdout
(or the other way round). Each stream's undrained bytes are held in a
bounded buffer; going over the cap kills the child and fails loudly instead
of growing without bound or truncating silently.

Pipe polling relies on ``selectors`` over pipe file descriptors, which is
POSIX only.
"""

from __future__ import annotations

import os
import selectors
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from smbuilder.core.errors import (
    ProcessError,
    ProcessTimeoutError,
    ResourceExhaustionError,
)
from smbuilder.core.utils import log

# =============================================================================
# Constants
# =============================================================================

CHUNK_SIZE = 4096
DEFAULT_MAX_BUFFERED = 1024 * 1024  # per stream
DEFAULT_POLL_INTERVAL = 0.1

# on_line(stream_name, line) where stream_name is "stdout" or "stderr"
LineCallback = Callable[[str, str], None]
Command = Sequence[Union[str, Path]]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ProcessResult:
    """Outcome of one child process invocation."""

    args: list[str]
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class BoundedBuffer:
    """Holds one stream's undrained output, up to a hard cap.

    Complete lines are handed to ``on_line`` as soon as they arrive. Unless
    ``retain`` is set they are dropped afterwards, so only a trailing
    partial line counts against the cap. With ``retain`` everything read is
    kept for the caller and counts.
    """

    def __init__(
        self,
        stream: str,
        capacity: int,
        retain: bool = False,
        on_line: Optional[LineCallback] = None,
        label: str = "",
    ):
        self.stream = stream
        self.label = label
        self.capacity = capacity
        self.retain = retain
        self.on_line = on_line
        self._pending = bytearray()
        self._captured = bytearray()

    @property
    def undrained(self) -> int:
        return len(self._pending) + len(self._captured)

    def feed(self, data: bytes) -> None:
        self._pending.extend(data)
        if b"\n" in data:
            *lines, rest = self._pending.split(b"\n")
            for line in lines:
                self._emit(line, terminated=True)
            self._pending = bytearray(rest)

        if self.undrained > self.capacity:
            source = f"{self.label} {self.stream}" if self.label else self.stream
            raise ResourceExhaustionError(
                f"{source} produced more than {self.capacity} bytes of undrained output"
            )

    def flush(self) -> None:
        """Emit a trailing line that was never newline-terminated."""
        if self._pending:
            self._emit(bytes(self._pending), terminated=False)
            self._pending.clear()

    def getvalue(self) -> bytes:
        return bytes(self._captured)

    def _emit(self, line: bytes, terminated: bool) -> None:
        if self.retain:
            self._captured.extend(line)
            if terminated:
                self._captured.extend(b"\n")
        if self.on_line is not None:
            self.on_line(self.stream, line.decode("utf-8", errors="replace").rstrip("\r"))


# =============================================================================
# Runner
# =============================================================================


def _describe_exit(returncode: int) -> str:
    if returncode < 0:
        return f"was killed by signal {-returncode}"
    return f"exited with status {returncode}"


def _kill(proc: subprocess.Popen) -> None:
    if proc.poll() is None:
        proc.kill()
        proc.wait()


class ProcessRunner:
    """Runs child processes with concurrent, bounded draining of their output."""

    def __init__(
        self,
        max_buffered: int = DEFAULT_MAX_BUFFERED,
        chunk_size: int = CHUNK_SIZE,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if max_buffered <= 0:
            raise ValueError("max_buffered must be positive")
        self.max_buffered = max_buffered
        self.chunk_size = chunk_size
        self.poll_interval = poll_interval

    def run(
        self,
        args: Command,
        label: str,
        cwd: Optional[Path] = None,
        capture: bool = False,
        on_line: Optional[LineCallback] = None,
        timeout: Optional[float] = None,
        check: bool = True,
        env: Optional[dict[str, str]] = None,
    ) -> ProcessResult:
        """Run ``args`` to completion and return its result.

        Raises:
            ProcessError: the child could not be spawned, or (with ``check``)
                exited non-zero.
            ProcessTimeoutError: ``timeout`` seconds elapsed; the child is killed.
            ResourceExhaustionError: a stream went over ``max_buffered``;
                the child is killed.
        """
        argv = [str(a) for a in args]
        log.debug(f"Running: {' '.join(argv)}" + (f" in {cwd}" if cwd else ""))

        try:
            proc = subprocess.Popen(
                argv,
                cwd=cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ProcessError(f"{label}: failed to start {argv[0]}: {e}", label=label) from e

        buffers = {
            stream: BoundedBuffer(stream, self.max_buffered, capture, on_line, label=label)
            for stream in ("stdout", "stderr")
        }
        deadline = None if timeout is None else time.monotonic() + timeout

        try:
            self._drain(proc, buffers, deadline, label)
            returncode = self._wait(proc, deadline, label)
        except BaseException:
            _kill(proc)
            raise
        finally:
            proc.stdout.close()
            proc.stderr.close()

        result = ProcessResult(
            args=argv,
            returncode=returncode,
            stdout=buffers["stdout"].getvalue(),
            stderr=buffers["stderr"].getvalue(),
        )
        if check and not result.ok:
            raise ProcessError(
                f"{label} {_describe_exit(returncode)}",
                label=label,
                returncode=returncode,
            )
        return result

    def _drain(
        self,
        proc: subprocess.Popen,
        buffers: dict[str, BoundedBuffer],
        deadline: Optional[float],
        label: str,
    ) -> None:
        with selectors.DefaultSelector() as selector:
            selector.register(proc.stdout, selectors.EVENT_READ, buffers["stdout"])
            selector.register(proc.stderr, selectors.EVENT_READ, buffers["stderr"])

            while selector.get_map():
                if deadline is not None and time.monotonic() >= deadline:
                    raise ProcessTimeoutError(f"{label} timed out", label=label)

                for key, _ in selector.select(self.poll_interval):
                    chunk = os.read(key.fd, self.chunk_size)
                    buffer: BoundedBuffer = key.data
                    if not chunk:
                        selector.unregister(key.fileobj)
                        buffer.flush()
                        continue
                    buffer.feed(chunk)

    def _wait(self, proc: subprocess.Popen, deadline: Optional[float], label: str) -> int:
        # Both pipes are closed, but the child may still be running.
        if deadline is None:
            return proc.wait()
        try:
            return proc.wait(timeout=max(0.0, deadline - time.monotonic()))
        except subprocess.TimeoutExpired as e:
            raise ProcessTimeoutError(f"{label} timed out", label=label) from e

    def run_interactive(self, args: Command, label: str, cwd: Optional[Path] = None) -> int:
        """Run ``args`` attached to the terminal, without capturing anything."""
        argv = [str(a) for a in args]
        log.debug(f"Running (interactive): {' '.join(argv)}")

        try:
            completed = subprocess.run(argv, cwd=cwd, check=False)
        except OSError as e:
            raise ProcessError(f"{label}: failed to start {argv[0]}: {e}", label=label) from e

        if completed.returncode != 0:
            raise ProcessError(
                f"{label} {_describe_exit(completed.returncode)}",
                label=label,
                returncode=completed.returncode,
            )
        return completed.returncode
