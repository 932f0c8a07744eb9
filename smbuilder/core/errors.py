"""
Error taxonomy for smbuilder.

Every error is fatal to the current pipeline invocation. The builder tags
the failing step on the way out so the CLI can name it.
"""

from __future__ import annotations

from typing import Optional


class SmbuilderError(RuntimeError):
    """Base class for all smbuilder failures."""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.step = step

    def __str__(self) -> str:
        message = super().__str__()
        if self.step:
            return f"{message} (step: {self.step})"
        return message


class PathError(SmbuilderError):
    """A path could not be derived or is of the wrong kind."""


class ProcessError(SmbuilderError):
    """A child process failed to spawn or exited non-zero."""

    def __init__(
        self,
        message: str,
        label: str = "",
        returncode: Optional[int] = None,
        step: Optional[str] = None,
    ):
        super().__init__(message, step=step)
        self.label = label
        self.returncode = returncode


class ProcessTimeoutError(ProcessError):
    """A child process ran longer than its allotted time and was killed."""


class BuildIOError(SmbuilderError):
    """A filesystem operation failed (permissions, exhausted storage, ...)."""


class FormatError(SmbuilderError):
    """The base ROM format is undetectable or unsupported."""


class ResourceExhaustionError(SmbuilderError):
    """Buffered subprocess output exceeded its hard cap."""


class SpecError(SmbuilderError):
    """The build specification is malformed."""


class MissingFieldError(SpecError):
    """A required specification field was never set."""

    def __init__(self, field: str):
        super().__init__(f"spec is missing required field '{field}'")
        self.field = field
