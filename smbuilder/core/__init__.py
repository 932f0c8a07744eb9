"""
smbuilder.core - Foundation layer for smbuilder.

Exports the logger, the error taxonomy, step timing and the process runner.
"""

# Logging
from smbuilder.core.utils import log, Logger

# Errors
from smbuilder.core.errors import (
    SmbuilderError,
    PathError,
    ProcessError,
    ProcessTimeoutError,
    BuildIOError,
    FormatError,
    ResourceExhaustionError,
    SpecError,
    MissingFieldError,
)

# Timing
from smbuilder.core.timing import StepTimings, format_duration

# Subprocesses
from smbuilder.core.process import (
    BoundedBuffer,
    ProcessResult,
    ProcessRunner,
)

__all__ = [
    # Logging
    "log",
    "Logger",
    # Errors
    "SmbuilderError",
    "PathError",
    "ProcessError",
    "ProcessTimeoutError",
    "BuildIOError",
    "FormatError",
    "ResourceExhaustionError",
    "SpecError",
    "MissingFieldError",
    # Timing
    "StepTimings",
    "format_duration",
    # Subprocesses
    "BoundedBuffer",
    "ProcessResult",
    "ProcessRunner",
]
