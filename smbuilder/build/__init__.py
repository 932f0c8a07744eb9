"""
smbuilder.build - Build orchestration for smbuilder.

Provides layout resolution, step planning, build script generation and
the pipeline orchestrator.
"""

from smbuilder.build.config import (
    BUILD_SCRIPT_NAME,
    DEFAULT_MAKEOPTS,
    SCRIPTS_DIR_NAME,
    TARGET_ROM_TYPE,
    BuildConfig,
    HostPlatform,
    Layout,
    resolve_layout,
)
from smbuilder.build.planner import (
    PipelineStep,
    is_pending,
    pending_steps,
)
from smbuilder.build.script import (
    build_command,
    generate_build_script,
    write_build_script,
)
from smbuilder.build.orchestrator import Builder

__all__ = [
    # Constants
    "BUILD_SCRIPT_NAME",
    "DEFAULT_MAKEOPTS",
    "SCRIPTS_DIR_NAME",
    "TARGET_ROM_TYPE",
    # Data classes
    "BuildConfig",
    "HostPlatform",
    "Layout",
    # Functions
    "resolve_layout",
    "is_pending",
    "pending_steps",
    "build_command",
    "generate_build_script",
    "write_build_script",
    # Orchestrator
    "PipelineStep",
    "Builder",
]
