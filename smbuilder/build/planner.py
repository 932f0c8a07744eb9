"""
Step planning for smbuilder.

Whether a step still has work to do is read off the filesystem every time,
never remembered, so a pipeline that died halfway resumes from the first
missing artifact. Only presence is checked: a checkout of a different
repository or branch than the spec now names is reused as-is.
"""

from __future__ import annotations

import enum
from typing import Callable, Optional

from smbuilder.build.config import Layout


class PipelineStep(enum.Enum):
    """Pipeline steps, declared in execution order."""

    CLONE_REPO = "clone-repo"
    STAGE_ASSET = "stage-asset"
    ENSURE_SCRIPTS_DIR = "ensure-scripts-dir"
    GENERATE_SCRIPT = "generate-script"
    WRITE_SCRIPTS = "write-scripts"
    BUILD = "build"
    POST_BUILD = "post-build"
    RUN = "run"


# None means the step is not gated by the filesystem
STEP_PREDICATES: dict[PipelineStep, Optional[Callable[[Layout], bool]]] = {
    PipelineStep.CLONE_REPO: lambda layout: not layout.repo_dir.is_dir(),
    PipelineStep.STAGE_ASSET: lambda layout: not layout.rom_target.is_file(),
    PipelineStep.ENSURE_SCRIPTS_DIR: lambda layout: not layout.scripts_dir.exists(),
    PipelineStep.GENERATE_SCRIPT: lambda layout: not layout.build_script.is_file(),
    PipelineStep.WRITE_SCRIPTS: lambda layout: any(not p.is_file() for p in layout.post_build_scripts),
    PipelineStep.BUILD: lambda layout: not layout.executable.is_file(),
    # runs on every invocation once the spec lists any scripts
    PipelineStep.POST_BUILD: lambda layout: bool(layout.post_build_scripts),
    PipelineStep.RUN: None,
}


def is_pending(step: PipelineStep, layout: Layout, run: bool = False) -> bool:
    """Return True if ``step`` has work left to do."""
    predicate = STEP_PREDICATES[step]
    if predicate is None:
        return run
    return predicate(layout)


def pending_steps(layout: Layout, run: bool = False) -> list[PipelineStep]:
    """Return the steps that still need to run, in pipeline order.

    ``run`` requests the final run step, which is never skipped once asked for.
    """
    return [step for step in PipelineStep if is_pending(step, layout, run)]
