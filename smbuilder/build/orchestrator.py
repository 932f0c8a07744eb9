"""
Build orchestrator for smbuilder.

Runs the fixed pipeline for one spec in one base directory: clone, stage
the ROM, create the scripts dir, write the build and post-build scripts,
build, run the post-build scripts and optionally the game. Every step whose
artifact is already on disk is skipped.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Union

from smbuilder.build import phases
from smbuilder.build.config import BuildConfig, Layout, resolve_layout
from smbuilder.build.planner import PipelineStep, pending_steps
from smbuilder.core.errors import BuildIOError, SmbuilderError
from smbuilder.core.process import LineCallback, ProcessRunner
from smbuilder.core.timing import StepTimings
from smbuilder.core.utils import log
from smbuilder.spec import Spec


class Builder:
    """Builds one spec under one base directory.

    The layout is resolved once, at construction. Which steps still need to
    run is re-read from the filesystem on every ``build()``, so calling it
    again after a failure picks up where the last run stopped.

    Two builders must not share a base directory at the same time; nothing
    here locks it.
    """

    def __init__(
        self,
        base_dir: Union[str, Path],
        spec: Spec,
        config: Optional[BuildConfig] = None,
        runner: Optional[ProcessRunner] = None,
    ):
        self.spec = spec
        self.config = config or BuildConfig()
        self.layout: Layout = resolve_layout(base_dir, spec)
        self.runner = runner or ProcessRunner(max_buffered=self.config.max_buffered_output)
        self.timings = StepTimings()

    def _actions(self) -> list[tuple[PipelineStep, Callable[[], None]]]:
        """Each step paired with the method that performs it, in pipeline order."""
        return [
            (PipelineStep.CLONE_REPO, self.clone_repo),
            (PipelineStep.STAGE_ASSET, self.stage_rom),
            (PipelineStep.ENSURE_SCRIPTS_DIR, self.ensure_scripts_dir),
            (PipelineStep.GENERATE_SCRIPT, self.generate_script),
            (PipelineStep.WRITE_SCRIPTS, self.write_scripts),
            (PipelineStep.BUILD, self.compile),
            (PipelineStep.POST_BUILD, self.post_build),
            (PipelineStep.RUN, self.run_game),
        ]

    def _echo(self, prefix: str) -> LineCallback:
        def on_line(stream: str, line: str) -> None:
            log.output(prefix, line)

        return on_line

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def clone_repo(self) -> None:
        repo = self.spec.repo
        log.header("Cloning repository")
        log.info(f"{repo.base_url} ({repo.branch or 'default branch'}) -> {self.layout.repo_dir}")

        phases.clone_repo(
            self.runner,
            repo,
            self.layout.repo_dir,
            on_line=self._echo("git:"),
            timeout=self.config.process_timeout,
            dry_run=self.config.dry_run,
        )
        log.success(f"Cloned {repo.name}")

    def stage_rom(self) -> None:
        log.header("Staging base ROM")

        rom_type = phases.stage_rom(
            self.spec.rom,
            self.layout.rom_target,
            dry_run=self.config.dry_run,
        )
        if rom_type is not None:
            log.success(f"Staged {self.spec.rom.path} ({rom_type.value}) as {self.layout.rom_target.name}")

    def ensure_scripts_dir(self) -> None:
        phases.ensure_scripts_dir(self.layout.scripts_dir, dry_run=self.config.dry_run)
        log.debug(f"Scripts directory: {self.layout.scripts_dir}")

    def generate_script(self) -> None:
        log.header("Generating build script")
        phases.generate_script(self.spec, self.layout, self.config.host, dry_run=self.config.dry_run)
        log.success(f"Wrote {self.layout.build_script}")

    def write_scripts(self) -> None:
        log.header("Writing post-build scripts")
        for script, path in zip(self.spec.scripts, self.layout.post_build_scripts):
            phases.write_post_build_script(script, path, dry_run=self.config.dry_run)
            log.success(f"Wrote {path}")

    def compile(self) -> None:
        log.header("Building")

        phases.run_build_script(
            self.runner,
            self.layout.build_script,
            on_line=self._echo("make:"),
            timeout=self.config.process_timeout,
            dry_run=self.config.dry_run,
        )

        if self.config.dry_run:
            return
        if self.layout.executable.is_file():
            log.success(f"Built {self.layout.executable}")
        else:
            log.warning(f"Build finished but {self.layout.executable} was not produced")

    def post_build(self) -> None:
        log.header("Running post-build scripts")
        for script, path in zip(self.spec.scripts, self.layout.post_build_scripts):
            log.info(f"{script.name}: {script.description}" if script.description else script.name)
            phases.run_post_build_script(
                self.runner,
                script,
                path,
                on_line=self._echo(f"{script.name}:"),
                timeout=self.config.process_timeout,
                dry_run=self.config.dry_run,
            )

    def run_game(self) -> None:
        log.header("Running")
        phases.run_executable(self.runner, self.layout.executable, dry_run=self.config.dry_run)

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def plan(self, run: Optional[bool] = None) -> list[PipelineStep]:
        """Steps the next ``build()`` would execute."""
        if run is None:
            run = self.config.run_after_build
        return pending_steps(self.layout, run=run)

    def build(self, run: Optional[bool] = None) -> list[PipelineStep]:
        """Run every pending step in order and return the ones executed.

        Raises:
            SmbuilderError: the first step to fail, with ``step`` set. Earlier
                steps' artifacts are left in place.
        """
        pending = self.plan(run)

        log.header(f"smbuilder: {self.spec.repo.name} ({self.spec.rom.region.value})")
        log.info(f"Base directory: {self.layout.base_dir}")
        if pending:
            log.info(f"Pending steps: {', '.join(step.value for step in pending)}")
        else:
            log.success("Nothing to do, every artifact is present")

        executed: list[PipelineStep] = []
        for step, action in self._actions():
            if step not in pending:
                log.debug(f"Skipping {step.value}: already done")
                continue

            try:
                with self.timings.measure(step.value):
                    action()
            except SmbuilderError as e:
                e.step = e.step or step.value
                raise
            except OSError as e:
                raise BuildIOError(str(e), step=step.value) from e

            executed.append(step)

        if executed:
            log.header("BUILD COMPLETE")
            log.info(f"Output: {self.layout.executable}")
        if self.config.verbose:
            log.info(f"Timing: {self.timings.summary()}")

        return executed
