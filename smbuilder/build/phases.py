"""
Build phases for smbuilder.

Individual pipeline operations that the orchestrator runs in order.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable, Optional

from smbuilder.build.config import TARGET_ROM_TYPE, HostPlatform, Layout
from smbuilder.build.script import generate_build_script, write_build_script
from smbuilder.core.errors import BuildIOError
from smbuilder.core.process import LineCallback, ProcessRunner
from smbuilder.core.utils import log
from smbuilder.romconvert import RomType, convert_rom, determine_format
from smbuilder.spec import PostBuildScript, Repo, Rom, Spec

DetectFn = Callable[[Path], RomType]
ConvertFn = Callable[[Path, Path, RomType, RomType], None]


# =============================================================================
# Source
# =============================================================================


def clone_command(repo: Repo, dest: Path) -> list[str]:
    """``git clone <url> --depth=1 [--branch <branch>] <dest>``"""
    cmd = ["git", "clone", repo.base_url, "--depth=1"]
    if repo.branch:
        cmd += ["--branch", repo.branch]
    cmd.append(str(dest))
    return cmd


def clone_repo(
    runner: ProcessRunner,
    repo: Repo,
    dest: Path,
    on_line: Optional[LineCallback] = None,
    timeout: Optional[float] = None,
    dry_run: bool = False,
) -> None:
    """Shallow-clone ``repo`` into ``dest``."""
    cmd = clone_command(repo, dest)

    if dry_run:
        log.info(f"[DRY-RUN] Would run: {' '.join(cmd)}")
        return

    runner.run(cmd, label="git clone", on_line=on_line, timeout=timeout)


# =============================================================================
# Base ROM
# =============================================================================


def stage_rom(
    rom: Rom,
    target: Path,
    detect: DetectFn = determine_format,
    convert: ConvertFn = convert_rom,
    dry_run: bool = False,
) -> Optional[RomType]:
    """Put the base ROM at ``target`` in the byte order the port expects.

    A ROM already in that order is copied byte for byte; anything else is
    converted straight into ``target``. Returns the detected source format
    (None in dry-run mode).
    """
    if dry_run:
        log.info(f"[DRY-RUN] Would stage {rom.path} as {target}")
        return None

    rom_type = detect(rom.path)

    if rom_type == TARGET_ROM_TYPE:
        try:
            shutil.copyfile(rom.path, target)
        except OSError as e:
            raise BuildIOError(f"failed to copy the ROM from {rom.path} to {target}: {e}") from e
    else:
        log.warning(f"ROM is in {rom_type.value} format, converting to {TARGET_ROM_TYPE.value}")
        convert(rom.path, target, rom_type, TARGET_ROM_TYPE)

    return rom_type


# =============================================================================
# Build Script
# =============================================================================


def ensure_scripts_dir(scripts_dir: Path, dry_run: bool = False) -> None:
    if dry_run:
        log.info(f"[DRY-RUN] Would create {scripts_dir}")
        return

    try:
        scripts_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BuildIOError(f"failed to create the scripts directory at {scripts_dir}: {e}") from e


def generate_script(spec: Spec, layout: Layout, host: HostPlatform, dry_run: bool = False) -> str:
    """Render the build script and write it to the layout's script path."""
    text = generate_build_script(spec, layout, host)

    if dry_run:
        log.info(f"[DRY-RUN] Would write {layout.build_script}:")
        for line in text.splitlines():
            log.dim(line)
        return text

    write_build_script(layout.build_script, text)
    return text


# =============================================================================
# Post-Build Scripts
# =============================================================================


def write_post_build_script(script: PostBuildScript, dest: Path, dry_run: bool = False) -> None:
    """Write ``script``'s body to ``dest`` and mark it executable."""
    if dry_run:
        log.info(f"[DRY-RUN] Would write {dest}")
        return

    if script.contents is not None:
        text = script.contents
    else:
        try:
            text = script.path.read_text(encoding="utf-8")
        except OSError as e:
            raise BuildIOError(f"failed to read post-build script '{script.name}' from {script.path}: {e}") from e

    # exec needs an interpreter line
    if not text.startswith("#!"):
        text = f"#!/bin/sh\n{text}"

    write_build_script(dest, text)


def run_post_build_script(
    runner: ProcessRunner,
    script: PostBuildScript,
    path: Path,
    on_line: Optional[LineCallback] = None,
    timeout: Optional[float] = None,
    dry_run: bool = False,
) -> None:
    """Run one written post-build script from the scripts directory."""
    if dry_run:
        log.info(f"[DRY-RUN] Would run: {path}")
        return

    runner.run([path], label=script.name, cwd=path.parent, on_line=on_line, timeout=timeout)


# =============================================================================
# Build and Run
# =============================================================================


def run_build_script(
    runner: ProcessRunner,
    script: Path,
    on_line: Optional[LineCallback] = None,
    timeout: Optional[float] = None,
    dry_run: bool = False,
) -> None:
    """Run the generated build script, streaming its output."""
    if dry_run:
        log.info(f"[DRY-RUN] Would run: {script}")
        return

    runner.run([script], label="build script", cwd=script.parent, on_line=on_line, timeout=timeout)


def run_executable(runner: ProcessRunner, executable: Path, dry_run: bool = False) -> None:
    """Launch the built game attached to the terminal."""
    if dry_run:
        log.info(f"[DRY-RUN] Would run: {executable}")
        return

    runner.run_interactive([executable], label="game executable", cwd=executable.parent)
