"""
Build script generation for smbuilder.

The script is a single make invocation. Options are emitted as
platform flags, then the default options, then the spec's own makeopts,
then VERSION. make lets the last assignment of a variable on the command
line win, so user makeopts override the defaults and VERSION cannot be
overridden.
"""

from __future__ import annotations

import os
import shlex
from pathlib import Path

from smbuilder.build.config import DEFAULT_MAKEOPTS, HostPlatform, Layout
from smbuilder.core.errors import BuildIOError
from smbuilder.spec import Spec

SCRIPT_HEADER = (
    "#!/bin/sh\n"
    "# Generated by smbuilder. DO NOT EDIT.\n"
    "# This file is overwritten every time the build script is regenerated.\n"
)


def make_command(host: HostPlatform) -> str:
    """GNU make's name on the host. BSD and macOS ship a non-GNU ``make``."""
    if host.is_bsd or host.is_apple:
        return "gmake"
    return "make"


def platform_makeopts(host: HostPlatform) -> list[tuple[str, str]]:
    if not host.is_apple:
        return []
    arch = "arm64-apple-darwin" if host.is_arm64 else "x86_64-apple-darwin"
    return [("OSX_BUILD", "1"), ("TARGET_BITS", "64"), ("TARGET_ARCH", arch)]


def build_command(spec: Spec, layout: Layout, host: HostPlatform) -> list[str]:
    """The make invocation as an argument vector."""
    options = platform_makeopts(host)
    options += DEFAULT_MAKEOPTS
    options += [(opt.key, opt.value) for opt in spec.makeopts]
    options.append(("VERSION", spec.rom.region.value))

    return [
        make_command(host),
        "-C",
        str(layout.repo_dir),
        f"-j{spec.jobs}",
        *(f"{key}={value}" for key, value in options),
    ]


def generate_build_script(spec: Spec, layout: Layout, host: HostPlatform) -> str:
    """Render the build script text. Same inputs, same bytes."""
    command = " ".join(shlex.quote(word) for word in build_command(spec, layout, host))
    return f"{SCRIPT_HEADER}\n{command}\n"


def write_build_script(path: Path, text: str) -> None:
    """Write the script to ``path`` and mark it executable (0755)."""
    try:
        path.write_text(text, encoding="utf-8")
        os.chmod(path, 0o755)
    except OSError as e:
        raise BuildIOError(f"failed to write the build script at {path}: {e}") from e
