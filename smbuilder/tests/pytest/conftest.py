"""
Shared pytest fixtures for smbuilder tests.

Provides fake ROMs, a ready spec, and stand-in ``git`` and ``make``
executables placed first on PATH so pipeline tests never touch the network
or a real toolchain.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
  @pytest.mark.dev       - Development/WIP tests, toggle-able
"""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from smbuilder.build.config import BuildConfig, HostPlatform
from smbuilder.build.planner import PipelineStep
from smbuilder.romconvert import RomType
from smbuilder.spec import Spec

# =============================================================================
# Test Data Constants
# =============================================================================

REPO_URL = "https://github.com/sm64pc/sm64ex@nightly"
LINUX_HOST = HostPlatform(system="Linux", machine="x86_64")

# steps a fresh build of a spec without post-build scripts executes
BUILD_STEPS = [
    PipelineStep.CLONE_REPO,
    PipelineStep.STAGE_ASSET,
    PipelineStep.ENSURE_SCRIPTS_DIR,
    PipelineStep.GENERATE_SCRIPT,
    PipelineStep.BUILD,
]

# 64 bytes of recognisable payload after the header
ROM_PAYLOAD = bytes(range(64))

FAKE_GIT = """#!/bin/sh
echo "$@" >> "{log}"
for last; do :; done
echo "Cloning into '$last'..." >&2
mkdir -p "$last"
"""

FAKE_MAKE = """#!/bin/sh
echo "$@" >> "{log}"
dir=.
version=us
while [ $# -gt 0 ]; do
  case "$1" in
    -C) dir="$2"; shift ;;
    VERSION=*) version="${{1#VERSION=}}" ;;
  esac
  shift
done
mkdir -p "$dir/build/${{version}}_pc"
touch "$dir/build/${{version}}_pc/sm64.${{version}}.f3dex2e"
echo "linking sm64.${{version}}.f3dex2e"
"""


# =============================================================================
# Helpers
# =============================================================================


def make_rom(path: Path, rom_type: RomType = RomType.Z64) -> Path:
    """Write a small ROM in ``rom_type`` byte order and return its path."""
    from smbuilder.romconvert import convert_bytes

    z64 = RomType.Z64.magic + ROM_PAYLOAD
    path.write_bytes(convert_bytes(z64, RomType.Z64, rom_type))
    return path


def write_executable(path: Path, text: str) -> Path:
    path.write_text(text)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )
    config.addinivalue_line(
        "markers",
        "dev: development/WIP tests, toggle-able for active development"
    )


@pytest.fixture
def z64_rom(tmp_path: Path) -> Path:
    """A big-endian ROM outside any base directory."""
    roms = tmp_path / "roms"
    roms.mkdir()
    return make_rom(roms / "baserom.us.z64")


@pytest.fixture
def spec(z64_rom: Path) -> Spec:
    """A complete spec for sm64ex, US region, 4 jobs."""
    return (
        Spec.builder()
        .repo(REPO_URL)
        .rom(z64_rom, "us")
        .add_makeopt("BETTERCAMERA", "1")
        .jobs(4)
        .finalize()
    )


@pytest.fixture
def linux_config() -> BuildConfig:
    """BuildConfig pinned to a Linux host so scripts call plain ``make``."""
    return BuildConfig(host=LINUX_HOST)


@pytest.fixture
def fake_tools(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Put fake ``git`` and ``make`` first on PATH.

    Each appends its arguments to a log file, one line per invocation.
    Returns {"git": git_log, "make": make_log}.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    logs = {"git": tmp_path / "git.log", "make": tmp_path / "make.log"}

    write_executable(bin_dir / "git", FAKE_GIT.format(log=logs["git"]))
    write_executable(bin_dir / "make", FAKE_MAKE.format(log=logs["make"]))

    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return logs


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    """A not-yet-existing base directory."""
    return tmp_path / "build-root"
