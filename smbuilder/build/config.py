"""
Build configuration for smbuilder.

Constants, run options, host platform facts and the on-disk layout.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from smbuilder.core.errors import BuildIOError, PathError
from smbuilder.core.process import DEFAULT_MAX_BUFFERED
from smbuilder.romconvert import RomType
from smbuilder.spec import Spec

# =============================================================================
# Constants
# =============================================================================

SCRIPTS_DIR_NAME = "scripts"
BUILD_SCRIPT_NAME = "build.sh"

# Byte order the ports' asset extraction expects
TARGET_ROM_TYPE = RomType.Z64

# Always passed to make, ahead of user overrides
DEFAULT_MAKEOPTS: tuple[tuple[str, str], ...] = (
    ("EXTERNAL_DATA", "1"),
    ("RENDER_API", "GL"),
    ("WINDOW_API", "SDL2"),
    ("AUDIO_API", "SDL2"),
    ("CONTROLLER_API", "SDL2"),
)

# Hosts whose default make is usually not GNU make
BSD_SYSTEMS = frozenset({"FreeBSD", "OpenBSD", "NetBSD", "DragonFly"})
APPLE_SYSTEM = "Darwin"
ARM64_MACHINES = frozenset({"arm64", "aarch64"})


def rom_filename(spec: Spec) -> str:
    return f"baserom.{spec.rom.region.value}.z64"


def executable_name(spec: Spec) -> str:
    return f"sm64.{spec.rom.region.value}.f3dex2e"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class HostPlatform:
    """Operating system family and CPU architecture of the build host."""

    system: str
    machine: str

    @classmethod
    def detect(cls) -> "HostPlatform":
        return cls(system=platform.system(), machine=platform.machine())

    @property
    def is_apple(self) -> bool:
        return self.system == APPLE_SYSTEM

    @property
    def is_bsd(self) -> bool:
        return self.system in BSD_SYSTEMS

    @property
    def is_arm64(self) -> bool:
        return self.machine.lower() in ARM64_MACHINES


@dataclass
class BuildConfig:
    """Options for a build run."""

    dry_run: bool = False
    verbose: bool = False
    run_after_build: bool = False
    process_timeout: Optional[float] = None  # seconds, per child process; None waits forever
    max_buffered_output: int = DEFAULT_MAX_BUFFERED  # bytes, per output stream
    host: HostPlatform = field(default_factory=HostPlatform.detect)


@dataclass(frozen=True)
class Layout:
    """Where everything for one spec lives under the base directory."""

    base_dir: Path
    repo_dir: Path
    scripts_dir: Path
    build_script: Path
    rom_target: Path
    executable: Path
    post_build_scripts: tuple[Path, ...] = ()  # same order as spec.scripts


# =============================================================================
# Layout Resolution
# =============================================================================


def _check_base_dir(path: Path) -> None:
    if path.exists() and not path.is_dir():
        raise PathError(f"base directory {path} exists but is not a directory")


def ensure_base_dir(base_dir: Union[str, Path]) -> Path:
    """Create ``base_dir`` if needed and return its canonical absolute path."""
    path = Path(base_dir).expanduser()
    _check_base_dir(path)

    try:
        path.mkdir(parents=True, exist_ok=True)
    except FileExistsError as e:
        raise PathError(f"base directory {path} exists but is not a directory") from e
    except OSError as e:
        raise BuildIOError(f"failed to create the base directory at {path}: {e}") from e

    return path.resolve()


def resolve_layout(base_dir: Union[str, Path], spec: Spec, create: bool = True) -> Layout:
    """Derive the on-disk layout for ``spec`` under ``base_dir``.

    With ``create`` the base directory is made if missing. Either way it is
    resolved to an absolute path so later steps do not depend on the working
    directory. Everything else is path arithmetic.

    Raises:
        PathError: the repository URL has no name segment, ``base_dir``
            exists as a file, or a post-build script would replace the
            build script.
        BuildIOError: the base directory could not be created.
    """
    repo_name = spec.repo.name  # fail on a bad URL before touching the disk
    for script in spec.scripts:
        if script.name == BUILD_SCRIPT_NAME:
            raise PathError(f"post-build script name '{BUILD_SCRIPT_NAME}' is reserved for the build script")

    if create:
        base = ensure_base_dir(base_dir)
    else:
        path = Path(base_dir).expanduser()
        _check_base_dir(path)
        base = path.resolve()

    repo_dir = base / repo_name
    scripts_dir = base / SCRIPTS_DIR_NAME
    region = spec.rom.region.value

    return Layout(
        base_dir=base,
        repo_dir=repo_dir,
        scripts_dir=scripts_dir,
        build_script=scripts_dir / BUILD_SCRIPT_NAME,
        rom_target=repo_dir / rom_filename(spec),
        executable=repo_dir / "build" / f"{region}_pc" / executable_name(spec),
        post_build_scripts=tuple(scripts_dir / script.name for script in spec.scripts),
    )
