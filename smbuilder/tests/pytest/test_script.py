"""
Tests for build script generation.
"""

from __future__ import annotations

import shlex
import stat

import pytest

from smbuilder.build.config import HostPlatform, resolve_layout
from smbuilder.build.script import (
    SCRIPT_HEADER,
    build_command,
    generate_build_script,
    write_build_script,
)
from smbuilder.spec import Spec

from .conftest import LINUX_HOST

DEFAULTS = [
    "EXTERNAL_DATA=1",
    "RENDER_API=GL",
    "WINDOW_API=SDL2",
    "AUDIO_API=SDL2",
    "CONTROLLER_API=SDL2",
]


def command_words(text: str) -> list[str]:
    """Split the single command line of a generated script back into words."""
    body = text[len(SCRIPT_HEADER):].strip()
    assert "\n" not in body
    return shlex.split(body)


@pytest.mark.evergreen
class TestGenerateBuildScript:
    """Tests for generate_build_script."""

    @pytest.fixture
    def layout(self, base_dir, spec):
        return resolve_layout(base_dir, spec)

    def test_linux(self, spec, layout):
        text = generate_build_script(spec, layout, LINUX_HOST)

        assert text.startswith("#!/bin/sh\n")
        assert text.endswith("\n")
        assert command_words(text) == [
            "make", "-C", str(layout.repo_dir), "-j4",
            *DEFAULTS,
            "BETTERCAMERA=1",
            "VERSION=us",
        ]

    def test_deterministic(self, spec, layout):
        first = generate_build_script(spec, layout, LINUX_HOST)
        second = generate_build_script(spec, layout, LINUX_HOST)
        assert first == second

    @pytest.mark.parametrize("system", ["FreeBSD", "OpenBSD", "NetBSD"])
    def test_bsd_uses_gmake(self, spec, layout, system):
        words = build_command(spec, layout, HostPlatform(system=system, machine="amd64"))

        assert words[0] == "gmake"
        assert not any(w.startswith("OSX_BUILD") for w in words)

    @pytest.mark.parametrize("machine,arch", [
        ("arm64", "arm64-apple-darwin"),
        ("x86_64", "x86_64-apple-darwin"),
    ])
    def test_darwin(self, spec, layout, machine, arch):
        words = build_command(spec, layout, HostPlatform(system="Darwin", machine=machine))

        assert words[0] == "gmake"
        assert words[4:7] == ["OSX_BUILD=1", "TARGET_BITS=64", f"TARGET_ARCH={arch}"]
        assert words[7:12] == DEFAULTS

    def test_user_makeopts_follow_defaults(self, base_dir, z64_rom):
        spec = (
            Spec.builder()
            .repo("https://github.com/sm64pc/sm64ex")
            .rom(z64_rom, "jp")
            .add_makeopt("RENDER_API", "D3D11")
            .add_makeopt("VERSION", "eu")
            .jobs(16)
            .finalize()
        )
        layout = resolve_layout(base_dir, spec)

        words = build_command(spec, layout, LINUX_HOST)

        assert words[3] == "-j16"
        assert words.index("RENDER_API=D3D11") > words.index("RENDER_API=GL")
        # region always comes last so it wins over any user VERSION
        assert words[-1] == "VERSION=jp"

    def test_quotes_awkward_values(self, tmp_path, z64_rom):
        spec = (
            Spec.builder()
            .repo("https://github.com/sm64pc/sm64ex")
            .rom(z64_rom, "us")
            .add_makeopt("CFLAGS", "-O2 -g")
            .jobs(1)
            .finalize()
        )
        layout = resolve_layout(tmp_path / "dir with spaces", spec)

        text = generate_build_script(spec, layout, LINUX_HOST)

        words = command_words(text)
        assert "CFLAGS=-O2 -g" in words
        assert words[2] == str(layout.repo_dir)


@pytest.mark.evergreen
class TestWriteBuildScript:
    """Tests for write_build_script."""

    def test_mode_and_content(self, tmp_path):
        path = tmp_path / "build.sh"

        write_build_script(path, "#!/bin/sh\ntrue\n")

        assert path.read_text() == "#!/bin/sh\ntrue\n"
        assert stat.S_IMODE(path.stat().st_mode) == 0o755

    def test_overwrites(self, tmp_path):
        path = tmp_path / "build.sh"
        path.write_text("old")
        path.chmod(0o600)

        write_build_script(path, "new\n")

        assert path.read_text() == "new\n"
        assert stat.S_IMODE(path.stat().st_mode) == 0o755
