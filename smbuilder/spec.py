"""
Build specification for smbuilder.

A spec names the port repository to build, the base ROM to extract assets
from, the make options to pass through and the number of compile jobs.
Specs are assembled with ``SpecBuilder`` (or loaded from an
``smbuilder.yaml`` file) and are immutable once finalized.

Example spec file:

    repo: https://github.com/sm64pc/sm64ex@nightly
    rom:
      path: ./baserom.us.z64
      region: us
    jobs: 4
    makeopts:
      - BETTERCAMERA=1
      - key: NODRAWINGDISTANCE
        value: "1"
    scripts:
      - name: install.sh
        description: Copy the build to ~/Games
        contents: |
          cp -r ../sm64ex/build/us_pc ~/Games/sm64ex
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from smbuilder.core.errors import BuildIOError, MissingFieldError, PathError, SpecError

# =============================================================================
# Core Types
# =============================================================================


class Region(enum.Enum):
    """ROM region. The value is what the port's makefile calls ``VERSION``."""

    US = "us"
    EU = "eu"
    JP = "jp"
    SH = "sh"  # Shindou

    @classmethod
    def parse(cls, value: Union[str, "Region"]) -> "Region":
        if isinstance(value, Region):
            return value
        text = str(value).strip().lower()
        if text == "shindou":
            return cls.SH
        try:
            return cls(text)
        except ValueError:
            choices = ", ".join(r.value for r in cls)
            raise SpecError(f"unknown ROM region '{value}' (expected one of: {choices})") from None


@dataclass(frozen=True)
class Rom:
    """The user-supplied base ROM."""

    path: Path
    region: Region


@dataclass(frozen=True)
class Repo:
    """A port's git repository, written as ``<url>[@<branch>]``."""

    url: str

    def _path_start(self) -> int:
        """Index where the repository path begins, past any scheme, user and host."""
        url = self.url
        scheme_end = url.find("://")
        if scheme_end != -1:
            host_end = url.find("/", scheme_end + 3)
            return len(url) if host_end == -1 else host_end

        # scp-style "user@host:owner/repo"
        colon = url.find(":")
        slash = url.find("/")
        if colon != -1 and (slash == -1 or colon < slash):
            return colon
        return 0

    def _split(self) -> tuple[str, Optional[str]]:
        # The first '@' in the path separates the branch, which may itself
        # contain '/' ("feature/dynos").
        at_pos = self.url.find("@", self._path_start())
        if at_pos == -1:
            return self.url, None
        return self.url[:at_pos], self.url[at_pos + 1:] or None

    @property
    def base_url(self) -> str:
        return self._split()[0]

    @property
    def branch(self) -> Optional[str]:
        return self._split()[1]

    @property
    def name(self) -> str:
        """Last path segment of the URL, used as the checkout directory name."""
        base_url = self.base_url
        if "/" not in base_url:
            raise PathError(f"cannot derive a repository name from '{self.url}': no '/' in URL")
        name = base_url.rsplit("/", 1)[1]
        if not name:
            raise PathError(f"cannot derive a repository name from '{self.url}': empty last segment")
        return name


@dataclass(frozen=True)
class Makeopt:
    """A single ``KEY=VALUE`` option handed to make."""

    key: str
    value: str

    @classmethod
    def parse(cls, raw: Any) -> "Makeopt":
        if isinstance(raw, dict):
            if "key" not in raw:
                raise SpecError(f"makeopt mapping is missing 'key': {raw!r}")
            return cls(str(raw["key"]), str(raw.get("value", "")))
        text = str(raw)
        key, sep, value = text.partition("=")
        if not sep or not key:
            raise SpecError(f"makeopt '{text}' is not of the form KEY=VALUE")
        return cls(key, value)

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


@dataclass(frozen=True)
class TexturePack:
    path: Path
    name: str


@dataclass(frozen=True)
class DynosPack:
    path: Path
    name: str


@dataclass(frozen=True)
class PostBuildScript:
    """A user script run after a successful build.

    Exactly one of ``contents`` (inline shell text) or ``path`` (an existing
    file) supplies the body. It is written to ``scripts/<name>``.
    """

    name: str
    description: str = ""
    contents: Optional[str] = None
    path: Optional[Path] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.description:
            data["description"] = self.description
        if self.contents is not None:
            data["contents"] = self.contents
        if self.path is not None:
            data["path"] = str(self.path)
        return data


@dataclass(frozen=True)
class Spec:
    """A complete, validated build request."""

    repo: Repo
    rom: Rom
    jobs: int
    makeopts: tuple[Makeopt, ...] = ()
    texture_pack: Optional[TexturePack] = None
    dynos_packs: tuple[DynosPack, ...] = ()
    scripts: tuple[PostBuildScript, ...] = ()

    @staticmethod
    def builder() -> "SpecBuilder":
        return SpecBuilder()

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Optional[Path] = None) -> "Spec":
        """Build a spec from parsed YAML. Relative paths resolve against ``base_dir``."""

        def _path(raw: Any) -> Path:
            path = Path(str(raw)).expanduser()
            if base_dir is not None and not path.is_absolute():
                path = base_dir / path
            return path

        def _pack(raw: Any, kind: str) -> tuple[Path, str]:
            if not isinstance(raw, dict) or "path" not in raw:
                raise SpecError(f"{kind} entry must be a mapping with a 'path': {raw!r}")
            path = _path(raw["path"])
            return path, str(raw.get("name", path.stem))

        builder = SpecBuilder()

        if data.get("repo") is not None:
            builder.repo(str(data["repo"]))

        rom = data.get("rom")
        if rom is not None:
            if not isinstance(rom, dict) or "path" not in rom or "region" not in rom:
                raise SpecError("'rom' must be a mapping with 'path' and 'region'")
            builder.rom(_path(rom["path"]), rom["region"])

        if data.get("jobs") is not None:
            builder.jobs(data["jobs"])

        for raw in data.get("makeopts") or []:
            builder.add_makeopt_struct(Makeopt.parse(raw))

        if data.get("texture_pack") is not None:
            builder.texture_pack(*_pack(data["texture_pack"], "texture_pack"))

        for raw in data.get("dynos_packs") or []:
            builder.add_dynos_pack(*_pack(raw, "dynos_packs"))

        for raw in data.get("scripts") or []:
            if not isinstance(raw, dict) or "name" not in raw:
                raise SpecError(f"scripts entry must be a mapping with a 'name': {raw!r}")
            builder.add_script(
                str(raw["name"]),
                description=str(raw.get("description", "")),
                contents=str(raw["contents"]) if raw.get("contents") is not None else None,
                path=_path(raw["path"]) if raw.get("path") is not None else None,
            )

        return builder.finalize()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "repo": self.repo.url,
            "rom": {"path": str(self.rom.path), "region": self.rom.region.value},
            "jobs": self.jobs,
        }
        if self.makeopts:
            data["makeopts"] = [str(opt) for opt in self.makeopts]
        if self.texture_pack is not None:
            data["texture_pack"] = {"path": str(self.texture_pack.path), "name": self.texture_pack.name}
        if self.dynos_packs:
            data["dynos_packs"] = [{"path": str(p.path), "name": p.name} for p in self.dynos_packs]
        if self.scripts:
            data["scripts"] = [s.to_dict() for s in self.scripts]
        return data


# =============================================================================
# Builder
# =============================================================================


class SpecBuilder:
    """Chained construction of a ``Spec``, validated once in ``finalize``.

    Usage:
        spec = (
            Spec.builder()
            .repo("https://github.com/sm64pc/sm64ex@nightly")
            .rom("./baserom.us.z64", "us")
            .add_makeopt("BETTERCAMERA", "1")
            .jobs(8)
            .finalize()
        )
    """

    REQUIRED_FIELDS = ("repo", "rom", "jobs")

    def __init__(self) -> None:
        self._repo: Optional[Repo] = None
        self._rom: Optional[Rom] = None
        self._jobs: Optional[int] = None
        self._makeopts: list[Makeopt] = []
        self._texture_pack: Optional[TexturePack] = None
        self._dynos_packs: list[DynosPack] = []
        self._scripts: list[PostBuildScript] = []

    def repo(self, url: str) -> "SpecBuilder":
        self._repo = Repo(url)
        return self

    def rom(self, path: Union[str, Path], region: Union[str, Region]) -> "SpecBuilder":
        self._rom = Rom(Path(path), Region.parse(region))
        return self

    def jobs(self, jobs: int) -> "SpecBuilder":
        self._jobs = jobs
        return self

    def add_makeopt(self, key: str, value: str) -> "SpecBuilder":
        return self.add_makeopt_struct(Makeopt(key, str(value)))

    def add_makeopt_struct(self, makeopt: Makeopt) -> "SpecBuilder":
        self._makeopts.append(makeopt)
        return self

    def texture_pack(self, path: Union[str, Path], name: str) -> "SpecBuilder":
        self._texture_pack = TexturePack(Path(path), name)
        return self

    def add_dynos_pack(self, path: Union[str, Path], name: str) -> "SpecBuilder":
        self._dynos_packs.append(DynosPack(Path(path), name))
        return self

    def add_script(
        self,
        name: str,
        description: str = "",
        contents: Optional[str] = None,
        path: Optional[Union[str, Path]] = None,
    ) -> "SpecBuilder":
        """Append a post-build script, given inline ``contents`` or an existing ``path``."""
        self._scripts.append(
            PostBuildScript(name, description, contents, Path(path) if path is not None else None)
        )
        return self

    def finalize(self) -> Spec:
        """Validate and freeze the spec.

        Raises:
            MissingFieldError: repo, rom or jobs was never set.
            SpecError: jobs is not a positive integer, or a post-build script
                has a bad or duplicate name or not exactly one body source.
        """
        for name in self.REQUIRED_FIELDS:
            if getattr(self, f"_{name}") is None:
                raise MissingFieldError(name)

        jobs = self._jobs
        if isinstance(jobs, bool) or not isinstance(jobs, int) or jobs < 1:
            raise SpecError(f"jobs must be a positive integer, got {jobs!r}")

        seen: set[str] = set()
        for script in self._scripts:
            if not script.name or "/" in script.name or script.name in (".", ".."):
                raise SpecError(f"post-build script name '{script.name}' is not a plain file name")
            if script.name in seen:
                raise SpecError(f"duplicate post-build script name '{script.name}'")
            seen.add(script.name)
            if (script.contents is None) == (script.path is None):
                raise SpecError(f"post-build script '{script.name}' needs exactly one of 'contents' or 'path'")

        return Spec(
            repo=self._repo,
            rom=self._rom,
            jobs=jobs,
            makeopts=tuple(self._makeopts),
            texture_pack=self._texture_pack,
            dynos_packs=tuple(self._dynos_packs),
            scripts=tuple(self._scripts),
        )


# =============================================================================
# Spec Files
# =============================================================================


def load_spec(path: Path) -> Spec:
    """Load a spec from a YAML file."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise BuildIOError(f"failed to read the spec file at {path}: {e}") from e
    except yaml.YAMLError as e:
        raise SpecError(f"failed to parse the spec file at {path}: {e}") from e

    if not isinstance(data, dict):
        raise SpecError(f"spec file at {path} must contain a mapping")

    return Spec.from_dict(data, base_dir=path.resolve().parent)


def dump_spec(spec: Spec, path: Path) -> None:
    """Write a spec to a YAML file."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(spec.to_dict(), f, sort_keys=False)
    except OSError as e:
        raise BuildIOError(f"failed to write the spec file at {path}: {e}") from e
