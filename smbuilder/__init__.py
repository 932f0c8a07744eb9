"""
smbuilder - builds PC ports of Super Mario 64 from a declarative spec.
"""

__version__ = "0.1.0"

from smbuilder.spec import (
    DynosPack,
    Makeopt,
    PostBuildScript,
    Region,
    Repo,
    Rom,
    Spec,
    SpecBuilder,
    TexturePack,
    dump_spec,
    load_spec,
)
from smbuilder.build import BuildConfig, Builder, HostPlatform, PipelineStep

__all__ = [
    "__version__",
    "DynosPack",
    "Makeopt",
    "PostBuildScript",
    "Region",
    "Repo",
    "Rom",
    "Spec",
    "SpecBuilder",
    "TexturePack",
    "dump_spec",
    "load_spec",
    "BuildConfig",
    "Builder",
    "HostPlatform",
    "PipelineStep",
]
