"""
Main CLI for smbuilder.

Builds, plans and previews ports from an smbuilder.yaml spec file.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from smbuilder import __version__
from smbuilder.build.config import BuildConfig, resolve_layout
from smbuilder.build.orchestrator import Builder
from smbuilder.build.planner import PipelineStep, pending_steps
from smbuilder.build.script import generate_build_script
from smbuilder.core.errors import SmbuilderError
from smbuilder.core.utils import log
from smbuilder.spec import load_spec


# =============================================================================
# Argument Parsing
# =============================================================================


def _add_spec_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "spec",
        help="Path to the spec file (smbuilder.yaml)",
    )
    parser.add_argument(
        "--base-dir",
        help="Directory to build in (default: the spec file's directory)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="smbuilder",
        description="Build PC ports of Super Mario 64 from a spec file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  build       Run every pending pipeline step
  plan        Show which steps the next build would run
  script      Print the build script for a spec

Examples:
  smbuilder build smbuilder.yaml             # Clone, stage, generate, build
  smbuilder build smbuilder.yaml --run       # ...and launch the game
  smbuilder build smbuilder.yaml --dry-run   # Show what would be done
  smbuilder plan smbuilder.yaml              # List pending steps
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- build ---
    build_parser = subparsers.add_parser(
        "build",
        help="Run every pending pipeline step",
        description="Clone the repo, stage the ROM, generate the build script and build. "
        "Steps whose output already exists are skipped.",
    )
    _add_spec_arguments(build_parser)
    build_parser.add_argument(
        "--run",
        action="store_true",
        help="Launch the game after building",
    )
    build_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing",
    )
    build_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Kill any child process (git, make) running longer than this many seconds",
    )
    build_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose debug output",
    )

    # --- plan ---
    plan_parser = subparsers.add_parser(
        "plan",
        help="Show which steps the next build would run",
    )
    _add_spec_arguments(plan_parser)
    plan_parser.add_argument(
        "--run",
        action="store_true",
        help="Include the run step",
    )

    # --- script ---
    script_parser = subparsers.add_parser(
        "script",
        help="Print the build script for a spec",
    )
    _add_spec_arguments(script_parser)

    return parser


def _base_dir(args: argparse.Namespace) -> Path:
    if args.base_dir:
        return Path(args.base_dir)
    return Path(args.spec).resolve().parent


# =============================================================================
# Command Handlers
# =============================================================================


def cmd_build(args: argparse.Namespace) -> int:
    log.set_verbose(args.verbose)
    spec = load_spec(Path(args.spec))
    config = BuildConfig(
        dry_run=args.dry_run,
        verbose=args.verbose,
        run_after_build=args.run,
        process_timeout=args.timeout,
    )
    builder = Builder(_base_dir(args), spec, config)
    builder.build()
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    spec = load_spec(Path(args.spec))
    layout = resolve_layout(_base_dir(args), spec, create=False)
    pending = pending_steps(layout, run=args.run)

    log.header(f"Plan for {spec.repo.name} in {layout.base_dir}")
    for step in PipelineStep:
        if step in pending:
            status = "pending"
        elif step is PipelineStep.RUN:
            status = "not requested"
        elif step is PipelineStep.POST_BUILD:
            status = "no scripts"
        else:
            status = "done"
        log.table_row(step.value, status, col1_width=20)
    return 0


def cmd_script(args: argparse.Namespace) -> int:
    spec = load_spec(Path(args.spec))
    config = BuildConfig()
    layout = resolve_layout(_base_dir(args), spec, create=False)
    sys.stdout.write(generate_build_script(spec, layout, config.host))
    return 0


# =============================================================================
# Command Dispatch
# =============================================================================


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        log.set_color(False)

    if not args.command:
        parser.print_help()
        return 0

    handlers = {
        "build": cmd_build,
        "plan": cmd_plan,
        "script": cmd_script,
    }

    try:
        return handlers[args.command](args)

    except KeyboardInterrupt:
        log.warning("\nInterrupted")
        return 130
    except SmbuilderError as e:
        log.error(str(e))
        return 1
    except Exception as e:
        log.error(str(e))
        if getattr(args, "verbose", False):
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
