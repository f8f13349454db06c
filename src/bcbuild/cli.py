"""
Command-line interface for bcbuild.

This module provides the `bcbuild` tool, which builds the groups declared in a
bcbuild.ini file.
"""

import argparse
import dataclasses
import logging
import sys
import time
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rich.console import Console

from . import __version__
from .build.orchestrator import BuildOrchestrator
from .config import DEFAULT_CONFIG_NAME, load_config
from .errors import BcbuildError, BuildConfigError
from .output import format_timestamp, init_timer
from .report import print_result
from .toolchain import ClangToolchain

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


@dataclass
class BuildArgs:
    """Arguments for a build run."""

    config: Path
    groups: list[str] = field(default_factory=list)
    jobs: Optional[int] = None
    clean: bool = False
    skip_link: bool = False
    verbose: bool = False


class _ElapsedFormatter(logging.Formatter):
    """Prefix log records with the program's elapsed time."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.WARNING:
            message = f"{record.levelname}: {message}"
        return f"{format_timestamp()} {message}"


def setup_logging(verbose: bool) -> None:
    """Route bcbuild's loggers to stdout, DEBUG and up when verbose."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_ElapsedFormatter("%(message)s"))
    package_logger = logging.getLogger("bcbuild")
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    package_logger.propagate = False


def build_command(args: BuildArgs) -> int:
    """Build (or clean) the selected groups.

    Examples:
        bcbuild                      # Build the default groups of ./bcbuild.ini
        bcbuild -g runtime -g mm     # Build specific groups
        bcbuild --clean              # Remove artifacts, then rebuild
        bcbuild -j 4 --verbose       # Four workers, debug output

    Returns:
        Process exit status
    """
    start_time = time.time()
    console = Console()
    try:
        project = load_config(args.config)
        groups = project.select(args.groups)
        toolchain = ClangToolchain(llvm_dir=project.llvm_dir)

        for group in groups:
            if args.skip_link:
                group = dataclasses.replace(group, skip_link=True)
            orchestrator = BuildOrchestrator(group, toolchain, jobs=args.jobs)
            group_start = time.time()
            logger.info(f"Building group: {group.name}...")
            if args.clean:
                orchestrator.clean()
            result = orchestrator.build()
            if result.module is not None:
                logger.info(f"      Module: {result.module}")
            logger.info(f"      Done ({time.time() - group_start:.2f}s)")
            print_result(result, console=console, verbose=args.verbose)

    except BuildConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    except KeyboardInterrupt:
        logger.error("Build interrupted")
        return EXIT_INTERRUPTED

    except (BcbuildError, OSError) as e:
        logger.error(f"Build failed: {e}")
        if args.verbose:
            print(traceback.format_exc())
        return EXIT_BUILD_FAILED

    logger.info("")
    logger.info(f"Build time: {time.time() - start_time:.2f}s")
    return EXIT_OK


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv: Optional[list[str]] = None) -> BuildArgs:
    parser = argparse.ArgumentParser(
        prog="bcbuild",
        description="Incremental C/C++ to LLVM bitcode builds",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"bcbuild {__version__}",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path.cwd() / DEFAULT_CONFIG_NAME,
        help=f"Configuration file (default: ./{DEFAULT_CONFIG_NAME})",
    )
    parser.add_argument(
        "-g",
        "--group",
        dest="groups",
        action="append",
        default=[],
        help="Build group to build; may be repeated (default: default_groups, else all)",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        default=None,
        help="Parallel workers for extraction and compilation (default: CPU count)",
    )
    parser.add_argument(
        "--clean",
        action="store_true",
        help="Remove the groups' artifacts before building",
    )
    parser.add_argument(
        "--skip-link",
        action="store_true",
        help="Only compile units, do not link modules",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug output and cached sources",
    )
    parsed = parser.parse_args(argv)
    return BuildArgs(
        config=parsed.config,
        groups=parsed.groups,
        jobs=parsed.jobs,
        clean=parsed.clean,
        skip_link=parsed.skip_link,
        verbose=parsed.verbose,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """bcbuild - incremental C/C++ to LLVM bitcode builds."""
    args = parse_args(argv)
    init_timer()
    setup_logging(args.verbose)
    logger.info(f"bcbuild v{__version__}")
    logger.info("")
    return build_command(args)


if __name__ == "__main__":
    sys.exit(main())
