"""Command line interface for movie-projector."""

import argparse
import asyncio
import logging
import pathlib
import sys

from movie_projector.errors import ProjectorError
from movie_projector.projector import ProjectorConfig, write_projector
from movie_projector.variants import DEFAULT_LAYOUT, AppendedProjector


def _configure_logging(*, verbose: int, quiet: int) -> logging.Logger:
    """Configure the movie-projector logger.

    :param verbose: Verbosity count (0+).
    :param quiet: Quietness count (0+).
    :returns: Configured logger.
    """

    level: int = logging.INFO
    if quiet >= 2:
        level = logging.ERROR
    elif quiet >= 1:
        level = logging.WARNING
    elif verbose >= 1:
        level = logging.DEBUG

    logger: logging.Logger = logging.getLogger("movie_projector")
    logger.setLevel(level)
    logger.propagate = False

    handler: logging.Handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.handlers.clear()
    logger.addHandler(handler)
    return logger


def main(argv: list[str] | None = None) -> int:
    """Run the movie-projector CLI.

    :param argv: Optional argv list (excluding program name).
    :returns: Exit code.
    """

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="movie-projector",
        description="Build a projector from a player and a movie.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_build = subparsers.add_parser(
        "build",
        help="Copy a player and append a movie to it.",
    )
    p_build.add_argument(
        "name",
        type=str,
        help="Projector file name written inside the output directory.",
    )
    p_build.add_argument(
        "--player",
        type=pathlib.Path,
        required=True,
        help="Player directory or archive (.zip, .tar, .tar.gz, .tgz, .dmg).",
    )
    p_build.add_argument(
        "--movie",
        type=pathlib.Path,
        default=None,
        help="Movie file to embed. Without it the player is written bare.",
    )
    p_build.add_argument(
        "-o",
        "--output",
        type=pathlib.Path,
        required=True,
        help="Output directory.",
    )
    p_build.add_argument(
        "--layout",
        type=str,
        default=DEFAULT_LAYOUT,
        help=(
            "Append layout tags: d=data, m=marker, s/S=32-bit size LE/BE, "
            f"l/L=64-bit size LE/BE (default: {DEFAULT_LAYOUT})."
        ),
    )
    p_build.add_argument(
        "--player-entry",
        type=str,
        default=None,
        help="Player file path inside the archive, if it holds more than one file.",
    )
    p_build.add_argument(
        "--hdiutil",
        type=pathlib.Path,
        default=None,
        help="Path to the hdiutil binary used for .dmg players.",
    )
    p_build.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable verbose logging.",
    )
    p_build.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Reduce logging. Pass multiple times to suppress more output.",
    )

    ns = parser.parse_args(argv)
    if ns.command == "build":
        logger: logging.Logger = _configure_logging(verbose=ns.verbose, quiet=ns.quiet)
        config: ProjectorConfig = ProjectorConfig(
            player=ns.player,
            movie_file=ns.movie,
            hdiutil_path=ns.hdiutil,
        )
        try:
            variant: AppendedProjector = AppendedProjector(
                config,
                layout=ns.layout,
                player_entry=ns.player_entry,
                logger=logger,
            )
            asyncio.run(write_projector(variant, ns.output, ns.name, logger=logger))
        except ProjectorError as e:
            logger.error(f"movie-projector: error: {e}")
            return 1
        return 0

    raise AssertionError(f"Unhandled command: {ns.command}")
