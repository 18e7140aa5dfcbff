"""Projector write pipeline.

A projector is written in three strictly ordered phases, each provided by a
platform variant:

1. ``write_player``: extract or copy the player into the output path.
2. ``modify_player``: patch the player in place (strings, flags, offsets).
3. ``write_movie``: resolve the movie and append it in the player's layout.

:func:`write_projector` sequences the phases and stops at the first failure.
Earlier phases are not rolled back; partial output stays on disk and callers
retry against a clean output path. The remaining helpers are shared by
variants.
"""

from dataclasses import dataclass
import asyncio
import logging
import os
import shutil
import time
from typing import Protocol

import aiofiles
import aiofiles.os

from movie_projector.archive import Archive, open_archive
from movie_projector.data_source import buffer_or_file
from movie_projector.errors import PlayerNotSetError, ProjectorIOError


StrPath = str | os.PathLike[str]


@dataclass(frozen=True, slots=True)
class ProjectorConfig:
    """Inputs shared by every projector variant.

    Exactly the fields needed to resolve one player and one movie payload.

    :ivar player: Player file or directory.
    :ivar movie_file: Movie file, read when ``movie_data`` is not set.
    :ivar movie_data: Movie bytes, takes precedence over ``movie_file``.
    :ivar hdiutil_path: Override for the ``hdiutil`` binary used to mount
        disk-image players.
    """

    player: StrPath | None = None
    movie_file: StrPath | None = None
    movie_data: bytes | None = None
    hdiutil_path: StrPath | None = None


class ProjectorVariant(Protocol):
    """The capabilities a platform variant provides to the pipeline."""

    @property
    def config(self) -> ProjectorConfig: ...

    @property
    def projector_extension(self) -> str: ...

    async def write_player(self, path: StrPath, name: str) -> None: ...

    async def modify_player(self, path: StrPath, name: str) -> None: ...

    async def write_movie(self, path: StrPath, name: str) -> None: ...


async def write_projector(
    variant: ProjectorVariant,
    path: StrPath,
    name: str,
    *,
    logger: logging.Logger | None = None,
) -> None:
    """Write out a projector.

    :param variant: Platform variant providing the three phases.
    :param path: Save path.
    :param name: Save name.
    :param logger: Optional logger for progress output.
    :raises ProjectorError: The first failure of any phase; later phases are
        not run.
    """

    if logger is None:
        logger = logging.getLogger("movie_projector")

    variant_name: str = type(variant).__name__
    logger.info(f"movie-projector: writing {name!r} to {path} ({variant_name})")
    t0: float = time.perf_counter()

    await variant.write_player(path, name)
    logger.info("movie-projector: player written")

    await variant.modify_player(path, name)
    logger.info("movie-projector: player modified")

    await variant.write_movie(path, name)
    t1: float = time.perf_counter()
    logger.info(f"movie-projector: done in {t1 - t0:.2f}s")


def get_player_path(config: ProjectorConfig) -> StrPath:
    """Get the player path, or raise.

    :param config: Projector config.
    :returns: Player path.
    :raises PlayerNotSetError: If no player is configured.
    """

    player: StrPath | None = config.player
    if not player:
        raise PlayerNotSetError("Player must be set")
    return player


async def open_player_archive(config: ProjectorConfig) -> Archive:
    """Open the configured player as an archive handle.

    :param config: Projector config.
    :returns: Archive handle.
    :raises PlayerNotSetError: If no player is configured.
    :raises UnsupportedArchiveError: If the player is not a supported container.
    """

    return await open_archive(get_player_path(config), hdiutil_path=config.hdiutil_path)


async def get_movie_data(config: ProjectorConfig) -> bytes | None:
    """Get movie data if any specified, from data or file.

    :param config: Projector config.
    :returns: Movie data, or ``None`` when no movie is configured.
    """

    return await buffer_or_file(config.movie_data, config.movie_file)


def trim_extension(name: str, extension: str, *, nocase: bool = False) -> str:
    """Trim an extension from the end of a projector name.

    :param name: Projector name.
    :param extension: Extension including the dot, may be empty.
    :param nocase: Compare case-insensitively.
    :returns: Name without the extension, or unchanged if it does not match.
    """

    if not extension or len(name) < len(extension):
        return name
    tail: str = name[len(name) - len(extension):]
    if nocase is True:
        matched: bool = tail.lower() == extension.lower()
    else:
        matched = tail == extension
    if matched is True:
        return name[: len(name) - len(extension)]
    return name


def get_projector_name_no_extension(variant: ProjectorVariant, name: str) -> str:
    """Get a projector name without the variant's extension, case-insensitive.

    :param variant: Platform variant.
    :param name: Projector name.
    :returns: Projector name without extension.
    """

    return trim_extension(name, variant.projector_extension, nocase=True)


async def _remove_path(path: StrPath) -> None:
    """Remove a file or directory tree if it exists."""

    if await aiofiles.os.path.isdir(path) is True and await aiofiles.os.path.islink(path) is False:
        await asyncio.to_thread(shutil.rmtree, path)
        return
    try:
        await aiofiles.os.remove(path)
    except FileNotFoundError:
        pass


async def maybe_write_file(data: bytes | None, path: StrPath, *, remove: bool = False) -> None:
    """Write a file only if there is data to write.

    With no data this is a no-op, so variants can treat "no movie configured"
    as a normal case.

    :param data: Data to maybe write.
    :param path: Output path.
    :param remove: Remove any existing file or directory at ``path`` first.
    :raises ProjectorIOError: If removing or writing fails.
    """

    if data is None:
        return
    try:
        if remove is True:
            await _remove_path(path)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
    except OSError as e:
        raise ProjectorIOError(f"Unable to write {path}: {e}") from e
