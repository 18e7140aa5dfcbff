"""Generic projector variant.

:class:`AppendedProjector` covers players that need no binary patching: the
player file is copied out of its archive and the movie is appended to it in
a configurable layout.
"""

import asyncio
import logging
import os
import pathlib
import shutil
import stat

import aiofiles.os
import aiofiles.tempfile

from movie_projector.appender import append_movie_data
from movie_projector.errors import NotAFileError, ProjectorError, ProjectorIOError
from movie_projector.layout import AppendLayout
from movie_projector.projector import (
    ProjectorConfig,
    StrPath,
    get_movie_data,
    open_player_archive,
)


DEFAULT_LAYOUT: str = "dmSL"


class AppendedProjector:
    """Copy a player executable and append the movie to it.

    :ivar config: Player and movie inputs.
    :ivar layout: Append layout for the target player.
    :ivar player_entry: Path of the player inside its archive. When ``None``
        the archive must hold exactly one regular file.
    :ivar projector_extension: Extension of the written artifact.
    """

    def __init__(
        self,
        config: ProjectorConfig,
        *,
        layout: AppendLayout | str = DEFAULT_LAYOUT,
        player_entry: str | None = None,
        projector_extension: str = "",
        logger: logging.Logger | None = None,
    ) -> None:
        self.config: ProjectorConfig = config
        if isinstance(layout, str) is True:
            layout = AppendLayout.parse(layout)
        self.layout: AppendLayout = layout
        self.player_entry: str | None = player_entry
        self.projector_extension: str = projector_extension
        self.logger: logging.Logger = logger if logger is not None else logging.getLogger("movie_projector")

    def projector_path(self, path: StrPath, name: str) -> pathlib.Path:
        """Path of the written player executable."""

        return pathlib.Path(path) / name

    def _find_player(self, root: pathlib.Path) -> pathlib.Path:
        """Locate the player executable in an extracted archive.

        :param root: Extraction root.
        :returns: Player file path.
        :raises NotAFileError: If ``player_entry`` is not a file.
        :raises ProjectorError: If the player cannot be chosen unambiguously.
        """

        if self.player_entry is not None:
            entry: pathlib.Path = root.joinpath(*pathlib.PurePosixPath(self.player_entry).parts)
            if entry.is_file() is False:
                raise NotAFileError(f"Player entry not a file: {self.player_entry}")
            return entry

        files: list[pathlib.Path] = sorted(
            p for p in root.rglob("*") if p.is_file() is True and p.is_symlink() is False
        )
        if len(files) != 1:
            raise ProjectorError(
                f"Player archive holds {len(files)} files; set player_entry to choose one."
            )
        return files[0]

    async def write_player(self, path: StrPath, name: str) -> None:
        archive = await open_player_archive(self.config)
        dest: pathlib.Path = self.projector_path(path, name)

        async with aiofiles.tempfile.TemporaryDirectory(prefix="movie_projector_player_") as td:
            root: pathlib.Path = pathlib.Path(td)
            await archive.extract_to(root)
            src: pathlib.Path = await asyncio.to_thread(self._find_player, root)
            if self.logger.isEnabledFor(logging.DEBUG) is True:
                self.logger.debug(f"movie-projector: player {src.relative_to(root)} from {archive!r}")

            try:
                await aiofiles.os.makedirs(dest.parent, exist_ok=True)
                await asyncio.to_thread(shutil.copyfile, src, dest)
                mode: int = (await aiofiles.os.stat(dest)).st_mode
                await asyncio.to_thread(os.chmod, dest, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            except OSError as e:
                raise ProjectorIOError(f"Unable to write player {dest}: {e}") from e

    async def modify_player(self, path: StrPath, name: str) -> None:
        if self.logger.isEnabledFor(logging.DEBUG) is True:
            self.logger.debug("movie-projector: no player patches for appended projectors")

    async def write_movie(self, path: StrPath, name: str) -> None:
        data: bytes | None = await get_movie_data(self.config)
        if data is None:
            self.logger.info("movie-projector: no movie configured; player left bare")
            return
        await append_movie_data(
            self.projector_path(path, name),
            data,
            self.layout,
            logger=self.logger,
        )
