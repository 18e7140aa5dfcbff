"""Append movie data to player files."""

import logging
import os
import stat

import aiofiles
import aiofiles.os

from movie_projector.errors import NotAFileError, ProjectorIOError
from movie_projector.layout import AppendLayout


async def append_movie_data(
    file: str | os.PathLike[str],
    data: bytes,
    layout: AppendLayout | str,
    *,
    logger: logging.Logger | None = None,
) -> None:
    """Append movie data to a file following a layout.

    The layout is fully validated and composed before the target is opened,
    so a bad layout never leaves a partial write behind. All fields go out
    through a single append-mode handle that is closed on every exit path.

    :param file: File to append to.
    :param data: Movie data.
    :param layout: Layout, or a tag string parsed with :meth:`AppendLayout.parse`.
    :param logger: Optional logger for debug output.
    :raises UnknownFieldTagError: If a layout string has an unknown tag.
    :raises NotAFileError: If ``file`` is missing or not a regular file.
    :raises ProjectorIOError: If opening, writing or closing fails.
    """

    if logger is None:
        logger = logging.getLogger("movie_projector")

    if isinstance(layout, str) is True:
        layout = AppendLayout.parse(layout)
    blob: bytes = layout.compose(data)

    try:
        st: os.stat_result = await aiofiles.os.stat(file)
    except FileNotFoundError as e:
        raise NotAFileError(f"Path not a file: {file}") from e
    except OSError as e:
        raise ProjectorIOError(f"Unable to stat append target {file}: {e}") from e
    if stat.S_ISREG(st.st_mode) is False:
        raise NotAFileError(f"Path not a file: {file}")

    try:
        async with aiofiles.open(file, "ab") as f:
            await f.write(blob)
    except OSError as e:
        raise ProjectorIOError(f"Failed appending movie data to {file}: {e}") from e

    if logger.isEnabledFor(logging.DEBUG) is True:
        logger.debug(
            f"movie-projector: appended {len(blob)} bytes "
            f"(movie={len(data)}, layout={layout.tags!r}) to {file}"
        )
