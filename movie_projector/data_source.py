"""Resolve "value or file" inputs to bytes.

Variants accept movie data and text settings in several shapes: raw bytes, a
string, pre-split lines, or a path to read verbatim. These helpers reduce
all of them to one byte buffer, or ``None`` when nothing is configured.
"""

from dataclasses import dataclass
import os

import aiofiles

from movie_projector.errors import MissingEncodingError, MissingJoinerError, ProjectorIOError


@dataclass(frozen=True, slots=True)
class BytesSource:
    """Data given directly as bytes.

    :ivar data: The bytes.
    """

    data: bytes


@dataclass(frozen=True, slots=True)
class FileSource:
    """Data read from a file.

    :ivar path: File to read fully.
    """

    path: str | os.PathLike[str]


DataSource = BytesSource | FileSource | None


def data_source(data: bytes | None, file: str | os.PathLike[str] | None) -> DataSource:
    """Pick a data source, bytes taking precedence over a file.

    :param data: Optional bytes.
    :param file: Optional file path.
    :returns: The source, or ``None`` if neither is set.
    """

    if data is not None:
        return BytesSource(data=data)
    if file is not None:
        return FileSource(path=file)
    return None


async def read_data_source(source: DataSource) -> bytes | None:
    """Resolve a data source to bytes.

    :param source: Source to resolve.
    :returns: The bytes, or ``None`` for an absent source.
    :raises ProjectorIOError: If the file cannot be read.
    """

    if source is None:
        return None
    if isinstance(source, BytesSource) is True:
        return source.data

    try:
        async with aiofiles.open(source.path, "rb") as f:
            return await f.read()
    except OSError as e:
        raise ProjectorIOError(f"Unable to read {source.path}: {e}") from e


async def buffer_or_file(
    data: bytes | None,
    file: str | os.PathLike[str] | None,
) -> bytes | None:
    """Get data from a buffer or else a file.

    :param data: Data buffer.
    :param file: File path.
    :returns: Data, or ``None`` if neither is set.
    :raises ProjectorIOError: If the file cannot be read.
    """

    return await read_data_source(data_source(data, file))


async def value_or_file(
    data: str | list[str] | bytes | None,
    file: str | os.PathLike[str] | None,
    joiner: str | None,
    encoding: str | None,
) -> bytes | None:
    """Get data from a value or else a file.

    :param data: A string, a list of strings, bytes, or ``None``.
    :param file: File path, used when ``data`` is bytes-or-``None``.
    :param joiner: String placed between list items.
    :param encoding: Encoding for string data.
    :returns: Data, or ``None`` if nothing is set.
    :raises MissingJoinerError: If ``data`` is a list and ``joiner`` is ``None``.
    :raises MissingEncodingError: If ``data`` is textual and ``encoding`` is empty.
    :raises ProjectorIOError: If the file cannot be read.
    """

    text: str
    if isinstance(data, str) is True:
        text = data
    elif isinstance(data, list) is True:
        if joiner is None:
            raise MissingJoinerError("A joiner is required for a list of strings.")
        text = joiner.join(data)
    else:
        return await buffer_or_file(data, file)

    if not encoding:
        raise MissingEncodingError("An encoding is required for string data.")
    return text.encode(encoding)
