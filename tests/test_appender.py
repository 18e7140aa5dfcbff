import struct

import pytest

from movie_projector.appender import append_movie_data
from movie_projector.errors import NotAFileError, ProjectorIOError, UnknownFieldTagError
from movie_projector.layout import MOVIE_APPEND_MARKER, AppendLayout


@pytest.mark.asyncio
async def test_append_dmsl_round_trip(tmp_path):
    target = tmp_path / "player"
    target.write_bytes(b"PLAYER")
    payload = b"hello movie"

    await append_movie_data(target, payload, "dmsl")

    out = target.read_bytes()
    assert len(out) == 6 + len(payload) + 4 + 4 + 8
    assert out[:6] == b"PLAYER"

    size64 = struct.unpack("<Q", out[-8:])[0]
    size32 = struct.unpack("<I", out[-12:-8])[0]
    marker = out[-16:-12]
    assert size64 == len(payload)
    assert size32 == len(payload)
    assert marker == b"\x56\x34\x12\xfa"
    assert out[-16 - size32:-16] == payload


@pytest.mark.asyncio
async def test_append_accepts_parsed_layout(tmp_path):
    target = tmp_path / "player"
    target.write_bytes(b"")

    await append_movie_data(target, b"\x01\x02", AppendLayout.parse("Smd"))

    assert target.read_bytes() == b"\x00\x00\x00\x02" + MOVIE_APPEND_MARKER + b"\x01\x02"


@pytest.mark.asyncio
async def test_append_twice_accumulates(tmp_path):
    target = tmp_path / "player"
    target.write_bytes(b"x")

    await append_movie_data(target, b"ab", "d")
    await append_movie_data(target, b"cd", "d")

    assert target.read_bytes() == b"xabcd"


@pytest.mark.asyncio
async def test_append_to_directory_fails(tmp_path):
    target = tmp_path / "bundle"
    target.mkdir()

    with pytest.raises(NotAFileError):
        await append_movie_data(target, b"abc", "dm")

    assert list(target.iterdir()) == []


@pytest.mark.asyncio
async def test_append_to_missing_file_fails(tmp_path):
    target = tmp_path / "missing"

    with pytest.raises(NotAFileError):
        await append_movie_data(target, b"abc", "dm")

    assert target.exists() is False


@pytest.mark.asyncio
async def test_append_unknown_tag_leaves_file_untouched(tmp_path):
    target = tmp_path / "player"
    target.write_bytes(b"0123456789")

    with pytest.raises(UnknownFieldTagError) as exc_info:
        await append_movie_data(target, b"abc", "dx")

    assert exc_info.value.tag == "x"
    assert target.stat().st_size == 10


@pytest.mark.asyncio
async def test_append_write_failure_is_io_error(tmp_path, monkeypatch):
    import aiofiles

    target = tmp_path / "player"
    target.write_bytes(b"")

    def broken_open(*args, **kwargs):
        raise PermissionError("denied")

    monkeypatch.setattr(aiofiles, "open", broken_open)

    with pytest.raises(ProjectorIOError) as exc_info:
        await append_movie_data(target, b"abc", "d")
    assert isinstance(exc_info.value, OSError)
