"""Player archive handles.

Players ship as plain directories, zip files, tarballs or macOS disk images.
:func:`open_archive` inspects a path and returns the matching handle; each
handle knows how to extract its entries into a destination directory.
"""

import abc
import asyncio
import enum
import logging
import os
import pathlib
import shutil
import tarfile
import tempfile
import zipfile

import aiofiles.os

from movie_projector.errors import ProjectorIOError, UnsupportedArchiveError


class ArchiveKind(enum.Enum):
    """Container kinds a player can be read from."""

    DIRECTORY = "directory"
    ZIP = "zip"
    TAR = "tar"
    TAR_GZ = "tar.gz"
    DISK_IMAGE = "dmg"


_SUFFIX_KINDS: tuple[tuple[str, ArchiveKind], ...] = (
    (".tar.gz", ArchiveKind.TAR_GZ),
    (".tgz", ArchiveKind.TAR_GZ),
    (".tar", ArchiveKind.TAR),
    (".zip", ArchiveKind.ZIP),
    (".dmg", ArchiveKind.DISK_IMAGE),
)


def _kind_from_name(name: str) -> ArchiveKind | None:
    """Match a file name against the known archive extensions.

    :param name: File name or path.
    :returns: Archive kind, or ``None`` if the extension is unknown.
    """

    lowered: str = name.lower()
    for suffix, kind in _SUFFIX_KINDS:
        if lowered.endswith(suffix) is True:
            return kind
    return None


async def classify_archive(path: str | os.PathLike[str]) -> ArchiveKind:
    """Decide which archive kind a path is.

    :param path: Player file or directory.
    :returns: Archive kind.
    :raises UnsupportedArchiveError: If the path is neither a directory nor a
        regular file with a known extension.
    """

    if await aiofiles.os.path.isdir(path) is True:
        return ArchiveKind.DIRECTORY
    if await aiofiles.os.path.isfile(path) is False:
        raise UnsupportedArchiveError(f"Archive path not file or directory: {path}")

    kind: ArchiveKind | None = _kind_from_name(os.fspath(path))
    if kind is None:
        raise UnsupportedArchiveError(f"Archive file type unknown: {path}")
    return kind


def _check_member_name(name: str) -> pathlib.PurePosixPath:
    """Refuse archive member names that would land outside the destination.

    :param name: Member name as stored in the archive.
    :returns: Member path.
    :raises UnsupportedArchiveError: If the name is unsafe.
    """

    if "\\" in name:
        raise UnsupportedArchiveError(f"Refusing to extract backslash path: {name!r}")
    if ":" in name:
        raise UnsupportedArchiveError(f"Refusing to extract drive-like path: {name!r}")
    p = pathlib.PurePosixPath(name)
    if p.is_absolute() is True:
        raise UnsupportedArchiveError(f"Refusing to extract absolute path: {name!r}")
    if ".." in p.parts:
        raise UnsupportedArchiveError(f"Refusing to extract parent-traversal path: {name!r}")
    return p


def _safe_extract_zipfile(*, zip_path: pathlib.Path, dest_dir: pathlib.Path) -> None:
    """Safely extract a zip file on disk into a destination directory.

    Unix permission bits stored in the archive are restored so player
    executables stay executable.

    :param zip_path: Zip file path.
    :param dest_dir: Destination directory.
    :raises UnsupportedArchiveError: If the zip is corrupt or has unsafe names.
    """

    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        with zipfile.ZipFile(zip_path, mode="r") as zf:
            for info in zf.infolist():
                p: pathlib.PurePosixPath = _check_member_name(info.filename)
                out_path: pathlib.Path = dest_dir.joinpath(*p.parts)
                if info.is_dir() is True:
                    out_path.mkdir(parents=True, exist_ok=True)
                    continue

                out_path.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info, mode="r") as src, open(out_path, "wb") as dst:
                    shutil.copyfileobj(src, dst)

                mode: int = (info.external_attr >> 16) & 0o777
                if mode != 0:
                    os.chmod(out_path, mode)
    except zipfile.BadZipFile as e:
        raise UnsupportedArchiveError(f"Bad zip archive: {zip_path}") from e
    except OSError as e:
        raise ProjectorIOError(f"Unable to extract {zip_path}: {e}") from e


def _safe_extract_tarfile(*, tar_path: pathlib.Path, dest_dir: pathlib.Path, mode: str) -> None:
    """Safely extract a tar file on disk into a destination directory.

    :param tar_path: Tar file path.
    :param dest_dir: Destination directory.
    :param mode: :func:`tarfile.open` read mode (``r:`` or ``r:gz``).
    :raises UnsupportedArchiveError: If the tar is corrupt or has unsafe members.
    """

    if hasattr(tarfile, "data_filter") is False:
        raise UnsupportedArchiveError(
            f"Tar players need a Python with tar extraction filters: {tar_path}"
        )

    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(tar_path, mode=mode) as tf:
            members: list[tarfile.TarInfo] = tf.getmembers()
            for member in members:
                _check_member_name(member.name)
            # The "tar" filter also rejects links pointing outside dest_dir.
            tf.extractall(dest_dir, members=members, filter="tar")
    except tarfile.TarError as e:
        raise UnsupportedArchiveError(f"Bad tar archive: {tar_path}: {e}") from e
    except OSError as e:
        raise ProjectorIOError(f"Unable to extract {tar_path}: {e}") from e


class Archive(abc.ABC):
    """Read-only handle over one player container.

    :ivar path: Container path.
    """

    kind: ArchiveKind

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path: pathlib.Path = pathlib.Path(path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"

    @abc.abstractmethod
    async def extract_to(self, dest_dir: str | os.PathLike[str]) -> None:
        """Extract every entry of the container below ``dest_dir``.

        :param dest_dir: Destination directory, created if missing.
        """


class DirectoryArchive(Archive):
    """A plain directory, read straight from the filesystem."""

    kind = ArchiveKind.DIRECTORY

    async def extract_to(self, dest_dir: str | os.PathLike[str]) -> None:
        try:
            await asyncio.to_thread(
                shutil.copytree,
                self.path,
                pathlib.Path(dest_dir),
                symlinks=True,
                dirs_exist_ok=True,
            )
        except OSError as e:
            raise ProjectorIOError(f"Unable to copy player directory {self.path}: {e}") from e


class ZipArchive(Archive):
    """A ``.zip`` file."""

    kind = ArchiveKind.ZIP

    async def extract_to(self, dest_dir: str | os.PathLike[str]) -> None:
        await asyncio.to_thread(
            _safe_extract_zipfile,
            zip_path=self.path,
            dest_dir=pathlib.Path(dest_dir),
        )


class TarArchive(Archive):
    """An uncompressed ``.tar`` file."""

    kind = ArchiveKind.TAR
    _mode: str = "r:"

    async def extract_to(self, dest_dir: str | os.PathLike[str]) -> None:
        await asyncio.to_thread(
            _safe_extract_tarfile,
            tar_path=self.path,
            dest_dir=pathlib.Path(dest_dir),
            mode=self._mode,
        )


class TarGzArchive(TarArchive):
    """A gzip-compressed ``.tar.gz`` / ``.tgz`` file."""

    kind = ArchiveKind.TAR_GZ
    _mode = "r:gz"


class DiskImageArchive(Archive):
    """A macOS ``.dmg`` disk image, read by mounting it with ``hdiutil``.

    :ivar hdiutil_path: Path to the ``hdiutil`` binary, ``None`` to use ``PATH``.
    :ivar nobrowse: Mount without surfacing the volume in the user's mount list.
    """

    kind = ArchiveKind.DISK_IMAGE

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        hdiutil_path: str | os.PathLike[str] | None = None,
        nobrowse: bool = False,
    ) -> None:
        super().__init__(path)
        self.hdiutil_path: str | os.PathLike[str] | None = hdiutil_path
        self.nobrowse: bool = nobrowse

    @property
    def hdiutil(self) -> str:
        """The ``hdiutil`` command to run."""

        if self.hdiutil_path is not None:
            return os.fspath(self.hdiutil_path)
        return "hdiutil"

    async def _hdiutil(self, *args: str) -> None:
        """Run ``hdiutil`` and wait for it.

        :param args: Arguments after the binary.
        :raises ProjectorIOError: If it cannot start or exits non-zero.
        """

        cmd: list[str] = [self.hdiutil, *args]
        logger: logging.Logger = logging.getLogger("movie_projector")
        if logger.isEnabledFor(logging.DEBUG) is True:
            logger.debug(f"movie-projector: running hdiutil: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProjectorIOError(f"Unable to run hdiutil ({cmd[0]}): {e}") from e

        _stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise ProjectorIOError(
                f"hdiutil invocation failed (exit={proc.returncode}): {' '.join(cmd)}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )

    async def _detach_after_failure(self, mount_point: pathlib.Path) -> None:
        """Detach while another error is in flight, logging a detach failure.

        :param mount_point: Mounted volume path.
        """

        try:
            await self._hdiutil("detach", str(mount_point), "-force")
        except ProjectorIOError as e:
            logging.getLogger("movie_projector").warning(f"movie-projector: {e}")

    async def extract_to(self, dest_dir: str | os.PathLike[str]) -> None:
        # A volume left mounted after a failed detach cannot be removed.
        tmp: tempfile.TemporaryDirectory[str] = await asyncio.to_thread(
            tempfile.TemporaryDirectory,
            prefix="movie_projector_dmg_",
            ignore_cleanup_errors=True,
        )
        try:
            mount_point: pathlib.Path = pathlib.Path(tmp.name) / "volume"
            await aiofiles.os.mkdir(mount_point)

            attach_args: list[str] = ["attach", "-readonly", "-noautoopen"]
            if self.nobrowse is True:
                attach_args.append("-nobrowse")
            attach_args.extend(["-mountpoint", str(mount_point), str(self.path)])
            await self._hdiutil(*attach_args)
            try:
                await asyncio.to_thread(
                    shutil.copytree,
                    mount_point,
                    pathlib.Path(dest_dir),
                    symlinks=True,
                    dirs_exist_ok=True,
                )
            except OSError as e:
                await self._detach_after_failure(mount_point)
                raise ProjectorIOError(f"Unable to copy disk image {self.path}: {e}") from e
            except BaseException:
                await self._detach_after_failure(mount_point)
                raise
            await self._hdiutil("detach", str(mount_point), "-force")
        finally:
            await asyncio.to_thread(tmp.cleanup)


async def open_archive(
    path: str | os.PathLike[str],
    *,
    hdiutil_path: str | os.PathLike[str] | None = None,
) -> Archive:
    """Open a player file or directory as an archive handle.

    :param path: Player file or directory.
    :param hdiutil_path: Optional ``hdiutil`` override for disk images.
    :returns: Archive handle of the matching kind.
    :raises UnsupportedArchiveError: If the path is not a supported container.
    """

    kind: ArchiveKind = await classify_archive(path)
    if kind is ArchiveKind.DIRECTORY:
        return DirectoryArchive(path)
    if kind is ArchiveKind.ZIP:
        return ZipArchive(path)
    if kind is ArchiveKind.DISK_IMAGE:
        return DiskImageArchive(path, hdiutil_path=hdiutil_path, nobrowse=True)
    if kind is ArchiveKind.TAR:
        return TarArchive(path)
    return TarGzArchive(path)
