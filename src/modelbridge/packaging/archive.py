"""
Tar/gzip/zip helpers for package directories.

Archives are built deterministically (sorted members, zeroed mtimes and
owners) so that the same package tree always produces the same bytes.
"""

from __future__ import annotations

import gzip
import io
import logging
import tarfile
import zipfile
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

TAR_SUFFIXES = (".tar",)
COMPRESSED_TAR_SUFFIXES = (".tar.gz", ".tgz", ".tar.bz2", ".tar.xz")
ZIP_SUFFIXES = (".zip",)


class ArchiveError(Exception):
    """Raised when an archive cannot be read or contains unsafe members."""


def normalize_tar_info(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.mtime = 0
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    if info.isdir():
        info.mode = 0o755
    else:
        info.mode = 0o644
    return info


def tar_directory(source: Path, *, arcname: str | None = None) -> bytes:
    """Build an uncompressed tar of ``source``.

    Members are rooted at ``arcname`` (default: the directory name).
    """
    source = Path(source)
    root = arcname if arcname is not None else source.name
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w", format=tarfile.PAX_FORMAT) as tar:
        tar.add(source, arcname=root, recursive=False, filter=normalize_tar_info)
        for path in sorted(source.rglob("*")):
            name = (PurePosixPath(root) / path.relative_to(source).as_posix()).as_posix()
            tar.add(path, arcname=name, recursive=False, filter=normalize_tar_info)
    return buffer.getvalue()


def compress_directory(source: Path, *, arcname: str | None = None) -> bytes:
    """Build a gzip-compressed tarball of ``source`` in memory."""
    return gzip.compress(tar_directory(source, arcname=arcname), mtime=0)


def is_archive_path(path: Path) -> bool:
    name = path.name.lower()
    return name.endswith(TAR_SUFFIXES + COMPRESSED_TAR_SUFFIXES + ZIP_SUFFIXES)


def _check_member_name(name: str) -> None:
    pure = PurePosixPath(name)
    if pure.is_absolute() or ".." in pure.parts:
        raise ArchiveError(f"unsafe archive member path: {name!r}")


def extract_tar(source: Path | io.BytesIO, dest: Path) -> None:
    """Extract a (possibly compressed) tar, rejecting links and escaping paths."""
    try:
        if isinstance(source, io.BytesIO):
            tar = tarfile.open(fileobj=source, mode="r:*")
        else:
            tar = tarfile.open(source, mode="r:*")
    except (tarfile.TarError, OSError) as e:
        raise ArchiveError(f"cannot open tar archive: {e}") from e

    with tar:
        members = []
        for member in tar.getmembers():
            _check_member_name(member.name)
            if member.issym() or member.islnk() or member.isdev():
                logger.debug("Skipping special archive member", extra={"member": member.name})
                continue
            members.append(member)
        kwargs = {"filter": "data"} if hasattr(tarfile, "data_filter") else {}
        try:
            tar.extractall(dest, members=members, **kwargs)  # type: ignore[arg-type]
        except (tarfile.TarError, OSError) as e:
            raise ArchiveError(f"cannot extract tar archive: {e}") from e


def extract_zip(source: Path, dest: Path) -> None:
    try:
        with zipfile.ZipFile(source) as archive:
            for name in archive.namelist():
                _check_member_name(name)
            archive.extractall(dest)
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveError(f"cannot extract zip archive: {e}") from e


def extract_archive(source: Path, dest: Path) -> None:
    """Extract a tar, tar.gz or zip file into ``dest``."""
    dest.mkdir(parents=True, exist_ok=True)
    if source.name.lower().endswith(ZIP_SUFFIXES) or zipfile.is_zipfile(source):
        extract_zip(source, dest)
    else:
        extract_tar(source, dest)
