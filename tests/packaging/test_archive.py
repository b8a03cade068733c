"""Tests for tar/gzip/zip helpers."""

from __future__ import annotations

import gzip
import io
import tarfile
import zipfile
from typing import TYPE_CHECKING

import pytest

from modelbridge.packaging.archive import (
    ArchiveError,
    compress_directory,
    extract_archive,
    is_archive_path,
    tar_directory,
)

if TYPE_CHECKING:
    from pathlib import Path


def _tree(root: Path) -> Path:
    source = root / "aws-ec2"
    (source / "v1.0.0" / "components").mkdir(parents=True)
    (source / "v1.0.0" / "model.json").write_text("{}")
    (source / "v1.0.0" / "components" / "Instance.json").write_text("{}")
    return source


class TestTarDirectory:
    def test_members_rooted_at_directory_name(self, tmp_path: Path) -> None:
        data = tar_directory(_tree(tmp_path))
        with tarfile.open(fileobj=io.BytesIO(data)) as tar:
            names = tar.getnames()
        assert names[0] == "aws-ec2"
        assert "aws-ec2/v1.0.0/model.json" in names
        assert "aws-ec2/v1.0.0/components/Instance.json" in names

    def test_deterministic(self, tmp_path: Path) -> None:
        source = _tree(tmp_path)
        assert compress_directory(source) == compress_directory(source)

    def test_normalized_metadata(self, tmp_path: Path) -> None:
        data = tar_directory(_tree(tmp_path), arcname="pkg")
        with tarfile.open(fileobj=io.BytesIO(data)) as tar:
            for member in tar.getmembers():
                assert member.name.startswith("pkg")
                assert member.mtime == 0
                assert member.uid == 0

    def test_compress_is_gzip(self, tmp_path: Path) -> None:
        data = compress_directory(_tree(tmp_path))
        assert data[:2] == b"\x1f\x8b"
        assert tarfile.open(fileobj=io.BytesIO(gzip.decompress(data))).getnames()


class TestExtract:
    def test_extract_tar_gz(self, tmp_path: Path) -> None:
        archive = tmp_path / "model.tar.gz"
        archive.write_bytes(compress_directory(_tree(tmp_path / "src")))

        extract_archive(archive, tmp_path / "out")

        assert (tmp_path / "out" / "aws-ec2" / "v1.0.0" / "model.json").is_file()

    def test_extract_zip(self, tmp_path: Path) -> None:
        archive = tmp_path / "model.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("pkg/model.json", "{}")

        extract_archive(archive, tmp_path / "out")

        assert (tmp_path / "out" / "pkg" / "model.json").is_file()

    def test_rejects_path_traversal(self, tmp_path: Path) -> None:
        archive = tmp_path / "evil.tar"
        with tarfile.open(archive, "w") as tar:
            info = tarfile.TarInfo("../escape.json")
            info.size = 2
            tar.addfile(info, io.BytesIO(b"{}"))

        with pytest.raises(ArchiveError, match="unsafe archive member"):
            extract_archive(archive, tmp_path / "out")
        assert not (tmp_path / "escape.json").exists()

    def test_skips_symlinks(self, tmp_path: Path) -> None:
        archive = tmp_path / "links.tar"
        with tarfile.open(archive, "w") as tar:
            link = tarfile.TarInfo("passwd")
            link.type = tarfile.SYMTYPE
            link.linkname = "/etc/passwd"
            tar.addfile(link)
            info = tarfile.TarInfo("model.json")
            info.size = 2
            tar.addfile(info, io.BytesIO(b"{}"))

        extract_archive(archive, tmp_path / "out")

        assert (tmp_path / "out" / "model.json").is_file()
        assert not (tmp_path / "out" / "passwd").exists()

    def test_corrupt_archive(self, tmp_path: Path) -> None:
        archive = tmp_path / "broken.tar.gz"
        archive.write_bytes(b"\x1f\x8bnot really gzip")
        with pytest.raises(ArchiveError):
            extract_archive(archive, tmp_path / "out")

    @pytest.mark.parametrize(
        ("name", "expected"),
        [("m.tar", True), ("m.TGZ", True), ("m.tar.xz", True), ("m.zip", True), ("m.json", False)],
    )
    def test_is_archive_path(self, tmp_path: Path, name: str, expected: bool) -> None:
        assert is_archive_path(tmp_path / name) is expected
