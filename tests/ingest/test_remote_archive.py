"""Tests for the remote-archive adapter."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from modelbridge.contracts.requests import RemoteArchiveImportBody, RemoteArchiveImportRequest
from modelbridge.errors import DownloadError
from modelbridge.ingest.remote_archive import RemoteArchiveAdapter, classify_download
from modelbridge.packaging.archive import compress_directory
from modelbridge.packaging.oci import build_image, save_oci_artifact

if TYPE_CHECKING:
    from pathlib import Path

    from modelbridge.config import PipelineConfig
    from tests.fakes import FakeDownloader

URL = "https://example.com/models/aws-ec2.tar"


def _request(url: str = URL) -> RemoteArchiveImportRequest:
    return RemoteArchiveImportRequest(register_entities=True, import_body=RemoteArchiveImportBody(url=url))


def _source(tmp_path: Path) -> Path:
    source = tmp_path / "src" / "aws-ec2"
    source.mkdir(parents=True)
    (source / "model.json").write_text("{}")
    return source


class TestClassifyDownload:
    def test_oci_artifact(self, tmp_path: Path) -> None:
        tar_path = save_oci_artifact(build_image(_source(tmp_path)), tmp_path / "a.tar", "aws-ec2")
        assert classify_download(tar_path.read_bytes()) == ".tar"

    def test_gzip(self, tmp_path: Path) -> None:
        assert classify_download(compress_directory(_source(tmp_path))) == ".tar.gz"

    def test_json(self) -> None:
        assert classify_download(b'{"schemaVersion": "models.meshery.io/v1beta1"}') == ".json"


class TestRemoteArchiveAdapter:
    @pytest.mark.asyncio
    async def test_stores_download_as_model_file(
        self, config: PipelineConfig, downloader: FakeDownloader, tmp_path: Path
    ) -> None:
        data = compress_directory(_source(tmp_path))
        downloader.responses[URL] = data

        async with RemoteArchiveAdapter(config, downloader).materialize(_request()) as result:
            path = result.dirs[0].path
            assert path.name == "model.tar.gz"
            assert path.read_bytes() == data

        assert not path.exists()

    @pytest.mark.asyncio
    async def test_http_error_leaves_nothing(self, config: PipelineConfig, downloader: FakeDownloader) -> None:
        downloader.status = 500

        with pytest.raises(DownloadError, match="status code: 500") as exc_info:
            async with RemoteArchiveAdapter(config, downloader).materialize(_request()):
                pytest.fail("materialize must not yield")

        assert exc_info.value.status == 500
        assert exc_info.value.status_code == 500
        assert config.temp_root is not None
        assert not config.temp_root.exists()
