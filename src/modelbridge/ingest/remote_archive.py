"""
Remote-archive adapter.

Downloads a URL, classifies the body (OCI image layout first, then file
signature) and stores it as ``model.<ext>``. The download completes before
the workspace is created, so an HTTP failure leaves nothing behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from modelbridge.contracts.requests import RemoteArchiveImportRequest, UploadType
from modelbridge.ingest.base import Dir, IngestionAdapter, IngestResult, write_workspace_file
from modelbridge.packaging.oci import is_oci_artifact
from modelbridge.packaging.sniff import detect_file_type

if TYPE_CHECKING:
    from pathlib import Path

    from modelbridge.config import PipelineConfig
    from modelbridge.ingest.download import Downloader

logger = logging.getLogger(__name__)

ARCHIVE_FILE_STEM = "model"


def classify_download(data: bytes) -> str:
    """Return the file extension the downloaded body is stored under."""
    if is_oci_artifact(data):
        return ".tar"
    return detect_file_type(data)


@dataclass(frozen=True)
class _Download:
    url: str
    data: bytes
    extension: str


class RemoteArchiveAdapter(IngestionAdapter):
    """Imports a model archive or OCI image from a URL."""

    upload_type = UploadType.URL_IMPORT

    def __init__(self, config: PipelineConfig, downloader: Downloader) -> None:
        super().__init__(config)
        self._downloader = downloader

    async def _prepare(self, request: RemoteArchiveImportRequest) -> _Download:  # type: ignore[override]
        url = request.import_body.url
        data = await self._downloader.fetch(url)
        return _Download(url=url, data=data, extension=classify_download(data))

    async def _produce(self, prepared: _Download, workspace: Path) -> IngestResult:  # type: ignore[override]
        name = f"{ARCHIVE_FILE_STEM}{prepared.extension}"
        path = write_workspace_file(workspace / name, prepared.data, what="downloaded file")
        logger.info(
            "Stored downloaded model",
            extra={"url": prepared.url, "file_name": name, "size_bytes": len(prepared.data)},
        )
        return IngestResult(dirs=[Dir(path)])
