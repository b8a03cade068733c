"""Ingestion adapters: one per import upload type."""

from __future__ import annotations

from typing import TYPE_CHECKING

from modelbridge.contracts.requests import UploadType
from modelbridge.ingest.base import Dir, IngestionAdapter, IngestResult
from modelbridge.ingest.csv_sheets import CsvSheetAdapter
from modelbridge.ingest.download import Downloader, HttpDownloader
from modelbridge.ingest.generators import (
    ComponentGenerator,
    CsvSheetGenerator,
    ManifestComponentGenerator,
    SheetGenerator,
)
from modelbridge.ingest.opaque_file import OpaqueFileAdapter
from modelbridge.ingest.remote_archive import RemoteArchiveAdapter
from modelbridge.ingest.url_scaffold import UrlScaffoldAdapter

if TYPE_CHECKING:
    from modelbridge.config import PipelineConfig


def build_adapters(
    config: PipelineConfig,
    downloader: Downloader,
    *,
    sheet_generator: SheetGenerator | None = None,
    component_generator: ComponentGenerator | None = None,
) -> dict[UploadType, IngestionAdapter]:
    """Build the adapter for every upload type."""
    return {
        UploadType.CSV: CsvSheetAdapter(config, sheet_generator),
        UploadType.URL: UrlScaffoldAdapter(
            config, component_generator or ManifestComponentGenerator(downloader)
        ),
        UploadType.FILE: OpaqueFileAdapter(config),
        UploadType.URL_IMPORT: RemoteArchiveAdapter(config, downloader),
    }


__all__ = [
    "ComponentGenerator",
    "CsvSheetAdapter",
    "CsvSheetGenerator",
    "Dir",
    "Downloader",
    "HttpDownloader",
    "IngestResult",
    "IngestionAdapter",
    "ManifestComponentGenerator",
    "OpaqueFileAdapter",
    "RemoteArchiveAdapter",
    "SheetGenerator",
    "UrlScaffoldAdapter",
    "build_adapters",
]
