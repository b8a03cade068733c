"""
CSV-triple adapter.

The request carries three base64 data URLs: the model, component and
relationship sheets. The sheets are decoded, written to the workspace and
handed to the sheet generator, which writes one package per model. The
generated tree is also copied into the registry cache, whether or not the
request registers anything.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from modelbridge.contracts.requests import CsvImportRequest, UploadType
from modelbridge.errors import (
    CacheCopyError,
    InvalidBase64Error,
    InvalidFileTypeError,
)
from modelbridge.ingest.base import Dir, IngestionAdapter, IngestResult, write_workspace_file
from modelbridge.ingest.generators import CsvSheetGenerator
from modelbridge.layout import find_package_roots

if TYPE_CHECKING:
    from modelbridge.config import PipelineConfig
    from modelbridge.ingest.generators import SheetGenerator

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:text/csv;base64,"

SHEET_FILES = ("model.csv", "component.csv", "relationship.csv")


def decode_csv_data_url(value: str, *, sheet: str) -> bytes:
    """Decode one ``data:text/csv;base64,`` data URL.

    Raises:
        InvalidFileTypeError: If the prefix is missing.
        InvalidBase64Error: If the payload is not valid base64.
    """
    if not value.startswith(DATA_URL_PREFIX):
        raise InvalidFileTypeError(f"invalid file type for {sheet} sheet: expected CSV data URL")
    try:
        return base64.b64decode(value[len(DATA_URL_PREFIX) :], validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidBase64Error(f"error decoding {sheet} CSV: {e}", cause=e) from e


@dataclass(frozen=True)
class _Sheets:
    model: bytes
    component: bytes
    relationship: bytes


def copy_into_cache(source: Path, registry_location: Path) -> None:
    """Merge ``source`` into the registry cache directory.

    Raises:
        CacheCopyError: If the cache cannot be created or written.
    """
    try:
        registry_location.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, registry_location, dirs_exist_ok=True)
    except (OSError, shutil.Error) as e:
        raise CacheCopyError(f"error copying generated models to registry cache: {e}", cause=e) from e


class CsvSheetAdapter(IngestionAdapter):
    """Imports models from a model/component/relationship CSV triple."""

    upload_type = UploadType.CSV

    def __init__(self, config: PipelineConfig, generator: SheetGenerator | None = None) -> None:
        super().__init__(config)
        self._generator = generator or CsvSheetGenerator()

    async def _prepare(self, request: CsvImportRequest) -> _Sheets:  # type: ignore[override]
        body = request.import_body
        return _Sheets(
            model=decode_csv_data_url(body.model_csv, sheet="model"),
            component=decode_csv_data_url(body.component_csv, sheet="component"),
            relationship=decode_csv_data_url(body.relationship_csv, sheet="relationship"),
        )

    async def _produce(self, prepared: _Sheets, workspace: Path) -> IngestResult:  # type: ignore[override]
        sheets_dir = workspace / "sheets"
        output_root = workspace / "models"
        paths = [
            write_workspace_file(sheets_dir / name, data, what=name)
            for name, data in zip(
                SHEET_FILES,
                (prepared.model, prepared.component, prepared.relationship),
                strict=True,
            )
        ]
        output_root.mkdir(parents=True, exist_ok=True)

        await asyncio.to_thread(self._generator.generate, *paths, output_root)

        roots = find_package_roots(output_root)
        logger.info(
            "Generated models from CSV sheets",
            extra={"models": len(roots)},
        )
        await asyncio.to_thread(copy_into_cache, output_root, self._config.registry_location)
        return IngestResult(dirs=[Dir(root) for root in roots], root=output_root)
