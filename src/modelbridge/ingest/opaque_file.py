"""
Opaque-file adapter.

The uploaded file is decoded and written as-is; the Dir handle points at the
file, and registration decides what it is (entity file, archive or OCI
image).
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from pathlib import PurePosixPath, PureWindowsPath
from typing import TYPE_CHECKING

from modelbridge.contracts.requests import FileImportRequest, UploadType
from modelbridge.errors import InvalidBase64Error
from modelbridge.ingest.base import Dir, IngestionAdapter, IngestResult, write_workspace_file
from modelbridge.packaging.sniff import detect_file_type

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_FILE_STEM = "model"


def decode_file_payload(value: str) -> bytes:
    """Decode a base64 upload, with or without a ``data:...;base64,`` prefix.

    Raises:
        InvalidBase64Error: If the payload is not valid base64.
    """
    payload = value
    if payload.startswith("data:") and ";base64," in payload:
        payload = payload.split(";base64,", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidBase64Error(f"error decoding base64 file: {e}", cause=e) from e


def upload_file_name(file_name: str, data: bytes) -> str:
    """Reduce a client-supplied name to a bare file name.

    Directory parts are dropped; an empty name becomes ``model`` plus the
    sniffed extension.
    """
    name = PureWindowsPath(PurePosixPath(file_name).name).name.strip()
    if name in {"", ".", ".."}:
        return f"{DEFAULT_FILE_STEM}{detect_file_type(data)}"
    return name


@dataclass(frozen=True)
class _Upload:
    name: str
    data: bytes


class OpaqueFileAdapter(IngestionAdapter):
    """Writes an uploaded file into the workspace unchanged."""

    upload_type = UploadType.FILE

    async def _prepare(self, request: FileImportRequest) -> _Upload:  # type: ignore[override]
        body = request.import_body
        data = decode_file_payload(body.model_file)
        return _Upload(name=upload_file_name(body.file_name, data), data=data)

    async def _produce(self, prepared: _Upload, workspace: Path) -> IngestResult:  # type: ignore[override]
        path = write_workspace_file(workspace / prepared.name, prepared.data, what="uploaded file")
        logger.info(
            "Stored uploaded file",
            extra={"file_name": prepared.name, "size_bytes": len(prepared.data)},
        )
        return IngestResult(dirs=[Dir(path)])
