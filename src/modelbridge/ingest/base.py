"""
Base ingestion adapter.

An adapter turns one import request into Dir handles rooted in a private
scratch workspace. ``materialize`` is an async context manager: the Dirs
are valid inside the ``async with`` block and the workspace is removed on
every exit path, including errors raised by the adapter or the caller.

Input validation (``_prepare``) runs before the workspace exists, so a
malformed request never creates a temp file.
"""

from __future__ import annotations

import contextlib
import logging
import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from modelbridge.errors import TempResourceError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from modelbridge.config import PipelineConfig
    from modelbridge.contracts.requests import ImportRequest, UploadType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dir:
    """Handle to a canonical package root or a single file to register."""

    path: Path

    @property
    def is_file(self) -> bool:
        return self.path.is_file()

    def __str__(self) -> str:
        return str(self.path)


@dataclass
class IngestResult:
    """What an adapter produced for one request.

    Attributes:
        dirs: Package roots (or files) to register.
        model_name: Model name when the adapter knows it up front.
        component_count: Number of generated components (0 if unknown).
        root: Directory generated packages are laid out under, if any.
    """

    dirs: list[Dir] = field(default_factory=list)
    model_name: str = ""
    component_count: int = 0
    root: Path | None = None


class IngestionAdapter(ABC):
    """Abstract base class for ingestion adapters."""

    upload_type: ClassVar[UploadType]

    def __init__(self, config: PipelineConfig) -> None:
        self._config = config

    @contextlib.asynccontextmanager
    async def materialize(self, request: ImportRequest) -> AsyncIterator[IngestResult]:
        """Produce the request's Dirs inside a scoped workspace."""
        prepared = await self._prepare(request)
        workspace = self._create_workspace()
        try:
            result = await self._produce(prepared, workspace)
            logger.debug(
                "Materialized import",
                extra={"upload_type": self.upload_type.value, "dirs": len(result.dirs)},
            )
            yield result
        finally:
            shutil.rmtree(workspace, ignore_errors=True)

    def _create_workspace(self) -> Path:
        temp_root = self._config.temp_root
        try:
            if temp_root is not None:
                temp_root.mkdir(parents=True, exist_ok=True)
            return Path(
                tempfile.mkdtemp(prefix=f"modelbridge-{self.upload_type.value}-", dir=temp_root)
            )
        except OSError as e:
            raise TempResourceError(f"error creating temporary directory: {e}", cause=e) from e

    @abstractmethod
    async def _prepare(self, request: ImportRequest) -> Any:
        """Validate and decode the request; must not touch the filesystem."""
        ...

    @abstractmethod
    async def _produce(self, prepared: Any, workspace: Path) -> IngestResult:
        """Write the package(s) into ``workspace`` and return their Dirs."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(upload_type={self.upload_type.value!r})"


def write_workspace_file(path: Path, data: bytes, *, what: str) -> Path:
    """Write ``data`` to ``path``, mapping OS errors to TempResourceError."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise TempResourceError(f"error writing {what} to temp file: {e}", cause=e) from e
    return path
