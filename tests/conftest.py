"""Shared fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from modelbridge.config import PipelineConfig
from tests.fakes import FakeDownloader, FakeRegistry

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def config(tmp_path: Path) -> PipelineConfig:
    """Config with every directory under tmp_path."""
    return PipelineConfig(
        registry_location=tmp_path / "registry",
        asset_root=tmp_path / "assets",
        temp_root=tmp_path / "tmp",
    )


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()
