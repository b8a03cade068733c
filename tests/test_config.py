"""Tests for pipeline configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from modelbridge.config import DEFAULT_ASSET_ROOT, DEFAULT_DOWNLOAD_TIMEOUT_S, PipelineConfig


class TestPipelineConfig:
    def test_defaults(self) -> None:
        config = PipelineConfig()
        assert config.asset_root == DEFAULT_ASSET_ROOT
        assert config.temp_root is None
        assert config.download_timeout_s == DEFAULT_DOWNLOAD_TIMEOUT_S

    def test_paths_coerced(self) -> None:
        config = PipelineConfig(registry_location="/tmp/reg", temp_root="/tmp/scratch")  # type: ignore[arg-type]
        assert config.registry_location == Path("/tmp/reg")
        assert config.temp_root == Path("/tmp/scratch")

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("download_timeout_s", 0),
            ("max_download_bytes", 0),
            ("max_concurrent_registrations", 0),
        ],
    )
    def test_invalid_values(self, field: str, value: int) -> None:
        with pytest.raises(ValueError, match=field):
            PipelineConfig(**{field: value})  # type: ignore[arg-type]

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("MODELBRIDGE_REGISTRY_LOCATION", str(tmp_path / "reg"))
        monkeypatch.setenv("MODELBRIDGE_ASSET_ROOT", str(tmp_path / "ui"))
        monkeypatch.setenv("MODELBRIDGE_TEMP_ROOT", str(tmp_path / "tmp"))
        monkeypatch.setenv("MODELBRIDGE_DOWNLOAD_TIMEOUT_S", "5")

        config = PipelineConfig.from_env()

        assert config.registry_location == tmp_path / "reg"
        assert config.asset_root == tmp_path / "ui"
        assert config.temp_root == tmp_path / "tmp"
        assert config.download_timeout_s == 5.0

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODELBRIDGE_DOWNLOAD_TIMEOUT_S", "5")
        monkeypatch.delenv("MODELBRIDGE_TEMP_ROOT", raising=False)

        config = PipelineConfig.from_env(download_timeout_s=9.0, max_concurrent_registrations=2)

        assert config.download_timeout_s == 9.0
        assert config.max_concurrent_registrations == 2
