"""Tests for the canonical package layout."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from modelbridge.codec import OutputFormat
from modelbridge.layout import (
    file_stem,
    find_package_roots,
    is_package_root,
    layout_for,
    safe_segment,
    unique_path,
    validate_package_root,
    versioned_dir,
)
from tests.fakes import make_component, make_model, make_relationship, write_package_tree

if TYPE_CHECKING:
    from pathlib import Path


class TestPaths:
    @pytest.mark.parametrize("value", ["", ".", "..", "a/b", "a\\b"])
    def test_safe_segment_rejects_escaping_values(self, value: str) -> None:
        with pytest.raises(ValueError, match="invalid model name"):
            safe_segment(value, what="model name")

    def test_versioned_dir(self, tmp_path: Path) -> None:
        path = versioned_dir(tmp_path, "AWS-EC2", "v1.2.0", "v1.0.0")
        assert path == tmp_path / "aws-ec2" / "v1.2.0" / "v1.0.0"

    def test_file_stem_replaces_unsafe_characters(self) -> None:
        assert file_stem("Security Group/v1") == "Security-Group-v1"
        assert file_stem("...") == "entity"

    def test_layout_for_model(self, tmp_path: Path) -> None:
        model = make_model("aws-ec2", version="v1.2.0")
        layout = layout_for(tmp_path, model, OutputFormat.YAML)

        assert layout.model_dir == tmp_path / "aws-ec2"
        assert layout.version_dir == tmp_path / "aws-ec2" / "v1.2.0" / "v1.0.0"
        assert layout.model_file.name == "model.yaml"
        assert layout.component_file(make_component("Instance")).name == "Instance.yaml"
        assert layout.relationship_file(make_relationship()).name == "edge-binding-network.yaml"

    def test_oci_format_uses_json_files(self, tmp_path: Path) -> None:
        layout = layout_for(tmp_path, make_model(), OutputFormat.OCI)
        assert layout.model_file.suffix == ".json"

    def test_unique_path(self, tmp_path: Path) -> None:
        first = tmp_path / "Instance.json"
        assert unique_path(first) == first
        first.write_text("{}")
        (tmp_path / "Instance-2.json").write_text("{}")
        assert unique_path(first) == tmp_path / "Instance-3.json"


class TestValidation:
    def test_valid_package(self, tmp_path: Path) -> None:
        root = write_package_tree(tmp_path, make_model(), [make_component("Instance")])
        assert validate_package_root(root) == []
        assert is_package_root(root)

    def test_missing_directory(self, tmp_path: Path) -> None:
        errors = validate_package_root(tmp_path / "nope")
        assert len(errors) == 1
        assert "does not exist" in errors[0]

    def test_missing_model_file(self, tmp_path: Path) -> None:
        errors = validate_package_root(tmp_path)
        assert any("Missing model" in e for e in errors)

    def test_unsupported_component_file(self, tmp_path: Path) -> None:
        root = write_package_tree(tmp_path, make_model())
        (root / "components" / "notes.txt").write_text("hi")
        errors = validate_package_root(root)
        assert errors == ["Unsupported file in components: notes.txt"]

    def test_multiple_model_files(self, tmp_path: Path) -> None:
        root = write_package_tree(tmp_path, make_model())
        (root / "model.yaml").write_text("name: x\n")
        errors = validate_package_root(root)
        assert any("Multiple model definitions" in e for e in errors)

    def test_find_package_roots(self, tmp_path: Path) -> None:
        first = write_package_tree(tmp_path, make_model("aws-ec2"))
        second = write_package_tree(tmp_path / "nested", make_model("aws-s3", version="v2.0.0"))
        (tmp_path / "junk").mkdir()

        assert find_package_roots(tmp_path) == sorted([first, second])

    def test_find_package_roots_missing_dir(self, tmp_path: Path) -> None:
        assert find_package_roots(tmp_path / "missing") == []
