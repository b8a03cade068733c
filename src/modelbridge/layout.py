"""
Canonical package layout.

Every adapter writes into, and every exporter writes out of, this tree:

    {root}/{modelName}/{modelVersion}/{schemaVersion}/
        model.<fmt>
        components/<kind>.<fmt>
        relationships/<name>.<fmt>

Path computation and validation only; directory creation lives in
PackageLayout.create().
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from modelbridge.codec import ENTITY_SUFFIXES, OutputFormat

if TYPE_CHECKING:
    from modelbridge.contracts.entities import (
        ComponentDefinition,
        ModelDefinition,
        RelationshipDefinition,
    )

MODEL_FILE_STEM = "model"
COMPONENTS_DIR = "components"
RELATIONSHIPS_DIR = "relationships"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._+-]")


def safe_segment(value: str, *, what: str) -> str:
    """Validate a value used as a single path segment.

    Raises:
        ValueError: If the value is empty or could escape its parent.
    """
    if not value or value in {".", ".."} or "/" in value or "\\" in value:
        raise ValueError(f"invalid {what} for package path: {value!r}")
    return value


def file_stem(value: str) -> str:
    """Turn an entity name into a filesystem-safe file stem."""
    stem = _UNSAFE_CHARS.sub("-", value).strip("-.")
    return stem or "entity"


def model_root(root: Path, model_name: str) -> Path:
    """Return ``{root}/{modelName}``; the name is lower-cased."""
    return Path(root) / safe_segment(model_name.lower(), what="model name")


def versioned_dir(root: Path, model_name: str, model_version: str, schema_version: str) -> Path:
    """Return ``{root}/{modelName}/{modelVersion}/{schemaVersion}``."""
    return (
        model_root(root, model_name)
        / safe_segment(model_version, what="model version")
        / safe_segment(schema_version, what="schema version")
    )


@dataclass(frozen=True)
class PackageLayout:
    """Paths of one canonical package rooted at ``version_dir``."""

    model_dir: Path
    version_dir: Path
    fmt: OutputFormat = OutputFormat.JSON

    @property
    def model_file(self) -> Path:
        return self.version_dir / f"{MODEL_FILE_STEM}.{self.fmt.extension}"

    @property
    def components_dir(self) -> Path:
        return self.version_dir / COMPONENTS_DIR

    @property
    def relationships_dir(self) -> Path:
        return self.version_dir / RELATIONSHIPS_DIR

    def component_file(self, component: ComponentDefinition) -> Path:
        return self.components_dir / f"{file_stem(component.kind)}.{self.fmt.extension}"

    def relationship_file(self, relationship: RelationshipDefinition) -> Path:
        stem = file_stem(relationship.name)
        if relationship.id:
            stem = f"{stem}-{relationship.id[:8]}"
        return self.relationships_dir / f"{stem}.{self.fmt.extension}"

    def create(self) -> None:
        """Create the version, components and relationships directories."""
        for path in (self.version_dir, self.components_dir, self.relationships_dir):
            path.mkdir(parents=True, exist_ok=True, mode=0o700)


def layout_for(root: Path, model: ModelDefinition, fmt: OutputFormat = OutputFormat.JSON) -> PackageLayout:
    """Compute the package layout for a model under ``root``."""
    return PackageLayout(
        model_dir=model_root(root, model.name),
        version_dir=versioned_dir(root, model.name, model.content_version, model.version),
        fmt=fmt,
    )


def unique_path(path: Path) -> Path:
    """Return ``path`` or the first ``stem-N`` variant that does not exist."""
    if not path.exists():
        return path
    n = 2
    while True:
        candidate = path.with_name(f"{path.stem}-{n}{path.suffix}")
        if not candidate.exists():
            return candidate
        n += 1


def _model_files(path: Path) -> list[Path]:
    return sorted(
        p
        for p in path.iterdir()
        if p.is_file() and p.stem == MODEL_FILE_STEM and p.suffix.lower() in ENTITY_SUFFIXES
    )


def validate_package_root(path: Path) -> list[str]:
    """Validate that ``path`` is the version directory of a canonical package.

    Returns:
        List of validation error messages (empty if valid).
    """
    errors: list[str] = []
    path = Path(path)

    if not path.exists():
        errors.append(f"Package directory does not exist: {path}")
        return errors
    if not path.is_dir():
        errors.append(f"Package path is not a directory: {path}")
        return errors

    model_files = _model_files(path)
    if not model_files:
        errors.append(f"Missing {MODEL_FILE_STEM}.<json|yaml> in {path}")
    elif len(model_files) > 1:
        names = ", ".join(p.name for p in model_files)
        errors.append(f"Multiple model definitions in {path}: {names}")

    for sub in (COMPONENTS_DIR, RELATIONSHIPS_DIR):
        sub_path = path / sub
        if not sub_path.exists():
            continue
        if not sub_path.is_dir():
            errors.append(f"{sub} is not a directory in {path}")
            continue
        for entry in sorted(sub_path.iterdir()):
            if entry.is_file() and entry.suffix.lower() not in ENTITY_SUFFIXES:
                errors.append(f"Unsupported file in {sub}: {entry.name}")

    return errors


def is_package_root(path: Path) -> bool:
    return not validate_package_root(path)


def find_package_roots(root: Path) -> list[Path]:
    """Find every valid package version directory below ``root``."""
    root = Path(root)
    if not root.is_dir():
        return []
    candidates = {p.parent for p in root.rglob(f"{MODEL_FILE_STEM}.*") if p.is_file()}
    return sorted(p for p in candidates if is_package_root(p))
