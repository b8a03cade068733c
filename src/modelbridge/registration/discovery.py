"""
Entity discovery for registration.

A Dir is either a package directory or a single file. Files may be one
entity document, a tar/tar.gz/zip archive or an OCI image tarball; archives
are extracted into a scratch directory that is removed before discovery
returns (entities are loaded into memory first).

Discovery groups entities by package: each PackagingUnit holds one model
and the components and relationships that belong to it.
"""

from __future__ import annotations

import logging
import tarfile
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from modelbridge.codec import ENTITY_SUFFIXES, load_entity
from modelbridge.contracts.entities import (
    ComponentDefinition,
    ModelDefinition,
    RelationshipDefinition,
)
from modelbridge.errors import EntityDecodeError
from modelbridge.layout import (
    COMPONENTS_DIR,
    MODEL_FILE_STEM,
    RELATIONSHIPS_DIR,
    find_package_roots,
    validate_package_root,
)
from modelbridge.packaging.archive import ArchiveError, extract_archive, is_archive_path
from modelbridge.packaging.oci import OCIError, is_oci_layout_dir, unpack_layout_dir

if TYPE_CHECKING:
    from modelbridge.ingest.base import Dir

logger = logging.getLogger(__name__)


@dataclass
class PackagingUnit:
    """One model and the entities registered with it.

    ``model`` is None for loose component/relationship files whose model
    back-reference is missing.
    """

    source: str
    model: ModelDefinition | None = None
    components: list[ComponentDefinition] = field(default_factory=list)
    relationships: list[RelationshipDefinition] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.components and not self.relationships


@dataclass(frozen=True)
class DiscoveryFailure:
    """A file or directory that produced no registrable entity."""

    source: str
    detail: str


@dataclass
class DiscoveryResult:
    units: list[PackagingUnit] = field(default_factory=list)
    failures: list[DiscoveryFailure] = field(default_factory=list)

    def extend(self, other: DiscoveryResult) -> None:
        self.units.extend(other.units)
        self.failures.extend(other.failures)


def _entity_files(path: Path) -> list[Path]:
    if not path.is_dir():
        return []
    return sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in ENTITY_SUFFIXES)


def load_package(root: Path) -> DiscoveryResult:
    """Load the package rooted at ``root`` into a single PackagingUnit."""
    result = DiscoveryResult()
    errors = validate_package_root(root)
    if errors:
        result.failures.extend(DiscoveryFailure(str(root), e) for e in errors)
        return result

    model_file = next(p for p in _entity_files(root) if p.stem == MODEL_FILE_STEM)
    try:
        model = load_entity(model_file)
    except EntityDecodeError as e:
        result.failures.append(DiscoveryFailure(str(model_file), e.detail))
        return result
    if not isinstance(model, ModelDefinition):
        result.failures.append(DiscoveryFailure(str(model_file), "model file is not a model definition"))
        return result

    unit = PackagingUnit(source=str(root), model=model)
    for path in _entity_files(root / COMPONENTS_DIR) + _entity_files(root / RELATIONSHIPS_DIR):
        try:
            entity = load_entity(path)
        except EntityDecodeError as e:
            result.failures.append(DiscoveryFailure(str(path), e.detail))
            continue
        if isinstance(entity, ComponentDefinition):
            unit.components.append(entity)
        elif isinstance(entity, RelationshipDefinition):
            unit.relationships.append(entity)
        else:
            result.failures.append(DiscoveryFailure(str(path), "unexpected model definition"))
    result.units.append(unit)
    return result


def _discover_tree(root: Path) -> DiscoveryResult:
    result = DiscoveryResult()
    roots = find_package_roots(root)
    for package_root in roots:
        result.extend(load_package(package_root))
    if not roots:
        result.failures.append(DiscoveryFailure(str(root), "no model package found"))
    return result


def _discover_single_entity(path: Path) -> DiscoveryResult:
    result = DiscoveryResult()
    try:
        entity = load_entity(path)
    except EntityDecodeError as e:
        result.failures.append(DiscoveryFailure(path.name, e.detail))
        return result

    if isinstance(entity, ModelDefinition):
        unit = PackagingUnit(
            source=path.name,
            model=entity.header(),
            components=list(entity.components or []),
            relationships=list(entity.relationships or []),
        )
    elif isinstance(entity, ComponentDefinition):
        unit = PackagingUnit(source=path.name, model=entity.model, components=[entity])
    else:
        unit = PackagingUnit(source=path.name, model=entity.model, relationships=[entity])
    result.units.append(unit)
    return result


def _looks_like_archive(path: Path) -> bool:
    if is_archive_path(path):
        return True
    try:
        return tarfile.is_tarfile(path) or zipfile.is_zipfile(path)
    except OSError:
        return False


def _discover_archive(path: Path, scratch: Path) -> DiscoveryResult:
    extracted = scratch / "extracted"
    try:
        extract_archive(path, extracted)
    except ArchiveError as e:
        return DiscoveryResult(failures=[DiscoveryFailure(path.name, str(e))])

    if is_oci_layout_dir(extracted):
        try:
            trees = unpack_layout_dir(extracted, scratch / "rootfs")
        except OCIError as e:
            return DiscoveryResult(failures=[DiscoveryFailure(path.name, str(e))])
        logger.debug("Extracted OCI image", extra={"file_name": path.name, "images": len(trees)})
        result = DiscoveryResult()
        for tree in trees:
            result.extend(_discover_tree(tree))
        return result
    return _discover_tree(extracted)


def discover(dir_: Dir, temp_root: Path | None = None) -> DiscoveryResult:
    """Load every entity reachable from ``dir_``.

    Blocking; run it in a worker thread from async code.
    """
    path = dir_.path
    if path.is_dir():
        return _discover_tree(path)
    if not path.is_file():
        return DiscoveryResult(failures=[DiscoveryFailure(str(path), "path does not exist")])
    if path.suffix.lower() in ENTITY_SUFFIXES:
        return _discover_single_entity(path)
    if _looks_like_archive(path):
        if temp_root is not None:
            temp_root.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix="modelbridge-extract-", dir=temp_root) as scratch:
            return _discover_archive(path, Path(scratch))
    return DiscoveryResult(failures=[DiscoveryFailure(path.name, "unsupported file type")])
