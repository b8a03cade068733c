"""
SVG asset handling for models and components.

Registry entities reference their icons either inline (the SVG markup) or
by a path relative to the asset root. Registration stores inline icons on
disk and keeps the relative path; export reads the files back inline so the
exported package carries its own icons.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TypeVar

from modelbridge.contracts.entities import ComponentDefinition, ModelDefinition
from modelbridge.layout import file_stem

logger = logging.getLogger(__name__)

SVG_FIELDS = ("svg_color", "svg_white", "svg_complete")

# Relative to the asset root
SVG_STORE_DIR = Path("ui/public/static/img/meshmodels")

_SVG_VARIANT_DIRS = {"svg_color": "color", "svg_white": "white", "svg_complete": "complete"}

E = TypeVar("E", ModelDefinition, ComponentDefinition)


def is_inline_svg(value: str | None) -> bool:
    return bool(value) and value.lstrip().startswith("<")  # type: ignore[union-attr]


def write_svgs_to_filesystem(component: ComponentDefinition, asset_root: Path) -> ComponentDefinition:
    """Store inline component icons below the asset root.

    Returns a copy whose SVG fields hold paths relative to ``asset_root``.
    Fields that already hold a path are left alone.
    """
    updates: dict[str, str] = {}
    model_name = file_stem(component.model_name or "unknown")
    kind = file_stem(component.kind).lower()
    for field_name in SVG_FIELDS:
        value = getattr(component.metadata, field_name)
        if not is_inline_svg(value):
            continue
        variant = _SVG_VARIANT_DIRS[field_name]
        relative = SVG_STORE_DIR / model_name / variant / f"{kind}-{variant}.svg"
        target = Path(asset_root) / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(value)
        except OSError as e:
            logger.warning(
                "Failed to write SVG asset",
                extra={"component": component.kind, "svg_field": field_name, "error": str(e)},
            )
            continue
        updates[field_name] = relative.as_posix()

    if not updates:
        return component
    metadata = component.metadata.model_copy(update=updates)
    return component.model_copy(update={"metadata": metadata})


def inline_svg_references(entity: E, asset_root: Path) -> E:
    """Replace SVG path references with the file contents.

    Missing or unreadable files are logged and the reference is kept.
    """
    updates: dict[str, str] = {}
    for field_name in SVG_FIELDS:
        value = getattr(entity.metadata, field_name)
        if not value or is_inline_svg(value):
            continue
        path = Path(asset_root) / value
        try:
            updates[field_name] = path.read_text()
        except OSError as e:
            logger.debug(
                "SVG reference not readable",
                extra={"svg_field": field_name, "ref": value, "error": str(e)},
            )
    if not updates:
        return entity
    metadata = entity.metadata.model_copy(update=updates)
    return entity.model_copy(update={"metadata": metadata})
