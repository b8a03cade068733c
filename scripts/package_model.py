#!/usr/bin/env python3
"""
Package a local model directory as an OCI image tar or a gzip tarball.

The source must be a canonical package root (model file plus optional
components/ and relationships/ directories). The package is re-laid out
the same way the export route does it before being archived.

Usage:
    python -m scripts.package_model --source models/aws-ec2/v1.0.0/v1.0.0
    python -m scripts.package_model --source ./pkg --file-type tar.gz -o out/
"""

from __future__ import annotations

import argparse
import logging
import sys
import tempfile
from pathlib import Path

from modelbridge.codec import OutputFormat
from modelbridge.config import DEFAULT_ASSET_ROOT
from modelbridge.errors import ModelBridgeError
from modelbridge.export.exporter import package_model_dir, write_package
from modelbridge.export.query import FILE_TYPE_OCI, FILE_TYPE_TAR_GZ
from modelbridge.logging_config import setup_logging
from modelbridge.registration.discovery import load_package

logger = logging.getLogger(__name__)


def package_directory(
    source: Path,
    output: Path,
    *,
    oci: bool = True,
    fmt: OutputFormat = OutputFormat.JSON,
    asset_root: Path = DEFAULT_ASSET_ROOT,
) -> Path:
    """Package ``source`` and write the artifact.

    ``output`` may be a directory, in which case the artifact keeps its
    default file name.

    Returns:
        Path of the written artifact.

    Raises:
        ValueError: If ``source`` is not a loadable package root.
        ModelBridgeError: If packaging fails.
    """
    result = load_package(source)
    if result.failures or not result.units:
        details = "; ".join(f"{f.source}: {f.detail}" for f in result.failures)
        raise ValueError(f"cannot load package {source}: {details or 'empty package'}")

    unit = result.units[0]
    assert unit.model is not None
    model = unit.model.model_copy(
        update={"components": unit.components, "relationships": unit.relationships}
    )
    with tempfile.TemporaryDirectory(prefix="modelbridge-package-") as scratch:
        model_dir = write_package(model, Path(scratch), fmt, asset_root)
        artifact = package_model_dir(model_dir, model.name, oci=oci)

    target = output / artifact.filename if output.is_dir() else output
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(artifact.data)
    logger.info(
        "Packaged model",
        extra={
            "model": model.name,
            "components": len(unit.components),
            "relationships": len(unit.relationships),
            "size_bytes": len(artifact.data),
        },
    )
    return target


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Package a local model directory as an OCI image or tar.gz.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--source",
        type=Path,
        required=True,
        help="Package root containing the model file",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=Path("."),
        help="Artifact path or directory (default: current directory)",
    )
    parser.add_argument(
        "--file-type",
        choices=[FILE_TYPE_OCI, FILE_TYPE_TAR_GZ],
        default=FILE_TYPE_OCI,
        help="Artifact type (default: oci)",
    )
    parser.add_argument(
        "--output-format",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.JSON.value,
        help="Encoding of the packaged entity files (default: json)",
    )
    parser.add_argument(
        "--asset-root",
        type=Path,
        default=DEFAULT_ASSET_ROOT,
        help="Root that SVG file references are resolved against",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO, json_format=False)

    try:
        target = package_directory(
            args.source,
            args.output,
            oci=args.file_type == FILE_TYPE_OCI,
            fmt=OutputFormat.parse(args.output_format),
            asset_root=args.asset_root,
        )
    except (ValueError, ModelBridgeError) as e:
        logger.error("Packaging failed: %s", e)
        return 1

    print(f"Wrote {target}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
