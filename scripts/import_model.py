#!/usr/bin/env python3
"""
Run an import request locally without a registry.

Reads an import request (the same JSON body the register route accepts),
materializes its packages with the matching adapter and copies them to
the output directory. Nothing is registered.

Usage:
    python -m scripts.import_model --request request.json --output out/
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import sys
from pathlib import Path

from modelbridge.config import PipelineConfig
from modelbridge.contracts.requests import UploadType, parse_import_request
from modelbridge.errors import ModelBridgeError
from modelbridge.ingest import build_adapters
from modelbridge.ingest.download import HttpDownloader
from modelbridge.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def run_import(body: bytes, output: Path, config: PipelineConfig) -> list[Path]:
    """Materialize ``body`` and copy every produced Dir under ``output``.

    Returns:
        The copied paths.

    Raises:
        ModelBridgeError: If the request is invalid or the adapter fails.
    """
    request = parse_import_request(body)
    downloader = HttpDownloader(
        timeout_s=config.download_timeout_s,
        max_bytes=config.max_download_bytes,
    )
    adapters = build_adapters(config, downloader)
    copied: list[Path] = []
    try:
        async with adapters[UploadType(request.upload_type)].materialize(request) as result:
            output.mkdir(parents=True, exist_ok=True)
            for dir_ in result.dirs:
                # Generated packages keep their {model}/{version}/{schemaVersion} segments.
                relative = dir_.path.relative_to(result.root) if result.root else Path(dir_.path.name)
                target = output / relative
                if dir_.is_file:
                    shutil.copy2(dir_.path, target)
                else:
                    shutil.copytree(dir_.path, target, dirs_exist_ok=True)
                copied.append(target)
    finally:
        await downloader.close()
    return copied


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Materialize an import request without registering it.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--request",
        type=Path,
        required=True,
        help="Path to the import request JSON",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        required=True,
        help="Directory the generated packages are copied to",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO, json_format=False)
    config = PipelineConfig.from_env()

    try:
        copied = asyncio.run(run_import(args.request.read_bytes(), args.output, config))
    except (OSError, ModelBridgeError) as e:
        logger.error("Import failed: %s", e)
        return 1

    for path in copied:
        print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
