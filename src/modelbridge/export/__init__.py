"""Export of registered models as OCI image or tar.gz artifacts."""

from modelbridge.export.exporter import (
    CONTENT_TYPE_GZIP,
    CONTENT_TYPE_TAR,
    ExportedArtifact,
    ModelExporter,
    ModelNotFound,
    package_model_dir,
    write_package,
)
from modelbridge.export.query import (
    ExportQuery,
    FlagState,
    ParsedFlag,
    parse_flag,
    resolve_flag,
)

__all__ = [
    "CONTENT_TYPE_GZIP",
    "CONTENT_TYPE_TAR",
    "ExportQuery",
    "ExportedArtifact",
    "FlagState",
    "ModelExporter",
    "ModelNotFound",
    "ParsedFlag",
    "package_model_dir",
    "parse_flag",
    "resolve_flag",
    "write_package",
]
