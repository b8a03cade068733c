"""Archive and OCI image packaging of canonical package trees."""

from modelbridge.packaging.archive import (
    ArchiveError,
    compress_directory,
    extract_archive,
    is_archive_path,
    tar_directory,
)
from modelbridge.packaging.oci import (
    OCIError,
    OCIImage,
    build_image,
    extract_oci_image,
    is_oci_artifact,
    save_oci_artifact,
)
from modelbridge.packaging.sniff import detect_file_type

__all__ = [
    "ArchiveError",
    "OCIError",
    "OCIImage",
    "build_image",
    "compress_directory",
    "detect_file_type",
    "extract_archive",
    "extract_oci_image",
    "is_archive_path",
    "is_oci_artifact",
    "save_oci_artifact",
    "tar_directory",
]
