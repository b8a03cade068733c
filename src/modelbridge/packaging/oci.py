"""OCI image packaging for model packages.

A model package is shipped as a single-layer OCI image saved in the OCI
image layout, as a tar:

    oci-layout                      {"imageLayoutVersion": "1.0.0"}
    index.json                      image index, one manifest
    blobs/sha256/<manifest digest>  image manifest
    blobs/sha256/<config digest>    image config
    blobs/sha256/<layer digest>     tar+gzip of the package directory

Blob digests are verified when an image is read back.
"""

from __future__ import annotations

import gzip
import hashlib
import io
import re
import tarfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

import orjson

from modelbridge.packaging.archive import (
    ArchiveError,
    extract_tar,
    normalize_tar_info,
    tar_directory,
)

OCI_LAYOUT_FILE = "oci-layout"
OCI_INDEX_FILE = "index.json"
OCI_LAYOUT_VERSION = "1.0.0"

MEDIA_TYPE_INDEX = "application/vnd.oci.image.index.v1+json"
MEDIA_TYPE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
MEDIA_TYPE_CONFIG = "application/vnd.oci.image.config.v1+json"
MEDIA_TYPE_LAYER = "application/vnd.oci.image.layer.v1.tar+gzip"

ANNOTATION_REF_NAME = "org.opencontainers.image.ref.name"
ANNOTATION_TITLE = "org.opencontainers.image.title"

_DIGEST_PATTERN = re.compile(r"^sha256:[a-f0-9]{64}$")


class OCIError(Exception):
    """Raised when an OCI image cannot be built or read."""


def sha256_digest(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


@dataclass(frozen=True)
class Descriptor:
    """OCI content descriptor.

    Attributes:
        media_type: Media type of the referenced content.
        digest: ``sha256:<hex>`` digest.
        size: Size of the content in bytes.
        annotations: Optional annotations.
    """

    media_type: str
    digest: str
    size: int
    annotations: dict[str, str] = field(default_factory=dict)

    @property
    def blob_path(self) -> PurePosixPath:
        algorithm, _, hexdigest = self.digest.partition(":")
        return PurePosixPath("blobs", algorithm, hexdigest)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "mediaType": self.media_type,
            "digest": self.digest,
            "size": self.size,
        }
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Descriptor:
        return cls(
            media_type=data["mediaType"],
            digest=data["digest"],
            size=int(data["size"]),
            annotations=dict(data.get("annotations") or {}),
        )


@dataclass(frozen=True)
class Blob:
    media_type: str
    data: bytes
    annotations: dict[str, str] = field(default_factory=dict)

    def descriptor(self) -> Descriptor:
        return Descriptor(
            media_type=self.media_type,
            digest=sha256_digest(self.data),
            size=len(self.data),
            annotations=self.annotations,
        )


@dataclass(frozen=True)
class OCIImage:
    """Built image: manifest, config and layer blobs."""

    manifest: Blob
    config: Blob
    layers: list[Blob]

    @property
    def digest(self) -> str:
        return sha256_digest(self.manifest.data)

    def blobs(self) -> list[Blob]:
        return [self.manifest, self.config, *self.layers]


def build_image(source_dir: Path) -> OCIImage:
    """Build a single-layer image whose layer is the ``source_dir`` tree.

    Raises:
        OCIError: If the directory cannot be read.
    """
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        raise OCIError(f"image source is not a directory: {source_dir}")
    try:
        layer_tar = tar_directory(source_dir)
        layer_gz = gzip.compress(layer_tar, mtime=0)
    except OSError as e:
        raise OCIError(f"cannot read image source {source_dir}: {e}") from e

    layer = Blob(
        media_type=MEDIA_TYPE_LAYER,
        data=layer_gz,
        annotations={ANNOTATION_TITLE: source_dir.name},
    )
    config_doc = {
        "architecture": "amd64",
        "os": "linux",
        "config": {},
        "rootfs": {"type": "layers", "diff_ids": [sha256_digest(layer_tar)]},
    }
    config = Blob(media_type=MEDIA_TYPE_CONFIG, data=orjson.dumps(config_doc))
    manifest_doc = {
        "schemaVersion": 2,
        "mediaType": MEDIA_TYPE_MANIFEST,
        "config": config.descriptor().to_dict(),
        "layers": [layer.descriptor().to_dict()],
    }
    manifest = Blob(media_type=MEDIA_TYPE_MANIFEST, data=orjson.dumps(manifest_doc))
    return OCIImage(manifest=manifest, config=config, layers=[layer])


def _add_bytes(tar: tarfile.TarFile, name: str, data: bytes) -> None:
    info = normalize_tar_info(tarfile.TarInfo(name))
    info.size = len(data)
    tar.addfile(info, io.BytesIO(data))


def save_oci_artifact(image: OCIImage, tar_path: Path, name: str) -> Path:
    """Save ``image`` as an OCI image layout tar at ``tar_path``.

    Raises:
        OCIError: If the tar cannot be written.
    """
    manifest_desc = image.manifest.descriptor()
    manifest_desc = Descriptor(
        media_type=manifest_desc.media_type,
        digest=manifest_desc.digest,
        size=manifest_desc.size,
        annotations={ANNOTATION_REF_NAME: name},
    )
    index_doc = {
        "schemaVersion": 2,
        "mediaType": MEDIA_TYPE_INDEX,
        "manifests": [manifest_desc.to_dict()],
    }
    try:
        with tarfile.open(tar_path, mode="w", format=tarfile.PAX_FORMAT) as tar:
            _add_bytes(tar, OCI_LAYOUT_FILE, orjson.dumps({"imageLayoutVersion": OCI_LAYOUT_VERSION}))
            _add_bytes(tar, OCI_INDEX_FILE, orjson.dumps(index_doc))
            for blob in image.blobs():
                _add_bytes(tar, blob.descriptor().blob_path.as_posix(), blob.data)
    except (tarfile.TarError, OSError) as e:
        raise OCIError(f"cannot write OCI artifact {tar_path}: {e}") from e
    return Path(tar_path)


def _member_names(tar: tarfile.TarFile) -> set[str]:
    return {PurePosixPath(m.name).as_posix().removeprefix("./") for m in tar.getmembers()}


def is_oci_artifact(data: bytes) -> bool:
    """True if ``data`` is a tar in OCI image layout."""
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tar:
            names = _member_names(tar)
    except (tarfile.TarError, OSError, EOFError):
        return False
    return OCI_LAYOUT_FILE in names and OCI_INDEX_FILE in names


def is_oci_layout_dir(path: Path) -> bool:
    return (path / OCI_LAYOUT_FILE).is_file() and (path / OCI_INDEX_FILE).is_file()


def _read_blob(layout_dir: Path, desc: Descriptor) -> bytes:
    if not _DIGEST_PATTERN.match(desc.digest):
        raise OCIError(f"unsupported blob digest {desc.digest!r}")
    blob_file = layout_dir / desc.blob_path
    try:
        data = blob_file.read_bytes()
    except OSError as e:
        raise OCIError(f"missing blob {desc.digest}: {e}") from e
    if sha256_digest(data) != desc.digest:
        raise OCIError(f"digest mismatch for blob {desc.digest}")
    return data


def unpack_layout_dir(layout_dir: Path, dest: Path) -> list[Path]:
    """Extract the layers of every image in an extracted OCI layout.

    Returns:
        Directories the layers were extracted into (one per manifest).

    Raises:
        OCIError: On malformed index/manifest documents or digest mismatches.
    """
    try:
        index = orjson.loads((layout_dir / OCI_INDEX_FILE).read_bytes())
        manifests = [Descriptor.from_dict(m) for m in index.get("manifests", [])]
    except (OSError, orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise OCIError(f"invalid OCI index: {e}") from e

    extracted: list[Path] = []
    for n, manifest_desc in enumerate(manifests):
        try:
            manifest = orjson.loads(_read_blob(layout_dir, manifest_desc))
            layers = [Descriptor.from_dict(layer) for layer in manifest.get("layers", [])]
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise OCIError(f"invalid OCI manifest {manifest_desc.digest}: {e}") from e
        target = dest / f"image-{n}"
        target.mkdir(parents=True, exist_ok=True)
        for layer in layers:
            try:
                extract_tar(io.BytesIO(_read_blob(layout_dir, layer)), target)
            except ArchiveError as e:
                raise OCIError(f"cannot extract layer {layer.digest}: {e}") from e
        extracted.append(target)
    return extracted


def extract_oci_image(tar_path: Path, dest: Path) -> list[Path]:
    """Extract the package trees contained in an OCI image tar."""
    layout_dir = dest / "layout"
    layout_dir.mkdir(parents=True, exist_ok=True)
    try:
        extract_tar(Path(tar_path), layout_dir)
    except ArchiveError as e:
        raise OCIError(str(e)) from e
    return unpack_layout_dir(layout_dir, dest / "rootfs")
