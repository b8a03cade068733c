"""File-signature sniffing for downloaded model artifacts."""

from __future__ import annotations

DEFAULT_EXTENSION = ".tar"

# (offset, magic, extension); checked in order
_SIGNATURES: tuple[tuple[int, bytes, str], ...] = (
    (0, b"\x1f\x8b", ".tar.gz"),
    (0, b"PK\x03\x04", ".zip"),
    (0, b"PK\x05\x06", ".zip"),
    (0, b"BZh", ".tar.bz2"),
    (0, b"\xfd7zXZ\x00", ".tar.xz"),
    (257, b"ustar", ".tar"),
)


def detect_file_type(data: bytes) -> str:
    """Guess the file extension of ``data`` from its leading bytes.

    Falls back to JSON/YAML detection for text payloads and to ``.tar``
    when nothing matches.
    """
    for offset, magic, extension in _SIGNATURES:
        if data[offset : offset + len(magic)] == magic:
            return extension

    head = data[:512].lstrip()
    if head.startswith((b"{", b"[")):
        return ".json"
    if head.startswith((b"---", b"apiVersion:", b"schemaVersion:", b"kind:")):
        return ".yaml"
    return DEFAULT_EXTENSION
