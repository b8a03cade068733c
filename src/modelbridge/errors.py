"""
Error taxonomy for the import/export pipeline.

Terminal request errors derive from ModelBridgeError and carry the HTTP
status the surface should answer with. Per-entity registration failures are
never raised; they land in the RegistrationReport instead.
"""

from __future__ import annotations


class ModelBridgeError(Exception):
    """Base exception for terminal pipeline errors."""

    status_code: int = 500

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        if cause is not None:
            self.__cause__ = cause


class MalformedInputError(ModelBridgeError):
    """Client supplied input that cannot be decoded."""

    status_code = 400


class InvalidFileTypeError(MalformedInputError):
    """Raised when a data URL does not carry the expected media type prefix."""


class InvalidBase64Error(MalformedInputError):
    """Raised when a base64 payload cannot be decoded."""


class InvalidRequestError(MalformedInputError):
    """Raised when the request body is not a valid import request."""


class InvalidSheetError(MalformedInputError):
    """Raised when a CSV sheet cannot be parsed or one of its rows is invalid."""


class InvalidManifestError(MalformedInputError):
    """Raised when a scaffold source is not a YAML/JSON manifest."""


class ResourceError(ModelBridgeError):
    """I/O failure while materializing or packaging a model."""

    status_code = 500


class TempResourceError(ResourceError):
    """Raised when a temporary file or directory cannot be created or written."""


class DownloadError(ResourceError):
    """Raised when a remote file cannot be downloaded."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status = status


class GenerationError(ResourceError):
    """Raised when a generator fails to produce a model package."""


class CacheCopyError(ResourceError):
    """Raised when generated packages cannot be copied into the registry cache."""


class PackagingError(ResourceError):
    """Raised when an export artifact cannot be built."""


class RegistryUnavailableError(ModelBridgeError):
    """Raised when the backing registry cannot answer a query."""

    status_code = 500


class EntityDecodeError(Exception):
    """Raised when an entity file cannot be decoded into a known entity type.

    Not terminal: the registration pipeline records it per entity.
    """

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"{source}: {detail}")
        self.source = source
        self.detail = detail
