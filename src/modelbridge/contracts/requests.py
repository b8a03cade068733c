"""
Import request contracts.

An import request is a sum type discriminated by ``uploadType``. The
discriminant is read first and only the matching variant's body is
validated; bodies forbid extra keys so fields of another variant are
rejected instead of silently ignored.

Wire shape (same for every variant):
    {"uploadType": "csv", "register": true, "importBody": {...}}
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, TypeVar

import orjson
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from modelbridge.errors import InvalidRequestError

B = TypeVar("B", bound=BaseModel)


class UploadType(str, Enum):
    CSV = "csv"
    URL = "url"
    FILE = "file"
    URL_IMPORT = "urlImport"


class _Body(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        protected_namespaces=(),
    )


class CsvImportBody(_Body):
    """Three base64 data URLs (``data:text/csv;base64,...``)."""

    model_csv: str
    component_csv: str
    relationship_csv: str


class ModelFields(_Body):
    """Inline model metadata supplied with a URL import."""

    model: str = Field(..., min_length=1)
    model_display_name: str = ""
    primary_color: str = ""
    secondary_color: str = ""
    category: str = ""
    registrant: str = ""
    shape: str = ""
    sub_category: str = ""
    svg_color: str = ""
    svg_white: str = ""
    svg_complete: str = ""
    is_annotation: bool = False
    publish_to_registry: bool = False

    @field_validator("model")
    @classmethod
    def reject_blank_model(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("model name must not be blank")
        return v


class UrlImportBody(_Body):
    url: str = Field(..., min_length=1)
    model: ModelFields


class FileImportBody(_Body):
    model_file: str = Field(..., min_length=1)
    file_name: str = ""


class RemoteArchiveImportBody(_Body):
    url: str = Field(..., min_length=1)


class _ImportRequestBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Named apart from BaseModel.register (ABCMeta), which a plain field would shadow.
    register_entities: bool = Field(default=False, alias="register")


class CsvImportRequest(_ImportRequestBase):
    upload_type: Literal["csv"] = "csv"
    import_body: CsvImportBody


class UrlImportRequest(_ImportRequestBase):
    upload_type: Literal["url"] = "url"
    import_body: UrlImportBody


class FileImportRequest(_ImportRequestBase):
    upload_type: Literal["file"] = "file"
    import_body: FileImportBody


class RemoteArchiveImportRequest(_ImportRequestBase):
    upload_type: Literal["urlImport"] = "urlImport"
    import_body: RemoteArchiveImportBody


ImportRequest = Annotated[
    CsvImportRequest | UrlImportRequest | FileImportRequest | RemoteArchiveImportRequest,
    Field(discriminator="upload_type"),
]

_IMPORT_REQUEST_ADAPTER: TypeAdapter[ImportRequest] = TypeAdapter(ImportRequest)


def parse_import_request(data: bytes | str) -> ImportRequest:
    """Decode and validate an import request body.

    Raises:
        InvalidRequestError: If the body is not JSON, has an unknown
            ``uploadType`` or its ``importBody`` does not match the variant.
    """
    if isinstance(data, str):
        data = data.encode()
    try:
        raw = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise InvalidRequestError(f"invalid request format: {e}", cause=e) from e
    try:
        return _IMPORT_REQUEST_ADAPTER.validate_python(raw)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidRequestError(f"invalid import request: {errors}", cause=e) from e


class ConnectionBody(_Body):
    kind: str = ""


class EntityRegistrationRequest(_Body):
    """Single entity registration: ``{"connection", "entityType", "entity"}``."""

    connection: ConnectionBody = Field(default_factory=ConnectionBody)
    entity_type: str = Field(..., min_length=1)
    entity: dict[str, Any]


class StatusUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1)
    display_name: str = Field(default="", alias="displayname")


def parse_body(model: type[B], data: bytes | str) -> B:
    """Decode and validate a JSON body into ``model``.

    Raises:
        InvalidRequestError: If the body is not JSON or does not validate.
    """
    try:
        return model.model_validate_json(data)
    except ValidationError as e:
        raise InvalidRequestError(f"invalid request body: {e}", cause=e) from e
