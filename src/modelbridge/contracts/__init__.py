"""Canonical contracts shared by adapters, registration and export."""

from modelbridge.contracts.entities import (
    COMPONENT_SCHEMA_VERSION,
    MODEL_SCHEMA_VERSION,
    RELATIONSHIP_SCHEMA_VERSION,
    Category,
    ComponentDefinition,
    ComponentMetadata,
    ComponentSpec,
    Entity,
    EntityType,
    ModelDefinition,
    ModelMetadata,
    PackageInfo,
    Registrant,
    RelationshipDefinition,
    entity_name,
    entity_type_for_schema_version,
    entity_type_of,
)
from modelbridge.contracts.registry import (
    Connection,
    EntityPage,
    EntityRegistrationResult,
    ModelFilter,
    PaginationParams,
    RegistrantFilter,
    RegistrantPage,
    Registry,
    first_model,
)
from modelbridge.contracts.requests import (
    CsvImportRequest,
    EntityRegistrationRequest,
    FileImportRequest,
    ImportRequest,
    ModelFields,
    RemoteArchiveImportRequest,
    StatusUpdateRequest,
    UploadType,
    UrlImportRequest,
    parse_body,
    parse_import_request,
)

__all__ = [
    "COMPONENT_SCHEMA_VERSION",
    "MODEL_SCHEMA_VERSION",
    "RELATIONSHIP_SCHEMA_VERSION",
    "Category",
    "ComponentDefinition",
    "ComponentMetadata",
    "ComponentSpec",
    "Connection",
    "CsvImportRequest",
    "EntityRegistrationRequest",
    "Entity",
    "EntityPage",
    "EntityRegistrationResult",
    "EntityType",
    "FileImportRequest",
    "ImportRequest",
    "ModelDefinition",
    "ModelFields",
    "ModelFilter",
    "ModelMetadata",
    "PaginationParams",
    "PackageInfo",
    "Registrant",
    "RegistrantFilter",
    "RegistrantPage",
    "Registry",
    "RelationshipDefinition",
    "RemoteArchiveImportRequest",
    "StatusUpdateRequest",
    "UploadType",
    "UrlImportRequest",
    "entity_name",
    "entity_type_for_schema_version",
    "entity_type_of",
    "first_model",
    "parse_body",
    "parse_import_request",
]
