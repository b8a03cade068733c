"""
Export query parsing.

Boolean flags are parsed into a ParsedFlag that keeps "absent" and
"invalid" apart; resolve_flag then applies the default. Both currently
resolve to the default, but invalid values are logged.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from modelbridge.codec import OutputFormat

logger = logging.getLogger(__name__)

FILE_TYPE_OCI = "oci"
FILE_TYPE_TAR_GZ = "tar.gz"
DEFAULT_FILE_TYPE = FILE_TYPE_OCI

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class FlagState(str, Enum):
    ABSENT = "absent"
    INVALID = "invalid"
    VALUE = "value"


@dataclass(frozen=True)
class ParsedFlag:
    """A boolean query parameter as received."""

    state: FlagState
    value: bool | None = None
    raw: str | None = None

    @property
    def is_invalid(self) -> bool:
        return self.state is FlagState.INVALID


def parse_flag(raw: str | None) -> ParsedFlag:
    """Parse a boolean flag; accepts 1/t/true/0/f/false in the usual cases."""
    if raw is None or raw == "":
        return ParsedFlag(FlagState.ABSENT, raw=raw)
    if raw in _TRUE_VALUES:
        return ParsedFlag(FlagState.VALUE, True, raw)
    if raw in _FALSE_VALUES:
        return ParsedFlag(FlagState.VALUE, False, raw)
    return ParsedFlag(FlagState.INVALID, raw=raw)


def resolve_flag(flag: ParsedFlag, default: bool = True, *, name: str = "") -> bool:
    """Apply ``default`` to an absent or invalid flag."""
    if flag.state is FlagState.VALUE and flag.value is not None:
        return flag.value
    if flag.is_invalid:
        logger.warning(
            "Invalid boolean query parameter, using default",
            extra={"param": name, "value": flag.raw, "default": default},
        )
    return default


@dataclass(frozen=True)
class ExportQuery:
    """Validated export request.

    Attributes:
        id: Model id.
        name: Model name.
        version: Model content version.
        output_format: Encoding of the per-entity files.
        file_type: ``oci`` for an OCI image tar, anything else for tar.gz.
        components: Parsed ``components`` flag.
        relationships: Parsed ``relationships`` flag.
    """

    id: str = ""
    name: str = ""
    version: str = ""
    output_format: OutputFormat = OutputFormat.JSON
    file_type: str = DEFAULT_FILE_TYPE
    components: ParsedFlag = ParsedFlag(FlagState.ABSENT)
    relationships: ParsedFlag = ParsedFlag(FlagState.ABSENT)

    @property
    def include_components(self) -> bool:
        return resolve_flag(self.components, name="components")

    @property
    def include_relationships(self) -> bool:
        return resolve_flag(self.relationships, name="relationships")

    @property
    def is_oci(self) -> bool:
        return self.file_type == FILE_TYPE_OCI

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> ExportQuery:
        """Build a query from URL query parameters.

        Raises:
            ValueError: If ``output_format`` is not supported.
        """
        return cls(
            id=params.get("id", ""),
            name=params.get("name", ""),
            version=params.get("version", ""),
            output_format=OutputFormat.parse(params.get("output_format")),
            file_type=params.get("file_type") or DEFAULT_FILE_TYPE,
            components=parse_flag(params.get("components")),
            relationships=parse_flag(params.get("relationships")),
        )

    def not_found_message(self) -> str:
        """Message naming which of id, name and version was supplied."""
        parts = []
        if self.id:
            parts.append(f"id {self.id}")
        if self.name:
            parts.append(f"name {self.name}")
        if self.version:
            parts.append(f"version {self.version}")
        if not parts:
            return "model has not been found"
        return f"model with {' '.join(parts)} has not been found"
