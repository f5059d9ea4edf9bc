"""
Schema introspection: walks a value into field descriptors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from .engine import EngineError, FieldEntry, Kind, SchemaValue, is_definition, strip_definition
from .errors import IntrospectionError

logger = logging.getLogger(__name__)


class SemanticType(str, Enum):
    """Target-independent type of a field."""

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    NUMBER = "number"
    BOOL = "bool"
    LIST = "list"
    STRUCT = "struct"
    UNKNOWN = "unknown"


# Checked in order; the first kind present in the mask wins
_PRIORITY: list[tuple[Kind, SemanticType]] = [
    (Kind.STRING, SemanticType.STRING),
    (Kind.INT, SemanticType.INT),
    (Kind.FLOAT, SemanticType.FLOAT),
    (Kind.NUMBER, SemanticType.NUMBER),
    (Kind.BOOL, SemanticType.BOOL),
    (Kind.LIST, SemanticType.LIST),
    (Kind.STRUCT, SemanticType.STRUCT),
]


def semantic_type(kind: Kind) -> SemanticType:
    """
    Map a kind mask to a semantic type by fixed priority.

    A mask allowing several kinds (``int | string``) maps to the first one in
    the order string, int, float, number, bool, list, struct.

    Args:
        kind: The kind mask of a value

    Returns:
        The semantic type, UNKNOWN for null, bottom or empty masks
    """
    for flag, semantic in _PRIORITY:
        if kind & flag:
            return semantic
    return SemanticType.UNKNOWN


@dataclass(frozen=True)
class FieldInfo:
    """A field discovered by introspection."""

    name: str
    path: str
    type: SemanticType
    optional: bool = False


@dataclass
class SchemaInfo:
    """All fields of a value, plus the definition labels without their marker."""

    fields: list[FieldInfo] = field(default_factory=list)
    definitions: list[str] = field(default_factory=list)


def iter_fields(value: SchemaValue) -> Iterator[FieldEntry]:
    """
    Iterate a value's fields with optional and definition fields included.

    Raises:
        IntrospectionError: If the value cannot be walked as a struct
    """
    try:
        return value.fields(include_optional=True, include_definitions=True)
    except EngineError as exc:
        raise IntrospectionError("failed to iterate schema fields") from exc


def introspect(value: SchemaValue) -> SchemaInfo:
    """
    Describe the fields and definitions of a value.

    A field whose kind cannot be computed is logged and recorded as UNKNOWN.

    Raises:
        IntrospectionError: If field iteration cannot start
    """
    info = SchemaInfo()
    for entry in iter_fields(value):
        try:
            kind = entry.value.kind_mask()
        except EngineError as exc:
            logger.warning(f"Could not determine the type of {entry.selector}: {exc}")
            kind = Kind.BOTTOM

        info.fields.append(
            FieldInfo(
                name=entry.label,
                path=entry.selector,
                type=semantic_type(kind),
                optional=entry.optional,
            )
        )
        if is_definition(entry.label):
            info.definitions.append(strip_definition(entry.label))

    logger.debug(f"Introspected {len(info.fields)} field(s), {len(info.definitions)} definition(s)")
    return info


def format_schema_info(info: SchemaInfo) -> str:
    """Render a SchemaInfo as the text shown by the ``info`` command."""
    lines = ["Schema Information:", ""]

    if info.definitions:
        lines.append(f"Definitions ({len(info.definitions)}):")
        for name in info.definitions:
            lines.append(f"  - #{name}")
        lines.append("")

    regular = [f for f in info.fields if not is_definition(f.name)]
    lines.append(f"Fields ({len(regular)}):")
    for f in regular:
        marker = "?" if f.optional else ""
        lines.append(f"  {f.name}{marker}: {f.type.value}")

    return "\n".join(lines) + "\n"
