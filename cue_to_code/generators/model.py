"""
Target-independent type model built from an introspected schema value.

Generators translate this model instead of walking engine values directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..engine import EngineError, Kind, SchemaValue, is_definition, strip_definition
from ..errors import IntrospectionError
from ..introspect import SemanticType, iter_fields, semantic_type
from ..utils import type_name

logger = logging.getLogger(__name__)

# Deepest struct/list nesting followed when building the model
MAX_DEPTH = 32

# Appended to the root type name while it collides with a definition name
ROOT_SUFFIX = "Root"


@dataclass
class TypeRef:
    """A resolved type."""

    type: SemanticType = SemanticType.UNKNOWN

    # Element type of a list, None when unknown
    element: TypeRef | None = None

    # Fields of an inline struct
    fields: list[FieldDef] | None = None

    # Definition label (without marker) this type refers to
    reference: str = ""

    @property
    def is_struct(self) -> bool:
        return self.type == SemanticType.STRUCT and self.fields is not None and not self.reference


@dataclass
class FieldDef:
    """A field of a struct type."""

    name: str
    type_ref: TypeRef
    optional: bool = False
    path: str = ""


@dataclass
class TypeDef:
    """A named top-level type: a definition or the root type."""

    name: str
    label: str
    type_ref: TypeRef

    @property
    def is_struct(self) -> bool:
        return self.type_ref.is_struct

    @property
    def fields(self) -> list[FieldDef]:
        return self.type_ref.fields or []


@dataclass
class TypeModel:
    """Definitions in declaration order, then the root type."""

    definitions: list[TypeDef] = field(default_factory=list)
    root: TypeDef | None = None

    def type_names(self) -> dict[str, str]:
        """Definition label -> type name."""
        return {d.label: d.name for d in self.definitions}


def _kind(value: SchemaValue, path: str) -> Kind:
    try:
        return value.kind_mask()
    except EngineError as exc:
        logger.warning(f"Could not determine the type of {path}: {exc}")
        return Kind.BOTTOM


def build_type(value: SchemaValue, path: str = "", depth: int = 0) -> TypeRef:
    """
    Build the TypeRef of a value, recursing into lists and inline structs.

    References are not followed, so recursive definitions terminate.

    Raises:
        IntrospectionError: If a nested struct cannot be walked
    """
    if depth > MAX_DEPTH:
        raise IntrospectionError(f"schema nesting deeper than {MAX_DEPTH} levels at {path}")

    kind = _kind(value, path)
    semantic = semantic_type(kind)

    reference = value.reference()
    if reference:
        return TypeRef(type=semantic, reference=strip_definition(reference))

    if semantic == SemanticType.LIST:
        element = value.element()
        element_ref = build_type(element, f"{path}.*", depth + 1) if element is not None else None
        return TypeRef(type=semantic, element=element_ref)

    if semantic == SemanticType.STRUCT:
        try:
            entries = list(value.fields(include_optional=True, include_definitions=False))
        except EngineError as exc:
            raise IntrospectionError(f"failed to iterate fields of {path or 'value'}") from exc
        fields = [
            FieldDef(
                name=entry.label,
                type_ref=build_type(entry.value, entry.selector, depth + 1),
                optional=entry.optional,
                path=entry.selector,
            )
            for entry in entries
        ]
        return TypeRef(type=semantic, fields=fields)

    return TypeRef(type=semantic)


def build_model(value: SchemaValue, root_name: str) -> TypeModel:
    """
    Build the type model of a schema value.

    Args:
        value: The schema value, a struct
        root_name: Name of the root type holding the regular fields, suffixed
            with ``Root`` when a definition already uses it

    Returns:
        The type model

    Raises:
        IntrospectionError: If the value cannot be walked
    """
    model = TypeModel()
    root_fields: list[FieldDef] = []

    for entry in iter_fields(value):
        type_ref = build_type(entry.value, entry.selector, 1)
        if is_definition(entry.label):
            label = strip_definition(entry.label)
            model.definitions.append(TypeDef(name=type_name(label), label=label, type_ref=type_ref))
        else:
            root_fields.append(FieldDef(name=entry.label, type_ref=type_ref, optional=entry.optional, path=entry.selector))

    taken = {d.name for d in model.definitions}
    while root_name in taken:
        root_name += ROOT_SUFFIX

    model.root = TypeDef(
        name=root_name,
        label="",
        type_ref=TypeRef(type=SemanticType.STRUCT, fields=root_fields),
    )
    logger.debug(f"Built type model with {len(model.definitions)} definition(s) and {len(root_fields)} root field(s)")
    return model
