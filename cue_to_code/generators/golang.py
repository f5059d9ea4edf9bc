"""
Go struct generator.

Nested inline structs become named types (``Server`` + ``Tls`` ->
``ServerTls``) declared right after the type that uses them. Field columns
are aligned the way gofmt aligns them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..introspect import SemanticType
from ..utils import type_name
from .base import Generator, GeneratorContext, GeneratorName
from .model import FieldDef, TypeDef, TypeRef, build_model

DEFAULT_PACKAGE = "types"


def go_field_name(label: str) -> str:
    """Exported Go identifier for a field label."""
    name = type_name(label, default="Field")
    if not re.match(r"[A-Za-z]", name):
        name = f"F{name}"
    return name


def align(rows: list[tuple[str, str, str]]) -> list[str]:
    """Align name, type and tag columns of struct fields."""
    if not rows:
        return []
    name_width = max(len(name) for name, _, _ in rows)
    type_width = max(len(typ) for _, typ, _ in rows)
    return [f"{name.ljust(name_width)} {typ.ljust(type_width)} {tag}" for name, typ, tag in rows]


@dataclass
class _Output:
    """Struct declarations collected for one file."""

    declarations: list[str] = field(default_factory=list)
    names: set[str] = field(default_factory=set)

    def reserve(self, name: str) -> str:
        candidate = name
        i = 2
        while candidate in self.names:
            candidate = f"{name}{i}"
            i += 1
        self.names.add(candidate)
        return candidate


class GoGenerator(Generator):
    """Generates Go structs with JSON tags."""

    NAME = GeneratorName.GO
    TEMPLATE_LANG = "go"
    FILE_EXTENSION = "go"

    TYPE_MAP: dict[SemanticType, str] = {
        SemanticType.STRING: "string",
        SemanticType.INT: "int",
        SemanticType.FLOAT: "float64",
        SemanticType.NUMBER: "float64",
        SemanticType.BOOL: "bool",
        SemanticType.UNKNOWN: "any",
    }

    def translate_type(self, type_ref: TypeRef, owner: str, out: _Output, optional: bool = False) -> str:
        """
        Translate a type to a Go type, declaring nested structs on the way.

        Args:
            type_ref: The type reference
            owner: Name used for nested struct types
            out: Collected declarations
            optional: Whether the value may be absent

        Returns:
            Go type string
        """
        if type_ref.type == SemanticType.LIST and not type_ref.reference:
            # Slices are already nil-able
            if type_ref.element is None:
                return "[]any"
            return "[]" + self.translate_type(type_ref.element, f"{owner}Item", out)

        if type_ref.reference:
            go_type = type_name(type_ref.reference)
        elif type_ref.type == SemanticType.STRUCT:
            go_type = self.declare_struct(owner, type_ref.fields or [], out)
        else:
            go_type = self.TYPE_MAP[type_ref.type]

        if optional and go_type != "any":
            return f"*{go_type}"
        return go_type

    def declare_struct(self, name: str, fields: list[FieldDef], out: _Output) -> str:
        """Render a struct type and the nested types it needs; returns the type name."""
        name = out.reserve(name)
        index = len(out.declarations)
        out.declarations.append("")

        rows = []
        for f in fields:
            field_name = go_field_name(f.name)
            go_type = self.translate_type(f.type_ref, f"{name}{field_name}", out, optional=f.optional)
            tag = f'`json:"{f.name},omitempty"`' if f.optional else f'`json:"{f.name}"`'
            rows.append((field_name, go_type, tag))

        out.declarations[index] = self.render(f"struct.{self.FILE_EXTENSION}.jinja2", name=name, lines=align(rows))
        return name

    def declare(self, type_def: TypeDef, out: _Output) -> None:
        if type_def.is_struct:
            self.declare_struct(type_def.name, type_def.fields, out)
            return
        name = out.reserve(type_def.name)
        index = len(out.declarations)
        out.declarations.append("")
        go_type = self.translate_type(type_def.type_ref, name, out)
        out.declarations[index] = self.render(f"alias.{self.FILE_EXTENSION}.jinja2", name=name, type=go_type)

    def _generate(self, context: GeneratorContext) -> str:
        package = context.get_string_option("package", DEFAULT_PACKAGE)
        model = build_model(context.value, context.root_name)

        out = _Output()
        # Definition names are taken first so nested types never shadow them
        out.names.update(d.name for d in model.definitions)
        for type_def in model.definitions:
            out.names.discard(type_def.name)
            self.declare(type_def, out)
        self.declare(model.root, out)

        parts = [self.render(f"prefix.{self.FILE_EXTENSION}.jinja2", package=package)]
        parts.extend(out.declarations)
        return "\n".join(parts)
