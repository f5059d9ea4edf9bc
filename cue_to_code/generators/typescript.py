"""
TypeScript interface generator.
"""

from __future__ import annotations

import json
import re

from ..introspect import SemanticType
from ..utils import type_name
from .base import Generator, GeneratorContext, GeneratorName
from .model import FieldDef, TypeDef, TypeModel, TypeRef, build_model

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def property_name(name: str) -> str:
    """Property key, quoted when it is not a valid identifier."""
    return name if _IDENTIFIER.match(name) else json.dumps(name)


class TypeScriptGenerator(Generator):
    """Generates TypeScript interfaces."""

    NAME = GeneratorName.TYPESCRIPT
    TEMPLATE_LANG = "typescript"
    FILE_EXTENSION = "ts"

    TYPE_MAP: dict[SemanticType, str] = {
        SemanticType.STRING: "string",
        SemanticType.INT: "number",
        SemanticType.FLOAT: "number",
        SemanticType.NUMBER: "number",
        SemanticType.BOOL: "boolean",
        SemanticType.UNKNOWN: "any",
    }

    def translate_type(self, type_ref: TypeRef) -> str:
        """
        Translate a type to a TypeScript type expression.

        Args:
            type_ref: The type reference

        Returns:
            TypeScript type string
        """
        if type_ref.reference:
            return type_name(type_ref.reference)
        if type_ref.type == SemanticType.LIST:
            if type_ref.element is None:
                return "any[]"
            return f"{self.translate_type(type_ref.element)}[]"
        if type_ref.type == SemanticType.STRUCT:
            return self.inline_struct(type_ref.fields or [])
        return self.TYPE_MAP[type_ref.type]

    def inline_struct(self, fields: list[FieldDef]) -> str:
        if not fields:
            return "{}"
        members = "; ".join(self._member(f) for f in fields)
        return f"{{ {members} }}"

    def _member(self, field: FieldDef) -> str:
        marker = "?" if field.optional else ""
        return f"{property_name(field.name)}{marker}: {self.translate_type(field.type_ref)}"

    def render_declaration(self, type_def: TypeDef) -> str:
        """Render a named type as an interface, or as an alias when it is not a struct."""
        if type_def.is_struct:
            fields = [
                {
                    "name": property_name(f.name),
                    "optional": f.optional,
                    "type": self.translate_type(f.type_ref),
                }
                for f in type_def.fields
            ]
            return self.render(f"interface.{self.FILE_EXTENSION}.jinja2", name=type_def.name, fields=fields)
        return self.render(
            f"alias.{self.FILE_EXTENSION}.jinja2",
            name=type_def.name,
            type=self.translate_type(type_def.type_ref),
        )

    def render_model(self, model: TypeModel) -> str:
        parts = [self.render(f"prefix.{self.FILE_EXTENSION}.jinja2")]
        for type_def in [*model.definitions, model.root]:
            parts.append(self.render_declaration(type_def))
        return "\n".join(parts)

    def _generate(self, context: GeneratorContext) -> str:
        return self.render_model(build_model(context.value, context.root_name))
