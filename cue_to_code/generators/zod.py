"""
Zod schema generator.

Emits one ``XSchema`` constant per type. By default the TypeScript types are
inferred from the schemas (``z.infer``); with the ``interfaces`` option
explicit interfaces are emitted and the schemas are annotated with them.
Types whose schema uses ``z.lazy`` always get an explicit interface.
"""

from __future__ import annotations

from ..introspect import SemanticType
from ..utils import type_name
from .base import Generator, GeneratorContext, GeneratorName
from .model import FieldDef, TypeDef, TypeRef, build_model
from .typescript import TypeScriptGenerator, property_name

SCHEMA_SUFFIX = "Schema"


def schema_name(name: str) -> str:
    return f"{name}{SCHEMA_SUFFIX}"


def has_lazy_reference(type_ref: TypeRef, declared: set[str]) -> bool:
    """Whether the schema of a type refers to a definition not declared yet."""
    if type_ref.reference:
        return type_ref.reference not in declared
    if type_ref.element is not None and has_lazy_reference(type_ref.element, declared):
        return True
    return any(has_lazy_reference(f.type_ref, declared) for f in type_ref.fields or [])


class ZodGenerator(Generator):
    """Generates Zod runtime validation schemas."""

    NAME = GeneratorName.ZOD
    TEMPLATE_LANG = "zod"
    FILE_EXTENSION = "ts"

    TYPE_MAP: dict[SemanticType, str] = {
        SemanticType.STRING: "z.string()",
        SemanticType.INT: "z.number().int()",
        SemanticType.FLOAT: "z.number()",
        SemanticType.NUMBER: "z.number()",
        SemanticType.BOOL: "z.boolean()",
        SemanticType.UNKNOWN: "z.any()",
    }

    def __init__(self):
        super().__init__()
        self.typescript = TypeScriptGenerator()

    def translate_type(self, type_ref: TypeRef, declared: set[str]) -> str:
        """
        Translate a type to a Zod schema expression.

        Args:
            type_ref: The type reference
            declared: Labels of the definitions already emitted; later ones are wrapped in ``z.lazy``

        Returns:
            Zod expression string
        """
        if type_ref.reference:
            target = schema_name(type_name(type_ref.reference))
            if type_ref.reference in declared:
                return target
            return f"z.lazy(() => {target})"
        if type_ref.type == SemanticType.LIST:
            element = "z.any()" if type_ref.element is None else self.translate_type(type_ref.element, declared)
            return f"z.array({element})"
        if type_ref.type == SemanticType.STRUCT:
            members = ", ".join(f"{property_name(f.name)}: {self.field_schema(f, declared)}" for f in type_ref.fields or [])
            return f"z.object({{ {members} }})" if members else "z.object({})"
        return self.TYPE_MAP[type_ref.type]

    def field_schema(self, field: FieldDef, declared: set[str]) -> str:
        schema = self.translate_type(field.type_ref, declared)
        return f"{schema}.optional()" if field.optional else schema

    def render_declaration(self, type_def: TypeDef, declared: set[str], interfaces: bool) -> str:
        # z.infer cannot type a schema that goes through z.lazy
        interfaces = interfaces or has_lazy_reference(type_def.type_ref, declared)
        if type_def.is_struct:
            fields = [{"name": property_name(f.name), "schema": self.field_schema(f, declared)} for f in type_def.fields]
            return self.render(
                f"object.{self.FILE_EXTENSION}.jinja2",
                name=type_def.name,
                schema_name=schema_name(type_def.name),
                fields=fields,
                interface=self.typescript.render_declaration(type_def) if interfaces else "",
            )
        return self.render(
            f"alias.{self.FILE_EXTENSION}.jinja2",
            name=type_def.name,
            schema_name=schema_name(type_def.name),
            schema=self.translate_type(type_def.type_ref, declared),
            type=self.typescript.translate_type(type_def.type_ref),
            interface=interfaces,
        )

    def _generate(self, context: GeneratorContext) -> str:
        interfaces = context.get_bool_option("interfaces", False)
        model = build_model(context.value, context.root_name)

        parts = [self.render(f"prefix.{self.FILE_EXTENSION}.jinja2")]
        declared: set[str] = set()
        for type_def in model.definitions:
            parts.append(self.render_declaration(type_def, declared, interfaces))
            declared.add(type_def.label)
        parts.append(self.render_declaration(model.root, declared, interfaces))
        return "\n".join(parts)
