"""
Elixir struct and typespec generator.

Every named type becomes a module under the configured namespace
(``MyApp.Types.Person``) exposing ``t()``.
"""

from __future__ import annotations

import json
import re

from ..introspect import SemanticType
from ..utils import type_name
from .base import Generator, GeneratorContext, GeneratorName
from .model import FieldDef, TypeDef, TypeRef, build_model

DEFAULT_MODULE = "MyApp.Types"

_ATOM = re.compile(r"^[a-z_][A-Za-z0-9_]*[?!]?$")


def atom(name: str) -> str:
    """Atom literal for a key (``:name``, ``:"my-key"``)."""
    return f":{name}" if _ATOM.match(name) else f":{json.dumps(name)}"


def keyword_key(name: str) -> str:
    """Keyword-list key for a key (``name:``, ``"my-key":``)."""
    return f"{name}:" if _ATOM.match(name) else f"{json.dumps(name)}:"


class ElixirGenerator(Generator):
    """Generates Elixir structs with typespecs."""

    NAME = GeneratorName.ELIXIR
    TEMPLATE_LANG = "elixir"
    FILE_EXTENSION = "ex"
    COMMENT_PREFIX = "#"

    TYPE_MAP: dict[SemanticType, str] = {
        SemanticType.STRING: "String.t()",
        SemanticType.INT: "integer()",
        SemanticType.FLOAT: "float()",
        SemanticType.NUMBER: "float()",
        SemanticType.BOOL: "boolean()",
        SemanticType.UNKNOWN: "any()",
    }

    def translate_type(self, type_ref: TypeRef, namespace: str) -> str:
        if type_ref.reference:
            return f"{namespace}.{type_name(type_ref.reference)}.t()"
        if type_ref.type == SemanticType.LIST:
            element = "any()" if type_ref.element is None else self.translate_type(type_ref.element, namespace)
            return f"list({element})"
        if type_ref.type == SemanticType.STRUCT:
            members = ", ".join(f"{keyword_key(f.name)} {self.field_type(f, namespace)}" for f in type_ref.fields or [])
            return f"%{{{members}}}"
        return self.TYPE_MAP[type_ref.type]

    def field_type(self, field: FieldDef, namespace: str) -> str:
        spec = self.translate_type(field.type_ref, namespace)
        return f"{spec} | nil" if field.optional else spec

    def render_module(self, type_def: TypeDef, namespace: str) -> str:
        module = f"{namespace}.{type_def.name}"
        if not type_def.is_struct:
            return self.render(
                f"alias.{self.FILE_EXTENSION}.jinja2",
                module=module,
                type=self.translate_type(type_def.type_ref, namespace),
            )
        fields = type_def.fields
        return self.render(
            f"struct.{self.FILE_EXTENSION}.jinja2",
            module=module,
            keys=[atom(f.name) for f in fields],
            enforce_keys=[atom(f.name) for f in fields if not f.optional],
            fields=[{"key": keyword_key(f.name), "type": self.field_type(f, namespace)} for f in fields],
        )

    def _generate(self, context: GeneratorContext) -> str:
        namespace = context.get_string_option("module", DEFAULT_MODULE)
        model = build_model(context.value, context.root_name)

        parts = [self.render(f"prefix.{self.FILE_EXTENSION}.jinja2")]
        for type_def in [*model.definitions, model.root]:
            parts.append(self.render_module(type_def, namespace))
        return "\n".join(parts)
