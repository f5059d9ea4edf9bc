"""
JSON Schema generator.
"""

from __future__ import annotations

import json
from typing import Any

from ..introspect import SemanticType
from .base import Generator, GeneratorContext, GeneratorName
from .model import FieldDef, TypeRef, build_model

SCHEMA_URI = "https://json-schema.org/draft/2020-12/schema"
ID_BASE = "https://cue-to-code.dev/schemas"
DEFINITIONS_POINTER = "#/definitions/"


class JsonSchemaGenerator(Generator):
    """Generates a JSON Schema document."""

    NAME = GeneratorName.JSONSCHEMA
    FILE_EXTENSION = "json"

    TYPE_MAP: dict[SemanticType, str] = {
        SemanticType.STRING: "string",
        SemanticType.INT: "integer",
        SemanticType.FLOAT: "number",
        SemanticType.NUMBER: "number",
        SemanticType.BOOL: "boolean",
        SemanticType.LIST: "array",
        SemanticType.STRUCT: "object",
    }

    def translate_type(self, type_ref: TypeRef) -> dict[str, Any]:
        if type_ref.reference:
            return {"$ref": DEFINITIONS_POINTER + type_ref.reference}
        if type_ref.type == SemanticType.UNKNOWN:
            return {}
        if type_ref.type == SemanticType.STRUCT:
            return self.object_schema(type_ref.fields or [])

        schema: dict[str, Any] = {"type": self.TYPE_MAP[type_ref.type]}
        if type_ref.type == SemanticType.LIST and type_ref.element is not None:
            schema["items"] = self.translate_type(type_ref.element)
        return schema

    def object_schema(self, fields: list[FieldDef]) -> dict[str, Any]:
        """Object schema with properties; optional fields are left out of ``required``."""
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {f.name: self.translate_type(f.type_ref) for f in fields},
        }
        required = [f.name for f in fields if not f.optional]
        if required:
            schema["required"] = required
        return schema

    def _generate(self, context: GeneratorContext) -> str:
        model = build_model(context.value, context.root_name)
        name = context.project.name or "schema"

        envelope: dict[str, Any] = {
            "$schema": SCHEMA_URI,
            "$id": f"{ID_BASE}/{name}",
            "title": name,
            "type": "object",
            "properties": {f.name: self.translate_type(f.type_ref) for f in model.root.fields},
        }
        required = [f.name for f in model.root.fields if not f.optional]
        if required:
            envelope["required"] = required
        envelope["definitions"] = {d.label: self.translate_type(d.type_ref) for d in model.definitions}

        return json.dumps(envelope, indent=2, ensure_ascii=False) + "\n"
