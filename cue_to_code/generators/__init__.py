"""
Target generators and the registry holding them.
"""

from .base import GENERATED_HEADER, Generator, GeneratorContext, GeneratorName
from .elixir import ElixirGenerator
from .golang import GoGenerator
from .jsonschema import JsonSchemaGenerator
from .model import FieldDef, TypeDef, TypeModel, TypeRef, build_model
from .registry import GeneratorRegistry, default_registry
from .typescript import TypeScriptGenerator
from .zod import ZodGenerator

__all__ = [
    "GENERATED_HEADER",
    "ElixirGenerator",
    "FieldDef",
    "Generator",
    "GeneratorContext",
    "GeneratorName",
    "GeneratorRegistry",
    "GoGenerator",
    "JsonSchemaGenerator",
    "TypeDef",
    "TypeModel",
    "TypeRef",
    "TypeScriptGenerator",
    "ZodGenerator",
    "build_model",
    "default_registry",
]
