"""
cue_to_code: load CUE schemas, validate and introspect them, and generate
TypeScript, Zod, JSON Schema, Go and Elixir type declarations.
"""

__version__ = "0.1.0"

from .config import GeneratorConfig, ProjectConfig, ValidationConfig, default_config, load_config, save_config
from .engine import CueCliEngine, Kind, MemoryEngine, SchemaEngine, SchemaValue
from .errors import CueToCodeError
from .generators import GeneratorContext, GeneratorName, GeneratorRegistry, default_registry
from .introspect import FieldInfo, SchemaInfo, SemanticType, introspect
from .loader import Loader
from .pipeline import Pipeline
from .validator import SchemaValidator, ValidationResult

__all__ = [
    "CueCliEngine",
    "CueToCodeError",
    "FieldInfo",
    "GeneratorConfig",
    "GeneratorContext",
    "GeneratorName",
    "GeneratorRegistry",
    "Kind",
    "Loader",
    "MemoryEngine",
    "Pipeline",
    "ProjectConfig",
    "SchemaEngine",
    "SchemaInfo",
    "SchemaValidator",
    "SchemaValue",
    "SemanticType",
    "ValidationConfig",
    "ValidationResult",
    "default_config",
    "default_registry",
    "introspect",
    "load_config",
    "save_config",
]
