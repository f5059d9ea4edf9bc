"""
Schema engines: the port used by the rest of the package and its adapters.
"""

from .base import (
    DEFINITION_PREFIX,
    MODULE_MARKER,
    SCHEMA_FILE_EXTENSION,
    EngineError,
    ErrorEntry,
    FieldEntry,
    Kind,
    Position,
    SchemaEngine,
    SchemaValue,
    is_definition,
    kind_name,
    strip_definition,
)
from .cue_cli import CueCliEngine, parse_errors
from .memory import MemoryEngine, MemoryValue

ENGINES = {
    CueCliEngine.name: CueCliEngine,
    MemoryEngine.name: MemoryEngine,
}


def create_engine(name: str) -> SchemaEngine:
    """Create an engine by name (``cue`` or ``memory``)."""
    try:
        return ENGINES[name]()
    except KeyError:
        raise ValueError(f"unknown engine {name!r}, expected one of {sorted(ENGINES)}") from None


__all__ = [
    "DEFINITION_PREFIX",
    "ENGINES",
    "MODULE_MARKER",
    "SCHEMA_FILE_EXTENSION",
    "CueCliEngine",
    "EngineError",
    "ErrorEntry",
    "FieldEntry",
    "Kind",
    "MemoryEngine",
    "MemoryValue",
    "Position",
    "SchemaEngine",
    "SchemaValue",
    "create_engine",
    "is_definition",
    "kind_name",
    "parse_errors",
    "strip_definition",
]
