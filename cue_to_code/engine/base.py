"""
Engine port for constraint-based schema values.

cue_to_code never evaluates the constraint language itself. Everything above
this module talks to an engine through the small capability set defined
here, and adapters (the ``cue`` command line tool, the in-memory engine) plug
in behind it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import IntFlag
from pathlib import Path
from typing import Any

# Labels carrying this prefix are definitions (``#Person``)
DEFINITION_PREFIX = "#"

# Extension of schema source files
SCHEMA_FILE_EXTENSION = ".cue"

# Directory marking the root of a schema module
MODULE_MARKER = "cue.mod"


class Kind(IntFlag):
    """Bit set of the kinds a value may take."""

    BOTTOM = 0
    NULL = 1
    BOOL = 2
    INT = 4
    FLOAT = 8
    STRING = 16
    LIST = 32
    STRUCT = 64

    NUMBER = INT | FLOAT
    TOP = NULL | BOOL | INT | FLOAT | STRING | LIST | STRUCT


def kind_name(kind: Kind) -> str:
    """Human readable name of a kind mask, as used in engine messages."""
    if kind == Kind.BOTTOM:
        return "_|_"
    if kind == Kind.TOP:
        return "_"
    if kind == Kind.NUMBER:
        return "number"
    names = [member.name.lower() for member in (Kind.NULL, Kind.BOOL, Kind.INT, Kind.FLOAT, Kind.STRING, Kind.LIST, Kind.STRUCT) if kind & member]
    return "|".join(names)


def is_definition(label: str) -> bool:
    """Check whether a field label is a definition label."""
    return label.startswith(DEFINITION_PREFIX)


def strip_definition(label: str) -> str:
    """Remove the definition marker from a label."""
    return label[len(DEFINITION_PREFIX) :] if is_definition(label) else label


@dataclass(frozen=True)
class Position:
    """Source position of an engine error. Zero/empty when unknown."""

    filename: str = ""
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class ErrorEntry:
    """One atomic engine error."""

    message: str
    position: Position = field(default_factory=Position)


class EngineError(Exception):
    """Error reported by an engine; may bundle several atomic entries."""

    def __init__(self, entries: list[ErrorEntry] | str):
        if isinstance(entries, str):
            entries = [ErrorEntry(entries)]
        self.entries: list[ErrorEntry] = list(entries)
        super().__init__("; ".join(entry.message for entry in self.entries))


@dataclass(frozen=True)
class FieldEntry:
    """A field produced by iterating a struct value.

    Attributes:
        label: The field label as written in the source (``#Person``, ``name``)
        selector: Selector string of the field; encodes nesting (``a.b``)
        value: The field value
        optional: Whether the field was marked optional
    """

    label: str
    selector: str
    value: SchemaValue
    optional: bool = False


class SchemaValue(ABC):
    """An opaque, possibly incomplete constraint value owned by an engine."""

    @abstractmethod
    def unify(self, other: SchemaValue) -> SchemaValue:
        """
        Unify this value with another one.

        Returns a new value; neither input is modified. A conflict is not
        raised, it is carried by the result and reported by ``err()``.
        """

    @abstractmethod
    def fields(self, include_optional: bool = True, include_definitions: bool = True) -> Iterator[FieldEntry]:
        """
        Iterate the fields of a struct value in declaration order.

        Raises:
            EngineError: If the value cannot be iterated as a struct
        """

    @abstractmethod
    def kind_mask(self) -> Kind:
        """Return the set of kinds this value may still take."""

    @abstractmethod
    def element(self) -> SchemaValue | None:
        """Return the element constraint of a list value, if known."""

    @abstractmethod
    def reference(self) -> str | None:
        """Return the definition label (``#Person``) this value refers to, if any."""

    @abstractmethod
    def err(self) -> EngineError | None:
        """Return the error carried by the value, or None."""

    @abstractmethod
    def validate(self, concrete: bool = False) -> EngineError | None:
        """
        Check the value for errors.

        Args:
            concrete: Require every regular field to resolve to a concrete value
        """

    @abstractmethod
    def decode(self) -> Any:
        """
        Decode a concrete value to native Python data.

        Raises:
            EngineError: If the value is not concrete
        """

    @abstractmethod
    def to_json(self) -> bytes:
        """
        Encode a concrete value as JSON.

        Raises:
            EngineError: If the value is not concrete
        """


class SchemaEngine(ABC):
    """Compiles schema sources into SchemaValues."""

    name: str = ""

    @abstractmethod
    def compile(self, data: bytes, filename: str = "") -> SchemaValue:
        """
        Compile source bytes into a value.

        Compile failures are carried by the returned value (see ``err()``).
        """

    def load_file(self, path: str | Path) -> SchemaValue:
        """Read and compile a single source file."""
        path = Path(path)
        return self.compile(path.read_bytes(), str(path))

    def load_instance(self, directory: str | Path, module_root: str | Path) -> SchemaValue:
        """
        Load a directory as a package of a schema module.

        Raises:
            EngineError: If the engine cannot load packages
        """
        raise EngineError(f"{self.name or type(self).__name__} engine does not support package loading")
