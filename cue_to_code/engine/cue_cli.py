"""
Engine adapter for the ``cue`` command line tool.

Values are kept as lists of source files; every capability is answered by
running ``cue`` over them:

- ``err()`` / ``validate()``: ``cue vet -c=false`` / ``cue vet -c``
- ``decode()`` / ``to_json()``: ``cue export --out json``
- field iteration: ``cue def --out openapi+json`` over copies of the sources
  whose top-level fields are repeated inside the ``#CueToCodeRoot``
  definition, so regular fields are described even when not concrete
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .base import (
    DEFINITION_PREFIX,
    SCHEMA_FILE_EXTENSION,
    EngineError,
    ErrorEntry,
    FieldEntry,
    Kind,
    Position,
    SchemaEngine,
    SchemaValue,
)

logger = logging.getLogger(__name__)

# "    ./schemas/a.cue:3:7"
_POSITION_LINE = re.compile(r"^\s+(?P<file>\S.*?):(?P<line>\d+):(?P<column>\d+)\s*$")

_COMPONENT_PREFIX = "#/components/schemas/"

# Synthetic definition holding a copy of the top-level fields
ROOT_DEFINITION = "CueToCodeRoot"

# Definitions nested in the synthetic root are exported as "CueToCodeRoot.Person"
_ROOT_PREFIX = ROOT_DEFINITION + "."

# File attributes, package clause and single-line imports
_PREAMBLE = re.compile(r'^(@.*|package\s+\w+|import\s+(\w+\s+)?"[^"]*"|import\s*\(.*\))$')
_IMPORT_BLOCK = re.compile(r"^import\s*\($")

_TYPE_KINDS = {
    "null": Kind.NULL,
    "boolean": Kind.BOOL,
    "integer": Kind.INT,
    "number": Kind.FLOAT,
    "string": Kind.STRING,
    "array": Kind.LIST,
    "object": Kind.STRUCT,
}


@dataclass(frozen=True)
class Source:
    """A schema source: a file on disk, or inline bytes with a display name."""

    filename: str
    data: bytes | None = None


def parse_errors(output: str, filenames: dict[str, str] | None = None) -> list[ErrorEntry]:
    """
    Parse ``cue`` error output into atomic entries.

    ``cue`` prints one message per error followed by indented positions::

        port: conflicting values 9090 and 8080:
            ./a.cue:1:7
            ./b.cue:1:7

    Args:
        output: stderr of a ``cue`` invocation
        filenames: Maps temporary file names back to the names shown to users

    Returns:
        One entry per message, positioned at its first location
    """
    filenames = filenames or {}
    entries: list[ErrorEntry] = []
    message: str | None = None
    position: Position | None = None

    def flush() -> None:
        if message:
            entries.append(ErrorEntry(message, position or Position()))

    for line in output.splitlines():
        if not line.strip():
            continue
        match = _POSITION_LINE.match(line)
        if match and message is not None:
            if position is None:
                filename = match.group("file")
                filename = filenames.get(Path(filename).name, filename)
                position = Position(filename, int(match.group("line")), int(match.group("column")))
            continue
        if line[:1].isspace() and message is not None:
            continue
        flush()
        message = line.strip().rstrip(":")
        position = None
    flush()

    return entries


def wrap_root(text: str) -> str:
    """
    Repeat the top-level fields of a source inside the ``#CueToCodeRoot`` definition.

    The package clause and imports stay first; the original fields stay in
    place so references between files keep resolving.

    Args:
        text: CUE source text

    Returns:
        The source with the synthetic definition appended
    """
    lines = text.splitlines()
    in_imports = False
    start = 0
    for start, line in enumerate(lines):
        stripped = line.strip()
        if in_imports:
            in_imports = not stripped.startswith(")")
        elif _IMPORT_BLOCK.match(stripped):
            in_imports = True
        elif stripped and not stripped.startswith("//") and not _PREAMBLE.match(stripped):
            break
    else:
        start = len(lines)

    preamble = "\n".join(lines[:start])
    body = "\n".join(lines[start:])
    return f"{preamble}\n{body}\n\n#{ROOT_DEFINITION}: {{\n{body}\n}}\n"


class CueCliEngine(SchemaEngine):
    """Engine running the ``cue`` executable."""

    name = "cue"

    def __init__(self, executable: str = "cue", timeout: float = 60):
        self.executable = executable
        self.timeout = timeout
        self._available: bool | None = None

    def is_available(self) -> bool:
        """Check if the cue executable is installed."""
        if self._available is None:
            self._available = shutil.which(self.executable) is not None
        return self._available

    def compile(self, data: bytes, filename: str = "") -> SchemaValue:
        path = Path(filename) if filename else None
        if path is not None and path.is_file() and path.read_bytes() == data:
            source = Source(str(path))
        else:
            source = Source(filename or f"input{SCHEMA_FILE_EXTENSION}", data)
        return CueValue(self, (source,))

    def load_instance(self, directory: str | Path, module_root: str | Path) -> SchemaValue:
        directory = Path(directory)
        files = sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == SCHEMA_FILE_EXTENSION)
        if not files:
            raise EngineError(f"no {SCHEMA_FILE_EXTENSION} files in {directory}")

        value = CueValue(self, tuple(Source(str(p)) for p in files), cwd=str(module_root))
        error = value.err()
        if error is not None:
            raise error
        return value

    def format_files(self, paths: list[str | Path], check: bool = False) -> subprocess.CompletedProcess:
        """
        Run ``cue fmt`` on files or directories.

        Args:
            paths: Files or directories to format
            check: Only report files that are not formatted

        Raises:
            EngineError: If cue cannot be started or times out
        """
        cmd = [self.executable, "fmt"]
        if check:
            cmd.append("--check")
        cmd.extend(str(p) for p in paths)
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            return subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as exc:
            raise EngineError(f"cue executable not found: {self.executable}") from exc
        except subprocess.TimeoutExpired as exc:
            raise EngineError(f"cue fmt timed out after {self.timeout}s") from exc

    @contextmanager
    def _materialize(
        self, sources: tuple[Source, ...], wrap: bool = False
    ) -> Iterator[tuple[list[str], dict[str, str]]]:
        """
        Yield file arguments for sources, writing inline ones to a temporary directory.

        With ``wrap`` every source is copied through ``wrap_root``.
        """
        with tempfile.TemporaryDirectory(prefix="cue_to_code.") as temp_dir:
            paths: list[str] = []
            filenames: dict[str, str] = {}
            for i, source in enumerate(sources):
                if source.data is None and not wrap:
                    paths.append(str(Path(source.filename).resolve()))
                    continue
                name = f"{i:03d}_{Path(source.filename).stem}{SCHEMA_FILE_EXTENSION}"
                temp_path = Path(temp_dir) / name
                data = source.data
                if data is None:
                    try:
                        data = Path(source.filename).read_bytes()
                    except OSError as exc:
                        raise EngineError(f"failed to read {source.filename}") from exc
                if wrap:
                    data = wrap_root(data.decode("utf-8")).encode("utf-8")
                temp_path.write_bytes(data)
                paths.append(str(temp_path))
                filenames[name] = source.filename
            yield paths, filenames

    def run(
        self, args: list[str], sources: tuple[Source, ...], cwd: str | None = None, wrap: bool = False
    ) -> tuple[subprocess.CompletedProcess, dict[str, str]]:
        """
        Run ``cue`` with the given arguments over sources.

        Raises:
            EngineError: If cue cannot be started or times out
        """
        with self._materialize(sources, wrap) as (paths, filenames):
            cmd = [self.executable, *args, *paths]
            logger.debug(f"Running {' '.join(cmd)}")
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    cwd=cwd,
                )
            except FileNotFoundError as exc:
                raise EngineError(f"cue executable not found: {self.executable}") from exc
            except subprocess.TimeoutExpired as exc:
                raise EngineError(f"cue {args[0]} timed out after {self.timeout}s") from exc
        return result, filenames


class CueValue(SchemaValue):
    """A value made of the sources cue evaluates together."""

    def __init__(self, engine: CueCliEngine, sources: tuple[Source, ...], cwd: str | None = None):
        self.engine = engine
        self.sources = sources
        self.cwd = cwd
        self._checks: dict[Any, EngineError | None] = {}
        self._view: SchemaView | None = None

    def __repr__(self) -> str:
        return f"CueValue({[s.filename for s in self.sources]!r})"

    def _check(self, args: list[str]) -> EngineError | None:
        key = tuple(args)
        if key not in self._checks:
            result, filenames = self.engine.run(args, self.sources, self.cwd)
            if result.returncode == 0:
                self._checks[key] = None
            else:
                entries = parse_errors(result.stderr, filenames)
                self._checks[key] = EngineError(entries or f"cue {args[0]} failed: {result.stderr.strip()}")
        return self._checks[key]

    def unify(self, other: SchemaValue) -> SchemaValue:
        if not isinstance(other, CueValue) or other.engine is not self.engine:
            raise EngineError("cannot unify values produced by different engines")
        if self.cwd and other.cwd and self.cwd != other.cwd:
            raise EngineError(f"cannot unify values from different modules ({self.cwd} and {other.cwd})")
        return CueValue(self.engine, self.sources + other.sources, self.cwd or other.cwd)

    def err(self) -> EngineError | None:
        return self._check(["vet", "-c=false"])

    def validate(self, concrete: bool = False) -> EngineError | None:
        error = self.err()
        if error is not None or not concrete:
            return error
        return self._check(["vet", "-c"])

    def to_json(self) -> bytes:
        result, filenames = self.engine.run(["export", "--out", "json"], self.sources, self.cwd)
        if result.returncode != 0:
            raise EngineError(parse_errors(result.stderr, filenames) or f"cue export failed: {result.stderr.strip()}")
        return result.stdout.encode("utf-8")

    def decode(self) -> Any:
        return json.loads(self.to_json())

    def view(self) -> SchemaView:
        """
        Build the schema view used for field iteration.

        Raises:
            EngineError: If cue can neither describe nor export the value
        """
        if self._view is None:
            result, _ = self.engine.run(["def", "--out", "openapi+json"], self.sources, self.cwd, wrap=True)
            components: dict[str, Any] | None = None
            if result.returncode == 0 and result.stdout.strip():
                try:
                    components = json.loads(result.stdout).get("components", {}).get("schemas", {})
                except json.JSONDecodeError as exc:
                    logger.debug(f"Unreadable cue def output: {exc}")
            if components is None:
                logger.debug(f"cue def failed, using exported data only: {result.stderr.strip()}")

            try:
                data = self.decode()
            except EngineError as exc:
                if components is None:
                    raise EngineError(f"cannot describe {self!r}: {result.stderr.strip()}") from exc
                data = _NO_DATA
            self._view = build_view(components or {}, data)
        return self._view

    def fields(self, include_optional: bool = True, include_definitions: bool = True) -> Iterator[FieldEntry]:
        return self.view().fields(include_optional, include_definitions)

    def kind_mask(self) -> Kind:
        if self.err() is not None:
            return Kind.BOTTOM
        return self.view().kind_mask()

    def element(self) -> SchemaValue | None:
        return self.view().element()

    def reference(self) -> str | None:
        return None


def schema_for_data(data: Any) -> dict[str, Any]:
    """Describe exported JSON data with a schema fragment."""
    if isinstance(data, dict):
        return {
            "type": "object",
            "properties": {label: schema_for_data(item) for label, item in data.items()},
            "required": list(data),
        }
    if isinstance(data, list):
        return {"type": "array", "items": schema_for_data(data[0])} if data else {"type": "array"}
    if isinstance(data, bool):
        return {"type": "boolean"}
    if isinstance(data, int):
        return {"type": "integer"}
    if isinstance(data, float):
        return {"type": "number"}
    if isinstance(data, str):
        return {"type": "string"}
    if data is None:
        return {"type": "null"}
    return {}


_NO_DATA: Any = object()


class SchemaView(SchemaValue):
    """Read-only value over a schema fragment produced by cue."""

    def __init__(self, schema: dict[str, Any], components: dict[str, Any], path: tuple[str, ...] = (), data: Any = _NO_DATA):
        self.schema = schema
        self.components = components
        self.path = path
        self.data = data

    def _target(self) -> dict[str, Any]:
        schema = self.schema
        seen: set[str] = set()
        while "$ref" in schema and schema["$ref"] not in seen:
            seen.add(schema["$ref"])
            name = schema["$ref"].removeprefix(_COMPONENT_PREFIX)
            schema = self.components.get(name) or self.components.get(name.removeprefix(_ROOT_PREFIX), {})
        return schema

    def unify(self, other: SchemaValue) -> SchemaValue:
        raise EngineError("values derived from cue output cannot be unified")

    def kind_mask(self) -> Kind:
        schema = self._target()
        types = schema.get("type")
        if isinstance(types, str):
            types = [types]
        if types:
            kind = Kind.BOTTOM
            for name in types:
                kind |= _TYPE_KINDS.get(name, Kind.TOP)
            return kind
        alternatives = schema.get("oneOf") or schema.get("anyOf")
        if alternatives:
            kind = Kind.BOTTOM
            for alternative in alternatives:
                kind |= SchemaView(alternative, self.components, self.path).kind_mask()
            return kind
        if "properties" in schema:
            return Kind.STRUCT
        return Kind.TOP

    def fields(self, include_optional: bool = True, include_definitions: bool = True) -> Iterator[FieldEntry]:
        schema = self._target()
        if "properties" not in schema:
            raise EngineError(f"{'.'.join(self.path) or 'value'}: cannot iterate a non-struct value")
        return self._iter_fields(schema, include_optional, include_definitions)

    def _iter_fields(self, schema: dict[str, Any], include_optional: bool, include_definitions: bool) -> Iterator[FieldEntry]:
        required = set(schema.get("required", []))
        data = self.data if isinstance(self.data, dict) else {}
        for label, fragment in schema["properties"].items():
            is_definition = label.startswith(DEFINITION_PREFIX)
            optional = not is_definition and label not in required
            if optional and not include_optional:
                continue
            if is_definition and not include_definitions:
                continue
            path = self.path + (label,)
            yield FieldEntry(
                label=label,
                selector=".".join(path),
                value=SchemaView(fragment, self.components, path, data.get(label, _NO_DATA)),
                optional=optional,
            )

    def element(self) -> SchemaValue | None:
        items = self._target().get("items")
        if isinstance(items, dict):
            return SchemaView(items, self.components, self.path + ("*",))
        return None

    def reference(self) -> str | None:
        ref = self.schema.get("$ref")
        if isinstance(ref, str) and ref.startswith(_COMPONENT_PREFIX):
            return DEFINITION_PREFIX + ref.removeprefix(_COMPONENT_PREFIX).removeprefix(_ROOT_PREFIX)
        return None

    def err(self) -> EngineError | None:
        return None

    def validate(self, concrete: bool = False) -> EngineError | None:
        if concrete and self.data is _NO_DATA:
            return EngineError(f"{'.'.join(self.path)}: incomplete value")
        return None

    def decode(self) -> Any:
        if self.data is _NO_DATA:
            raise EngineError(f"{'.'.join(self.path)}: incomplete value")
        return self.data

    def to_json(self) -> bytes:
        return json.dumps(self.decode(), ensure_ascii=False).encode("utf-8")


def build_view(components: dict[str, Any], data: Any = _NO_DATA) -> SchemaView:
    """
    Build the root view from ``cue def --out openapi+json`` components and exported data.

    The ``CueToCodeRoot`` component describes the top-level fields; without it
    the structure is derived from the exported data. Definitions are added as
    ``#``-prefixed properties.

    Raises:
        EngineError: If neither the root component nor data is available
    """
    components = dict(components)
    root = components.pop(ROOT_DEFINITION, None)
    if root is not None:
        schema = dict(root)
        schema["type"] = "object"
        schema["properties"] = dict(schema.get("properties", {}))
    elif data is not _NO_DATA:
        schema = schema_for_data(data)
    else:
        raise EngineError("value is neither described by cue def nor concrete")

    if schema.get("type") == "object":
        for name, definition in components.items():
            if not name.startswith(_ROOT_PREFIX):
                schema["properties"][DEFINITION_PREFIX + name] = definition
    return SchemaView(schema, components, data=data)
