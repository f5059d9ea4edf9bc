"""
Loading of schema sources into a single unified value.
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path

from .engine import MODULE_MARKER, SCHEMA_FILE_EXTENSION, EngineError, SchemaEngine, SchemaValue
from .errors import CompileError, FileSystemError, NotFoundError, UnifyError

logger = logging.getLogger(__name__)


def find_module_root(directory: Path) -> Path | None:
    """Walk upward from directory to the filesystem root looking for a module marker."""
    current = directory.resolve()
    for candidate in (current, *current.parents):
        if (candidate / MODULE_MARKER).is_dir():
            return candidate
    return None


def _first_position(error: EngineError) -> tuple[str, int, int]:
    for entry in error.entries:
        if entry.position.filename:
            return entry.position.filename, entry.position.line, entry.position.column
    return "", 0, 0


class Loader:
    """Loads files, directories and path lists through a schema engine."""

    def __init__(self, engine: SchemaEngine):
        self.engine = engine

    def load_file(self, path: str | Path) -> SchemaValue:
        """
        Load and compile a single schema file.

        Raises:
            FileSystemError: If the file cannot be read
            CompileError: If the compiled value carries an error
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise FileSystemError(f"failed to read file {path}", file=str(path)) from exc

        logger.debug(f"Compiling {path}")
        value = self.engine.compile(data, str(path))
        error = value.err()
        if error is not None:
            filename, line, column = _first_position(error)
            raise CompileError(
                f"failed to compile {path}",
                file=filename or str(path),
                line=line,
                column=column,
            ) from error
        return value

    def load_directory(self, directory: str | Path) -> SchemaValue:
        """
        Load every schema file of a directory into one value.

        Inside a module (a ``cue.mod`` directory in the directory or one of its
        parents) the engine's package loading is tried first. Otherwise, or if
        that fails, the schema files directly inside the directory are compiled
        in sorted order and unified left to right.

        Raises:
            FileSystemError: If the directory is missing or not a directory
            NotFoundError: If the directory holds no schema files
            UnifyError: If the files conflict
        """
        directory = Path(directory)
        if not directory.exists():
            raise FileSystemError(f"directory not found: {directory}", file=str(directory))
        if not directory.is_dir():
            raise FileSystemError(f"not a directory: {directory}", file=str(directory))

        module_root = find_module_root(directory)
        if module_root is not None:
            logger.debug(f"Loading {directory} as a package of module {module_root}")
            try:
                return self.engine.load_instance(directory, module_root)
            except EngineError as exc:
                logger.debug(f"Package loading failed, falling back to flat loading: {exc}")

        try:
            files = sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(SCHEMA_FILE_EXTENSION))
        except OSError as exc:
            raise FileSystemError(f"failed to list directory {directory}", file=str(directory)) from exc
        if not files:
            raise NotFoundError(
                f"no {SCHEMA_FILE_EXTENSION} files found in {directory}",
                file=str(directory),
                suggestion=f"Add {SCHEMA_FILE_EXTENSION} files to the directory or point to another path",
            )

        result: SchemaValue | None = None
        for path in files:
            value = self.load_file(path)
            result = value if result is None else result.unify(value)

        error = result.err()
        if error is not None:
            raise UnifyError(f"failed to unify schemas in {directory}", file=str(directory)) from error

        logger.debug(f"Loaded {len(files)} file(s) from {directory}")
        return result

    def load_paths(self, paths: list[str | Path]) -> SchemaValue:
        """
        Load files and directories and unify them into a single value.

        Any failure aborts the whole load.

        Raises:
            NotFoundError: If no paths are given
            FileSystemError: If a path does not exist
            UnifyError: If the loaded values conflict
        """
        if not paths:
            raise NotFoundError("no schema paths provided", suggestion="Pass at least one file or directory")

        values: list[SchemaValue] = []
        for path in paths:
            path = Path(path)
            if not path.exists():
                raise FileSystemError(f"path not found: {path}", file=str(path))
            if path.is_dir():
                values.append(self.load_directory(path))
            else:
                values.append(self.load_file(path))

        result = values[0]
        for value in values[1:]:
            result = result.unify(value)

        if len(values) > 1:
            error = result.err()
            if error is not None:
                raise UnifyError(f"failed to unify {len(values)} schema sources") from error

        return result


def expand_glob(pattern: str) -> list[str]:
    """Expand a glob pattern into a sorted list of matching paths."""
    return sorted(glob.glob(pattern, recursive=True))
