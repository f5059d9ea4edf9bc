"""
Atomic file writer for generated code.

An interrupted write never leaves a target file half written.
"""

from __future__ import annotations

import json
import logging
import re
import tempfile
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from .errors import FileSystemError, GenerationError

logger = logging.getLogger(__name__)


class OutputMode(str, Enum):
    """Behaviour when the output file already exists."""

    FORCE = "force"  # Default: overwrite
    ERROR_IF_EXISTS = "error"  # Raise if the file exists


def _validate_json(content: str) -> None:
    try:
        json.loads(content)
    except json.JSONDecodeError as e:
        raise GenerationError(f"generated JSON is not valid: {e}") from e


# String literals and line comments, removed before counting braces
_LITERALS = re.compile(r'"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])*\'|`[^`]*`|//[^\n]*')


def _validate_braces(content: str) -> None:
    code = _LITERALS.sub("", content)
    open_braces = code.count("{")
    close_braces = code.count("}")
    if open_braces != close_braces:
        raise GenerationError(f"generated code has unbalanced braces: {open_braces} open, {close_braces} close")


DEFAULT_VALIDATORS: dict[str, Callable[[str], None]] = {
    ".json": _validate_json,
    ".ts": _validate_braces,
    ".go": _validate_braces,
}


class AtomicWriter:
    """Writes files through a temporary file in the target directory.

    1. Write to a temporary file in the same directory
    2. Validate the content
    3. Atomically replace the target file
    """

    def __init__(
        self,
        mode: OutputMode = OutputMode.FORCE,
        validators: dict[str, Callable[[str], None]] | None = None,
    ):
        """Initialize the atomic writer.

        Args:
            mode: How to handle existing files
            validators: File suffix -> validation function run before the replace
        """
        self.mode = mode
        self.validators = DEFAULT_VALIDATORS if validators is None else validators

    def write(self, path: str | Path, content: str | bytes, validate: bool = True) -> None:
        """Write content to file atomically.

        Args:
            path: Target file path
            content: Content to write
            validate: Whether to validate before finalizing

        Raises:
            FileSystemError: If the file exists in ERROR_IF_EXISTS mode or cannot be written
            GenerationError: If validation fails
        """
        path = Path(path)
        if isinstance(content, bytes):
            content = content.decode("utf-8")

        if self.mode == OutputMode.ERROR_IF_EXISTS and path.exists():
            raise FileSystemError(
                f"output file already exists: {path}",
                file=str(path),
                suggestion="Remove the file or write in force mode",
            )

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Same directory ensures atomic rename on the same filesystem
            temp_fd, temp_path_str = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                text=True,
            )
        except OSError as exc:
            raise FileSystemError(f"failed to create output directory for {path}", file=str(path)) from exc

        temp_path = Path(temp_path_str)
        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)

            if validate:
                validator = self.validators.get(path.suffix)
                if validator is not None:
                    validator(content)

            temp_path.replace(path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise FileSystemError(f"failed to write {path}", file=str(path)) from exc
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote {path}")
