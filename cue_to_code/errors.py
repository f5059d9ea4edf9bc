"""
Error types for the CUE to code generator.

Every error carries an optional source location and a suggestion so that
the command line layer can render it without knowing where it came from.
"""

from __future__ import annotations


class CueToCodeError(Exception):
    """Base class for all errors raised by cue_to_code."""

    kind: str = "internal"

    def __init__(
        self,
        message: str,
        *,
        file: str = "",
        line: int = 0,
        column: int = 0,
        suggestion: str = "",
    ):
        super().__init__(message)
        self.message = message
        self.file = file
        self.line = line
        self.column = column
        self.suggestion = suggestion

    def with_location(self, file: str, line: int = 0, column: int = 0) -> CueToCodeError:
        """Attach a source location and return self."""
        self.file = file
        self.line = line
        self.column = column
        return self

    def location(self) -> str:
        """Render ``file:line:column``, dropping the parts that are unknown."""
        if not self.file:
            return ""
        result = self.file
        if self.line > 0:
            result += f":{self.line}"
            if self.column > 0:
                result += f":{self.column}"
        return result

    def __str__(self) -> str:
        parts = [f"[{self.kind}] "]
        location = self.location()
        if location:
            parts.append(f"{location}: ")
        parts.append(self.message)
        if self.__cause__ is not None:
            parts.append(f": {self.__cause__}")
        return "".join(parts)

    def format(self) -> str:
        """Format the error for display to a user."""
        location = self.location()
        if location:
            text = f"✗ {location}: {self.message}"
        else:
            text = f"✗ {self.message}"

        if self.__cause__ is not None:
            text += f"\n\n  Error: {self.__cause__}"

        if self.suggestion:
            text += f"\n\n  Suggestion: {self.suggestion}"

        return text


class FileSystemError(CueToCodeError):
    """A schema source is missing or cannot be read."""

    kind = "filesystem"


class CompileError(CueToCodeError):
    """A schema source fails to compile."""

    kind = "compile"


class UnifyError(CueToCodeError):
    """Two or more schema sources conflict."""

    kind = "unify"


class NotFoundError(CueToCodeError):
    """No sources were found, or a registry lookup missed."""

    kind = "not-found"


class DuplicateNameError(CueToCodeError):
    """A generator name was registered twice."""

    kind = "duplicate"


class ConfigError(CueToCodeError):
    """The project configuration file is missing or malformed."""

    kind = "config"


class IntrospectionError(CueToCodeError):
    """A schema value cannot be walked as a structure."""

    kind = "introspection"


class GenerationError(CueToCodeError):
    """A target generator failed to produce output."""

    kind = "generation"


class ValidationError(CueToCodeError):
    """A single schema validation problem.

    Attributes:
        path: Best-effort field path extracted from the engine message
    """

    kind = "validation"

    def __init__(
        self,
        message: str,
        *,
        file: str = "",
        line: int = 0,
        column: int = 0,
        path: str = "",
        suggestion: str = "",
    ):
        super().__init__(message, file=file, line=line, column=column, suggestion=suggestion)
        self.path = path

    def format(self) -> str:
        text = ""
        location = self.location()
        if location:
            text += f"{location}: "
        if self.path:
            text += f"field '{self.path}': "
        text += self.message
        if self.suggestion:
            text += f"\n\n  Suggestion: {self.suggestion}"
        return text


class SchemaInvalidError(CueToCodeError):
    """Raised when validation fails; holds every collected ValidationError."""

    kind = "validation"

    def __init__(self, errors: list[ValidationError], message: str = "schema validation failed"):
        super().__init__(f"{message} with {len(errors)} error(s)")
        self.errors = list(errors)

    def format(self) -> str:
        return format_errors(self.errors)


def format_errors(errors: list[CueToCodeError]) -> str:
    """Format several errors as one report."""
    if not errors:
        return ""

    lines = [f"Found {len(errors)} error(s):", ""]
    for i, error in enumerate(errors):
        if i > 0:
            lines.append("")
        lines.append(error.format())
    return "\n".join(lines) + "\n"
