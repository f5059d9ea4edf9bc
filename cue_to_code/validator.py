"""
Schema validation.

Turns the errors an engine reports into ValidationErrors carrying a
position, a best-effort field path and a suggestion.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .engine import EngineError, ErrorEntry, SchemaValue
from .errors import ValidationError

logger = logging.getLogger(__name__)

# Keyword (matched case-insensitively) -> suggestion. First match wins.
SUGGESTIONS: list[tuple[str, str]] = [
    ("concrete", "Ensure all fields have concrete values (no unresolved references)"),
    ("conflict", "Check for duplicate or contradicting field definitions"),
    ("incomplete", "Some required fields may be missing or undefined"),
    ("reference", "Check that all referenced fields and definitions exist"),
    ("cannot use", "Type mismatch - check that values match their expected types"),
]


@dataclass
class ValidationResult:
    """Outcome of validating a value.

    Attributes:
        valid: True when no errors were found
        errors: One error per engine error entry
    """

    valid: bool = True
    errors: list[ValidationError] = field(default_factory=list)


def extract_path(message: str) -> str:
    """Best-effort field path: the text before the first colon, when it has no whitespace."""
    prefix, sep, _ = message.partition(":")
    if not sep or not prefix or any(c.isspace() for c in prefix):
        return ""
    return prefix


def clean_message(message: str) -> str:
    """Collapse whitespace and drop the trailing colon engines sometimes leave."""
    return " ".join(message.split()).rstrip(":").strip()


def suggest(message: str) -> str:
    """Suggestion for an error message, or an empty string."""
    lowered = message.lower()
    for keyword, suggestion in SUGGESTIONS:
        if keyword in lowered:
            return suggestion
    return ""


def to_validation_error(entry: ErrorEntry) -> ValidationError:
    message = clean_message(entry.message)
    return ValidationError(
        message,
        file=entry.position.filename,
        line=entry.position.line,
        column=entry.position.column,
        path=extract_path(message),
        suggestion=suggest(message),
    )


def convert_errors(error: EngineError) -> list[ValidationError]:
    """Convert an engine error into one ValidationError per atomic entry."""
    return [to_validation_error(entry) for entry in error.entries]


class SchemaValidator:
    """Validates schema values.

    Args:
        strict: Require every regular field to be concrete
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def validate(self, value: SchemaValue) -> ValidationResult:
        error = value.err()
        if error is None:
            error = value.validate(concrete=self.strict)
        if error is None:
            return ValidationResult(valid=True)

        errors = convert_errors(error)
        logger.debug(f"Validation found {len(errors)} error(s)")
        return ValidationResult(valid=False, errors=errors)


def format_error(error: ValidationError) -> str:
    """Render ``file:line:col: field 'path': message`` with an indented suggestion."""
    text = ""
    location = error.location()
    if location:
        text += f"{location}: "
    if error.path:
        text += f"field '{error.path}': "
    text += error.message
    if error.suggestion:
        text += f"\n  Suggestion: {error.suggestion}"
    return text
