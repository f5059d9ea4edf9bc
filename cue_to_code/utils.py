"""
Naming helpers shared by the target generators.
"""

import re

# Regex pattern to split text into words, handling camelCase boundaries
_WORD_PATTERN = re.compile(r"[a-z]+|[A-Z][a-z]*|[0-9]+")


def _split_into_words(text: str) -> list[str]:
    """Split text into words on separators and camelCase boundaries."""
    return _WORD_PATTERN.findall(text.replace("_", " ").replace("-", " ").replace(".", " "))


def snake_to_pascal_case(text: str) -> str:
    """Convert snake_case, kebab-case or camelCase text to PascalCase.

    Examples:
        "my_project" -> "MyProject"
        "my-project" -> "MyProject"
        "userProfile" -> "UserProfile"
        "Person" -> "Person"

    Args:
        text: The text to convert

    Returns:
        PascalCase string
    """
    if not text:
        return ""
    return "".join(word.capitalize() for word in _split_into_words(text) if word)


def type_name(label: str, default: str = "Schema") -> str:
    """Type name for a definition label or project name, PascalCase with the ``#`` marker dropped.

    Labels that are already PascalCase are kept as written ("HTTPServer" stays "HTTPServer").
    """
    label = label.lstrip("#")
    if re.fullmatch(r"[A-Z][A-Za-z0-9]*", label):
        return label
    return snake_to_pascal_case(label) or default
