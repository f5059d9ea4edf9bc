"""
Base class for target generators.

Defines the contract every target implements and the context it receives.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import jinja2

from ..config import GeneratorConfig, ProjectConfig
from ..engine import SchemaValue
from ..errors import CueToCodeError, GenerationError
from ..utils import type_name

logger = logging.getLogger(__name__)

GENERATED_HEADER = "Code generated by cue-to-code. DO NOT EDIT."


class GeneratorName(str, Enum):
    """Names of the built-in target generators."""

    TYPESCRIPT = "typescript"
    ZOD = "zod"
    JSONSCHEMA = "jsonschema"
    GO = "go"
    ELIXIR = "elixir"


@dataclass
class GeneratorContext:
    """Everything a generator needs for one call.

    Attributes:
        value: The validated schema value
        project: The project configuration
        generator_config: Settings of the generator being run
        options: Copy of the generator options
    """

    value: SchemaValue
    project: ProjectConfig = field(default_factory=ProjectConfig)
    generator_config: GeneratorConfig = field(default_factory=GeneratorConfig)
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.options:
            self.options = dict(self.generator_config.options)

    def get_option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def get_string_option(self, key: str, default: str = "") -> str:
        value = self.options.get(key)
        return value if isinstance(value, str) and value else default

    def get_bool_option(self, key: str, default: bool = False) -> bool:
        value = self.options.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return default

    @property
    def root_name(self) -> str:
        """Type name of the root type, PascalCase of the project name."""
        return type_name(self.project.name)


class Generator(ABC):
    """Abstract base class for target generators."""

    NAME: GeneratorName

    # Template directory name, empty for generators without templates
    TEMPLATE_LANG: str = ""

    # Extension of the generated file
    FILE_EXTENSION: str = ""

    # Prefix of line comments in the target language
    COMMENT_PREFIX: str = "//"

    def __init__(self):
        self.jinja_env: jinja2.Environment | None = None
        if self.TEMPLATE_LANG:
            self._setup_templates()

    def _setup_templates(self) -> None:
        """Set up Jinja2 templates."""
        template_dir = Path(__file__).parent.parent / "templates" / self.TEMPLATE_LANG
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            lstrip_blocks=True,
            trim_blocks=True,
            keep_trailing_newline=True,
            undefined=jinja2.StrictUndefined,
        )
        self.jinja_env.globals["header"] = f"{self.COMMENT_PREFIX} {GENERATED_HEADER}"

    def render(self, template: str, **context: Any) -> str:
        return self.jinja_env.get_template(template).render(**context)

    @property
    def name(self) -> str:
        return self.NAME.value

    def validate(self, context: GeneratorContext) -> None:
        """
        Re-check that the context value carries no error.

        Raises:
            GenerationError: If the value is broken
        """
        error = context.value.err()
        if error is not None:
            raise GenerationError(f"{self.name}: invalid schema value") from error

    def generate(self, context: GeneratorContext) -> bytes:
        """
        Generate target source code.

        Args:
            context: The generator context

        Returns:
            The complete generated file

        Raises:
            GenerationError: If generation fails; no partial output is returned
        """
        logger.debug(f"Generating {self.name} for project {context.project.name or '<unnamed>'}")
        try:
            text = self._generate(context)
        except GenerationError:
            raise
        except (CueToCodeError, jinja2.TemplateError, ValueError, TypeError) as exc:
            raise GenerationError(f"{self.name}: failed to generate code") from exc
        return text.encode("utf-8")

    @abstractmethod
    def _generate(self, context: GeneratorContext) -> str:
        """
        Produce the generated text.

        Args:
            context: The generator context

        Returns:
            Generated code as a string
        """
