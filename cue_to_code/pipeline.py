"""
Load -> validate -> generate orchestration used by the command line.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import GENERATOR_DEFAULTS, GeneratorConfig, ProjectConfig
from .engine import CueCliEngine, SchemaEngine, SchemaValue
from .errors import CueToCodeError, GenerationError, SchemaInvalidError
from .generators import GeneratorContext, GeneratorRegistry, default_registry
from .loader import Loader
from .validator import SchemaValidator, ValidationResult
from .writer import AtomicWriter

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Outcome of running every enabled generator.

    Attributes:
        outputs: Generator name -> file written (or that would be written)
        errors: Generator name -> failure
    """

    outputs: dict[str, Path] = field(default_factory=dict)
    errors: dict[str, CueToCodeError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


class Pipeline:
    """Runs the schema pipeline for one project."""

    def __init__(
        self,
        config: ProjectConfig,
        registry: GeneratorRegistry | None = None,
        engine: SchemaEngine | None = None,
        base_dir: str | Path | None = None,
    ):
        """
        Args:
            config: The project configuration
            registry: Generators to use, the built-in ones when None
            engine: Schema engine, the ``cue`` command line tool when None
            base_dir: Directory relative schema and output paths are resolved against
        """
        self.config = config
        self.registry = registry if registry is not None else default_registry()
        self.engine = engine if engine is not None else CueCliEngine()
        self.loader = Loader(self.engine)
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

    def resolve(self, path: str | Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.base_dir / path

    def load(self, paths: list[str | Path] | None = None) -> SchemaValue:
        """Load the given paths, or the configured schema paths."""
        if not paths:
            paths = self.config.schemas
        resolved = [self.resolve(p) for p in paths]
        logger.debug(f"Loading schemas from {', '.join(str(p) for p in resolved)}")
        return self.loader.load_paths(resolved)

    def validate(self, value: SchemaValue, strict: bool | None = None) -> ValidationResult:
        if strict is None:
            strict = self.config.validation.strict
        return SchemaValidator(strict=strict).validate(value)

    def load_and_validate(self, paths: list[str | Path] | None = None, strict: bool | None = None) -> SchemaValue:
        """
        Load and validate schemas.

        Raises:
            SchemaInvalidError: With every validation error when the schemas are invalid
        """
        value = self.load(paths)
        result = self.validate(value, strict)
        if not result.valid:
            raise SchemaInvalidError(result.errors)
        return value

    def generator_config(self, name: str) -> GeneratorConfig:
        """Configured settings of a generator, its defaults when not configured."""
        configured = self.config.generate.get(name)
        if configured is not None:
            return copy.deepcopy(configured)
        output, options = GENERATOR_DEFAULTS.get(name, ("", {}))
        return GeneratorConfig(enabled=True, output=output, options=dict(options))

    def context(self, name: str, value: SchemaValue, overrides: dict[str, Any] | None = None) -> GeneratorContext:
        """Build a fresh context; overrides replace configured options."""
        generator_config = self.generator_config(name)
        if overrides:
            generator_config.options.update(overrides)
        return GeneratorContext(
            value=value,
            project=self.config,
            generator_config=generator_config,
            options=dict(generator_config.options),
        )

    def generate(self, name: str, value: SchemaValue, overrides: dict[str, Any] | None = None) -> bytes:
        """
        Run one generator.

        Raises:
            NotFoundError: If the generator is not registered
            GenerationError: If validation or generation fails
        """
        generator = self.registry.get(name)
        context = self.context(name, value, overrides)
        generator.validate(context)
        return generator.generate(context)

    def output_path(self, name: str, output: str | None = None) -> Path:
        """
        Resolve the output path of a generator.

        Raises:
            GenerationError: If no output path is configured
        """
        output = output or self.generator_config(name).output
        if not output:
            raise GenerationError(
                f"no output path configured for {name}",
                suggestion=f"Set generate.{name}.output in the configuration or pass --output",
            )
        return self.resolve(output)

    def build(self, value: SchemaValue, write: bool = True, writer: AtomicWriter | None = None) -> BuildResult:
        """
        Run every enabled generator, collecting per-target failures.

        Args:
            value: The validated schema value
            write: Write the generated files
            writer: Writer to use, a default AtomicWriter when None

        Returns:
            The build result
        """
        writer = writer or AtomicWriter()
        result = BuildResult()
        for name in self.config.enabled_generators():
            try:
                path = self.output_path(name)
                content = self.generate(name, value)
                if write:
                    writer.write(path, content)
            except CueToCodeError as exc:
                logger.debug(f"Generator {name} failed: {exc}")
                result.errors[name] = exc
                continue
            result.outputs[name] = path
        return result
