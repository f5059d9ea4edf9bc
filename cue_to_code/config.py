"""
Project configuration (``cue-to-code.yaml``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "cue-to-code.yaml"
DEFAULT_PROJECT_NAME = "my-project"
CONFIG_VERSION = "v1"

ALL_GENERATORS = ["typescript", "zod", "jsonschema", "go", "elixir"]

# Generator name -> (output path, options)
GENERATOR_DEFAULTS: dict[str, tuple[str, dict[str, Any]]] = {
    "typescript": ("generated/types.ts", {}),
    "zod": ("generated/schemas.ts", {}),
    "jsonschema": ("generated/schema.json", {}),
    "go": ("generated/types.go", {"package": "types"}),
    "elixir": ("generated/types.ex", {"module": "MyApp.Types"}),
}


@dataclass
class ValidationConfig:
    """Validation options.

    Attributes:
        strict: Require every regular field to be concrete
        fail_on_warning: Treat warnings as errors
    """

    strict: bool = True
    fail_on_warning: bool = False


@dataclass
class GeneratorConfig:
    """Settings of one target generator."""

    enabled: bool = True
    output: str = ""
    options: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_dict(d: dict) -> GeneratorConfig:
        """Create a generator config from a dictionary."""
        config = GeneratorConfig()
        for k, v in (d or {}).items():
            if k == "options":
                config.options = dict(v or {})
            elif k in ("enabled", "output"):
                setattr(config, k, v)
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        d: dict[str, Any] = {"enabled": self.enabled, "output": self.output}
        if self.options:
            d["options"] = dict(self.options)
        return d


@dataclass
class ProjectConfig:
    """Configuration of a schema project."""

    version: str = CONFIG_VERSION
    name: str = ""

    # Import paths of schema packages the project depends on
    imports: list[str] = field(default_factory=list)

    # Files and directories holding the project schemas
    schemas: list[str] = field(default_factory=lambda: ["schemas/"])

    validation: ValidationConfig = field(default_factory=ValidationConfig)
    generate: dict[str, GeneratorConfig] = field(default_factory=dict)

    @staticmethod
    def from_dict(d: dict) -> ProjectConfig:
        """Create a config from a dictionary, applying defaults for missing keys."""
        config = ProjectConfig()
        for k, v in d.items():
            if k == "validation" and isinstance(v, dict):
                config.validation = ValidationConfig(
                    strict=v.get("strict", True),
                    fail_on_warning=v.get("failOnWarning", v.get("fail_on_warning", False)),
                )
            elif k == "generate" and isinstance(v, dict):
                config.generate = {name: GeneratorConfig.from_dict(g) for name, g in v.items()}
            elif k in ("imports", "schemas"):
                setattr(config, k, list(v or []))
            elif k in ("version", "name"):
                setattr(config, k, v)
            else:
                logger.debug(f"Ignoring unknown config key {k!r}")

        if not config.version:
            config.version = CONFIG_VERSION
        if not config.schemas:
            config.schemas = ["schemas/"]
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "version": self.version,
            "name": self.name,
            "imports": list(self.imports),
            "schemas": list(self.schemas),
            "validation": {
                "strict": self.validation.strict,
                "failOnWarning": self.validation.fail_on_warning,
            },
            "generate": {name: g.to_dict() for name, g in self.generate.items()},
        }

    def enabled_generators(self) -> list[str]:
        """Names of enabled generators, in configuration order."""
        return [name for name, g in self.generate.items() if g.enabled]


def default_config(name: str = "", generators: list[str] | None = None) -> ProjectConfig:
    """
    Build a configuration with default settings for the requested generators.

    Args:
        name: Project name, ``my-project`` when empty
        generators: Generator names, all of them when None

    Returns:
        A new ProjectConfig
    """
    config = ProjectConfig(name=name or DEFAULT_PROJECT_NAME)
    for gen in ALL_GENERATORS if generators is None else generators:
        if gen not in GENERATOR_DEFAULTS:
            raise ConfigError(
                f"unknown generator: {gen}",
                suggestion=f"Available generators: {', '.join(ALL_GENERATORS)}",
            )
        output, options = GENERATOR_DEFAULTS[gen]
        config.generate[gen] = GeneratorConfig(enabled=True, output=output, options=dict(options))
    return config


def update_generators(config: ProjectConfig, generators: list[str]) -> ProjectConfig:
    """
    Enable exactly the given generators, keeping the settings of configured ones.

    Generators that are configured but not listed are disabled, not removed.
    """
    defaults = default_config(config.name, generators)
    for name, g in config.generate.items():
        g.enabled = name in generators
    for name in generators:
        if name in config.generate:
            config.generate[name].enabled = True
        else:
            config.generate[name] = defaults.generate[name]
    return config


def config_exists(path: str | Path) -> bool:
    return Path(path).exists()


def load_config(path: str | Path) -> ProjectConfig:
    """
    Read and parse a configuration file.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(
            f"config file not found: {path}",
            file=str(path),
            suggestion="Run 'cue-to-code init' to create a new configuration",
        ) from exc
    except OSError as exc:
        raise ConfigError("failed to read config file", file=str(path)) from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        error = ConfigError("failed to parse config file", file=str(path))
        if mark is not None:
            error.with_location(str(path), mark.line + 1, mark.column + 1)
        raise error from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("config file must contain a mapping", file=str(path))

    logger.debug(f"Loaded config from {path}")
    return ProjectConfig.from_dict(data)


def save_config(path: str | Path, config: ProjectConfig) -> None:
    """
    Write a configuration file.

    Raises:
        ConfigError: If the file cannot be written
    """
    path = Path(path)
    try:
        text = yaml.safe_dump(config.to_dict(), sort_keys=False, default_flow_style=False)
        path.write_text(text, encoding="utf-8")
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError("failed to write config file", file=str(path)) from exc
