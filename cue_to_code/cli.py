"""
Command line interface.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import platform
import sys
from pathlib import Path

import click
import yaml

from . import __version__
from .config import (
    ALL_GENERATORS,
    DEFAULT_CONFIG_FILE,
    ProjectConfig,
    config_exists,
    default_config,
    load_config,
    save_config,
    update_generators,
)
from .engine import ENGINES, CueCliEngine, EngineError, create_engine
from .errors import CueToCodeError, NotFoundError, format_errors
from .generators import GeneratorName, default_registry
from .introspect import format_schema_info, introspect
from .pipeline import Pipeline
from .validator import format_error
from .writer import AtomicWriter

logger = logging.getLogger(__name__)

EXAMPLE_SCHEMA = """package schemas

// Example schema
#Person: {
\tname:  string
\temail: string & =~"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\\\\.[a-zA-Z]{2,}$"
\tage?:  int & >=0 & <=150
}
"""


def success(message: str) -> None:
    click.echo(f"✓ {message}")


def fail(error: CueToCodeError | str) -> None:
    """Print an error and exit with status 1."""
    text = error.format() if isinstance(error, CueToCodeError) else f"✗ {error}"
    click.echo(text, err=True)
    sys.exit(1)


class State:
    """Options shared by all commands."""

    def __init__(self, config_path: str, engine: str, verbose: bool):
        self.config_path = Path(config_path)
        self.engine_name = engine
        self.verbose = verbose

    def config(self, required: bool = False) -> ProjectConfig:
        if config_exists(self.config_path) or required:
            return load_config(self.config_path)
        logger.debug(f"No {self.config_path} found, using defaults")
        return default_config(Path.cwd().name, [])

    def pipeline(self, config: ProjectConfig) -> Pipeline:
        base_dir = self.config_path.resolve().parent
        return Pipeline(config, default_registry(), create_engine(self.engine_name), base_dir=base_dir)


@click.group()
@click.option("--config", "-c", "config_path", default=DEFAULT_CONFIG_FILE, show_default=True, help="Configuration file")
@click.option(
    "--engine",
    "-e",
    default="cue",
    type=click.Choice(sorted(ENGINES)),
    show_default=True,
    help="Schema engine; memory reads JSON sources only, not CUE syntax",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Verbose output")
@click.option("--quiet", "-q", is_flag=True, default=False, help="Only print errors")
@click.pass_context
def cli(ctx, config_path, engine, verbose, quiet):
    """Generate TypeScript, Zod, JSON Schema, Go and Elixir types from CUE schemas."""
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = State(config_path, engine, verbose)


@cli.command()
@click.argument("directory", default=".", type=click.Path(file_okay=False, resolve_path=True))
@click.option("--name", "-n", default="", help="Project name (defaults to the directory name)")
@click.option(
    "--generators",
    "-g",
    default="typescript,zod",
    show_default=True,
    help=f"Comma-separated generators to enable ({','.join(ALL_GENERATORS)})",
)
@click.option("--base", default="", help="Schema package to import")
@click.pass_obj
def init(state, directory, name, generators, base):
    """Initialize a project in DIRECTORY."""
    directory = Path(directory)
    selected = [g.strip() for g in generators.split(",") if g.strip()]
    config_path = directory / DEFAULT_CONFIG_FILE

    try:
        directory.mkdir(parents=True, exist_ok=True)
        existing = config_exists(config_path)
        if existing:
            click.echo(f"Found existing {DEFAULT_CONFIG_FILE} - re-initializing project")
            config = update_generators(load_config(config_path), selected)
        else:
            config = default_config(name or directory.name, selected)
        if base and base not in config.imports:
            config.imports.append(base)

        for sub in ("schemas", "generated"):
            (directory / sub).mkdir(exist_ok=True)
        save_config(config_path, config)

        example = directory / "schemas" / "example.cue"
        if not example.exists():
            AtomicWriter().write(example, EXAMPLE_SCHEMA)
    except CueToCodeError as exc:
        fail(exc)
    except OSError as exc:
        fail(f"failed to initialize project: {exc}")

    if existing:
        success(f"Updated project configuration: {config.name}")
    else:
        success(f"Initialized project: {config.name}")
    click.echo("")
    click.echo(f"Generators enabled: {', '.join(config.enabled_generators())}")
    click.echo("")
    click.echo("Next steps:")
    click.echo("  1. Edit schemas/example.cue or add your own schemas")
    click.echo("  2. Run 'cue-to-code validate' to validate schemas")
    click.echo("  3. Run 'cue-to-code build' to generate code for all enabled generators")


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path())
@click.option("--strict/--no-strict", default=None, help="Require all fields to be concrete")
@click.pass_obj
def validate(state, paths, strict):
    """Validate schema files or directories (default: configured schema paths)."""
    try:
        config = state.config()
        if strict is None:
            strict = config.validation.strict if config_exists(state.config_path) else False
        pipeline = state.pipeline(config)
        value = pipeline.load([Path(p).resolve() for p in paths])
        result = pipeline.validate(value, strict=strict)
    except CueToCodeError as exc:
        fail(exc)

    if not result.valid:
        click.echo("✗ Validation failed", err=True)
        click.echo("", err=True)
        for error in result.errors:
            click.echo(format_error(error), err=True)
        sys.exit(1)

    checked = len(paths) or len(config.schemas)
    success(f"All schemas valid ({checked} path(s) checked)")


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path())
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json", "yaml"]), show_default=True)
@click.pass_obj
def info(state, paths, output_format):
    """Show the fields and definitions of a schema."""
    try:
        pipeline = state.pipeline(state.config())
        schema_info = introspect(pipeline.load([Path(p).resolve() for p in paths]))
    except CueToCodeError as exc:
        fail(exc)

    data = dataclasses.asdict(schema_info)
    for f in data["fields"]:
        f["type"] = f["type"].value
    if output_format == "json":
        click.echo(json.dumps(data, indent=2))
    elif output_format == "yaml":
        click.echo(yaml.safe_dump(data, sort_keys=False), nl=False)
    else:
        click.echo(format_schema_info(schema_info), nl=False)


@cli.command()
@click.argument("target", type=click.Choice([g.value for g in GeneratorName]))
@click.option("--output", "-o", default="", help="Output file path")
@click.option("--package", "package", default="", help="Go package name")
@click.option("--module", "module", default="", help="Elixir module name")
@click.option("--interfaces/--no-interfaces", default=None, help="Zod: emit explicit interfaces")
@click.pass_obj
def gen(state, target, output, package, module, interfaces):
    """Generate code for one TARGET."""
    overrides = {}
    if package:
        overrides["package"] = package
    if module:
        overrides["module"] = module
    if interfaces is not None:
        overrides["interfaces"] = interfaces

    try:
        pipeline = state.pipeline(state.config())
        path = pipeline.output_path(target, str(Path(output).resolve()) if output else "")
        value = pipeline.load_and_validate()
        content = pipeline.generate(target, value, overrides)
        AtomicWriter().write(path, content)
    except CueToCodeError as exc:
        fail(exc)

    success(f"Generated {target}: {path} ({len(content)} bytes)")


@cli.command()
@click.pass_obj
def build(state):
    """Validate schemas and run every enabled generator."""
    try:
        config = state.config(required=True)
        pipeline = state.pipeline(config)
        click.echo(f"Building project: {config.name}")
        click.echo("")
        click.echo("Step 1: Validating schemas...")
        value = pipeline.load_and_validate()
    except CueToCodeError as exc:
        fail(exc)

    if not config.enabled_generators():
        fail(NotFoundError("no generators enabled", suggestion="Enable generators with 'cue-to-code init --generators ...'"))

    click.echo("")
    click.echo("Step 2: Generating code...")
    result = pipeline.build(value)
    for name, path in result.outputs.items():
        success(f"  {name}: {path}")

    if not result.ok:
        click.echo("", err=True)
        click.echo(format_errors(list(result.errors.values())), err=True, nl=False)
        sys.exit(1)

    click.echo("")
    success("Build complete")


@cli.command(name="fmt")
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option("--check", is_flag=True, default=False, help="Exit 1 if files are not formatted")
@click.pass_obj
def fmt_command(state, paths, check):
    """Format schema files with 'cue fmt'."""
    engine = CueCliEngine()
    if not engine.is_available():
        fail("'cue' command not found\n\nInstall CUE: https://cuelang.org/docs/install/")

    try:
        if not paths:
            config = state.config(required=True)
            base_dir = state.config_path.resolve().parent
            paths = [str(base_dir / p) for p in config.schemas]
        result = engine.format_files(list(paths), check=check)
    except CueToCodeError as exc:
        fail(exc)
    except EngineError as exc:
        fail(str(exc))

    if result.returncode != 0:
        output = (result.stdout + result.stderr).strip()
        fail(f"files are not formatted:\n{output}" if check else f"cue fmt failed:\n{output}")
    success(f"Formatted {len(paths)} path(s)")


@cli.command()
def version():
    """Print version information."""
    click.echo(f"Version:        {__version__}")
    click.echo(f"Python Version: {platform.python_version()}")
    click.echo(f"OS/Arch:        {platform.system().lower()}/{platform.machine()}")


def main():
    cli()


if __name__ == "__main__":
    main()
