"""
Registry mapping generator names to generator instances.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from ..errors import DuplicateNameError, NotFoundError
from .base import Generator, GeneratorName


class ReadWriteLock:
    """Lock allowing concurrent readers and one exclusive writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class GeneratorRegistry:
    """Thread-safe name -> generator mapping."""

    def __init__(self):
        self._lock = ReadWriteLock()
        self._generators: dict[str, Generator] = {}

    def register(self, generator: Generator) -> None:
        """
        Register a generator under its name.

        Raises:
            DuplicateNameError: If the name is already registered
        """
        with self._lock.write():
            if generator.name in self._generators:
                raise DuplicateNameError(f"generator {generator.name!r} already registered")
            self._generators[generator.name] = generator

    def get(self, name: str | GeneratorName) -> Generator:
        """
        Look up a generator.

        Raises:
            NotFoundError: If no generator is registered under name
        """
        key = name.value if isinstance(name, GeneratorName) else name
        with self._lock.read():
            generator = self._generators.get(key)
            if generator is None:
                available = ", ".join(sorted(self._generators)) or "none"
                raise NotFoundError(
                    f"generator {key!r} not found",
                    suggestion=f"Available generators: {available}",
                )
            return generator

    def list(self) -> set[str]:
        """Snapshot of the registered names."""
        with self._lock.read():
            return set(self._generators)


def default_registry() -> GeneratorRegistry:
    """Create a registry holding the built-in generators."""
    from .elixir import ElixirGenerator
    from .golang import GoGenerator
    from .jsonschema import JsonSchemaGenerator
    from .typescript import TypeScriptGenerator
    from .zod import ZodGenerator

    registry = GeneratorRegistry()
    for generator_class in (TypeScriptGenerator, ZodGenerator, JsonSchemaGenerator, GoGenerator, ElixirGenerator):
        registry.register(generator_class())
    return registry
