import pytest

from cue_to_code.config import ProjectConfig
from cue_to_code.engine import MemoryEngine
from cue_to_code.engine.memory import integer, list_of, optional, ref, string, struct
from cue_to_code.generators import GeneratorContext


@pytest.fixture
def engine():
    return MemoryEngine()


@pytest.fixture
def person_schema():
    """A definition, a reference to it, a list and an optional field."""
    return struct(
        {
            "#Person": struct(name=string(), age=optional(integer(0, 150))),
            "owner": ref("#Person"),
            "tags": list_of(string()),
            "count?": integer(),
        }
    )


@pytest.fixture
def make_context():
    def _make(value, name="demo", **options):
        context = GeneratorContext(value=value, project=ProjectConfig(name=name))
        context.options.update(options)
        return context

    return _make


@pytest.fixture
def write_file(tmp_path):
    """Write a file below tmp_path, creating parent directories."""

    def _write(relative, content):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
