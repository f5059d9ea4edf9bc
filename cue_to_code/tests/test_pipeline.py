import json

import pytest

from cue_to_code.config import default_config
from cue_to_code.engine import MemoryEngine
from cue_to_code.engine.memory import string, struct
from cue_to_code.errors import GenerationError, NotFoundError, SchemaInvalidError, UnifyError
from cue_to_code.generators import GeneratorName, GeneratorRegistry, JsonSchemaGenerator, default_registry
from cue_to_code.generators.base import Generator
from cue_to_code.pipeline import Pipeline


class FailingGenerator(Generator):
    NAME = GeneratorName.GO

    def _generate(self, context):
        raise ValueError("boom")


@pytest.fixture
def project(write_file, tmp_path):
    write_file("schemas/shop.cue", '{"name": "shop", "port": 8080, "tags": ["a"]}')
    config = default_config("shop", ["typescript", "jsonschema", "go"])
    return Pipeline(config, default_registry(), MemoryEngine(), base_dir=tmp_path)


class TestPipeline:
    """Load, validate and generate"""

    def test_load_configured_schemas(self, project):
        assert project.load().decode() == {"name": "shop", "port": 8080, "tags": ["a"]}

    def test_load_explicit_paths(self, project, write_file):
        path = write_file("other.cue", '{"other": true}')
        assert project.load([path]).decode() == {"other": True}

    def test_load_conflict(self, project, write_file):
        write_file("schemas/override.cue", '{"port": 9090}')
        with pytest.raises(UnifyError):
            project.load()

    def test_load_and_validate(self, project):
        assert project.load_and_validate().err() is None

    def test_load_and_validate_invalid(self, project, monkeypatch):
        monkeypatch.setattr(project, "load", lambda paths=None: struct(name=string()))
        with pytest.raises(SchemaInvalidError) as info:
            project.load_and_validate(strict=True)
        assert len(info.value.errors) == 1
        assert "Found 1 error(s):" in info.value.format()

    def test_validate_uses_configured_strictness(self, project):
        value = struct(name=string())
        assert not project.validate(value).valid
        project.config.validation.strict = False
        assert project.validate(value).valid

    def test_generate(self, project):
        content = project.generate("jsonschema", project.load())
        document = json.loads(content)
        assert document["title"] == "shop"
        assert document["properties"]["port"] == {"type": "integer"}

    def test_generate_with_overrides(self, project):
        content = project.generate("go", project.load(), {"package": "models"})
        assert b"\npackage models\n" in content
        assert project.config.generate["go"].options == {"package": "types"}

    def test_generate_unconfigured_generator_uses_defaults(self, project):
        content = project.generate("elixir", project.load())
        assert b"defmodule MyApp.Types.Shop do" in content

    def test_generate_unknown(self, project):
        with pytest.raises(NotFoundError):
            project.generate("rust", project.load())

    def test_output_path(self, project, tmp_path):
        assert project.output_path("go") == tmp_path / "generated" / "types.go"
        assert project.output_path("go", "/abs/out.go").as_posix() == "/abs/out.go"

    def test_build(self, project, tmp_path):
        result = project.build(project.load())
        assert result.ok
        assert set(result.outputs) == {"typescript", "jsonschema", "go"}
        assert (tmp_path / "generated" / "types.ts").read_text().startswith("// Code generated by cue-to-code.")
        assert json.loads((tmp_path / "generated" / "schema.json").read_text())["title"] == "shop"
        assert "package types" in (tmp_path / "generated" / "types.go").read_text()

    def test_build_without_writing(self, project, tmp_path):
        result = project.build(project.load(), write=False)
        assert result.ok
        assert not (tmp_path / "generated").exists()

    def test_build_collects_failures(self, write_file, tmp_path):
        write_file("schemas/shop.cue", '{"name": "shop"}')
        registry = GeneratorRegistry()
        registry.register(JsonSchemaGenerator())
        registry.register(FailingGenerator())
        pipeline = Pipeline(default_config("shop", ["go", "jsonschema"]), registry, MemoryEngine(), base_dir=tmp_path)

        result = pipeline.build(pipeline.load())

        assert not result.ok
        assert isinstance(result.errors["go"], GenerationError)
        assert set(result.outputs) == {"jsonschema"}
        assert (tmp_path / "generated" / "schema.json").exists()


if __name__ == "__main__":
    pytest.main([__file__])
