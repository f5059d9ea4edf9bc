import json
import shutil
import sys

import pytest

from cue_to_code.config import ProjectConfig
from cue_to_code.engine import CueCliEngine, EngineError, Kind, parse_errors
from cue_to_code.engine.cue_cli import SchemaView, build_view, schema_for_data, wrap_root
from cue_to_code.errors import IntrospectionError, UnifyError
from cue_to_code.generators import GeneratorContext, GoGenerator, JsonSchemaGenerator, build_model
from cue_to_code.introspect import SemanticType, introspect
from cue_to_code.loader import Loader
from cue_to_code.validator import SchemaValidator

HAS_CUE = shutil.which("cue") is not None

CUE_OUTPUT = """port: conflicting values 9090 and 8080:
    ./a.cue:1:7
    ./b.cue:1:7
owner: reference "Missing" not found:
    /tmp/cue_to_code.x/001_schema.cue:3:9
"""


class TestParseErrors:
    """Parsing cue error output"""

    def test_messages_and_positions(self):
        entries = parse_errors(CUE_OUTPUT)
        assert [entry.message for entry in entries] == [
            "port: conflicting values 9090 and 8080",
            'owner: reference "Missing" not found',
        ]
        assert entries[0].position.filename == "./a.cue"
        assert (entries[0].position.line, entries[0].position.column) == (1, 7)

    def test_temporary_names_are_mapped_back(self):
        entries = parse_errors(CUE_OUTPUT, {"001_schema.cue": "schemas/schema.cue"})
        assert entries[1].position.filename == "schemas/schema.cue"
        assert entries[1].position.line == 3

    def test_message_without_position(self):
        [entry] = parse_errors("some instances are incomplete; use the -c flag\n")
        assert entry.position.filename == ""
        assert entry.position.line == 0

    def test_empty_output(self):
        assert parse_errors("") == []


COMPONENTS = {
    "Person": {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "age": {"type": "integer", "minimum": 0},
            "friends": {"type": "array", "items": {"$ref": "#/components/schemas/Person"}},
        },
        "required": ["name", "friends"],
    }
}


class TestSchemaView:
    """Values read from cue output"""

    def test_definition_fields(self):
        view = SchemaView(COMPONENTS["Person"], COMPONENTS, ("#Person",))
        fields = [(f.label, f.selector, f.optional) for f in view.fields()]
        assert fields == [
            ("name", "#Person.name", False),
            ("age", "#Person.age", True),
            ("friends", "#Person.friends", False),
        ]

    def test_kinds_and_references(self):
        view = SchemaView(COMPONENTS["Person"], COMPONENTS)
        friends = next(f.value for f in view.fields() if f.label == "friends")
        assert friends.kind_mask() == Kind.LIST
        element = friends.element()
        assert element.reference() == "#Person"
        assert element.kind_mask() == Kind.STRUCT

    @pytest.mark.parametrize(
        "schema, kind",
        [
            ({"type": "number"}, Kind.FLOAT),
            ({"type": ["string", "null"]}, Kind.STRING | Kind.NULL),
            ({"oneOf": [{"type": "string"}, {"type": "integer"}]}, Kind.STRING | Kind.INT),
            ({}, Kind.TOP),
        ],
    )
    def test_kind_mask(self, schema, kind):
        assert SchemaView(schema, {}).kind_mask() == kind

    def test_schema_for_data(self):
        assert schema_for_data({"a": [1.5], "b": None}) == {
            "type": "object",
            "properties": {
                "a": {"type": "array", "items": {"type": "number"}},
                "b": {"type": "null"},
            },
            "required": ["a", "b"],
        }


class TestWrapRoot:
    """Copying top-level fields into the synthetic root definition"""

    def test_package_and_imports_stay_first(self):
        source = 'package shop\n\nimport "strings"\n\nname: string\n'
        assert wrap_root(source) == (
            'package shop\n\nimport "strings"\n\nname: string\n\n#CueToCodeRoot: {\nname: string\n}\n'
        )

    def test_import_block(self):
        wrapped = wrap_root('package shop\n\nimport (\n\t"strings"\n)\n\nport: int\n')
        assert wrapped.startswith('package shop\n\nimport (\n\t"strings"\n)\n')
        assert wrapped.endswith("#CueToCodeRoot: {\nport: int\n}\n")

    def test_source_without_preamble(self):
        assert wrap_root('{"a": 1}') == '\n{"a": 1}\n\n#CueToCodeRoot: {\n{"a": 1}\n}\n'


ROOT_COMPONENT = {
    "type": "object",
    "required": ["name", "owner"],
    "properties": {
        "name": {"type": "string"},
        "age": {"type": "integer", "minimum": 0, "maximum": 150},
        "owner": {"$ref": "#/components/schemas/CueToCodeRoot.Person"},
    },
}


class TestBuildView:
    """Root view assembled from cue def output"""

    def test_regular_fields_come_from_root_component(self):
        components = {"CueToCodeRoot": ROOT_COMPONENT, **COMPONENTS, "CueToCodeRoot.Person": COMPONENTS["Person"]}
        view = build_view(components)
        fields = [(f.label, f.optional, f.value.kind_mask()) for f in view.fields()]
        assert fields == [
            ("name", False, Kind.STRING),
            ("age", True, Kind.INT),
            ("owner", False, Kind.STRUCT),
            ("#Person", False, Kind.STRUCT),
        ]

    def test_nested_definition_reference_is_mapped(self):
        view = build_view({"CueToCodeRoot": ROOT_COMPONENT, "Person": COMPONENTS["Person"]})
        owner = next(f.value for f in view.fields() if f.label == "owner")
        assert owner.reference() == "#Person"
        assert [f.label for f in owner.fields()] == ["name", "age", "friends"]

    def test_exported_data_without_root(self):
        view = build_view({}, {"port": 8080})
        assert [(f.label, f.optional) for f in view.fields()] == [("port", False)]
        assert view.decode() == {"port": 8080}

    def test_nothing_to_describe(self):
        with pytest.raises(EngineError):
            build_view({})


STAND_IN_CUE = """#!{python}
import json
import sys

command = sys.argv[1]
text = "".join(open(arg).read() for arg in sys.argv[2:] if arg.endswith(".cue"))
if command == "vet":
    sys.exit(0)
if command == "export":
    sys.stderr.write("name: incomplete value string:\\n    ./schema.cue:1:7\\n")
    sys.exit(1)
if command == "def" and {describe} and "#CueToCodeRoot: {{" in text:
    root = {{
        "type": "object",
        "required": ["name"],
        "properties": {{"name": {{"type": "string"}}, "age": {{"type": "integer", "minimum": 0}}}},
    }}
    json.dump({{"openapi": "3.0.0", "components": {{"schemas": {{"CueToCodeRoot": root}}}}}}, sys.stdout)
    sys.exit(0)
sys.stderr.write("cannot describe value\\n")
sys.exit(1)
"""


@pytest.fixture
def stand_in_cue(tmp_path):
    """A cue executable answering like cue does for a schema without concrete values."""

    def _make(describe=True):
        script = tmp_path / f"cue-{describe}"
        script.write_text(STAND_IN_CUE.format(python=sys.executable, describe=describe))
        script.chmod(0o755)
        return CueCliEngine(executable=str(script))

    return _make


@pytest.mark.skipif(sys.platform == "win32", reason="executable scripts need a POSIX shebang")
class TestNonConcreteFields:
    """Regular fields that cue cannot export"""

    def test_fields_are_described(self, stand_in_cue, write_file):
        path = write_file("schema.cue", "name: string\nage?: int & >=0\n")
        info = introspect(Loader(stand_in_cue()).load_file(path))
        assert [(f.name, f.optional, f.type) for f in info.fields] == [
            ("name", False, SemanticType.STRING),
            ("age", True, SemanticType.INT),
        ]

    def test_go_struct(self, stand_in_cue, write_file):
        path = write_file("schema.cue", "name: string\nage?: int & >=0\n")
        value = Loader(stand_in_cue()).load_file(path)
        code = GoGenerator().generate(GeneratorContext(value=value, project=ProjectConfig(name="person"))).decode()
        assert '\tName string `json:"name"`\n\tAge  *int   `json:"age,omitempty"`\n' in code

    def test_undescribable_value_raises(self, stand_in_cue, write_file):
        path = write_file("schema.cue", "name: string\n")
        with pytest.raises(IntrospectionError):
            introspect(Loader(stand_in_cue(describe=False)).load_file(path))


PERSON_CUE = "name: string\nage?: int & >=0 & <=150\n"


@pytest.mark.skipif(not HAS_CUE, reason="cue executable not installed")
class TestCueCliEngine:
    """Integration with the cue executable"""

    def test_compile_and_decode(self):
        value = CueCliEngine().compile(b"name: \"shop\"\nport: 8080\n", "shop.cue")
        assert value.err() is None
        assert value.decode() == {"name": "shop", "port": 8080}

    def test_conflict(self):
        engine = CueCliEngine()
        value = engine.compile(b"port: 8080\n", "a.cue").unify(engine.compile(b"port: 9090\n", "b.cue"))
        error = value.err()
        assert error is not None
        assert "conflicting values" in str(error)

    def test_definitions_are_iterated(self):
        value = CueCliEngine().compile(b"#Person: {\n\tname: string\n\tage?: int\n}\n", "person.cue")
        labels = [entry.label for entry in value.fields()]
        assert "#Person" in labels

    def test_non_concrete_and_optional_fields(self, write_file):
        path = write_file("person.cue", PERSON_CUE)
        info = introspect(Loader(CueCliEngine()).load_file(path))
        assert [(f.name, f.optional, f.type) for f in info.fields] == [
            ("name", False, SemanticType.STRING),
            ("age", True, SemanticType.INT),
        ]

    def test_person_scenario(self, write_file):
        value = Loader(CueCliEngine()).load_file(write_file("person.cue", PERSON_CUE))
        context = GeneratorContext(value=value, project=ProjectConfig(name="person"))
        go = GoGenerator().generate(context).decode()
        assert go.index('\tName string `json:"name"`') < go.index('\tAge  *int   `json:"age,omitempty"`')
        document = json.loads(JsonSchemaGenerator().generate(context))
        assert document["required"] == ["name"]

    def test_definition_reference(self, write_file):
        path = write_file("shop.cue", "#Person: {\n\tname: string\n}\nowner: #Person\n")
        model = build_model(Loader(CueCliEngine()).load_file(path), "Shop")
        assert [d.name for d in model.definitions] == ["Person"]
        assert model.root.fields[0].type_ref.reference == "Person"

    def test_unify_with_identical_copy(self):
        engine = CueCliEngine()
        value = engine.compile(PERSON_CUE.encode(), "a.cue")
        unified = value.unify(engine.compile(PERSON_CUE.encode(), "b.cue"))
        assert unified.err() is None
        assert [e.label for e in unified.fields()] == [e.label for e in value.fields()]

    def test_conflicting_directories(self, write_file, tmp_path):
        write_file("one/config.cue", "port: 8080\n")
        write_file("two/config.cue", "port: 9090\n")
        with pytest.raises(UnifyError):
            Loader(CueCliEngine()).load_paths([tmp_path / "one", tmp_path / "two"])

    def test_unresolved_reference(self, write_file):
        path = write_file("owner.cue", "owner: #Missing\n")
        engine = CueCliEngine()
        value = engine.compile(path.read_bytes(), str(path))
        result = SchemaValidator(strict=True).validate(value)
        assert not result.valid
        assert any("referenced" in error.suggestion for error in result.errors)


def test_missing_executable():
    assert not CueCliEngine(executable="cue-to-code-missing-binary").is_available()


if __name__ == "__main__":
    pytest.main([__file__])
