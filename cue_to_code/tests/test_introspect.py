import pytest

from cue_to_code.engine import Kind
from cue_to_code.engine.memory import string
from cue_to_code.errors import IntrospectionError
from cue_to_code.introspect import FieldInfo, SemanticType, format_schema_info, introspect, semantic_type


@pytest.mark.parametrize(
    "kind, expected",
    [
        (Kind.STRING, SemanticType.STRING),
        (Kind.INT, SemanticType.INT),
        (Kind.FLOAT, SemanticType.FLOAT),
        (Kind.NUMBER, SemanticType.INT),
        (Kind.BOOL, SemanticType.BOOL),
        (Kind.LIST, SemanticType.LIST),
        (Kind.STRUCT, SemanticType.STRUCT),
        (Kind.NULL, SemanticType.UNKNOWN),
        (Kind.BOTTOM, SemanticType.UNKNOWN),
        (Kind.STRING | Kind.INT, SemanticType.STRING),
        (Kind.FLOAT | Kind.BOOL, SemanticType.FLOAT),
        (Kind.LIST | Kind.STRUCT, SemanticType.LIST),
        (Kind.TOP, SemanticType.STRING),
    ],
)
def test_semantic_type_priority(kind, expected):
    assert semantic_type(kind) == expected


class TestIntrospect:
    """Walking schema values"""

    def test_fields_and_definitions(self, person_schema):
        info = introspect(person_schema)
        assert info.fields == [
            FieldInfo(name="#Person", path="#Person", type=SemanticType.STRUCT, optional=False),
            FieldInfo(name="owner", path="owner", type=SemanticType.STRUCT, optional=False),
            FieldInfo(name="tags", path="tags", type=SemanticType.LIST, optional=False),
            FieldInfo(name="count", path="count", type=SemanticType.INT, optional=True),
        ]
        assert info.definitions == ["Person"]

    def test_concrete_data(self, engine):
        info = introspect(engine.compile(b'{"name": "demo", "ratio": 0.5, "on": true}'))
        assert [(f.name, f.type) for f in info.fields] == [
            ("name", SemanticType.STRING),
            ("ratio", SemanticType.FLOAT),
            ("on", SemanticType.BOOL),
        ]
        assert info.definitions == []

    def test_non_struct_value(self):
        with pytest.raises(IntrospectionError):
            introspect(string())

    def test_empty_struct(self, engine):
        info = introspect(engine.compile(b"{}"))
        assert info.fields == []
        assert info.definitions == []


def test_format_schema_info(person_schema):
    text = format_schema_info(introspect(person_schema))
    assert "Definitions (1):\n  - #Person\n" in text
    assert "Fields (3):\n" in text
    assert "  count?: int\n" in text


if __name__ == "__main__":
    pytest.main([__file__])
