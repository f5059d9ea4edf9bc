import pytest

from cue_to_code.engine import EngineError, ErrorEntry, Position
from cue_to_code.engine.memory import concrete, integer, ref, string, struct
from cue_to_code.errors import ValidationError
from cue_to_code.validator import (
    SUGGESTIONS,
    SchemaValidator,
    clean_message,
    convert_errors,
    extract_path,
    format_error,
    suggest,
)


def suggestion_for(keyword):
    return dict(SUGGESTIONS)[keyword]


class TestSchemaValidator:
    """Validation of schema values"""

    def test_valid_schema(self, person_schema):
        result = SchemaValidator(strict=False).validate(person_schema)
        assert result.valid
        assert result.errors == []

    def test_incomplete_schema_passes_non_strict(self):
        assert SchemaValidator(strict=False).validate(struct(name=string())).valid

    def test_incomplete_schema_fails_strict(self):
        result = SchemaValidator(strict=True).validate(struct(name=string()))
        assert not result.valid
        assert result.errors[0].path == "name"
        assert result.errors[0].suggestion == suggestion_for("incomplete")

    def test_unresolved_reference_strict(self):
        result = SchemaValidator(strict=True).validate(struct(owner=ref("#Missing")))
        assert not result.valid
        assert len(result.errors) >= 1
        assert any(error.suggestion == suggestion_for("reference") for error in result.errors)

    def test_all_errors_are_collected(self):
        schema = struct(a=integer(0, 10), b=string())
        data = concrete({"a": 20, "b": 1})
        result = SchemaValidator().validate(schema.unify(data))
        assert not result.valid
        assert [error.path for error in result.errors] == ["a", "b"]


class TestErrorConversion:
    """Engine errors to ValidationErrors"""

    def test_position_is_carried(self):
        error = EngineError([ErrorEntry("port: conflicting values 1 and 2", Position("a.cue", 3, 7))])
        [converted] = convert_errors(error)
        assert isinstance(converted, ValidationError)
        assert (converted.file, converted.line, converted.column) == ("a.cue", 3, 7)
        assert converted.path == "port"

    def test_missing_position_defaults(self):
        [converted] = convert_errors(EngineError("something went wrong"))
        assert (converted.file, converted.line, converted.column) == ("", 0, 0)
        assert converted.suggestion == ""

    @pytest.mark.parametrize(
        "message, has_path",
        [
            ("port: conflicting values 1 and 2", True),
            ("server.tls.enabled: incomplete value bool", True),
            ("some instances are incomplete: use -c", False),
            ("no colon here", False),
        ],
    )
    def test_extract_path(self, message, has_path):
        assert bool(extract_path(message)) == has_path

    @pytest.mark.parametrize(
        "message, keyword",
        [
            ("a: value is not concrete", "concrete"),
            ("a: conflicting values 1 and 2", "conflict"),
            ("a: incomplete value string", "incomplete"),
            ('a: reference "b" not found', "reference"),
            ("a: cannot use value 1 (type int) as string", "cannot use"),
            ("A: CONFLICTING VALUES", "conflict"),
        ],
    )
    def test_suggestion_keywords(self, message, keyword):
        assert suggest(message) == suggestion_for(keyword)

    def test_no_suggestion(self):
        assert suggest("something unexpected") == ""

    def test_clean_message(self):
        assert clean_message("  a:   conflicting\n  values:") == "a: conflicting values"


def test_format_error():
    error = ValidationError(
        "port: conflicting values 1 and 2",
        file="a.cue",
        line=3,
        column=7,
        path="port",
        suggestion="Check for duplicate or contradicting field definitions",
    )
    assert format_error(error) == (
        "a.cue:3:7: field 'port': port: conflicting values 1 and 2\n"
        "  Suggestion: Check for duplicate or contradicting field definitions"
    )


if __name__ == "__main__":
    pytest.main([__file__])
