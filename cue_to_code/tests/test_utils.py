import pytest

from cue_to_code.utils import snake_to_pascal_case, type_name


@pytest.mark.parametrize(
    "text, expected",
    [
        ("first_name", "FirstName"),
        ("my-project", "MyProject"),
        ("userProfile", "UserProfile"),
        ("", ""),
    ],
)
def test_snake_to_pascal_case(text, expected):
    assert snake_to_pascal_case(text) == expected


@pytest.mark.parametrize(
    "label, expected",
    [
        ("#Person", "Person"),
        ("HTTPServer", "HTTPServer"),
        ("my-project", "MyProject"),
        ("demo", "Demo"),
        ("", "Schema"),
        ("#", "Schema"),
    ],
)
def test_type_name(label, expected):
    assert type_name(label) == expected


if __name__ == "__main__":
    pytest.main([__file__])
