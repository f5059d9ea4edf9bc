import pytest

from cue_to_code.errors import FileSystemError, GenerationError
from cue_to_code.writer import AtomicWriter, OutputMode


class TestAtomicWriter:
    """Atomic writes of generated files"""

    def test_write_creates_parents(self, tmp_path):
        path = tmp_path / "generated" / "types.ts"
        AtomicWriter().write(path, b"export interface A {\n}\n")
        assert path.read_text() == "export interface A {\n}\n"

    def test_overwrite(self, write_file):
        path = write_file("schema.json", "{}")
        AtomicWriter().write(path, '{"a": 1}\n')
        assert path.read_text() == '{"a": 1}\n'

    def test_error_if_exists(self, write_file):
        path = write_file("types.go", "package types\n")
        with pytest.raises(FileSystemError):
            AtomicWriter(mode=OutputMode.ERROR_IF_EXISTS).write(path, "package other\n")
        assert path.read_text() == "package types\n"

    def test_invalid_content_keeps_original(self, write_file, tmp_path):
        path = write_file("schema.json", "{}")
        with pytest.raises(GenerationError):
            AtomicWriter().write(path, "{not json")
        assert path.read_text() == "{}"
        assert [p.name for p in tmp_path.iterdir()] == ["schema.json"]

    def test_unbalanced_braces(self, tmp_path):
        with pytest.raises(GenerationError):
            AtomicWriter().write(tmp_path / "types.go", "type A struct {\n")

    @pytest.mark.parametrize(
        "content",
        [
            'export interface A {\n  "a{b": string;\n}\n',
            "export interface A {\n  // }\n  b: string;\n}\n",
            'type A struct {\n\tB string `json:"b}"`\n}\n',
        ],
    )
    def test_braces_in_strings_and_comments(self, tmp_path, content):
        suffix = "go" if content.startswith("type") else "ts"
        path = tmp_path / f"types.{suffix}"
        AtomicWriter().write(path, content)
        assert path.read_text() == content

    def test_unbalanced_braces_outside_strings(self, tmp_path):
        with pytest.raises(GenerationError):
            AtomicWriter().write(tmp_path / "types.ts", 'export interface A {\n  "a}": string;\n')

    def test_validation_can_be_skipped(self, tmp_path):
        path = tmp_path / "types.go"
        AtomicWriter().write(path, "type A struct {\n", validate=False)
        assert path.exists()


if __name__ == "__main__":
    pytest.main([__file__])
