import threading

import pytest

from cue_to_code.errors import DuplicateNameError, NotFoundError
from cue_to_code.generators import GeneratorName, GeneratorRegistry, TypeScriptGenerator, default_registry
from cue_to_code.generators.base import Generator


class NamedGenerator(Generator):
    NAME = GeneratorName.GO

    def _generate(self, context):
        return ""


class TestGeneratorRegistry:
    """Registration and lookup"""

    def test_register_and_get(self):
        registry = GeneratorRegistry()
        generator = TypeScriptGenerator()
        registry.register(generator)
        assert registry.get("typescript") is generator
        assert registry.get(GeneratorName.TYPESCRIPT) is generator
        assert registry.list() == {"typescript"}

    def test_duplicate_name(self):
        registry = GeneratorRegistry()
        registry.register(NamedGenerator())
        with pytest.raises(DuplicateNameError):
            registry.register(NamedGenerator())

    @pytest.mark.parametrize("name", ["go", "rust", ""])
    def test_not_found(self, name):
        registry = GeneratorRegistry()
        registry.register(TypeScriptGenerator())
        with pytest.raises(NotFoundError):
            registry.get(name)

    def test_list_is_a_snapshot(self):
        registry = GeneratorRegistry()
        names = registry.list()
        registry.register(TypeScriptGenerator())
        assert names == set()

    def test_default_registry(self):
        assert default_registry().list() == {g.value for g in GeneratorName}

    def test_default_registries_are_independent(self):
        first = default_registry()
        second = default_registry()
        assert first.get("go") is not second.get("go")

    def test_concurrent_access(self):
        registry = GeneratorRegistry()
        errors = []

        class Numbered(NamedGenerator):
            def __init__(self, number):
                super().__init__()
                self.number = number

            @property
            def name(self):
                return f"gen-{self.number}"

        def register(number):
            try:
                registry.register(Numbered(number))
                for _ in range(50):
                    registry.get(f"gen-{number}")
                    registry.list()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=register, args=(i,)) for i in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert registry.list() == {f"gen-{i}" for i in range(16)}


if __name__ == "__main__":
    pytest.main([__file__])
