"""
In-memory schema engine.

Values are immutable node trees built either from JSON sources (JSON is a
subset of CUE) or programmatically with the builder helpers at the bottom of
this module::

    schema = struct(
        {
            "#Person": struct(name=string(), age=optional(integer(0, 150))),
            "owner": ref("#Person"),
        }
    )

Unification covers what the generators rely on: kind intersection, equality
of concrete values, inclusive numeric bounds, struct merging (a field stays
optional only if it is optional on both sides), list elements and lazy
resolution of references to root-level definitions.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, replace
from typing import Any

from .base import (
    EngineError,
    ErrorEntry,
    FieldEntry,
    Kind,
    Position,
    SchemaEngine,
    SchemaValue,
    is_definition,
    kind_name,
)

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

# Guard against structural cycles when walking through references
MAX_DEPTH = 64


@dataclass(frozen=True)
class Slot:
    """A struct field: its value node and whether it is optional."""

    node: Node
    optional: bool = False


@dataclass(frozen=True)
class Node:
    """An immutable constraint node."""

    kind: Kind = Kind.TOP
    value: Any = UNSET
    minimum: float | None = None
    maximum: float | None = None
    fields: dict[str, Slot] | None = None
    items: tuple[Node, ...] | None = None
    element: Node | None = None
    references: tuple[str, ...] = ()
    errors: tuple[ErrorEntry, ...] = ()
    filename: str = ""

    @property
    def is_concrete(self) -> bool:
        return self.value is not UNSET


def _selector(path: tuple[str, ...]) -> str:
    return ".".join(path)


def _with_path(path: tuple[str, ...], message: str) -> str:
    return f"{_selector(path)}: {message}" if path else message


def _bottom(message: str, path: tuple[str, ...] = (), filename: str = "") -> Node:
    return Node(
        kind=Kind.BOTTOM,
        errors=(ErrorEntry(_with_path(path, message), Position(filename)),),
        filename=filename,
    )


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return json.dumps(value)
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, float) and value.is_integer():
        return f"{value:.1f}"
    return str(value)


def describe(node: Node) -> str:
    """Describe a node the way engine messages do (``8080``, ``int & >=0``)."""
    if node.is_concrete:
        return _format_scalar(node.value)
    if node.fields is not None:
        return "{...}"
    if node.items is not None:
        return "[...]"
    parts = [kind_name(node.kind)]
    if node.minimum is not None:
        parts.append(f">={_format_scalar(node.minimum)}")
    if node.maximum is not None:
        parts.append(f"<={_format_scalar(node.maximum)}")
    return " & ".join(parts)


def _max_bound(a: float | None, b: float | None) -> float | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def _min_bound(a: float | None, b: float | None) -> float | None:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def unify_nodes(a: Node, b: Node, path: tuple[str, ...] = ()) -> Node:
    """Unify two nodes into a new node; conflicts become error nodes."""
    if a.errors or b.errors:
        return Node(kind=Kind.BOTTOM, errors=a.errors + b.errors, filename=a.filename or b.filename)

    filename = a.filename or b.filename
    references = a.references + tuple(name for name in b.references if name not in a.references)

    kind = a.kind & b.kind
    if kind == Kind.BOTTOM:
        return _bottom(
            f"conflicting values {describe(a)} and {describe(b)} "
            f"(mismatched types {kind_name(a.kind)} and {kind_name(b.kind)})",
            path,
            filename,
        )

    if a.is_concrete and b.is_concrete:
        if a.value != b.value:
            return _bottom(f"conflicting values {describe(a)} and {describe(b)}", path, filename)
        value = a.value
    else:
        value = a.value if a.is_concrete else b.value

    minimum = _max_bound(a.minimum, b.minimum)
    maximum = _min_bound(a.maximum, b.maximum)
    if minimum is not None and maximum is not None and minimum > maximum:
        return _bottom(
            f"incompatible number bounds >={_format_scalar(minimum)} and <={_format_scalar(maximum)}",
            path,
            filename,
        )

    if value is not UNSET and isinstance(value, (int, float)) and not isinstance(value, bool):
        if minimum is not None and value < minimum:
            return _bottom(f"invalid value {_format_scalar(value)} (out of bound >={_format_scalar(minimum)})", path, filename)
        if maximum is not None and value > maximum:
            return _bottom(f"invalid value {_format_scalar(value)} (out of bound <={_format_scalar(maximum)})", path, filename)

    fields = _unify_fields(a.fields, b.fields, path)

    element = a.element
    if a.element is not None and b.element is not None:
        element = unify_nodes(a.element, b.element, path + ("*",))
    elif element is None:
        element = b.element

    items = a.items if a.items is not None else b.items
    if a.items is not None and b.items is not None:
        if len(a.items) != len(b.items):
            return _bottom(f"incompatible list lengths ({len(a.items)} and {len(b.items)})", path, filename)
        items = tuple(unify_nodes(x, y, path + (str(i),)) for i, (x, y) in enumerate(zip(a.items, b.items)))
    if items is not None and element is not None:
        items = tuple(unify_nodes(item, element, path + (str(i),)) for i, item in enumerate(items))

    return Node(
        kind=kind,
        value=value,
        minimum=minimum,
        maximum=maximum,
        fields=fields,
        items=items,
        element=element,
        references=references,
        filename=filename,
    )


def _unify_fields(
    a: dict[str, Slot] | None,
    b: dict[str, Slot] | None,
    path: tuple[str, ...],
) -> dict[str, Slot] | None:
    if a is None:
        return b
    if b is None:
        return a

    merged: dict[str, Slot] = {}
    for label, slot in a.items():
        other = b.get(label)
        if other is None:
            merged[label] = slot
        else:
            # A regular field wins over an optional one
            merged[label] = Slot(unify_nodes(slot.node, other.node, path + (label,)), slot.optional and other.optional)
    for label, slot in b.items():
        if label not in merged:
            merged[label] = slot
    return merged


def resolve(node: Node, root: Node, path: tuple[str, ...] = (), chain: tuple[str, ...] = ()) -> Node:
    """Resolve the references of a node against the definitions of root."""
    if not node.references:
        return node

    result = replace(node, references=())
    for name in node.references:
        if name in chain:
            continue
        slot = root.fields.get(name) if root.fields is not None else None
        if slot is None:
            return _bottom(f'reference "{name}" not found', path, node.filename)
        target = resolve(slot.node, root, path, chain + (name,))
        result = unify_nodes(target, result, path)
    return result


class MemoryValue(SchemaValue):
    """SchemaValue backed by a node tree."""

    def __init__(self, node: Node, root: Node | None = None, path: tuple[str, ...] = ()):
        self.node = node
        self.root = root if root is not None else node
        self.path = path

    def __repr__(self) -> str:
        return f"MemoryValue({describe(self.node)!r}, path={_selector(self.path)!r})"

    def _effective(self) -> Node:
        return resolve(self.node, self.root, self.path)

    def unify(self, other: SchemaValue) -> SchemaValue:
        if not isinstance(other, MemoryValue):
            raise EngineError("cannot unify values produced by different engines")
        node = unify_nodes(self.node, other.node, self.path)
        if self.path:
            return MemoryValue(node, self.root, self.path)
        return MemoryValue(node)

    def fields(self, include_optional: bool = True, include_definitions: bool = True) -> Iterator[FieldEntry]:
        effective = self._effective()
        if effective.errors:
            raise EngineError(list(effective.errors))
        if effective.fields is None:
            raise EngineError(_with_path(self.path, f"cannot iterate {describe(effective)} as a struct"))
        return self._iter_fields(effective, include_optional, include_definitions)

    def _iter_fields(self, effective: Node, include_optional: bool, include_definitions: bool) -> Iterator[FieldEntry]:
        for label, slot in effective.fields.items():
            if slot.optional and not include_optional:
                continue
            if is_definition(label) and not include_definitions:
                continue
            path = self.path + (label,)
            yield FieldEntry(
                label=label,
                selector=_selector(path),
                value=MemoryValue(slot.node, self.root, path),
                optional=slot.optional,
            )

    def kind_mask(self) -> Kind:
        effective = self._effective()
        if effective.errors:
            return Kind.BOTTOM
        return effective.kind

    def element(self) -> SchemaValue | None:
        effective = self._effective()
        if effective.element is not None:
            return MemoryValue(effective.element, self.root, self.path + ("*",))
        if effective.items:
            return MemoryValue(effective.items[0], self.root, self.path + ("0",))
        return None

    def reference(self) -> str | None:
        if len(self.node.references) == 1:
            return self.node.references[0]
        return None

    def err(self) -> EngineError | None:
        entries = list(_collect_errors(self.node, self.root, self.path))
        return EngineError(entries) if entries else None

    def validate(self, concrete: bool = False) -> EngineError | None:
        error = self.err()
        if error is not None or not concrete:
            return error
        entries = list(_collect_incomplete(self.node, self.root, self.path, 0))
        return EngineError(entries) if entries else None

    def decode(self) -> Any:
        error = self.validate(concrete=True)
        if error is not None:
            raise error
        return _decode(self.node, self.root, self.path, 0)

    def to_json(self) -> bytes:
        return json.dumps(self.decode(), ensure_ascii=False).encode("utf-8")


def _collect_errors(node: Node, root: Node, path: tuple[str, ...]) -> Iterator[ErrorEntry]:
    yield from node.errors

    missing = [name for name in node.references if root.fields is None or name not in root.fields]
    for name in missing:
        yield ErrorEntry(_with_path(path, f'reference "{name}" not found'), Position(node.filename))
    if node.references and not missing:
        yield from resolve(node, root, path).errors

    if node.fields is not None:
        for label, slot in node.fields.items():
            # Conflicts inside optional fields only make the field unusable
            if slot.optional:
                continue
            yield from _collect_errors(slot.node, root, path + (label,))
    for i, item in enumerate(node.items or ()):
        yield from _collect_errors(item, root, path + (str(i),))
    if node.element is not None:
        yield from _collect_errors(node.element, root, path + ("*",))


def _collect_incomplete(node: Node, root: Node, path: tuple[str, ...], depth: int) -> Iterator[ErrorEntry]:
    if depth > MAX_DEPTH:
        yield ErrorEntry(_with_path(path, "structural cycle"), Position(node.filename))
        return

    effective = resolve(node, root, path)
    if effective.fields is not None:
        for label, slot in effective.fields.items():
            if slot.optional or is_definition(label):
                continue
            yield from _collect_incomplete(slot.node, root, path + (label,), depth + 1)
        return
    if effective.items is not None:
        for i, item in enumerate(effective.items):
            yield from _collect_incomplete(item, root, path + (str(i),), depth + 1)
        return
    # Open lists default to the empty list
    if effective.kind == Kind.LIST:
        return
    if not effective.is_concrete and effective.kind != Kind.NULL:
        yield ErrorEntry(_with_path(path, f"incomplete value {describe(effective)}"), Position(effective.filename))


def _decode(node: Node, root: Node, path: tuple[str, ...], depth: int) -> Any:
    effective = resolve(node, root, path)
    if effective.fields is not None:
        return {
            label: _decode(slot.node, root, path + (label,), depth + 1)
            for label, slot in effective.fields.items()
            if not slot.optional and not is_definition(label)
        }
    if effective.items is not None:
        return [_decode(item, root, path + (str(i),), depth + 1) for i, item in enumerate(effective.items)]
    if effective.kind == Kind.LIST:
        return []
    if effective.kind == Kind.NULL:
        return None
    return effective.value


class _Pairs(list):
    """Ordered key/value pairs of a JSON object, duplicates kept."""


def from_python(data: Any, filename: str = "", path: tuple[str, ...] = ()) -> Node:
    """Build a concrete node from native Python data."""
    if isinstance(data, MemoryValue):
        return data.node
    if data is None:
        return Node(kind=Kind.NULL, value=None, filename=filename)
    if isinstance(data, bool):
        return Node(kind=Kind.BOOL, value=data, filename=filename)
    if isinstance(data, int):
        return Node(kind=Kind.INT, value=data, filename=filename)
    if isinstance(data, float):
        return Node(kind=Kind.FLOAT, value=data, filename=filename)
    if isinstance(data, str):
        return Node(kind=Kind.STRING, value=data, filename=filename)
    if isinstance(data, (list, tuple)) and not isinstance(data, _Pairs):
        items = tuple(from_python(item, filename, path + (str(i),)) for i, item in enumerate(data))
        return Node(kind=Kind.LIST, items=items, filename=filename)
    if isinstance(data, (dict, _Pairs)):
        pairs = data.items() if isinstance(data, dict) else data
        fields: dict[str, Slot] = {}
        for label, item in pairs:
            label = str(label)
            node = from_python(item, filename, path + (label,))
            if label in fields:
                # Repeated labels unify, as they do in CUE
                node = unify_nodes(fields[label].node, node, path + (label,))
            fields[label] = Slot(node)
        return Node(kind=Kind.STRUCT, fields=fields, filename=filename)
    raise TypeError(f"cannot convert {type(data).__name__} to a schema value")


class MemoryEngine(SchemaEngine):
    """Engine compiling JSON sources into in-memory values.

    CUE syntax is not understood; use ``CueCliEngine`` for ``.cue`` files.
    """

    name = "memory"

    def compile(self, data: bytes, filename: str = "") -> SchemaValue:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            return MemoryValue(_bottom(f"invalid UTF-8 in source: {exc.reason}", (), filename))

        if not text.strip():
            return MemoryValue(Node(kind=Kind.STRUCT, fields={}, filename=filename))

        try:
            parsed = json.loads(text, object_pairs_hook=_Pairs)
        except json.JSONDecodeError as exc:
            message = f"expected JSON value: {exc.msg} (the memory engine reads JSON sources only)"
            entry = ErrorEntry(message, Position(filename, exc.lineno, exc.colno))
            return MemoryValue(Node(kind=Kind.BOTTOM, errors=(entry,), filename=filename))

        logger.debug(f"Compiled {filename or '<bytes>'} with the memory engine")
        return MemoryValue(from_python(parsed, filename))

    def from_data(self, data: Any) -> SchemaValue:
        """Build a concrete value from native Python data."""
        return MemoryValue(from_python(data))


# Builder helpers


class OptionalField:
    """Marks a struct field as optional; see ``optional()``."""

    def __init__(self, value: Any):
        self.value = value


def _node(value: Any) -> Node:
    if isinstance(value, OptionalField):
        raise TypeError("optional() can only be used as a struct field value")
    return from_python(value)


def top() -> MemoryValue:
    """Any value (``_``)."""
    return MemoryValue(Node(kind=Kind.TOP))


def null() -> MemoryValue:
    return MemoryValue(Node(kind=Kind.NULL, value=None))


def string() -> MemoryValue:
    return MemoryValue(Node(kind=Kind.STRING))


def boolean() -> MemoryValue:
    return MemoryValue(Node(kind=Kind.BOOL))


def integer(minimum: float | None = None, maximum: float | None = None) -> MemoryValue:
    return MemoryValue(Node(kind=Kind.INT, minimum=minimum, maximum=maximum))


def floating(minimum: float | None = None, maximum: float | None = None) -> MemoryValue:
    return MemoryValue(Node(kind=Kind.FLOAT, minimum=minimum, maximum=maximum))


def number(minimum: float | None = None, maximum: float | None = None) -> MemoryValue:
    return MemoryValue(Node(kind=Kind.NUMBER, minimum=minimum, maximum=maximum))


def concrete(value: Any) -> MemoryValue:
    return MemoryValue(from_python(value))


def list_of(element: Any = None) -> MemoryValue:
    """An open list (``[...T]``); without element any item is allowed."""
    return MemoryValue(Node(kind=Kind.LIST, element=_node(element) if element is not None else None))


def ref(name: str) -> MemoryValue:
    """A reference to a root-level definition (``#Person``)."""
    return MemoryValue(Node(kind=Kind.TOP, references=(name,)))


def one_of(*values: Any) -> MemoryValue:
    """A disjunction, reduced to the union of the alternatives' kinds."""
    kind = Kind.BOTTOM
    for value in values:
        kind |= _node(value).kind
    return MemoryValue(Node(kind=kind))


def optional(value: Any) -> OptionalField:
    """Mark a struct field as optional (``name?: T``)."""
    return OptionalField(value)


def struct(fields: dict[str, Any] | None = None, /, **kwargs: Any) -> MemoryValue:
    """
    A struct value.

    Labels ending with ``?`` are optional, as are values wrapped in
    ``optional()``.
    """
    declared = dict(fields or {})
    declared.update(kwargs)

    slots: dict[str, Slot] = {}
    for label, value in declared.items():
        is_optional = isinstance(value, OptionalField)
        if is_optional:
            value = value.value
        if label.endswith("?"):
            label = label[:-1]
            is_optional = True
        slots[label] = Slot(_node(value), is_optional)
    return MemoryValue(Node(kind=Kind.STRUCT, fields=slots))
