"""
C# Syntax Helpers — node kinds, source text mapping, and declaration accessors.

Wraps tree-sitter nodes produced by the tree-sitter-c-sharp grammar. Node
dispatch goes through the closed SyntaxKind enumeration; anything outside it
maps to None.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from tree_sitter import Node, Tree

from voidguard.models.rule_models import Location, TextSpan


class SyntaxKind(str, Enum):
    COMPILATION_UNIT = "compilation_unit"
    NAMESPACE_DECLARATION = "namespace_declaration"
    FILE_SCOPED_NAMESPACE_DECLARATION = "file_scoped_namespace_declaration"
    USING_DIRECTIVE = "using_directive"
    CLASS_DECLARATION = "class_declaration"
    STRUCT_DECLARATION = "struct_declaration"
    INTERFACE_DECLARATION = "interface_declaration"
    RECORD_DECLARATION = "record_declaration"
    RECORD_STRUCT_DECLARATION = "record_struct_declaration"
    ENUM_DECLARATION = "enum_declaration"
    DELEGATE_DECLARATION = "delegate_declaration"
    METHOD_DECLARATION = "method_declaration"
    CONSTRUCTOR_DECLARATION = "constructor_declaration"
    DESTRUCTOR_DECLARATION = "destructor_declaration"
    FIELD_DECLARATION = "field_declaration"
    PROPERTY_DECLARATION = "property_declaration"
    INDEXER_DECLARATION = "indexer_declaration"
    EVENT_DECLARATION = "event_declaration"
    EVENT_FIELD_DECLARATION = "event_field_declaration"
    OPERATOR_DECLARATION = "operator_declaration"
    CONVERSION_OPERATOR_DECLARATION = "conversion_operator_declaration"


TYPE_DECLARATION_KINDS = frozenset({
    SyntaxKind.CLASS_DECLARATION,
    SyntaxKind.STRUCT_DECLARATION,
    SyntaxKind.INTERFACE_DECLARATION,
    SyntaxKind.RECORD_DECLARATION,
    SyntaxKind.RECORD_STRUCT_DECLARATION,
    SyntaxKind.ENUM_DECLARATION,
    SyntaxKind.DELEGATE_DECLARATION,
})

# Conditional compilation blocks; their declarations belong to the enclosing container
PREPROC_BRANCH_TYPES = frozenset({"preproc_if", "preproc_elif", "preproc_else"})

# Node types that can appear where a type name is written
_NAME_NODE_TYPES = frozenset({
    "identifier", "generic_name", "qualified_name", "alias_qualified_name", "predefined_type",
})

_PREDEFINED_TYPES = {
    "object": "System.Object",
    "string": "System.String",
}


def syntax_kind(node: Node | None) -> SyntaxKind | None:
    """Classify a node into the closed set of kinds the analyzers care about."""
    if node is None:
        return None
    try:
        return SyntaxKind(node.type)
    except ValueError:
        return None


@dataclass
class SyntaxTree:
    """A parsed source file: path, text, UTF-8 bytes, and the tree-sitter tree."""

    path: str
    text: str
    source: bytes
    tree: Tree
    _line_starts: list[int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        starts = [0]
        for i, ch in enumerate(self.text):
            if ch == "\n":
                starts.append(i + 1)
        self._line_starts = starts

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def has_error(self) -> bool:
        return self.tree.root_node.has_error

    def char_offset(self, byte_offset: int) -> int:
        """Map a tree-sitter byte offset to a character offset in ``text``."""
        return len(self.source[:byte_offset].decode("utf-8"))

    def line_column(self, char_offset: int) -> tuple[int, int]:
        """1-based (line, column) for a character offset."""
        lo, hi = 0, len(self._line_starts) - 1
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if self._line_starts[mid] <= char_offset:
                lo = mid
            else:
                hi = mid - 1
        return lo + 1, char_offset - self._line_starts[lo] + 1

    def location(self, start_byte: int, end_byte: int) -> Location:
        """Build a Location covering the byte range [start_byte, end_byte)."""
        start = self.char_offset(start_byte)
        end = self.char_offset(end_byte)
        start_line, start_column = self.line_column(start)
        end_line, end_column = self.line_column(end)
        return Location(
            path=self.path,
            span=TextSpan(start=start, length=end - start),
            start_line=start_line,
            start_column=start_column,
            end_line=end_line,
            end_column=end_column,
        )

    def span_text(self, span: TextSpan) -> str:
        return self.text[span.start:span.end]


@dataclass(frozen=True)
class TypeReference:
    """A type name as written in source, split into (name, arity) parts.

    ``alias`` holds the left side of ``alias::Name``; ``global`` means the
    name is rooted at the global namespace.
    """

    parts: tuple[tuple[str, int], ...]
    alias: str | None = None

    @property
    def is_global(self) -> bool:
        return self.alias == "global"

    @property
    def name(self) -> str:
        return self.parts[-1][0]

    def display(self) -> str:
        text = ".".join(n if a == 0 else f"{n}<{',' * (a - 1)}>" for n, a in self.parts)
        return f"{self.alias}::{text}" if self.alias else text


def node_text(node: Node, source: bytes) -> str:
    """Extract source text for a node."""
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def iter_nodes(root: Node) -> Iterator[Node]:
    """Pre-order walk, yielding nodes in source order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def children_of_type(node: Node, *types: str) -> list[Node]:
    return [c for c in node.children if c.type in types]


def declaration_name(node: Node) -> Node | None:
    name = node.child_by_field_name("name")
    if name is None or name.is_missing:
        return None
    return name


def declaration_body(node: Node) -> Node | None:
    body = node.child_by_field_name("body")
    if body is not None:
        return body
    lists = children_of_type(node, "declaration_list", "enum_member_declaration_list")
    return lists[0] if lists else None


def members(type_node: Node) -> list[Node]:
    """Direct member declarations of a type, in declaration order.

    Members inside `#if`/`#elif`/`#else` blocks are included from every branch.
    """
    body = declaration_body(type_node)
    if body is None:
        return []
    return list(_member_nodes(body))


def _member_nodes(container: Node) -> Iterator[Node]:
    condition = container.child_by_field_name("condition")
    for child in container.named_children:
        if child.type == "comment" or (condition is not None and child == condition):
            continue
        if child.type in PREPROC_BRANCH_TYPES:
            yield from _member_nodes(child)
        else:
            yield child


def modifiers(node: Node) -> list[Node]:
    return children_of_type(node, "modifier")


def return_type(method_node: Node) -> Node | None:
    node = method_node.child_by_field_name("returns")
    if node is None:
        node = method_node.child_by_field_name("type")
    if node is None or node.is_missing:
        return None
    return node


def type_parameter_count(node: Node) -> int:
    params = children_of_type(node, "type_parameter_list")
    if not params:
        return 0
    return len([c for c in params[0].named_children if c.type == "type_parameter"])


def base_type_nodes(type_node: Node) -> list[Node]:
    """Type nodes listed after ':' in a type declaration."""
    bases = children_of_type(type_node, "base_list")
    if not bases:
        return []
    out: list[Node] = []
    for child in bases[0].named_children:
        if child.type == "primary_constructor_base_type":
            inner = child.child_by_field_name("type")
            if inner is None and child.named_children:
                inner = child.named_children[0]
            if inner is not None:
                out.append(inner)
        elif child.type in _NAME_NODE_TYPES:
            out.append(child)
    return out


def attribute_name_nodes(decl_node: Node) -> list[Node]:
    """Name nodes of attributes applied to a declaration (``[assembly: ...]`` excluded)."""
    out: list[Node] = []
    for attr_list in children_of_type(decl_node, "attribute_list"):
        if children_of_type(attr_list, "attribute_target_specifier"):
            continue
        for attr in children_of_type(attr_list, "attribute"):
            name = attr.child_by_field_name("name")
            if name is None and attr.named_children:
                name = attr.named_children[0]
            if name is not None and name.type in _NAME_NODE_TYPES:
                out.append(name)
    return out


def type_reference(node: Node, source: bytes) -> TypeReference | None:
    """Turn a name node into a TypeReference; None for shapes that cannot name a class."""
    if node.type == "identifier":
        return TypeReference(parts=((node_text(node, source), 0),))
    if node.type == "generic_name":
        ident = children_of_type(node, "identifier")
        args = children_of_type(node, "type_argument_list")
        if not ident:
            return None
        arity = len(args[0].named_children) if args else 0
        return TypeReference(parts=((node_text(ident[0], source), arity),))
    if node.type == "qualified_name":
        qualifier = node.child_by_field_name("qualifier")
        name = node.child_by_field_name("name")
        if qualifier is None or name is None:
            named = node.named_children
            if len(named) < 2:
                return None
            qualifier, name = named[0], named[-1]
        left = type_reference(qualifier, source)
        right = type_reference(name, source)
        if left is None or right is None:
            return None
        return TypeReference(parts=left.parts + right.parts, alias=left.alias)
    if node.type == "alias_qualified_name":
        alias = node.child_by_field_name("alias")
        name = node.child_by_field_name("name")
        if name is None and node.named_children:
            name = node.named_children[-1]
        if alias is None and node.children:
            alias = node.children[0]
        if alias is None or name is None or alias == name:
            return None
        right = type_reference(name, source)
        if right is None:
            return None
        return TypeReference(parts=right.parts, alias=node_text(alias, source))
    if node.type == "predefined_type":
        full = _PREDEFINED_TYPES.get(node_text(node, source))
        if full is None:
            return None
        return TypeReference(parts=tuple((p, 0) for p in full.split(".")), alias="global")
    return None
