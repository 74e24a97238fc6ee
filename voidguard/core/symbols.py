"""
Symbol Models — Resolved types and methods.

TypeSymbols are created and bound once, when a Compilation is built, and are
read-only afterwards. MethodSymbols are produced on demand by the semantic
model and never cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from tree_sitter import Node


class TypeKind(str, Enum):
    CLASS = "class"
    STRUCT = "struct"
    INTERFACE = "interface"
    RECORD = "record"
    ENUM = "enum"
    DELEGATE = "delegate"


@dataclass(frozen=True)
class AttributeData:
    """An attribute applied to a type, resolved to its attribute class."""

    attribute_class: TypeSymbol
    written_name: str = ""


@dataclass(eq=False)
class TypeSymbol:
    """A named type declared in source or supplied by a metadata reference."""

    name: str
    namespace: str
    arity: int
    kind: TypeKind
    containing_type: TypeSymbol | None = None
    base_type: TypeSymbol | None = None
    interfaces: list[TypeSymbol] = field(default_factory=list)
    attributes: list[AttributeData] = field(default_factory=list)
    declaring_nodes: list[Node] = field(default_factory=list, repr=False)
    origin: str = "source"

    @property
    def metadata_name(self) -> str:
        simple = self.name if self.arity == 0 else f"{self.name}`{self.arity}"
        if self.containing_type is not None:
            return f"{self.containing_type.metadata_name}+{simple}"
        return f"{self.namespace}.{simple}" if self.namespace else simple

    @property
    def is_from_source(self) -> bool:
        return self.origin == "source"

    def base_types(self) -> Iterator[TypeSymbol]:
        """Walk the base type chain, nearest first. Stops on cycles."""
        seen = {id(self)}
        current = self.base_type
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            yield current
            current = current.base_type

    def all_interfaces(self) -> list[TypeSymbol]:
        """Every interface implemented directly, via base types, or via interface inheritance."""
        out: list[TypeSymbol] = []
        seen: set[int] = set()
        pending = list(self.interfaces)
        for base in self.base_types():
            pending.extend(base.interfaces)
        while pending:
            iface = pending.pop(0)
            if id(iface) in seen:
                continue
            seen.add(id(iface))
            out.append(iface)
            pending.extend(iface.interfaces)
        return out

    def inherits_from(self, other: TypeSymbol) -> bool:
        return any(base is other for base in self.base_types())

    def implements(self, interface: TypeSymbol) -> bool:
        return any(iface is interface for iface in self.all_interfaces())

    def is_or_inherits_from(self, other: TypeSymbol) -> bool:
        return self is other or self.inherits_from(other)

    def has_attribute(self, attribute_type: TypeSymbol, inherit: bool = True) -> bool:
        """True when an applied attribute's class is, or derives from, ``attribute_type``.

        With ``inherit`` the attributes of base types count too.
        """
        owners = [self, *self.base_types()] if inherit else [self]
        return any(
            data.attribute_class.is_or_inherits_from(attribute_type)
            for owner in owners
            for data in owner.attributes
        )

    def __repr__(self) -> str:
        return f"TypeSymbol({self.metadata_name!r}, {self.kind.value})"


@dataclass(frozen=True)
class MethodSymbol:
    """An ordinary method declared on a type."""

    name: str
    containing_type: TypeSymbol | None
    modifiers: tuple[str, ...]
    return_type: str

    @property
    def is_async(self) -> bool:
        return "async" in self.modifiers

    @property
    def returns_void(self) -> bool:
        return self.return_type == "void"
