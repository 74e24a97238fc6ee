"""
Compilation — Declares and binds the types of a set of C# syntax trees.

A Compilation is built once from its syntax trees and metadata references and
is read-only afterwards, so semantic models can be queried from any thread.

Binding happens in three passes:
  1. declare every source type (partial declarations merge into one symbol)
     and materialize reference types,
  2. resolve base lists into base types and interfaces,
  3. resolve attribute names into attribute classes.

Name lookup follows C# scoping closely enough for role classification:
nested types of enclosing types, then each enclosing namespace (innermost
first) with its using directives and aliases, then global usings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from tree_sitter import Node

from voidguard.core.references import CORE_LIBRARY, MetadataReference, TypeDefinition
from voidguard.core.symbols import AttributeData, MethodSymbol, TypeKind, TypeSymbol
from voidguard.core.syntax import (
    TYPE_DECLARATION_KINDS,
    PREPROC_BRANCH_TYPES,
    SyntaxKind,
    SyntaxTree,
    TypeReference,
    attribute_name_nodes,
    base_type_nodes,
    declaration_body,
    declaration_name,
    modifiers,
    node_text,
    return_type,
    syntax_kind,
    type_parameter_count,
    type_reference,
)

if TYPE_CHECKING:
    from voidguard.core.cancellation import CancellationToken

logger = logging.getLogger("voidguard.compilation")

_TYPE_KINDS: dict[SyntaxKind, TypeKind] = {
    SyntaxKind.CLASS_DECLARATION: TypeKind.CLASS,
    SyntaxKind.STRUCT_DECLARATION: TypeKind.STRUCT,
    SyntaxKind.INTERFACE_DECLARATION: TypeKind.INTERFACE,
    SyntaxKind.RECORD_DECLARATION: TypeKind.RECORD,
    SyntaxKind.RECORD_STRUCT_DECLARATION: TypeKind.STRUCT,
    SyntaxKind.ENUM_DECLARATION: TypeKind.ENUM,
    SyntaxKind.DELEGATE_DECLARATION: TypeKind.DELEGATE,
}

_CLASS_LIKE = (TypeKind.CLASS, TypeKind.RECORD)

_DEFAULT_BASES: dict[TypeKind, str] = {
    TypeKind.CLASS: "System.Object",
    TypeKind.RECORD: "System.Object",
    TypeKind.STRUCT: "System.ValueType",
    TypeKind.ENUM: "System.Enum",
    TypeKind.DELEGATE: "System.MulticastDelegate",
}


def _qualify(namespace: str, name: str) -> str:
    return f"{namespace}.{name}" if namespace else name


def _simple(name: str, arity: int) -> str:
    return name if arity == 0 else f"{name}`{arity}"


def _node_key(node: Node) -> tuple[int, int, str]:
    return node.start_byte, node.end_byte, node.type


@dataclass
class _Scope:
    """Names visible from one namespace body or compilation unit."""

    namespaces: tuple[str, ...]
    usings: list[str] = field(default_factory=list)
    aliases: dict[str, TypeReference] = field(default_factory=dict)


@dataclass(frozen=True)
class _UsingDirective:
    target: TypeReference
    alias: str | None = None
    is_global: bool = False


@dataclass
class _PendingDeclaration:
    symbol: TypeSymbol
    node: Node
    tree: SyntaxTree
    scopes: tuple[_Scope, ...]


def _parse_using(node: Node, source: bytes) -> _UsingDirective | None:
    tokens = {c.type for c in node.children if not c.is_named}
    if "static" in tokens:
        return None
    named = [c for c in node.named_children if c.type != "comment"]
    if not named:
        return None
    target = type_reference(named[-1], source)
    if target is None:
        return None
    alias = None
    if "=" in tokens:
        if len(named) < 2:
            return None
        alias = node_text(named[0], source)
    return _UsingDirective(target=target, alias=alias, is_global="global" in tokens)


def _namespace_name(node: Node, source: bytes) -> str | None:
    name = node.child_by_field_name("name")
    if name is None or name.is_missing:
        return None
    return "".join(node_text(name, source).split())


def _namespace_chain(outer: str, name: str) -> tuple[str, ...]:
    parts = name.split(".")
    return tuple(_qualify(outer, ".".join(parts[:i])) for i in range(len(parts), 0, -1))


class Compilation:
    """A set of syntax trees analyzed together against metadata references."""

    def __init__(
        self,
        syntax_trees: Iterable[SyntaxTree],
        references: Iterable[MetadataReference] = (),
        assembly_name: str = "Compilation",
    ) -> None:
        self.assembly_name = assembly_name
        self.syntax_trees: tuple[SyntaxTree, ...] = tuple(syntax_trees)

        refs: dict[str, MetadataReference] = {CORE_LIBRARY.name: CORE_LIBRARY}
        for ref in references:
            refs.setdefault(ref.name, ref)
        self.references: tuple[MetadataReference, ...] = tuple(refs.values())

        self._types: dict[str, TypeSymbol] = {}
        self._declared: dict[int, dict[tuple[int, int, str], TypeSymbol]] = {}
        _Binder(self).bind()

        self._semantic_models = {
            id(tree): SemanticModel(self, tree) for tree in self.syntax_trees
        }
        logger.debug(
            "Compilation '%s': %d trees, %d types, references=%s",
            assembly_name,
            len(self.syntax_trees),
            len(self._types),
            [r.name for r in self.references],
        )

    @property
    def reference_names(self) -> list[str]:
        return [r.name for r in self.references]

    @property
    def source_types(self) -> list[TypeSymbol]:
        return [t for t in self._types.values() if t.is_from_source]

    def get_type_by_metadata_name(self, metadata_name: str) -> TypeSymbol | None:
        """Find a type by metadata name, e.g. ``Microsoft.AspNetCore.SignalR.Hub`1``."""
        return self._types.get(metadata_name)

    def get_semantic_model(self, syntax_tree: SyntaxTree) -> SemanticModel:
        try:
            return self._semantic_models[id(syntax_tree)]
        except KeyError:
            raise ValueError(f"Syntax tree '{syntax_tree.path}' is not part of this compilation") from None

    def _declared_type(self, syntax_tree: SyntaxTree, node: Node) -> TypeSymbol | None:
        return self._declared.get(id(syntax_tree), {}).get(_node_key(node))


class SemanticModel:
    """Answers symbol questions about the nodes of one syntax tree."""

    def __init__(self, compilation: Compilation, syntax_tree: SyntaxTree) -> None:
        self.compilation = compilation
        self.syntax_tree = syntax_tree

    def get_declared_symbol(
        self,
        node: Node,
        cancellation_token: CancellationToken | None = None,
    ) -> TypeSymbol | MethodSymbol | None:
        """Symbol declared by a type or method declaration node, or None."""
        if cancellation_token is not None:
            cancellation_token.throw_if_cancellation_requested()

        kind = syntax_kind(node)
        if kind in TYPE_DECLARATION_KINDS:
            return self.compilation._declared_type(self.syntax_tree, node)
        if kind is SyntaxKind.METHOD_DECLARATION:
            return self._method_symbol(node)
        return None

    def _method_symbol(self, node: Node) -> MethodSymbol | None:
        name = declaration_name(node)
        returns = return_type(node)
        if name is None or returns is None or name.has_error or returns.has_error:
            return None

        owner = node.parent
        while owner is not None and owner.type in PREPROC_BRANCH_TYPES:
            owner = owner.parent
        owner = owner.parent if owner is not None else None
        if owner is None or syntax_kind(owner) not in TYPE_DECLARATION_KINDS:
            return None
        containing = self.compilation._declared_type(self.syntax_tree, owner)
        if containing is None:
            return None

        source = self.syntax_tree.source
        return MethodSymbol(
            name=node_text(name, source),
            containing_type=containing,
            modifiers=tuple(node_text(m, source).strip() for m in modifiers(node)),
            return_type=" ".join(node_text(returns, source).split()),
        )


class _Binder:
    """Populates a Compilation's type table. Used only during construction."""

    def __init__(self, compilation: Compilation) -> None:
        self._compilation = compilation
        self._types = compilation._types
        self._pending: list[_PendingDeclaration] = []
        self._reference_types: list[tuple[TypeSymbol, TypeDefinition]] = []
        self._global_usings: list[str] = []
        self._global_aliases: dict[str, TypeReference] = {}

    def bind(self) -> None:
        for tree in self._compilation.syntax_trees:
            self._collect_global_usings(tree)
        for tree in self._compilation.syntax_trees:
            self._declare_unit(tree)
        self._declare_references()

        self._bind_reference_types()
        for pending in self._pending:
            self._bind_bases(pending)
        self._apply_default_bases()
        for pending in self._pending:
            self._bind_attributes(pending)

    # ── Pass 1: declarations ──

    def _collect_global_usings(self, tree: SyntaxTree) -> None:
        for child in tree.root.named_children:
            if syntax_kind(child) is not SyntaxKind.USING_DIRECTIVE:
                continue
            directive = _parse_using(child, tree.source)
            if directive is None or not directive.is_global:
                continue
            if directive.alias:
                self._global_aliases[directive.alias] = directive.target
            else:
                self._global_usings.append(".".join(n for n, _ in directive.target.parts))

    def _scope_for(self, container: Node, tree: SyntaxTree, namespaces: tuple[str, ...]) -> _Scope:
        scope = _Scope(namespaces=namespaces)
        for child in container.named_children:
            if syntax_kind(child) is not SyntaxKind.USING_DIRECTIVE:
                continue
            directive = _parse_using(child, tree.source)
            if directive is None or directive.is_global:
                continue
            if directive.alias:
                scope.aliases[directive.alias] = directive.target
            else:
                scope.usings.append(".".join(n for n, _ in directive.target.parts))
        return scope

    def _declare_unit(self, tree: SyntaxTree) -> None:
        unit_scope = self._scope_for(tree.root, tree, ("",))
        unit_scope.usings.extend(self._global_usings)
        for alias, target in self._global_aliases.items():
            unit_scope.aliases.setdefault(alias, target)
        self._declare_members(tree.root, tree, (unit_scope,), "", None)

    def _declare_members(
        self,
        container: Node,
        tree: SyntaxTree,
        scopes: tuple[_Scope, ...],
        namespace: str,
        containing: TypeSymbol | None,
    ) -> None:
        for child in container.named_children:
            kind = syntax_kind(child)
            if kind is SyntaxKind.NAMESPACE_DECLARATION:
                name = _namespace_name(child, tree.source)
                body = declaration_body(child)
                if name is None or body is None:
                    continue
                scope = self._scope_for(body, tree, _namespace_chain(namespace, name))
                self._declare_members(body, tree, (scope, *scopes), _qualify(namespace, name), None)
            elif kind is SyntaxKind.FILE_SCOPED_NAMESPACE_DECLARATION:
                name = _namespace_name(child, tree.source)
                if name is None:
                    continue
                # Applies to the declaration's own children and to every later sibling.
                scope = self._scope_for(child, tree, _namespace_chain(namespace, name))
                scopes = (scope, *scopes)
                namespace = _qualify(namespace, name)
                self._declare_members(child, tree, scopes, namespace, None)
            elif kind in TYPE_DECLARATION_KINDS:
                self._declare_type(child, tree, scopes, namespace, containing)
            elif child.type == "ERROR" or child.type in PREPROC_BRANCH_TYPES:
                self._declare_members(child, tree, scopes, namespace, containing)

    def _declare_type(
        self,
        node: Node,
        tree: SyntaxTree,
        scopes: tuple[_Scope, ...],
        namespace: str,
        containing: TypeSymbol | None,
    ) -> None:
        name = declaration_name(node)
        if name is None:
            logger.debug("Skipping unnamed type declaration in %s", tree.path)
            return

        probe = TypeSymbol(
            name=node_text(name, tree.source),
            namespace=namespace,
            arity=type_parameter_count(node),
            kind=_TYPE_KINDS[syntax_kind(node)],
            containing_type=containing,
        )
        symbol = self._types.setdefault(probe.metadata_name, probe)
        symbol.declaring_nodes.append(node)
        self._compilation._declared.setdefault(id(tree), {})[_node_key(node)] = symbol
        self._pending.append(_PendingDeclaration(symbol, node, tree, scopes))

        if symbol.kind in (TypeKind.CLASS, TypeKind.STRUCT, TypeKind.INTERFACE, TypeKind.RECORD):
            body = declaration_body(node)
            if body is not None:
                self._declare_members(body, tree, scopes, namespace, symbol)

    def _declare_references(self) -> None:
        for reference in self._compilation.references:
            for definition in reference.types:
                if definition.metadata_name in self._types:
                    logger.debug(
                        "%s from %s is shadowed by an existing declaration",
                        definition.metadata_name,
                        reference.name,
                    )
                    continue
                namespace, _, simple = definition.metadata_name.rpartition(".")
                name, _, arity = simple.partition("`")
                symbol = TypeSymbol(
                    name=name,
                    namespace=namespace,
                    arity=int(arity) if arity else 0,
                    kind=definition.kind,
                    origin=reference.name,
                )
                self._types[definition.metadata_name] = symbol
                self._reference_types.append((symbol, definition))

    # ── Pass 2: base types ──

    def _bind_reference_types(self) -> None:
        for symbol, definition in self._reference_types:
            if definition.base_type is not None:
                symbol.base_type = self._types.get(definition.base_type)
            symbol.interfaces = [
                self._types[name] for name in definition.interfaces if name in self._types
            ]
            symbol.attributes = [
                AttributeData(self._types[name], name.rpartition(".")[2])
                for name in definition.attributes
                if name in self._types
            ]

    def _bind_bases(self, pending: _PendingDeclaration) -> None:
        symbol = pending.symbol
        for base_node in base_type_nodes(pending.node):
            ref = type_reference(base_node, pending.tree.source)
            if ref is None:
                continue
            resolved = self._resolve(ref, pending.scopes, symbol.containing_type)
            if resolved is None:
                logger.debug(
                    "Unresolved base type '%s' on %s", ref.display(), symbol.metadata_name
                )
                continue
            if resolved is symbol:
                continue
            if resolved.kind is TypeKind.INTERFACE:
                if all(iface is not resolved for iface in symbol.interfaces):
                    symbol.interfaces.append(resolved)
            elif symbol.kind in _CLASS_LIKE and resolved.kind in _CLASS_LIKE:
                if symbol.base_type is None:
                    symbol.base_type = resolved

    def _apply_default_bases(self) -> None:
        seen: set[int] = set()
        for pending in self._pending:
            symbol = pending.symbol
            if id(symbol) in seen or symbol.base_type is not None:
                continue
            seen.add(id(symbol))
            default = _DEFAULT_BASES.get(symbol.kind)
            if default is not None and default != symbol.metadata_name:
                symbol.base_type = self._types.get(default)

    # ── Pass 3: attributes ──

    def _bind_attributes(self, pending: _PendingDeclaration) -> None:
        for name_node in attribute_name_nodes(pending.node):
            ref = type_reference(name_node, pending.tree.source)
            if ref is None:
                continue
            resolved = self._resolve_attribute(ref, pending.scopes, pending.symbol.containing_type)
            if resolved is None:
                logger.debug(
                    "Unresolved attribute '%s' on %s", ref.display(), pending.symbol.metadata_name
                )
                continue
            pending.symbol.attributes.append(AttributeData(resolved, ref.display()))

    def _resolve_attribute(
        self,
        ref: TypeReference,
        scopes: tuple[_Scope, ...],
        containing: TypeSymbol | None,
    ) -> TypeSymbol | None:
        last_name, last_arity = ref.parts[-1]
        variants = [f"{last_name}Attribute", last_name]
        if last_name.endswith("Attribute"):
            variants.reverse()

        found: list[TypeSymbol] = []
        for variant in variants:
            candidate = TypeReference(parts=ref.parts[:-1] + ((variant, last_arity),), alias=ref.alias)
            resolved = self._resolve(candidate, scopes, containing)
            if resolved is not None:
                found.append(resolved)

        attribute_base = self._types.get("System.Attribute")
        for symbol in found:
            if attribute_base is not None and symbol.is_or_inherits_from(attribute_base):
                return symbol
        return found[0] if found else None

    # ── Name lookup ──

    def _resolve(
        self,
        ref: TypeReference,
        scopes: tuple[_Scope, ...],
        containing: TypeSymbol | None,
    ) -> TypeSymbol | None:
        if ref.is_global:
            return self._lookup_qualified("", ref.parts)
        if ref.alias is not None:
            target = self._alias_target(ref.alias, scopes)
            if target is None:
                return None
            return self._lookup_in_target(target, ref.parts)

        name, arity = ref.parts[0]
        if len(ref.parts) == 1:
            return self._resolve_simple(name, arity, scopes, containing)

        if arity == 0:
            target = self._alias_target(name, scopes)
            if target is not None:
                return self._lookup_in_target(target, ref.parts[1:])

        for scope in scopes:
            for namespace in scope.namespaces:
                found = self._lookup_qualified(namespace, ref.parts)
                if found is not None:
                    return found

        outer = self._resolve_simple(name, arity, scopes, containing)
        if outer is not None:
            return self._nested(outer, ref.parts[1:])
        return None

    def _resolve_simple(
        self,
        name: str,
        arity: int,
        scopes: tuple[_Scope, ...],
        containing: TypeSymbol | None,
    ) -> TypeSymbol | None:
        simple = _simple(name, arity)

        outer = containing
        while outer is not None:
            found = self._types.get(f"{outer.metadata_name}+{simple}")
            if found is not None:
                return found
            outer = outer.containing_type

        for scope in scopes:
            for namespace in scope.namespaces:
                found = self._types.get(_qualify(namespace, simple))
                if found is not None:
                    return found
            if arity == 0 and name in scope.aliases:
                return self._lookup_qualified("", scope.aliases[name].parts)
            for using in scope.usings:
                found = self._types.get(_qualify(using, simple))
                if found is not None:
                    return found
        return None

    def _alias_target(self, alias: str, scopes: tuple[_Scope, ...]) -> TypeReference | None:
        for scope in scopes:
            if alias in scope.aliases:
                return scope.aliases[alias]
        return None

    def _lookup_in_target(
        self, target: TypeReference, parts: tuple[tuple[str, int], ...]
    ) -> TypeSymbol | None:
        """Look up ``parts`` under an alias target that names a namespace or a type."""
        as_type = self._lookup_qualified("", target.parts)
        if as_type is not None:
            return self._nested(as_type, parts)
        namespace = ".".join(n for n, _ in target.parts)
        return self._lookup_qualified(namespace, parts)

    def _lookup_qualified(
        self, namespace: str, parts: tuple[tuple[str, int], ...]
    ) -> TypeSymbol | None:
        """Try every split of ``parts`` into namespace, type, and nested types."""
        for k in range(len(parts), 0, -1):
            prefix = ".".join(n for n, _ in parts[: k - 1])
            ns = _qualify(namespace, prefix) if prefix else namespace
            name = _qualify(ns, _simple(*parts[k - 1]))
            nested = "".join(f"+{_simple(n, a)}" for n, a in parts[k:])
            found = self._types.get(name + nested)
            if found is not None:
                return found
        return None

    def _nested(
        self, outer: TypeSymbol, parts: tuple[tuple[str, int], ...]
    ) -> TypeSymbol | None:
        nested = "".join(f"+{_simple(n, a)}" for n, a in parts)
        return self._types.get(outer.metadata_name + nested)
