"""
Async Void In Method Declaration Rule — Detects `async void` methods on ASP.NET Core framework types.

Controllers, SignalR hubs, MVC filters and Razor Page handlers are invoked by
the framework. An `async void` method cannot be awaited: exceptions it throws
escape to the synchronization context and the framework never observes its
completion.

Only classes in one of those roles are scanned. Razor Page models are scanned
only for handler methods named `On<HttpMethod>...`.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable, Iterator

from tree_sitter import Node

from voidguard.core.analyzer import (
    AnalysisContext,
    CompilationStartAnalysisContext,
    SyntaxNodeAnalysisContext,
)
from voidguard.core.cancellation import CancellationToken
from voidguard.core.compilation import SemanticModel
from voidguard.core.symbols import MethodSymbol, TypeSymbol
from voidguard.core.syntax import SyntaxKind, members, modifiers, return_type, syntax_kind
from voidguard.core.well_known_types import WellKnownTypes
from voidguard.models.rule_models import Diagnostic, DiagnosticDescriptor, Severity


RULE_ID = "async_void_in_method_declaration"

DESCRIPTOR = DiagnosticDescriptor(
    id=RULE_ID,
    title="Do not use async void in methods invoked by ASP.NET Core",
    message_format="Method '{0}' on {1} '{2}' is async void; return Task instead",
    category="Usage",
    default_severity=Severity.HIGH,
    description=(
        "The framework cannot await an async void method. Exceptions it throws "
        "are raised on the synchronization context and may crash the process, "
        "and the request can complete before the method does."
    ),
)

SUPPORTED_DIAGNOSTICS = (DESCRIPTOR,)

HANDLER_PREFIX = "On"
HTTP_METHOD_NAMES = ("Get", "Post", "Put", "Delete", "Patch", "Head", "Options", "Trace", "Connect")

logger = logging.getLogger("voidguard.rules.async_void")


class Role(str, Enum):
    CONTROLLER = "controller"
    SIGNALR_HUB = "SignalR hub"
    MVC_FILTER = "MVC filter"
    RAZOR_PAGE = "Razor page"


MethodConstraint = Callable[[MethodSymbol | None, WellKnownTypes], bool]


def is_controller(symbol: TypeSymbol, well_known_types: WellKnownTypes) -> bool:
    return symbol.inherits_from(well_known_types.controller_base) or symbol.has_attribute(
        well_known_types.controller_attribute
    )


def is_signalr_hub(symbol: TypeSymbol, well_known_types: WellKnownTypes) -> bool:
    return symbol.inherits_from(well_known_types.signalr_hub)


def is_mvc_filter(symbol: TypeSymbol, well_known_types: WellKnownTypes) -> bool:
    return any(symbol.implements(iface) for iface in well_known_types.mvc_filter_interfaces)


def is_razor_page(symbol: TypeSymbol, well_known_types: WellKnownTypes) -> bool:
    return symbol.inherits_from(well_known_types.page_model)


def is_razor_page_handler_method(method: MethodSymbol | None, well_known_types: WellKnownTypes) -> bool:
    """`On` followed by an HTTP method name: OnGet, OnPostAsync, OnGetCustomer."""
    if method is None or not method.name.startswith(HANDLER_PREFIX):
        return False
    verb = method.name[len(HANDLER_PREFIX):]
    return any(verb.startswith(name) for name in HTTP_METHOD_NAMES)


# First match wins. A type matching one of the first three is never treated
# as a Razor page, even if it also derives from PageModel.
_CLASSIFIERS: tuple[tuple[Callable[[TypeSymbol, WellKnownTypes], bool], Role], ...] = (
    (is_controller, Role.CONTROLLER),
    (is_signalr_hub, Role.SIGNALR_HUB),
    (is_mvc_filter, Role.MVC_FILTER),
    (is_razor_page, Role.RAZOR_PAGE),
)

# Roles without an entry scan every method.
_METHOD_CONSTRAINTS: dict[Role, MethodConstraint] = {
    Role.RAZOR_PAGE: is_razor_page_handler_method,
}


def classify(symbol: TypeSymbol | None, well_known_types: WellKnownTypes) -> Role | None:
    """Role of a class, or None when the rule does not apply to it."""
    if symbol is None:
        return None
    for predicate, role in _CLASSIFIERS:
        if predicate(symbol, well_known_types):
            return role
    return None


def candidates(
    member_nodes: Iterable[Node],
    semantic_model: SemanticModel,
    well_known_types: WellKnownTypes,
    additional_constraint: MethodConstraint | None = None,
    cancellation_token: CancellationToken | None = None,
) -> Iterator[Node]:
    """Method declarations worth inspecting, in declaration order."""
    for member in member_nodes:
        if syntax_kind(member) is not SyntaxKind.METHOD_DECLARATION:
            continue
        if additional_constraint is not None:
            symbol = semantic_model.get_declared_symbol(member, cancellation_token)
            method = symbol if isinstance(symbol, MethodSymbol) else None
            if not additional_constraint(method, well_known_types):
                continue
        yield member


def inspect(
    method_node: Node,
    semantic_model: SemanticModel,
    role: Role,
    cancellation_token: CancellationToken | None = None,
) -> Diagnostic | None:
    """Diagnostic for an async void method, spanning its last modifier through its return type."""
    method = semantic_model.get_declared_symbol(method_node, cancellation_token)
    if not isinstance(method, MethodSymbol) or not (method.is_async and method.returns_void):
        return None

    last_modifier = modifiers(method_node)[-1]
    returns = return_type(method_node)
    location = semantic_model.syntax_tree.location(last_modifier.start_byte, returns.end_byte)
    type_name = method.containing_type.name if method.containing_type is not None else ""
    return Diagnostic.create(
        DESCRIPTOR,
        location,
        method.name,
        role.value,
        type_name,
        properties={
            "method": method.name,
            "type": method.containing_type.metadata_name if method.containing_type is not None else "",
            "role": role.name,
        },
    )


def analyze_class(context: SyntaxNodeAnalysisContext, well_known_types: WellKnownTypes) -> None:
    node = context.node
    if syntax_kind(node) is not SyntaxKind.CLASS_DECLARATION:
        return

    symbol = context.semantic_model.get_declared_symbol(node, context.cancellation_token)
    if not isinstance(symbol, TypeSymbol):
        logger.debug(
            "No symbol for class at %s:%d", context.syntax_tree.path, node.start_point[0] + 1
        )
        return

    role = classify(symbol, well_known_types)
    if role is None:
        return

    for method_node in candidates(
        members(node),
        context.semantic_model,
        well_known_types,
        _METHOD_CONSTRAINTS.get(role),
        context.cancellation_token,
    ):
        diagnostic = inspect(method_node, context.semantic_model, role, context.cancellation_token)
        if diagnostic is not None:
            context.report_diagnostic(diagnostic)


def _on_compilation_start(context: CompilationStartAnalysisContext) -> None:
    well_known_types = WellKnownTypes.try_create(context.compilation)
    if well_known_types is None:
        logger.debug(
            "ASP.NET Core is not referenced by '%s'; %s skipped",
            context.compilation.assembly_name,
            RULE_ID,
        )
        return

    context.register_syntax_node_action(
        lambda node_context: analyze_class(node_context, well_known_types),
        SyntaxKind.CLASS_DECLARATION,
    )


def initialize(context: AnalysisContext) -> None:
    context.enable_concurrent_execution()
    context.register_compilation_start_action(_on_compilation_start)
