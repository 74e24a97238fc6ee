"""
Metadata References — Framework type catalogs a compilation can reference.

Stands in for referenced assemblies: each reference lists the public types it
contributes by metadata name (``Namespace.Name``, with a backtick arity suffix
for generics such as ``Hub`1``) together with its base type and interfaces.
"""

from __future__ import annotations

from dataclasses import dataclass

from voidguard.core.symbols import TypeKind


OBJECT = "System.Object"


@dataclass(frozen=True)
class TypeDefinition:
    metadata_name: str
    kind: TypeKind = TypeKind.CLASS
    base_type: str | None = OBJECT
    interfaces: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()


@dataclass(frozen=True)
class MetadataReference:
    name: str
    types: tuple[TypeDefinition, ...]


def _interface(metadata_name: str, *bases: str) -> TypeDefinition:
    return TypeDefinition(metadata_name, TypeKind.INTERFACE, base_type=None, interfaces=bases)


_MVC = "Microsoft.AspNetCore.Mvc"
_FILTERS = "Microsoft.AspNetCore.Mvc.Filters"
_FILTER_METADATA = f"{_FILTERS}.IFilterMetadata"
_ORDERED = f"{_FILTERS}.IOrderedFilter"


CORE_LIBRARY = MetadataReference(
    name="System.Runtime",
    types=(
        TypeDefinition(OBJECT, base_type=None),
        TypeDefinition("System.ValueType"),
        TypeDefinition("System.Enum", base_type="System.ValueType"),
        TypeDefinition("System.Delegate"),
        TypeDefinition("System.MulticastDelegate", base_type="System.Delegate"),
        TypeDefinition("System.String"),
        TypeDefinition("System.Attribute"),
        TypeDefinition("System.Exception"),
        _interface("System.IDisposable"),
        _interface("System.IAsyncDisposable"),
        TypeDefinition("System.Threading.CancellationToken", TypeKind.STRUCT, base_type="System.ValueType"),
        TypeDefinition("System.Threading.Tasks.Task", interfaces=("System.IAsyncResult", "System.IDisposable")),
        TypeDefinition("System.Threading.Tasks.Task`1", base_type="System.Threading.Tasks.Task"),
        TypeDefinition("System.Threading.Tasks.ValueTask", TypeKind.STRUCT, base_type="System.ValueType"),
        TypeDefinition("System.Threading.Tasks.ValueTask`1", TypeKind.STRUCT, base_type="System.ValueType"),
        _interface("System.IAsyncResult"),
    ),
)


ASPNETCORE_APP = MetadataReference(
    name="Microsoft.AspNetCore.App",
    types=(
        # MVC controllers
        TypeDefinition(f"{_MVC}.ControllerBase"),
        TypeDefinition(
            f"{_MVC}.Controller",
            base_type=f"{_MVC}.ControllerBase",
            interfaces=(
                f"{_FILTERS}.IActionFilter",
                f"{_FILTERS}.IAsyncActionFilter",
                "System.IDisposable",
            ),
        ),
        TypeDefinition(f"{_MVC}.ControllerAttribute", base_type="System.Attribute"),
        TypeDefinition(f"{_MVC}.ApiControllerAttribute", base_type=f"{_MVC}.ControllerAttribute"),
        TypeDefinition(f"{_MVC}.NonControllerAttribute", base_type="System.Attribute"),
        TypeDefinition(f"{_MVC}.RouteAttribute", base_type="System.Attribute"),
        TypeDefinition(f"{_MVC}.HttpGetAttribute", base_type="System.Attribute"),
        TypeDefinition(f"{_MVC}.HttpPostAttribute", base_type="System.Attribute"),
        TypeDefinition(f"{_MVC}.IActionResult", TypeKind.INTERFACE, base_type=None),
        TypeDefinition(f"{_MVC}.ActionResult", interfaces=(f"{_MVC}.IActionResult",)),
        # MVC filters
        _interface(_FILTER_METADATA),
        _interface(_ORDERED, _FILTER_METADATA),
        _interface(f"{_FILTERS}.IActionFilter", _FILTER_METADATA),
        _interface(f"{_FILTERS}.IAsyncActionFilter", _FILTER_METADATA),
        _interface(f"{_FILTERS}.IResultFilter", _FILTER_METADATA),
        _interface(f"{_FILTERS}.IAsyncResultFilter", _FILTER_METADATA),
        _interface(f"{_FILTERS}.IAlwaysRunResultFilter", f"{_FILTERS}.IResultFilter"),
        _interface(f"{_FILTERS}.IAsyncAlwaysRunResultFilter", f"{_FILTERS}.IAsyncResultFilter"),
        _interface(f"{_FILTERS}.IExceptionFilter", _FILTER_METADATA),
        _interface(f"{_FILTERS}.IAsyncExceptionFilter", _FILTER_METADATA),
        _interface(f"{_FILTERS}.IAuthorizationFilter", _FILTER_METADATA),
        _interface(f"{_FILTERS}.IAsyncAuthorizationFilter", _FILTER_METADATA),
        _interface(f"{_FILTERS}.IResourceFilter", _FILTER_METADATA),
        _interface(f"{_FILTERS}.IAsyncResourceFilter", _FILTER_METADATA),
        TypeDefinition(
            f"{_FILTERS}.ActionFilterAttribute",
            base_type="System.Attribute",
            interfaces=(
                f"{_FILTERS}.IActionFilter",
                f"{_FILTERS}.IAsyncActionFilter",
                f"{_FILTERS}.IResultFilter",
                f"{_FILTERS}.IAsyncResultFilter",
                _ORDERED,
            ),
        ),
        TypeDefinition(
            f"{_FILTERS}.ResultFilterAttribute",
            base_type="System.Attribute",
            interfaces=(f"{_FILTERS}.IResultFilter", f"{_FILTERS}.IAsyncResultFilter", _ORDERED),
        ),
        TypeDefinition(
            f"{_FILTERS}.ExceptionFilterAttribute",
            base_type="System.Attribute",
            interfaces=(f"{_FILTERS}.IExceptionFilter", f"{_FILTERS}.IAsyncExceptionFilter", _ORDERED),
        ),
        # Razor Pages
        TypeDefinition(f"{_MVC}.RazorPages.PageModel", interfaces=(
            f"{_FILTERS}.IAsyncPageFilter",
            f"{_FILTERS}.IPageFilter",
        )),
        _interface(f"{_FILTERS}.IPageFilter", _FILTER_METADATA),
        _interface(f"{_FILTERS}.IAsyncPageFilter", _FILTER_METADATA),
        # SignalR
        TypeDefinition("Microsoft.AspNetCore.SignalR.Hub", interfaces=("System.IDisposable",)),
        TypeDefinition("Microsoft.AspNetCore.SignalR.Hub`1", base_type="Microsoft.AspNetCore.SignalR.Hub"),
    ),
)


KNOWN_REFERENCES: dict[str, MetadataReference] = {
    ref.name: ref for ref in (CORE_LIBRARY, ASPNETCORE_APP)
}


def resolve_references(names: list[str]) -> list[MetadataReference]:
    """Look up references by name. Raises ValueError for unknown names."""
    unknown = [n for n in names if n not in KNOWN_REFERENCES]
    if unknown:
        raise ValueError(
            f"Unknown metadata reference(s): {', '.join(unknown)}. "
            f"Known: {', '.join(sorted(KNOWN_REFERENCES))}"
        )
    return [KNOWN_REFERENCES[n] for n in names]
