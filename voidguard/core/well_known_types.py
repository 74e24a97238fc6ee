"""
Well-Known Types — ASP.NET Core framework types used to classify declarations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from voidguard.core.compilation import Compilation
from voidguard.core.symbols import TypeSymbol

logger = logging.getLogger("voidguard.well_known_types")

_FILTERS = "Microsoft.AspNetCore.Mvc.Filters"

# MVC filter capabilities. Page filters are excluded: PageModel
# implements them, and Razor Pages get their own handler-name check.
_MVC_FILTER_INTERFACES = (
    f"{_FILTERS}.IActionFilter",
    f"{_FILTERS}.IAsyncActionFilter",
    f"{_FILTERS}.IResultFilter",
    f"{_FILTERS}.IAsyncResultFilter",
    f"{_FILTERS}.IExceptionFilter",
    f"{_FILTERS}.IAsyncExceptionFilter",
    f"{_FILTERS}.IAuthorizationFilter",
    f"{_FILTERS}.IAsyncAuthorizationFilter",
    f"{_FILTERS}.IResourceFilter",
    f"{_FILTERS}.IAsyncResourceFilter",
)


@dataclass(frozen=True)
class WellKnownTypes:
    controller_base: TypeSymbol
    controller_attribute: TypeSymbol
    signalr_hub: TypeSymbol
    page_model: TypeSymbol
    mvc_filter_interfaces: tuple[TypeSymbol, ...]

    METADATA_NAMES = {
        "controller_base": "Microsoft.AspNetCore.Mvc.ControllerBase",
        "controller_attribute": "Microsoft.AspNetCore.Mvc.ControllerAttribute",
        "signalr_hub": "Microsoft.AspNetCore.SignalR.Hub",
        "page_model": "Microsoft.AspNetCore.Mvc.RazorPages.PageModel",
    }

    @classmethod
    def try_create(cls, compilation: Compilation) -> WellKnownTypes | None:
        """Resolve every well-known type, or return None if any is missing."""
        resolved: dict[str, TypeSymbol] = {}
        for field_name, metadata_name in cls.METADATA_NAMES.items():
            symbol = compilation.get_type_by_metadata_name(metadata_name)
            if symbol is None:
                logger.debug("Well-known type %s not found in %s", metadata_name, compilation.assembly_name)
                return None
            resolved[field_name] = symbol

        filters: list[TypeSymbol] = []
        for metadata_name in _MVC_FILTER_INTERFACES:
            symbol = compilation.get_type_by_metadata_name(metadata_name)
            if symbol is None:
                logger.debug("Well-known type %s not found in %s", metadata_name, compilation.assembly_name)
                return None
            filters.append(symbol)

        return cls(mvc_filter_interfaces=tuple(filters), **resolved)
