"""
Tests for the async void rule: role classification, member filtering, detection, and spans.
"""

import pytest

from voidguard.core.analyzer import AnalyzerDriver
from voidguard.core.rules.async_void_in_method_declaration import (
    DESCRIPTOR,
    RULE_ID,
    Role,
    candidates,
    classify,
    initialize,
    inspect,
    is_razor_page_handler_method,
)
from voidguard.core.symbols import MethodSymbol
from voidguard.core.syntax import members
from voidguard.core.well_known_types import WellKnownTypes
from voidguard.models.rule_models import Severity


HUB_CODE = '''
using System.Threading.Tasks;
using Microsoft.AspNetCore.SignalR;

namespace Chat
{
    public interface IChatClient { Task Receive(string message); }

    public class ChatHub : Hub
    {
        public async Task Send(string message)
        {
            await Clients.All.SendAsync("Receive", message);
        }
    }

    public class TypedHub : Hub<IChatClient>
    {
        public async void Broadcast(string message)
        {
            await Clients.All.Receive(message);
        }
    }
}
'''

FILTER_CODE = '''
using System.Threading.Tasks;
using Microsoft.AspNetCore.Mvc.Filters;

namespace Shop.Filters
{
    public class AuditFilter : IAsyncActionFilter
    {
        public async void Log() { await Task.Yield(); }

        public async Task OnActionExecutionAsync(ActionExecutingContext context, ActionExecutionDelegate next)
        {
            await next();
        }
    }

    public class TimingAttribute : ActionFilterAttribute
    {
        public override async void OnActionExecuted(ActionExecutedContext context)
        {
            await Task.Yield();
        }
    }
}
'''

PAGE_CODE = '''
using System.Threading.Tasks;
using Microsoft.AspNetCore.Mvc.RazorPages;

namespace Shop.Pages
{
    public class IndexModel : PageModel
    {
        public async void OnGet() { await Task.Yield(); }

        public async void OnPostAsync() { await Task.Yield(); }

        public async void DoWork() { await Task.Yield(); }

        public async void Get() { await Task.Yield(); }

        public async void HandleGet() { await Task.Yield(); }
    }
}
'''


def _span_texts(diagnostics, source):
    return [source[d.location.span.start:d.location.span.end] for d in diagnostics]


def _well_known(compilation):
    wkt = WellKnownTypes.try_create(compilation)
    assert wkt is not None
    return wkt


# --- End-to-end scenarios ---

def test_controller_async_void_reported(analyze, controller_code):
    diagnostics = analyze(controller_code)
    assert len(diagnostics) == 1
    diagnostic = diagnostics[0]
    assert diagnostic.id == RULE_ID
    assert diagnostic.severity == Severity.HIGH
    assert _span_texts(diagnostics, controller_code) == ["async void"]
    assert diagnostic.properties["method"] == "OnClick"
    assert diagnostic.properties["role"] == "CONTROLLER"
    assert diagnostic.properties["type"] == "Shop.Controllers.OrdersController"
    assert "OnClick" in diagnostic.message
    assert "OrdersController" in diagnostic.message


def test_class_without_role_not_reported(analyze, clean_code):
    assert analyze(clean_code) == []


def test_razor_page_only_handler_methods_reported(analyze):
    diagnostics = analyze(PAGE_CODE)
    assert [d.properties["method"] for d in diagnostics] == ["OnGet", "OnPostAsync"]
    assert all(d.properties["role"] == "RAZOR_PAGE" for d in diagnostics)


def test_hub_returning_task_not_reported(analyze):
    diagnostics = analyze(HUB_CODE)
    methods = [d.properties["method"] for d in diagnostics]
    assert "Send" not in methods
    assert methods == ["Broadcast"]
    assert diagnostics[0].properties["role"] == "SIGNALR_HUB"


def test_filters_reported(analyze):
    diagnostics = analyze(FILTER_CODE)
    assert [d.properties["method"] for d in diagnostics] == ["Log", "OnActionExecuted"]
    assert {d.properties["role"] for d in diagnostics} == {"MVC_FILTER"}


def test_override_modifier_span(analyze):
    diagnostics = analyze(FILTER_CODE)
    assert _span_texts(diagnostics, FILTER_CODE) == ["async void", "async void"]


# --- Span computation ---

def test_span_excludes_leading_modifiers_and_name(analyze):
    code = '''
using Microsoft.AspNetCore.Mvc;

public class HomeController : ControllerBase
{
    public static async void Handle() { }
}
'''
    diagnostics = analyze(code)
    assert len(diagnostics) == 1
    span = diagnostics[0].location.span
    assert code[span.start:span.end] == "async void"
    assert span.start == code.index("async void")
    assert span.length == len("async void")


def test_span_starts_at_last_modifier(analyze):
    code = '''
using Microsoft.AspNetCore.Mvc;

public class HomeController : ControllerBase
{
    async public void Handle() { }
}
'''
    diagnostics = analyze(code)
    assert _span_texts(diagnostics, code) == ["public void"]


def test_span_uses_character_offsets(analyze):
    code = '''// Überprüfung der Bestellungen: 注文
using Microsoft.AspNetCore.Mvc;

public class HomeController : ControllerBase
{
    public async void Handle() { }
}
'''
    diagnostics = analyze(code)
    assert _span_texts(diagnostics, code) == ["async void"]
    location = diagnostics[0].location
    assert location.start_line == 6
    assert location.start_column == len("    public ") + 1
    assert location.end_line == 6
    assert location.end_column == location.start_column + len("async void")


# --- Detection conditions ---

def test_only_async_void_fires(analyze):
    code = '''
using System.Threading.Tasks;
using Microsoft.AspNetCore.Mvc;

public class HomeController : ControllerBase
{
    public void Sync() { }
    public async Task WithTask() { await Task.Yield(); }
    public async ValueTask WithValueTask() { await Task.Yield(); }
    public async Task<int> WithResult() { await Task.Yield(); return 1; }
    public Task NotAsync() => Task.CompletedTask;
    public async void Fire() { await Task.Yield(); }
}
'''
    diagnostics = analyze(code)
    assert [d.properties["method"] for d in diagnostics] == ["Fire"]


def test_broad_roles_scan_every_method_name(analyze):
    code = '''
using Microsoft.AspNetCore.Mvc;

public class HomeController : Controller
{
    public async void DoWork() { }
    private async void Helper() { }
    protected async void OnGet() { }
}
'''
    diagnostics = analyze(code)
    assert [d.properties["method"] for d in diagnostics] == ["DoWork", "Helper", "OnGet"]


@pytest.mark.parametrize("attribute", ["Controller", "ApiController", "ControllerAttribute"])
def test_controller_attribute_marks_controller(analyze, attribute):
    code = f'''
using Microsoft.AspNetCore.Mvc;

[{attribute}]
public class Plain
{{
    public async void Run() {{ }}
}}
'''
    diagnostics = analyze(code)
    assert len(diagnostics) == 1
    assert diagnostics[0].properties["role"] == "CONTROLLER"


def test_controller_attribute_inherited_from_base(analyze):
    code = '''
using Microsoft.AspNetCore.Mvc;

[ApiController]
public abstract class ApiBase { }

public class UsersController : ApiBase
{
    public async void Delete() { }
}
'''
    diagnostics = analyze(code)
    assert [d.properties["type"] for d in diagnostics] == ["UsersController"]


def test_framework_not_referenced_reports_nothing(analyze, controller_code):
    assert analyze(controller_code, references=()) == []


def test_nested_class_is_analyzed_on_its_own(analyze):
    code = '''
using Microsoft.AspNetCore.Mvc;

public class OuterController : ControllerBase
{
    public async void Outer() { }

    public class Helper
    {
        public async void Inner() { }
    }

    public class InnerController : ControllerBase
    {
        public async void Nested() { }
    }
}
'''
    diagnostics = analyze(code)
    assert [d.properties["method"] for d in diagnostics] == ["Outer", "Nested"]


def test_partial_class_bases_apply_to_every_part(analyze):
    first = '''
using Microsoft.AspNetCore.Mvc;

namespace Shop;

public partial class CartController : ControllerBase { }
'''
    second = '''
namespace Shop;

public partial class CartController
{
    public async void Checkout() { }
}
'''
    diagnostics = analyze(first, second)
    assert len(diagnostics) == 1
    assert diagnostics[0].location.path == "File1.cs"
    assert diagnostics[0].properties["type"] == "Shop.CartController"


def test_filter_and_page_model_gets_broad_scan(analyze):
    code = '''
using Microsoft.AspNetCore.Mvc.Filters;
using Microsoft.AspNetCore.Mvc.RazorPages;

public class FilteredPage : PageModel, IResultFilter
{
    public async void DoWork() { }
    public void OnResultExecuting(ResultExecutingContext context) { }
    public void OnResultExecuted(ResultExecutedContext context) { }
}
'''
    diagnostics = analyze(code)
    assert [d.properties["method"] for d in diagnostics] == ["DoWork"]
    assert diagnostics[0].properties["role"] == "MVC_FILTER"


def test_every_diagnostic_uses_shared_descriptor(analyze):
    diagnostics = analyze(PAGE_CODE)
    assert diagnostics
    assert all(d.descriptor == DESCRIPTOR for d in diagnostics)


# --- Components ---

def test_classify_each_role(compile_sources):
    compilation = compile_sources(HUB_CODE, FILTER_CODE, PAGE_CODE, '''
using Microsoft.AspNetCore.Mvc;
namespace Shop { public class HomeController : Controller { } public class Plain { } }
''')
    wkt = _well_known(compilation)
    get = compilation.get_type_by_metadata_name
    assert classify(get("Shop.HomeController"), wkt) is Role.CONTROLLER
    assert classify(get("Chat.ChatHub"), wkt) is Role.SIGNALR_HUB
    assert classify(get("Chat.TypedHub"), wkt) is Role.SIGNALR_HUB
    assert classify(get("Shop.Filters.AuditFilter"), wkt) is Role.MVC_FILTER
    assert classify(get("Shop.Filters.TimingAttribute"), wkt) is Role.MVC_FILTER
    assert classify(get("Shop.Pages.IndexModel"), wkt) is Role.RAZOR_PAGE
    assert classify(get("Shop.Plain"), wkt) is None
    assert classify(None, wkt) is None


def test_framework_types_themselves_have_no_role(compile_sources):
    compilation = compile_sources("class Empty { }")
    wkt = _well_known(compilation)
    assert classify(wkt.controller_base, wkt) is None
    assert classify(wkt.signalr_hub, wkt) is None


@pytest.mark.parametrize(
    "name,expected",
    [
        ("OnGet", True),
        ("OnPostAsync", True),
        ("OnGetCustomer", True),
        ("OnDelete", True),
        ("OnPatchAsync", True),
        ("Get", False),
        ("HandleGet", False),
        ("Onget", False),
        ("OnClick", False),
        ("On", False),
    ],
)
def test_razor_page_handler_names(compile_sources, name, expected):
    wkt = _well_known(compile_sources("class Empty { }"))
    method = MethodSymbol(name=name, containing_type=None, modifiers=("public",), return_type="void")
    assert is_razor_page_handler_method(method, wkt) is expected


def test_razor_page_handler_rejects_unresolved_method(compile_sources):
    wkt = _well_known(compile_sources("class Empty { }"))
    assert is_razor_page_handler_method(None, wkt) is False


def test_candidates_are_methods_in_declaration_order(compile_sources):
    code = '''
public class Mixed
{
    private int _count;
    public string Name { get; set; }
    public Mixed() { }
    public void B() { }
    public event System.EventHandler Changed;
    public class Nested { public void C() { } }
    public void A() { }
}
'''
    compilation = compile_sources(code)
    tree = compilation.syntax_trees[0]
    model = compilation.get_semantic_model(tree)
    class_node = compilation.get_type_by_metadata_name("Mixed").declaring_nodes[0]
    found = list(candidates(members(class_node), model, _well_known(compilation)))
    names = [model.get_declared_symbol(n).name for n in found]
    assert names == ["B", "A"]


def test_candidates_with_constraint_filters_names(compile_sources):
    compilation = compile_sources(PAGE_CODE)
    tree = compilation.syntax_trees[0]
    model = compilation.get_semantic_model(tree)
    class_node = compilation.get_type_by_metadata_name("Shop.Pages.IndexModel").declaring_nodes[0]
    found = candidates(members(class_node), model, _well_known(compilation), is_razor_page_handler_method)
    assert [model.get_declared_symbol(n).name for n in found] == ["OnGet", "OnPostAsync"]


def test_inspect_returns_none_for_task_method(compile_sources):
    compilation = compile_sources(HUB_CODE)
    model = compilation.get_semantic_model(compilation.syntax_trees[0])
    hub = compilation.get_type_by_metadata_name("Chat.ChatHub").declaring_nodes[0]
    send = members(hub)[0]
    assert inspect(send, model, Role.SIGNALR_HUB) is None


# --- Filter interfaces that do not define a role ---

@pytest.mark.parametrize("interface", ["IFilterMetadata", "IOrderedFilter", "IPageFilter", "IAsyncPageFilter"])
def test_marker_and_page_filter_interfaces_have_no_role(analyze, interface):
    code = f'''
using Microsoft.AspNetCore.Mvc.Filters;

public class MetaOnly : {interface}
{{
    public async void Fire() {{ }}
}}
'''
    assert analyze(code) == []


def test_always_run_filter_counts_through_inheritance(analyze):
    code = '''
using Microsoft.AspNetCore.Mvc.Filters;

public class AlwaysRun : IAlwaysRunResultFilter
{
    public async void Fire() { }
}
'''
    diagnostics = analyze(code)
    assert [d.properties["role"] for d in diagnostics] == ["MVC_FILTER"]


# --- Declarations that cannot be resolved ---

def test_nameless_class_is_skipped(compile_sources):
    code = '''
using Microsoft.AspNetCore.Mvc;

public class : ControllerBase
{
    public async void M() { }
}
'''
    driver = AnalyzerDriver({RULE_ID: initialize})
    result = driver.run(compile_sources(code))
    assert result.diagnostics == []
    assert result.failures == []


def test_broken_handler_skipped_and_next_reported(compile_sources):
    code = '''
using Microsoft.AspNetCore.Mvc.RazorPages;

public class EditModel : PageModel
{
    public async void OnGet( { }

    public async void OnPost() { }
}
'''
    result = AnalyzerDriver({RULE_ID: initialize}).run(compile_sources(code))
    assert [d.properties["method"] for d in result.diagnostics] == ["OnPost"]
    assert result.failures == []


# --- Conditional compilation ---

def test_methods_in_conditional_blocks_inspected(analyze):
    code = '''
using Microsoft.AspNetCore.Mvc;

public class HomeController : ControllerBase
{
#if NET8_0_OR_GREATER
    public async void Fire() { }
#else
    public async void Legacy() { }
#endif

    #region Helpers
    public async void Helper() { }
    #endregion
}
'''
    diagnostics = analyze(code)
    assert [d.properties["method"] for d in diagnostics] == ["Fire", "Legacy", "Helper"]
    assert _span_texts(diagnostics, code) == ["async void"] * 3

