"""
Test fixtures shared across all VoidGuard tests.
"""

import pytest

from voidguard.config import settings
from voidguard.core.analyzer import AnalyzerDriver
from voidguard.core.compilation import Compilation
from voidguard.core.parser import CSharpParser
from voidguard.core.references import ASPNETCORE_APP
from voidguard.core.rules import async_void_in_method_declaration


@pytest.fixture(autouse=True)
def audit_log_in_tmp(tmp_path, monkeypatch):
    """Keep audit output out of the working directory."""
    monkeypatch.setattr(settings, "audit_log_path", str(tmp_path / "audit.jsonl"))


@pytest.fixture
def parser():
    return CSharpParser()


@pytest.fixture
def compile_sources(parser):
    """Build a Compilation from C# sources; ASP.NET Core is referenced by default."""

    def _compile(*sources, references=(ASPNETCORE_APP,)):
        trees = [parser.parse(src, f"File{i}.cs") for i, src in enumerate(sources)]
        return Compilation(trees, references)

    return _compile


@pytest.fixture
def analyze(compile_sources):
    """Run the async void rule and return its diagnostics."""

    def _analyze(*sources, references=(ASPNETCORE_APP,), max_workers=1):
        compilation = compile_sources(*sources, references=references)
        driver = AnalyzerDriver(
            {async_void_in_method_declaration.RULE_ID: async_void_in_method_declaration.initialize},
            max_workers=max_workers,
        )
        return driver.run(compilation).diagnostics

    return _analyze


@pytest.fixture
def controller_code():
    """A controller with one async void action and one well-formed action."""
    return '''
using System.Threading.Tasks;
using Microsoft.AspNetCore.Mvc;

namespace Shop.Controllers
{
    public class OrdersController : Controller
    {
        public async void OnClick()
        {
            await Task.Delay(10);
        }

        public async Task<IActionResult> Index()
        {
            await Task.Delay(10);
            return View();
        }
    }
}
'''


@pytest.fixture
def clean_code():
    """C# code with no framework roles."""
    return '''
namespace Shop.Services
{
    public class Calculator
    {
        public int Add(int a, int b) => a + b;

        public async void Fire()
        {
            await System.Threading.Tasks.Task.Yield();
        }
    }
}
'''


@pytest.fixture
def sample_files(controller_code):
    """Sample file inputs for API testing."""
    from voidguard.models.scan_models import FileInput
    return [FileInput(path="Controllers/OrdersController.cs", content=controller_code)]
