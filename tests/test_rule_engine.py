"""
Tests for Rule Engine — verify violations, failures, and single-rule runs.
"""

import pytest

from voidguard.core.references import ASPNETCORE_APP
from voidguard.core.rule_engine import RULE_DESCRIPTORS, RULE_REGISTRY, RuleEngine
from voidguard.core.rules.async_void_in_method_declaration import RULE_ID
from voidguard.core.syntax import SyntaxKind
from voidguard.models.rule_models import Severity


def test_async_void_violation_fields(parser, controller_code):
    tree = parser.parse(controller_code, "Controllers/OrdersController.cs")
    engine = RuleEngine(max_workers=1)
    result = engine.run([tree], [ASPNETCORE_APP])

    assert result.rules_executed == [RULE_ID]
    assert result.total_files_scanned == 1
    assert result.parse_errors == []
    assert len(result.violations) == 1

    violation = result.violations[0]
    assert violation.rule_id == RULE_ID
    assert violation.severity == Severity.HIGH
    assert violation.file == "Controllers/OrdersController.cs"
    assert violation.line == 9
    assert violation.end_line == 9
    assert violation.column == 16
    assert violation.end_column == 26
    assert violation.span_start == controller_code.index("async void")
    assert violation.span_length == len("async void")
    assert violation.affected_function == "OnClick"
    assert "Span: 'async void'" in violation.evidence
    assert "role: CONTROLLER" in violation.evidence
    assert violation.metadata["category"] == "Usage"
    assert violation.metadata["type"] == "Shop.Controllers.OrdersController"
    assert "OnClick" in violation.description


def test_clean_code_no_violations(parser, clean_code):
    result = RuleEngine().run([parser.parse(clean_code, "Calculator.cs")], [ASPNETCORE_APP])
    assert result.violations == []
    assert result.total_files_scanned == 1


def test_no_references_no_violations(parser, controller_code):
    result = RuleEngine().run([parser.parse(controller_code, "Orders.cs")])
    assert result.violations == []


def test_parse_errors_reported_but_valid_classes_analyzed(parser, controller_code):
    broken = parser.parse("public class Broken { void M( }", "Broken.cs")
    result = RuleEngine().run(
        [parser.parse(controller_code, "Orders.cs"), broken], [ASPNETCORE_APP]
    )
    assert result.parse_errors == ["Broken.cs"]
    assert [v.file for v in result.violations] == ["Orders.cs"]


def test_rule_failure_becomes_low_violation(parser):
    def initialize(context):
        def explode(node_context):
            raise RuntimeError("boom")

        context.register_compilation_start_action(
            lambda start: start.register_syntax_node_action(explode, SyntaxKind.CLASS_DECLARATION)
        )

    engine = RuleEngine({"exploding": initialize})
    result = engine.run([parser.parse("class A { }", "A.cs")])

    assert len(result.violations) == 1
    violation = result.violations[0]
    assert violation.rule_id == "exploding"
    assert violation.severity == Severity.LOW
    assert violation.file == "A.cs"
    assert violation.line == 1
    assert "boom" in violation.description
    assert violation.evidence == ["Exception: RuntimeError: boom"]


def test_run_single_rule(parser, controller_code):
    engine = RuleEngine()
    violations = engine.run_single_rule(RULE_ID, [parser.parse(controller_code, "Orders.cs")], [ASPNETCORE_APP])
    assert len(violations) == 1


def test_run_single_rule_unknown(parser):
    with pytest.raises(ValueError):
        RuleEngine().run_single_rule("no_such_rule", [parser.parse("class A { }")])


def test_registry_and_descriptors_agree():
    assert set(RULE_REGISTRY) == set(RULE_DESCRIPTORS)
    for rule_id, descriptors in RULE_DESCRIPTORS.items():
        assert all(d.id == rule_id for d in descriptors)


def test_deterministic_across_runs(parser, controller_code):
    trees = [parser.parse(controller_code, f"Orders{i}.cs") for i in range(5)]
    first = RuleEngine(max_workers=4).run(trees, [ASPNETCORE_APP])
    second = RuleEngine(max_workers=1).run(trees, [ASPNETCORE_APP])
    assert [v.model_dump() for v in first.violations] == [v.model_dump() for v in second.violations]
