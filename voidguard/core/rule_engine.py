"""
Rule Engine — Orchestrates all deterministic rules.

Builds a compilation from parsed C# syntax trees, runs every registered
analyzer over it, and converts the resulting diagnostics into violations.
No network, no randomness — pure deterministic analysis.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable

from voidguard.config import settings
from voidguard.core.analyzer import AnalyzerDriver, AnalyzerFailure, AnalyzerInitializer
from voidguard.core.cancellation import CancellationToken
from voidguard.core.compilation import Compilation
from voidguard.core.references import MetadataReference
from voidguard.core.syntax import SyntaxTree
from voidguard.models.rule_models import (
    Diagnostic,
    DiagnosticDescriptor,
    RuleResult,
    RuleViolation,
    Severity,
)

# Import all rule modules
from voidguard.core.rules import async_void_in_method_declaration

logger = logging.getLogger("voidguard.engine")

# Registry of all deterministic rules
RULE_REGISTRY: dict[str, AnalyzerInitializer] = {
    async_void_in_method_declaration.RULE_ID: async_void_in_method_declaration.initialize,
}

RULE_DESCRIPTORS: dict[str, tuple[DiagnosticDescriptor, ...]] = {
    async_void_in_method_declaration.RULE_ID: async_void_in_method_declaration.SUPPORTED_DIAGNOSTICS,
}


def diagnostic_to_violation(diagnostic: Diagnostic, syntax_tree: SyntaxTree | None = None) -> RuleViolation:
    location = diagnostic.location
    evidence = [f"{key}: {value}" for key, value in diagnostic.properties.items()]
    if syntax_tree is not None:
        evidence.append(f"Span: '{syntax_tree.span_text(location.span)}'")
    return RuleViolation(
        rule_id=diagnostic.id,
        severity=diagnostic.severity,
        file=location.path,
        line=location.start_line,
        end_line=location.end_line,
        column=location.start_column,
        end_column=location.end_column,
        span_start=location.span.start,
        span_length=location.span.length,
        title=diagnostic.descriptor.title,
        description=diagnostic.message,
        evidence=evidence,
        affected_function=diagnostic.properties.get("method", ""),
        metadata={"category": diagnostic.descriptor.category, **diagnostic.properties},
    )


def failure_to_violation(failure: AnalyzerFailure) -> RuleViolation:
    # Rule failures should not crash the engine
    return RuleViolation(
        rule_id=failure.rule_id,
        severity=Severity.LOW,
        file=failure.path,
        line=failure.line,
        title=f"Rule '{failure.rule_id}' internal error",
        description=f"Rule execution failed: {failure.message}",
        evidence=[f"Exception: {failure.exception_type}: {failure.message}"],
    )


class RuleEngine:
    """
    Deterministic rule engine.

    Runs all registered analyzers against one compilation per call.
    Rules are pure functions of the syntax trees and references.
    """

    def __init__(
        self,
        rules: dict[str, AnalyzerInitializer] | None = None,
        max_workers: int | None = None,
        concurrent_execution: bool | None = None,
    ) -> None:
        self.rules = rules or RULE_REGISTRY
        self.max_workers = max_workers or settings.analysis_max_workers
        self.concurrent_execution = (
            settings.concurrent_execution if concurrent_execution is None else concurrent_execution
        )

    def run(
        self,
        syntax_trees: Iterable[SyntaxTree],
        references: Iterable[MetadataReference] = (),
        cancellation_token: CancellationToken | None = None,
    ) -> RuleResult:
        """
        Run all rules against one compilation.

        Args:
            syntax_trees: Parsed source files analyzed together.
            references: Metadata references the sources compile against.
            cancellation_token: Cancels the run by raising OperationCanceledError.

        Returns:
            RuleResult with all violations found.
        """
        start = time.monotonic()
        trees = list(syntax_trees)
        compilation = Compilation(trees, references)

        driver = AnalyzerDriver(
            self.rules,
            max_workers=self.max_workers,
            concurrent_execution=self.concurrent_execution,
        )
        analysis = driver.run(compilation, cancellation_token)

        by_path = {tree.path: tree for tree in trees}
        violations = [
            diagnostic_to_violation(d, by_path.get(d.location.path)) for d in analysis.diagnostics
        ]
        violations.extend(failure_to_violation(f) for f in analysis.failures)

        elapsed = (time.monotonic() - start) * 1000
        logger.debug(
            "Rules %s: %d violations in %d files (%.1fms)",
            list(self.rules),
            len(violations),
            len(trees),
            elapsed,
        )

        return RuleResult(
            violations=violations,
            rules_executed=list(self.rules),
            total_files_scanned=len(trees),
            parse_errors=[tree.path for tree in trees if tree.has_error],
            scan_duration_ms=round(elapsed, 2),
        )

    def run_single_rule(
        self,
        rule_id: str,
        syntax_trees: Iterable[SyntaxTree],
        references: Iterable[MetadataReference] = (),
    ) -> list[RuleViolation]:
        """Run a single rule against one compilation."""
        if rule_id not in self.rules:
            raise ValueError(f"Unknown rule: {rule_id}")
        engine = RuleEngine(
            {rule_id: self.rules[rule_id]},
            max_workers=self.max_workers,
            concurrent_execution=self.concurrent_execution,
        )
        return engine.run(syntax_trees, references).violations
