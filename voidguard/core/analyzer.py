"""
Analyzer Host — Registration contexts and the driver that runs analyzers.

An analyzer is a plain ``initialize(context)`` function. It registers
compilation-start actions, which in turn register syntax-node actions for the
node kinds they care about. The driver invokes node actions once per matching
node, optionally on a thread pool when the analyzer opted in to concurrent
execution.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable

from tree_sitter import Node

from voidguard.core.cancellation import CancellationToken, OperationCanceledError
from voidguard.core.compilation import Compilation, SemanticModel
from voidguard.core.syntax import SyntaxKind, SyntaxTree, iter_nodes, syntax_kind
from voidguard.models.rule_models import Diagnostic

logger = logging.getLogger("voidguard.analyzer")


class SyntaxNodeAnalysisContext:
    """Handed to a syntax-node action for one node."""

    def __init__(
        self,
        node: Node,
        syntax_tree: SyntaxTree,
        semantic_model: SemanticModel,
        cancellation_token: CancellationToken,
        report: Callable[[Diagnostic], None],
    ) -> None:
        self.node = node
        self.syntax_tree = syntax_tree
        self.semantic_model = semantic_model
        self.cancellation_token = cancellation_token
        self._report = report

    @property
    def compilation(self) -> Compilation:
        return self.semantic_model.compilation

    def report_diagnostic(self, diagnostic: Diagnostic) -> None:
        self._report(diagnostic)


SyntaxNodeAction = Callable[[SyntaxNodeAnalysisContext], None]


class CompilationStartAnalysisContext:
    """Handed to a compilation-start action once per compilation."""

    def __init__(self, compilation: Compilation, cancellation_token: CancellationToken) -> None:
        self.compilation = compilation
        self.cancellation_token = cancellation_token
        self.node_actions: list[tuple[SyntaxNodeAction, frozenset[SyntaxKind]]] = []

    def register_syntax_node_action(self, action: SyntaxNodeAction, *kinds: SyntaxKind) -> None:
        if not kinds:
            raise ValueError("At least one SyntaxKind is required")
        self.node_actions.append((action, frozenset(kinds)))


CompilationStartAction = Callable[[CompilationStartAnalysisContext], None]


class AnalysisContext:
    """Handed to an analyzer's ``initialize`` function."""

    def __init__(self) -> None:
        self.concurrent_execution = False
        self.compilation_start_actions: list[CompilationStartAction] = []

    def enable_concurrent_execution(self) -> None:
        self.concurrent_execution = True

    def register_compilation_start_action(self, action: CompilationStartAction) -> None:
        self.compilation_start_actions.append(action)


AnalyzerInitializer = Callable[[AnalysisContext], None]


@dataclass(frozen=True)
class AnalyzerFailure:
    """An analyzer action raised; its analysis of that context was abandoned."""

    rule_id: str
    path: str
    line: int
    exception_type: str
    message: str


@dataclass
class AnalysisResult:
    diagnostics: list[Diagnostic] = field(default_factory=list)
    failures: list[AnalyzerFailure] = field(default_factory=list)


class AnalyzerDriver:
    """Runs a set of analyzers over one compilation."""

    def __init__(
        self,
        analyzers: dict[str, AnalyzerInitializer],
        max_workers: int = 1,
        concurrent_execution: bool = True,
    ) -> None:
        self.analyzers = analyzers
        self.max_workers = max(1, max_workers)
        self.concurrent_execution = concurrent_execution

    def run(
        self,
        compilation: Compilation,
        cancellation_token: CancellationToken | None = None,
    ) -> AnalysisResult:
        token = cancellation_token or CancellationToken()
        result = AnalysisResult()

        for rule_id, initialize in self.analyzers.items():
            token.throw_if_cancellation_requested()
            context = AnalysisContext()
            failure = self._guard(rule_id, "<initialize>", 0, lambda: initialize(context))
            if failure is not None:
                result.failures.append(failure)
                continue

            node_actions: list[tuple[SyntaxNodeAction, frozenset[SyntaxKind]]] = []
            for start_action in context.compilation_start_actions:
                start_context = CompilationStartAnalysisContext(compilation, token)
                failure = self._guard(
                    rule_id, "<compilation>", 0, lambda: start_action(start_context)
                )
                if failure is not None:
                    result.failures.append(failure)
                    continue
                node_actions.extend(start_context.node_actions)

            if not node_actions:
                logger.debug("Rule '%s' registered no node actions", rule_id)
                continue

            work = [
                (action, tree, node)
                for tree in compilation.syntax_trees
                for node in iter_nodes(tree.root)
                for action, kinds in node_actions
                if syntax_kind(node) in kinds
            ]
            concurrent = (
                context.concurrent_execution
                and self.concurrent_execution
                and self.max_workers > 1
                and len(work) > 1
            )
            logger.debug(
                "Rule '%s': %d node invocations (%s)",
                rule_id,
                len(work),
                "concurrent" if concurrent else "sequential",
            )

            if concurrent:
                with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                    futures = [
                        pool.submit(self._run_node_action, rule_id, action, tree, node, compilation, token)
                        for action, tree, node in work
                    ]
                    outcomes = [f.result() for f in futures]
            else:
                outcomes = [
                    self._run_node_action(rule_id, action, tree, node, compilation, token)
                    for action, tree, node in work
                ]

            for diagnostics, failure in outcomes:
                result.diagnostics.extend(diagnostics)
                if failure is not None:
                    result.failures.append(failure)

        result.diagnostics.sort(
            key=lambda d: (d.location.path, d.location.span.start, d.id)
        )
        return result

    def _run_node_action(
        self,
        rule_id: str,
        action: SyntaxNodeAction,
        tree: SyntaxTree,
        node: Node,
        compilation: Compilation,
        token: CancellationToken,
    ) -> tuple[list[Diagnostic], AnalyzerFailure | None]:
        token.throw_if_cancellation_requested()
        reported: list[Diagnostic] = []
        context = SyntaxNodeAnalysisContext(
            node=node,
            syntax_tree=tree,
            semantic_model=compilation.get_semantic_model(tree),
            cancellation_token=token,
            report=reported.append,
        )
        failure = self._guard(rule_id, tree.path, node.start_point[0] + 1, lambda: action(context))
        return reported, failure

    @staticmethod
    def _guard(rule_id: str, path: str, line: int, call: Callable[[], None]) -> AnalyzerFailure | None:
        """Run an analyzer callback; cancellation propagates, anything else becomes a failure."""
        try:
            call()
        except OperationCanceledError:
            raise
        except Exception as e:
            logger.exception("Rule '%s' failed in %s:%d", rule_id, path, line)
            return AnalyzerFailure(
                rule_id=rule_id,
                path=path,
                line=line,
                exception_type=type(e).__name__,
                message=str(e),
            )
        return None
