"""
Scan Worker — Async orchestrator running the analysis pipeline.

Pipeline:
1. Parse each C# file with tree-sitter (with caching)
2. Resolve the metadata references for the compilation
3. Run the rule engine in a worker thread, cancelled on timeout
4. Record the scan in the audit log
5. Assemble the final ScanResponse
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid

from voidguard.audit.logger import AuditLogger
from voidguard.cache.file_cache import FileCache
from voidguard.config import settings
from voidguard.core.cancellation import CancellationToken, OperationCanceledError
from voidguard.core.parser import CSharpParser
from voidguard.core.references import resolve_references
from voidguard.core.rule_engine import RuleEngine
from voidguard.core.syntax import SyntaxTree
from voidguard.models.rule_models import RuleResult, RuleViolation
from voidguard.models.scan_models import (
    AuditEntry,
    FileInput,
    Issue,
    ScanReport,
    ScanResponse,
)

logger = logging.getLogger("voidguard.worker")


def violation_to_issue(index: int, violation: RuleViolation) -> Issue:
    return Issue(
        id=f"{violation.rule_id}-{index + 1}",
        severity=violation.severity.value,
        file=violation.file,
        line=violation.line,
        column=violation.column,
        end_line=violation.end_line,
        end_column=violation.end_column,
        span_start=violation.span_start,
        span_length=violation.span_length,
        rule_id=violation.rule_id,
        issue=violation.title,
        explanation=violation.description,
        evidence=violation.evidence,
    )


def summarize(result: RuleResult) -> str:
    if not result.violations:
        return f"No issues detected in {result.total_files_scanned} file(s)."
    files = {v.file for v in result.violations}
    return (
        f"{len(result.violations)} issue(s) in {len(files)} of "
        f"{result.total_files_scanned} file(s)."
    )


class ScanWorker:
    """Async scan orchestrator implementing the analysis pipeline."""

    def __init__(
        self,
        cache: FileCache | None = None,
        audit_logger: AuditLogger | None = None,
        rule_engine: RuleEngine | None = None,
    ) -> None:
        self.cache = cache or FileCache()
        self.audit_logger = audit_logger or AuditLogger()
        self.rule_engine = rule_engine or RuleEngine()
        self._parser = CSharpParser()

    def parse_files(self, files: list[FileInput], scan_id: str = "") -> list[SyntaxTree]:
        trees: list[SyntaxTree] = []
        for f in files:
            cached = self.cache.get(f.path, f.content)
            if cached:
                trees.append(cached.syntax_tree)
                logger.debug(f"[{scan_id}] Cache hit: {f.path}")
                continue
            tree = self._parser.parse(f.content, f.path)
            self.cache.put(f.path, f.content, tree)
            trees.append(tree)
            logger.debug(f"[{scan_id}] Parsed: {f.path}")
        return trees

    async def run_scan(
        self,
        files: list[FileInput],
        references: list[str] | None = None,
        timeout: float | None = None,
    ) -> ScanResponse:
        """
        Execute the analysis pipeline.

        Args:
            files: C# files analyzed together as one compilation
            references: Metadata reference names; None uses settings.default_references
            timeout: Seconds before analysis is cancelled; None uses settings.scan_timeout_seconds

        Returns:
            Complete ScanResponse

        Raises:
            ValueError: if a reference name is unknown
        """
        scan_id = str(uuid.uuid4())[:8]
        start_time = time.monotonic()
        reference_names = settings.default_references if references is None else references
        metadata_references = resolve_references(reference_names)

        logger.info(
            f"[{scan_id}] Starting scan of {len(files)} files "
            f"(references={reference_names})"
        )

        # ── Step 1: Parse ──
        trees = self.parse_files(files, scan_id)

        # ── Step 2: Rule engine, bounded by the scan timeout ──
        token = CancellationToken()
        budget = settings.scan_timeout_seconds if timeout is None else timeout
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self.rule_engine.run, trees, metadata_references, token),
                timeout=budget,
            )
        except (asyncio.TimeoutError, OperationCanceledError):
            token.cancel()
            duration = round((time.monotonic() - start_time) * 1000, 2)
            logger.warning(f"[{scan_id}] Scan cancelled after {duration:.1f}ms")
            self.audit_logger.log(
                AuditEntry(
                    scan_id=scan_id,
                    files_scanned=len(files),
                    violations_found=0,
                    references=list(reference_names),
                    duration_ms=duration,
                    cancelled=True,
                )
            )
            return ScanResponse(
                message="cancelled",
                scan_id=scan_id,
                detail=f"Analysis exceeded {budget}s and was cancelled",
            )

        logger.info(
            f"[{scan_id}] Rule violations: {len(result.violations)} "
            f"({result.scan_duration_ms:.1f}ms)"
        )
        if result.parse_errors:
            logger.info(f"[{scan_id}] Files with syntax errors: {result.parse_errors}")

        # ── Step 3: Audit ──
        duration = round((time.monotonic() - start_time) * 1000, 2)
        audit = AuditEntry(
            scan_id=scan_id,
            files_scanned=len(files),
            violations_found=len(result.violations),
            references=list(reference_names),
            duration_ms=duration,
        )
        self.audit_logger.log(audit)

        # ── Step 4: Assemble ──
        report = ScanReport(
            issues=[violation_to_issue(i, v) for i, v in enumerate(result.violations)],
            summary=summarize(result),
            rules_executed=result.rules_executed,
            parse_errors=result.parse_errors,
            audit=audit,
        )
        return ScanResponse(message="scan_complete", scan_id=scan_id, report=report)
