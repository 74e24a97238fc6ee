"""
Scan Request/Response Models — API contract schemas.

These are the public-facing Pydantic models used by FastAPI endpoints.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class FileInput(BaseModel):
    """A single C# file submitted for scanning."""

    path: str = Field(..., description="File path (absolute or relative)")
    content: str = Field(..., description="File source content")


class ScanRequest(BaseModel):
    """Request body for /scan."""

    files: list[FileInput] = Field(default_factory=list)
    references: list[str] | None = Field(
        default=None,
        description="Metadata references the files compile against; null uses the configured defaults",
    )


class Issue(BaseModel):
    """A single issue found during scanning."""

    id: str
    severity: Literal["critical", "high", "medium", "low"]
    file: str
    line: int = 0
    column: int = 0
    end_line: int | None = None
    end_column: int | None = None
    span_start: int | None = Field(default=None, description="Character offset of the highlighted span")
    span_length: int | None = Field(default=None, description="Character length of the highlighted span")
    rule_id: str = Field(default="", description="Deterministic rule that detected this")
    issue: str = Field(..., description="Short issue title")
    explanation: str = Field(..., description="Detailed explanation")
    evidence: list[str] = Field(
        default_factory=list, description="Deterministic evidence chain"
    )


class AuditEntry(BaseModel):
    """Audit metadata for a scan."""

    scan_id: str
    files_scanned: int
    violations_found: int
    references: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0
    cancelled: bool = False


class ScanReport(BaseModel):
    """Full scan report."""

    issues: list[Issue] = Field(default_factory=list)
    summary: str = ""
    rules_executed: list[str] = Field(default_factory=list)
    parse_errors: list[str] = Field(default_factory=list)
    audit: AuditEntry | None = None


class ScanResponse(BaseModel):
    """Top-level response for scan endpoints."""

    message: Literal["scan_complete", "cancelled", "error"] = "scan_complete"
    scan_id: str = ""
    detail: str | None = None
    report: ScanReport | None = None


class RuleInfo(BaseModel):
    """Public description of a supported diagnostic."""

    rule_id: str
    id: str
    title: str
    category: str
    default_severity: str
    description: str = ""
