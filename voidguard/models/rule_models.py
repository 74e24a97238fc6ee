"""
Rule Engine Data Models — Diagnostics, violations, results, and rule metadata.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TextSpan(BaseModel):
    """A half-open range of character offsets into a source text."""

    model_config = {"frozen": True}

    start: int = Field(..., ge=0)
    length: int = Field(..., ge=0)

    @property
    def end(self) -> int:
        return self.start + self.length


class Location(BaseModel):
    """Where a diagnostic points: file, character span, and 1-based line/column."""

    model_config = {"frozen": True}

    path: str
    span: TextSpan
    start_line: int
    start_column: int
    end_line: int
    end_column: int


class DiagnosticDescriptor(BaseModel):
    """Immutable metadata shared by every diagnostic a rule produces."""

    model_config = {"frozen": True}

    id: str = Field(..., description="Unique rule identifier")
    title: str
    message_format: str = Field(
        ..., description="str.format template filled with the diagnostic's message args"
    )
    category: str
    default_severity: Severity
    description: str = ""


class Diagnostic(BaseModel):
    """A single finding handed from an analyzer to the host."""

    model_config = {"frozen": True}

    descriptor: DiagnosticDescriptor
    location: Location
    message_args: tuple[str, ...] = ()
    properties: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def create(
        cls,
        descriptor: DiagnosticDescriptor,
        location: Location,
        *message_args: str,
        properties: dict[str, str] | None = None,
    ) -> Diagnostic:
        return cls(
            descriptor=descriptor,
            location=location,
            message_args=tuple(message_args),
            properties=properties or {},
        )

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def severity(self) -> Severity:
        return self.descriptor.default_severity

    @property
    def message(self) -> str:
        return self.descriptor.message_format.format(*self.message_args)


class RuleViolation(BaseModel):
    """A single deterministic rule violation."""

    rule_id: str = Field(..., description="Unique rule identifier, e.g. 'async_void_in_method_declaration'")
    severity: Severity
    file: str = Field(..., description="File path where violation was found")
    line: int = Field(..., description="Line number of violation")
    end_line: int | None = Field(default=None, description="End line of violation range")
    column: int = Field(default=0, description="1-based start column")
    end_column: int | None = Field(default=None, description="1-based end column")
    span_start: int | None = Field(default=None, description="Character offset of the span start")
    span_length: int | None = Field(default=None, description="Character length of the span")
    title: str = Field(..., description="Short human-readable violation title")
    description: str = Field(..., description="Detailed deterministic explanation")
    evidence: list[str] = Field(
        default_factory=list,
        description="Deterministic evidence chain (class role, method, span text)",
    )
    affected_function: str = Field(default="", description="Method where violation occurs")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Rule-specific extra data"
    )


class RuleResult(BaseModel):
    """Result of running all rules on one compilation."""

    violations: list[RuleViolation] = Field(default_factory=list)
    rules_executed: list[str] = Field(default_factory=list)
    total_files_scanned: int = 0
    parse_errors: list[str] = Field(
        default_factory=list, description="Files whose syntax tree contains errors"
    )
    scan_duration_ms: float = 0.0
