"""
Pydantic-модели JSON-отчетов CLI.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .compiler import CompiledTemplate
from .errors import CompileError, HbUserError

REPORT_FORMAT_VERSION = 1


class FieldReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str


class TemplateReport(BaseModel):
    """Описание скомпилированного шаблона (hbtype schema)."""
    model_config = ConfigDict(frozen=True)

    formatVersion: int = REPORT_FORMAT_VERSION
    template: str
    fields: List[FieldReport] = Field(default_factory=list)
    helpers: List[str] = Field(default_factory=list)
    jsonSchema: Dict[str, Any] = Field(default_factory=dict)


class CheckResult(BaseModel):
    """Результат проверки одного шаблона (hbtype check)."""
    model_config = ConfigDict(frozen=True)

    template: str
    ok: bool
    error: Optional[str] = None
    kind: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None


def build_template_report(compiled: CompiledTemplate) -> TemplateReport:
    return TemplateReport(
        template=compiled.name,
        fields=[FieldReport(name=name, type=ft) for name, ft in compiled.schema.describe().items()],
        helpers=list(compiled.schema.helpers),
        jsonSchema=compiled.json_schema(),
    )


def check_ok(name: str) -> CheckResult:
    return CheckResult(template=name, ok=True)


def check_failed(name: str, error: HbUserError) -> CheckResult:
    kind = getattr(error, "kind", None)
    span = error.span if isinstance(error, CompileError) else None
    return CheckResult(
        template=name,
        ok=False,
        error=str(error),
        kind=kind.name if kind is not None else type(error).__name__,
        line=span.line if span is not None else None,
        column=span.column if span is not None else None,
    )


__all__ = [
    "FieldReport",
    "TemplateReport",
    "CheckResult",
    "build_template_report",
    "check_ok",
    "check_failed",
    "REPORT_FORMAT_VERSION",
]
