"""
JSON report of a parse, as printed by ``antlers check``.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from .errors import Diagnostic
from .nodes import Document


class DiagnosticModel(BaseModel):
    kind: str
    message: str
    line: int
    column: int
    start: int
    end: int

    @classmethod
    def from_diagnostic(cls, diagnostic: Diagnostic) -> DiagnosticModel:
        return cls(
            kind=diagnostic.kind.value,
            message=diagnostic.message,
            line=diagnostic.line,
            column=diagnostic.column,
            start=diagnostic.span.start,
            end=diagnostic.span.end,
        )


class ParseReport(BaseModel):
    """Summary of one parsed document."""
    path: str
    ok: bool
    nodes: int = Field(description="Number of top-level nodes")
    diagnostics: List[DiagnosticModel] = Field(default_factory=list)

    @classmethod
    def from_document(cls, path: str, document: Document) -> ParseReport:
        return cls(
            path=path,
            ok=not document.has_errors,
            nodes=len(document.children),
            diagnostics=[DiagnosticModel.from_diagnostic(d) for d in document.diagnostics],
        )


__all__ = ["DiagnosticModel", "ParseReport"]
