"""Migration preview request/response schemas."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class PreviewRequest(BaseModel):
    """Preview the migration of one compilation unit."""
    source: str = Field(..., description="Java source text")
    file_path: str = Field("Preview.java", description="Path used for diagnostics and the diff header", min_length=1)


class DiagnosticInfo(BaseModel):
    """A skipped site, a scope warning, or a file-level problem."""
    line: int = Field(..., description="1-based line, 0 for file-level diagnostics")
    message: str = Field(..., description="Diagnostic text")
    severity: str = Field("warning", description="info, warning or error")


class OutcomeInfo(BaseModel):
    """What happened to one matched call site."""
    line: int = Field(..., description="Line of the doAfterSuccessOrError name")
    rewritten: bool = Field(..., description="Whether the site was replaced")
    method: Optional[str] = Field(None, description="Qualified name of the enclosing method")
    buckets: Optional[Dict[str, int]] = Field(None, description="Statement count per listener method")
    reason: Optional[str] = Field(None, description="Why the site was left unchanged")


class GateInfo(BaseModel):
    """Result of one quality gate."""
    gate_name: str
    passed: bool
    blocking: bool
    category: str
    details: dict = Field(default_factory=dict)


class PreviewResponse(BaseModel):
    """Migrated source plus per-site outcomes."""
    file_path: str
    source: str = Field(..., description="Migrated source; equal to the input when nothing changed")
    changed: bool
    rewritten_count: int = 0
    skipped_count: int = 0
    outcomes: List[OutcomeInfo] = Field(default_factory=list)
    diagnostics: List[DiagnosticInfo] = Field(default_factory=list)
    gates: List[GateInfo] = Field(default_factory=list)
    diff: str = Field("", description="Unified diff of the change")
