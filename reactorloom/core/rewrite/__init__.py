"""Rewrite of ``Mono#doAfterSuccessOrError`` call sites into ``Mono#tap``.

Public API:
    rewrite_source(source, file_path, settings) → SourceRewriteResult
    attempt_rewrite(call_site, settings) → RewriteOutcome
    rewrite_call_site(call_site, buckets, settings) → CallSiteRewrite
    classify(value_param, error_param, arena, body) → Buckets
"""

from .classifier import classify, default_bucket, uses_identifier
from .errors import RewriteError, TypeResolutionError, UnsupportedCallSiteError
from .matcher import CallSiteFinder
from .models import (
    Binding,
    Bucket,
    Buckets,
    CallSite,
    CallSiteRewrite,
    GuardCondition,
    NullCheck,
    ResolvedType,
    RewriteDiagnostic,
    RewriteOutcome,
    SourceRewriteResult,
    Statement,
    StatementArena,
    StatementKind,
)
from .rewriter import attempt_rewrite, resolve_element_type, rewrite_call_site, rewrite_source

__all__ = [
    "classify",
    "default_bucket",
    "uses_identifier",
    "attempt_rewrite",
    "resolve_element_type",
    "rewrite_call_site",
    "rewrite_source",
    "CallSiteFinder",
    "RewriteError",
    "TypeResolutionError",
    "UnsupportedCallSiteError",
    "Binding",
    "Bucket",
    "Buckets",
    "CallSite",
    "CallSiteRewrite",
    "GuardCondition",
    "NullCheck",
    "ResolvedType",
    "RewriteDiagnostic",
    "RewriteOutcome",
    "SourceRewriteResult",
    "Statement",
    "StatementArena",
    "StatementKind",
]
