"""Pydantic schemas for API request/response models."""

from .migration import DiagnosticInfo, GateInfo, OutcomeInfo, PreviewRequest, PreviewResponse

__all__ = [
    'DiagnosticInfo',
    'GateInfo',
    'OutcomeInfo',
    'PreviewRequest',
    'PreviewResponse',
]
