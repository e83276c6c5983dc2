"""Migration lanes -- path-specific migration knowledge.

All built-in lanes are registered on import.  The :class:`LaneRegistry`
is the single entry point for the engine to discover and use lanes.
"""

from .base import (
    GateCategory,
    GateDefinition,
    GateResult,
    MigrationLane,
    TransformResult,
    TransformRule,
    aggregate_confidence,
    confidence_tier,
)
from .registry import LaneRegistry

# ── Register built-in lanes ──────────────────────────────────────────

from .reactor_tap import ReactorTapLane

LaneRegistry.register(ReactorTapLane())

__all__ = [
    "GateCategory",
    "GateDefinition",
    "GateResult",
    "LaneRegistry",
    "MigrationLane",
    "ReactorTapLane",
    "TransformResult",
    "TransformRule",
    "aggregate_confidence",
    "confidence_tier",
]
