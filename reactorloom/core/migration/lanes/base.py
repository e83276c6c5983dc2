"""Migration lane base class and supporting dataclasses.

A migration lane encapsulates the knowledge for one migration path:
deterministic source rewrites and the quality gates that validate their
output.  The engine stays orchestration -- lanes own the domain
knowledge.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ...rewrite.models import SourceRewriteResult
from ....setting import MigrationSettings


# ── Gate Categories ──────────────────────────────────────────────────


class GateCategory(str, Enum):
    """Categories for quality gates."""

    PARITY = "parity"
    """Structural migration completeness (no deprecated call left)."""

    COMPILE = "compile"
    """Rewritten code still parses without errors."""


# ── Dataclasses ──────────────────────────────────────────────────────


@dataclass
class TransformRule:
    """A deterministic transform rule that maps a source pattern to target code."""

    name: str
    """Rule identifier, e.g. ``"do_after_success_or_error_to_tap"``."""

    source_pattern: Dict[str, Any]
    """Match criteria, e.g. ``{"type": "reactor.core.publisher.Mono",
    "method": "doAfterSuccessOrError"}``."""

    target_template: str
    """Template key used for code generation,
    e.g. ``"default_signal_listener"``."""

    confidence: float
    """How confident the transform is (0.0--1.0)."""

    requires_review: bool = False
    """Flag the output for human review when ``True``."""

    description: str = ""
    """Optional human-readable explanation of what this rule does."""


@dataclass
class TransformResult:
    """Result of applying a deterministic transform to one source file."""

    source_unit_id: str
    target_code: str
    target_path: str
    rule_name: str
    confidence: float
    notes: List[str] = field(default_factory=list)


@dataclass
class GateDefinition:
    """Definition of a quality gate that validates migration output."""

    name: str
    """Gate identifier, e.g. ``"no_deprecated_calls"``."""

    description: str
    """Human-readable explanation of what the gate checks."""

    blocking: bool = True
    """When ``True`` a failure fails the migration."""

    category: GateCategory = GateCategory.PARITY
    """Gate category for taxonomy and reporting."""


@dataclass
class GateResult:
    """Result of running a quality gate."""

    gate_name: str
    passed: bool
    details: Dict[str, Any] = field(default_factory=dict)
    blocking: bool = True


# ── Abstract Base Class ──────────────────────────────────────────────


class MigrationLane(ABC):
    """Abstract base for migration lanes.

    Each lane owns what is unique to a specific migration path:

    * **Deterministic transforms** -- source in, rewritten source out.
    * **Quality gates** -- validate migration completeness.

    Parsing is *not* part of lanes -- it is a core service, always
    available.
    """

    # ── Identity ─────────────────────────────────────────────────

    @property
    @abstractmethod
    def lane_id(self) -> str:
        """Unique identifier, e.g. ``"reactor_do_after_success_or_error_to_tap"``."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name."""
        ...

    @property
    @abstractmethod
    def source_frameworks(self) -> List[str]:
        """Framework identifiers this lane migrates FROM, e.g. ``["reactor-3.4"]``."""
        ...

    @property
    @abstractmethod
    def target_frameworks(self) -> List[str]:
        """Framework identifiers this lane migrates TO, e.g. ``["reactor-3.5"]``."""
        ...

    @property
    @abstractmethod
    def version(self) -> str:
        """Semantic version of this lane.  Bump when rules or gates change."""
        ...

    # ── Lifecycle ─────────────────────────────────────────────────

    @property
    def deprecated(self) -> bool:
        """When ``True``, :meth:`LaneRegistry.detect_lane` skips this lane."""
        return False

    @property
    def min_source_version(self) -> Optional[str]:
        """Minimum source framework version supported (inclusive)."""
        return None

    @property
    def max_source_version(self) -> Optional[str]:
        """Maximum source framework version supported (inclusive)."""
        return None

    @abstractmethod
    def detect_applicability(
        self, source_framework: str, target_stack: Dict[str, Any]
    ) -> float:
        """Score how applicable this lane is for a source/target combo.

        Returns 0.0 (not applicable) to 1.0 (perfect match).
        Called by :class:`LaneRegistry` to auto-detect the best lane.
        """
        ...

    # ── Deterministic Transforms ─────────────────────────────────

    @abstractmethod
    def get_transform_rules(self) -> List[TransformRule]:
        """Return all deterministic transform rules this lane provides."""
        ...

    @abstractmethod
    def transform_source(
        self,
        source: str,
        file_path: str,
        settings: Optional[MigrationSettings] = None,
    ) -> SourceRewriteResult:
        """Rewrite one compilation unit."""
        ...

    @abstractmethod
    def apply_transforms(
        self,
        units: List[Dict[str, Any]],
        context: Dict[str, Any],
    ) -> List[TransformResult]:
        """Apply deterministic transforms to source files.

        Args:
            units: File dicts with ``file_path`` and ``source`` keys.
            context: Migration context (``settings`` and run metadata).

        Returns:
            Transform results for the files that changed.
        """
        ...

    @abstractmethod
    def to_transform_result(
        self, unit_id: str, rewritten: SourceRewriteResult
    ) -> Optional[TransformResult]:
        """Summarize one rewritten file, or ``None`` if it is unchanged."""
        ...

    # ── Quality Gates ────────────────────────────────────────────

    @abstractmethod
    def get_gates(self) -> List[GateDefinition]:
        """Return all quality gate definitions this lane provides."""
        ...

    @abstractmethod
    def run_gate(
        self,
        gate_name: str,
        source_units: List[Dict[str, Any]],
        target_outputs: List[Dict[str, Any]],
        context: Dict[str, Any],
    ) -> GateResult:
        """Run a specific quality gate.

        Args:
            gate_name: Name of the gate to run.
            source_units: Original file dicts.
            target_outputs: Transform result dicts (``target_path``,
                ``target_code``).
            context: Migration context.

        Returns:
            :class:`GateResult` with pass/fail and details.
        """
        ...


# ── Confidence Model ─────────────────────────────────────────────────

CONFIDENCE_HIGH = 0.90
"""Transforms at or above this score are flagged as high-confidence."""

CONFIDENCE_STANDARD = 0.75
"""Transforms between STANDARD and HIGH require normal review."""


def confidence_tier(score: float) -> str:
    """Map a confidence score to a human-readable tier label.

    Returns:
        ``"high"`` (>= 0.90), ``"standard"`` (>= 0.75), or ``"low"``.
    """
    if score >= CONFIDENCE_HIGH:
        return "high"
    if score >= CONFIDENCE_STANDARD:
        return "standard"
    return "low"


def aggregate_confidence(
    transform_results: List[Dict[str, Any]],
    weights: Optional[Dict[str, float]] = None,
) -> float:
    """Compute weighted-average confidence from transform result dicts.

    Each dict must have a ``"confidence"`` key (float).  The optional
    *weights* dict maps ``rule_name`` to a weight (default 1.0).

    Returns 0.0 when *transform_results* is empty.
    """
    if not transform_results:
        return 0.0
    total_weight = 0.0
    weighted_sum = 0.0
    for r in transform_results:
        w = (weights or {}).get(r.get("rule_name", ""), 1.0)
        weighted_sum += r["confidence"] * w
        total_weight += w
    return weighted_sum / total_weight if total_weight > 0 else 0.0
