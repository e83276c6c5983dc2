"""Reactor 3.4 -> 3.5 lane: ``Mono#doAfterSuccessOrError`` to ``Mono#tap``.

``doAfterSuccessOrError`` was removed in reactor-core 3.5.  Each eligible
call site is rewritten to::

    mono.tap(() -> new DefaultSignalListener<>() {
        @Override
        public void doOnError(Throwable error) { ... }

        @Override
        public void doOnNext(T result) { ... }

        @Override
        public void doFinally(SignalType terminationType) { ... }
    })

with the callback's statements partitioned between the three methods.
Sites that cannot be rewritten are left unchanged and reported.
"""

import logging
from typing import Any, Dict, List, Optional

from ...ast_parser import parse_java_tree
from ...ast_parser.base import first_error_line
from ...constants import DO_AFTER_SUCCESS_OR_ERROR, MONO_FQN
from ...rewrite import CallSiteFinder, SourceRewriteResult, rewrite_source
from ....setting import MigrationSettings
from .base import (
    GateCategory,
    GateDefinition,
    GateResult,
    MigrationLane,
    TransformResult,
    TransformRule,
)

logger = logging.getLogger(__name__)

RULE_NAME = "do_after_success_or_error_to_tap"

# Files whose rewrite produced warnings drop to the review tier
_REVIEW_CONFIDENCE = 0.75

_SOURCE_FRAMEWORKS = {"reactor", "reactor-core", "reactor-3.4", "reactor_3_4"}


class ReactorTapLane(MigrationLane):
    """Rewrites ``doAfterSuccessOrError`` callbacks into ``tap`` listeners."""

    # ── Identity ────────────────────────────────────────────────

    @property
    def lane_id(self) -> str:
        return "reactor_do_after_success_or_error_to_tap"

    @property
    def display_name(self) -> str:
        return "Reactor Mono#doAfterSuccessOrError → Mono#tap"

    @property
    def source_frameworks(self) -> List[str]:
        return ["reactor-3.4"]

    @property
    def target_frameworks(self) -> List[str]:
        return ["reactor-3.5"]

    @property
    def version(self) -> str:
        return "1.0.0"

    @property
    def max_source_version(self) -> Optional[str]:
        return "3.4"

    # ── Applicability ───────────────────────────────────────────

    def detect_applicability(
        self, source_framework: str, target_stack: Dict[str, Any]
    ) -> float:
        """High score for reactor sources moving to reactor-core 3.5 or later."""
        if source_framework.lower() not in _SOURCE_FRAMEWORKS:
            return 0.0

        target_fw = str(target_stack.get("framework", "")).lower()
        target_version = str(target_stack.get("version", ""))
        if "reactor" in target_fw and _at_least_3_5(target_version):
            return 1.0
        if "reactor" in target_fw:
            return 0.8
        return 0.5  # source matches but no explicit target

    # ── Transform Rules ─────────────────────────────────────────

    def get_transform_rules(self) -> List[TransformRule]:
        return [
            TransformRule(
                name=RULE_NAME,
                source_pattern={"type": MONO_FQN, "method": DO_AFTER_SUCCESS_OR_ERROR},
                target_template="default_signal_listener",
                confidence=0.90,
                description=(
                    "Replace doAfterSuccessOrError((value, error) -> {...}) with "
                    "tap(() -> new DefaultSignalListener<>() {...}), splitting the "
                    "callback body into doOnNext, doOnError and doFinally."
                ),
            ),
        ]

    # ── Transform Application ───────────────────────────────────

    def transform_source(
        self,
        source: str,
        file_path: str,
        settings: Optional[MigrationSettings] = None,
    ) -> SourceRewriteResult:
        return rewrite_source(source, file_path, settings)

    def apply_transforms(
        self,
        units: List[Dict[str, Any]],
        context: Dict[str, Any],
    ) -> List[TransformResult]:
        """Rewrite each file dict; unchanged files produce no result."""
        settings = context.get("settings")
        results: List[TransformResult] = []

        for unit in units:
            file_path = unit.get("file_path", "<memory>")
            try:
                rewritten = self.transform_source(unit.get("source", ""), file_path, settings)
            except Exception:
                logger.error(
                    "ReactorTap: failed to transform '%s'", file_path, exc_info=True
                )
                continue
            result = self.to_transform_result(str(unit.get("id", file_path)), rewritten)
            if result is not None:
                results.append(result)

        logger.info(
            "ReactorTap: rewrote %d of %d file(s)",
            len(results),
            len(units),
        )
        return results

    def to_transform_result(
        self, unit_id: str, rewritten: SourceRewriteResult
    ) -> Optional[TransformResult]:
        """TransformResult for a changed file; files with warnings need review."""
        if not rewritten.changed:
            return None
        rule = self.get_transform_rules()[0]
        diagnostics = rewritten.all_diagnostics()
        return TransformResult(
            source_unit_id=unit_id,
            target_code=rewritten.source,
            target_path=rewritten.file_path,
            rule_name=rule.name,
            confidence=_REVIEW_CONFIDENCE if diagnostics else rule.confidence,
            notes=[f"line {d.line}: {d.message}" for d in diagnostics],
        )

    # ── Quality Gates ───────────────────────────────────────────

    def get_gates(self) -> List[GateDefinition]:
        """Both gates are blocking."""
        return [
            GateDefinition(
                name="no_deprecated_calls",
                description=(
                    "No Mono#doAfterSuccessOrError call site is left in "
                    "the migrated sources."
                ),
                blocking=True,
                category=GateCategory.PARITY,
            ),
            GateDefinition(
                name="syntax_clean",
                description="Every rewritten file parses without errors.",
                blocking=True,
                category=GateCategory.COMPILE,
            ),
        ]

    def run_gate(
        self,
        gate_name: str,
        source_units: List[Dict[str, Any]],
        target_outputs: List[Dict[str, Any]],
        context: Dict[str, Any],
    ) -> GateResult:
        """Run a specific quality gate against source files and rewritten outputs."""
        gate_map = {
            "no_deprecated_calls": self._gate_no_deprecated_calls,
            "syntax_clean": self._gate_syntax_clean,
        }

        gate_def = {g.name: g for g in self.get_gates()}.get(gate_name)
        handler = gate_map.get(gate_name)

        if handler is None or gate_def is None:
            return GateResult(
                gate_name=gate_name,
                passed=False,
                details={"error": f"Unknown gate: {gate_name}"},
                blocking=True,
            )

        return handler(source_units, target_outputs, gate_def)

    def _gate_no_deprecated_calls(
        self,
        source_units: List[Dict[str, Any]],
        target_outputs: List[Dict[str, Any]],
        gate_def: GateDefinition,
    ) -> GateResult:
        """Count eligible call sites left in the final text of every file.

        A file without a target output keeps its original source.
        """
        final = {u.get("file_path", ""): u.get("source", "") for u in source_units}
        for t in target_outputs:
            final[t.get("target_path", "")] = t.get("target_code", "")

        remaining: Dict[str, List[int]] = {}
        for path, code in final.items():
            source_bytes = code.encode("utf-8")
            tree = parse_java_tree(source_bytes)
            finder = CallSiteFinder(tree.root_node, source_bytes, path)
            lines = [node.start_point.row + 1 for node in finder.find()]
            if lines:
                remaining[path] = lines

        return GateResult(
            gate_name=gate_def.name,
            passed=not remaining,
            details={
                "files_checked": len(final),
                "remaining": remaining,
                "remaining_count": sum(len(v) for v in remaining.values()),
            },
            blocking=gate_def.blocking,
        )

    def _gate_syntax_clean(
        self,
        source_units: List[Dict[str, Any]],
        target_outputs: List[Dict[str, Any]],
        gate_def: GateDefinition,
    ) -> GateResult:
        """Verify every rewritten file parses without tree-sitter errors."""
        broken: Dict[str, int] = {}
        for t in target_outputs:
            tree = parse_java_tree(t.get("target_code", "").encode("utf-8"))
            if tree.root_node.has_error:
                broken[t.get("target_path", "")] = first_error_line(tree.root_node)

        return GateResult(
            gate_name=gate_def.name,
            passed=not broken,
            details={"files_checked": len(target_outputs), "errors": broken},
            blocking=gate_def.blocking,
        )


def _at_least_3_5(version: str) -> bool:
    parts = version.split(".")
    try:
        major = int(parts[0])
        minor = int(parts[1]) if len(parts) > 1 else 0
    except ValueError:
        return False
    return (major, minor) >= (3, 5)
