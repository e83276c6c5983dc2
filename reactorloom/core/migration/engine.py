"""Migration engine -- drives a lane over sources, files and directory trees.

The engine owns I/O and reporting; the lane owns the rewrite and the
quality gates.  Files are read and written as UTF-8 with newlines kept
as found.
"""

import difflib
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..ast_parser import ParseResult, parse_source, should_skip_directory
from ..rewrite.models import RewriteDiagnostic, SourceRewriteResult
from ...setting import MigrationSettings, get_settings
from .lanes import LaneRegistry, MigrationLane, aggregate_confidence, confidence_tier

logger = logging.getLogger(__name__)

DEFAULT_LANE_ID = "reactor_do_after_success_or_error_to_tap"


@dataclass
class FileMigration:
    """Outcome of migrating one file (or one in-memory source)."""

    file_path: str
    result: SourceRewriteResult
    written: bool = False
    _parsed: Optional[ParseResult] = field(default=None, repr=False, compare=False)

    def enclosing_method(self, line: int) -> Optional[str]:
        """Qualified name of the innermost method or constructor spanning *line*."""
        if self._parsed is None:
            self._parsed = parse_source(self.result.original_source, self.file_path, "java")
        unit = self._parsed.innermost_unit(line)
        return unit.qualified_name if unit is not None else None

    @property
    def changed(self) -> bool:
        return self.result.changed

    @property
    def rewritten_count(self) -> int:
        return self.result.rewritten_count

    @property
    def skipped_count(self) -> int:
        return self.result.skipped_count

    @property
    def diagnostics(self) -> List[RewriteDiagnostic]:
        return self.result.all_diagnostics()

    def diff(self, context_lines: int = 3) -> str:
        """Unified diff between the original and the migrated text."""
        if not self.changed:
            return ""
        return "".join(
            difflib.unified_diff(
                self.result.original_source.splitlines(keepends=True),
                self.result.source.splitlines(keepends=True),
                fromfile=f"a/{self.file_path}",
                tofile=f"b/{self.file_path}",
                n=context_lines,
            )
        )


@dataclass
class MigrationReport:
    """Per-file results, gate results and totals for one run."""

    lane_id: str
    files: List[FileMigration] = field(default_factory=list)
    gates: List[Dict[str, Any]] = field(default_factory=list)
    confidence: float = 0.0

    @property
    def changed_files(self) -> List[FileMigration]:
        return [f for f in self.files if f.changed]

    @property
    def rewritten_count(self) -> int:
        return sum(f.rewritten_count for f in self.files)

    @property
    def skipped_count(self) -> int:
        return sum(f.skipped_count for f in self.files)

    @property
    def passed(self) -> bool:
        """True when no blocking gate failed."""
        return all(g["passed"] for g in self.gates if g["blocking"])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lane_id": self.lane_id,
            "files_scanned": len(self.files),
            "files_changed": len(self.changed_files),
            "sites_rewritten": self.rewritten_count,
            "sites_skipped": self.skipped_count,
            "confidence": round(self.confidence, 4),
            "confidence_tier": confidence_tier(self.confidence) if self.changed_files else None,
            "passed": self.passed,
            "gates": self.gates,
        }


class MigrationEngine:
    """Apply one migration lane to sources, files and directory trees.

    Args:
        lane: Lane to apply.  Defaults to the registered Reactor tap lane.
        settings: Settings for the rewrite.  Defaults to ``get_settings()``.
    """

    def __init__(
        self,
        lane: Optional[MigrationLane] = None,
        settings: Optional[MigrationSettings] = None,
    ):
        self._settings = settings or get_settings()
        self._lane = lane or LaneRegistry.get_lane(DEFAULT_LANE_ID)
        if self._lane is None:
            raise ValueError(f"Migration lane not registered: {DEFAULT_LANE_ID}")

    @property
    def lane(self) -> MigrationLane:
        return self._lane

    @property
    def settings(self) -> MigrationSettings:
        return self._settings

    # ── Single unit ────────────────────────────────────────────────────

    def migrate_source(self, source: str, file_path: str = "<memory>") -> FileMigration:
        """Migrate one in-memory compilation unit."""
        result = self._lane.transform_source(source, file_path, self._settings)
        return FileMigration(file_path=file_path, result=result)

    def migrate_file(self, path: str, write: bool = False, display_path: Optional[str] = None) -> FileMigration:
        """Migrate one file, writing it back when *write* is set and it changed.

        An unreadable file yields an unchanged result with an error
        diagnostic instead of raising.
        """
        display_path = display_path or path
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                source = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cannot read {path}: {e}")
            result = SourceRewriteResult(file_path=display_path, original_source="", source="")
            result.diagnostics.append(
                RewriteDiagnostic(display_path, 0, f"cannot read file: {e}", "error")
            )
            return FileMigration(file_path=display_path, result=result)

        migration = self.migrate_source(source, display_path)
        if write and migration.changed:
            with open(path, "w", encoding="utf-8", newline="") as f:
                f.write(migration.result.source)
            migration.written = True
            logger.info(f"Wrote {path}")
        return migration

    # ── Trees ──────────────────────────────────────────────────────────

    def iter_source_files(self, root: str) -> List[str]:
        """Source files under *root* in sorted order, skipping build/VCS dirs."""
        if os.path.isfile(root):
            return [root]

        extensions = tuple(ext.lower() for ext in self._settings.file_extensions)
        found: List[str] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(
                d for d in dirnames
                if not should_skip_directory(d, self._settings.extra_skip_directories)
            )
            for name in sorted(filenames):
                if name.lower().endswith(extensions):
                    found.append(os.path.join(dirpath, name))
        return found

    def migrate_tree(self, root: str, write: bool = False) -> MigrationReport:
        """Migrate every source file under *root* and run the lane's gates."""
        base = root if os.path.isdir(root) else os.path.dirname(root)
        files = [
            self.migrate_file(path, write=write, display_path=os.path.relpath(path, base))
            for path in self.iter_source_files(root)
        ]
        report = self.build_report(files)
        logger.info(
            f"Migrated {root}: {len(report.changed_files)}/{len(files)} file(s) changed, "
            f"{report.rewritten_count} site(s) rewritten, {report.skipped_count} skipped"
        )
        return report

    # ── Reporting ──────────────────────────────────────────────────────

    def build_report(self, files: List[FileMigration]) -> MigrationReport:
        """Aggregate file results, run gates and score confidence."""
        source_units = [
            {"file_path": f.file_path, "source": f.result.original_source} for f in files
        ]
        transform_results = []
        for f in files:
            tr = self._lane.to_transform_result(f.file_path, f.result)
            if tr is not None:
                transform_results.append({
                    "target_path": tr.target_path,
                    "target_code": tr.target_code,
                    "rule_name": tr.rule_name,
                    "confidence": tr.confidence,
                    "notes": tr.notes,
                })

        context = {"settings": self._settings}
        return MigrationReport(
            lane_id=self._lane.lane_id,
            files=files,
            gates=self.run_gates(source_units, transform_results, context),
            confidence=aggregate_confidence(transform_results),
        )

    def run_gates(
        self,
        unit_dicts: List[Dict[str, Any]],
        transform_results: List[Dict[str, Any]],
        context: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """Run all quality gates of the lane.

        Returns:
            List of gate result dicts with keys: gate_name, lane_id,
            passed, blocking, category, details.
        """
        results = []
        for gate_def in self._lane.get_gates():
            try:
                gr = self._lane.run_gate(gate_def.name, unit_dicts, transform_results, context)
                results.append({
                    "gate_name": gate_def.name,
                    "lane_id": self._lane.lane_id,
                    "passed": gr.passed,
                    "blocking": gate_def.blocking,
                    "category": gate_def.category.value,
                    "details": gr.details,
                })
            except Exception:
                logger.warning(
                    "Gate %s from lane %s failed",
                    gate_def.name,
                    self._lane.lane_id,
                    exc_info=True,
                )
                results.append({
                    "gate_name": gate_def.name,
                    "lane_id": self._lane.lane_id,
                    "passed": False,
                    "blocking": gate_def.blocking,
                    "category": gate_def.category.value,
                    "details": {"error": "Gate execution failed"},
                })
        return results
