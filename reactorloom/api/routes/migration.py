"""Migration API routes.

  GET  /lanes   -- registered migration lanes
  POST /preview -- migrate one source in memory and return the result
"""

import logging
import os

from fastapi import APIRouter, Depends, HTTPException

from ...core.migration.engine import FileMigration
from ...core.migration.lanes import LaneRegistry
from ..deps import get_migration_engine
from ..schemas.migration import (
    DiagnosticInfo,
    GateInfo,
    OutcomeInfo,
    PreviewRequest,
    PreviewResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/migration", tags=["migration"])


@router.get("/lanes")
async def list_lanes():
    """List registered migration lanes."""
    return {"lanes": LaneRegistry.list_lanes()}


@router.post("/preview", response_model=PreviewResponse)
async def preview_migration(
    data: PreviewRequest,
    engine=Depends(get_migration_engine),
):
    """Migrate a single compilation unit without touching the filesystem."""
    _, ext = os.path.splitext(data.file_path)
    if ext.lower() not in engine.settings.file_extensions:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext or data.file_path}'; expected one of {engine.settings.file_extensions}",
        )

    migration = engine.migrate_source(data.source, data.file_path)
    report = engine.build_report([migration])
    return _to_response(migration, report.gates)


def _to_response(migration: FileMigration, gates: list) -> PreviewResponse:
    outcomes = []
    for outcome in migration.result.outcomes:
        method = migration.enclosing_method(outcome.line)
        if outcome.rewrite is not None:
            counts = {
                bucket.value: len(indices)
                for bucket, indices in outcome.rewrite.buckets.as_dict().items()
            }
            outcomes.append(OutcomeInfo(line=outcome.line, rewritten=True, method=method, buckets=counts))
        else:
            reason = outcome.diagnostic.message if outcome.diagnostic is not None else None
            outcomes.append(OutcomeInfo(line=outcome.line, rewritten=False, method=method, reason=reason))

    return PreviewResponse(
        file_path=migration.file_path,
        source=migration.result.source,
        changed=migration.changed,
        rewritten_count=migration.rewritten_count,
        skipped_count=migration.skipped_count,
        outcomes=outcomes,
        diagnostics=[
            DiagnosticInfo(line=d.line, message=d.message, severity=d.severity)
            for d in migration.diagnostics
        ],
        gates=[GateInfo(**{k: g[k] for k in ("gate_name", "passed", "blocking", "category", "details")}) for g in gates],
        diff=migration.diff(),
    )
