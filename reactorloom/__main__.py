import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .setting import MigrationSettings, get_settings, load_settings


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reactorloom",
        description="reactorloom - migrate Mono#doAfterSuccessOrError to Mono#tap",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to the configured log_level)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Settings YAML file (defaults to REACTORLOOM_CONFIG or config/reactorloom.yaml)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser("migrate", help="Rewrite call sites in a file or directory tree")
    migrate.add_argument("path", help="Java file or directory")
    migrate.add_argument("--write", action="store_true", help="Write changed files back")
    migrate.add_argument("--diff", action="store_true", help="Print a unified diff per changed file")
    migrate.add_argument(
        "--check",
        action="store_true",
        help="Exit with status 1 if any file would change"
    )

    subparsers.add_parser("lanes", help="List registered migration lanes")

    serve = subparsers.add_parser("serve", help="Run the preview API server")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    serve.add_argument("--port", type=int, default=9005, help="Port for the API server")

    return parser


def _run_migrate(args: argparse.Namespace, settings: MigrationSettings) -> int:
    from .core.migration import MigrationEngine

    if not os.path.exists(args.path):
        print(f"reactorloom: no such file or directory: {args.path}", file=sys.stderr)
        return 2

    engine = MigrationEngine(settings=settings)
    report = engine.migrate_tree(args.path, write=args.write)

    for migration in report.files:
        for diagnostic in migration.diagnostics:
            where = migration.enclosing_method(diagnostic.line) if diagnostic.line else None
            suffix = f" (in {where})" if where else ""
            print(
                f"{migration.file_path}:{diagnostic.line}: {diagnostic.severity}: "
                f"{diagnostic.message}{suffix}"
            )
        if migration.changed:
            action = "rewrote" if migration.written else "would rewrite"
            print(f"{migration.file_path}: {action} {migration.rewritten_count} call site(s)")
        if args.diff and migration.changed:
            print(migration.diff(), end="")

    summary = report.to_dict()
    print(
        f"\n  {summary['files_changed']}/{summary['files_scanned']} file(s) changed, "
        f"{summary['sites_rewritten']} site(s) rewritten, {summary['sites_skipped']} skipped"
    )
    for gate in report.gates:
        status = "passed" if gate["passed"] else "FAILED"
        print(f"  gate {gate['gate_name']}: {status}")

    if args.check and report.changed_files:
        return 1
    return 0


def _run_lanes() -> int:
    from .core.migration.lanes import LaneRegistry

    print(json.dumps(LaneRegistry.list_lanes(), indent=2))
    return 0


def _run_serve(args: argparse.Namespace, settings: MigrationSettings) -> int:
    from .api.app import create_app
    from .core.migration import MigrationEngine

    app = create_app(MigrationEngine(settings=settings))

    # Launch with uvicorn
    import uvicorn

    logger.info(f"Starting FastAPI server on http://{args.host}:{args.port}")
    print(f"\n  reactorloom is running at: http://{args.host}:{args.port}")
    print(f"  API docs at: http://{args.host}:{args.port}/docs\n")

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for reactorloom."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(Path(args.config)) if args.config else get_settings()
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level})

    setup_logging(settings.log_level)

    if args.command == "migrate":
        return _run_migrate(args, settings)
    if args.command == "lanes":
        return _run_lanes()
    return _run_serve(args, settings)


if __name__ == "__main__":
    sys.exit(main())
