# reactorloom migration - lanes plus the engine that applies them to files and trees

from .engine import FileMigration, MigrationEngine, MigrationReport
from .lanes import LaneRegistry, MigrationLane, ReactorTapLane

__all__ = [
    "FileMigration",
    "LaneRegistry",
    "MigrationEngine",
    "MigrationLane",
    "MigrationReport",
    "ReactorTapLane",
]
