"""Migration engine, per-package migrator and reporting."""

from .discovery import discover_packages, filter_packages_by_repo
from .engine import MigrationEngine
from .migrator import PackageMigrator
from .orchestrator import MigrationOrchestrator
from .versions import VersionEnumerator

__all__ = [
    'MigrationEngine',
    'MigrationOrchestrator',
    'PackageMigrator',
    'VersionEnumerator',
    'discover_packages',
    'filter_packages_by_repo',
]
