"""Data models for packages, versions and migration results."""

from .context import Endpoint, MigrationContext, get_registry_url
from .package import Package, PackageKind, PackageVersion, VersionReference, parse_packages_input
from .result import AggregateReport, PackageResult, RunOutcome

__all__ = [
    'Package',
    'PackageKind',
    'PackageVersion',
    'VersionReference',
    'parse_packages_input',
    'PackageResult',
    'AggregateReport',
    'RunOutcome',
    'Endpoint',
    'MigrationContext',
    'get_registry_url',
]
