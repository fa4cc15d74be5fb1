"""Migration orchestrator: runs every package of one kind and aggregates results."""

from typing import Awaitable, Callable, List

from loguru import logger

from ..models.package import Package, PackageKind
from ..models.result import AggregateReport, PackageResult, RunOutcome

MigrateFn = Callable[[Package], Awaitable[PackageResult]]


class MigrationOrchestrator:
    """Drives the package migrator over a package list and builds the report."""

    def __init__(self, kind: PackageKind):
        """Initialize migration orchestrator.

        Args:
            kind: Package kind of every package in the run
        """
        self.kind = kind
        self.logger = logger.bind(component='MigrationOrchestrator')

    async def run(self, packages: List[Package], migrate_fn: MigrateFn) -> AggregateReport:
        """Migrate every package and aggregate the results.

        Packages are processed one after another. A failure while migrating
        one package is recorded against it and the loop continues.

        Args:
            packages: Packages to migrate
            migrate_fn: Coroutine migrating a single package

        Returns:
            Aggregate report of the run
        """
        label = self.kind.value
        if not packages:
            self.logger.info(f'No {label} packages to migrate')
            return AggregateReport(kind=self.kind)

        self.logger.info(f'Starting migration of {len(packages)} {label} packages')

        results: List[PackageResult] = []
        for package in packages:
            try:
                result = await migrate_fn(package)
            except Exception as e:
                self.logger.error(f'Migration of {package.name} failed unexpectedly: {e}')
                result = PackageResult.skip(
                    package.name,
                    reason=f'Unexpected error: {e}',
                    container=self.kind == PackageKind.CONTAINER,
                )
            results.append(result)

        report = AggregateReport(kind=self.kind, results=results)
        self.log_report(report)
        return report

    def log_report(self, report: AggregateReport) -> None:
        label = self.kind.value
        self.logger.info(f'=== {label.upper()} Migration Summary ===')
        for name, value in report.statistics():
            self.logger.info(f'{name}: {value}')

        if report.outcome == RunOutcome.HARD_FAILURE:
            self.logger.error(f'All {label} package migrations failed')
        elif report.outcome == RunOutcome.PARTIAL_FAILURE:
            self.logger.warning(f'Some {label} package migrations failed')
        else:
            self.logger.info(f'All {label} package migrations succeeded')
