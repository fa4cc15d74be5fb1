"""Migration engine - main entry point for migration operations."""

import tempfile
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..api.client import PackagesClient
from ..config.config import Config
from ..models.context import (
    ContainerSettings,
    KindSettings,
    MigrationContext,
    NpmSettings,
    NuGetSettings,
    get_registry_url,
)
from ..models.package import Package, PackageKind
from ..models.result import AggregateReport
from ..tools.gpr import check_dotnet, install_gpr
from ..tools.npm import write_npmrc
from ..tools.runner import ToolRunner
from ..tools.skopeo import check_docker, pull_skopeo
from ..transfer import PIPELINES, create_pipeline
from ..utils.resources import ResourceTracker
from .migrator import PackageMigrator
from .orchestrator import MigrationOrchestrator
from .versions import VersionEnumerator


class MigrationEngine:
    """Main migration engine that coordinates one run for one package kind."""

    def __init__(
        self,
        config: Config,
        kind: PackageKind,
        tracker: Optional[ResourceTracker] = None,
        runner: Optional[ToolRunner] = None,
    ):
        """Initialize migration engine.

        Args:
            config: Migration configuration
            kind: Package kind migrated by this run
            tracker: Temporary resource tracker, shared with signal handlers
            runner: External tool runner
        """
        self.config = config
        self.kind = kind
        self.tracker = tracker or ResourceTracker()
        self.runner = runner or ToolRunner(secrets=[config.source.token, config.target.token])
        self.orchestrator = MigrationOrchestrator(kind)
        self.logger = logger.bind(component='MigrationEngine')

    async def run(self, packages: List[Package]) -> AggregateReport:
        """Prepare tooling, migrate every package and clean up.

        Tool preconditions are only checked when there is work to do.

        Args:
            packages: Packages of this engine's kind

        Returns:
            Aggregate report of the run

        Raises:
            PrerequisiteError: If a required tool is unavailable
        """
        if not packages:
            self.logger.info(f'No {self.kind.value} packages to migrate')
            return AggregateReport(kind=self.kind)

        work_dir = self._create_work_dir()
        client = PackagesClient(
            self.config.source.api_url,
            self.config.source.token,
            timeout=self.config.migration.request_timeout,
        )

        try:
            settings = await self.prepare(work_dir)
            context = MigrationContext.build(
                self.config,
                self.kind,
                work_dir,
                settings,
                version_concurrency=PIPELINES[self.kind].default_concurrency,
            )
            self.logger.info(
                f'Migrating {len(packages)} {self.kind.value} packages from '
                f'{context.source.org} to {context.target.org} '
                f'({context.version_concurrency} concurrent versions)'
            )

            migrator = PackageMigrator(
                context,
                VersionEnumerator(client),
                create_pipeline(context, client, self.runner),
                self.tracker,
            )
            return await self.orchestrator.run(packages, migrator.migrate_package)
        finally:
            client.close()
            self.tracker.release_all()

    async def prepare(self, work_dir: Path) -> KindSettings:
        """Check tool preconditions and build the kind's run settings.

        Raises:
            PrerequisiteError: If a required tool is unavailable
        """
        target = self.config.target

        if self.kind == PackageKind.NPM:
            registry_url = get_registry_url(self.kind, target.api_url, target.registry_url)
            npmrc_path = write_npmrc(work_dir, target.org, registry_url, target.token)
            return NpmSettings(npmrc_path=npmrc_path)

        if self.kind == PackageKind.NUGET:
            await check_dotnet(self.runner)
            gpr_path = await install_gpr(self.runner, work_dir / 'tools')
            return NuGetSettings(gpr_path=gpr_path)

        migration = self.config.migration
        await check_docker(self.runner)
        await pull_skopeo(self.runner, migration.skopeo_image)
        return ContainerSettings(
            skopeo_image=migration.skopeo_image, retry_times=migration.skopeo_retry_times
        )

    def _create_work_dir(self) -> Path:
        temp_dir = self.config.migration.temp_dir
        if temp_dir:
            Path(temp_dir).mkdir(parents=True, exist_ok=True)

        work_dir = Path(tempfile.mkdtemp(prefix=f'{self.kind.value}-migrate-', dir=temp_dir))
        self.tracker.track(work_dir)
        self.logger.debug(f'Created work directory {work_dir}')
        return work_dir

