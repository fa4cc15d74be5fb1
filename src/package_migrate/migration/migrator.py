"""Migration of every version of a single package."""

import asyncio
from typing import List, Optional, Tuple

from loguru import logger

from ..models.context import MigrationContext
from ..models.package import Package, PackageKind, VersionReference
from ..models.result import PackageResult
from ..transfer.base import TransferPipeline
from ..transfer.workspace import Workspace
from ..utils.resources import ResourceTracker
from ..utils.retry import with_retry
from .versions import VersionEnumerator


class PackageMigrator:
    """Drives version enumeration and transfer for one package at a time."""

    def __init__(
        self,
        context: MigrationContext,
        enumerator: VersionEnumerator,
        pipeline: TransferPipeline,
        tracker: ResourceTracker,
    ):
        """Initialize package migrator.

        Args:
            context: Read-only migration context
            enumerator: Source version enumerator
            pipeline: Transfer pipeline for the context's package kind
            tracker: Resource tracker for per-version workspaces
        """
        self.context = context
        self.enumerator = enumerator
        self.pipeline = pipeline
        self.tracker = tracker
        self.logger = logger.bind(component='PackageMigrator')

    @property
    def is_container(self) -> bool:
        return self.context.kind == PackageKind.CONTAINER

    async def migrate_package(self, package: Package) -> PackageResult:
        """Migrate every version of a package.

        Args:
            package: Package to migrate

        Returns:
            Per-package result. Packages without readable versions are
            skipped rather than failed.
        """
        repo_label = f' from repo: {package.repository}' if package.repository else ''
        self.logger.info(
            f'Migrating {self.context.kind.value} package: {package.name}{repo_label}'
        )

        versions = await self.enumerator.fetch_versions(
            self.context.source.org, package.name, self.context.kind
        )
        if not versions:
            self.logger.warning(f'No versions found for package {package.name}')
            return PackageResult.skip(package.name, container=self.is_container)

        references = self.pipeline.references(versions)
        outcomes = await self._migrate_references(package, references)

        return self._build_result(package.name, outcomes)

    async def _migrate_references(
        self, package: Package, references: List[VersionReference]
    ) -> List[Tuple[VersionReference, bool]]:
        concurrency = self.context.version_concurrency
        semaphore = asyncio.Semaphore(concurrency)

        async def bounded(reference: VersionReference) -> Tuple[VersionReference, bool]:
            async with semaphore:
                return reference, await self.migrate_version(package, reference)

        if concurrency == 1:
            return [await bounded(reference) for reference in references]

        return list(await asyncio.gather(*(bounded(r) for r in references)))

    async def migrate_version(self, package: Package, reference: VersionReference) -> bool:
        """Transfer one version with retries inside a fresh workspace.

        Errors never escape: whatever the retry wrapper finally raises is
        logged and counted as a failure.

        Args:
            package: Package the version belongs to
            reference: Version, digest or tag

        Returns:
            True if the transfer succeeded
        """
        workspace: Optional[Workspace] = None
        separator = reference.separator if self.is_container else '@'
        label = f'{package.name}{separator}{reference}'

        async def on_retry(error: BaseException, attempt: int) -> None:
            self.logger.info(f'Retry attempt {attempt} for {label}. Error: {error}')
            if workspace is not None:
                await asyncio.to_thread(workspace.reset)

        try:
            if self.pipeline.requires_workspace:
                workspace = await asyncio.to_thread(
                    Workspace.create,
                    self.context.work_dir,
                    package.name,
                    reference.reference,
                    self.tracker,
                )

            return await with_retry(
                lambda: self.pipeline.transfer_one(
                    package.name, reference, workspace, package.repository
                ),
                self.context.retry_policy,
                on_retry=on_retry,
            )
        except Exception as e:
            self.logger.error(f'Failed to migrate {label}: {e}')
            return False
        finally:
            if workspace is not None:
                await asyncio.to_thread(workspace.release)

    def _build_result(
        self, package_name: str, outcomes: List[Tuple[VersionReference, bool]]
    ) -> PackageResult:
        succeeded = sum(1 for _, ok in outcomes if ok)
        failed = len(outcomes) - succeeded

        counters = {}
        if self.is_container:
            counters = dict(
                digests_succeeded=sum(1 for r, ok in outcomes if ok and r.is_digest),
                digests_failed=sum(1 for r, ok in outcomes if not ok and r.is_digest),
                tags_succeeded=sum(1 for r, ok in outcomes if ok and not r.is_digest),
                tags_failed=sum(1 for r, ok in outcomes if not ok and not r.is_digest),
            )
            self.logger.info(
                f'Migration results for {package_name}: '
                f'{counters["digests_succeeded"]} digests and '
                f'{counters["tags_succeeded"]} tags succeeded, '
                f'{counters["digests_failed"]} digests and '
                f'{counters["tags_failed"]} tags failed'
            )
        else:
            self.logger.info(
                f'Migration results for {package_name}: '
                f'{succeeded} succeeded, {failed} failed'
            )

        return PackageResult(
            package=package_name, succeeded=succeeded, failed=failed, **counters
        )
