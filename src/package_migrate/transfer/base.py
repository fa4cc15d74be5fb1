"""Shared shape of the per-kind artifact transfer pipelines."""

from abc import ABC, abstractmethod
from typing import List, Optional

from loguru import logger

from ..api.client import PackagesClient
from ..models.context import MigrationContext
from ..models.package import PackageVersion, VersionReference
from ..tools.runner import ToolRunner
from .workspace import Workspace


class TransferPipeline(ABC):
    """Download, transform and publish one version of a package.

    ``transfer_one`` returns True when the artifact reached the target and
    False when the source artifact does not exist. Authentication failures
    and transient errors are raised so the caller's retry wrapper can
    classify them.
    """

    #: Whether each transfer needs a local workspace directory
    requires_workspace = True

    #: Versions migrated concurrently within one package unless configured
    default_concurrency = 1

    def __init__(
        self,
        context: MigrationContext,
        client: PackagesClient,
        runner: ToolRunner,
    ):
        """Initialize transfer pipeline.

        Args:
            context: Read-only migration context
            client: Client for the source organization
            runner: External tool runner
        """
        self.context = context
        self.client = client
        self.runner = runner
        self.logger = logger.bind(pipeline=self.__class__.__name__)

    def references(self, versions: List[PackageVersion]) -> List[VersionReference]:
        """Units of work for a version list. One per version by default."""
        return [VersionReference(reference=v.name) for v in versions]

    @abstractmethod
    async def transfer_one(
        self,
        package_name: str,
        reference: VersionReference,
        workspace: Optional[Workspace],
        repository: Optional[str] = None,
    ) -> bool:
        """Transfer a single version, digest or tag.

        Args:
            package_name: Package name without scope or org
            reference: Version to transfer
            workspace: Empty scratch directory, or None when not required
            repository: Linked repository name, if any

        Returns:
            True on success, False if the source artifact is missing
        """
        pass
