"""Per-kind artifact transfer pipelines."""

from ..api.client import PackagesClient
from ..models.context import MigrationContext
from ..models.package import PackageKind
from ..tools.runner import ToolRunner
from .base import TransferPipeline
from .container import ContainerTransferPipeline, parse_versions
from .npm import NpmTransferPipeline
from .nuget import NuGetTransferPipeline, repair_nupkg
from .workspace import Workspace

PIPELINES = {
    PackageKind.NPM: NpmTransferPipeline,
    PackageKind.NUGET: NuGetTransferPipeline,
    PackageKind.CONTAINER: ContainerTransferPipeline,
}


def create_pipeline(
    context: MigrationContext, client: PackagesClient, runner: ToolRunner
) -> TransferPipeline:
    """Create the transfer pipeline for the context's package kind."""
    return PIPELINES[context.kind](context, client, runner)


__all__ = [
    'TransferPipeline',
    'NpmTransferPipeline',
    'NuGetTransferPipeline',
    'ContainerTransferPipeline',
    'PIPELINES',
    'create_pipeline',
    'parse_versions',
    'repair_nupkg',
    'Workspace',
]
