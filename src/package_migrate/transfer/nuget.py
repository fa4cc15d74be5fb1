"""NuGet package transfer: positional download, archive repair and gpr push."""

import asyncio
import os
import zipfile
from pathlib import Path
from typing import List, Optional, Sequence

from ..api.exceptions import AuthenticationError, NotFoundError, ToolError
from ..models.context import NuGetSettings
from ..models.package import VersionReference
from ..tools.gpr import gpr_push
from .base import TransferPipeline
from .workspace import Workspace

# Package parts that gpr rejects when present more than once
DEDUPLICATED_ENTRIES = ('_rels/.rels', '[Content_Types].xml')


def repair_nupkg(
    package_path: Path, entry_names: Sequence[str] = DEDUPLICATED_ENTRIES
) -> List[str]:
    """Drop repeated copies of well-known metadata parts from a .nupkg archive.

    Entries are scanned in archive order. The first occurrence of each listed
    name is kept and later ones removed. Every other entry is copied through
    unchanged, duplicates included.

    Args:
        package_path: Archive to rewrite in place
        entry_names: Entry names to deduplicate

    Returns:
        Names of the removed entries, one per removal
    """
    seen = set()
    removed: List[str] = []
    kept: List[zipfile.ZipInfo] = []

    with zipfile.ZipFile(package_path) as source:
        for info in source.infolist():
            if info.filename in entry_names:
                if info.filename in seen:
                    removed.append(info.filename)
                    continue
                seen.add(info.filename)
            kept.append(info)

        if not removed:
            return removed

        repaired_path = package_path.with_name(package_path.name + '.tmp')
        with zipfile.ZipFile(repaired_path, 'w') as target:
            for info in kept:
                target.writestr(info, source.read(info))

    os.replace(repaired_path, package_path)
    return removed


class NuGetTransferPipeline(TransferPipeline):
    """Migrates NuGet package versions with the gpr tool."""

    @property
    def settings(self) -> NuGetSettings:
        return self.context.settings

    def download_url(self, package_name: str, version: str) -> str:
        source = self.context.source
        return (
            f'{source.registry_url}/{source.org}/download/{package_name}/{version}/'
            f'{package_name}.{version}.nupkg'
        )

    def repository_url(self, repository: Optional[str]) -> Optional[str]:
        if not repository:
            return None
        target = self.context.target
        return f'https://{target.hostname}/{target.org}/{repository}'

    async def transfer_one(
        self,
        package_name: str,
        reference: VersionReference,
        workspace: Optional[Workspace],
        repository: Optional[str] = None,
    ) -> bool:
        version = reference.reference
        package_path = workspace / f'{package_name}_{version}.nupkg'
        url = self.download_url(package_name, version)

        self.logger.info(f'Downloading {package_name} version {version}')
        self.logger.debug(f'Download URL: {url}')

        try:
            await self.client.download_async(url, package_path)
        except AuthenticationError:
            self.logger.error(
                f'Failed to authenticate with source registry for {package_name} {version}'
            )
            raise
        except NotFoundError:
            self.logger.warning(
                f'Package not found in source registry for {package_name} {version}'
            )
            return False

        removed = await asyncio.to_thread(repair_nupkg, package_path)
        for entry in removed:
            self.logger.debug(f'Removed duplicate file: {entry}')

        target = self.context.target
        target_info = f'{target.org}/{repository}' if repository else target.org
        self.logger.info(f'Pushing {package_name} to {target_info}')

        try:
            await gpr_push(
                self.runner,
                self.settings.gpr_path,
                package_path,
                target.token,
                self.repository_url(repository),
            )
        except ToolError as e:
            if e.is_unauthorized:
                self.logger.error(
                    f'Failed to authenticate with target registry for {package_name} {version}'
                )
            else:
                self.logger.error(f'GPR push failed for {package_name} {version}: {e}')
            raise

        self.logger.info(f'Successfully pushed {package_name} version {version}')
        return True
