"""npm package transfer: manifest lookup, tarball rewrite and publish."""

import asyncio
import json
import tarfile
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

from ..api.exceptions import AuthenticationError, NotFoundError, ToolError
from ..models.context import NpmSettings
from ..models.package import VersionReference
from ..tools.npm import npm_publish
from .base import TransferPipeline
from .workspace import Workspace


def extract_repo_name(repo_name: Optional[str], existing_url: str) -> Optional[str]:
    """Repository name to link to: explicit name, else last segment of the old URL."""
    if repo_name:
        return repo_name
    if not existing_url:
        return None
    name = existing_url.rstrip('/').split('/')[-1]
    if name.endswith('.git'):
        name = name[: -len('.git')]
    return name or None


def build_repo_url(target_hostname: str, target_org: str, repo_name: str) -> str:
    return f'git+https://{target_hostname}/{target_org}/{repo_name}.git'


def rewrite_package_json(
    pkg_json: Dict[str, Any],
    source_org: str,
    target_org: str,
    target_hostname: str,
    repo_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Move a package descriptor from the source scope to the target scope.

    The ``repository`` link is pointed at the target organization when a
    repository name is known or can be taken from the existing link, and is
    left alone otherwise.

    Args:
        pkg_json: Parsed package.json, modified in place
        source_org: Source organization (npm scope)
        target_org: Target organization (npm scope)
        target_hostname: Web host of the target organization
        repo_name: Linked repository name, if known

    Returns:
        The same dictionary
    """
    name = pkg_json.get('name', '')
    pkg_json['name'] = name.replace(f'@{source_org}/', f'@{target_org}/')

    repository = pkg_json.get('repository')
    if isinstance(repository, str):
        existing_url = repository
    elif isinstance(repository, dict):
        existing_url = repository.get('url') or ''
    else:
        existing_url = ''

    extracted = extract_repo_name(repo_name, existing_url)
    if not extracted:
        return pkg_json

    new_url = build_repo_url(target_hostname, target_org, extracted)
    if isinstance(repository, str):
        pkg_json['repository'] = new_url
    else:
        repository = dict(repository or {})
        repository.setdefault('type', 'git')
        repository['url'] = new_url
        pkg_json['repository'] = repository

    return pkg_json


def extract_tarball(tarball_path: Path, destination: Path) -> Path:
    """Extract an npm tarball and return the directory holding package.json."""
    with tarfile.open(tarball_path, 'r:*') as tar:
        tar.extractall(destination, filter='data')

    package_dir = destination / 'package'
    if (package_dir / 'package.json').exists():
        return package_dir

    # Some publishers use a different top-level directory name
    for candidate in sorted(destination.iterdir()):
        if candidate.is_dir() and (candidate / 'package.json').exists():
            return candidate

    raise NotFoundError(f'No package.json found in {tarball_path.name}')


class NpmTransferPipeline(TransferPipeline):
    """Migrates npm package versions between scoped registries."""

    default_concurrency = 4

    @property
    def settings(self) -> NpmSettings:
        return self.context.settings

    async def fetch_tarball_url(self, package_name: str, version: str) -> Optional[str]:
        """Look up a version's tarball URL in the source manifest.

        Returns:
            The tarball URL, or None if the manifest lacks the version
        """
        source = self.context.source
        manifest_url = (
            f'{source.registry_url}/@{source.org}/{quote(package_name, safe="")}'
        )

        try:
            response = await self.client.get_async(manifest_url)
        except AuthenticationError:
            self.logger.error(
                f'Failed to authenticate with source registry for {package_name}@{version}'
            )
            raise
        except NotFoundError:
            self.logger.warning(f'Package manifest not found for {package_name}@{version}')
            return None

        manifest = response.data if isinstance(response.data, dict) else {}
        entry = (manifest.get('versions') or {}).get(version) or {}
        tarball_url = (entry.get('dist') or {}).get('tarball')

        if not tarball_url:
            self.logger.warning(f'Version not found in manifest for {package_name}@{version}')
            return None

        return tarball_url

    def update_metadata(self, package_dir: Path, repository: Optional[str]) -> Dict[str, Any]:
        pkg_json_path = package_dir / 'package.json'
        pkg_json = json.loads(pkg_json_path.read_text(encoding='utf-8'))

        rewrite_package_json(
            pkg_json,
            self.context.source.org,
            self.context.target.org,
            self.context.target.hostname,
            repository,
        )

        pkg_json_path.write_text(json.dumps(pkg_json, indent=2), encoding='utf-8')
        self.logger.debug(
            f'Updated {pkg_json_path}: name={pkg_json.get("name")} '
            f'repository={pkg_json.get("repository")}'
        )
        return pkg_json

    async def transfer_one(
        self,
        package_name: str,
        reference: VersionReference,
        workspace: Optional[Workspace],
        repository: Optional[str] = None,
    ) -> bool:
        version = reference.reference
        self.logger.info(f'Migrating {package_name}@{version}')

        tarball_url = await self.fetch_tarball_url(package_name, version)
        if not tarball_url:
            return False

        tarball_path = workspace / f'{package_name}-{version}.tgz'
        try:
            await self.client.download_async(tarball_url, tarball_path)
        except NotFoundError:
            self.logger.warning(f'Tarball not found for {package_name}@{version}')
            return False

        package_dir = await asyncio.to_thread(extract_tarball, tarball_path, workspace.path)
        await asyncio.to_thread(self.update_metadata, package_dir, repository)

        try:
            await npm_publish(self.runner, package_dir, self.settings.npmrc_path)
        except ToolError as e:
            if e.is_unauthorized:
                self.logger.error(
                    f'Failed to authenticate with target registry for {package_name}@{version}'
                )
            else:
                self.logger.error(f'Failed to publish {package_name}@{version}: {e}')
            raise

        self.logger.info(f'Published {package_name}@{version} successfully')
        return True
