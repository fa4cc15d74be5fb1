"""Version enumeration for packages in the source organization."""

from typing import List
from urllib.parse import quote

from loguru import logger

from ..api.client import PackagesClient
from ..models.package import PackageKind, PackageVersion


class VersionEnumerator:
    """Lists every published version of a package."""

    def __init__(self, client: PackagesClient):
        """Initialize version enumerator.

        Args:
            client: Client for the source organization's API
        """
        self.client = client
        self.logger = logger.bind(component='VersionEnumerator')

    async def fetch_versions(
        self, org: str, package_name: str, kind: PackageKind
    ) -> List[PackageVersion]:
        """Fetch all versions of a package.

        An unreadable version list is not fatal to the run: the error is
        logged and an empty list returned, so the package gets skipped.

        Args:
            org: Source organization
            package_name: Package name
            kind: Package kind

        Returns:
            Versions in API order, or an empty list on any error
        """
        endpoint = (
            f'/orgs/{quote(org, safe="")}/packages/{kind.value}/'
            f'{quote(package_name, safe="")}/versions'
        )

        try:
            items = await self.client.get_paginated_async(endpoint)
            versions = [PackageVersion.model_validate(item) for item in items]
        except Exception as e:
            self.logger.warning(f'Error fetching versions for {package_name}: {e}')
            return []

        self.logger.info(f'Found {len(versions)} versions for package {package_name}')
        return versions
