"""Discovery of packages in the source organization."""

from typing import Dict, Iterable, List, Optional
from urllib.parse import quote

from loguru import logger

from ..api.client import PackagesClient
from ..models.package import Package, PackageKind


def fetch_packages(client: PackagesClient, org: str, kind: PackageKind) -> List[Package]:
    """List every package of one kind in an organization.

    Errors are logged and yield an empty list.
    """
    try:
        items = client.get_paginated(
            f'/orgs/{quote(org, safe="")}/packages', params={'package_type': kind.value}
        )
    except Exception as e:
        logger.warning(f'Error fetching {kind.value} packages: {e}')
        return []

    return [
        Package(name=item['name'], kind=kind, repository=item.get('repository'))
        for item in items
    ]


def filter_packages_by_repo(
    packages: Iterable[Package], repo_name: Optional[str] = None
) -> List[Package]:
    """Select packages by linked repository.

    Without a repository name, keeps packages linked to no repository.
    Otherwise keeps packages linked to exactly that repository.
    """
    if not repo_name:
        return [pkg for pkg in packages if not pkg.repository]
    return [pkg for pkg in packages if pkg.repository == repo_name]


def discover_packages(
    client: PackagesClient,
    org: str,
    kinds: Iterable[PackageKind],
    repo_name: Optional[str] = None,
) -> Dict[PackageKind, List[Package]]:
    """Fetch and filter packages for each requested kind.

    Args:
        client: Client for the source organization
        org: Source organization
        kinds: Package kinds to list
        repo_name: Linked repository to filter by; None selects unlinked packages

    Returns:
        Filtered packages keyed by kind
    """
    scope = f' for repo {repo_name}' if repo_name else ' without repo'
    packages_by_kind: Dict[PackageKind, List[Package]] = {}

    for kind in kinds:
        all_packages = fetch_packages(client, org, kind)
        logger.debug(f'Found {len(all_packages)} total {kind.value} packages')

        filtered = filter_packages_by_repo(all_packages, repo_name)
        packages_by_kind[kind] = filtered
        logger.info(f'Found {len(filtered)} {kind.value} packages{scope}')

    total = sum(len(p) for p in packages_by_kind.values())
    if total == 0:
        logger.info(f'No packages found{scope} in {org}')
    else:
        logger.info(f'Total packages found: {total}')

    return packages_by_kind
