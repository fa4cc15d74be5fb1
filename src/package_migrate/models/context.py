"""Immutable per-run migration context and registry endpoint derivation."""

from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

from ..config.config import Config, OrganizationConfig
from ..utils.retry import RetryPolicy
from .package import PackageKind

PUBLIC_API_HOST = 'api.github.com'

# Registry hosts used when the API is the public default
PUBLIC_REGISTRIES = {
    PackageKind.NPM: 'https://npm.pkg.github.com',
    PackageKind.NUGET: 'https://nuget.pkg.github.com',
    PackageKind.CONTAINER: 'ghcr.io',
}

# Subdomain prefixes used for other hosts
REGISTRY_SUBDOMAINS = {
    PackageKind.NPM: 'npm',
    PackageKind.NUGET: 'nuget',
    PackageKind.CONTAINER: 'containers',
}


def get_base_hostname(api_url: str) -> str:
    """Hostname of an API URL with any leading ``api.`` removed."""
    hostname = urlparse(api_url).hostname or ''
    if hostname.startswith('api.'):
        return hostname[len('api.'):]
    return hostname


def get_registry_url(
    kind: PackageKind, api_url: str, custom_registry_url: Optional[str] = None
) -> str:
    """Registry endpoint for a package kind.

    An explicit registry URL always wins. Otherwise the public API host maps
    to the public registry, and any other host ``api.<base>`` maps to
    ``<subdomain>.<base>``. npm and NuGet endpoints are URLs, container
    registries are bare hostnames.

    Args:
        kind: Package kind
        api_url: REST API URL of the organization's host
        custom_registry_url: Explicit override

    Returns:
        Registry URL or hostname
    """
    if custom_registry_url:
        if kind == PackageKind.CONTAINER:
            return strip_scheme(custom_registry_url)
        return custom_registry_url.rstrip('/')

    hostname = urlparse(api_url).hostname or ''
    if hostname == PUBLIC_API_HOST:
        return PUBLIC_REGISTRIES[kind]

    registry_host = f'{REGISTRY_SUBDOMAINS[kind]}.{get_base_hostname(api_url)}'
    if kind == PackageKind.CONTAINER:
        return registry_host
    return f'https://{registry_host}'


def strip_scheme(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme and parsed.netloc:
        return (parsed.netloc + parsed.path).rstrip('/')
    return url.rstrip('/')


class Endpoint(BaseModel):
    """One side of the migration with its resolved registry."""

    model_config = ConfigDict(frozen=True)

    org: str
    api_url: str
    registry_url: str
    token: str

    @property
    def hostname(self) -> str:
        """Web hostname used to build repository links."""
        return get_base_hostname(self.api_url)

    @classmethod
    def from_config(cls, config: OrganizationConfig, kind: PackageKind) -> 'Endpoint':
        return cls(
            org=config.org,
            api_url=config.api_url,
            registry_url=get_registry_url(kind, config.api_url, config.registry_url),
            token=config.token,
        )


class NpmSettings(BaseModel):
    """npm-only artifacts prepared once per run."""

    model_config = ConfigDict(frozen=True)

    npmrc_path: Path = Field(..., description='Target registry credential file')


class NuGetSettings(BaseModel):
    """NuGet-only artifacts prepared once per run."""

    model_config = ConfigDict(frozen=True)

    gpr_path: Path = Field(..., description='Installed gpr executable')


class ContainerSettings(BaseModel):
    """Container-only copy tool settings."""

    model_config = ConfigDict(frozen=True)

    skopeo_image: str = Field(default='quay.io/skopeo/stable:latest')
    retry_times: int = Field(default=3)


KindSettings = Union[NpmSettings, NuGetSettings, ContainerSettings]


class MigrationContext(BaseModel):
    """Read-only configuration shared by every version transfer of a run."""

    model_config = ConfigDict(frozen=True)

    kind: PackageKind
    source: Endpoint
    target: Endpoint
    work_dir: Path = Field(..., description='Per-run temporary directory')
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    version_concurrency: int = Field(default=1, ge=1)
    settings: KindSettings

    @classmethod
    def build(
        cls,
        config: Config,
        kind: PackageKind,
        work_dir: Path,
        settings: KindSettings,
        version_concurrency: int = 1,
    ) -> 'MigrationContext':
        """Assemble the context from loaded configuration.

        Args:
            config: Loaded configuration
            kind: Package kind being migrated
            work_dir: Per-run temporary directory
            settings: Kind-specific artifacts
            version_concurrency: Versions migrated concurrently per package
        """
        migration = config.migration
        return cls(
            kind=kind,
            source=Endpoint.from_config(config.source, kind),
            target=Endpoint.from_config(config.target, kind),
            work_dir=work_dir,
            retry_policy=RetryPolicy(
                retries=migration.retries,
                min_delay=migration.min_delay,
                max_delay=migration.max_delay,
                multiplier=migration.backoff_factor,
            ),
            version_concurrency=migration.version_concurrency or version_concurrency,
            settings=settings,
        )
