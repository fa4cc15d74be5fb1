"""Shared fixtures."""

import pytest

from package_migrate.config.config import Config, MigrationSettings, OrganizationConfig
from package_migrate.models.context import (
    ContainerSettings,
    MigrationContext,
    NpmSettings,
    NuGetSettings,
)
from package_migrate.models.package import PackageKind


@pytest.fixture
def config():
    return Config(
        source=OrganizationConfig(org='acme', token='source-token'),
        target=OrganizationConfig(org='acme-new', token='target-token'),
        migration=MigrationSettings(retries=2, min_delay=0, max_delay=0),
    )


@pytest.fixture
def make_context(config, tmp_path):
    """Build a migration context for a package kind with zero retry delays."""

    def factory(kind, version_concurrency=1):
        if kind == PackageKind.NPM:
            settings = NpmSettings(npmrc_path=tmp_path / '.npmrc')
        elif kind == PackageKind.NUGET:
            settings = NuGetSettings(gpr_path=tmp_path / 'tools' / 'gpr')
        else:
            settings = ContainerSettings()
        return MigrationContext.build(
            config, kind, tmp_path, settings, version_concurrency=version_concurrency
        )

    return factory
