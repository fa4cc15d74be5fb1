"""Tests for npm package transfer."""

import io
import json
import tarfile

import pytest
from unittest.mock import AsyncMock, Mock, patch

from package_migrate.api.client import APIResponse, PackagesClient
from package_migrate.api.exceptions import AuthenticationError, NotFoundError, ToolError
from package_migrate.migration.migrator import PackageMigrator
from package_migrate.migration.versions import VersionEnumerator
from package_migrate.models.package import Package, PackageKind, VersionReference
from package_migrate.tools.runner import ToolResult, ToolRunner
from package_migrate.transfer.npm import (
    NpmTransferPipeline,
    extract_repo_name,
    extract_tarball,
    rewrite_package_json,
)
from package_migrate.transfer.workspace import Workspace
from package_migrate.utils.resources import ResourceTracker


def write_tarball(path, pkg_json, top_dir='package'):
    """Write an npm-style tarball holding a single package.json."""
    data = json.dumps(pkg_json).encode()
    with tarfile.open(path, 'w:gz') as tar:
        info = tarfile.TarInfo(f'{top_dir}/package.json')
        info.size = len(data)
        tar.addfile(info, io.BytesIO(data))
    return path


def manifest(*versions):
    return APIResponse(
        status_code=200,
        data={
            'name': '@acme/left-pad',
            'versions': {
                v: {'dist': {'tarball': f'https://npm.pkg.github.com/download/left-pad-{v}.tgz'}}
                for v in versions
            },
        },
        headers={},
        success=True,
    )


class TestRewritePackageJson:
    """Test package.json scope and repository rewriting."""

    def test_scope_is_moved(self):
        pkg = {'name': '@acme/left-pad', 'version': '1.0.0'}

        rewrite_package_json(pkg, 'acme', 'acme-new', 'github.com')

        assert pkg['name'] == '@acme-new/left-pad'
        assert 'repository' not in pkg

    def test_repository_from_explicit_name(self):
        pkg = {'name': '@acme/left-pad'}

        rewrite_package_json(pkg, 'acme', 'acme-new', 'github.com', 'tools')

        assert pkg['repository'] == {
            'type': 'git',
            'url': 'git+https://github.com/acme-new/tools.git',
        }

    def test_repository_string_is_rewritten(self):
        pkg = {'name': '@acme/left-pad', 'repository': 'https://github.com/acme/left-pad.git'}

        rewrite_package_json(pkg, 'acme', 'acme-new', 'github.com')

        assert pkg['repository'] == 'git+https://github.com/acme-new/left-pad.git'

    def test_repository_object_keeps_other_fields(self):
        pkg = {
            'name': '@acme/left-pad',
            'repository': {
                'type': 'git',
                'url': 'git+https://github.com/acme/pads.git',
                'directory': 'packages/left',
            },
        }

        rewrite_package_json(pkg, 'acme', 'acme-new', 'ghe.example.com')

        assert pkg['repository'] == {
            'type': 'git',
            'url': 'git+https://ghe.example.com/acme-new/pads.git',
            'directory': 'packages/left',
        }

    def test_extract_repo_name(self):
        assert extract_repo_name('explicit', 'https://x/acme/other.git') == 'explicit'
        assert extract_repo_name(None, 'https://x/acme/other.git/') == 'other'
        assert extract_repo_name(None, '') is None


class TestExtractTarball:
    def test_standard_layout(self, tmp_path):
        tarball = write_tarball(tmp_path / 'p.tgz', {'name': '@acme/left-pad'})
        destination = tmp_path / 'out'
        destination.mkdir()

        assert extract_tarball(tarball, destination) == destination / 'package'

    def test_nonstandard_top_directory(self, tmp_path):
        tarball = write_tarball(tmp_path / 'p.tgz', {'name': 'x'}, top_dir='left-pad')
        destination = tmp_path / 'out'
        destination.mkdir()

        assert extract_tarball(tarball, destination) == destination / 'left-pad'

    def test_missing_package_json(self, tmp_path):
        tarball = tmp_path / 'empty.tgz'
        with tarfile.open(tarball, 'w:gz'):
            pass
        destination = tmp_path / 'out'
        destination.mkdir()

        with pytest.raises(NotFoundError):
            extract_tarball(tarball, destination)

    def test_member_outside_destination_is_rejected(self, tmp_path):
        tarball = tmp_path / 'evil.tgz'
        payload = b'owned'
        with tarfile.open(tarball, 'w:gz') as tar:
            info = tarfile.TarInfo('../escaped.txt')
            info.size = len(payload)
            tar.addfile(info, io.BytesIO(payload))
        destination = tmp_path / 'out'
        destination.mkdir()

        with pytest.raises(tarfile.FilterError):
            extract_tarball(tarball, destination)

        assert not (tmp_path / 'escaped.txt').exists()


class TestNpmTransferPipeline:
    """Test single-version npm transfers."""

    def setup_pipeline(self, make_context, tmp_path, tarballs):
        self.context = make_context(PackageKind.NPM, version_concurrency=4)
        self.client = Mock(spec=PackagesClient)
        self.client.get_async = AsyncMock(return_value=manifest(*tarballs))

        async def download(url, destination):
            write_tarball(
                destination,
                {
                    'name': '@acme/left-pad',
                    'version': url.rsplit('-', 1)[-1][: -len('.tgz')],
                    'repository': 'https://github.com/acme/left-pad.git',
                },
            )
            return destination

        self.client.download_async = AsyncMock(side_effect=download)
        self.runner = ToolRunner()
        self.pipeline = NpmTransferPipeline(self.context, self.client, self.runner)
        self.tracker = ResourceTracker()

    @pytest.mark.asyncio
    async def test_transfer_success(self, make_context, tmp_path):
        self.setup_pipeline(make_context, tmp_path, ['1.0.0'])
        workspace = Workspace.create(tmp_path, 'left-pad', '1.0.0', self.tracker)

        with patch(
            'package_migrate.transfer.npm.npm_publish', new_callable=AsyncMock
        ) as publish:
            result = await self.pipeline.transfer_one(
                'left-pad', VersionReference(reference='1.0.0'), workspace, 'tools'
            )

        assert result is True
        self.client.get_async.assert_awaited_once_with(
            'https://npm.pkg.github.com/@acme/left-pad'
        )

        package_dir = publish.await_args.args[1]
        pkg_json = json.loads((package_dir / 'package.json').read_text())
        assert pkg_json['name'] == '@acme-new/left-pad'
        assert pkg_json['repository'] == 'git+https://github.com/acme-new/tools.git'
        assert publish.await_args.args[2] == tmp_path / '.npmrc'

    @pytest.mark.asyncio
    async def test_missing_version_returns_false(self, make_context, tmp_path):
        self.setup_pipeline(make_context, tmp_path, ['1.0.0'])
        workspace = Workspace.create(tmp_path, 'left-pad', '2.0.0', self.tracker)

        result = await self.pipeline.transfer_one(
            'left-pad', VersionReference(reference='2.0.0'), workspace
        )

        assert result is False
        self.client.download_async.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_manifest_returns_false(self, make_context, tmp_path):
        self.setup_pipeline(make_context, tmp_path, [])
        self.client.get_async.side_effect = NotFoundError('Resource not found')
        workspace = Workspace.create(tmp_path, 'left-pad', '1.0.0', self.tracker)

        result = await self.pipeline.transfer_one(
            'left-pad', VersionReference(reference='1.0.0'), workspace
        )

        assert result is False

    @pytest.mark.asyncio
    async def test_source_auth_error_is_raised(self, make_context, tmp_path):
        self.setup_pipeline(make_context, tmp_path, [])
        self.client.get_async.side_effect = AuthenticationError('Bad credentials')
        workspace = Workspace.create(tmp_path, 'left-pad', '1.0.0', self.tracker)

        with pytest.raises(AuthenticationError):
            await self.pipeline.transfer_one(
                'left-pad', VersionReference(reference='1.0.0'), workspace
            )

    @pytest.mark.asyncio
    async def test_publish_error_is_raised(self, make_context, tmp_path):
        self.setup_pipeline(make_context, tmp_path, ['1.0.0'])
        workspace = Workspace.create(tmp_path, 'left-pad', '1.0.0', self.tracker)
        error = ToolError('npm exited with status 1', stderr='npm ERR! 401 Unauthorized')

        with patch(
            'package_migrate.transfer.npm.npm_publish',
            new_callable=AsyncMock,
            side_effect=error,
        ):
            with pytest.raises(ToolError):
                await self.pipeline.transfer_one(
                    'left-pad', VersionReference(reference='1.0.0'), workspace
                )


class TestNpmPackageMigration:
    """Migrate a whole package with one published and one missing version."""

    @pytest.mark.asyncio
    async def test_one_version_missing(self, make_context, tmp_path):
        context = make_context(PackageKind.NPM, version_concurrency=4)
        client = Mock(spec=PackagesClient)
        client.get_paginated_async = AsyncMock(
            return_value=[{'id': 1, 'name': '1.0.0'}, {'id': 2, 'name': '1.1.0'}]
        )
        client.get_async = AsyncMock(return_value=manifest('1.0.0'))

        async def download(url, destination):
            return write_tarball(destination, {'name': '@acme/left-pad', 'version': '1.0.0'})

        client.download_async = AsyncMock(side_effect=download)

        runner = ToolRunner()
        tracker = ResourceTracker()
        migrator = PackageMigrator(
            context,
            VersionEnumerator(client),
            NpmTransferPipeline(context, client, runner),
            tracker,
        )

        with patch.object(
            runner,
            'run',
            new_callable=AsyncMock,
            return_value=ToolResult(command=['npm'], exit_code=0),
        ) as run:
            result = await migrator.migrate_package(
                Package(name='left-pad', kind=PackageKind.NPM)
            )

        assert result.succeeded == 1
        assert result.failed == 1
        assert result.skipped is False
        assert result.summary_line() == 'left-pad: 1 versions succeeded, 1 versions failed'
        run.assert_awaited_once()
        assert run.await_args.args[0][:2] == ['npm', 'publish']
        assert tracker.tracked_paths == []
