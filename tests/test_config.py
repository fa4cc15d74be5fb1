"""Tests for configuration management."""

import os

import pytest
import yaml
from unittest.mock import patch

from package_migrate.config.config import (
    Config,
    LoggingConfig,
    MigrationSettings,
    OrganizationConfig,
)


class TestOrganizationConfig:
    """Test organization configuration."""

    def test_valid_config(self):
        config = OrganizationConfig(org='acme', token='secret')

        assert config.org == 'acme'
        assert config.api_url == 'https://api.github.com'
        assert config.registry_url is None

    def test_url_validation(self):
        config = OrganizationConfig(
            org='acme', token='secret', api_url='https://api.ghe.example.com/'
        )
        assert config.api_url == 'https://api.ghe.example.com'

        with pytest.raises(ValueError):
            OrganizationConfig(org='acme', token='secret', api_url='api.github.com')

    def test_blank_values_rejected(self):
        with pytest.raises(ValueError):
            OrganizationConfig(org='  ', token='secret')
        with pytest.raises(ValueError):
            OrganizationConfig(org='acme', token='')

    def test_blank_registry_url_is_none(self):
        config = OrganizationConfig(org='acme', token='secret', registry_url='  ')
        assert config.registry_url is None

    def test_from_env_with_overrides(self):
        env = {'SOURCE_ORG': 'acme', 'SOURCE_TOKEN': 'env-token'}
        with patch.dict(os.environ, env, clear=True), patch(
            'package_migrate.config.config.load_dotenv'
        ):
            config = OrganizationConfig.from_env('SOURCE', {'token': 'cli-token', 'org': None})

        assert config.org == 'acme'
        assert config.token == 'cli-token'


class TestMigrationSettings:
    """Test migration settings."""

    def test_defaults(self):
        settings = MigrationSettings()

        assert settings.retries == 3
        assert settings.min_delay == 1.0
        assert settings.max_delay == 10.0
        assert settings.version_concurrency is None
        assert settings.skopeo_retry_times == 3

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            MigrationSettings(retries=-1)
        with pytest.raises(ValueError):
            MigrationSettings(version_concurrency=0)
        with pytest.raises(ValueError):
            MigrationSettings(temp_dir='relative/path')


class TestLoggingConfig:
    def test_level_normalized(self):
        assert LoggingConfig(level='debug').level == 'DEBUG'

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            LoggingConfig(level='LOUD')


class TestConfig:
    """Test main configuration loading."""

    def write_config(self, path, data):
        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f)
        return str(path)

    def test_config_from_file(self, tmp_path):
        config_path = self.write_config(
            tmp_path / 'config.yaml',
            {
                'source': {'org': 'acme', 'token': 'source-token'},
                'target': {
                    'org': 'acme-new',
                    'token': 'target-token',
                    'api_url': 'https://api.ghe.example.com',
                },
                'migration': {'retries': 5, 'version_concurrency': 2},
                'logging': {'level': 'debug'},
            },
        )

        config = Config.from_file(config_path)

        assert config.source.org == 'acme'
        assert config.target.api_url == 'https://api.ghe.example.com'
        assert config.migration.retries == 5
        assert config.migration.version_concurrency == 2
        assert config.logging.level == 'DEBUG'

    def test_overrides_take_precedence(self, tmp_path):
        config_path = self.write_config(
            tmp_path / 'config.yaml',
            {
                'source': {'org': 'acme', 'token': 'source-token'},
                'target': {'org': 'acme-new', 'token': 'target-token'},
            },
        )

        config = Config.from_file(
            config_path,
            overrides={'target': {'org': 'other', 'token': None}},
        )

        assert config.target.org == 'other'
        assert config.target.token == 'target-token'

    def test_config_from_env(self):
        env = {
            'SOURCE_ORG': 'acme',
            'SOURCE_TOKEN': 'source-token',
            'TARGET_ORG': 'acme-new',
            'TARGET_TOKEN': 'target-token',
            'TARGET_API_URL': 'https://api.ghe.example.com',
            'MIGRATION_RETRIES': '1',
            'MIGRATION_MAX_DELAY': '2.5',
            'MIGRATION_CONCURRENCY': '8',
        }

        with patch.dict(os.environ, env, clear=True), patch(
            'package_migrate.config.config.load_dotenv'
        ):
            config = Config.from_env()

        assert config.source.org == 'acme'
        assert config.target.api_url == 'https://api.ghe.example.com'
        assert config.migration.retries == 1
        assert config.migration.max_delay == 2.5
        assert config.migration.version_concurrency == 8

    def test_config_from_env_missing_values(self):
        with patch.dict(os.environ, {}, clear=True), patch(
            'package_migrate.config.config.load_dotenv'
        ):
            with pytest.raises(ValueError):
                Config.from_env()

    def test_unknown_section_rejected(self, tmp_path):
        config_path = self.write_config(
            tmp_path / 'config.yaml',
            {
                'source': {'org': 'acme', 'token': 'a'},
                'target': {'org': 'b', 'token': 'b'},
                'destination': {},
            },
        )

        with pytest.raises(ValueError):
            Config.from_file(config_path)

    def test_invalid_config_file(self, tmp_path):
        config_path = tmp_path / 'config.yaml'
        config_path.write_text('invalid: yaml: content:')

        with pytest.raises(Exception):
            Config.from_file(str(config_path))

    def test_missing_config_file(self):
        with pytest.raises(FileNotFoundError):
            Config.from_file('/nonexistent/config.yaml')

    def test_template_round_trip(self, tmp_path):
        output = tmp_path / 'nested' / 'config.yaml'

        Config.create_template(str(output))
        config = Config.from_file(str(output))

        assert config.source.org == 'source-org'
        assert config.target.org == 'target-org'
        assert config.migration.skopeo_image == 'quay.io/skopeo/stable:latest'

    def test_to_file(self, tmp_path):
        config = Config(
            source=OrganizationConfig(org='acme', token='a'),
            target=OrganizationConfig(org='acme-new', token='b'),
        )
        path = tmp_path / 'saved.yaml'

        config.to_file(str(path))

        assert Config.from_file(str(path)) == config
