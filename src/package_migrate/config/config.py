"""Configuration management for the package migration tool."""

from typing import Optional, Dict, Any
from pathlib import Path
import os

from pydantic import BaseModel, ConfigDict, Field, field_validator
import yaml
from dotenv import load_dotenv

DEFAULT_API_URL = 'https://api.github.com'


class OrganizationConfig(BaseModel):
    """One side of the migration: an organization on a package host."""

    org: str = Field(..., description='Organization name')
    api_url: str = Field(default=DEFAULT_API_URL, description='REST API URL')
    registry_url: Optional[str] = Field(
        default=None,
        description='Package registry URL. Derived from api_url when omitted.',
    )
    token: str = Field(..., description='Personal access token')

    @field_validator('org', 'token')
    @classmethod
    def validate_not_empty(cls, v):
        """Validate required strings are not blank."""
        if not v or not v.strip():
            raise ValueError('Value must not be empty')
        return v.strip()

    @field_validator('api_url')
    @classmethod
    def validate_url(cls, v):
        """Validate API URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('registry_url')
    @classmethod
    def validate_registry_url(cls, v):
        if v is None or not v.strip():
            return None
        return v.strip().rstrip('/')

    @classmethod
    def from_env(
        cls, prefix: str, overrides: Optional[Dict[str, Any]] = None
    ) -> 'OrganizationConfig':
        """Load one organization from ``<PREFIX>_ORG``, ``<PREFIX>_TOKEN`` and friends."""
        load_dotenv()
        data = _organization_env(prefix)
        data.update({k: v for k, v in (overrides or {}).items() if v is not None})
        return cls(**{k: v for k, v in data.items() if v is not None})


class MigrationSettings(BaseModel):
    """Retry, concurrency and tool settings."""

    retries: int = Field(default=3, description='Retries per version after the first attempt')
    min_delay: float = Field(default=1.0, description='Initial retry delay in seconds')
    max_delay: float = Field(default=10.0, description='Maximum retry delay in seconds')
    backoff_factor: float = Field(default=2.0, description='Retry delay multiplier')

    version_concurrency: Optional[int] = Field(
        default=None,
        description='Versions migrated concurrently per package. Defaults per package kind.',
    )
    temp_dir: Optional[str] = Field(
        default=None,
        description='Directory for temporary workspaces. System temp directory if not set.',
    )
    request_timeout: int = Field(default=300, description='HTTP request timeout in seconds')

    skopeo_image: str = Field(
        default='quay.io/skopeo/stable:latest',
        description='Container image used to run skopeo',
    )
    skopeo_retry_times: int = Field(
        default=3, description='Retries performed by skopeo itself'
    )

    @field_validator('retries', 'skopeo_retry_times')
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError('Retry counts cannot be negative')
        return v

    @field_validator('min_delay', 'max_delay')
    @classmethod
    def validate_delay(cls, v):
        if v < 0:
            raise ValueError('Retry delays cannot be negative')
        return v

    @field_validator('version_concurrency')
    @classmethod
    def validate_concurrency(cls, v):
        """Validate concurrency is positive."""
        if v is not None and v <= 0:
            raise ValueError('Version concurrency must be positive')
        return v

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError('Request timeout must be positive')
        return v

    @field_validator('temp_dir')
    @classmethod
    def validate_temp_dir(cls, v):
        """Validate temp directory path."""
        if v is not None and not Path(v).is_absolute():
            raise ValueError('temp_dir must be an absolute path')
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')
    format: Optional[str] = Field(default=None, description='Log format')

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class Config(BaseModel):
    """Main configuration class for the package migration tool."""

    model_config = ConfigDict(extra='forbid')

    source: OrganizationConfig = Field(..., description='Source organization')
    target: OrganizationConfig = Field(..., description='Target organization')
    migration: MigrationSettings = Field(
        default_factory=MigrationSettings, description='Migration settings'
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description='Logging settings'
    )

    @classmethod
    def from_file(
        cls, config_path: str, overrides: Optional[Dict[str, Any]] = None
    ) -> 'Config':
        """Load configuration from YAML file.

        Args:
            config_path: Path to the YAML file
            overrides: Nested values taking precedence over the file
        """
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ValueError(f'Configuration file must contain a mapping: {config_path}')

        return cls._build(config_data, overrides)

    @classmethod
    def from_env(cls, overrides: Optional[Dict[str, Any]] = None) -> 'Config':
        """Load configuration from environment variables.

        Args:
            overrides: Nested values taking precedence over the environment
        """
        # Load .env file if it exists
        load_dotenv()

        config_data = {
            'source': _organization_env('SOURCE'),
            'target': _organization_env('TARGET'),
            'migration': {
                'retries': _env_number('MIGRATION_RETRIES', int),
                'min_delay': _env_number('MIGRATION_MIN_DELAY', float),
                'max_delay': _env_number('MIGRATION_MAX_DELAY', float),
                'version_concurrency': _env_number('MIGRATION_CONCURRENCY', int),
                'temp_dir': os.getenv('MIGRATION_TEMP_DIR'),
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL', 'INFO'),
                'file': os.getenv('LOG_FILE'),
            },
        }

        return cls._build(config_data, overrides)

    @classmethod
    def _build(
        cls, data: Dict[str, Any], overrides: Optional[Dict[str, Any]]
    ) -> 'Config':
        merged = cls._merge(data, cls._remove_none_values(overrides or {}))
        return cls(**cls._remove_none_values(merged))

    @staticmethod
    def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge overrides into base."""
        merged = dict(base)
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = Config._merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    @staticmethod
    def _remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively remove None values from dictionary."""
        if isinstance(data, dict):
            return {
                k: Config._remove_none_values(v)
                for k, v in data.items()
                if v is not None
            }
        return data

    def to_file(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                self.model_dump(exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )

    @staticmethod
    def create_template(output_path: str) -> None:
        """Create a configuration template file."""
        template_config = {
            'source': {
                'org': 'source-org',
                'api_url': DEFAULT_API_URL,
                'token': 'your-source-personal-access-token',
            },
            'target': {
                'org': 'target-org',
                'api_url': DEFAULT_API_URL,
                'token': 'your-target-personal-access-token',
            },
            'migration': {
                'retries': 3,
                'min_delay': 1.0,
                'max_delay': 10.0,
                'backoff_factor': 2.0,
                'request_timeout': 300,
                'skopeo_image': 'quay.io/skopeo/stable:latest',
                'skopeo_retry_times': 3,
            },
            'logging': {
                'level': 'INFO',
                'file': 'migration.log',
            },
        }

        config_file = Path(output_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                template_config, f, default_flow_style=False, indent=2, sort_keys=False
            )


def _env_number(name: str, cast):
    value = os.getenv(name)
    if value is None or value == '':
        return None
    return cast(value)


def _organization_env(prefix: str) -> Dict[str, Optional[str]]:
    return {
        'org': os.getenv(f'{prefix}_ORG'),
        'api_url': os.getenv(f'{prefix}_API_URL'),
        'registry_url': os.getenv(f'{prefix}_REGISTRY_URL'),
        'token': os.getenv(f'{prefix}_TOKEN'),
    }
