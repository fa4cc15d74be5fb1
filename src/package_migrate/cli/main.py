"""Main CLI entry point for the Package Migration Tool."""

import sys
import asyncio
import json
from typing import Any, Dict, Optional, Tuple
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..api.client import PackagesClient
from ..api.exceptions import PrerequisiteError
from ..config.config import Config, OrganizationConfig
from ..migration.discovery import discover_packages
from ..migration.engine import MigrationEngine
from ..migration.report import (
    discovery_payload,
    print_report,
    write_discovery_outputs,
    write_github_outputs,
    write_results,
)
from ..models.package import PackageKind, parse_packages_input
from ..utils.logging import setup_logging
from ..utils.resources import ResourceTracker

console = Console()

# Temporary files of the running migration, cleaned up on exit and on signals
resource_tracker = ResourceTracker()

DEFAULT_CONFIG_PATHS = ['config.yaml', 'config.yml', '.package-migrate.yaml']

KIND_CHOICES = [kind.value for kind in PackageKind]


@click.group()
@click.version_option(version='0.1.0', prog_name='package-migrate')
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging',
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """Package Migration Tool - Copy npm, NuGet and container packages between organizations."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    # Basic logging until the configuration is loaded
    log_level = 'DEBUG' if verbose else 'INFO'
    setup_logging(log_level)


@cli.command()
@click.option(
    '--output',
    '-o',
    default='config.yaml',
    help='Output configuration file path',
)
def init(output: str) -> None:
    """Initialize a new configuration file."""
    console.print(
        Panel.fit(
            '[bold green]Package Migration Tool[/bold green]\n'
            'Initializing configuration...',
            border_style='green',
        )
    )

    try:
        Config.create_template(output)

        console.print(f'[green]✓[/green] Configuration template created at: {output}')
        console.print(
            f'[yellow]Please edit {output} with your organization details[/yellow]'
        )

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {e}')
        sys.exit(1)


@cli.command()
@click.option(
    '--kind',
    '-k',
    'kinds',
    multiple=True,
    type=click.Choice(KIND_CHOICES, case_sensitive=False),
    help='Package kind to list (repeatable, defaults to all)',
)
@click.option('--repo-name', help='Only packages linked to this repository')
@click.option('--source-org', help='Source organization')
@click.option('--source-api-url', help='Source REST API URL')
@click.option('--source-token', envvar='SOURCE_TOKEN', help='Source access token')
@click.option('--output', '-o', help='Write the discovered packages as JSON')
@click.pass_context
def discover(
    ctx: click.Context,
    kinds: Tuple[str, ...],
    repo_name: Optional[str],
    source_org: Optional[str],
    source_api_url: Optional[str],
    source_token: Optional[str],
    output: Optional[str],
) -> None:
    """List packages in the source organization."""
    try:
        source = _load_source(
            ctx, {'org': source_org, 'api_url': source_api_url, 'token': source_token}
        )
        selected = [PackageKind(k.lower()) for k in kinds] or list(PackageKind)

        with PackagesClient(source.api_url, source.token) as client:
            packages_by_kind = discover_packages(client, source.org, selected, repo_name)

        table = Table(title=f'Packages in {source.org}')
        table.add_column('Kind', style='cyan')
        table.add_column('Package', style='green')
        table.add_column('Repository', style='blue')
        for kind, packages in packages_by_kind.items():
            for package in packages:
                table.add_row(kind.value, package.name, package.repository or '-')
        console.print(table)

        if output:
            output_path = Path(output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(
                json.dumps(discovery_payload(packages_by_kind), indent=2), encoding='utf-8'
            )
            console.print(f'[green]✓[/green] Packages written to: {output}')

        write_discovery_outputs(packages_by_kind)

    except Exception as e:
        console.print(f'[red]✗[/red] Discovery failed: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@cli.group()
def migrate() -> None:
    """Migrate packages of one kind to the target organization."""


def migration_options(func):
    """Options shared by every migrate subcommand."""
    options = [
        click.option('--source-org', help='Source organization'),
        click.option('--target-org', help='Target organization'),
        click.option('--source-api-url', help='Source REST API URL'),
        click.option('--target-api-url', help='Target REST API URL'),
        click.option('--source-registry-url', help='Source registry URL override'),
        click.option('--target-registry-url', help='Target registry URL override'),
        click.option('--source-token', envvar='SOURCE_TOKEN', help='Source access token'),
        click.option('--target-token', envvar='TARGET_TOKEN', help='Target access token'),
        click.option(
            '--packages',
            '-p',
            required=True,
            help='JSON array of packages, or @FILE to read it from a file',
        ),
        click.option('--output', '-o', help='Write per-package results as JSON'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@migrate.command()
@migration_options
@click.pass_context
def npm(ctx: click.Context, **options: Any) -> None:
    """Migrate npm packages."""
    _run_migration_command(ctx, PackageKind.NPM, options)


@migrate.command()
@migration_options
@click.pass_context
def nuget(ctx: click.Context, **options: Any) -> None:
    """Migrate NuGet packages."""
    _run_migration_command(ctx, PackageKind.NUGET, options)


@migrate.command()
@migration_options
@click.pass_context
def container(ctx: click.Context, **options: Any) -> None:
    """Migrate container images."""
    _run_migration_command(ctx, PackageKind.CONTAINER, options)


def _run_migration_command(
    ctx: click.Context, kind: PackageKind, options: Dict[str, Any]
) -> None:
    console.print(
        Panel.fit(
            f'[bold blue]Package Migration Tool[/bold blue]\n'
            f'Migrating {kind.value} packages...',
            border_style='blue',
        )
    )

    try:
        config = _load_config(ctx, _organization_overrides(options))
        _setup_logging_with_config(ctx, config)

        packages = parse_packages_input(_read_packages_option(options['packages']), kind)

        engine = MigrationEngine(config, kind, tracker=resource_tracker)
        report = asyncio.run(engine.run(packages))

    except PrerequisiteError as e:
        console.print(f'[red]✗[/red] {kind.value} migration cannot start: {e}')
        sys.exit(1)
    except Exception as e:
        console.print(f'[red]✗[/red] Migration failed: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)

    print_report(report, console)

    if options.get('output'):
        write_results(report, options['output'])
        console.print(f'[green]✓[/green] Results written to: {options["output"]}')

    write_github_outputs(report)
    sys.exit(report.exit_code)


def _organization_overrides(options: Dict[str, Any]) -> Dict[str, Any]:
    """Nested configuration overrides from command-line options."""
    return {
        side: {
            'org': options.get(f'{side}_org'),
            'api_url': options.get(f'{side}_api_url'),
            'registry_url': options.get(f'{side}_registry_url'),
            'token': options.get(f'{side}_token'),
        }
        for side in ('source', 'target')
    }


def _read_packages_option(value: str) -> str:
    """Packages JSON given inline or as ``@path``."""
    if value.startswith('@'):
        path = Path(value[1:])
        if not path.exists():
            raise FileNotFoundError(f'Packages file not found: {path}')
        return path.read_text(encoding='utf-8')
    return value


def _find_config_path(ctx: click.Context) -> Optional[str]:
    config_path = ctx.obj.get('config_path')
    if config_path:
        return config_path

    for path in DEFAULT_CONFIG_PATHS:
        if Path(path).exists():
            return path
    return None


def _load_config(ctx: click.Context, overrides: Optional[Dict[str, Any]] = None) -> Config:
    """Load configuration from file or environment, with command-line overrides."""
    config_path = _find_config_path(ctx)
    if config_path:
        return Config.from_file(config_path, overrides)

    try:
        return Config.from_env(overrides)
    except ValueError as e:
        raise FileNotFoundError(
            'No usable configuration found. Use --config to specify a file, '
            'set SOURCE_*/TARGET_* environment variables, or run "package-migrate init". '
            f'Details: {e}'
        ) from e


def _load_source(ctx: click.Context, overrides: Dict[str, Any]) -> OrganizationConfig:
    """Load only the source organization, which is all discovery needs."""
    config_path = _find_config_path(ctx)
    if config_path:
        return Config.from_file(config_path, {'source': overrides}).source
    return OrganizationConfig.from_env('SOURCE', overrides)


def _setup_logging_with_config(ctx: click.Context, config: Config) -> None:
    """Setup logging with configuration from config file."""
    verbose = ctx.obj.get('verbose', False)

    # Verbose flag overrides the configured level
    log_level = 'DEBUG' if verbose else config.logging.level
    setup_logging(
        level=log_level, log_file=config.logging.file, log_format=config.logging.format
    )


def main() -> None:
    """Main entry point for the CLI application."""
    resource_tracker.install_handlers()
    try:
        # Not standalone, so interrupts reach this handler instead of click's "Aborted!"
        sys.exit(cli(standalone_mode=False) or 0)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except (click.exceptions.Abort, KeyboardInterrupt):
        console.print('\n[red]Migration interrupted by user[/red]')
        sys.exit(1)
    except Exception as e:
        console.print(f'[red]Error: {e}[/red]')
        sys.exit(1)


if __name__ == '__main__':
    main()
