"""npm credential file and publish command."""

from pathlib import Path
from urllib.parse import urlparse

from loguru import logger

from ..api.exceptions import PrerequisiteError
from .runner import ToolResult, ToolRunner


def write_npmrc(directory: Path, target_org: str, registry_url: str, token: str) -> Path:
    """Write the ``.npmrc`` authorizing the target scope against the target registry.

    Args:
        directory: Per-run temporary directory
        target_org: Target organization (npm scope)
        registry_url: Target npm registry URL
        token: Target token with write access

    Returns:
        Path of the written file

    Raises:
        PrerequisiteError: If the file cannot be written
    """
    registry_url = registry_url.rstrip('/')
    host = urlparse(registry_url).netloc or registry_url
    npmrc_path = Path(directory) / '.npmrc'

    content = (
        f'@{target_org}:registry={registry_url}/\n'
        f'//{host}/:_authToken={token}\n'
    )

    try:
        npmrc_path.write_text(content, encoding='utf-8')
        npmrc_path.chmod(0o600)
    except OSError as e:
        raise PrerequisiteError(f'Failed to write npm credentials: {e}') from e

    logger.debug(f'Wrote npm credentials for @{target_org} to {npmrc_path}')
    return npmrc_path


async def npm_publish(runner: ToolRunner, package_dir: Path, npmrc_path: Path) -> ToolResult:
    """Publish an extracted package directory."""
    return await runner.run(
        ['npm', 'publish', '--userconfig', str(npmrc_path)], cwd=package_dir
    )
