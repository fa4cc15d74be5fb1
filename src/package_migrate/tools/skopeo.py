"""skopeo registry-copy tool, run through docker."""

from loguru import logger

from ..api.exceptions import PrerequisiteError, ToolError
from .runner import ToolResult, ToolRunner

CREDENTIALS_USER = 'USERNAME'


async def check_docker(runner: ToolRunner) -> None:
    await runner.require(['docker', '--version'], 'Docker')


async def pull_skopeo(runner: ToolRunner, image: str) -> None:
    """Pull the skopeo image so copies do not race on the first pull.

    Raises:
        PrerequisiteError: If the image cannot be pulled
    """
    logger.info(f'Pulling skopeo image {image}...')
    try:
        await runner.run(['docker', 'pull', image])
    except ToolError as e:
        logger.error(f'Failed to pull skopeo image: {e}')
        raise PrerequisiteError(
            'Failed to set up skopeo. Migration cannot continue.'
        ) from e
    logger.info('Successfully pulled skopeo image')


async def skopeo_copy(
    runner: ToolRunner,
    image: str,
    source_image: str,
    target_image: str,
    source_token: str,
    target_token: str,
    retry_times: int = 3,
) -> ToolResult:
    """Copy an image, all platforms, keeping digests intact.

    Args:
        runner: Tool runner
        image: skopeo container image
        source_image: ``docker://`` source reference
        target_image: ``docker://`` target reference
        source_token: Source registry password
        target_token: Target registry password
        retry_times: skopeo's own retry count
    """
    command = [
        'docker', 'run', '-i', '--rm', image,
        'copy',
        '--preserve-digests',
        '--all',
        '--retry-times', str(retry_times),
        '--src-creds', f'{CREDENTIALS_USER}:{source_token}',
        '--dest-creds', f'{CREDENTIALS_USER}:{target_token}',
        source_image,
        target_image,
    ]
    return await runner.run(command)
